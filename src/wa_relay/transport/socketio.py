"""
Socket.IO gateway transport.

The WhatsApp Web session itself runs in a gateway process; this client
hands it the stored credentials in the handshake, receives its events and
answers its key / message lookups through acknowledgements.
"""

import logging
from typing import Any, Optional

import socketio
from socketio import exceptions as sio_errors

from wa_relay.errors import TransportError
from wa_relay.models.events import ClientEvent, GatewayEvent
from wa_relay.models.session import Session
from wa_relay.transport.base import Transport

log = logging.getLogger(__name__)

SOCKETIO_PATH = "/socket.io/"
# Reported when the link to the gateway itself drops.
LINK_LOST_STATUS = 408

DEFAULT_SOCKET_OPTIONS: dict[str, Any] = {
    "browser": ["Windows", "Firefox", "10.0"],
    "markOnlineOnConnect": True,
    "generateHighQualityLinkPreview": True,
    "syncFullHistory": True,
    "retryRequestDelayMs": 10,
    "maxMsgRetryCount": 15,
    "transactionOpts": {"maxCommitRetries": 10, "delayBetweenTriesMs": 10},
    "appStateMacVerification": {"patch": True, "snapshot": True},
}

_FORWARDED_EVENTS = (
    GatewayEvent.CONNECTION_UPDATE,
    GatewayEvent.CREDS_UPDATE,
    GatewayEvent.KEYS_UPDATE,
    GatewayEvent.MESSAGES_UPSERT,
)


class GatewayTransport(Transport):
    def __init__(
        self,
        url: str,
        *,
        print_qr: bool = False,
        socket_options: Optional[dict[str, Any]] = None,
        transports: Optional[list[str]] = None,
        connect_timeout: float = 15.0,
        request_timeout: float = 30.0,
    ):
        super().__init__()
        self._url = url
        self._print_qr = print_qr
        self._socket_options = {**DEFAULT_SOCKET_OPTIONS, **(socket_options or {})}
        self._transports = transports or ["websocket"]
        self._connect_timeout = connect_timeout
        self._request_timeout = request_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._closing = False
        self._close_reported = False

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected

    async def connect(self, session: Session) -> None:
        if self._sio and self._sio.connected:
            return

        # Reconnects are the supervisor's call, not the client's.
        self._sio = socketio.AsyncClient(reconnection=False)
        self._closing = False
        self._close_reported = False

        for event in _FORWARDED_EVENTS:
            self._sio.on(event, self._forwarder(event))

        @self._sio.on(GatewayEvent.GET_MESSAGE_REQUEST)
        async def on_get_message(data: Any) -> dict[str, Any]:
            key = data.get("key", data) if isinstance(data, dict) else {}
            return {"ok": True, "data": {"message": self.lookup_message(key)}}

        @self._sio.on(GatewayEvent.GET_KEYS_REQUEST)
        async def on_get_keys(data: Any) -> dict[str, Any]:
            if not isinstance(data, dict) or "type" not in data:
                return {"ok": False, "error": "expected {type, ids}"}
            return {"ok": True, "data": self.lookup_keys(data["type"], data.get("ids") or [])}

        @self._sio.event
        async def disconnect(*_args: Any) -> None:
            if self._closing:
                return
            log.warning("Lost link to gateway at %s", self._url)
            await self._report_close(LINK_LOST_STATUS, "gateway link lost")

        try:
            await self._sio.connect(
                self._url,
                auth={
                    "creds": session.creds,
                    "options": {**self._socket_options, "printQRInTerminal": self._print_qr},
                },
                transports=self._transports,
                socketio_path=SOCKETIO_PATH,
                wait_timeout=self._connect_timeout,
            )
        except sio_errors.ConnectionError as e:
            self._sio = None
            raise TransportError(f"Could not connect to gateway at {self._url}: {e}")

    def _forwarder(self, event: str):
        async def forward(data: Any = None) -> None:
            if event == GatewayEvent.CONNECTION_UPDATE and isinstance(data, dict) and data.get("connection") == "close":
                if self._close_reported:
                    return
                self._close_reported = True
            await self.dispatch(event, data if data is not None else {})
        return forward

    async def _report_close(self, status: int, message: str) -> None:
        if self._close_reported:
            return
        self._close_reported = True
        await self.dispatch(GatewayEvent.CONNECTION_UPDATE, {
            "connection": "close",
            "lastDisconnect": {"error": {"message": message, "output": {"statusCode": status}}},
        })

    async def _call(self, event: str, data: dict[str, Any]) -> Any:
        if not self._sio or not self._sio.connected:
            raise TransportError("Gateway not connected")
        try:
            resp = await self._sio.call(event, data, timeout=self._request_timeout)
        except sio_errors.TimeoutError:
            raise TransportError(f"Timeout waiting for {event} acknowledgement")
        except sio_errors.SocketIOError as e:
            raise TransportError(f"{event} failed: {e}")
        if not isinstance(resp, dict) or not resp.get("ok"):
            error = resp.get("error") if isinstance(resp, dict) else resp
            raise TransportError(f"{event} rejected by gateway: {error}", code="gateway_error")
        return resp.get("data")

    async def send_message(
        self, chat_id: str, content: dict[str, Any], quoted: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        options = {"quoted": quoted} if quoted else {}
        result = await self._call(ClientEvent.SEND_MESSAGE, {"jid": chat_id, "content": content, "options": options})
        return result if isinstance(result, dict) else {}

    async def request_pairing_code(self, identifier: str) -> str:
        result = await self._call(ClientEvent.REQUEST_PAIRING_CODE, {"phoneNumber": identifier})
        code = result.get("code") if isinstance(result, dict) else result
        if not code:
            raise TransportError("Gateway returned no pairing code", code="gateway_error")
        return str(code)

    async def disconnect(self) -> None:
        self._closing = True
        if self._sio:
            try:
                await self._sio.disconnect()
            finally:
                self._sio = None
