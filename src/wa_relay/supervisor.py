"""
Connection supervisor: owns the transport session.

``start()`` loads the session, pairs when the account is not registered yet,
opens a fresh transport and waits for the first open/close update. The
decision taken on a close is in ``TRANSITIONS``; restarts are paced by
``RestartPolicy``.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from wa_relay.auth import CredentialStore
from wa_relay.errors import TransportError
from wa_relay.models.connection import (
    TRANSITIONS,
    ConnectionState,
    ConnectionUpdate,
    DisconnectAction,
    DisconnectReason,
)
from wa_relay.models.events import GatewayEvent
from wa_relay.models.session import Session
from wa_relay.pairing import (
    COUNTRY_CALLING_CODES,
    DEFAULT_COUNTRY_PREFIX,
    format_pairing_code,
    prepare_identifier,
)
from wa_relay.transport.base import Transport

log = logging.getLogger(__name__)

TransportFactory = Callable[[], Transport]
TransportListener = Callable[[Transport], None]


class RestartPolicy:
    """Exponential backoff with a cap on consecutive restarts (0 = unlimited)."""

    def __init__(
        self,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        multiplier: float = 2.0,
        max_attempts: int = 10,
    ):
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.multiplier = multiplier
        self.max_attempts = max_attempts
        self.attempts = 0
        self._delay = initial_delay

    def next_delay(self) -> Optional[float]:
        """Delay before the next restart, or None once the budget is spent."""
        if self.max_attempts and self.attempts >= self.max_attempts:
            return None
        delay = min(self._delay, self.max_delay)
        # Held at the cap once reached.
        self._delay = min(self._delay * self.multiplier, self.max_delay)
        self.attempts += 1
        return delay

    def reset(self) -> None:
        self.attempts = 0
        self._delay = self.initial_delay


class ConnectionSupervisor:
    def __init__(
        self,
        credentials: CredentialStore,
        transport_factory: TransportFactory,
        *,
        phone_number: Optional[str] = None,
        qr: bool = False,
        country_prefix: str = DEFAULT_COUNTRY_PREFIX,
        allowed_prefixes: frozenset[str] = COUNTRY_CALLING_CODES,
        pairing_delay: float = 5.0,
        open_timeout: Optional[float] = 120.0,
        on_pairing_code: Optional[Callable[[str], None]] = None,
        on_qr: Optional[Callable[[str], None]] = None,
    ):
        self._credentials = credentials
        self._transport_factory = transport_factory
        self._phone_number = phone_number
        self._qr = qr
        self._country_prefix = country_prefix
        self._allowed_prefixes = allowed_prefixes
        self._pairing_delay = pairing_delay
        self._open_timeout = open_timeout
        self._on_pairing_code = on_pairing_code
        self._on_qr = on_qr
        self._listeners: list[TransportListener] = []

        self._session: Optional[Session] = None
        self._transport: Optional[Transport] = None
        self._state = ConnectionState.CLOSED
        self._opened: Optional[asyncio.Future[None]] = None
        self._closed: Optional[asyncio.Future[DisconnectReason]] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    def add_transport_listener(self, listener: TransportListener) -> None:
        """Called with every new transport, after the supervisor's own handlers."""
        self._listeners.append(listener)

    async def start(self) -> ConnectionState:
        session = self._credentials.load()
        self._session = session

        number = None
        if not session.registered and not self._qr:
            number = prepare_identifier(self._phone_number, self._country_prefix, self._allowed_prefixes)

        loop = asyncio.get_running_loop()
        self._opened = loop.create_future()
        self._closed = loop.create_future()
        self._state = ConnectionState.CONNECTING

        transport = self._transport_factory()
        self._transport = transport
        transport.get_keys = self._credentials.read_keys
        # Credential saves must precede every other handler.
        transport.on(GatewayEvent.CREDS_UPDATE, self._on_creds_update)
        transport.on(GatewayEvent.KEYS_UPDATE, self._on_keys_update)
        transport.on(GatewayEvent.CONNECTION_UPDATE, self._on_connection_update)
        for listener in self._listeners:
            listener(transport)

        await transport.connect(session)

        if number is not None:
            await asyncio.sleep(self._pairing_delay)
            code = format_pairing_code(await transport.request_pairing_code(number))
            log.info("Pairing code for %s: %s", number, code)
            if self._on_pairing_code:
                self._on_pairing_code(code)

        # No deadline while the operator enters the pairing code.
        timeout = None if number is not None else self._open_timeout
        done, _ = await asyncio.wait(
            {self._opened, self._closed}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED,
        )
        if not done:
            raise TransportError(f"Connection did not open within {self._open_timeout}s", code="open_timeout")
        return ConnectionState.CLOSED if self._closed.done() else ConnectionState.OPEN

    async def wait_closed(self) -> DisconnectReason:
        if self._closed is None:
            raise RuntimeError("start() has not been called")
        return await asyncio.shield(self._closed)

    def _on_creds_update(self, payload: Any) -> None:
        if self._session is None or not isinstance(payload, dict):
            return
        self._session.update(payload)
        self._credentials.save(self._session)

    def _on_keys_update(self, payload: Any) -> None:
        if isinstance(payload, dict):
            self._credentials.write_keys(payload)

    def _on_connection_update(self, payload: Any) -> None:
        update = ConnectionUpdate.model_validate(payload if isinstance(payload, dict) else {})
        if update.qr:
            log.debug("QR payload received")
            if self._on_qr:
                self._on_qr(update.qr)

        state = update.state
        if state is None:
            return
        log.info("Connection status: %s", state.value)
        if self._closed is not None and self._closed.done():
            return
        self._state = state
        if state is ConnectionState.OPEN:
            if self._opened is not None and not self._opened.done():
                self._opened.set_result(None)
        elif state is ConnectionState.CLOSED:
            reason = DisconnectReason.from_status_code(update.status_code)
            log.info("Connection closed: %s (status %s)", reason.value, update.status_code)
            if self._closed is not None:
                self._closed.set_result(reason)

    async def handle_disconnect(self, reason: DisconnectReason) -> DisconnectAction:
        """Apply the transition for ``reason`` and tear the old transport down."""
        action = TRANSITIONS[reason]
        self._state = ConnectionState.CLOSED
        if self._transport is not None:
            try:
                await self._transport.disconnect()
            except TransportError as e:
                log.debug("Error while closing transport: %s", e)

        if action is DisconnectAction.RESTART:
            log.warning("Disconnected (%s); restarting", reason.value)
        elif action is DisconnectAction.LOGOUT:
            removed = self._credentials.clear()
            log.error("Logged out; removed %d session file(s) from %s", len(removed), self._credentials.directory)
        else:
            log.error("Disconnected (%s); not reconnecting", reason.value)
        return action
