"""Shared test doubles: a scripted transport and a canned completion client."""

import asyncio
from typing import Any, Optional

import pytest

from wa_relay.auth import CredentialStore
from wa_relay.completion import CompletionResult
from wa_relay.config import Settings
from wa_relay.errors import TransportError
from wa_relay.models.session import Session
from wa_relay.transport.base import Transport


def open_update() -> dict[str, Any]:
    return {"connection": "open"}


def close_update(status: Optional[int]) -> dict[str, Any]:
    error: dict[str, Any] = {"message": "closed"}
    if status is not None:
        error["output"] = {"statusCode": status}
    return {"connection": "close", "lastDisconnect": {"error": error}}


def text_event(text: Optional[str], jid: str = "111@s.whatsapp.net", from_me: bool = False,
               msg_id: str = "MSG1") -> dict[str, Any]:
    message = {"conversation": text} if text is not None else {"imageMessage": {"caption": ""}}
    return {
        "messages": [{"key": {"remoteJid": jid, "fromMe": from_me, "id": msg_id}, "message": message}],
        "type": "notify",
    }


class FakeTransport(Transport):
    """Plays a script of (event, payload) pairs once connected."""

    def __init__(self, script: Optional[list[tuple[str, Any]]] = None, pairing_code: str = "ABCD1234",
                 fail_connect: bool = False):
        super().__init__()
        self.script = list(script or [])
        self.pairing_code = pairing_code
        self.fail_connect = fail_connect
        self.sessions: list[Session] = []
        self.sent: list[tuple[str, dict[str, Any], Optional[dict[str, Any]]]] = []
        self.pairing_requests: list[str] = []
        self.disconnects = 0
        self._connected = False
        self._player: Optional[asyncio.Task[None]] = None

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self, session: Session) -> None:
        if self.fail_connect:
            raise TransportError("gateway unreachable")
        self._connected = True
        self.sessions.append(session)
        if self.script:
            self._player = asyncio.get_running_loop().create_task(self.play())

    async def play(self) -> None:
        for event, payload in self.script:
            await asyncio.sleep(0)
            await self.dispatch(event, payload)

    async def send_message(self, chat_id, content, quoted=None):
        self.sent.append((chat_id, content, quoted))
        return {"key": {"id": f"OUT{len(self.sent)}"}}

    async def request_pairing_code(self, identifier: str) -> str:
        self.pairing_requests.append(identifier)
        return self.pairing_code

    async def disconnect(self) -> None:
        self._connected = False
        self.disconnects += 1


class ScriptedFactory:
    """Transport factory handing out one FakeTransport per script."""

    def __init__(self, *scripts: list[tuple[str, Any]], **kwargs: Any):
        self._scripts = list(scripts)
        self._kwargs = kwargs
        self.transports: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        script = self._scripts[len(self.transports)] if len(self.transports) < len(self._scripts) else []
        transport = FakeTransport(script, **self._kwargs)
        self.transports.append(transport)
        return transport


class RecordingStore(CredentialStore):
    """CredentialStore that counts loads and records every saved creds snapshot."""

    def __init__(self, directory):
        super().__init__(directory)
        self.loads = 0
        self.saves: list[dict[str, Any]] = []

    def load(self) -> Session:
        self.loads += 1
        return super().load()

    def save(self, session: Session) -> None:
        self.saves.append(dict(session.creds))
        super().save(session)


class FakeCompletion:
    """Replies with ``reply``, or echoes "re: <text>" when it is None."""

    def __init__(self, reply: Optional[str] = "hi there", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.calls: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.closed = False

    async def complete(self, text: str) -> CompletionResult:
        self.calls.append(text)
        gate = self.gates.get(text)
        if gate is not None:
            await gate.wait()
        if self.fail:
            return CompletionResult.failure("service unavailable")
        return CompletionResult.success(self.reply if self.reply is not None else f"re: {text}")

    async def close(self) -> None:
        self.closed = True


async def wait_until(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def registered_store(tmp_path):
    store = RecordingStore(tmp_path / "session")
    store.save(Session(creds={"registered": True, "me": {"id": "628123@s.whatsapp.net"}}))
    store.saves.clear()
    return store


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        api_key="test-key",
        session_dir=tmp_path / "session",
        pairing_delay=0,
        open_timeout=5,
        restart_initial_delay=0,
        restart_max_delay=0,
    )
