"""
Wires the credential store, completion client, supervisor and
relay together and keeps the session running.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from wa_relay.auth import CredentialStore
from wa_relay.completion import CompletionClient, SamplingParams
from wa_relay.config import Settings
from wa_relay.errors import PairingError, TransportError
from wa_relay.models.connection import ConnectionState, DisconnectAction, DisconnectReason
from wa_relay.relay import MessageRelay
from wa_relay.store import MessageStore
from wa_relay.supervisor import ConnectionSupervisor, RestartPolicy, TransportFactory
from wa_relay.transport.socketio import GatewayTransport

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

T = TypeVar("T")

_STOPPED = object()


@dataclass
class BridgeContext:
    settings: Settings
    credentials: CredentialStore
    completion: CompletionClient
    transport_factory: TransportFactory
    on_pairing_code: Optional[Callable[[str], None]] = None
    on_qr: Optional[Callable[[str], None]] = None


class Bridge:
    def __init__(self, context: BridgeContext):
        self.context = context
        settings = context.settings
        self.store = MessageStore(settings.message_store_size, settings.message_store_chats)
        self.relay = MessageRelay(
            context.completion,
            direct_only=settings.direct_only,
            process_batch=settings.process_batch,
            fallback_reply=settings.fallback_reply,
            on_fatal=self._on_fatal,
        )
        self.supervisor = ConnectionSupervisor(
            context.credentials,
            context.transport_factory,
            phone_number=settings.phone_number,
            qr=settings.qr,
            country_prefix=settings.country_prefix,
            pairing_delay=settings.pairing_delay,
            open_timeout=settings.open_timeout,
            on_pairing_code=context.on_pairing_code,
            on_qr=context.on_qr,
        )
        self.supervisor.add_transport_listener(self.store.bind)
        self.supervisor.add_transport_listener(self.relay.bind)
        self.policy = RestartPolicy(
            initial_delay=settings.restart_initial_delay,
            max_delay=settings.restart_max_delay,
            multiplier=settings.restart_multiplier,
            max_attempts=settings.restart_max_attempts,
        )
        self.starts = 0
        self._stop: Optional[asyncio.Event] = None
        self._fatal: Optional[asyncio.Future[BaseException]] = None

    def _on_fatal(self, exc: BaseException) -> None:
        if self._fatal is not None and not self._fatal.done():
            self._fatal.set_result(exc)

    def stop(self) -> None:
        if self._stop is not None:
            self._stop.set()

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except NotImplementedError:
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(self.stop))

    async def run(self) -> int:
        """Run until a terminal outcome. Returns the process exit code."""
        self._stop = asyncio.Event()
        self._fatal = asyncio.get_running_loop().create_future()
        try:
            return await self._run()
        finally:
            await self.relay.drain(self.context.settings.drain_timeout)
            transport = self.supervisor.transport
            if transport is not None and transport.connected:
                await transport.disconnect()
            await self.context.completion.close()

    async def _run(self) -> int:
        while True:
            self.starts += 1
            try:
                state = await self._until_stopped(self.supervisor.start())
            except PairingError as e:
                log.error("%s", e)
                return EXIT_FAILURE
            except TransportError as e:
                log.warning("Could not open connection: %s", e)
                reason = DisconnectReason.CONNECTION_LOST
            else:
                if state is _STOPPED:
                    return EXIT_OK
                if isinstance(state, BaseException):
                    log.error("Fatal error: %s", state)
                    return EXIT_FAILURE
                if state is ConnectionState.OPEN:
                    self.policy.reset()
                outcome = await self._until_stopped(self.supervisor.wait_closed())
                if outcome is _STOPPED:
                    log.info("Stop requested; shutting down")
                    return EXIT_OK
                if isinstance(outcome, BaseException):
                    log.error("Fatal error: %s", outcome)
                    return EXIT_FAILURE
                reason = outcome

            action = await self.supervisor.handle_disconnect(reason)
            if action is not DisconnectAction.RESTART:
                return EXIT_FAILURE
            delay = self.policy.next_delay()
            if delay is None:
                log.error("Giving up after %d consecutive restarts", self.policy.attempts)
                return EXIT_FAILURE
            log.info("Restarting in %.1fs (attempt %d)", delay, self.policy.attempts)
            if await self._until_stopped(asyncio.sleep(delay)) is _STOPPED:
                return EXIT_OK

    async def _until_stopped(self, aw: Awaitable[T]) -> Any:
        """Await ``aw`` unless a stop request or fatal error comes first.

        Returns ``_STOPPED`` on stop and the exception on a fatal error.
        """
        task = asyncio.ensure_future(aw)
        stop = asyncio.ensure_future(self._stop.wait())  # type: ignore[union-attr]
        try:
            done, _ = await asyncio.wait(
                {task, stop, self._fatal}, return_when=asyncio.FIRST_COMPLETED,  # type: ignore[arg-type]
            )
        finally:
            stop.cancel()
        if task in done:
            return task.result()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if self._fatal.done():  # type: ignore[union-attr]
            return self._fatal.result()  # type: ignore[union-attr]
        return _STOPPED


def build_bridge(
    settings: Settings,
    *,
    on_pairing_code: Optional[Callable[[str], None]] = None,
    on_qr: Optional[Callable[[str], None]] = None,
    transport_factory: Optional[TransportFactory] = None,
) -> Bridge:
    completion = CompletionClient(
        settings.api_key,
        base_url=settings.completion_base_url,
        model=settings.model,
        system_prompt=settings.system_prompt,
        sampling=SamplingParams(
            temperature=settings.temperature, max_tokens=settings.max_tokens, top_p=settings.top_p,
        ),
        timeout=settings.completion_timeout,
    )

    def gateway() -> GatewayTransport:
        return GatewayTransport(settings.gateway_url, print_qr=settings.qr)

    return Bridge(BridgeContext(
        settings=settings,
        credentials=CredentialStore(settings.session_dir),
        completion=completion,
        transport_factory=transport_factory or gateway,
        on_pairing_code=on_pairing_code,
        on_qr=on_qr,
    ))
