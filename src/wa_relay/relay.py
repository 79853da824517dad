"""
Message relay: turns one messages.upsert event into zero or one reply
per accepted message.

Filtering:
- only the first message of a batch (unless ``process_batch``)
- own messages, non-text messages and, with ``direct_only``, group chats
  are ignored

Accepted messages are processed as tasks, one at a time per chat, so
replies within a conversation keep arrival order.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from wa_relay.completion import CompletionClient
from wa_relay.errors import ConfigError, TransportError
from wa_relay.jid import is_group
from wa_relay.models.events import GatewayEvent
from wa_relay.models.message import InboundMessage, MessagesUpsert, OutboundReply
from wa_relay.transport.base import Transport

log = logging.getLogger(__name__)


class MessageRelay:
    def __init__(
        self,
        completion: CompletionClient,
        *,
        direct_only: bool = False,
        process_batch: bool = False,
        fallback_reply: Optional[str] = None,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ):
        self._completion = completion
        self._direct_only = direct_only
        self._process_batch = process_batch
        self._fallback_reply = fallback_reply
        self._on_fatal = on_fatal
        self._transport: Optional[Transport] = None
        self._locks: dict[str, asyncio.Lock] = {}
        self._pending: dict[str, int] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def bind(self, transport: Transport) -> None:
        """Attach to a (fresh) transport: replies go out through it from now on."""
        self._transport = transport
        transport.on(GatewayEvent.MESSAGES_UPSERT, self.on_upsert)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def accepts(self, msg: InboundMessage) -> bool:
        if msg.from_me:
            return False
        if not msg.text:
            return False
        if self._direct_only and is_group(msg.chat_id):
            return False
        return True

    async def on_upsert(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            return
        upsert = MessagesUpsert.model_validate(payload)
        if not upsert.messages:
            return
        batch = upsert.messages if self._process_batch else upsert.messages[:1]
        for raw in batch:
            msg = InboundMessage.from_wire(raw)
            if self.accepts(msg):
                self._schedule(msg)

    def _schedule(self, msg: InboundMessage) -> None:
        task = asyncio.get_running_loop().create_task(self._process(msg))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process(self, msg: InboundMessage) -> None:
        chat_id = msg.chat_id
        lock = self._locks.setdefault(chat_id, asyncio.Lock())
        self._pending[chat_id] = self._pending.get(chat_id, 0) + 1
        try:
            async with lock:
                await self.handle(msg)
        except ConfigError as e:
            log.critical("Relay cannot continue: %s", e)
            if self._on_fatal:
                self._on_fatal(e)
            else:
                raise
        finally:
            self._pending[chat_id] -= 1
            if not self._pending[chat_id]:
                del self._pending[chat_id]
                del self._locks[chat_id]

    async def handle(self, msg: InboundMessage) -> Optional[OutboundReply]:
        """Complete one accepted message and send the reply."""
        result = await self._completion.complete(msg.text or "")
        if result.ok:
            text = result.text or ""
        elif self._fallback_reply:
            text = self._fallback_reply
        else:
            log.warning("No reply to %s: %s", msg.chat_id, result.error)
            return None

        reply = OutboundReply(chat_id=msg.chat_id, text=text, quoted=msg.quoted)
        if self._transport is None:
            log.error("No transport bound; dropping reply to %s", msg.chat_id)
            return None
        try:
            await self._transport.send_message(reply.chat_id, reply.content, quoted=reply.quoted)
        except TransportError as e:
            log.warning("Failed to deliver reply to %s: %s", reply.chat_id, e)
            return None

        timestamp = datetime.now(timezone.utc).isoformat()
        log.info(
            "Relayed message from %s | in: %r | out: %r",
            msg.sender, msg.text, reply.text,
            extra={"sender": msg.sender, "input": msg.text, "output": reply.text, "timestamp": timestamp},
        )
        return reply

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for every in-flight message to finish.

        Messages still running after ``timeout`` seconds are cancelled and
        False is returned.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                break
            await asyncio.wait(list(self._tasks), timeout=remaining)
        if not self._tasks:
            return True
        log.warning("Cancelling %d unfinished message(s)", len(self._tasks))
        leftover = list(self._tasks)
        for task in leftover:
            task.cancel()
        await asyncio.gather(*leftover, return_exceptions=True)
        return False
