"""
In-memory message store backing the gateway's retry-resend lookups.
"""

from collections import OrderedDict
from typing import Any, Optional

from wa_relay.jid import normalize_user_jid
from wa_relay.models.events import GatewayEvent
from wa_relay.models.message import MessagesUpsert, WAMessage
from wa_relay.transport.base import Transport

DEFAULT_MAX_PER_CHAT = 1000
DEFAULT_MAX_CHATS = 1000


class MessageStore:
    """Keeps the most recent messages of the most recently active chats."""

    def __init__(self, max_per_chat: int = DEFAULT_MAX_PER_CHAT, max_chats: int = DEFAULT_MAX_CHATS):
        self._max_per_chat = max_per_chat
        self._max_chats = max_chats
        self._chats: OrderedDict[str, OrderedDict[str, WAMessage]] = OrderedDict()

    def bind(self, transport: Transport) -> None:
        transport.on(GatewayEvent.MESSAGES_UPSERT, self._on_upsert)
        transport.get_message = self.get_message

    def _on_upsert(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            return
        for msg in MessagesUpsert.model_validate(payload).messages:
            self.add(msg)

    def add(self, msg: WAMessage) -> None:
        if not msg.key.id:
            return
        jid = normalize_user_jid(msg.key.remote_jid)
        chat = self._chats.setdefault(jid, OrderedDict())
        self._chats.move_to_end(jid)
        chat[msg.key.id] = msg
        chat.move_to_end(msg.key.id)
        while len(chat) > self._max_per_chat:
            chat.popitem(last=False)
        while len(self._chats) > self._max_chats:
            self._chats.popitem(last=False)

    def load_message(self, jid: str, message_id: str) -> Optional[WAMessage]:
        chat = self._chats.get(normalize_user_jid(jid))
        return chat.get(message_id) if chat else None

    def get_message(self, key: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Message content for a gateway lookup key, or None when not stored."""
        jid = key.get("remoteJid")
        message_id = key.get("id")
        if not jid or not message_id:
            return None
        msg = self.load_message(jid, message_id)
        return msg.message if msg else None

    def __len__(self) -> int:
        return sum(len(chat) for chat in self._chats.values())
