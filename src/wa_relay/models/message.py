"""
Models for messages.upsert payloads and the relay's in/out messages.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class MessageKey(BaseModel):
    remote_jid: str = Field(alias="remoteJid")
    from_me: bool = Field(default=False, alias="fromMe")
    id: Optional[str] = None
    participant: Optional[str] = None

    model_config = {"populate_by_name": True, "extra": "allow"}


class WAMessage(BaseModel):
    """A message as delivered by the gateway (WebMessageInfo shape)."""
    key: MessageKey
    message: Optional[dict[str, Any]] = None
    push_name: Optional[str] = Field(default=None, alias="pushName")
    message_timestamp: Optional[Any] = Field(default=None, alias="messageTimestamp")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @property
    def text(self) -> Optional[str]:
        if not self.message:
            return None
        text = self.message.get("conversation")
        if not text:
            extended = self.message.get("extendedTextMessage")
            if isinstance(extended, dict):
                text = extended.get("text")
        return text or None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class MessagesUpsert(BaseModel):
    """messages.upsert payload"""
    messages: list[WAMessage] = Field(default_factory=list)
    type: Optional[str] = None


class InboundMessage(BaseModel):
    chat_id: str
    sender: str
    from_me: bool = False
    text: Optional[str] = None
    message_id: Optional[str] = None
    push_name: Optional[str] = None
    quoted: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_wire(cls, msg: WAMessage) -> "InboundMessage":
        return cls(
            chat_id=msg.key.remote_jid,
            sender=msg.key.participant or msg.key.remote_jid,
            from_me=msg.key.from_me,
            text=msg.text,
            message_id=msg.key.id,
            push_name=msg.push_name,
            quoted=msg.to_wire(),
        )


class OutboundReply(BaseModel):
    chat_id: str
    text: str
    quoted: Optional[dict[str, Any]] = None

    @property
    def content(self) -> dict[str, Any]:
        return {"text": self.text}
