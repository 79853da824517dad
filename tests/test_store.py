"""Message store lookups used for retry resends."""

import pytest

from conftest import FakeTransport, text_event
from wa_relay.jid import is_group, normalize_user_jid, split_jid
from wa_relay.models.events import GatewayEvent
from wa_relay.models.message import WAMessage
from wa_relay.store import MessageStore


def wa_message(jid, msg_id, text="hi"):
    return WAMessage.model_validate({"key": {"remoteJid": jid, "id": msg_id}, "message": {"conversation": text}})


class TestJid:
    def test_split(self):
        assert split_jid("628123:12@s.whatsapp.net") == ("628123", "12", "s.whatsapp.net")
        assert split_jid("628123") == ("628123", None, "")

    def test_normalize(self):
        assert normalize_user_jid("628123:3@s.whatsapp.net") == "628123@s.whatsapp.net"
        assert normalize_user_jid("628123@c.us") == "628123@s.whatsapp.net"
        assert normalize_user_jid(None) == ""

    def test_is_group(self):
        assert is_group("120363@g.us")
        assert not is_group("628123@s.whatsapp.net")
        assert not is_group(None)


@pytest.mark.asyncio
async def test_bound_store_answers_lookups():
    store = MessageStore()
    transport = FakeTransport()
    store.bind(transport)

    await transport.dispatch(GatewayEvent.MESSAGES_UPSERT, text_event("hello", msg_id="M1"))

    assert len(store) == 1
    assert transport.lookup_message({"remoteJid": "111@s.whatsapp.net", "id": "M1"}) == {"conversation": "hello"}


def test_unknown_message_is_none():
    store = MessageStore()
    store.add(wa_message("111@s.whatsapp.net", "M1"))

    assert store.get_message({"remoteJid": "111@s.whatsapp.net", "id": "nope"}) is None
    assert store.get_message({"remoteJid": "999@s.whatsapp.net", "id": "M1"}) is None
    assert store.get_message({}) is None


def test_lookup_ignores_device_suffix():
    store = MessageStore()
    store.add(wa_message("111:4@s.whatsapp.net", "M1", "hey"))

    assert store.load_message("111@s.whatsapp.net", "M1").text == "hey"


def test_oldest_messages_are_evicted():
    store = MessageStore(max_per_chat=2)
    for i in range(3):
        store.add(wa_message("111@s.whatsapp.net", f"M{i}"))
    store.add(wa_message("222@s.whatsapp.net", "M0"))

    assert store.load_message("111@s.whatsapp.net", "M0") is None
    assert store.load_message("111@s.whatsapp.net", "M2") is not None
    assert len(store) == 3


def test_messages_without_id_are_skipped():
    store = MessageStore()
    store.add(WAMessage.model_validate({"key": {"remoteJid": "111@s.whatsapp.net"}}))
    assert len(store) == 0


def test_least_recently_active_chats_are_evicted():
    store = MessageStore(max_chats=2)
    store.add(wa_message("111@s.whatsapp.net", "A"))
    store.add(wa_message("222@s.whatsapp.net", "B"))
    store.add(wa_message("111@s.whatsapp.net", "C"))
    store.add(wa_message("333@s.whatsapp.net", "D"))

    assert store.load_message("222@s.whatsapp.net", "B") is None
    assert store.load_message("111@s.whatsapp.net", "A") is not None
    assert store.load_message("333@s.whatsapp.net", "D") is not None
    assert len(store) == 3
