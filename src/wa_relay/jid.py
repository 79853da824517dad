"""
WhatsApp JID helpers.

A JID looks like ``<user>[:<device>]@<server>``; individual chats live on
``s.whatsapp.net`` and groups on ``g.us``.
"""

from typing import Optional

USER_SERVER = "s.whatsapp.net"
LEGACY_USER_SERVER = "c.us"
GROUP_SERVER = "g.us"


def split_jid(jid: str) -> tuple[str, Optional[str], str]:
    """Return (user, device, server). Missing server yields an empty string."""
    user, _, server = jid.partition("@")
    user, _, device = user.partition(":")
    return user, device or None, server


def normalize_user_jid(jid: Optional[str]) -> str:
    if not jid:
        return ""
    user, _, server = split_jid(jid)
    if server == LEGACY_USER_SERVER:
        server = USER_SERVER
    return f"{user}@{server}" if server else user


def is_group(jid: Optional[str]) -> bool:
    return bool(jid) and split_jid(jid)[2] == GROUP_SERVER
