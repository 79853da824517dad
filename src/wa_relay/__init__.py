"""
wa-relay — WhatsApp to language-model chat relay.

Answers incoming WhatsApp messages with a chat-completion model and keeps
the linked-device session alive.
"""

__version__ = "0.1.0"

from wa_relay.auth import CredentialStore
from wa_relay.bridge import Bridge, BridgeContext, build_bridge
from wa_relay.completion import CompletionClient, CompletionResult
from wa_relay.config import Settings, load_settings
from wa_relay.errors import (
    CompletionError,
    ConfigError,
    InvalidIdentifierError,
    PairingError,
    RelayError,
    TransportError,
)
from wa_relay.models.connection import ConnectionState, DisconnectAction, DisconnectReason
from wa_relay.relay import MessageRelay
from wa_relay.supervisor import ConnectionSupervisor, RestartPolicy

__all__ = [
    "Bridge",
    "BridgeContext",
    "build_bridge",
    "CompletionClient",
    "CompletionResult",
    "ConnectionState",
    "ConnectionSupervisor",
    "CredentialStore",
    "DisconnectAction",
    "DisconnectReason",
    "MessageRelay",
    "RestartPolicy",
    "Settings",
    "load_settings",
    "RelayError",
    "PairingError",
    "InvalidIdentifierError",
    "TransportError",
    "CompletionError",
    "ConfigError",
]
