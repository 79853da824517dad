"""wa-relay configuration management."""

from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from wa_relay.completion import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_SYSTEM_PROMPT
from wa_relay.pairing import DEFAULT_COUNTRY_PREFIX


class Settings(BaseSettings):
    """Settings loaded from environment variables (``WA_RELAY_*``) or a .env file."""

    # Completion service
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("WA_RELAY_API_KEY", "GROQ_API_KEY"),
        description="Completion service API key",
    )
    completion_base_url: str = Field(default=DEFAULT_BASE_URL)
    model: str = Field(default=DEFAULT_MODEL)
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    temperature: float = Field(default=0.5)
    max_tokens: int = Field(default=1024)
    top_p: float = Field(default=1.0)
    completion_timeout: float = Field(default=30.0, description="Seconds per completion request")

    # Relay policy
    direct_only: bool = Field(default=False, description="Ignore group chats")
    process_batch: bool = Field(default=False, description="Relay every message of a batch, not only the first")
    fallback_reply: Optional[str] = Field(default=None, description="Sent when the completion fails")

    # Transport session
    session_dir: Path = Field(default=Path("session"))
    gateway_url: str = Field(default="http://127.0.0.1:8765")
    phone_number: Optional[str] = Field(default=None, description="Pairing phone number")
    qr: bool = Field(default=False, description="Log in by QR instead of pairing code")
    country_prefix: str = Field(default=DEFAULT_COUNTRY_PREFIX)
    pairing_delay: float = Field(default=5.0)
    open_timeout: float = Field(default=120.0)
    message_store_size: int = Field(default=1000, description="Messages kept per chat for resends")
    message_store_chats: int = Field(default=1000, description="Chats kept in the message store")
    drain_timeout: float = Field(default=10.0, description="Seconds to finish in-flight replies on shutdown")

    # Restart policy
    restart_initial_delay: float = Field(default=1.0)
    restart_max_delay: float = Field(default=60.0)
    restart_multiplier: float = Field(default=2.0)
    restart_max_attempts: int = Field(default=10, description="0 means unlimited")

    log_level: str = Field(default="INFO")

    model_config = {"env_prefix": "WA_RELAY_", "env_file": ".env", "extra": "ignore", "populate_by_name": True}


def load_settings(**overrides: Any) -> Settings:
    """Load settings from environment; ``None`` overrides are ignored."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})
