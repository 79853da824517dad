"""
Persisted transport credentials.
"""

from typing import Any

from pydantic import BaseModel, Field


class Session(BaseModel):
    creds: dict[str, Any] = Field(default_factory=dict)

    @property
    def registered(self) -> bool:
        return bool(self.creds.get("registered"))

    @property
    def account_id(self) -> str:
        me = self.creds.get("me") or {}
        return me.get("id", "") if isinstance(me, dict) else ""

    def update(self, partial: dict[str, Any]) -> None:
        """Merge a creds.update payload into the credentials."""
        self.creds.update(partial)
