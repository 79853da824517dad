"""
Connection lifecycle models: connection state, disconnect reasons and the
disconnect transition table.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> Optional["ConnectionState"]:
        if value is None:
            return None
        if value == "close":
            return cls.CLOSED
        try:
            return cls(value)
        except ValueError:
            return None


class DisconnectReason(str, Enum):
    BAD_SESSION = "bad-session"
    CONNECTION_CLOSED = "connection-closed"
    CONNECTION_LOST = "connection-lost"
    CONNECTION_REPLACED = "connection-replaced"
    RESTART_REQUIRED = "restart-required"
    LOGGED_OUT = "logged-out"
    MULTIDEVICE_MISMATCH = "multidevice-mismatch"
    UNKNOWN = "unknown"

    @classmethod
    def from_status_code(cls, status_code: Optional[int]) -> "DisconnectReason":
        return STATUS_CODES.get(status_code, cls.UNKNOWN) if status_code is not None else cls.UNKNOWN


# 408 is shared by "connection lost" and "timed out" on the wire.
STATUS_CODES: dict[int, DisconnectReason] = {
    500: DisconnectReason.BAD_SESSION,
    428: DisconnectReason.CONNECTION_CLOSED,
    408: DisconnectReason.CONNECTION_LOST,
    440: DisconnectReason.CONNECTION_REPLACED,
    515: DisconnectReason.RESTART_REQUIRED,
    401: DisconnectReason.LOGGED_OUT,
    411: DisconnectReason.MULTIDEVICE_MISMATCH,
}

# A close that carries no status code is treated as an internal error.
UNWRAPPED_ERROR_STATUS = 500


class DisconnectAction(str, Enum):
    RESTART = "restart"
    LOGOUT = "logout"
    STOP = "stop"


TRANSITIONS: dict[DisconnectReason, DisconnectAction] = {
    DisconnectReason.BAD_SESSION: DisconnectAction.RESTART,
    DisconnectReason.CONNECTION_CLOSED: DisconnectAction.RESTART,
    DisconnectReason.CONNECTION_LOST: DisconnectAction.RESTART,
    DisconnectReason.CONNECTION_REPLACED: DisconnectAction.RESTART,
    DisconnectReason.RESTART_REQUIRED: DisconnectAction.RESTART,
    DisconnectReason.LOGGED_OUT: DisconnectAction.LOGOUT,
    DisconnectReason.MULTIDEVICE_MISMATCH: DisconnectAction.STOP,
    DisconnectReason.UNKNOWN: DisconnectAction.STOP,
}


class LastDisconnect(BaseModel):
    error: Optional[dict[str, Any]] = None
    date: Optional[Any] = None

    @property
    def status_code(self) -> int:
        """Close status; errors without a usable code count as 500."""
        if not self.error:
            return UNWRAPPED_ERROR_STATUS
        output = self.error.get("output")
        code = output.get("statusCode") if isinstance(output, dict) else None
        if code is None:
            code = self.error.get("statusCode")
        try:
            return int(code) if code is not None else UNWRAPPED_ERROR_STATUS
        except (TypeError, ValueError):
            return UNWRAPPED_ERROR_STATUS


class ConnectionUpdate(BaseModel):
    """connection.update payload"""
    connection: Optional[str] = None
    last_disconnect: Optional[LastDisconnect] = Field(default=None, alias="lastDisconnect")
    qr: Optional[str] = None

    model_config = {"populate_by_name": True}

    @property
    def state(self) -> Optional[ConnectionState]:
        return ConnectionState.from_wire(self.connection)

    @property
    def status_code(self) -> Optional[int]:
        if self.last_disconnect is not None:
            return self.last_disconnect.status_code
        return UNWRAPPED_ERROR_STATUS if self.state is ConnectionState.CLOSED else None
