"""
wa-relay error types.
"""

from typing import Any, Optional


class RelayError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class PairingError(RelayError):
    def __init__(self, message: str, code: str = "pairing_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class InvalidIdentifierError(PairingError):
    def __init__(self, message: str, code: str = "invalid_identifier", details: Optional[dict[str, Any]] = None):
        super().__init__(message, code, details)


class TransportError(RelayError):
    def __init__(self, message: str, code: str = "transport_error"):
        super().__init__(code, message)


class CompletionError(RelayError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__("completion_error", message, {"status": status} if status is not None else None)
        self.status = status


class ConfigError(RelayError):
    def __init__(self, message: str):
        super().__init__("config_error", message)
