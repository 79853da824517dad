"""
Transport base class, the boundary to the messaging network.

Concrete transports deliver gateway events through ``dispatch()`` and
answer the gateway's lookups through the ``get_message`` / ``get_keys``
hooks installed by their owners.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from wa_relay.models.session import Session

EventHandler = Callable[[Any], Union[Awaitable[None], None]]
MessageLookup = Callable[[dict[str, Any]], Optional[dict[str, Any]]]
KeyLookup = Callable[[str, Iterable[str]], dict[str, Any]]


class Transport(ABC):
    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self.get_message: Optional[MessageLookup] = None
        self.get_keys: Optional[KeyLookup] = None

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Add an event handler. Returns a cleanup function."""
        self._handlers.setdefault(event, []).append(handler)

        def remove() -> None:
            try:
                self._handlers[event].remove(handler)
            except (KeyError, ValueError):
                pass
        return remove

    async def dispatch(self, event: str, payload: Any) -> None:
        """Run the handlers for ``event`` one after another, in registration order."""
        for handler in list(self._handlers.get(event, ())):
            result = handler(payload)
            if inspect.isawaitable(result):
                await result

    def lookup_message(self, key: dict[str, Any]) -> Optional[dict[str, Any]]:
        return self.get_message(key) if self.get_message else None

    def lookup_keys(self, key_type: str, ids: Iterable[str]) -> dict[str, Any]:
        return self.get_keys(key_type, ids) if self.get_keys else {}

    @property
    @abstractmethod
    def connected(self) -> bool: ...

    @abstractmethod
    async def connect(self, session: Session) -> None: ...

    @abstractmethod
    async def send_message(
        self, chat_id: str, content: dict[str, Any], quoted: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]: ...

    @abstractmethod
    async def request_pairing_code(self, identifier: str) -> str: ...

    @abstractmethod
    async def disconnect(self) -> None: ...
