"""
Notification collaborators for the cart engine.

The cart calls ``notify(event, payload)`` synchronously at fixed points
(see ``shopcart.constants.EVENT_*``) and never looks at what the notifier did.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, Any], None]


class Notifier(Protocol):
    def notify(self, event: str, payload: Any = None) -> None: ...


class NullNotifier:
    def notify(self, event: str, payload: Any = None) -> None:
        return None


class LoggingNotifier:
    def notify(self, event: str, payload: Any = None) -> None:
        logger.debug("%s %r", event, payload)


class EventBus:
    """Routes cart notifications to subscribed handlers, in subscription order."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        self._global_handlers.append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        if event in self._handlers:
            self._handlers[event] = [h for h in self._handlers[event] if h != handler]

    def notify(self, event: str, payload: Optional[Any] = None) -> None:
        for handler in self._global_handlers + self._handlers.get(event, []):
            try:
                handler(event, payload)
            except Exception:
                # a failing listener must not break the cart operation
                logger.exception("handler %r failed on %s", handler, event)
