"""
Event Emitter

Small asyncio-friendly publish/subscribe helper shared by the transport
session, the connection manager and the client facade. Handlers may be
plain callables or coroutine functions; they run in registration order.
"""

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class EventEmitter:
    """
    Registry of handlers keyed by event name.

    A handler that raises is logged and does not stop the remaining
    handlers.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}

    def on(self, event: str, handler: Handler) -> None:
        """Register a handler for an event."""
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Handler) -> None:
        """Remove a previously registered handler, if present."""
        handlers = self._handlers.get(event)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event]

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        """Drop every handler, or only the handlers of one event."""
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    async def emit(self, event: str, *args: Any) -> int:
        """
        Call every handler registered for an event.

        Args:
            event: Event name
            *args: Positional arguments passed to each handler

        Returns:
            Number of handlers that were called
        """
        # Copy so handlers may unsubscribe while being called
        handlers = list(self._handlers.get(event, []))
        for handler in handlers:
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for '%s' event failed", event)
        return len(handlers)
