"""Sequential async publish/subscribe."""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

Listener = Callable[..., Union[Awaitable[Any], Any]]


class EventBus:
    """Publish/subscribe with ordered, one-at-a-time listener execution.

    Listeners for an event run in registration order and each is awaited
    before the next starts, so a later listener sees whatever an earlier one
    wrote into a shared payload. A listener that raises stops the remaining
    listeners for that dispatch only; the error is logged and the bus keeps
    working for later events.
    """

    def __init__(self, name: str = "bus", events: Optional[Iterable[str]] = None):
        """
        Args:
            name: Name used in log messages
            events: Allowed event names; any name is accepted when omitted
        """
        self.name = name
        self._events = frozenset(events) if events is not None else None
        self._listeners: Dict[str, List[Listener]] = {}

    def _check_event(self, event: str) -> None:
        if self._events is not None and event not in self._events:
            raise ValueError(f"Unknown event '{event}' for {self.name} (expected one of {sorted(self._events)})")

    def on(self, event: str, listener: Optional[Listener] = None):
        """Subscribe a listener. Without a listener, returns a decorator."""
        self._check_event(event)

        if listener is None:
            def decorator(func: Listener) -> Listener:
                self.on(event, func)
                return func
            return decorator

        self._listeners.setdefault(event, []).append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> bool:
        """Unsubscribe a listener. Returns False if it was not subscribed."""
        listeners = self._listeners.get(event, [])
        if listener not in listeners:
            return False
        listeners.remove(listener)
        return True

    def listeners(self, event: str) -> List[Listener]:
        return list(self._listeners.get(event, []))

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    async def emit(self, event: str, *args: Any) -> bool:
        """Run every listener of ``event`` in order.

        Returns:
            True if all listeners completed, False if one of them raised
        """
        self._check_event(event)

        # Listeners added while dispatching only see later events
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error(
                    f"[{self.name}] Listener {getattr(listener, '__qualname__', listener)!s} "
                    f"failed on '{event}', skipping remaining listeners",
                    exc_info=True,
                )
                return False
        return True
