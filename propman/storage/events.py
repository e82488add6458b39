"""Event system for tracking store loads, reloads and updates."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Any

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of events a store publishes."""

    PROPERTIES_LOADED = auto()
    PROPERTIES_RELOADED = auto()
    RELOAD_FAILED = auto()
    PROPERTIES_UPDATED = auto()
    STORE_CLOSED = auto()


@dataclass
class Event:
    """An event that occurred in a store."""

    type: EventType
    timestamp: datetime
    data: dict[str, Any]

    @property
    def source(self) -> str | None:
        """Description of the backing source."""
        return self.data.get("source")

    @property
    def changed_keys(self) -> list[str]:
        """Keys added, removed or modified by a reload or update."""
        return self.data.get("changed_keys", [])

    @property
    def values(self) -> dict[str, str]:
        """Values of the changed keys as of this event; removed keys are absent."""
        return self.data.get("values", {})

    @property
    def error(self) -> BaseException | None:
        """Exception carried by a failure event."""
        return self.data.get("error")


class EventBus:
    """Simple event bus for publishing and subscribing to events.

    Stores publish from caller threads and from scheduler threads, so
    subscription and history are guarded by a lock. Handlers run on the
    publishing thread, outside the lock.
    """

    def __init__(self, history_limit: int = 1000):
        self._subscribers: dict[EventType, list[Callable[[Event], None]]] = {}
        self._history: list[Event] = []
        self._history_limit = history_limit
        self._lock = threading.Lock()

    def subscribe(
        self, event_type: EventType, handler: Callable[[Event], None]
    ) -> None:
        """Subscribe to events of a specific type."""
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)

    def unsubscribe(
        self, event_type: EventType, handler: Callable[[Event], None]
    ) -> None:
        """Unsubscribe from events."""
        with self._lock:
            if event_type in self._subscribers:
                self._subscribers[event_type].remove(handler)

    def publish(self, event: Event) -> None:
        """Publish an event to all subscribers."""
        with self._lock:
            self._history.append(event)
            if len(self._history) > self._history_limit:
                self._history = self._history[-self._history_limit :]
            handlers = list(self._subscribers.get(event.type, []))

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                # Subscriber errors must not break the store operation
                logger.exception(f"Event handler failed for {event.type.name}")

    def get_history(
        self, event_type: EventType | None = None, limit: int = 100
    ) -> list[Event]:
        """Get event history."""
        with self._lock:
            history = list(self._history)

        if event_type:
            history = [e for e in history if e.type == event_type]

        return history[-limit:]

    def clear_history(self) -> None:
        """Clear event history."""
        with self._lock:
            self._history.clear()


class EventPublisher:
    """Mixin for classes that publish events."""

    def __init__(self, event_bus: EventBus | None):
        self.event_bus = event_bus

    def _publish_event(self, event_type: EventType, **data) -> None:
        """Publish an event if a bus is attached."""
        if self.event_bus is None:
            return
        event = Event(type=event_type, timestamp=datetime.now(), data=data)
        self.event_bus.publish(event)
