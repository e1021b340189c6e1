"""
Event bus for CamSpin sessions.

Sessions publish what happens locally (roster changes, phase changes,
landings, store errors) so a UI layer can react without reaching into
session internals. Delivery is synchronous: every handler has run by
the time emit() returns, which keeps frame ticks and store callbacks
in step with what listeners see.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional
from enum import Enum, auto
import logging
import time

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Built-in event types."""
    # Room events
    ROSTER_CHANGED = auto()
    PHASE_CHANGED = auto()
    ROOM_CLOSED = auto()

    # Spin events
    SPIN_STARTED = auto()
    WINNER_SELECTED = auto()
    SPIN_LANDED = auto()

    # Store events
    STORE_ERROR = auto()

    # Camera events
    PHOTO_CAPTURED = auto()
    PHOTO_ERROR = auto()

    # Frame tick
    TICK = auto()


@dataclass
class Event:
    """
    Event data container.

    Attributes:
        type: Event type (EventType enum or custom string)
        data: Event payload
        source: Session that emitted the event ("host", "spectator", "camera")
        timestamp: When event was created
    """
    type: EventType | str
    data: dict[str, Any] = field(default_factory=dict)
    source: str = "system"
    timestamp: float = field(default_factory=time.time)


Handler = Callable[[Event], None]


class EventBus:
    """Per-session fan-out of local events to UI handlers."""

    def __init__(self) -> None:
        # None holds the handlers that want every event
        self._handlers: dict[Optional[EventType | str], list[Handler]] = {}

    def subscribe(self, event_type: EventType | str, handler: Handler) -> Callable[[], None]:
        """
        Subscribe to an event type.

        Returns:
            Unsubscribe function, safe to call more than once
        """
        return self._add(event_type, handler)

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        """Subscribe to every event. Returns an unsubscribe function."""
        return self._add(None, handler)

    def _add(self, key: Optional[EventType | str], handler: Handler) -> Callable[[], None]:
        self._handlers.setdefault(key, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(key, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event: Event) -> None:
        """Deliver an event to its handlers, then to catch-all handlers.

        A failing handler is logged and does not stop delivery to the rest.
        """
        # Copy so handlers may unsubscribe while being called
        handlers = list(self._handlers.get(event.type, ())) + list(self._handlers.get(None, ()))
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in {event.type} handler from {event.source}: {e}")
