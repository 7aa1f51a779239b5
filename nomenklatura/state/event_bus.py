"""
Event bus for Nomenklatura state changes.

Provides decoupled communication between the rule engine and its collaborators
(notification feed, journal, presentation). Each game owns its own bus; there
is no process-wide instance.

Usage:
    bus = EventBus()
    bus.on(EventType.CHARACTER_STATUS_CHANGED, my_handler)

    # Emit (in the registry when a status changes)
    bus.emit(EventType.CHARACTER_STATUS_CHANGED, character_name="Volkov", status_text="Exiled")

    # Hold dispatch until a compound operation has committed
    with bus.deferred():
        ledger.apply(StatName.STANDING, -5)
        registry.transition(character, CharacterStatus.DETAINED, turn=4)
"""

from __future__ import annotations

import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Game events that can be published."""

    # Ledger events
    STAT_CHANGED = "stat.changed"
    FACTION_STANDING_CHANGED = "faction.standing_changed"

    # Character events
    CHARACTER_ADDED = "character.added"
    CHARACTER_STATUS_CHANGED = "character.status_changed"
    CHARACTER_DISPOSITION_CHANGED = "character.disposition_changed"
    CHARACTER_REVEALED = "character.revealed"

    # Interaction events
    INTERACTION_RESOLVED = "interaction.resolved"

    # Policy events
    POLICY_PROPOSED = "policy.proposed"
    POLICY_DECREED = "policy.decreed"
    POLICY_RESOLVED = "policy.resolved"

    # Turn events
    TURN_ADVANCED = "turn.advanced"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        turn: Turn number when the event occurred
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    turn: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


# Type alias for event handlers
EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners are called on emit(), except while dispatch is deferred or
    already in progress. In those cases the event is queued and delivered
    once the outermost dispatch or deferred block finishes, so a handler
    never observes a half-applied operation and a handler that triggers
    further events cannot recurse into the bus.
    """

    def __init__(self, history_limit: int = 100):
        self._listeners: dict[EventType, list[EventHandler]] = {}
        self._history: list[GameEvent] = []
        self._history_limit = history_limit
        self._pending: deque[GameEvent] = deque()
        self._defer_depth = 0
        self._dispatching = False

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: The type of event to listen for
            handler: Callback function that receives GameEvent
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        if handler not in self._listeners[event_type]:
            self._listeners[event_type].append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe a handler from an event type."""
        if event_type in self._listeners and handler in self._listeners[event_type]:
            self._listeners[event_type].remove(handler)

    def emit(self, event_type: EventType, turn: int = 0, **data) -> GameEvent:
        """
        Emit an event to all subscribers.

        Args:
            event_type: The type of event
            turn: Turn number (optional)
            **data: Event-specific data

        Returns:
            The emitted GameEvent (for chaining/testing)
        """
        event = GameEvent(type=event_type, data=data, turn=turn)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit :]

        self._pending.append(event)
        if self._defer_depth == 0 and not self._dispatching:
            self._drain()

        return event

    @contextmanager
    def deferred(self) -> Iterator[None]:
        """Queue events emitted inside the block; deliver them on exit."""
        self._defer_depth += 1
        try:
            yield
        finally:
            self._defer_depth -= 1
            if self._defer_depth == 0 and not self._dispatching:
                self._drain()

    @property
    def is_deferring(self) -> bool:
        return self._defer_depth > 0

    def _drain(self) -> None:
        self._dispatching = True
        try:
            while self._pending:
                event = self._pending.popleft()
                for handler in list(self._listeners.get(event.type, [])):
                    try:
                        handler(event)
                    except Exception:
                        # One bad listener shouldn't break others
                        logger.exception(f"Error in handler for {event.type.value}")
        finally:
            self._dispatching = False

    def clear(self) -> None:
        """Clear all listeners and queued events. Useful for testing."""
        self._listeners.clear()
        self._pending.clear()

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """
        Get recent event history.

        Args:
            event_type: Filter by type, or None for all events

        Returns:
            List of recent events
        """
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        """Get number of listeners for an event type."""
        return len(self._listeners.get(event_type, []))
