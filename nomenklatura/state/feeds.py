"""
Collaborator feeds.

The rule engine never renders or narrates. It hands three external
collaborators plain data:

- NotificationSink: (character_name, status_text, turn) on every status change
- JournalSink: a JournalEntry per resolved interaction
- FlavorSource: optional decorative strings, treated as opaque

attach_notifications / attach_journal wire a sink to a game's EventBus.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .event_bus import EventBus, EventType, GameEvent


@dataclass(frozen=True)
class JournalEntry:
    """One line of the player-facing history feed. Unformatted."""
    turn: int
    actor: str
    target: str
    category: str
    method: str
    outcome: str     # "success" / "failure"
    summary: str


class NotificationSink(Protocol):
    def notify_status_change(self, character_name: str, status_text: str, turn: int) -> None: ...


class JournalSink(Protocol):
    def record(self, entry: JournalEntry) -> None: ...


class FlavorSource(Protocol):
    def interaction_flavor(self, category: str, method: str, success: bool, character_name: str) -> str | None: ...

    def secrets(self, character_name: str, method: str, evidence_gained: int) -> list[str]: ...


# ─── Default implementations ──────────────────────────────────────────────


class MemoryNotificationSink:
    """Collects notifications in order. Used by tests and headless hosts."""

    def __init__(self):
        self.notifications: list[tuple[str, str, int]] = []

    def notify_status_change(self, character_name: str, status_text: str, turn: int) -> None:
        self.notifications.append((character_name, status_text, turn))


class MemoryJournal:
    """In-memory journal."""

    def __init__(self):
        self.entries: list[JournalEntry] = []

    def record(self, entry: JournalEntry) -> None:
        self.entries.append(entry)

    def for_target(self, name: str) -> list[JournalEntry]:
        return [e for e in self.entries if e.target == name]


class NullFlavorSource:
    """No flavor at all."""

    def interaction_flavor(self, category: str, method: str, success: bool, character_name: str) -> str | None:
        return None

    def secrets(self, character_name: str, method: str, evidence_gained: int) -> list[str]:
        return []


# ─── Bus wiring ───────────────────────────────────────────────────────────


def attach_notifications(bus: EventBus, sink: NotificationSink) -> None:
    """Forward status changes to a notification sink."""

    def _forward(event: GameEvent) -> None:
        sink.notify_status_change(
            event.data["character_name"],
            event.data["status_text"],
            event.turn,
        )

    bus.on(EventType.CHARACTER_STATUS_CHANGED, _forward)


def attach_journal(bus: EventBus, journal: JournalSink) -> None:
    """Forward resolved interactions to a journal."""

    def _forward(event: GameEvent) -> None:
        entry = event.data.get("entry")
        if entry is not None:
            journal.record(entry)

    bus.on(EventType.INTERACTION_RESOLVED, _forward)
