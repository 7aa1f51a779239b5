"""State management for Nomenklatura games."""

from .schema import (
    GameState,
    PlayerState,
    StatBlock,
    StatName,
    Character,
    CharacterStatus,
    Personality,
    Faction,
    PositionTrack,
    PolicySlot,
    PolicyOption,
    PolicyEffects,
    PreconditionNotMet,
    PreconditionCode,
)
from .event_bus import EventBus, EventType, GameEvent
from .ledger import StatLedger
from .registry import CharacterRegistry, InvalidTransition
from .feeds import (
    JournalEntry,
    MemoryJournal,
    MemoryNotificationSink,
    NullFlavorSource,
    attach_journal,
    attach_notifications,
)
from .manager import GameManager

__all__ = [
    # Schema
    "GameState",
    "PlayerState",
    "StatBlock",
    "StatName",
    "Character",
    "CharacterStatus",
    "Personality",
    "Faction",
    "PositionTrack",
    "PolicySlot",
    "PolicyOption",
    "PolicyEffects",
    "PreconditionNotMet",
    "PreconditionCode",
    # Services
    "EventBus",
    "EventType",
    "GameEvent",
    "StatLedger",
    "CharacterRegistry",
    "InvalidTransition",
    "GameManager",
    # Feeds
    "JournalEntry",
    "MemoryJournal",
    "MemoryNotificationSink",
    "NullFlavorSource",
    "attach_journal",
    "attach_notifications",
]
