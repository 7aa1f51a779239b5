"""
Tests for collaborator feeds and event ordering around operations.
"""

from nomenklatura.state import (
    CharacterStatus,
    EventType,
    JournalEntry,
    MemoryJournal,
    MemoryNotificationSink,
    NullFlavorSource,
    attach_journal,
    attach_notifications,
)
from nomenklatura.state.event_bus import EventBus
from nomenklatura.state.schema import DenounceMethod

from conftest import RiggedDice, make_manager, make_official


class TestSinks:
    """Default in-memory collaborators."""

    def test_notifications_forwarded(self):
        bus = EventBus()
        sink = MemoryNotificationSink()
        attach_notifications(bus, sink)
        bus.emit(EventType.CHARACTER_STATUS_CHANGED, turn=6, character_name="Volkov", status_text="Exiled")
        assert sink.notifications == [("Volkov", "Exiled", 6)]

    def test_journal_filters_by_target(self):
        bus = EventBus()
        journal = MemoryJournal()
        attach_journal(bus, journal)
        for target in ("Volkov", "Orlova", "Volkov"):
            entry = JournalEntry(1, "Comrade", target, "investigate", "observe", "success", "...")
            bus.emit(EventType.INTERACTION_RESOLVED, turn=1, entry=entry)
        assert len(journal.for_target("Volkov")) == 2

    def test_null_flavor(self):
        flavor = NullFlavorSource()
        assert flavor.interaction_flavor("cultivate", "gift", True, "Volkov") is None
        assert flavor.secrets("Volkov", "observe", 10) == []


class TestOperationOrdering:
    """Observers only ever see committed state."""

    def test_status_observer_sees_completed_denunciation(self):
        game = make_manager(RiggedDice(), slots=False)
        game.state.player.position_index = 4
        target = game.add_character(make_official(id="target", evidence_level=80))
        seen = []

        def observe(event):
            seen.append((target.evidence_level, target.last_denounced_turn, target.denouncement_count))

        game.bus.on(EventType.CHARACTER_STATUS_CHANGED, observe)
        game.interactions.denounce(target, DenounceMethod.ANONYMOUS)

        assert target.status == CharacterStatus.UNDER_INVESTIGATION
        assert seen == [(0, 1, 1)]

    def test_journal_follows_status_change(self):
        journal = MemoryJournal()
        sink = MemoryNotificationSink()
        game = make_manager(RiggedDice(), notifications=sink, journal=journal, slots=False)
        game.state.player.position_index = 4
        target = game.add_character(make_official(id="target", evidence_level=80))

        game.interactions.denounce(target, DenounceMethod.ANONYMOUS)

        kinds = [e.type for e in game.bus.get_history()
                 if e.type in (EventType.CHARACTER_STATUS_CHANGED, EventType.INTERACTION_RESOLVED)]
        assert kinds == [EventType.CHARACTER_STATUS_CHANGED, EventType.INTERACTION_RESOLVED]
        assert journal.entries[-1].outcome == "success"
        assert sink.notifications == [(target.name, "Under Investigation", 1)]
