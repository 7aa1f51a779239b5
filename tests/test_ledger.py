"""
Tests for the stat ledger.

Every write lands in [0, 100] and changes are announced on the bus.
"""

import pytest

from nomenklatura.state import EventBus, EventType, Faction, StatBlock, StatLedger, StatName


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def ledger(bus):
    return StatLedger(StatBlock(), bus, lambda: 5)


class TestClamping:
    """Writes are clamped to the stat bounds."""

    @pytest.mark.parametrize("stat", list(StatName))
    def test_large_positive_delta_clamps_to_100(self, ledger, stat):
        ledger.apply(stat, 500)
        assert ledger.get(stat) == 100

    @pytest.mark.parametrize("stat", list(StatName))
    def test_large_negative_delta_clamps_to_0(self, ledger, stat):
        ledger.apply(stat, -500)
        assert ledger.get(stat) == 0

    def test_set_clamps_absolute_value(self, ledger):
        change = ledger.set(StatName.TREASURY, 140)
        assert change.after == 100
        assert ledger[StatName.TREASURY] == 100

    def test_change_reports_applied_delta(self, ledger):
        ledger.set(StatName.STABILITY, 95)
        change = ledger.apply(StatName.STABILITY, 10)
        assert change.before == 95
        assert change.after == 100
        assert change.delta == 5


class TestBundles:
    """apply_many applies every non-zero delta."""

    def test_apply_many_skips_zero(self, ledger):
        changes = ledger.apply_many({
            StatName.STANDING: 5,
            StatName.NETWORK: 0,
            StatName.REPUTATION_CUNNING: -3,
        })
        assert [c.stat for c in changes] == [StatName.STANDING, StatName.REPUTATION_CUNNING]
        assert ledger[StatName.STANDING] == 55
        assert ledger[StatName.REPUTATION_CUNNING] == 47

    def test_snapshot_is_plain_dict(self, ledger):
        snapshot = ledger.snapshot()
        assert snapshot["rival_threat"] == 20
        assert snapshot["network"] == 20


class TestEvents:
    """Stat changes are published on the bus."""

    def test_change_emits_event_with_turn(self, ledger, bus):
        ledger.apply(StatName.ELITE_LOYALTY, -10)
        events = bus.get_history(EventType.STAT_CHANGED)
        assert len(events) == 1
        assert events[0].turn == 5
        assert events[0].data == {"stat": "elite_loyalty", "before": 50, "after": 40}

    def test_no_event_when_value_unchanged(self, ledger, bus):
        ledger.set(StatName.STABILITY, 100)
        bus.clear()
        ledger.apply(StatName.STABILITY, 10)
        assert bus.get_history(EventType.STAT_CHANGED)[-1].data["after"] == 100
        assert len(bus.get_history(EventType.STAT_CHANGED)) == 1


class TestFactionStanding:
    """Per-faction standing shares the stat bounds."""

    def test_factions_start_neutral(self, ledger):
        assert all(ledger.standing(faction) == 50 for faction in Faction)

    def test_shift_clamps_and_emits(self, ledger, bus):
        change = ledger.shift_standing(Faction.PRINCELINGS, 70)
        assert change.after == 100
        assert change.delta == 50
        events = bus.get_history(EventType.FACTION_STANDING_CHANGED)
        assert events[-1].data == {"faction": "princelings", "before": 50, "after": 100}

    def test_shift_standings_skips_zero(self, bus):
        standings = {Faction.OLD_GUARD: 20}
        ledger = StatLedger(StatBlock(), bus, factions=standings)
        changes = ledger.shift_standings({Faction.OLD_GUARD: -30, Faction.REFORMISTS: 0})
        assert [c.faction for c in changes] == [Faction.OLD_GUARD]
        assert standings[Faction.OLD_GUARD] == 0
