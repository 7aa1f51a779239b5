"""
Stat ledger.

Owns every bounded stat and the player's per-faction standing, and is the
only writer of them. All writes clamp to [0, 100] and are announced on the
event bus.
"""

from __future__ import annotations

from typing import Mapping

from .event_bus import EventBus, EventType
from .schema import Faction, FactionStandingChange, StatBlock, StatChange, StatName

STAT_MIN = 0
STAT_MAX = 100
NEUTRAL_STANDING = 50


def clamp_stat(value: int) -> int:
    return max(STAT_MIN, min(STAT_MAX, value))


class StatLedger:
    """Applies deltas to a StatBlock and to faction standings."""

    def __init__(
        self,
        stats: StatBlock,
        bus: EventBus,
        turn_source=None,
        factions: dict[Faction, int] | None = None,
    ):
        self._stats = stats
        self._bus = bus
        self._turn_source = turn_source or (lambda: 0)
        self._factions = factions if factions is not None else {f: NEUTRAL_STANDING for f in Faction}

    @property
    def stats(self) -> StatBlock:
        return self._stats

    def get(self, stat: StatName) -> int:
        return getattr(self._stats, stat.value)

    def __getitem__(self, stat: StatName) -> int:
        return self.get(stat)

    def set(self, stat: StatName, value: int) -> StatChange:
        """Write an absolute value (clamped)."""
        before = self.get(stat)
        after = clamp_stat(value)
        setattr(self._stats, stat.value, after)
        change = StatChange(stat=stat, before=before, after=after)
        if change.delta:
            self._bus.emit(
                EventType.STAT_CHANGED,
                turn=self._turn_source(),
                stat=stat.value,
                before=before,
                after=after,
            )
        return change

    def apply(self, stat: StatName, delta: int) -> StatChange:
        """Shift a stat by delta (clamped)."""
        return self.set(stat, self.get(stat) + delta)

    def apply_many(self, deltas: Mapping[StatName, int]) -> list[StatChange]:
        """Apply a bundle of deltas. Zero deltas are skipped."""
        return [self.apply(stat, delta) for stat, delta in deltas.items() if delta]

    # -------------------------------------------------------------------------
    # Faction standing
    # -------------------------------------------------------------------------

    def standing(self, faction: Faction) -> int:
        return self._factions.get(faction, NEUTRAL_STANDING)

    def shift_standing(self, faction: Faction, delta: int) -> FactionStandingChange:
        """Shift the player's standing with a faction (clamped)."""
        before = self.standing(faction)
        after = clamp_stat(before + delta)
        self._factions[faction] = after
        change = FactionStandingChange(faction=faction, before=before, after=after)
        if change.delta:
            self._bus.emit(
                EventType.FACTION_STANDING_CHANGED,
                turn=self._turn_source(),
                faction=faction.value,
                before=before,
                after=after,
            )
        return change

    def shift_standings(self, deltas: Mapping[Faction, int]) -> list[FactionStandingChange]:
        return [self.shift_standing(faction, delta) for faction, delta in deltas.items() if delta]

    def snapshot(self) -> dict[str, int]:
        return self._stats.model_dump()
