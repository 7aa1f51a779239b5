"""
Turn tracker.

Owns the per-turn budget: action points and the interaction counter.
Both reset exactly once per advance_turn(); operations within a turn are
totally ordered by submission, and the counter only bounds their number.
"""

from __future__ import annotations

from ..config import BalanceConfig
from ..errors import TurnBudgetError
from ..state.event_bus import EventBus, EventType
from ..state.ledger import StatLedger
from ..state.schema import GameState, StatName


class TurnTracker:
    """Per-turn action points and interaction budget."""

    def __init__(self, state: GameState, ledger: StatLedger, bus: EventBus, config: BalanceConfig):
        self._state = state
        self._ledger = ledger
        self._bus = bus
        self._config = config

    @property
    def turn_number(self) -> int:
        return self._state.turn_number

    @property
    def action_points(self) -> int:
        return self._state.player.action_points

    @property
    def remaining_interactions(self) -> int:
        return max(0, self._config.max_interactions_per_turn - self._state.player.interactions_used)

    @property
    def can_interact(self) -> bool:
        return self.remaining_interactions > 0

    def can_afford(self, cost: int) -> bool:
        return self._state.player.action_points >= cost

    def spend(self, cost: int) -> None:
        """Consume action points and one interaction."""
        player = self._state.player
        if not self.can_interact:
            raise TurnBudgetError("No interactions remaining this turn")
        if player.action_points < cost:
            raise TurnBudgetError(f"Need {cost} AP, have {player.action_points}")
        player.action_points -= cost
        player.interactions_used += 1

    def advance_turn(self) -> int:
        """Close the current turn and open the next. Returns the new turn number."""
        self._state.turn_number += 1
        player = self._state.player
        player.action_points = self._config.action_points_per_turn
        player.interactions_used = 0
        player.power_consolidation = self.calculate_power_consolidation()
        self._bus.emit(
            EventType.TURN_ADVANCED,
            turn=self._state.turn_number,
            power_consolidation=player.power_consolidation,
        )
        return self._state.turn_number

    def calculate_power_consolidation(self) -> int:
        """
        How firmly the player holds power, 0-100.

        Standing, elite backing and network are the base; rank, modified laws,
        a warm patron and a loyal army add on top.
        """
        ledger = self._ledger
        player = self._state.player

        score = (
            ledger[StatName.STANDING] // 4
            + ledger[StatName.ELITE_LOYALTY] // 5
            + ledger[StatName.NETWORK] // 5
        )

        if player.position_index >= 7:
            score += 20
        elif player.position_index >= 6:
            score += 10
        elif player.position_index >= 4:
            score += 5

        score += player.laws_modified_count * 3

        if ledger[StatName.PATRON_FAVOR] > 70:
            score += 5
        if ledger[StatName.MILITARY_LOYALTY] > 70:
            score += 10

        return max(0, min(100, score))
