"""
Policy governance.

Institutional policy slots each hold exactly one current option. The player
changes them one of two ways:

- Propose: the option is queued on the slot and put to the committee when
  the host resolves the turn (resolve_pending).
- Decree: the option takes effect at once, its stat effects hit the ledger
  immediately, and the elite remember it. Only available while some
  current policy enables decrees, and never for institutional slots.
"""

from __future__ import annotations

import logging
from collections import Counter

from ..config import BalanceConfig
from ..errors import PolicyInvariantError
from ..state.event_bus import EventBus, EventType
from ..state.ledger import StatLedger
from ..state.registry import CharacterRegistry
from ..state.schema import (
    Character,
    Faction,
    FactionStandingChange,
    GameState,
    LawCategory,
    PolicyChangeRecord,
    PolicyChangeResult,
    PolicyChangeValidation,
    PolicyOption,
    PolicySlot,
    StatChange,
    StatName,
    Vote,
    VoteTally,
)
from ..tools.dice import Dice

logger = logging.getLogger(__name__)

PLAYER_ID = "player"

# Vote weights
BENEFICIARY_WEIGHT = 30
LOSER_WEIGHT = -30
LOYAL_WEIGHT = 10
AMBITIOUS_WEIGHT = -10
VOTE_NOISE = 10
VOTE_THRESHOLD = 15

# Decree consequences
ELITE_RESENTMENT = -5
INTERNATIONAL_PRESSURE = -10
FACTION_BACKLASH = -5
UNREST = -5


class PolicyGovernanceSystem:
    """Validates and applies changes to policy slots."""

    def __init__(
        self,
        state: GameState,
        ledger: StatLedger,
        registry: CharacterRegistry,
        bus: EventBus,
        dice: Dice,
        config: BalanceConfig,
    ):
        self._state = state
        self._ledger = ledger
        self._registry = registry
        self._bus = bus
        self._dice = dice
        self._config = config

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def slots(self) -> list[PolicySlot]:
        return self._state.policy_slots

    def get_slot(self, slot_id: str) -> PolicySlot:
        for slot in self._state.policy_slots:
            if slot.slot_id == slot_id:
                return slot
        raise PolicyInvariantError(f"No policy slot {slot_id!r}")

    def get_option(self, slot: PolicySlot, option_id: str) -> PolicyOption:
        option = slot.get_option(option_id)
        if option is None:
            raise PolicyInvariantError(f"Slot {slot.slot_id!r} has no option {option_id!r}")
        return option

    def current_options(self) -> list[PolicyOption]:
        return [slot.current_option for slot in self._state.policy_slots]

    @property
    def decrees_enabled(self) -> bool:
        return any(o.effects.enables_decrees for o in self.current_options())

    @property
    def purges_enabled(self) -> bool:
        return any(o.effects.enables_purges for o in self.current_options())

    def aggregated_effects(self) -> dict[StatName, int]:
        """Summed stat modifiers of every policy in force."""
        totals: Counter[StatName] = Counter()
        for option in self.current_options():
            totals.update(option.effects.stat_modifiers)
        return {stat: value for stat, value in totals.items() if value}

    def aggregated_faction_effects(self) -> dict[Faction, int]:
        totals: Counter[Faction] = Counter()
        for option in self.current_options():
            totals.update(option.effects.faction_modifiers)
        return {faction: value for faction, value in totals.items() if value}

    def modified_slots(self) -> list[PolicySlot]:
        return [s for s in self._state.policy_slots if s.has_been_modified]

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(
        self,
        slot_id: str,
        option_id: str,
        by_player: bool = True,
        as_decree: bool = False,
    ) -> PolicyChangeValidation:
        """
        Can this option be put in force?

        Unknown slots or options raise PolicyInvariantError; everything else
        comes back as a PolicyChangeValidation with a reason.
        """
        slot = self.get_slot(slot_id)
        option = self.get_option(slot, option_id)
        player = self._state.player

        power_required = max(option.minimum_power_required, slot.category.modification_difficulty)
        can_decree = self.decrees_enabled and slot.category != LawCategory.INSTITUTIONAL
        decree_power_required = power_required + self._config.decree_power_premium

        def verdict(reason: str | None = None) -> PolicyChangeValidation:
            return PolicyChangeValidation(
                can_change=reason is None,
                reason=reason,
                power_required=power_required,
                can_decree=can_decree,
                decree_power_required=decree_power_required,
            )

        if option.id == slot.current_option_id:
            return verdict(f"{option.name} is already in force")
        if slot.has_pending_proposal:
            return verdict(f"A proposal for {slot.name} is already pending")

        if by_player:
            if player.power_consolidation < power_required:
                return verdict(
                    f"Requires {power_required} power consolidation (you have {player.power_consolidation})"
                )
            if player.position_index < option.minimum_position_index:
                return verdict(f"Requires position {option.minimum_position_index} or higher")
            if (
                slot.category == LawCategory.INSTITUTIONAL
                and player.position_index < self._config.institutional_min_position
            ):
                return verdict("Institutional changes require a seat on the Standing Committee")

        if as_decree:
            if slot.category == LawCategory.INSTITUTIONAL:
                return verdict("Institutional policies cannot be changed by decree")
            if not self.decrees_enabled:
                return verdict("Decree powers are not in force")
            if by_player and player.power_consolidation < decree_power_required:
                return verdict(f"Ruling by decree requires {decree_power_required} power consolidation")

        return verdict()

    # -------------------------------------------------------------------------
    # Changes
    # -------------------------------------------------------------------------

    def change_policy(
        self,
        slot_id: str,
        option_id: str,
        by_character_id: str | None = None,
        by_player: bool = True,
        as_decree: bool = False,
    ) -> PolicyChangeResult:
        """Propose an option, or decree it into force."""
        validation = self.validate(slot_id, option_id, by_player=by_player, as_decree=as_decree)
        if not validation.can_change:
            return PolicyChangeResult(
                success=False,
                message=validation.reason or "Change not permitted",
                slot_id=slot_id,
                option_id=option_id,
            )

        slot = self.get_slot(slot_id)
        option = self.get_option(slot, option_id)
        changed_by = PLAYER_ID if by_player else (by_character_id or "unknown")
        turn = self._state.turn_number

        with self._bus.deferred():
            if as_decree:
                stat_changes, faction_changes = self._swap(slot, option, changed_by, was_decreed=True)
                consequences, consequence_changes = self._decree_consequences(option)
                stat_changes.extend(consequence_changes)
                logger.info(f"Decree: {slot.slot_id} -> {option.id} (turn {turn})")
                self._bus.emit(
                    EventType.POLICY_DECREED,
                    turn=turn,
                    slot_id=slot.slot_id,
                    option_id=option.id,
                    changed_by=changed_by,
                )
                return PolicyChangeResult(
                    success=True,
                    message=f"By decree, {slot.name} is now {option.name}",
                    slot_id=slot.slot_id,
                    option_id=option.id,
                    was_decreed=True,
                    consequences=consequences,
                    stat_changes=stat_changes,
                    faction_changes=faction_changes,
                )

            slot.pending_option_id = option.id
            slot.pending_proposed_by = changed_by
            slot.pending_proposed_turn = turn
            self._bus.emit(
                EventType.POLICY_PROPOSED,
                turn=turn,
                slot_id=slot.slot_id,
                option_id=option.id,
                proposed_by=changed_by,
            )
            return PolicyChangeResult(
                success=True,
                message=f"{option.name} proposed for {slot.name}; the committee will vote",
                slot_id=slot.slot_id,
                option_id=option.id,
                is_pending=True,
            )

    def _swap(
        self, slot: PolicySlot, option: PolicyOption, changed_by: str, was_decreed: bool,
    ) -> tuple[list[StatChange], list[FactionStandingChange]]:
        """Replace the current option, moving its stat and faction effects through the ledger."""
        old = slot.current_option

        deltas: Counter[StatName] = Counter()
        deltas.subtract(old.effects.stat_modifiers)
        deltas.update(option.effects.stat_modifiers)
        stat_changes = self._ledger.apply_many(dict(deltas))

        faction_deltas: Counter[Faction] = Counter()
        faction_deltas.subtract(old.effects.faction_modifiers)
        faction_deltas.update(option.effects.faction_modifiers)
        faction_changes = self._ledger.shift_standings(dict(faction_deltas))

        slot.current_option_id = option.id
        slot.change_history.append(PolicyChangeRecord(
            turn=self._state.turn_number,
            from_option_id=old.id,
            to_option_id=option.id,
            changed_by=changed_by,
            was_decreed=was_decreed,
        ))
        slot.clear_pending()

        if option.id != slot.default_option_id:
            slot.has_been_modified = True
            if old.id == slot.default_option_id:
                self._state.player.laws_modified_count += 1
        return stat_changes, faction_changes

    def _decree_consequences(self, option: PolicyOption) -> tuple[list[str], list[StatChange]]:
        consequences = ["The Presidium resents being bypassed"]
        deltas: dict[StatName, int] = {StatName.ELITE_LOYALTY: ELITE_RESENTMENT}

        if option.is_extreme:
            consequences.append("Foreign capitals protest the decree")
            deltas[StatName.INTERNATIONAL_STANDING] = INTERNATIONAL_PRESSURE

        faction = self._state.player.faction
        if faction is not None and faction in option.losers:
            consequences.append("Your own faction feels betrayed")
            deltas[StatName.PATRON_FAVOR] = FACTION_BACKLASH

        if self._dice.chance(option.immediate_consequence_chance / 100):
            consequences.append("Unrest in the provinces")
            deltas[StatName.STABILITY] = UNREST

        return consequences, self._ledger.apply_many(deltas)

    # -------------------------------------------------------------------------
    # Committee
    # -------------------------------------------------------------------------

    def committee(self) -> list[Character]:
        """Officials senior enough to vote on proposals."""
        return [
            c for c in self._registry.active_characters()
            if c.effective_position >= self._config.committee_min_position
        ]

    def _vote(self, member: Character, option: PolicyOption, player_proposed: bool) -> Vote:
        score = 0
        if member.faction in option.beneficiaries:
            score += BENEFICIARY_WEIGHT
        if member.faction in option.losers:
            score += LOSER_WEIGHT
        if member.personality.loyal > 60:
            score += LOYAL_WEIGHT
        if player_proposed and member.personality.ambitious > 70:
            score += AMBITIOUS_WEIGHT
        score += self._dice.between(-VOTE_NOISE, VOTE_NOISE)

        if score > VOTE_THRESHOLD:
            return Vote.FOR
        if score < -VOTE_THRESHOLD:
            return Vote.AGAINST
        return Vote.ABSTAIN

    def resolve_pending(self, slot_id: str) -> PolicyChangeResult:
        """Put a slot's pending proposal to the committee."""
        slot = self.get_slot(slot_id)
        if not slot.has_pending_proposal:
            return PolicyChangeResult(
                success=False,
                message=f"No proposal pending for {slot.name}",
                slot_id=slot_id,
                option_id=slot.current_option_id,
            )

        option = self.get_option(slot, slot.pending_option_id)
        proposer = slot.pending_proposed_by or PLAYER_ID
        tally = VoteTally(votes={
            member.id: self._vote(member, option, proposer == PLAYER_ID)
            for member in self.committee()
        })

        with self._bus.deferred():
            stat_changes: list[StatChange] = []
            faction_changes: list[FactionStandingChange] = []
            if tally.passed:
                stat_changes, faction_changes = self._swap(slot, option, proposer, was_decreed=False)
                message = f"The committee adopts {option.name} ({tally.votes_for}-{tally.votes_against})"
            else:
                slot.clear_pending()
                message = f"The committee rejects {option.name} ({tally.votes_for}-{tally.votes_against})"

            self._bus.emit(
                EventType.POLICY_RESOLVED,
                turn=self._state.turn_number,
                slot_id=slot.slot_id,
                option_id=option.id,
                passed=tally.passed,
            )
            return PolicyChangeResult(
                success=tally.passed,
                message=message,
                slot_id=slot.slot_id,
                option_id=option.id,
                stat_changes=stat_changes,
                faction_changes=faction_changes,
                tally=tally,
            )

    def resolve_all_pending(self) -> list[PolicyChangeResult]:
        return [
            self.resolve_pending(slot.slot_id)
            for slot in self._state.policy_slots
            if slot.has_pending_proposal
        ]
