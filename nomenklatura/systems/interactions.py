"""
Interaction resolver.

Covert operations the player can run against a tracked official:

- Investigate: gather evidence, maybe reveal personality, maybe tip them off
- Cultivate: warm the relationship, maybe win an ally, protégé or asset
- Denounce: spend evidence to push them down the status lifecycle
- Leader actions: direct orders available from the top of the hierarchy

Every family has the same shape. available_*_options() lists what the
player may attempt right now, check_*() explains why something is refused,
and the execute call returns either a typed result or a PreconditionNotMet.
Executing spends action points and one interaction from the turn budget.

Rolls are made against explicit probability functions
(investigate_probability and friends) so the odds can be audited.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from ..config import BalanceConfig
from ..errors import ReentrantOperationError
from ..rules.character import in_security_apparatus, outranks, trust_text
from ..rules.status import can_transition
from ..state.event_bus import EventBus, EventType
from ..state.feeds import FlavorSource, JournalEntry, NullFlavorSource
from ..state.ledger import StatLedger
from ..state.registry import CharacterRegistry
from ..state.schema import (
    Character,
    CharacterInteraction,
    CharacterStatus,
    CultivateMethod,
    CultivateResult,
    CultivationMilestone,
    DenounceMethod,
    DenounceResult,
    GameState,
    InteractionCategory,
    InteractionRecord,
    InteractionResult,
    InvestigateMethod,
    InvestigateResult,
    LeaderAction,
    LeaderActionResult,
    OutcomeKind,
    PreconditionCode,
    PreconditionNotMet,
    RiskLevel,
    StatChange,
    StatName,
)
from ..tools.dice import Dice, clamp_probability
from .turns import TurnTracker

logger = logging.getLogger(__name__)

PLAYER_ID = "player"


@dataclass(frozen=True)
class MethodSpec:
    """Static description of one method."""
    title: str
    description: str
    cost: int = 1
    risk: RiskLevel = RiskLevel.LOW
    min_position: int = 0
    min_position_security: int | None = None   # lower bar for the security apparatus
    effects: dict[StatName, int] = field(default_factory=dict)


# ─── Investigate ──────────────────────────────────────────────────────────

INVESTIGABLE = frozenset({
    CharacterStatus.ACTIVE,
    CharacterStatus.UNDER_INVESTIGATION,
    CharacterStatus.DETAINED,
    CharacterStatus.REHABILITATED,
})

INVESTIGATE_METHODS: dict[InvestigateMethod, MethodSpec] = {
    InvestigateMethod.OBSERVE: MethodSpec(
        "Observe", "Watch their movements and note who they meet.",
    ),
    InvestigateMethod.INFORMANT: MethodSpec(
        "Plant Informant", "Recruit someone in their office to report back.",
        risk=RiskLevel.MEDIUM, min_position=2,
    ),
    InvestigateMethod.SURVEILLANCE: MethodSpec(
        "Surveillance", "Tap their telephone and open their post.",
        risk=RiskLevel.MEDIUM, min_position=3, min_position_security=2,
    ),
    InvestigateMethod.ARCHIVES: MethodSpec(
        "Search Archives", "Comb the personnel files for old indiscretions.",
        min_position=4, min_position_security=3,
    ),
    InvestigateMethod.FULL: MethodSpec(
        "Full Investigation", "Open a formal file with the security organs.",
        cost=2, risk=RiskLevel.HIGH, min_position=5, min_position_security=4,
    ),
    InvestigateMethod.PERSONALITY: MethodSpec(
        "Psychological Profile", "Build a profile of their temperament and weaknesses.",
        cost=2, risk=RiskLevel.MEDIUM, min_position=3, min_position_security=2,
    ),
}

EVIDENCE_YIELD: dict[InvestigateMethod, tuple[int, int]] = {
    InvestigateMethod.OBSERVE: (5, 15),
    InvestigateMethod.PERSONALITY: (5, 15),
    InvestigateMethod.INFORMANT: (10, 20),
    InvestigateMethod.SURVEILLANCE: (15, 25),
    InvestigateMethod.ARCHIVES: (15, 25),
    InvestigateMethod.FULL: (25, 40),
}

ALERT_CHANCE: dict[InvestigateMethod, float] = {
    InvestigateMethod.OBSERVE: 0.05,
    InvestigateMethod.ARCHIVES: 0.05,
    InvestigateMethod.INFORMANT: 0.15,
    InvestigateMethod.SURVEILLANCE: 0.20,
    InvestigateMethod.FULL: 0.25,
    InvestigateMethod.PERSONALITY: 0.10,
}

REVEAL_CHANCE = 0.15
REVEAL_CHANCE_STRONG = 0.4


# ─── Cultivate ────────────────────────────────────────────────────────────

CULTIVABLE = frozenset({CharacterStatus.ACTIVE, CharacterStatus.REHABILITATED})

CULTIVATE_METHODS: dict[CultivateMethod, MethodSpec] = {
    CultivateMethod.CASUAL: MethodSpec(
        "Casual Conversation", "A word in the corridor after the plenum.",
    ),
    CultivateMethod.DRINK: MethodSpec(
        "Share a Drink", "Vodka at the dacha loosens tongues.", min_position=1,
    ),
    CultivateMethod.GIFT: MethodSpec(
        "Send a Gift", "Scarce goods from the special distributor.", min_position=2,
    ),
    CultivateMethod.FAVOR: MethodSpec(
        "Do a Favor", "Smooth over a problem in their ministry.",
        risk=RiskLevel.MEDIUM, min_position=2, effects={StatName.NETWORK: 1},
    ),
    CultivateMethod.INTEL: MethodSpec(
        "Share Intelligence", "Pass along something they will want to know.",
        risk=RiskLevel.MEDIUM, min_position=3,
    ),
    CultivateMethod.PATRONAGE: MethodSpec(
        "Offer Patronage", "Take them under your wing.",
        cost=2, risk=RiskLevel.MEDIUM, min_position=4, effects={StatName.NETWORK: 2},
    ),
    CultivateMethod.ALLIANCE: MethodSpec(
        "Propose Alliance", "An understanding between equals.",
        cost=2, risk=RiskLevel.MEDIUM, min_position=4, effects={StatName.NETWORK: 2},
    ),
    CultivateMethod.RECRUIT: MethodSpec(
        "Recruit as Asset", "Make them report to you.",
        cost=2, risk=RiskLevel.HIGH, min_position=5, min_position_security=3,
        effects={StatName.NETWORK: 3},
    ),
    CultivateMethod.RECONCILE: MethodSpec(
        "Seek Reconciliation", "Bury the old quarrel.",
        cost=2, risk=RiskLevel.MEDIUM, min_position=3,
    ),
    CultivateMethod.PATRON_BOND: MethodSpec(
        "Pay Respects to Patron", "Remind your patron why they chose you.",
        effects={StatName.PATRON_FAVOR: 3},
    ),
}

# (min gain, max gain, trust level)
CULTIVATE_GAINS: dict[CultivateMethod, tuple[int, int, int]] = {
    CultivateMethod.CASUAL: (5, 10, 1),
    CultivateMethod.DRINK: (8, 15, 2),
    CultivateMethod.GIFT: (10, 18, 2),
    CultivateMethod.FAVOR: (12, 20, 3),
    CultivateMethod.INTEL: (10, 15, 3),
    CultivateMethod.PATRONAGE: (15, 25, 4),
    CultivateMethod.ALLIANCE: (15, 25, 4),
    CultivateMethod.RECRUIT: (10, 20, 5),
    CultivateMethod.RECONCILE: (20, 35, 3),
    CultivateMethod.PATRON_BOND: (8, 15, 2),
}

CULTIVATE_LOSSES: dict[CultivateMethod, tuple[int, int]] = {
    CultivateMethod.RECRUIT: (-15, -5),
    CultivateMethod.INTEL: (-15, -5),
    CultivateMethod.ALLIANCE: (-10, -3),
    CultivateMethod.PATRONAGE: (-10, -3),
}
DEFAULT_CULTIVATE_LOSS = (-5, 0)

FAVOR_MIN_DISPOSITION = 30
PATRONAGE_MIN_DISPOSITION = 40
ALLIANCE_MIN_DISPOSITION = 50
RECONCILE_MIN_DISPOSITION = 20


# ─── Denounce ─────────────────────────────────────────────────────────────

DENOUNCEABLE = frozenset({
    CharacterStatus.ACTIVE,
    CharacterStatus.UNDER_INVESTIGATION,
    CharacterStatus.DETAINED,
})

DENOUNCE_METHODS: dict[DenounceMethod, MethodSpec] = {
    DenounceMethod.ANONYMOUS: MethodSpec(
        "Anonymous Letter", "An unsigned letter to the Control Commission.",
    ),
    DenounceMethod.FORMAL: MethodSpec(
        "Formal Complaint", "A signed complaint through Party channels.",
        risk=RiskLevel.MEDIUM, min_position=3,
    ),
    DenounceMethod.OFFICIAL: MethodSpec(
        "Official Accusation", "Lay charges before the Presidium.",
        risk=RiskLevel.MEDIUM, min_position=5,
    ),
    DenounceMethod.PUBLIC: MethodSpec(
        "Public Denunciation", "Denounce them from the rostrum.",
        cost=2, risk=RiskLevel.HIGH, min_position=4,
    ),
}

DENOUNCE_SUCCESS_REPERCUSSIONS: dict[RiskLevel, dict[StatName, int]] = {
    RiskLevel.LOW: {StatName.STANDING: 2, StatName.REPUTATION_CUNNING: 2},
    RiskLevel.MEDIUM: {StatName.STANDING: 5, StatName.REPUTATION_CUNNING: 5},
    RiskLevel.HIGH: {
        StatName.STANDING: 10,
        StatName.REPUTATION_CUNNING: 8,
        StatName.REPUTATION_RUTHLESS: 5,
    },
}

DENOUNCE_FAILURE_REPERCUSSIONS: dict[RiskLevel, dict[StatName, int]] = {
    RiskLevel.LOW: {StatName.STANDING: -5, StatName.REPUTATION_LOYAL: -5},
    RiskLevel.MEDIUM: {StatName.STANDING: -8, StatName.REPUTATION_LOYAL: -5},
    RiskLevel.HIGH: {
        StatName.STANDING: -15,
        StatName.REPUTATION_LOYAL: -8,
        StatName.REPUTATION_CUNNING: -3,
    },
}

# Where an already-open case ends up
ESCALATION_TABLE: dict[RiskLevel, list[tuple[CharacterStatus, float]]] = {
    RiskLevel.LOW: [
        (CharacterStatus.IMPRISONED, 0.7),
        (CharacterStatus.EXILED, 0.3),
    ],
    RiskLevel.MEDIUM: [
        (CharacterStatus.IMPRISONED, 0.5),
        (CharacterStatus.EXILED, 0.3),
        (CharacterStatus.DISAPPEARED, 0.2),
    ],
    RiskLevel.HIGH: [
        (CharacterStatus.IMPRISONED, 0.3),
        (CharacterStatus.EXILED, 0.15),
        (CharacterStatus.DISAPPEARED, 0.2),
        (CharacterStatus.EXECUTED, 0.3),
        (CharacterStatus.DEAD, 0.05),
    ],
}

RISK_SHIFT: dict[RiskLevel, float] = {
    RiskLevel.LOW: 0.10,
    RiskLevel.MEDIUM: 0.0,
    RiskLevel.HIGH: -0.10,
}

ANONYMOUS_RIVAL_CHANCE = 0.3
PATRON_ANGER = -20


# ─── Leader actions ───────────────────────────────────────────────────────

LEADER_MIN_POSITION = 5

LEADER_ACTIONS: dict[LeaderAction, MethodSpec] = {
    LeaderAction.INVESTIGATION: MethodSpec(
        "Order Investigation", "Instruct the security organs to open a file.",
        risk=RiskLevel.LOW, min_position=5, effects={StatName.STANDING: 3},
    ),
    LeaderAction.ARREST: MethodSpec(
        "Order Arrest", "Have them taken in for questioning.",
        cost=2, risk=RiskLevel.MEDIUM, min_position=6,
        effects={StatName.STANDING: 5, StatName.ELITE_LOYALTY: -5},
    ),
    LeaderAction.EXILE: MethodSpec(
        "Order Exile", "Send them to a posting far from the capital.",
        cost=2, risk=RiskLevel.MEDIUM, min_position=6,
        effects={
            StatName.STANDING: 5,
            StatName.ELITE_LOYALTY: -10,
            StatName.INTERNATIONAL_STANDING: -5,
        },
    ),
    LeaderAction.EXECUTION: MethodSpec(
        "Order Execution", "Sign the sentence.",
        cost=2, risk=RiskLevel.HIGH, min_position=6,
        effects={
            StatName.REPUTATION_RUTHLESS: 10,
            StatName.ELITE_LOYALTY: -15,
            StatName.INTERNATIONAL_STANDING: -10,
            StatName.STABILITY: -5,
        },
    ),
    LeaderAction.RETIREMENT: MethodSpec(
        "Force Retirement", "Thank them for their years of service.",
        risk=RiskLevel.LOW, min_position=6, effects={StatName.ELITE_LOYALTY: -3},
    ),
    LeaderAction.REHABILITATE: MethodSpec(
        "Order Rehabilitation", "Restore their good name.",
        risk=RiskLevel.LOW, min_position=5,
        effects={StatName.REPUTATION_LOYAL: 5, StatName.ELITE_LOYALTY: 5},
    ),
}

LEADER_TARGET_STATUS: dict[LeaderAction, CharacterStatus] = {
    LeaderAction.INVESTIGATION: CharacterStatus.UNDER_INVESTIGATION,
    LeaderAction.ARREST: CharacterStatus.DETAINED,
    LeaderAction.EXILE: CharacterStatus.EXILED,
    LeaderAction.EXECUTION: CharacterStatus.EXECUTED,
    LeaderAction.RETIREMENT: CharacterStatus.RETIRED,
    LeaderAction.REHABILITATE: CharacterStatus.REHABILITATED,
}

LEADER_FAILURE_REPERCUSSIONS: dict[StatName, int] = {
    StatName.STANDING: -5,
    StatName.ELITE_LOYALTY: -5,
}

# Failed repression makes an enemy
HOSTILE_LEADER_ACTIONS = frozenset({LeaderAction.ARREST, LeaderAction.EXILE, LeaderAction.EXECUTION})

ARREST_NETWORK_OVERRIDE = 70


# ─── Resolver ─────────────────────────────────────────────────────────────


class InteractionResolver:
    """
    Resolves player operations against characters.

    Preconditions are reported as PreconditionNotMet values; only defects
    (an invalid status edge, a nested call from an event handler) raise.
    """

    def __init__(
        self,
        state: GameState,
        ledger: StatLedger,
        registry: CharacterRegistry,
        turns: TurnTracker,
        bus: EventBus,
        dice: Dice,
        config: BalanceConfig,
        flavor: FlavorSource | None = None,
    ):
        self._state = state
        self._ledger = ledger
        self._registry = registry
        self._turns = turns
        self._bus = bus
        self._dice = dice
        self._config = config
        self._flavor = flavor or NullFlavorSource()
        self._resolving_now = False

    # -------------------------------------------------------------------------
    # Shared helpers
    # -------------------------------------------------------------------------

    @property
    def _player(self):
        return self._state.player

    @property
    def _turn(self) -> int:
        return self._state.turn_number

    def _in_security(self) -> bool:
        return in_security_apparatus(self._player, self._ledger[StatName.NETWORK])

    def _rank_ok(self, meta: MethodSpec) -> bool:
        position = self._player.position_index
        if position >= meta.min_position:
            return True
        if meta.min_position_security is not None and self._in_security():
            return position >= meta.min_position_security
        return False

    def _budget_refusal(self, cost: int) -> PreconditionNotMet | None:
        if not self._turns.can_interact:
            return PreconditionNotMet(
                code=PreconditionCode.NO_INTERACTIONS,
                reason="No interactions remaining this turn",
            )
        if not self._turns.can_afford(cost):
            return PreconditionNotMet(
                code=PreconditionCode.INSUFFICIENT_ACTION_POINTS,
                reason=f"Requires {cost} action point(s); {self._turns.action_points} remaining",
            )
        return None

    def _status_refusal(self, character: Character, allowed: frozenset[CharacterStatus]) -> PreconditionNotMet | None:
        if character.status in allowed:
            return None
        return PreconditionNotMet(
            code=PreconditionCode.STATUS,
            reason=f"{character.name} is {character.status.display_text.lower()}",
        )

    def _rank_refusal(self, meta: MethodSpec) -> PreconditionNotMet:
        return PreconditionNotMet(
            code=PreconditionCode.RANK,
            reason=f"{meta.title} requires a higher position",
        )

    def _player_patron(self) -> Character | None:
        for character in self._registry:
            if character.is_patron and character.is_active:
                return character
        return None

    def _shift_disposition(self, character: Character, delta: int) -> int:
        applied = character.shift_disposition(delta)
        if applied:
            self._bus.emit(
                EventType.CHARACTER_DISPOSITION_CHANGED,
                turn=self._turn,
                character_id=character.id,
                delta=applied,
                disposition=character.disposition,
            )
        return applied

    def _interaction(
        self,
        category: InteractionCategory,
        method: str,
        meta: MethodSpec,
        character: Character,
        risk: RiskLevel | None = None,
    ) -> CharacterInteraction:
        return CharacterInteraction(
            id=f"{category.value}_{method}_{character.id}",
            title=meta.title,
            description=meta.description,
            category=category,
            method=method,
            risk_level=risk or meta.risk,
            cost_ap=meta.cost,
            effects=dict(meta.effects),
        )

    @contextmanager
    def _resolving(self) -> Iterator[None]:
        """Hold notifications until the operation commits; refuse nesting."""
        if self._resolving_now:
            raise ReentrantOperationError("An interaction is already being resolved")
        with self._bus.deferred():
            self._resolving_now = True
            try:
                yield
            finally:
                self._resolving_now = False

    def _commit(
        self,
        character: Character,
        interaction: CharacterInteraction,
        result: InteractionResult,
        summary: str,
    ) -> None:
        """Record history, attach flavor and notify the journal."""
        result.ap_spent = interaction.cost_ap
        result.flavor_text = self._flavor.interaction_flavor(
            interaction.category.value, interaction.method, result.success, character.name,
        )

        if result.success:
            outcome = OutcomeKind.POSITIVE
        elif result.disposition_change < 0 or any(c.delta < 0 for c in result.stat_changes):
            outcome = OutcomeKind.NEGATIVE
        else:
            outcome = OutcomeKind.NEUTRAL

        character.record_interaction(
            InteractionRecord(
                turn=self._turn,
                summary=summary,
                method=interaction.method,
                category=interaction.category,
                disposition_delta=result.disposition_change,
                outcome=outcome,
            ),
            limit=self._config.interaction_history_limit,
        )

        entry = JournalEntry(
            turn=self._turn,
            actor=self._player.name,
            target=character.name,
            category=interaction.category.value,
            method=interaction.method,
            outcome="success" if result.success else "failure",
            summary=summary,
        )
        self._bus.emit(
            EventType.INTERACTION_RESOLVED,
            turn=self._turn,
            interaction_id=interaction.id,
            success=result.success,
            entry=entry,
        )
        logger.debug(
            f"{interaction.id}: p={result.probability:.2f} success={result.success}"
        )

    # =========================================================================
    # Investigate
    # =========================================================================

    def _investigate_gate(self, character: Character, method: InvestigateMethod) -> PreconditionNotMet | None:
        if method == InvestigateMethod.PERSONALITY and character.is_fully_revealed:
            return PreconditionNotMet(
                code=PreconditionCode.UNAVAILABLE,
                reason=f"{character.name}'s personality is already known",
            )
        meta = INVESTIGATE_METHODS[method]
        if not self._rank_ok(meta):
            return self._rank_refusal(meta)
        return None

    def _investigate_risk(self, method: InvestigateMethod) -> RiskLevel:
        if method == InvestigateMethod.SURVEILLANCE and self._player.position_index >= 4:
            return RiskLevel.LOW
        return INVESTIGATE_METHODS[method].risk

    def check_investigate(self, character: Character, method: InvestigateMethod | str) -> PreconditionNotMet | None:
        """Why an investigation can't run right now, or None if it can."""
        method = InvestigateMethod(method)
        return (
            self._budget_refusal(INVESTIGATE_METHODS[method].cost)
            or self._status_refusal(character, INVESTIGABLE)
            or self._investigate_gate(character, method)
        )

    def available_investigate_options(self, character: Character) -> list[CharacterInteraction]:
        if not self._turns.can_interact or character.status not in INVESTIGABLE:
            return []
        return [
            self._interaction(
                InteractionCategory.INVESTIGATE, method.value, meta, character,
                risk=self._investigate_risk(method),
            )
            for method, meta in INVESTIGATE_METHODS.items()
            if self._investigate_gate(character, method) is None
        ]

    def investigate_probability(self, character: Character, method: InvestigateMethod | str) -> float:
        """
        Chance an investigation succeeds.

        Network, rank and the security apparatus help; a paranoid, alert,
        protected or senior target resists.
        """
        method = InvestigateMethod(method)
        p = 0.65
        if method == InvestigateMethod.OBSERVE:
            p += 0.15
        elif method == InvestigateMethod.FULL:
            p -= 0.10
        if self._in_security():
            p += 0.15
        if self._player.position_index >= 5:
            p += 0.10
        if self._ledger[StatName.NETWORK] > 50:
            p += 0.10
        if outranks(character, self._player):
            p -= 0.15
        if character.has_protection:
            p -= 0.20
        p -= max(0, character.personality.paranoid - 50) / 200
        p -= character.alert_level / 400
        return clamp_probability(p, *self._config.investigate_clamp)

    def investigate(self, character: Character, method: InvestigateMethod | str) -> InvestigateResult | PreconditionNotMet:
        """Run an investigation. Evidence only ever goes up."""
        method = InvestigateMethod(method)
        with self._resolving():
            refusal = self.check_investigate(character, method)
            if refusal is not None:
                return refusal

            meta = INVESTIGATE_METHODS[method]
            interaction = self._interaction(
                InteractionCategory.INVESTIGATE, method.value, meta, character,
                risk=self._investigate_risk(method),
            )
            self._turns.spend(meta.cost)

            probability = self.investigate_probability(character, method)
            roll = self._dice.check(probability)

            gained = 0
            revealed = False
            if roll.success:
                gained = character.add_evidence(self._dice.between(*EVIDENCE_YIELD[method]))
                if method == InvestigateMethod.PERSONALITY:
                    revealed = self._registry.reveal_personality(character, self._turn)
                elif not character.is_fully_revealed:
                    strong = character.evidence_level >= self._config.strong_evidence
                    if self._dice.chance(REVEAL_CHANCE_STRONG if strong else REVEAL_CHANCE):
                        revealed = self._registry.reveal_personality(character, self._turn)

            # Tipping off the target can happen either way
            alert_chance = ALERT_CHANCE[method] * (1 if roll.success else 2)
            alerted = self._dice.chance(alert_chance)
            disposition_change = 0
            if alerted:
                character.alert_level = min(100, character.alert_level + self._config.alert_level_increase)
                disposition_change = self._shift_disposition(character, -self._config.alert_disposition_penalty)

            secrets = self._flavor.secrets(character.name, method.value, gained) if gained else []

            if roll.success:
                narrative = f"{meta.title} of {character.name}: {roll.narrative}. Evidence +{gained}."
            else:
                narrative = f"{meta.title} of {character.name} turned up nothing ({roll.narrative})."
            if alerted:
                narrative += f" {character.name} knows someone is asking questions."

            result = InvestigateResult(
                method=method.value,
                character_id=character.id,
                character_name=character.name,
                success=roll.success,
                probability=probability,
                narrative=narrative,
                disposition_change=disposition_change,
                evidence_gained=gained,
                evidence_level=character.evidence_level,
                personality_revealed=revealed,
                target_alerted=alerted,
                secrets=secrets,
            )
            self._commit(character, interaction, result, narrative)
            return result

    # =========================================================================
    # Cultivate
    # =========================================================================

    def _cultivate_risk(self, character: Character, method: CultivateMethod) -> RiskLevel:
        if character.is_rival:
            if method == CultivateMethod.GIFT:
                return RiskLevel.MEDIUM
            if method == CultivateMethod.INTEL:
                return RiskLevel.HIGH
        return CULTIVATE_METHODS[method].risk

    def _cultivate_gate(self, character: Character, method: CultivateMethod) -> PreconditionNotMet | None:
        def refuse(code: PreconditionCode, reason: str) -> PreconditionNotMet:
            return PreconditionNotMet(code=code, reason=reason)

        name = character.name
        if method in (CultivateMethod.CASUAL, CultivateMethod.DRINK) and character.is_patron:
            return refuse(PreconditionCode.RELATIONSHIP, f"{name} is your patron")
        if method == CultivateMethod.PATRON_BOND and not character.is_patron:
            return refuse(PreconditionCode.RELATIONSHIP, f"{name} is not your patron")
        if method == CultivateMethod.FAVOR and character.disposition < FAVOR_MIN_DISPOSITION:
            return refuse(PreconditionCode.DISPOSITION, f"{name} does not trust you enough to accept a favor")
        if method == CultivateMethod.PATRONAGE:
            if character.is_patron or character.is_rival:
                return refuse(PreconditionCode.RELATIONSHIP, f"{name} will not accept your patronage")
            if CultivationMilestone.PROTEGE in character.milestones:
                return refuse(PreconditionCode.RELATIONSHIP, f"{name} is already your protégé")
            if character.disposition < PATRONAGE_MIN_DISPOSITION:
                return refuse(PreconditionCode.DISPOSITION, f"{name} is not warm enough toward you")
        if method == CultivateMethod.ALLIANCE:
            if character.is_rival:
                return refuse(PreconditionCode.RELATIONSHIP, f"{name} is your rival")
            if CultivationMilestone.FORMAL_ALLY in character.milestones:
                return refuse(PreconditionCode.RELATIONSHIP, f"{name} is already your ally")
            if character.disposition < ALLIANCE_MIN_DISPOSITION:
                return refuse(PreconditionCode.DISPOSITION, f"{name} is not warm enough toward you")
        if method == CultivateMethod.RECRUIT:
            if character.is_patron:
                return refuse(PreconditionCode.RELATIONSHIP, f"{name} is your patron")
            if CultivationMilestone.ASSET in character.milestones:
                return refuse(PreconditionCode.RELATIONSHIP, f"{name} already reports to you")
        if method == CultivateMethod.RECONCILE:
            if not character.is_rival:
                return refuse(PreconditionCode.RELATIONSHIP, f"{name} is not your rival")
            if character.disposition < RECONCILE_MIN_DISPOSITION:
                return refuse(PreconditionCode.DISPOSITION, f"{name} is too hostile to reconcile")

        meta = CULTIVATE_METHODS[method]
        if not self._rank_ok(meta):
            return self._rank_refusal(meta)
        return None

    def check_cultivate(self, character: Character, method: CultivateMethod | str) -> PreconditionNotMet | None:
        method = CultivateMethod(method)
        return (
            self._budget_refusal(CULTIVATE_METHODS[method].cost)
            or self._status_refusal(character, CULTIVABLE)
            or self._cultivate_gate(character, method)
        )

    def available_cultivate_options(self, character: Character) -> list[CharacterInteraction]:
        if not self._turns.can_interact or character.status not in CULTIVABLE:
            return []
        return [
            self._interaction(
                InteractionCategory.CULTIVATE, method.value, meta, character,
                risk=self._cultivate_risk(character, method),
            )
            for method, meta in CULTIVATE_METHODS.items()
            if self._cultivate_gate(character, method) is None
        ]

    def cultivate_probability(self, character: Character, method: CultivateMethod | str) -> float:
        """
        Chance a cultivation attempt lands.

        Existing warmth matters most. Paranoid and ruthless characters resist;
        loyal, gentle ones respond; rivals are hard going.
        """
        method = CultivateMethod(method)
        personality = character.personality
        p = 0.6

        if character.disposition >= 60:
            p += 0.15
        elif character.disposition >= 40:
            p += 0.05
        elif character.disposition < 20:
            p -= 0.15

        if method in (CultivateMethod.CASUAL, CultivateMethod.DRINK):
            p += 0.10
        elif method in (CultivateMethod.RECRUIT, CultivateMethod.ALLIANCE):
            p -= 0.10

        if character.is_rival:
            p -= 0.20

        position = self._player.position_index
        if method in (CultivateMethod.PATRONAGE, CultivateMethod.ALLIANCE) and position >= 4:
            p += 0.10
        if method == CultivateMethod.RECRUIT and self._in_security():
            p += 0.15
        if self._ledger[StatName.NETWORK] > 50:
            p += 0.10

        p -= max(0, personality.paranoid - 50) / 200
        p -= max(0, personality.ruthless - 60) / 200
        if personality.loyal >= 60 and personality.ruthless < 50:
            p += 0.10
        if personality.ambitious > 60 and position >= 4:
            p += 0.10

        return clamp_probability(p, *self._config.cultivate_clamp)

    def _fire_milestones(self, character: Character, method: CultivateMethod) -> set[CultivationMilestone]:
        """One-time relationship changes. Each fires at most once per character."""
        fired: set[CultivationMilestone] = set()
        reached = character.milestones
        config = self._config

        if (
            method == CultivateMethod.RECONCILE
            and CultivationMilestone.RIVALRY_ENDED not in reached
            and character.disposition >= config.reconcile_threshold
        ):
            character.is_rival = False
            self._ledger.apply(StatName.RIVAL_THREAT, -10)
            fired.add(CultivationMilestone.RIVALRY_ENDED)

        threshold = config.alliance_ally_threshold if method == CultivateMethod.ALLIANCE else config.ally_threshold
        if (
            CultivationMilestone.FORMAL_ALLY not in reached
            and not character.is_rival
            and character.disposition >= threshold
        ):
            character.is_ally = True
            fired.add(CultivationMilestone.FORMAL_ALLY)

        if (
            method == CultivateMethod.PATRONAGE
            and CultivationMilestone.PROTEGE not in reached
            and character.disposition >= config.protege_threshold
        ):
            character.has_protection = True
            character.protector_id = PLAYER_ID
            fired.add(CultivationMilestone.PROTEGE)

        if (
            method == CultivateMethod.RECRUIT
            and CultivationMilestone.ASSET not in reached
            and character.disposition >= config.asset_threshold
        ):
            character.is_asset = True
            fired.add(CultivationMilestone.ASSET)

        character.milestones |= fired
        return fired

    def cultivate(self, character: Character, method: CultivateMethod | str) -> CultivateResult | PreconditionNotMet:
        """Work on a relationship."""
        method = CultivateMethod(method)
        with self._resolving():
            refusal = self.check_cultivate(character, method)
            if refusal is not None:
                return refusal

            meta = CULTIVATE_METHODS[method]
            interaction = self._interaction(
                InteractionCategory.CULTIVATE, method.value, meta, character,
                risk=self._cultivate_risk(character, method),
            )
            self._turns.spend(meta.cost)

            probability = self.cultivate_probability(character, method)
            roll = self._dice.check(probability)

            stat_changes: list[StatChange] = []
            fired: set[CultivationMilestone] = set()
            trust = 0
            if roll.success:
                low, high, trust = CULTIVATE_GAINS[method]
                disposition_change = self._shift_disposition(character, self._dice.between(low, high))
                stat_changes = self._ledger.apply_many(meta.effects)
                fired = self._fire_milestones(character, method)
                narrative = f"{meta.title} with {character.name}: {roll.narrative}."
            else:
                low, high = CULTIVATE_LOSSES.get(method, DEFAULT_CULTIVATE_LOSS)
                disposition_change = self._shift_disposition(character, self._dice.between(low, high))
                if method == CultivateMethod.RECONCILE:
                    stat_changes = [self._ledger.apply(StatName.RIVAL_THREAT, 5)]
                narrative = f"{meta.title} with {character.name} fell flat ({roll.narrative})."

            result = CultivateResult(
                method=method.value,
                character_id=character.id,
                character_name=character.name,
                success=roll.success,
                probability=probability,
                narrative=narrative,
                disposition_change=disposition_change,
                stat_changes=stat_changes,
                trust_level=trust,
                trust_text=trust_text(trust),
                became_ally=CultivationMilestone.FORMAL_ALLY in fired,
                became_protege=CultivationMilestone.PROTEGE in fired,
                became_asset=CultivationMilestone.ASSET in fired,
                rivalry_ended=CultivationMilestone.RIVALRY_ENDED in fired,
            )
            self._commit(character, interaction, result, narrative)
            return result

    # =========================================================================
    # Denounce
    # =========================================================================

    def _denounce_gate(self, character: Character, method: DenounceMethod) -> PreconditionNotMet | None:
        meta = DENOUNCE_METHODS[method]
        position = self._player.position_index
        if method == DenounceMethod.ANONYMOUS:
            ok = position <= 4
        elif method == DenounceMethod.FORMAL:
            ok = 3 <= position <= 4
        elif method == DenounceMethod.OFFICIAL:
            ok = position >= 5
        else:
            strong = character.evidence_level >= self._config.strong_evidence
            ok = (position >= 4 and strong) or self._ledger[StatName.STANDING] >= 70
        if not ok:
            return PreconditionNotMet(
                code=PreconditionCode.RANK,
                reason=f"{meta.title} is not open to someone of your position",
            )
        return None

    def cooldown_remaining(self, character: Character) -> int:
        """Turns until this character may be denounced again."""
        if character.last_denounced_turn is None:
            return 0
        elapsed = self._turn - character.last_denounced_turn
        return max(0, self._config.denounce_cooldown_turns - elapsed)

    def check_denounce(
        self,
        character: Character,
        method: DenounceMethod | str | None = None,
    ) -> PreconditionNotMet | None:
        """
        Why a denunciation can't go ahead, or None if it can.

        Without a method, only the checks shared by every method are run.
        """
        method = DenounceMethod(method) if method is not None else None
        cost = DENOUNCE_METHODS[method].cost if method is not None else 1

        refusal = self._budget_refusal(cost) or self._status_refusal(character, DENOUNCEABLE)
        if refusal is not None:
            return refusal

        remaining = self.cooldown_remaining(character)
        if remaining:
            return PreconditionNotMet(
                code=PreconditionCode.COOLDOWN,
                reason=f"Denunciation cooldown: {remaining} turn(s) remaining before {character.name} can be denounced again",
            )

        if character.evidence_level < self._config.denounce_min_evidence:
            return PreconditionNotMet(
                code=PreconditionCode.EVIDENCE,
                reason=(
                    f"Insufficient evidence against {character.name} "
                    f"({character.evidence_level}/{self._config.denounce_min_evidence})"
                ),
            )

        if method is not None:
            return self._denounce_gate(character, method)
        return None

    def available_denounce_options(self, character: Character) -> list[CharacterInteraction]:
        if self.check_denounce(character) is not None:
            return []
        return [
            self._interaction(InteractionCategory.DENOUNCE, method.value, meta, character)
            for method, meta in DENOUNCE_METHODS.items()
            if self._denounce_gate(character, method) is None
        ]

    def _patron_shields(self, character: Character) -> bool:
        patron = self._player_patron()
        if patron is None:
            return False
        return character.id == patron.id or character.protector_id == patron.id

    def denounce_probability(self, character: Character, method: DenounceMethod | str) -> float:
        """
        Chance a denunciation sticks.

        Rises with evidence; protection, seniority and the method's risk tier
        shift it. Low-risk methods are safer bets with milder outcomes.
        """
        method = DenounceMethod(method)
        p = 0.35 + character.evidence_level / 100 * 0.5
        if character.has_protection:
            p -= 0.25
        if self._patron_shields(character):
            p -= 0.15
        if outranks(character, self._player):
            p -= 0.20
        if self._player.position_index >= 5:
            p += 0.15
        p += 0.10 * min(character.denouncement_count, 3)
        if self._ledger[StatName.NETWORK] > 60:
            p += 0.10
        p += RISK_SHIFT[DENOUNCE_METHODS[method].risk]
        return clamp_probability(p, *self._config.denounce_clamp)

    def _denounce_outcome(self, character: Character, risk: RiskLevel) -> CharacterStatus:
        if character.status == CharacterStatus.ACTIVE:
            if risk == RiskLevel.HIGH:
                return CharacterStatus.DETAINED
            return CharacterStatus.UNDER_INVESTIGATION
        return self._dice.weighted(ESCALATION_TABLE[risk])

    def denounce(self, character: Character, method: DenounceMethod | str) -> DenounceResult | PreconditionNotMet:
        """
        Spend evidence against a character.

        Success moves them down the lifecycle and spends all evidence. Failure
        burns part of it, sours the target and costs the player standing.
        Either way the cooldown starts.
        """
        method = DenounceMethod(method)
        with self._resolving():
            refusal = self.check_denounce(character, method)
            if refusal is not None:
                return refusal

            meta = DENOUNCE_METHODS[method]
            risk = meta.risk
            interaction = self._interaction(InteractionCategory.DENOUNCE, method.value, meta, character)
            self._turns.spend(meta.cost)

            probability = self.denounce_probability(character, method)
            roll = self._dice.check(probability)
            turn = self._turn

            new_status: CharacterStatus | None = None
            became_rival = False
            disposition_change = 0

            if roll.success:
                new_status = self._denounce_outcome(character, risk)
                self._registry.transition(
                    character, new_status, turn,
                    details=f"Denounced by {self._player.name} ({meta.title.lower()})",
                )
                spent = character.evidence_level
                character.evidence_level = 0
                character.denouncement_count += 1
                deltas = dict(DENOUNCE_SUCCESS_REPERCUSSIONS[risk])
                if character.is_rival:
                    deltas[StatName.RIVAL_THREAT] = -15
                narrative = (
                    f"{meta.title} against {character.name}: {roll.narrative}. "
                    f"{character.name} is now {new_status.display_text.lower()}."
                )
            else:
                retained = int(character.evidence_level * self._config.evidence_retained_on_failed_denounce)
                spent = character.evidence_level - retained
                character.evidence_level = retained
                penalty = 40 if risk == RiskLevel.HIGH else 20
                disposition_change = self._shift_disposition(character, -penalty)
                if not character.is_rival:
                    if method != DenounceMethod.ANONYMOUS or self._dice.chance(ANONYMOUS_RIVAL_CHANCE):
                        character.is_rival = True
                        became_rival = True
                deltas = dict(DENOUNCE_FAILURE_REPERCUSSIONS[risk])
                if self._patron_shields(character):
                    deltas[StatName.PATRON_FAVOR] = PATRON_ANGER
                narrative = f"{meta.title} against {character.name} backfired ({roll.narrative})."

            character.last_denounced_turn = turn
            stat_changes = self._ledger.apply_many(deltas)

            result = DenounceResult(
                method=method.value,
                character_id=character.id,
                character_name=character.name,
                success=roll.success,
                probability=probability,
                narrative=narrative,
                disposition_change=disposition_change,
                stat_changes=stat_changes,
                risk_level=risk,
                new_status=new_status,
                evidence_spent=spent,
                became_rival=became_rival,
            )
            self._commit(character, interaction, result, narrative)
            return result

    # =========================================================================
    # Leader actions
    # =========================================================================

    def _leader_gate(self, character: Character, action: LeaderAction) -> PreconditionNotMet | None:
        meta = LEADER_ACTIONS[action]
        position = self._player.position_index
        if position < LEADER_MIN_POSITION:
            return self._rank_refusal(meta)
        ok = position >= meta.min_position
        if action == LeaderAction.ARREST and position == LEADER_MIN_POSITION:
            ok = self._ledger[StatName.NETWORK] >= ARREST_NETWORK_OVERRIDE
        if not ok:
            return self._rank_refusal(meta)

        target = LEADER_TARGET_STATUS[action]
        if not can_transition(character.status, target):
            return PreconditionNotMet(
                code=PreconditionCode.STATUS,
                reason=f"{meta.title} is not possible while {character.name} is {character.status.display_text.lower()}",
            )
        return None

    def check_leader_action(self, character: Character, action: LeaderAction | str) -> PreconditionNotMet | None:
        action = LeaderAction(action)
        return self._budget_refusal(LEADER_ACTIONS[action].cost) or self._leader_gate(character, action)

    def available_leader_actions(self, character: Character) -> list[CharacterInteraction]:
        if not self._turns.can_interact:
            return []
        return [
            self._interaction(InteractionCategory.LEADER_ACTION, action.value, meta, character)
            for action, meta in LEADER_ACTIONS.items()
            if self._leader_gate(character, action) is None
        ]

    def leader_action_probability(self, character: Character, action: LeaderAction | str) -> float:
        p = 0.75
        if character.is_patron:
            p -= 0.30
        if character.is_rival:
            p += 0.10
        if character.disposition > 70:
            p -= 0.15
        if self._ledger[StatName.STABILITY] < 40:
            p -= 0.10
        if self._ledger[StatName.ELITE_LOYALTY] > 70:
            p += 0.10
        return clamp_probability(p, *self._config.leader_clamp)

    def execute_leader_action(self, character: Character, action: LeaderAction | str) -> LeaderActionResult | PreconditionNotMet:
        """Issue a direct order against a character."""
        action = LeaderAction(action)
        with self._resolving():
            refusal = self.check_leader_action(character, action)
            if refusal is not None:
                return refusal

            meta = LEADER_ACTIONS[action]
            interaction = self._interaction(InteractionCategory.LEADER_ACTION, action.value, meta, character)
            self._turns.spend(meta.cost)

            probability = self.leader_action_probability(character, action)
            roll = self._dice.check(probability)

            new_status: CharacterStatus | None = None
            became_rival = False
            disposition_change = 0
            if roll.success:
                new_status = LEADER_TARGET_STATUS[action]
                self._registry.transition(
                    character, new_status, self._turn,
                    details=f"{meta.title} by {self._player.name}",
                )
                stat_changes = self._ledger.apply_many(meta.effects)
                narrative = f"{meta.title}: {character.name} is now {new_status.display_text.lower()}."
            else:
                stat_changes = self._ledger.apply_many(LEADER_FAILURE_REPERCUSSIONS)
                disposition_change = self._shift_disposition(character, -20)
                if action in HOSTILE_LEADER_ACTIONS and not character.is_rival:
                    character.is_rival = True
                    became_rival = True
                narrative = f"{meta.title} against {character.name} was quietly ignored ({roll.narrative})."

            result = LeaderActionResult(
                method=action.value,
                character_id=character.id,
                character_name=character.name,
                success=roll.success,
                probability=probability,
                narrative=narrative,
                disposition_change=disposition_change,
                stat_changes=stat_changes,
                new_status=new_status,
                became_rival=became_rival,
            )
            self._commit(character, interaction, result, narrative)
            return result
