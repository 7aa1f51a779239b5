"""
Nomenklatura game state schema.

Pydantic models for the state tracked by the rule engine:
stats, characters, interaction records, policy slots and operation results.
"""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from ..errors import PolicyInvariantError


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class StatName(str, Enum):
    """Every bounded stat held by the ledger."""
    # National
    STABILITY = "stability"
    POPULAR_SUPPORT = "popular_support"
    MILITARY_LOYALTY = "military_loyalty"
    ELITE_LOYALTY = "elite_loyalty"
    TREASURY = "treasury"
    INDUSTRIAL_OUTPUT = "industrial_output"
    FOOD_SUPPLY = "food_supply"
    INTERNATIONAL_STANDING = "international_standing"
    # Personal
    STANDING = "standing"
    PATRON_FAVOR = "patron_favor"
    RIVAL_THREAT = "rival_threat"
    NETWORK = "network"
    # Reputation
    REPUTATION_COMPETENT = "reputation_competent"
    REPUTATION_LOYAL = "reputation_loyal"
    REPUTATION_CUNNING = "reputation_cunning"
    REPUTATION_RUTHLESS = "reputation_ruthless"


class Faction(str, Enum):
    REFORMISTS = "reformists"
    OLD_GUARD = "old_guard"
    YOUTH_LEAGUE = "youth_league"
    PRINCELINGS = "princelings"
    REGIONAL = "regional"


class PositionTrack(str, Enum):
    """Career ladders. Shared tracks breed promotion rivalries."""
    PARTY_APPARATUS = "party_apparatus"
    STATE_MINISTRY = "state_ministry"
    SECURITY_SERVICES = "security_services"
    MILITARY = "military"
    ECONOMIC_PLANNING = "economic_planning"
    FOREIGN_AFFAIRS = "foreign_affairs"
    REGIONAL_GOVERNANCE = "regional_governance"


class CharacterStatus(str, Enum):
    ACTIVE = "active"
    UNDER_INVESTIGATION = "under_investigation"
    DETAINED = "detained"
    IMPRISONED = "imprisoned"
    EXILED = "exiled"
    EXECUTED = "executed"
    DEAD = "dead"
    DISAPPEARED = "disappeared"
    RETIRED = "retired"
    REHABILITATED = "rehabilitated"

    @property
    def display_text(self) -> str:
        return _STATUS_DISPLAY[self]

    @property
    def is_active(self) -> bool:
        """Still holding office (rehabilitated officials count)."""
        return self in (CharacterStatus.ACTIVE, CharacterStatus.REHABILITATED)

    @property
    def is_terminal(self) -> bool:
        return self in (CharacterStatus.EXECUTED, CharacterStatus.DEAD)

    @property
    def is_fallen(self) -> bool:
        return self in (
            CharacterStatus.IMPRISONED,
            CharacterStatus.EXILED,
            CharacterStatus.EXECUTED,
            CharacterStatus.DEAD,
            CharacterStatus.DISAPPEARED,
            CharacterStatus.RETIRED,
        )


_STATUS_DISPLAY: dict[CharacterStatus, str] = {
    CharacterStatus.ACTIVE: "Active",
    CharacterStatus.UNDER_INVESTIGATION: "Under Investigation",
    CharacterStatus.DETAINED: "Detained",
    CharacterStatus.IMPRISONED: "Imprisoned",
    CharacterStatus.EXILED: "Exiled",
    CharacterStatus.EXECUTED: "Executed",
    CharacterStatus.DEAD: "Deceased",
    CharacterStatus.DISAPPEARED: "Disappeared",
    CharacterStatus.RETIRED: "Retired",
    CharacterStatus.REHABILITATED: "Rehabilitated",
}


class InteractionCategory(str, Enum):
    INVESTIGATE = "investigate"
    CULTIVATE = "cultivate"
    DENOUNCE = "denounce"
    LEADER_ACTION = "leader_action"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InvestigateMethod(str, Enum):
    OBSERVE = "observe"
    INFORMANT = "informant"
    SURVEILLANCE = "surveillance"
    ARCHIVES = "archives"
    FULL = "full"
    PERSONALITY = "personality"


class CultivateMethod(str, Enum):
    CASUAL = "casual"
    DRINK = "drink"
    GIFT = "gift"
    FAVOR = "favor"
    INTEL = "intel"
    PATRONAGE = "patronage"
    ALLIANCE = "alliance"
    RECRUIT = "recruit"
    RECONCILE = "reconcile"
    PATRON_BOND = "patron_bond"


class DenounceMethod(str, Enum):
    ANONYMOUS = "anonymous"
    FORMAL = "formal"
    OFFICIAL = "official"
    PUBLIC = "public"


class LeaderAction(str, Enum):
    INVESTIGATION = "investigation"
    ARREST = "arrest"
    EXILE = "exile"
    EXECUTION = "execution"
    RETIREMENT = "retirement"
    REHABILITATE = "rehabilitate"


class CultivationMilestone(str, Enum):
    """One-time transitions a cultivation success can trigger."""
    FORMAL_ALLY = "formal_ally"
    PROTEGE = "protege"
    ASSET = "asset"
    RIVALRY_ENDED = "rivalry_ended"


class OutcomeKind(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class PreconditionCode(str, Enum):
    NO_INTERACTIONS = "no_interactions"
    INSUFFICIENT_ACTION_POINTS = "insufficient_action_points"
    STATUS = "status"
    RANK = "rank"
    EVIDENCE = "evidence"
    COOLDOWN = "cooldown"
    DISPOSITION = "disposition"
    RELATIONSHIP = "relationship"
    UNAVAILABLE = "unavailable"


class Institution(str, Enum):
    PRESIDIUM = "presidium"
    CONGRESS = "congress"
    MILITARY = "military"
    SECURITY = "security"
    ECONOMY = "economy"
    REGIONAL = "regional"
    PROPAGANDA = "propaganda"
    FOREIGN = "foreign"


class LawCategory(str, Enum):
    INSTITUTIONAL = "institutional"
    POLITICAL = "political"
    ECONOMIC = "economic"
    SOCIAL = "social"

    @property
    def modification_difficulty(self) -> int:
        """Baseline power needed to touch a slot of this category."""
        return {
            LawCategory.INSTITUTIONAL: 80,
            LawCategory.POLITICAL: 60,
            LawCategory.ECONOMIC: 50,
            LawCategory.SOCIAL: 40,
        }[self]


class Vote(str, Enum):
    FOR = "for"
    AGAINST = "against"
    ABSTAIN = "abstain"


# -----------------------------------------------------------------------------
# Core Models
# -----------------------------------------------------------------------------

def generate_id() -> str:
    return str(uuid4())[:8]


class StatBlock(BaseModel):
    """National, personal and reputation stats. All bounded to [0, 100]."""
    stability: int = Field(default=50, ge=0, le=100)
    popular_support: int = Field(default=50, ge=0, le=100)
    military_loyalty: int = Field(default=50, ge=0, le=100)
    elite_loyalty: int = Field(default=50, ge=0, le=100)
    treasury: int = Field(default=50, ge=0, le=100)
    industrial_output: int = Field(default=50, ge=0, le=100)
    food_supply: int = Field(default=50, ge=0, le=100)
    international_standing: int = Field(default=50, ge=0, le=100)

    standing: int = Field(default=50, ge=0, le=100)
    patron_favor: int = Field(default=50, ge=0, le=100)
    rival_threat: int = Field(default=20, ge=0, le=100)
    network: int = Field(default=20, ge=0, le=100)

    reputation_competent: int = Field(default=50, ge=0, le=100)
    reputation_loyal: int = Field(default=50, ge=0, le=100)
    reputation_cunning: int = Field(default=50, ge=0, le=100)
    reputation_ruthless: int = Field(default=50, ge=0, le=100)


class Personality(BaseModel):
    """Fixed trait vector. Frozen: traits never drift after creation."""
    model_config = {"frozen": True}

    ambitious: int = Field(default=50, ge=0, le=100)
    paranoid: int = Field(default=50, ge=0, le=100)
    ruthless: int = Field(default=50, ge=0, le=100)
    competent: int = Field(default=50, ge=0, le=100)
    loyal: int = Field(default=50, ge=0, le=100)
    corrupt: int = Field(default=50, ge=0, le=100)


class InteractionRecord(BaseModel):
    """One resolved player interaction with a character."""
    turn: int
    summary: str
    method: str = ""
    category: InteractionCategory
    disposition_delta: int = 0
    outcome: OutcomeKind = OutcomeKind.NEUTRAL


class Character(BaseModel):
    """A tracked official in the hierarchy."""
    id: str = Field(default_factory=generate_id)
    name: str
    title: str | None = None
    faction: Faction | None = None
    faction_loyalty: int = Field(default=50, ge=0, le=100)
    position_track: PositionTrack | None = None
    position_index: int | None = None

    personality: Personality = Field(default_factory=Personality)
    disposition: int = Field(default=0, ge=-100, le=100)
    evidence_level: int = Field(default=0, ge=0, le=100)
    alert_level: int = Field(default=0, ge=0, le=100)

    is_patron: bool = False
    is_rival: bool = False
    is_ally: bool = False
    is_asset: bool = False
    has_protection: bool = False
    protector_id: str | None = None    # "player" when the player sponsors them
    milestones: set[CultivationMilestone] = Field(default_factory=set)

    status: CharacterStatus = CharacterStatus.ACTIVE
    status_changed_turn: int | None = None
    status_details: str | None = None
    might_return: bool = False
    return_probability: int = Field(default=0, ge=0, le=100)

    denouncement_count: int = 0
    last_denounced_turn: int | None = None
    last_interaction_turn: int | None = None
    introduced_turn: int | None = None

    was_discovered_dynamically: bool = False
    is_fully_revealed: bool = True
    personality_revealed_turn: int | None = None

    interactions: list[InteractionRecord] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def effective_position(self) -> int:
        """Position index, treating unknown rank as mid-level."""
        return self.position_index if self.position_index is not None else 3

    def shift_disposition(self, delta: int) -> int:
        """Shift disposition, clamped to [-100, 100]. Returns the applied delta."""
        before = self.disposition
        self.disposition = max(-100, min(100, self.disposition + delta))
        return self.disposition - before

    def add_evidence(self, amount: int) -> int:
        """Add evidence, clamped to [0, 100]. Returns the applied amount."""
        before = self.evidence_level
        self.evidence_level = max(0, min(100, self.evidence_level + amount))
        return self.evidence_level - before

    def record_interaction(self, record: InteractionRecord, limit: int = 10) -> None:
        """Append to interaction history, keeping only the most recent entries."""
        self.interactions.append(record)
        if len(self.interactions) > limit:
            self.interactions = self.interactions[-limit:]
        self.last_interaction_turn = record.turn


class PlayerState(BaseModel):
    """The player's rank and per-turn budget."""
    name: str = "Comrade"
    position_index: int = 1
    position_track: PositionTrack | None = None
    faction: Faction | None = None
    action_points: int = 2
    interactions_used: int = 0
    power_consolidation: int = 0
    laws_modified_count: int = 0


# -----------------------------------------------------------------------------
# Policy Models
# -----------------------------------------------------------------------------

class PolicyEffects(BaseModel):
    """What holding an option in force does."""
    stat_modifiers: dict[StatName, int] = Field(default_factory=dict)
    faction_modifiers: dict[Faction, int] = Field(default_factory=dict)
    enables_decrees: bool = False
    enables_purges: bool = False


class PolicyOption(BaseModel):
    id: str
    name: str
    description: str = ""
    effects: PolicyEffects = Field(default_factory=PolicyEffects)
    beneficiaries: list[Faction] = Field(default_factory=list)
    losers: list[Faction] = Field(default_factory=list)
    is_default: bool = False
    is_extreme: bool = False
    minimum_power_required: int = 40
    minimum_position_index: int = 5
    immediate_consequence_chance: int = 20    # percent


class PolicyChangeRecord(BaseModel):
    turn: int
    from_option_id: str
    to_option_id: str
    changed_by: str                           # "player" or a character id
    was_decreed: bool = False


class PolicySlot(BaseModel):
    """An institutional rule with mutually exclusive options, exactly one current."""
    slot_id: str
    name: str
    description: str = ""
    institution: Institution
    category: LawCategory
    options: list[PolicyOption]
    default_option_id: str
    current_option_id: str = ""
    has_been_modified: bool = False
    pending_option_id: str | None = None
    pending_proposed_by: str | None = None
    pending_proposed_turn: int | None = None
    change_history: list[PolicyChangeRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_options(self) -> "PolicySlot":
        ids = [o.id for o in self.options]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate option ids in slot {self.slot_id}")
        if self.default_option_id not in ids:
            raise ValueError(f"Default option {self.default_option_id} not in slot {self.slot_id}")
        if not self.current_option_id:
            self.current_option_id = self.default_option_id
        elif self.current_option_id not in ids:
            raise ValueError(f"Current option {self.current_option_id} not in slot {self.slot_id}")
        return self

    @property
    def has_pending_proposal(self) -> bool:
        return self.pending_option_id is not None

    @property
    def was_current_policy_decreed(self) -> bool:
        if not self.change_history:
            return False
        return self.change_history[-1].was_decreed

    def get_option(self, option_id: str) -> PolicyOption | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    @property
    def current_option(self) -> PolicyOption:
        option = self.get_option(self.current_option_id)
        if option is None:
            raise PolicyInvariantError(
                f"Slot {self.slot_id!r} current option {self.current_option_id!r} is not among its options"
            )
        return option

    def clear_pending(self) -> None:
        self.pending_option_id = None
        self.pending_proposed_by = None
        self.pending_proposed_turn = None


# -----------------------------------------------------------------------------
# Game Root
# -----------------------------------------------------------------------------

class GameState(BaseModel):
    """Everything the rule engine mutates. Persistence shape is the host's call."""
    id: str = Field(default_factory=generate_id)
    turn_number: int = 1
    player: PlayerState = Field(default_factory=PlayerState)
    stats: StatBlock = Field(default_factory=StatBlock)
    # Player's standing with each faction, 0-100
    faction_standing: dict[Faction, int] = Field(
        default_factory=lambda: {faction: 50 for faction in Faction}
    )
    characters: list[Character] = Field(default_factory=list)
    policy_slots: list[PolicySlot] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Operation Results
# -----------------------------------------------------------------------------

class StatChange(BaseModel):
    stat: StatName
    before: int
    after: int

    @property
    def delta(self) -> int:
        return self.after - self.before


class FactionStandingChange(BaseModel):
    faction: Faction
    before: int
    after: int

    @property
    def delta(self) -> int:
        return self.after - self.before


class CharacterInteraction(BaseModel):
    """A candidate operation against a character. Computed, never stored."""
    id: str
    title: str
    description: str
    category: InteractionCategory
    method: str
    risk_level: RiskLevel
    cost_ap: int = 1
    effects: dict[StatName, int] = Field(default_factory=dict)
    flavor_text: str | None = None


class PreconditionNotMet(BaseModel):
    """An operation was refused before any roll. User-recoverable."""
    code: PreconditionCode
    reason: str

    @property
    def success(self) -> bool:
        return False


class InteractionResult(BaseModel):
    """Base payload for a resolved interaction, successful or not."""
    category: InteractionCategory
    method: str
    character_id: str
    character_name: str
    success: bool
    probability: float
    narrative: str
    disposition_change: int = 0
    stat_changes: list[StatChange] = Field(default_factory=list)
    ap_spent: int = 0
    flavor_text: str | None = None


class InvestigateResult(InteractionResult):
    category: InteractionCategory = InteractionCategory.INVESTIGATE
    evidence_gained: int = 0
    evidence_level: int = 0
    personality_revealed: bool = False
    target_alerted: bool = False
    secrets: list[str] = Field(default_factory=list)


class CultivateResult(InteractionResult):
    category: InteractionCategory = InteractionCategory.CULTIVATE
    trust_level: int = 0
    trust_text: str = "No change"
    became_ally: bool = False
    became_protege: bool = False
    became_asset: bool = False
    rivalry_ended: bool = False


class DenounceResult(InteractionResult):
    category: InteractionCategory = InteractionCategory.DENOUNCE
    risk_level: RiskLevel = RiskLevel.LOW
    new_status: CharacterStatus | None = None
    evidence_spent: int = 0
    became_rival: bool = False


class LeaderActionResult(InteractionResult):
    category: InteractionCategory = InteractionCategory.LEADER_ACTION
    new_status: CharacterStatus | None = None
    became_rival: bool = False


class StatusNotification(BaseModel):
    """Payload for the notification collaborator."""
    character_id: str
    character_name: str
    status: CharacterStatus
    status_text: str
    turn: int


class Relation(BaseModel):
    id: str
    name: str
    label: str
    disposition_estimate: int
    is_positive: bool


class PolicyChangeValidation(BaseModel):
    can_change: bool
    reason: str | None = None
    power_required: int = 0
    can_decree: bool = False
    decree_power_required: int = 0


class VoteTally(BaseModel):
    votes: dict[str, Vote] = Field(default_factory=dict)   # character id -> vote

    @property
    def votes_for(self) -> int:
        return sum(1 for v in self.votes.values() if v == Vote.FOR)

    @property
    def votes_against(self) -> int:
        return sum(1 for v in self.votes.values() if v == Vote.AGAINST)

    @property
    def abstentions(self) -> int:
        return sum(1 for v in self.votes.values() if v == Vote.ABSTAIN)

    @property
    def passed(self) -> bool:
        return self.votes_for > self.votes_against


class PolicyChangeResult(BaseModel):
    success: bool
    message: str
    slot_id: str
    option_id: str
    was_decreed: bool = False
    is_pending: bool = False
    consequences: list[str] = Field(default_factory=list)
    stat_changes: list[StatChange] = Field(default_factory=list)
    faction_changes: list[FactionStandingChange] = Field(default_factory=list)
    tally: VoteTally | None = None
