"""
Relationship inference.

Nothing here is stored. Relations are derived on demand from the roster:
patronage links are explicit (protector_id), everything else is inferred
from faction, career track, rank and personality.

Steps run in priority order and each may add a capped number of entries:

    1. Patron            protector of this character
    2. Protégé           characters this one protects
    3. Faction ally      same faction, both loyal to it
    4. Track rival       same career ladder, both ambitious, close in rank
    5. Faction rival     opposing faction, ambitious, near or above in rank
    6. Personality bond  two loyal, non-ruthless characters
    7. Antagonist        a ruthless climber facing a gentle one

Within a step candidates are ranked by score (descending), then name, then
id, so the selection is stable. A target appears at most once: the first step
to claim it wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from ..config import RelationCaps
from ..state.schema import Character, Faction, Relation
from ..tools.dice import Dice


# Each faction's natural enemies. Every faction has an entry.
OPPOSING_FACTIONS: dict[Faction, frozenset[Faction]] = {
    Faction.REFORMISTS: frozenset({Faction.OLD_GUARD, Faction.PRINCELINGS}),
    Faction.OLD_GUARD: frozenset({Faction.REFORMISTS, Faction.YOUTH_LEAGUE}),
    Faction.YOUTH_LEAGUE: frozenset({Faction.OLD_GUARD, Faction.PRINCELINGS}),
    Faction.PRINCELINGS: frozenset({Faction.REFORMISTS, Faction.YOUTH_LEAGUE}),
    Faction.REGIONAL: frozenset({Faction.PRINCELINGS}),
}

# Thresholds
ALLY_LOYALTY = 60
SELF_LOYALTY = 50
CLOSE_ALLY_BOND = 80
RIVAL_AMBITION = 60
SELF_AMBITION = 50
RIVAL_RANK_WINDOW = 2
BITTER_RIVAL_INTENSITY = 80
FACTION_RIVAL_AMBITION = 55
BOND_LOYALTY = 70
BOND_MAX_RUTHLESS = 60
GENTLE_RUTHLESS = 40
THREAT_RUTHLESS = 75
THREAT_AMBITION = 65


@dataclass
class _Candidate:
    character: Character
    score: float
    label: str
    estimate: int
    positive: bool


def is_opposed(a: Faction | None, b: Faction | None) -> bool:
    if a is None or b is None:
        return False
    return b in OPPOSING_FACTIONS[a]


def _ranked(candidates: Iterable[_Candidate]) -> list[_Candidate]:
    return sorted(candidates, key=lambda c: (-c.score, c.character.name, c.character.id))


class RelationshipInferenceEngine:
    """Derives the socially significant relations of a character."""

    def __init__(self, dice: Dice, caps: RelationCaps | None = None):
        self._dice = dice
        self.caps = caps or RelationCaps()

    def relations_for(
        self,
        character: Character,
        all_characters: Iterable[Character],
        shuffle: bool = True,
    ) -> list[Relation]:
        """
        Ranked, deduplicated relations for one character.

        Patron and protégés always come first. With shuffle=True the rest is
        reordered for display variety once there are more than two of them;
        which characters appear does not depend on the shuffle.
        """
        others = [c for c in all_characters if c.id != character.id and c.is_active]

        steps: list[tuple[Callable[[Character, list[Character]], list[_Candidate]], int]] = [
            (self._patron, self.caps.patron),
            (self._proteges, self.caps.protege),
            (self._faction_allies, self.caps.faction_ally),
            (self._track_rivals, self.caps.track_rival),
            (self._faction_rivals, self.caps.faction_rival),
            (self._personality_bonds, self.caps.personality_bond),
            (self._antagonists, self.caps.antagonist),
        ]

        seen: set[str] = set()
        head: list[Relation] = []
        tail: list[Relation] = []

        for index, (step, cap) in enumerate(steps):
            added = 0
            for candidate in _ranked(step(character, others)):
                if added >= cap:
                    break
                target = candidate.character
                if target.id in seen:
                    continue
                seen.add(target.id)
                added += 1
                relation = Relation(
                    id=target.id,
                    name=target.name,
                    label=candidate.label,
                    disposition_estimate=candidate.estimate,
                    is_positive=candidate.positive,
                )
                # Steps 0 and 1 are patron and protégé
                (head if index < 2 else tail).append(relation)

        if shuffle and len(tail) > 2:
            tail = self._dice.shuffle(tail)

        return head + tail

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _patron(self, character: Character, others: list[Character]) -> list[_Candidate]:
        if not character.protector_id:
            return []
        return [
            _Candidate(o, 0, "Patron", 70, True)
            for o in others
            if o.id == character.protector_id
        ]

    def _proteges(self, character: Character, others: list[Character]) -> list[_Candidate]:
        return [
            _Candidate(o, o.effective_position, "Protégé", 65, True)
            for o in others
            if o.protector_id == character.id
        ]

    def _faction_allies(self, character: Character, others: list[Character]) -> list[_Candidate]:
        if character.faction is None or character.faction_loyalty < SELF_LOYALTY:
            return []
        result = []
        for o in others:
            if o.faction != character.faction or o.faction_loyalty < ALLY_LOYALTY:
                continue
            ambition_delta = abs(o.personality.ambitious - character.personality.ambitious)
            bond = min(o.faction_loyalty, character.faction_loyalty)
            label = "Close Ally" if bond >= CLOSE_ALLY_BOND else "Faction Ally"
            result.append(_Candidate(
                o,
                o.personality.loyal + (100 - ambition_delta),
                label,
                50 + bond // 5,
                True,
            ))
        return result

    def _track_rivals(self, character: Character, others: list[Character]) -> list[_Candidate]:
        if character.position_track is None or character.personality.ambitious < SELF_AMBITION:
            return []
        result = []
        for o in others:
            if o.position_track != character.position_track:
                continue
            if o.personality.ambitious < RIVAL_AMBITION:
                continue
            if abs(o.effective_position - character.effective_position) > RIVAL_RANK_WINDOW:
                continue
            intensity = (o.personality.ambitious + character.personality.ambitious) // 2
            label = "Bitter Rival" if intensity >= BITTER_RIVAL_INTENSITY else "Competitor"
            result.append(_Candidate(o, o.personality.ambitious, label, 30 - intensity // 5, False))
        return result

    def _faction_rivals(self, character: Character, others: list[Character]) -> list[_Candidate]:
        return [
            _Candidate(o, o.effective_position, "Faction Rival", 20, False)
            for o in others
            if is_opposed(character.faction, o.faction)
            and o.personality.ambitious >= FACTION_RIVAL_AMBITION
            and o.effective_position >= character.effective_position - 1
        ]

    def _personality_bonds(self, character: Character, others: list[Character]) -> list[_Candidate]:
        if character.personality.loyal < BOND_LOYALTY:
            return []
        return [
            _Candidate(o, o.personality.loyal, "Trusted Friend", 60, True)
            for o in others
            if o.personality.loyal >= BOND_LOYALTY
            and o.personality.ruthless < BOND_MAX_RUTHLESS
        ]

    def _antagonists(self, character: Character, others: list[Character]) -> list[_Candidate]:
        if character.personality.ruthless >= GENTLE_RUTHLESS:
            return []
        return [
            _Candidate(o, o.personality.ruthless, "Threat", 15, False)
            for o in others
            if o.personality.ruthless >= THREAT_RUTHLESS
            and o.personality.ambitious >= THREAT_AMBITION
            and o.effective_position >= character.effective_position
        ]
