"""
Character status lifecycle as pure functions.

    active ──► under_investigation ──► imprisoned / exiled / executed / dead / disappeared
       │  └──► detained ──────────────┘
       └──► retired
    imprisoned / exiled / disappeared / retired ──► rehabilitated ──► active

executed and dead have no way out.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import InvalidTransition
from ..state.schema import CharacterStatus

if TYPE_CHECKING:
    from ..state.schema import Character


S = CharacterStatus

VALID_TRANSITIONS: dict[CharacterStatus, set[CharacterStatus]] = {
    S.ACTIVE: {S.UNDER_INVESTIGATION, S.DETAINED, S.RETIRED},
    S.UNDER_INVESTIGATION: {
        S.IMPRISONED, S.EXILED, S.EXECUTED, S.DEAD, S.DISAPPEARED,
        S.REHABILITATED,  # cleared
    },
    S.DETAINED: {
        S.IMPRISONED, S.EXILED, S.EXECUTED, S.DEAD, S.DISAPPEARED,
        S.REHABILITATED,
    },
    S.IMPRISONED: {S.REHABILITATED},
    S.EXILED: {S.REHABILITATED},
    S.DISAPPEARED: {S.REHABILITATED},
    S.RETIRED: {S.REHABILITATED},
    S.REHABILITATED: {S.ACTIVE},
    S.EXECUTED: set(),
    S.DEAD: set(),
}

# Outcomes a denunciation can escalate an open case into
DENUNCIATION_OUTCOMES: frozenset[CharacterStatus] = frozenset({
    S.IMPRISONED, S.EXILED, S.EXECUTED, S.DEAD, S.DISAPPEARED,
})


def can_transition(current: CharacterStatus, target: CharacterStatus) -> bool:
    return target in VALID_TRANSITIONS[current]


def check_transition(current: CharacterStatus, target: CharacterStatus, name: str = "") -> None:
    """Raise InvalidTransition unless current -> target is a lifecycle edge."""
    if not can_transition(current, target):
        raise InvalidTransition(current, target, name)


def can_rehabilitate(character: "Character") -> bool:
    return can_transition(character.status, S.REHABILITATED)


def return_probability(character: "Character") -> int:
    """
    Chance (percent) that a disappeared official resurfaces.

    Competent, protected, senior officials are the likeliest to come back.
    """
    chance = 10 + character.personality.competent // 5
    if character.has_protection:
        chance += 20
    chance += 5 * (character.position_index or 0)
    return max(0, min(90, chance))
