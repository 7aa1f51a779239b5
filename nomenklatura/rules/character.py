"""
Character rules as pure functions.

Name matching for dynamic discovery, placeholder personalities, trust
descriptions and rank comparisons. None of these touch the registry.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ..state.schema import Personality, PlayerState, PositionTrack

if TYPE_CHECKING:
    from ..state.schema import Character
    from ..tools.dice import Dice


# Placeholder officials are unknowns, not archetypes
PLACEHOLDER_TRAIT_RANGE = (30, 70)
PLACEHOLDER_DISPOSITION = 50

HONORIFICS = (
    "comrade", "minister", "general", "director", "secretary", "deputy",
    "chairman", "marshal", "colonel", "ambassador",
)

TRUST_TEXT: dict[int, str] = {
    0: "No change",
    1: "Acquaintance",
    2: "Friendly",
    3: "Trusted",
    4: "Close Ally",
    5: "Asset",
}

FUZZY_MIN_LENGTH = 4


def normalize_name(name: str) -> str:
    """Lowercase, drop punctuation and leading honorifics."""
    cleaned = re.sub(r"[^\w\s-]", "", name.lower()).strip()
    words = cleaned.split()
    while words and words[0] in HONORIFICS:
        words = words[1:]
    return " ".join(words)


def names_match(query: str, candidate: str) -> bool:
    """
    Fuzzy match used after exact lookup fails.

    Either normalized name contains the other (the shorter one must be at
    least four characters), or both share a surname.
    """
    a = normalize_name(query)
    b = normalize_name(candidate)
    if not a or not b:
        return False
    if a == b:
        return True

    shorter, longer = sorted((a, b), key=len)
    if len(shorter) >= FUZZY_MIN_LENGTH and shorter in longer:
        return True

    a_last = a.split()[-1]
    b_last = b.split()[-1]
    return len(a.split()) > 1 and len(b.split()) > 1 and a_last == b_last


def placeholder_personality(dice: "Dice") -> Personality:
    low, high = PLACEHOLDER_TRAIT_RANGE
    return Personality(
        ambitious=dice.between(low, high),
        paranoid=dice.between(low, high),
        ruthless=dice.between(low, high),
        competent=dice.between(low, high),
        loyal=dice.between(low, high),
        corrupt=dice.between(low, high),
    )


def trust_text(level: int) -> str:
    return TRUST_TEXT.get(level, TRUST_TEXT[0])


def outranks(character: "Character", player: PlayerState) -> bool:
    return character.effective_position > player.position_index


def in_security_apparatus(player: PlayerState, network: int) -> bool:
    """Security-track officials, or anyone with a deep enough network."""
    if player.position_track == PositionTrack.SECURITY_SERVICES:
        return True
    return network >= 60 and player.position_index >= 3
