"""
Game rules as pure functions.

Separates logic from data models for easier testing.
"""

from .status import (
    VALID_TRANSITIONS,
    can_transition,
    check_transition,
    can_rehabilitate,
    return_probability,
)
from .character import (
    names_match,
    normalize_name,
    placeholder_personality,
    trust_text,
)

__all__ = [
    "VALID_TRANSITIONS",
    "can_transition",
    "check_transition",
    "can_rehabilitate",
    "return_probability",
    "names_match",
    "normalize_name",
    "placeholder_personality",
    "trust_text",
]
