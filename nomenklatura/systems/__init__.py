"""
Game systems for Nomenklatura.

Each system operates on a GameState through the shared ledger, registry and
event bus that GameManager wires together.
"""

from .turns import TurnTracker
from .relations import RelationshipInferenceEngine, OPPOSING_FACTIONS
from .interactions import InteractionResolver
from .policy import PolicyGovernanceSystem

__all__ = [
    "TurnTracker",
    "RelationshipInferenceEngine",
    "OPPOSING_FACTIONS",
    "InteractionResolver",
    "PolicyGovernanceSystem",
]
