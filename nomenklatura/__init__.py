"""
Nomenklatura: rule engine for a turn-based political-intrigue simulation.

Tracks a roster of officials, resolves covert operations against them,
infers their social graph and governs institutional policy.
"""

# state first: the rules package depends on its schema
from .state import GameManager, GameState, Character, CharacterStatus, StatName
from .config import BalanceConfig, load_balance_config
from .errors import (
    NomenklaturaError,
    InvalidTransition,
    PolicyInvariantError,
    ReentrantOperationError,
    TurnBudgetError,
)
from .tools.dice import Dice

__version__ = "0.1.0"

__all__ = [
    "GameManager",
    "GameState",
    "Character",
    "CharacterStatus",
    "StatName",
    "BalanceConfig",
    "load_balance_config",
    "NomenklaturaError",
    "InvalidTransition",
    "PolicyInvariantError",
    "ReentrantOperationError",
    "TurnBudgetError",
    "Dice",
]
