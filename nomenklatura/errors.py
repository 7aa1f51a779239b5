"""
Exceptions raised by the rule engine.

These are reserved for defects: an edge the status machine does not allow,
a policy slot or option that does not exist, an operation that recursed into
itself. Ordinary refusals (not enough evidence, no action points) are returned
as PreconditionNotMet values instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .state.schema import CharacterStatus


class NomenklaturaError(Exception):
    """Base error for the rule engine."""
    pass


class InvalidTransition(NomenklaturaError):
    """Status edge is not permitted by the lifecycle."""
    def __init__(self, current: "CharacterStatus", target: "CharacterStatus", name: str = ""):
        self.current = current
        self.target = target
        who = f"{name}: " if name else ""
        super().__init__(f"{who}cannot transition from {current.value} to {target.value}")


class PolicyInvariantError(NomenklaturaError):
    """A slot or option reference does not resolve."""
    pass


class ReentrantOperationError(NomenklaturaError):
    """An operation was invoked while another was still resolving."""
    pass


class TurnBudgetError(NomenklaturaError):
    """Action points or interactions spent past zero."""
    pass
