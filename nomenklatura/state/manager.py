"""
Game manager.

Composes the services for one game: a single EventBus, ledger, registry and
turn tracker shared by the systems that depend on them. Systems are created
lazily so importing the state layer never pulls in the systems layer.
"""

from __future__ import annotations

import logging

from ..config import BalanceConfig, load_default_slots
from ..tools.dice import Dice
from .event_bus import EventBus
from .feeds import (
    FlavorSource,
    JournalSink,
    NotificationSink,
    attach_journal,
    attach_notifications,
)
from .ledger import StatLedger
from .registry import CharacterRegistry
from .schema import Character, GameState

logger = logging.getLogger(__name__)


class GameManager:
    """
    Owns a GameState and the services that mutate it.

    Nothing here is global: two managers never share a bus, a random
    source or a roster.
    """

    def __init__(
        self,
        state: GameState | None = None,
        config: BalanceConfig | None = None,
        dice: Dice | None = None,
        notifications: NotificationSink | None = None,
        journal: JournalSink | None = None,
        flavor: FlavorSource | None = None,
        with_default_slots: bool = True,
    ):
        """
        Initialize a game.

        Args:
            state: Existing state to resume, or None for a fresh game
            config: Balance constants (defaults if None)
            dice: Random source; pass a seeded Dice for reproducible runs
            notifications: Receives status-change tuples
            journal: Receives resolved-interaction entries
            flavor: Supplies decorative text
            with_default_slots: Load bundled policy slots into a fresh game
        """
        self.config = config or BalanceConfig()
        self.dice = dice or Dice()
        self.bus = EventBus()
        self.flavor = flavor

        if state is None:
            state = GameState()
            state.player.action_points = self.config.action_points_per_turn
            if with_default_slots:
                state.policy_slots = load_default_slots()
        self.state = state

        turn_source = lambda: self.state.turn_number  # noqa: E731
        self.ledger = StatLedger(state.stats, self.bus, turn_source, state.faction_standing)
        self.registry = CharacterRegistry(
            state.characters,
            self.bus,
            self.dice,
            turn_source,
            max_discovered=self.config.max_discovered_characters,
        )

        if notifications is not None:
            attach_notifications(self.bus, notifications)
        if journal is not None:
            attach_journal(self.bus, journal)

        self._turns = None
        self._relations = None
        self._interactions = None
        self._policy = None

    # -------------------------------------------------------------------------
    # Systems
    # -------------------------------------------------------------------------

    @property
    def turns(self):
        """Get the turn tracker (lazy initialization)."""
        if self._turns is None:
            from ..systems.turns import TurnTracker
            self._turns = TurnTracker(self.state, self.ledger, self.bus, self.config)
        return self._turns

    @property
    def relations(self):
        """Get the relationship inference engine (lazy initialization)."""
        if self._relations is None:
            from ..systems.relations import RelationshipInferenceEngine
            self._relations = RelationshipInferenceEngine(self.dice, self.config.relation_caps)
        return self._relations

    @property
    def interactions(self):
        """Get the interaction resolver (lazy initialization)."""
        if self._interactions is None:
            from ..systems.interactions import InteractionResolver
            self._interactions = InteractionResolver(
                self.state,
                self.ledger,
                self.registry,
                self.turns,
                self.bus,
                self.dice,
                self.config,
                flavor=self.flavor,
            )
        return self._interactions

    @property
    def policy(self):
        """Get the policy governance system (lazy initialization)."""
        if self._policy is None:
            from ..systems.policy import PolicyGovernanceSystem
            self._policy = PolicyGovernanceSystem(
                self.state, self.ledger, self.registry, self.bus, self.dice, self.config,
            )
        return self._policy

    # -------------------------------------------------------------------------
    # Convenience
    # -------------------------------------------------------------------------

    def add_character(self, character: Character) -> Character:
        return self.registry.add(character)

    def relations_for(self, character: Character, shuffle: bool = True):
        return self.relations.relations_for(character, self.registry.all_characters(), shuffle=shuffle)

    def advance_turn(self) -> int:
        turn = self.turns.advance_turn()
        logger.debug(f"Advanced to turn {turn}")
        return turn
