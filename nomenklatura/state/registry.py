"""
Character registry.

Owns every tracked official. Characters are never removed; they move through
the status lifecycle in rules/status.py, and each move is announced so the
notification feed can pick it up.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator

from ..errors import InvalidTransition
from ..rules.character import (
    PLACEHOLDER_DISPOSITION,
    names_match,
    placeholder_personality,
)
from ..rules.status import check_transition, return_probability
from ..tools.dice import Dice
from .event_bus import EventBus, EventType
from .schema import Character, CharacterStatus, StatusNotification

logger = logging.getLogger(__name__)

__all__ = ["CharacterRegistry", "InvalidTransition"]


class CharacterRegistry:
    """Roster of officials backed by the game state's character list."""

    def __init__(
        self,
        characters: list[Character],
        bus: EventBus,
        dice: Dice,
        turn_source: Callable[[], int] | None = None,
        max_discovered: int = 15,
    ):
        self._characters = characters
        self._bus = bus
        self._dice = dice
        self._turn_source = turn_source or (lambda: 0)
        self.max_discovered = max_discovered

    def __iter__(self) -> Iterator[Character]:
        return iter(self._characters)

    def __len__(self) -> int:
        return len(self._characters)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def add(self, character: Character) -> Character:
        if self.get(character.id) is not None:
            raise ValueError(f"Character id {character.id} already registered")
        self._characters.append(character)
        self._bus.emit(
            EventType.CHARACTER_ADDED,
            turn=self._turn_source(),
            character_id=character.id,
            character_name=character.name,
        )
        return character

    def get(self, character_id: str) -> Character | None:
        for character in self._characters:
            if character.id == character_id:
                return character
        return None

    def all_characters(self) -> list[Character]:
        return list(self._characters)

    def active_characters(self) -> list[Character]:
        return [c for c in self._characters if c.is_active]

    def fallen_characters(self) -> list[Character]:
        return [c for c in self._characters if c.status.is_fallen]

    def find_by_name(self, name: str) -> Character | None:
        """
        Find a character by name.

        Exact (case-insensitive) match wins; otherwise the first fuzzy match
        in roster order.
        """
        query = name.strip().lower()
        if not query:
            return None

        for character in self._characters:
            if character.name.lower() == query:
                return character

        for character in self._characters:
            if names_match(name, character.name):
                return character
        return None

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def create_placeholder(self, name: str, introduced_turn: int, title: str | None = None) -> Character:
        """Register an official the narrative mentioned but the roster lacked."""
        character = Character(
            name=name.strip(),
            title=title,
            personality=placeholder_personality(self._dice),
            disposition=PLACEHOLDER_DISPOSITION,
            was_discovered_dynamically=True,
            is_fully_revealed=False,
            introduced_turn=introduced_turn,
        )
        logger.debug(f"Placeholder created for {character.name} on turn {introduced_turn}")
        return self.add(character)

    def discovered_count(self) -> int:
        return sum(1 for c in self._characters if c.was_discovered_dynamically)

    def discover(self, name: str, turn: int, title: str | None = None) -> Character | None:
        """
        Resolve a mentioned name to a character, creating one if needed.

        Returns None once the discovered-character cap is reached.
        """
        existing = self.find_by_name(name)
        if existing is not None:
            return existing
        if self.discovered_count() >= self.max_discovered:
            logger.info(f"Discovery cap reached; not tracking {name}")
            return None
        return self.create_placeholder(name, turn, title=title)

    def reveal_personality(self, character: Character, turn: int) -> bool:
        """Mark a hidden personality as known. Returns False if already revealed."""
        if character.is_fully_revealed:
            return False
        character.is_fully_revealed = True
        character.personality_revealed_turn = turn
        self._bus.emit(
            EventType.CHARACTER_REVEALED,
            turn=turn,
            character_id=character.id,
            character_name=character.name,
        )
        return True

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def transition(
        self,
        character: Character,
        new_status: CharacterStatus,
        turn: int,
        details: str | None = None,
    ) -> StatusNotification:
        """
        Move a character along a lifecycle edge.

        Raises:
            InvalidTransition: if the edge is not permitted
        """
        check_transition(character.status, new_status, character.name)

        previous = character.status
        character.status = new_status
        character.status_changed_turn = turn
        character.status_details = details

        if new_status == CharacterStatus.DISAPPEARED:
            character.might_return = True
            character.return_probability = return_probability(character)
        elif previous == CharacterStatus.DISAPPEARED:
            character.might_return = False
            character.return_probability = 0

        notification = StatusNotification(
            character_id=character.id,
            character_name=character.name,
            status=new_status,
            status_text=new_status.display_text,
            turn=turn,
        )
        logger.info(f"{character.name}: {previous.value} -> {new_status.value} (turn {turn})")
        self._bus.emit(
            EventType.CHARACTER_STATUS_CHANGED,
            turn=turn,
            character_id=character.id,
            character_name=character.name,
            previous=previous.value,
            status=new_status.value,
            status_text=notification.status_text,
            details=details,
        )
        return notification
