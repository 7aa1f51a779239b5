"""
Pytest fixtures for Nomenklatura tests.

Provides seeded and rigged dice, a fresh game manager and sample officials.
"""

import pytest
from pathlib import Path

# Add project root to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from nomenklatura.state import (
    GameManager,
    MemoryJournal,
    MemoryNotificationSink,
)
from nomenklatura.state.schema import (
    Character,
    Faction,
    Personality,
    PolicyEffects,
    PolicyOption,
    PolicySlot,
    PositionTrack,
    StatName,
    Institution,
    LawCategory,
)
from nomenklatura.tools.dice import ChanceResult, Dice


class RiggedDice(Dice):
    """
    Dice whose probability checks follow a script.

    Each check() pops the next scripted outcome; once the script runs out
    every check returns `default`. Integer draws stay seeded.
    """

    def __init__(self, script: list[bool] | None = None, default: bool = True, seed: int = 7):
        super().__init__(seed)
        self.script = list(script or [])
        self.default = default
        self.checks: list[float] = []

    def check(self, probability: float) -> ChanceResult:
        self.checks.append(probability)
        success = self.script.pop(0) if self.script else self.default
        return ChanceResult(
            probability=probability,
            roll=0.0 if success else 0.9999,
            success=success,
        )


@pytest.fixture
def dice():
    """Seeded dice."""
    return Dice(seed=1234)


@pytest.fixture
def notifications():
    return MemoryNotificationSink()


@pytest.fixture
def journal():
    return MemoryJournal()


def make_manager(dice=None, notifications=None, journal=None, slots=True) -> GameManager:
    return GameManager(
        dice=dice or Dice(seed=99),
        notifications=notifications,
        journal=journal,
        with_default_slots=slots,
    )


@pytest.fixture
def manager(dice, notifications, journal):
    """Fresh game with default policy slots."""
    return make_manager(dice, notifications, journal)


@pytest.fixture
def rigged():
    """Dice where every probability check succeeds."""
    return RiggedDice(default=True)


@pytest.fixture
def unlucky():
    """Dice where every probability check fails."""
    return RiggedDice(default=False)


@pytest.fixture
def rigged_manager(rigged, notifications, journal):
    game = make_manager(rigged, notifications, journal)
    game.state.player.position_index = 4
    return game


@pytest.fixture
def unlucky_manager(unlucky, notifications, journal):
    game = make_manager(unlucky, notifications, journal)
    game.state.player.position_index = 4
    return game


def make_official(**overrides) -> Character:
    """A plain mid-ranking official; override any field."""
    fields = dict(
        name="Pyotr Ivanovich Sokolov",
        title="Deputy Minister",
        faction=Faction.OLD_GUARD,
        faction_loyalty=60,
        position_track=PositionTrack.STATE_MINISTRY,
        position_index=3,
        personality=Personality(
            ambitious=50, paranoid=40, ruthless=40, competent=55, loyal=55, corrupt=40,
        ),
        disposition=40,
    )
    fields.update(overrides)
    return Character(**fields)


@pytest.fixture
def official():
    return make_official()


@pytest.fixture
def test_slot():
    """A social slot with a demanding alternative and a decree-enabling one."""
    return PolicySlot(
        slot_id="test_rationing",
        name="Rationing",
        institution=Institution.ECONOMY,
        category=LawCategory.SOCIAL,
        default_option_id="ration_cards",
        options=[
            PolicyOption(
                id="ration_cards",
                name="Ration Cards",
                effects=PolicyEffects(
                    stat_modifiers={StatName.FOOD_SUPPLY: 5},
                    faction_modifiers={Faction.OLD_GUARD: 10},
                ),
                is_default=True,
            ),
            PolicyOption(
                id="free_markets",
                name="Farmers' Markets",
                effects=PolicyEffects(
                    stat_modifiers={StatName.FOOD_SUPPLY: 15, StatName.STABILITY: -5},
                    faction_modifiers={Faction.REFORMISTS: 15},
                ),
                beneficiaries=[Faction.REFORMISTS],
                losers=[Faction.OLD_GUARD],
                minimum_power_required=70,
            ),
        ],
    )
