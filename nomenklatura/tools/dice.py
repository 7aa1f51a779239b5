"""
Dice for Nomenklatura.

Every random draw in the rule engine goes through a Dice instance so that
outcome distributions are reproducible under a fixed seed.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Sequence, TypeVar

T = TypeVar("T")


@dataclass
class ChanceResult:
    """Result of a probability check."""
    probability: float  # Chance of success in [0, 1]
    roll: float  # The draw that counted
    success: bool

    @property
    def margin(self) -> float:
        """Positive = comfortably under the threshold."""
        return self.probability - self.roll

    @property
    def narrative(self) -> str:
        """Narrative description of the result."""
        if self.success:
            if self.margin >= 0.4:
                return "decisive success"
            elif self.margin >= 0.15:
                return "solid success"
            else:
                return "narrow success"
        else:
            if self.margin <= -0.4:
                return "complete failure"
            elif self.margin <= -0.15:
                return "clear failure"
            else:
                return "near miss"


def clamp_probability(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class Dice:
    """Seedable random source."""

    def __init__(self, seed: int | None = None, rng: random.Random | None = None):
        self.seed = seed
        self._rng = rng or random.Random(seed)

    def check(self, probability: float) -> ChanceResult:
        """Roll against a probability."""
        roll = self._rng.random()
        return ChanceResult(probability=probability, roll=roll, success=roll < probability)

    def chance(self, probability: float) -> bool:
        return self.check(probability).success

    def between(self, low: int, high: int) -> int:
        """Uniform integer in [low, high] (either order)."""
        if low > high:
            low, high = high, low
        return self._rng.randint(low, high)

    def choice(self, items: Sequence[T]) -> T:
        return self._rng.choice(items)

    def weighted(self, table: Sequence[tuple[T, float]]) -> T:
        """Pick from (item, weight) pairs."""
        items = [item for item, _ in table]
        weights = [weight for _, weight in table]
        return self._rng.choices(items, weights=weights, k=1)[0]

    def shuffle(self, items: list[T]) -> list[T]:
        """Return a shuffled copy."""
        shuffled = list(items)
        self._rng.shuffle(shuffled)
        return shuffled
