"""Tools for Nomenklatura."""

from .dice import Dice, ChanceResult, clamp_probability

__all__ = ["Dice", "ChanceResult", "clamp_probability"]
