"""
Balance configuration.

Every tunable constant of the rule engine lives on BalanceConfig. Defaults
are the shipped balance; a YAML file can override any subset of them.

    max_interactions_per_turn: 3
    relation_caps:
      faction_ally: 3
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, Field, ValidationError

if TYPE_CHECKING:
    from .state.schema import PolicySlot

logger = logging.getLogger(__name__)


class RelationCaps(BaseModel):
    """Maximum entries each inference step may contribute."""
    patron: int = 1
    protege: int = 2
    faction_ally: int = 2
    track_rival: int = 1
    faction_rival: int = 1
    personality_bond: int = 1
    antagonist: int = 1


class BalanceConfig(BaseModel):
    # Turn budget
    max_interactions_per_turn: int = 2
    action_points_per_turn: int = 2
    interaction_history_limit: int = 10

    # Discovery
    max_discovered_characters: int = 15

    # Denunciation
    denounce_cooldown_turns: int = 3
    denounce_min_evidence: int = 30
    strong_evidence: int = 60
    evidence_retained_on_failed_denounce: float = Field(default=0.5, ge=0.0, le=1.0)

    # Cultivation milestones
    ally_threshold: int = 80
    alliance_ally_threshold: int = 60
    protege_threshold: int = 60
    asset_threshold: int = 50
    reconcile_threshold: int = 40

    # Investigation
    alert_disposition_penalty: int = 10
    alert_level_increase: int = 20

    # Probability clamps per family
    investigate_clamp: tuple[float, float] = (0.2, 0.9)
    cultivate_clamp: tuple[float, float] = (0.15, 0.9)
    denounce_clamp: tuple[float, float] = (0.1, 0.9)
    leader_clamp: tuple[float, float] = (0.1, 0.95)

    # Policy
    committee_min_position: int = 6
    decree_power_premium: int = 20
    institutional_min_position: int = 7

    relation_caps: RelationCaps = Field(default_factory=RelationCaps)


DEFAULT_CONFIG = BalanceConfig()


def load_balance_config(path: Path | str | None = None) -> BalanceConfig:
    """Load overrides from YAML, or return defaults if missing or unreadable."""
    if path is None:
        return BalanceConfig()

    path = Path(path)
    if not path.exists():
        return BalanceConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = yaml.safe_load(f) or {}
        if not isinstance(saved, dict):
            logger.warning(f"Ignoring balance config {path}: expected a mapping")
            return BalanceConfig()
        # Merge with defaults to handle missing keys
        merged = DEFAULT_CONFIG.model_dump()
        caps = saved.pop("relation_caps", None) or {}
        if not isinstance(caps, dict):
            logger.warning(f"Ignoring balance config {path}: relation_caps must be a mapping")
            return BalanceConfig()
        merged.update(saved)
        merged["relation_caps"].update(caps)
        return BalanceConfig.model_validate(merged)
    except (yaml.YAMLError, OSError, ValidationError) as e:
        logger.warning(f"Failed to load balance config {path}: {e}")
        return BalanceConfig()


def save_balance_config(config: BalanceConfig, path: Path | str) -> bool:
    """Save config to YAML. Returns True on success."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config.model_dump(mode="json"), f, sort_keys=False)
        return True
    except OSError as e:
        logger.warning(f"Failed to save balance config {path}: {e}")
        return False


def load_default_slots() -> list[PolicySlot]:
    """Load the bundled institutional policy slots."""
    from .state.schema import PolicySlot

    text = resources.files("nomenklatura.data").joinpath("policy_slots.yaml").read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return [PolicySlot.model_validate(slot) for slot in data["slots"]]
