"""
Nomenklatura Outcome Auditor

Runs every interaction method many times against a reference scenario and
compares the observed success rate with the probability formula the
resolver rolls against. Catches balance drift before it surfaces in play.

Usage:
    nomenklatura-audit                     # Console output
    nomenklatura-audit --trials 2000       # Tighter estimates
    nomenklatura-audit --position 6 --json # JSON output for CI

Exit codes:
    0 - All checks passed
    1 - Warnings only (observed rate drifted from formula)
    2 - Errors found (a formula left [0, 1])
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from rich.console import Console
from rich.table import Table

from ..state.manager import GameManager
from ..state.schema import (
    Character,
    CultivateMethod,
    DenounceMethod,
    Faction,
    InteractionResult,
    InvestigateMethod,
    LeaderAction,
    Personality,
    PositionTrack,
    PreconditionNotMet,
    StatName,
)
from ..tools.dice import Dice

logger = logging.getLogger(__name__)

console = Console()

TARGET_ID = "target"


# ─────────────────────────────────────────────────────────────────────────────
# Data Structures
# ─────────────────────────────────────────────────────────────────────────────


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class Issue:
    """A single audit finding."""

    family: str
    method: str
    severity: Severity
    message: str

    def to_dict(self) -> dict:
        return {
            "family": self.family,
            "method": self.method,
            "severity": self.severity.value,
            "message": self.message,
        }


@dataclass
class MethodAudit:
    """Aggregated trials for one method."""

    family: str
    method: str
    expected: float | None = None
    trials: int = 0
    successes: int = 0
    refusal: str | None = None
    evidence_total: int = 0
    disposition_total: int = 0
    outcomes: Counter = field(default_factory=Counter)

    @property
    def observed(self) -> float | None:
        if not self.trials:
            return None
        return self.successes / self.trials

    @property
    def drift(self) -> float | None:
        if self.observed is None or self.expected is None:
            return None
        return self.observed - self.expected

    @property
    def tolerance(self) -> float:
        """Three standard errors, never tighter than five points."""
        if not self.trials or self.expected is None:
            return 0.0
        p = self.expected
        return max(0.05, 3 * math.sqrt(p * (1 - p) / self.trials))

    def to_dict(self) -> dict:
        return {
            "family": self.family,
            "method": self.method,
            "expected": self.expected,
            "observed": self.observed,
            "trials": self.trials,
            "refusal": self.refusal,
            "mean_evidence": self.evidence_total / self.trials if self.trials else None,
            "mean_disposition": self.disposition_total / self.trials if self.trials else None,
            "outcomes": dict(self.outcomes),
        }


@dataclass
class AuditResult:
    """Complete audit results."""

    audits: list[MethodAudit] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len([i for i in self.issues if i.severity == Severity.ERROR])

    @property
    def warning_count(self) -> int:
        return len([i for i in self.issues if i.severity == Severity.WARNING])

    @property
    def is_healthy(self) -> bool:
        return self.error_count == 0

    def to_dict(self) -> dict:
        return {
            "status": "pass" if self.is_healthy else "fail",
            "summary": {
                "methods": len(self.audits),
                "errors": self.error_count,
                "warnings": self.warning_count,
            },
            "audits": [a.to_dict() for a in self.audits],
            "issues": [i.to_dict() for i in self.issues],
        }


# ─────────────────────────────────────────────────────────────────────────────
# Reference Scenario
# ─────────────────────────────────────────────────────────────────────────────


def build_scenario(seed: int, position: int) -> GameManager:
    """A mid-ranking player facing a moderately guarded official."""
    manager = GameManager(dice=Dice(seed), with_default_slots=False)
    player = manager.state.player
    player.position_index = position
    player.position_track = PositionTrack.PARTY_APPARATUS
    player.faction = Faction.REFORMISTS
    manager.ledger.set(StatName.NETWORK, 45)
    manager.ledger.set(StatName.STANDING, 55)

    manager.add_character(Character(
        id=TARGET_ID,
        name="Anatoly Sergeyevich Volkov",
        title="Deputy Minister",
        faction=Faction.OLD_GUARD,
        faction_loyalty=65,
        position_track=PositionTrack.STATE_MINISTRY,
        position_index=max(1, position - 1),
        personality=Personality(ambitious=65, paranoid=60, ruthless=55, competent=60, loyal=45, corrupt=50),
        disposition=45,
        evidence_level=45,
        is_fully_revealed=False,
    ))
    return manager


Runner = Callable[[GameManager, Character, str], "InteractionResult | PreconditionNotMet"]
Probability = Callable[[GameManager, Character, str], float]

FAMILIES: dict[str, tuple[list[str], Runner, Probability]] = {
    "investigate": (
        [m.value for m in InvestigateMethod],
        lambda g, c, m: g.interactions.investigate(c, m),
        lambda g, c, m: g.interactions.investigate_probability(c, m),
    ),
    "cultivate": (
        [m.value for m in CultivateMethod],
        lambda g, c, m: g.interactions.cultivate(c, m),
        lambda g, c, m: g.interactions.cultivate_probability(c, m),
    ),
    "denounce": (
        [m.value for m in DenounceMethod],
        lambda g, c, m: g.interactions.denounce(c, m),
        lambda g, c, m: g.interactions.denounce_probability(c, m),
    ),
    "leader_action": (
        [m.value for m in LeaderAction],
        lambda g, c, m: g.interactions.execute_leader_action(c, m),
        lambda g, c, m: g.interactions.leader_action_probability(c, m),
    ),
}


# ─────────────────────────────────────────────────────────────────────────────
# Auditor
# ─────────────────────────────────────────────────────────────────────────────


class OutcomeAuditor:
    """Monte Carlo check of every interaction method."""

    def __init__(self, trials: int = 500, seed: int = 0, position: int = 4):
        self.trials = trials
        self.seed = seed
        self.position = position

    def run(self) -> AuditResult:
        result = AuditResult()
        for family, (methods, runner, probability) in FAMILIES.items():
            for method in methods:
                audit = self._audit_method(family, method, runner, probability)
                result.audits.append(audit)
                self._judge(audit, result)
        return result

    def _audit_method(self, family: str, method: str, runner: Runner, probability: Probability) -> MethodAudit:
        audit = MethodAudit(family=family, method=method)

        for i in range(self.trials):
            manager = build_scenario(self.seed + i, self.position)
            target = manager.registry.get(TARGET_ID)
            if audit.expected is None:
                audit.expected = probability(manager, target, method)

            disposition_before = target.disposition
            evidence_before = target.evidence_level
            outcome = runner(manager, target, method)
            if isinstance(outcome, PreconditionNotMet):
                audit.refusal = outcome.reason
                break

            audit.trials += 1
            audit.successes += int(outcome.success)
            audit.evidence_total += target.evidence_level - evidence_before
            audit.disposition_total += target.disposition - disposition_before
            audit.outcomes[target.status.value] += 1

        logger.debug(f"{family}/{method}: {audit.successes}/{audit.trials}")
        return audit

    def _judge(self, audit: MethodAudit, result: AuditResult) -> None:
        if audit.expected is not None and not 0.0 <= audit.expected <= 1.0:
            result.issues.append(Issue(
                audit.family, audit.method, Severity.ERROR,
                f"Probability {audit.expected:.3f} outside [0, 1]",
            ))
            return
        if audit.refusal is not None:
            result.issues.append(Issue(audit.family, audit.method, Severity.INFO, audit.refusal))
            return
        drift = audit.drift
        if drift is not None and abs(drift) > audit.tolerance:
            result.issues.append(Issue(
                audit.family, audit.method, Severity.WARNING,
                f"Observed {audit.observed:.3f} vs formula {audit.expected:.3f}",
            ))


# ─────────────────────────────────────────────────────────────────────────────
# Output
# ─────────────────────────────────────────────────────────────────────────────


def render_console(result: AuditResult, trials: int, position: int) -> None:
    table = Table(title=f"Outcome audit: {trials} trials, player position {position}")
    table.add_column("Family", style="steel_blue")
    table.add_column("Method")
    table.add_column("Formula", justify="right")
    table.add_column("Observed", justify="right")
    table.add_column("Δ", justify="right")
    table.add_column("Evidence", justify="right")
    table.add_column("Disposition", justify="right")
    table.add_column("Status outcomes", style="dim")

    for audit in result.audits:
        if audit.refusal is not None:
            table.add_row(audit.family, audit.method, "-", "-", "-", "-", "-", f"[dim]{audit.refusal}[/dim]")
            continue
        drift = audit.drift or 0.0
        drift_style = "dark_red" if abs(drift) > audit.tolerance else "grey70"
        outcomes = ", ".join(f"{k} {v}" for k, v in audit.outcomes.most_common())
        table.add_row(
            audit.family,
            audit.method,
            f"{audit.expected:.2f}",
            f"{audit.observed:.2f}",
            f"[{drift_style}]{drift:+.3f}[/{drift_style}]",
            f"{audit.evidence_total / audit.trials:+.1f}",
            f"{audit.disposition_total / audit.trials:+.1f}",
            outcomes,
        )

    console.print(table)
    status = "[green]PASS[/green]" if result.is_healthy else "[dark_red]FAIL[/dark_red]"
    console.print(f"{status}  errors: {result.error_count}  warnings: {result.warning_count}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Audit interaction outcome probabilities"
    )
    parser.add_argument("--trials", type=int, default=500, help="Trials per method")
    parser.add_argument("--seed", type=int, default=0, help="Base random seed")
    parser.add_argument("--position", type=int, default=4, help="Player position index")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    auditor = OutcomeAuditor(trials=args.trials, seed=args.seed, position=args.position)
    result = auditor.run()

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        render_console(result, args.trials, args.position)

    # Exit code based on results
    if result.error_count > 0:
        return 2
    elif result.warning_count > 0:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
