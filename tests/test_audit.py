"""
Tests for the outcome audit command.
"""

import json

import pytest

from nomenklatura.interface.audit import (
    TARGET_ID,
    AuditResult,
    MethodAudit,
    OutcomeAuditor,
    Severity,
    build_scenario,
    main,
)


class TestMethodAudit:
    """Aggregation arithmetic."""

    def test_observed_and_drift(self):
        audit = MethodAudit("investigate", "observe", expected=0.5, trials=100, successes=60)
        assert audit.observed == 0.6
        assert audit.drift == pytest.approx(0.1)
        assert audit.tolerance == pytest.approx(0.15)

    def test_tolerance_floor(self):
        audit = MethodAudit("investigate", "observe", expected=0.9, trials=100_000, successes=90_000)
        assert audit.tolerance == 0.05

    def test_empty_audit(self):
        audit = MethodAudit("denounce", "official")
        assert audit.observed is None
        assert audit.drift is None
        assert audit.to_dict()["mean_evidence"] is None


class TestAuditor:
    """Running the audit against the reference scenario."""

    def test_scenario_target(self):
        game = build_scenario(seed=3, position=4)
        target = game.registry.get(TARGET_ID)
        assert target.position_index == 3
        assert target.evidence_level == 45
        assert not target.is_fully_revealed

    def test_every_method_audited(self):
        result = OutcomeAuditor(trials=5, seed=1, position=6).run()
        families = {a.family for a in result.audits}
        assert families == {"investigate", "cultivate", "denounce", "leader_action"}
        assert all(0.0 <= a.expected <= 1.0 for a in result.audits)
        assert result.error_count == 0

    def test_refused_methods_reported_as_info(self):
        result = OutcomeAuditor(trials=3, seed=1, position=1).run()
        refused = [i for i in result.issues if i.severity == Severity.INFO]
        assert any(i.family == "leader_action" for i in refused)
        leader = [a for a in result.audits if a.family == "leader_action"]
        assert all(a.trials == 0 for a in leader)

    def test_out_of_range_formula_is_error(self):
        auditor = OutcomeAuditor(trials=1)
        result = AuditResult()
        auditor._judge(MethodAudit("cultivate", "casual", expected=1.2, trials=1, successes=1), result)
        assert result.error_count == 1
        assert not result.is_healthy

    def test_drift_beyond_tolerance_is_warning(self):
        auditor = OutcomeAuditor(trials=1)
        result = AuditResult()
        auditor._judge(MethodAudit("cultivate", "casual", expected=0.5, trials=1000, successes=900), result)
        assert result.warning_count == 1
        assert result.is_healthy


class TestCommandLine:
    """Exit codes and output formats."""

    def test_json_output(self, capsys):
        code = main(["--trials", "5", "--seed", "2", "--position", "6", "--json"])
        payload = json.loads(capsys.readouterr().out)

        assert code in (0, 1)
        assert payload["status"] == "pass"
        assert payload["summary"]["errors"] == 0
        assert payload["summary"]["methods"] == len(payload["audits"])

    def test_console_output(self, capsys):
        code = main(["--trials", "3", "--position", "5"])
        assert code in (0, 1)
        out = capsys.readouterr().out
        assert "PASS" in out
        assert "errors: 0" in out
