"""
Tests for Reporting Modules
"""

import json
from pathlib import Path

import pytest

from scangate.core.finding import FileResult, Finding, Severity
from scangate.integrations.github import (
    GitHubAnnotationReporter,
    format_annotation,
    is_ci,
    is_github_actions,
    write_step_summary,
)
from scangate.policy.engine import PolicyEngine, ScanMode
from scangate.reporting.base import ReportContext
from scangate.reporting.console import ConsoleReporter
from scangate.reporting.json_reporter import JSONReporter
from scangate.reporting.sarif import SARIFReporter
from scangate.rules.store import RuleSet


def _context(findings: list[Finding], rule_set: RuleSet, mode: ScanMode = ScanMode.AUDIT, **kwargs) -> ReportContext:
    by_file: dict[str, list[Finding]] = {}
    for finding in findings:
        by_file.setdefault(finding.file, []).append(finding)
    results = [
        FileResult(path=path, line_count=10, findings=items, score=80, cached=path.endswith("io.ts"))
        for path, items in sorted(by_file.items())
    ]
    return ReportContext(
        target="/repo",
        results=results,
        policy=PolicyEngine(mode).evaluate(findings),
        rule_set=rule_set,
        duration_ms=12.5,
        trace_id="abc12345",
        **kwargs,
    )


@pytest.fixture
def context(sample_findings: list[Finding], rule_set: RuleSet) -> ReportContext:
    return _context(sample_findings, rule_set)


class TestJSONReporter:
    """Tests for JSONReporter."""

    def test_generates_valid_json(self, context: ReportContext):
        """Test that the report is valid JSON with the run summary."""
        data = json.loads(JSONReporter().report(context))

        assert data["mode"] == "audit"
        assert data["files"] == 2
        assert data["cachedFiles"] == 1
        assert data["issues"] == 3
        assert data["errors"] == 1
        assert data["warnings"] == 1
        assert data["bySeverity"] == {"error": 1, "warning": 1, "info": 1}
        assert data["baseline"] == {"total": 3, "baselined": 0, "new": 3}
        assert data["traceId"] == "abc12345"
        assert data["findings"][0]["ruleName"] == "no_eval"
        assert data["findings"][0]["endColumn"] == 20

    def test_writes_file(self, context: ReportContext, temp_dir: Path):
        """Test writing the report to a nested output path."""
        output = temp_dir / "reports" / "scan.json"

        content = JSONReporter().report(context, str(output))

        assert output.read_text(encoding="utf-8") == content


class TestSARIFReporter:
    """Tests for SARIFReporter."""

    def test_generates_valid_sarif(self, context: ReportContext):
        """Test the SARIF 2.1.0 structure."""
        data = json.loads(SARIFReporter().report(context))

        assert data["version"] == "2.1.0"
        assert "$schema" in data
        run = data["runs"][0]
        assert run["tool"]["driver"]["name"] == "ScanGate"
        assert [r["id"] for r in run["tool"]["driver"]["rules"]] == ["no_eval", "sync_read", "console_log"]
        assert len(run["results"]) == 3

    def test_levels_and_regions(self, context: ReportContext):
        """Test severity mapping and 1-based regions."""
        run = json.loads(SARIFReporter().report(context))["runs"][0]
        by_rule = {r["ruleId"]: r for r in run["results"]}

        assert by_rule["no_eval"]["level"] == "error"
        assert by_rule["sync_read"]["level"] == "warning"
        assert by_rule["console_log"]["level"] == "note"

        region = by_rule["no_eval"]["locations"][0]["physicalLocation"]["region"]
        assert region == {"startLine": 2, "startColumn": 15, "endLine": 2, "endColumn": 20}
        assert by_rule["no_eval"]["ruleIndex"] == 0

    def test_rules_follow_overrides(self, sample_findings: list[Finding], rule_set: RuleSet):
        """Test that rules turned off are left out of the driver."""
        context = _context(sample_findings, rule_set, overrides={"console_log": "off", "no_eval": "warn"})

        driver = json.loads(SARIFReporter().report(context))["runs"][0]["tool"]["driver"]

        levels = {r["id"]: r["defaultConfiguration"]["level"] for r in driver["rules"]}
        assert levels == {"no_eval": "warning", "sync_read": "warning"}


class TestConsoleReporter:
    """Tests for ConsoleReporter."""

    def test_full_report(self, context: ReportContext):
        """Test the table, details and summary sections."""
        output = ConsoleReporter(color=False).report(context)

        assert "| File" in output
        assert "(cached)" in output
        assert "Issue Details:" in output
        assert "Line 2:15 Avoid eval()" in output
        assert "Files Scanned" in output
        assert "Issues Found" in output
        assert "\x1b[" not in output

    def test_quiet_shows_only_error_files(self, context: ReportContext):
        """Test that -q keeps files with errors and drops details."""
        output = ConsoleReporter(color=False, quiet=1).report(context)

        assert "app.ts" in output
        assert "io.ts" not in output
        assert "Issue Details:" not in output

    def test_silent(self, context: ReportContext):
        """Test that -qq prints nothing."""
        assert ConsoleReporter(quiet=2).report(context) == ""

    def test_no_issues(self, rule_set: RuleSet):
        """Test the clean-run message."""
        output = ConsoleReporter(color=False).report(_context([], rule_set))

        assert "No issues found." in output

    def test_enforce_hint(self, sample_findings: list[Finding], rule_set: RuleSet):
        """Test the failing-build hint in enforce mode."""
        context = _context(sample_findings, rule_set, mode=ScanMode.ENFORCE)

        output = ConsoleReporter(color=False).report(context)

        assert "[Enforce] 1 new error(s) - failing build" in output


class TestGitHubIntegration:
    """Tests for GitHub Actions output."""

    def test_format_annotation(self):
        """Test the workflow command format."""
        finding = Finding(
            file="src/app.ts",
            line=3,
            column=1,
            end_column=13,
            rule_name="console_log",
            category="STYLE",
            message="Remove console.log",
            severity=Severity.INFO,
        )

        assert format_annotation(finding) == "::notice file=src/app.ts,line=3,col=1::Remove console.log [STYLE]"

    def test_annotation_escaping(self):
        """Test that workflow command data is escaped."""
        finding = Finding(
            file="src/app.ts",
            line=1,
            column=1,
            end_column=2,
            rule_name="r",
            category="SECURITY",
            message="100% bad\nreally",
            severity=Severity.ERROR,
        )

        assert format_annotation(finding).endswith("::100%25 bad%0Areally [SECURITY]")

    def test_annotation_reporter(self, context: ReportContext):
        """Test one annotation per reported finding."""
        lines = GitHubAnnotationReporter().report(context).splitlines()

        assert len(lines) == 3
        assert sum(1 for line in lines if line.startswith("::error ")) == 1
        assert sum(1 for line in lines if line.startswith("::warning ")) == 1

    def test_environment_detection(self):
        """Test CI detection from the environment."""
        assert is_github_actions({"GITHUB_ACTIONS": "true"})
        assert not is_github_actions({})
        assert is_ci({"CI": "1"})
        assert not is_ci({})

    def test_step_summary(self, context: ReportContext, temp_dir: Path):
        """Test that the markdown summary is appended."""
        summary = temp_dir / "summary.md"
        environ = {"GITHUB_ACTIONS": "true", "GITHUB_STEP_SUMMARY": str(summary)}

        assert write_step_summary(context, environ)

        content = summary.read_text(encoding="utf-8")
        assert "## ScanGate Results" in content
        assert "| error | 1 |" in content

    def test_step_summary_outside_actions(self, context: ReportContext, temp_dir: Path):
        """Test that nothing is written outside GitHub Actions."""
        assert not write_step_summary(context, {"GITHUB_STEP_SUMMARY": str(temp_dir / "s.md")})
        assert not (temp_dir / "s.md").exists()
