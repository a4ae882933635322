"""
ScanGate GitHub Actions Integration

Provides helpers for running ScanGate in GitHub Actions:
- Workflow command annotations (error / warning / notice)
- Step summary output
- CI environment detection
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from typing import Mapping, Optional

from scangate.core.finding import Finding
from scangate.reporting.base import ReportContext, display_path, write_report

logger = logging.getLogger(__name__)


def _env(environ: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def is_github_actions(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Check if currently running inside GitHub Actions."""
    return _env(environ).get("GITHUB_ACTIONS") == "true"


def is_ci(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Check for a CI environment (progress indicators are disabled there)."""
    env = _env(environ)
    return is_github_actions(env) or bool(env.get("CI"))


def no_color(environ: Optional[Mapping[str, str]] = None) -> bool:
    return bool(_env(environ).get("NO_COLOR"))


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def format_annotation(finding: Finding) -> str:
    """
    Format one finding as a workflow command:

        ::error file={path},line={line},col={col}::{message} [{category}]
    """
    level = finding.severity.annotation_level
    file_path = _escape_property(display_path(finding.file))
    message = _escape_data(f"{finding.message} [{finding.category}]")
    return f"::{level} file={file_path},line={finding.line},col={finding.column}::{message}"


class GitHubAnnotationReporter:
    """Emits one annotation line per reported finding."""

    def report(self, context: ReportContext, output_file: Optional[str] = None) -> str:
        findings = sorted(context.reported, key=lambda f: (f.file, f.line, f.column))
        content = "\n".join(format_annotation(f) for f in findings)
        write_report(content, output_file)
        return content


def write_step_summary(
    context: ReportContext,
    environ: Optional[Mapping[str, str]] = None,
) -> bool:
    """
    Append a markdown summary to the GitHub Actions step summary.
    This appears on the workflow run page.

    Returns:
        True if the summary was written.
    """
    env = _env(environ)
    summary_file = env.get("GITHUB_STEP_SUMMARY")
    if not is_github_actions(env) or not summary_file:
        return False

    policy = context.policy
    counter = Counter(f.severity.value for f in policy.reported)
    lines = [
        "## ScanGate Results\n",
        f"**Target:** `{context.target}`  **Mode:** `{policy.mode.value}`\n",
        "| Severity | Count |",
        "|----------|-------|",
    ]
    for sev in ("error", "warning", "info"):
        lines.append(f"| {sev} | {counter.get(sev, 0)} |")
    lines.append("")

    if policy.baseline_loaded:
        lines.append(
            f"Baseline: {policy.stats.baselined} of {policy.stats.total} findings accepted, "
            f"{policy.stats.new} new."
        )
        lines.append("")

    if policy.should_fail:
        lines.append("### Pipeline Status: FAILED")
        lines.append("New errors must be resolved before merging.")
    elif policy.reported:
        lines.append("### Pipeline Status: WARNINGS")
        lines.append("Review the findings above.")
    else:
        lines.append("### Pipeline Status: PASSED")
        lines.append("No issues found.")
    lines.append("")

    if policy.reported:
        lines.append("<details><summary>Top Findings</summary>\n")
        severity_order = {"error": 0, "warning": 1, "info": 2}
        ordered = sorted(policy.reported, key=lambda f: (severity_order[f.severity.value], f.file, f.line))
        for i, f in enumerate(ordered[:20], start=1):
            lines.append(
                f"{i}. **{f.severity.value}** `{display_path(f.file)}:{f.line}` - {f.message} ({f.rule_name})"
            )
        lines.append("\n</details>")

    try:
        with open(summary_file, "a", encoding="utf-8") as fh:
            fh.write("\n".join(lines) + "\n")
    except OSError as exc:
        logger.warning("Cannot write step summary %s: %s", summary_file, exc)
        return False
    return True
