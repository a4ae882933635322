"""
ScanGate Console Reporter

Renders the human-readable table report: one row per file with findings,
issue details, a summary table and the enforcement hint.

Quiet levels:
    0  full report
    1  only files with errors, no details
    2  nothing
"""

from __future__ import annotations

from collections import defaultdict
from typing import Optional, Sequence

import click

from scangate import __version__
from scangate.core.finding import FileResult, Finding, Severity
from scangate.policy.engine import ScanMode
from scangate.reporting.base import ReportContext, display_path

# Severity colors
SEVERITY_COLORS = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}

SEVERITY_ICONS = {
    Severity.ERROR: "X",
    Severity.WARNING: "!",
    Severity.INFO: "i",
}


class ConsoleReporter:
    """Builds a formatted scan report for the terminal."""

    def __init__(self, color: bool = True, quiet: int = 0) -> None:
        self.color = color
        self.quiet = quiet

    def _style(self, text: str, **styles) -> str:
        if not self.color:
            return text
        return click.style(text, **styles)

    def report(self, context: ReportContext) -> str:
        """
        Build the full report.

        Args:
            context: The finished run.

        Returns:
            The rendered report, empty in silent mode.
        """
        if self.quiet >= 2:
            return ""

        by_file: dict[str, list[Finding]] = defaultdict(list)
        for finding in context.reported:
            by_file[finding.file].append(finding)

        lines: list[str] = []
        lines.extend(self._file_table(context.results, by_file))
        if self.quiet == 0:
            lines.extend(self._details(by_file))
            lines.extend(self._summary(context))
        lines.extend(self._hint(context))
        return "\n".join(lines)

    def _file_table(self, results: Sequence[FileResult], by_file: dict[str, list[Finding]]) -> list[str]:
        rows: list[list[str]] = []
        colors: list[Optional[str]] = []
        for result in sorted(results, key=lambda r: r.path):
            findings = by_file.get(result.path, [])
            errors = sum(1 for f in findings if f.severity is Severity.ERROR)
            if not findings or (self.quiet == 1 and not errors):
                continue
            warnings = sum(1 for f in findings if f.severity is Severity.WARNING)
            infos = sum(1 for f in findings if f.severity is Severity.INFO)
            name = display_path(result.path) + (" (cached)" if result.cached else "")
            rows.append([name, str(errors or "-"), str(warnings or "-"), str(infos or "-"), str(result.score)])
            colors.append("green" if result.score >= 80 else "yellow" if result.score >= 50 else "red")

        if not rows:
            if self.quiet == 0:
                return [self._style("No issues found.", fg="green", bold=True), ""]
            return []

        header = ["File", "Errors", "Warnings", "Info", "Score"]
        return self._table(header, rows, score_colors=colors) + [""]

    def _details(self, by_file: dict[str, list[Finding]]) -> list[str]:
        if not by_file:
            return []
        lines = [self._style("Issue Details:", bold=True), ""]
        for path in sorted(by_file):
            lines.append(self._style(display_path(path), bold=True))
            for finding in sorted(by_file[path], key=lambda f: (f.line, f.column)):
                color = SEVERITY_COLORS[finding.severity]
                icon = self._style(SEVERITY_ICONS[finding.severity], fg=color)
                lines.append(
                    f"  {icon} Line {finding.line}:{finding.column} {finding.message} "
                    + self._style(f"[{finding.category}/{finding.rule_name}]", fg="bright_black")
                )
            lines.append("")
        return lines

    def _summary(self, context: ReportContext) -> list[str]:
        policy = context.policy
        total_files = len(context.results)
        cached = context.cached_count
        ratio = (cached / total_files * 100) if total_files else 0.0

        rows = [
            ["Files Scanned", str(total_files)],
            ["Total Lines", str(context.total_lines)],
            ["Cached Files", f"{cached} ({ratio:.0f}%)"],
            ["Mode", policy.mode.value.upper()],
        ]
        if policy.baseline_loaded:
            rows.extend([
                ["Total Issues", str(policy.stats.total)],
                ["Baselined", f"{policy.stats.baselined} (ignored)"],
                ["New Issues", str(policy.stats.new)],
            ])
        else:
            rows.append(["Issues Found", str(len(policy.findings))])
        rows.extend([
            ["Errors", str(policy.errors)],
            ["Warnings", str(policy.warnings)],
            ["Duration", f"{context.duration_ms:.2f}ms"],
        ])

        lines = [self._style("-" * 55, fg="bright_black"), self._style("  ScanGate Summary", bold=True)]
        lines.append(self._style(f"  Version: {__version__}  Target: {context.target}", fg="white"))
        lines.extend(self._table(["Metric", "Value"], rows))
        return lines

    def _hint(self, context: ReportContext) -> list[str]:
        policy = context.policy
        if policy.mode is ScanMode.ENFORCE and policy.errors:
            return ["", self._style(f"[Enforce] {policy.errors} new error(s) - failing build", fg="red", bold=True)]
        if policy.mode is ScanMode.WARN and policy.errors:
            return ["", self._style(f"[Warn] {policy.errors} new error(s) - consider fixing", fg="yellow")]
        return []

    def _table(
        self,
        header: list[str],
        rows: list[list[str]],
        score_colors: Optional[list[Optional[str]]] = None,
    ) -> list[str]:
        widths = [max(len(header[i]), *(len(row[i]) for row in rows)) for i in range(len(header))]
        border = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

        def render(cells: list[str], color: Optional[str] = None, bold: bool = False) -> str:
            parts = []
            for index, (cell, width) in enumerate(zip(cells, widths)):
                padded = cell.ljust(width) if index == 0 else cell.rjust(width)
                if bold:
                    padded = self._style(padded, bold=True)
                elif color and index == len(cells) - 1:
                    padded = self._style(padded, fg=color)
                parts.append(f" {padded} ")
            return "|" + "|".join(parts) + "|"

        lines = [border, render(header, bold=True), border]
        for index, row in enumerate(rows):
            color = score_colors[index] if score_colors else None
            lines.append(render(row, color=color))
        lines.append(border)
        return lines
