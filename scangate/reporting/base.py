"""
ScanGate Report Context

Everything a reporter needs about a finished run, collected in one place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from scangate.core.finding import FileResult, Finding
from scangate.policy.engine import PolicyResult
from scangate.rules.store import RuleSet


def display_path(path: str) -> str:
    """Path relative to the working directory when inside it, with forward slashes."""
    try:
        relative = Path(path).resolve().relative_to(Path.cwd().resolve())
    except (ValueError, OSError):
        return path.replace("\\", "/")
    return relative.as_posix()


@dataclass
class ReportContext:
    target: str
    results: list[FileResult]
    policy: PolicyResult
    rule_set: RuleSet
    overrides: Mapping[str, str] = field(default_factory=dict)
    duration_ms: float = 0.0
    trace_id: Optional[str] = None

    @property
    def reported(self) -> list[Finding]:
        return self.policy.reported

    @property
    def cached_count(self) -> int:
        return sum(1 for r in self.results if r.cached)

    @property
    def total_lines(self) -> int:
        return sum(r.line_count for r in self.results)


def write_report(content: str, output_file: Optional[str]) -> None:
    if output_file:
        path = Path(output_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
