"""
ScanGate Enforcement Policy

Decides which findings are reported and whether the run fails:
- audit:   report every finding, never fail
- warn:    report findings not in the baseline, never fail
- enforce: report findings not in the baseline, fail on any error
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from scangate.core.finding import Finding, Severity
from scangate.policy.baseline import BaselineManager, BaselineStats


class ScanMode(Enum):
    AUDIT = "audit"
    WARN = "warn"
    ENFORCE = "enforce"

    @classmethod
    def from_string(cls, value: str) -> "ScanMode":
        return cls(value.strip().lower())


@dataclass
class PolicyResult:
    """Result of evaluating findings against the run mode."""

    mode: ScanMode
    findings: list[Finding] = field(default_factory=list)
    reported: list[Finding] = field(default_factory=list)
    stats: BaselineStats = field(default_factory=lambda: BaselineStats(0, 0, 0))
    baseline_loaded: bool = False
    should_fail: bool = False

    @property
    def errors(self) -> int:
        return sum(1 for f in self.reported if f.severity is Severity.ERROR)

    @property
    def warnings(self) -> int:
        return sum(1 for f in self.reported if f.severity is Severity.WARNING)

    @property
    def exit_code(self) -> int:
        return 1 if self.should_fail else 0


class PolicyEngine:
    """Applies the run mode and the baseline to the aggregated findings."""

    def __init__(self, mode: ScanMode, baseline: Optional[BaselineManager] = None) -> None:
        self.mode = mode
        self.baseline = baseline

    def evaluate(self, findings: list[Finding]) -> PolicyResult:
        has_baseline = self.baseline is not None and self.baseline.loaded

        if has_baseline:
            stats = self.baseline.stats(findings)
            new_findings = self.baseline.filter_new(findings)
        else:
            stats = BaselineStats(total=len(findings), baselined=0, new=len(findings))
            new_findings = list(findings)

        reported = list(findings) if self.mode is ScanMode.AUDIT else new_findings
        result = PolicyResult(
            mode=self.mode,
            findings=list(findings),
            reported=reported,
            stats=stats,
            baseline_loaded=has_baseline,
        )
        result.should_fail = self.mode is ScanMode.ENFORCE and result.errors > 0
        return result
