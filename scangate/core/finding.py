"""
ScanGate Finding Model

A Finding represents one rule violation at a file/line/column.
A FileResult groups the findings of one scanned file with its score.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def from_string(cls, value: str) -> "Severity":
        """Parse a severity from a string (case-insensitive)."""
        normalized = value.strip().lower()
        if normalized == "warn":
            return cls.WARNING
        return cls(normalized)

    @property
    def sarif_level(self) -> str:
        """SARIF result level: info maps to note, the rest pass through."""
        return "note" if self is Severity.INFO else self.value

    @property
    def annotation_level(self) -> str:
        """GitHub Actions command level: info maps to notice."""
        return "notice" if self is Severity.INFO else self.value

    @property
    def penalty(self) -> int:
        return {Severity.ERROR: 20, Severity.WARNING: 10, Severity.INFO: 5}[self]


@dataclass(frozen=True)
class Finding:
    file: str
    line: int
    column: int
    end_column: int
    rule_name: str
    category: str
    message: str
    severity: Severity

    def with_severity(self, severity: Severity) -> "Finding":
        if severity is self.severity:
            return self
        return Finding(
            file=self.file,
            line=self.line,
            column=self.column,
            end_column=self.end_column,
            rule_name=self.rule_name,
            category=self.category,
            message=self.message,
            severity=severity,
        )

    def display(self) -> str:
        """Human-readable output for console printing."""
        return (
            f"{self.file}:{self.line}:{self.column} "
            f"[{self.severity.value}] {self.message} ({self.rule_name})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert finding to a dictionary for JSON serialization."""
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "endColumn": self.end_column,
            "ruleName": self.rule_name,
            "category": self.category,
            "message": self.message,
            "severity": self.severity.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Finding":
        """Rebuild a finding from ``to_dict`` output. Raises KeyError/ValueError on bad data."""
        return cls(
            file=str(data["file"]),
            line=int(data["line"]),
            column=int(data["column"]),
            end_column=int(data.get("endColumn", data["column"])),
            rule_name=str(data["ruleName"]),
            category=str(data["category"]),
            message=str(data["message"]),
            severity=Severity.from_string(str(data["severity"])),
        )


def calculate_score(findings: Iterable[Finding]) -> int:
    """100 minus 20 per error, 10 per warning and 5 per info, floored at 0."""
    penalty = sum(f.severity.penalty for f in findings)
    return max(0, 100 - penalty)


@dataclass
class FileResult:
    path: str
    line_count: int
    findings: list[Finding] = field(default_factory=list)
    score: int = 100
    cached: bool = False
    parse_time_ms: float = 0.0

    @property
    def short_name(self) -> str:
        return Path(self.path).name or self.path

    def count(self, severity: Severity) -> int:
        return sum(1 for f in self.findings if f.severity is severity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "lineCount": self.line_count,
            "findings": [f.to_dict() for f in self.findings],
            "score": self.score,
            "cached": self.cached,
            "parseTimeMs": round(self.parse_time_ms, 3),
        }
