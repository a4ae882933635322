"""
ScanGate Rule Store

Loads lint rules from a rule database and compiles their patterns.

Supported sources:
- YAML document with a top-level ``rules:`` list
- SQLite database with a ``lint_rules`` table
- the built-in default rows (no source configured)

Loading is all-or-nothing: every row is validated and compiled first, and
all problems are reported together in a single RuleLoadError.

Patterns are compiled case-insensitive and multiline.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

import yaml

from scangate.core.errors import RuleLoadError
from scangate.core.finding import Severity
from scangate.rules.defaults import DEFAULT_RULES

logger = logging.getLogger(__name__)

SQLITE_HEADER = b"SQLite format 3\x00"
REQUIRED_FIELDS = ("name", "pattern", "category", "suggestion")
OVERRIDE_LEVELS = ("off", "warn", "error")


@dataclass(frozen=True)
class Rule:
    """A validated, compiled lint rule. Immutable for the life of a run."""

    id: int
    name: str
    pattern: "re.Pattern[str]"
    category: str
    severity: Severity
    suggestion: str
    scope: str = "GLOBAL"
    enabled: bool = True

    @property
    def title(self) -> str:
        """``eval_usage`` -> ``Eval Usage``."""
        return " ".join(word.capitalize() for word in self.name.replace("-", "_").split("_") if word)


@dataclass(frozen=True)
class ActiveRule:
    """A rule paired with the severity it reports at after overrides."""

    rule: Rule
    severity: Severity


def override_severity(level: str) -> Optional[Severity]:
    """Map an override level to a severity; ``off`` maps to None."""
    if level == "off":
        return None
    if level == "warn":
        return Severity.WARNING
    if level == "error":
        return Severity.ERROR
    raise ValueError(f"Unknown override level {level!r} (expected one of {OVERRIDE_LEVELS})")


class RuleSet:
    """An ordered, immutable collection of enabled rules."""

    def __init__(self, rules: Sequence[Rule], source: str = "<built-in>") -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._by_name = {rule.name: rule for rule in self._rules}
        self.source = source
        self.hash = self._compute_hash(self._rules)

    @staticmethod
    def _compute_hash(rules: Iterable[Rule]) -> str:
        pairs = sorted([rule.name, rule.pattern.pattern] for rule in rules)
        return hashlib.sha256(json.dumps(pairs).encode("utf-8")).hexdigest()

    def get(self, name: str) -> Optional[Rule]:
        return self._by_name.get(name)

    @property
    def categories(self) -> list[str]:
        return sorted({rule.category for rule in self._rules})

    def active_rules(self, overrides: Optional[Mapping[str, str]] = None) -> list[ActiveRule]:
        """
        Apply per-rule override levels without touching the rules themselves.

        Rules overridden to ``off`` are left out; ``warn``/``error`` replace
        the rule's own severity.
        """
        overrides = overrides or {}
        active: list[ActiveRule] = []
        for rule in self._rules:
            level = overrides.get(rule.name)
            if level is None:
                active.append(ActiveRule(rule, rule.severity))
                continue
            severity = override_severity(level)
            if severity is not None:
                active.append(ActiveRule(rule, severity))
        return active

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


def compile_rules(rows: Iterable[Mapping[str, Any]], source: str) -> RuleSet:
    """Validate and compile raw rule rows. Disabled rows are dropped."""
    rules: list[Rule] = []
    problems: list[str] = []
    seen: set[str] = set()

    for index, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            problems.append(f"rule #{index}: expected a mapping, got {type(row).__name__}")
            continue

        missing = [key for key in REQUIRED_FIELDS if not row.get(key)]
        label = row.get("name") or f"#{index}"
        if missing:
            problems.append(f"rule {label}: missing {', '.join(missing)}")
            continue

        name = str(row["name"])
        if name in seen:
            problems.append(f"rule {name}: duplicate name")
            continue
        seen.add(name)

        try:
            severity = Severity.from_string(str(row.get("severity") or "warning"))
        except ValueError:
            problems.append(f"rule {name}: invalid severity {row.get('severity')!r}")
            continue

        try:
            pattern = re.compile(str(row["pattern"]), re.MULTILINE | re.IGNORECASE)
        except re.error as exc:
            problems.append(f"rule {name}: invalid pattern ({exc})")
            continue

        try:
            rule_id = int(row.get("id") or index)
        except (TypeError, ValueError):
            problems.append(f"rule {name}: invalid id {row.get('id')!r}")
            continue

        enabled = row.get("enabled", True)
        if isinstance(enabled, str):
            enabled = enabled.strip().lower() not in ("0", "false", "no", "off")
        if not enabled:
            continue

        rules.append(
            Rule(
                id=rule_id,
                name=name,
                pattern=pattern,
                category=str(row["category"]),
                severity=severity,
                suggestion=str(row["suggestion"]),
                scope=str(row.get("scope") or "GLOBAL"),
                enabled=True,
            )
        )

    if problems:
        raise RuleLoadError(source, problems)
    return RuleSet(rules, source=source)


class RuleStore:
    """Owns the rule database for one run."""

    def __init__(self) -> None:
        self._connection: Optional[sqlite3.Connection] = None
        self._rule_set: Optional[RuleSet] = None

    @property
    def rule_set(self) -> RuleSet:
        if self._rule_set is None:
            raise RuntimeError("RuleStore.load() has not been called")
        return self._rule_set

    def load(self, path: Optional[Path] = None) -> RuleSet:
        """
        Load and compile rules.

        Args:
            path: YAML or SQLite rule database; None selects the built-in rules.

        Raises:
            RuleLoadError: if the source is unreadable or any rule is invalid.
        """
        if path is None:
            rule_set = compile_rules(DEFAULT_RULES, source="<built-in>")
        else:
            path = Path(path)
            rows = self._read_rows(path)
            rule_set = compile_rules(rows, source=str(path))

        self._rule_set = rule_set
        logger.debug(
            "Loaded %d rules from %s (%s)",
            len(rule_set), rule_set.source, ", ".join(rule_set.categories),
        )
        return rule_set

    def rule_set_hash(self) -> str:
        return self.rule_set.hash

    def active_rules(self, overrides: Optional[Mapping[str, str]] = None) -> list[ActiveRule]:
        return self.rule_set.active_rules(overrides)

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _read_rows(self, path: Path) -> list[Mapping[str, Any]]:
        try:
            with open(path, "rb") as handle:
                header = handle.read(len(SQLITE_HEADER))
        except OSError as exc:
            raise RuleLoadError(str(path), [str(exc)]) from exc

        if header == SQLITE_HEADER:
            return self._read_sqlite(path)
        return self._read_yaml(path)

    @staticmethod
    def _read_yaml(path: Path) -> list[Mapping[str, Any]]:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise RuleLoadError(str(path), [str(exc)]) from exc

        if isinstance(data, dict):
            data = data.get("rules")
        if not isinstance(data, list):
            raise RuleLoadError(str(path), ["expected a 'rules' list"])
        return data

    def _read_sqlite(self, path: Path) -> list[Mapping[str, Any]]:
        try:
            self._connection = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
            self._connection.row_factory = sqlite3.Row
            cursor = self._connection.execute(
                "SELECT * FROM lint_rules WHERE enabled = 1 ORDER BY id"
            )
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            self.close()
            raise RuleLoadError(str(path), [str(exc)]) from exc

    def __enter__(self) -> "RuleStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
