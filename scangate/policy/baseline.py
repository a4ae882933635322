"""
ScanGate Baseline Manager

A baseline is a snapshot of accepted findings. Findings whose hash is in
the loaded baseline are "baselined" and ignored by warn/enforce modes.

Baseline document::

    {"version": "1.0.0", "generatedAt": "...", "issues": [{file, line, rule, hash}]}

The hash is SHA-256 of ``<last three path segments>:<line>:<rule>``,
truncated to 16 hex characters, so a baseline survives moving the
repository to another directory.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from scangate.core.cache import write_json_atomically
from scangate.core.errors import BaselineParseError
from scangate.core.finding import Finding

logger = logging.getLogger(__name__)

DEFAULT_BASELINE_FILE = ".scangate-baseline.json"
BASELINE_VERSION = "1.0.0"


def baseline_hash(file: str, line: int, rule: str) -> str:
    """Hash a (file, line, rule) triple using the file's last three path segments."""
    rel_path = "/".join(file.replace("\\", "/").split("/")[-3:])
    return hashlib.sha256(f"{rel_path}:{line}:{rule}".encode("utf-8")).hexdigest()[:16]


def finding_hash(finding: Finding) -> str:
    return baseline_hash(finding.file, finding.line, finding.rule_name)


@dataclass(frozen=True)
class BaselineStats:
    total: int
    baselined: int
    new: int

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "baselined": self.baselined, "new": self.new}


class BaselineManager:
    """Loads, generates and applies a baseline file."""

    def __init__(self, root_dir: Path, baseline_file: str = DEFAULT_BASELINE_FILE) -> None:
        path = Path(baseline_file)
        self.baseline_path = path if path.is_absolute() else Path(root_dir) / path
        self.document: Optional[dict[str, Any]] = None
        self._hashes: set[str] = set()

    @property
    def loaded(self) -> bool:
        return self.document is not None

    def load(self) -> bool:
        """
        Load the baseline file.

        Returns:
            True if a baseline existed and was parsed. A missing file is not
            an error; an unparsable one is logged and treated as absent.
        """
        self.document = None
        self._hashes = set()
        if not self.baseline_path.exists():
            return False
        try:
            document = self._parse(self.baseline_path)
        except BaselineParseError as exc:
            logger.warning("Ignoring baseline: %s", exc)
            return False

        self.document = document
        self._hashes = {str(issue["hash"]) for issue in document["issues"]}
        logger.debug("Loaded baseline %s with %d issues", self.baseline_path, len(self._hashes))
        return True

    @staticmethod
    def _parse(path: Path) -> dict[str, Any]:
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise BaselineParseError(f"{path}: {exc}") from exc

        issues = document.get("issues") if isinstance(document, dict) else None
        if not isinstance(issues, list):
            raise BaselineParseError(f"{path}: missing 'issues' list")
        for issue in issues:
            if not isinstance(issue, dict) or "hash" not in issue:
                raise BaselineParseError(f"{path}: issue entry without a hash")
        return document

    def generate(self, findings: Iterable[Finding]) -> int:
        """
        Write a new baseline covering ``findings`` and make it the loaded one.

        Returns:
            The number of issues written.
        """
        issues = [
            {
                "file": finding.file,
                "line": finding.line,
                "rule": finding.rule_name,
                "hash": finding_hash(finding),
            }
            for finding in sorted(findings, key=lambda f: (f.file, f.line, f.column, f.rule_name))
        ]
        document = {
            "version": BASELINE_VERSION,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "issues": issues,
        }
        write_json_atomically(self.baseline_path, document)
        self.document = document
        self._hashes = {issue["hash"] for issue in issues}
        logger.info("Baseline written with %d issues to %s", len(issues), self.baseline_path)
        return len(issues)

    def is_baselined(self, finding: Finding) -> bool:
        return finding_hash(finding) in self._hashes

    def filter_new(self, findings: Iterable[Finding]) -> list[Finding]:
        """Return only findings that are not in the baseline."""
        return [f for f in findings if not self.is_baselined(f)]

    def stats(self, findings: Iterable[Finding]) -> BaselineStats:
        findings = list(findings)
        baselined = sum(1 for f in findings if self.is_baselined(f))
        return BaselineStats(total=len(findings), baselined=baselined, new=len(findings) - baselined)
