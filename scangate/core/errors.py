"""
ScanGate Error Taxonomy

Run-fatal errors abort the scan and exit non-zero:
- RuleLoadError
- LockContentionError

Recoverable errors are raised where they happen and absorbed by the owner:
- FileReadError        (the file is dropped from the results)
- CacheCorruptionError (the whole cache is discarded)
- BaselineParseError   (the baseline is treated as absent)
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Union


class ScanGateError(Exception):
    """Base class for all ScanGate errors."""


class ConfigError(ScanGateError):
    """Raised when an explicitly requested config file cannot be used."""


class RuleLoadError(ScanGateError):
    """Raised when the rule database cannot be read or contains bad rules."""

    def __init__(self, source: str, problems: Iterable[str]) -> None:
        self.source = source
        self.problems = list(problems)
        detail = "; ".join(self.problems) if self.problems else "unknown error"
        super().__init__(f"Failed to load rules from {source}: {detail}")


class LockContentionError(ScanGateError):
    """Raised when another scan holds a fresh lock on the same root."""

    def __init__(self, lock_path: Path) -> None:
        self.lock_path = lock_path
        super().__init__(f"Another scan is in progress (lock: {lock_path})")


class FileReadError(ScanGateError):
    """Raised when a candidate file cannot be read."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class CacheCorruptionError(ScanGateError):
    """Raised when the cache document is unreadable or malformed."""


class BaselineParseError(ScanGateError):
    """Raised when the baseline document is unreadable or malformed."""
