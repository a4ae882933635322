"""
ScanGate Ignore Resolver

Merges the built-in ignore list with ``.gitignore`` and ``.scangateignore``
patterns from the scan root.

Matching rules:
- a pattern without ``*`` matches when it is a substring of the path
- a pattern with ``*`` is an anchored glob (``*`` matches any run of
  characters, including ``/``) tested against the full relative path and
  against the basename
- a pattern starting with ``/`` is anchored at the scan root and matches
  that path and everything below it
- ``!negation`` patterns are not supported and never match anything
- matching is case-sensitive
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

DEFAULT_IGNORES = ["node_modules", "dist", ".git", "coverage", "*.min.js"]
IGNORE_FILES = (".gitignore", ".scangateignore")


def _glob_to_regex(pattern: str) -> "re.Pattern[str]":
    parts = (re.escape(part) for part in pattern.split("*"))
    return re.compile("^" + ".*".join(parts) + "$")


@dataclass
class IgnoreSet:
    """An ordered, de-duplicated set of ignore patterns."""

    patterns: list[str] = field(default_factory=list)
    _globs: dict[str, "re.Pattern[str]"] = field(default_factory=dict, repr=False)

    def add(self, pattern: str) -> None:
        pattern = pattern.strip()
        if not pattern or pattern.startswith("#") or pattern in self.patterns:
            return
        self.patterns.append(pattern)
        if "*" in pattern and not pattern.startswith("!"):
            self._globs[pattern] = _glob_to_regex(pattern)

    def extend(self, patterns: Iterable[str]) -> None:
        for pattern in patterns:
            self.add(pattern)

    def matches(self, path: str) -> bool:
        """Return True if the relative path should be excluded."""
        normalized = path.replace("\\", "/").lstrip("/")
        rooted = "/" + normalized
        basename = PurePosixPath(normalized).name
        for pattern in self.patterns:
            if pattern.startswith("!"):
                # Negation is unsupported.
                continue
            regex = self._globs.get(pattern)
            if pattern.startswith("/"):
                if regex is not None:
                    if regex.match(rooted):
                        return True
                    continue
                anchor = pattern.rstrip("/")
                if anchor and (rooted == anchor or rooted.startswith(anchor + "/")):
                    return True
            elif regex is not None:
                if regex.match(normalized) or regex.match(basename):
                    return True
            elif pattern in normalized:
                return True
        return False

    def __contains__(self, pattern: str) -> bool:
        return pattern in self.patterns

    def __len__(self) -> int:
        return len(self.patterns)


class IgnoreResolver:
    """Builds the IgnoreSet for a scan root."""

    def __init__(
        self,
        extra_patterns: Optional[Iterable[str]] = None,
        respect_gitignore: bool = True,
    ) -> None:
        self.extra_patterns = list(extra_patterns or [])
        self.respect_gitignore = respect_gitignore

    def resolve(self, root_dir: Path) -> IgnoreSet:
        ignore_set = IgnoreSet()
        ignore_set.extend(DEFAULT_IGNORES)
        ignore_set.extend(self.extra_patterns)

        for name in IGNORE_FILES:
            if name == ".gitignore" and not self.respect_gitignore:
                continue
            ignore_set.extend(self._read_patterns(root_dir / name))

        return ignore_set

    @staticmethod
    def _read_patterns(path: Path) -> list[str]:
        if not path.is_file():
            return []
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Cannot read ignore file %s: %s", path, exc)
            return []
        return [line.strip() for line in content.splitlines()]
