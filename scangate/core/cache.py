"""
ScanGate Content Cache

Persisted map from absolute file path to (content hash, findings).

Cache document::

    {"version": "1", "rulesHash": "...", "files": {path: {"hash": ..., "findings": [...]}}}

A document whose ``rulesHash`` differs from the current rule set is
discarded on load, so findings never survive a rule change.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional

from scangate.core.errors import CacheCorruptionError
from scangate.core.finding import Finding

logger = logging.getLogger(__name__)

CACHE_FILENAME = ".scangate-cache.json"
CACHE_VERSION = "1"


def write_json_atomically(path: Path, payload: dict[str, Any]) -> None:
    """Write JSON to a temp file beside ``path`` and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class ContentCache:
    """In-memory cache for one run, loaded from and saved to a JSON document."""

    def __init__(self, cache_file: Path, rules_hash: str) -> None:
        self.cache_file = Path(cache_file)
        self.rules_hash = rules_hash
        self._files: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @classmethod
    def for_root(cls, root_dir: Path, rules_hash: str) -> "ContentCache":
        return cls(Path(root_dir) / CACHE_FILENAME, rules_hash)

    def load(self) -> bool:
        """
        Load the cache document.

        Returns:
            True if entries were loaded. A missing, corrupt, outdated or
            rule-mismatched document leaves the cache empty.
        """
        self._files = {}
        try:
            document = self._read_document()
        except CacheCorruptionError as exc:
            logger.warning("Discarding scan cache: %s", exc)
            return False
        if document is None:
            return False

        if document.get("version") != CACHE_VERSION:
            logger.debug("Cache version %r != %r, starting fresh", document.get("version"), CACHE_VERSION)
            return False
        if document.get("rulesHash") != self.rules_hash:
            logger.debug("Rule set changed since last run, cache invalidated")
            return False

        self._files = document["files"]
        return True

    def _read_document(self) -> Optional[dict[str, Any]]:
        if not self.cache_file.exists():
            return None
        try:
            document = json.loads(self.cache_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CacheCorruptionError(f"{self.cache_file}: {exc}") from exc

        if not isinstance(document, dict) or not isinstance(document.get("files", {}), dict):
            raise CacheCorruptionError(f"{self.cache_file}: unexpected document structure")
        document.setdefault("files", {})
        for path, entry in document["files"].items():
            if (
                not isinstance(entry, dict)
                or not isinstance(entry.get("hash"), str)
                or not isinstance(entry.get("findings"), list)
            ):
                raise CacheCorruptionError(f"{self.cache_file}: malformed entry for {path}")
        return document

    def get(self, path: str, content_hash: str) -> Optional[list[Finding]]:
        """Return cached findings, or None if the path is new or its content changed."""
        with self._lock:
            entry = self._files.get(path)
        findings: Optional[list[Finding]] = None
        if isinstance(entry, dict) and entry.get("hash") == content_hash:
            try:
                findings = [Finding.from_dict(item) for item in entry.get("findings", [])]
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Ignoring malformed cache entry for %s: %s", path, exc)

        with self._lock:
            if findings is None:
                self.misses += 1
            else:
                self.hits += 1
        return findings

    def set(self, path: str, content_hash: str, findings: list[Finding]) -> None:
        entry = {"hash": content_hash, "findings": [f.to_dict() for f in findings]}
        with self._lock:
            self._files[path] = entry

    def save(self) -> None:
        with self._lock:
            document = {
                "version": CACHE_VERSION,
                "rulesHash": self.rules_hash,
                "files": dict(self._files),
            }
        write_json_atomically(self.cache_file, document)

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._files
