"""
ScanGate Scan Engine

Scans one file against the active rule set and returns a FileResult.

Per line:
- lines containing ``scangate-ignore`` are skipped
- ``scangate-ignore-next-line`` also skips the line after it
- comment lines (trimmed text starting with ``//`` or ``*``) are skipped
- every enabled rule is searched once; a match becomes a Finding with
  1-based line and column

Files above the large-file threshold are hashed and read through the
streaming reader so they are never held in memory whole.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Iterable, Mapping, Optional, Union

from scangate.core.cache import ContentCache
from scangate.core.errors import FileReadError
from scangate.core.finding import FileResult, Finding, calculate_score
from scangate.core.streaming import (
    DEFAULT_CHUNK_SIZE,
    ENCODING,
    fingerprint_file,
    hash_bytes,
    split_lines,
    stream_lines,
)
from scangate.rules.store import RuleSet

logger = logging.getLogger(__name__)

LARGE_FILE_THRESHOLD = 10 * 1024 * 1024
COMMENT_PREFIXES = ("//", "*")
IGNORE_MARKER = "scangate-ignore"
IGNORE_NEXT_LINE_MARKER = "scangate-ignore-next-line"


class ScanEngine:
    """
    Evaluates rules against files.

    Overrides are applied after evaluation, so cached findings stay valid
    when only override levels change.
    """

    def __init__(
        self,
        rule_set: RuleSet,
        overrides: Optional[Mapping[str, str]] = None,
        cache: Optional[ContentCache] = None,
        large_file_threshold: int = LARGE_FILE_THRESHOLD,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.rule_set = rule_set
        self.cache = cache
        self.large_file_threshold = large_file_threshold
        self.chunk_size = chunk_size
        self._severities = {
            active.rule.name: active.severity
            for active in rule_set.active_rules(overrides)
        }

    def scan(self, path: Union[str, Path], use_cache: bool = True) -> FileResult:
        """
        Scan a single file.

        Raises:
            FileReadError: if the file cannot be read.
        """
        file_path = str(path)
        start = time.perf_counter()

        try:
            size = os.path.getsize(file_path)
            if size > self.large_file_threshold:
                content_hash, line_count = fingerprint_file(file_path, self.chunk_size)
                lines: Optional[Iterable[tuple[str, int]]] = None
            else:
                with open(file_path, "rb") as handle:
                    data = handle.read()
                content_hash = hash_bytes(data)
                text_lines = split_lines(data.decode(ENCODING, errors="replace"))
                line_count = len(text_lines)
                lines = ((text, number) for number, text in enumerate(text_lines, start=1))
        except OSError as exc:
            raise FileReadError(file_path, exc.strerror or str(exc)) from exc

        if use_cache and self.cache is not None:
            cached = self.cache.get(file_path, content_hash)
            if cached is not None:
                findings = self._apply_overrides(cached)
                return FileResult(
                    path=file_path,
                    line_count=line_count,
                    findings=findings,
                    score=calculate_score(findings),
                    cached=True,
                    parse_time_ms=(time.perf_counter() - start) * 1000,
                )

        if lines is None:
            logger.debug("Streaming large file %s (%d bytes)", file_path, size)
            lines = stream_lines(file_path, self.chunk_size)

        try:
            raw_findings = self.analyze_lines(file_path, lines)
        except OSError as exc:
            raise FileReadError(file_path, exc.strerror or str(exc)) from exc

        if self.cache is not None:
            self.cache.set(file_path, content_hash, raw_findings)

        findings = self._apply_overrides(raw_findings)
        return FileResult(
            path=file_path,
            line_count=line_count,
            findings=findings,
            score=calculate_score(findings),
            cached=False,
            parse_time_ms=(time.perf_counter() - start) * 1000,
        )

    def analyze_lines(self, file_path: str, lines: Iterable[tuple[str, int]]) -> list[Finding]:
        """Evaluate every enabled rule against each eligible line."""
        findings: list[Finding] = []
        skip_next = False

        for text, line_number in lines:
            if skip_next:
                skip_next = False
                continue

            trimmed = text.strip()
            if IGNORE_NEXT_LINE_MARKER in trimmed:
                skip_next = True
                continue
            if IGNORE_MARKER in trimmed:
                continue
            if trimmed.startswith(COMMENT_PREFIXES):
                continue

            for rule in self.rule_set:
                match = rule.pattern.search(text)
                if match is None:
                    continue
                findings.append(
                    Finding(
                        file=file_path,
                        line=line_number,
                        column=match.start() + 1,
                        end_column=match.end() + 1,
                        rule_name=rule.name,
                        category=rule.category,
                        message=rule.suggestion,
                        severity=rule.severity,
                    )
                )

        return findings

    def _apply_overrides(self, findings: Iterable[Finding]) -> list[Finding]:
        result = []
        for finding in findings:
            severity = self._severities.get(finding.rule_name)
            if severity is None:
                continue
            result.append(finding.with_severity(severity))
        return result
