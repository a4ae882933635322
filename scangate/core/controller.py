"""
ScanGate Scan Controller

Drives one scan run:

1. take the run lock (fail fast if another scan holds it)
2. load config, rules, ignore patterns, cache and baseline
3. discover candidate files
4. scan them through the concurrency limiter
5. persist the cache
6. write a baseline, or evaluate the run mode and render the report
7. release the lock and close the rule store, whatever happened

SIGINT/SIGTERM only set the shutdown token: queued files are skipped,
in-flight files finish, and the run exits through the normal cleanup path.
"""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import sys
import threading
import time
import uuid
from concurrent.futures import Future, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Mapping, Optional, Sequence

import click

from scangate.core.cache import ContentCache
from scangate.core.config import ScanConfig
from scangate.core.errors import FileReadError, LockContentionError
from scangate.core.finding import FileResult
from scangate.core.ignore import IgnoreResolver, IgnoreSet
from scangate.core.limiter import ConcurrencyLimiter, ShutdownToken, TaskSkipped
from scangate.core.lock import LockManager
from scangate.core.scanner import ScanEngine
from scangate.integrations.github import (
    GitHubAnnotationReporter,
    format_annotation,
    is_ci,
    is_github_actions,
    no_color,
    write_step_summary,
)
from scangate.policy.baseline import BaselineManager
from scangate.policy.engine import PolicyEngine, PolicyResult, ScanMode
from scangate.reporting.base import ReportContext
from scangate.reporting.console import ConsoleReporter
from scangate.reporting.json_reporter import JSONReporter
from scangate.reporting.sarif import SARIFReporter
from scangate.rules.defaults import DEFAULT_RULES_FILENAME
from scangate.rules.store import RuleStore

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = ("SIGINT", "SIGTERM")


@dataclass
class ScanOptions:
    """Command-line options. None means "use the configured value"."""

    path: Path
    format: Optional[str] = None
    output_file: Optional[str] = None
    concurrency: Optional[int] = None
    cache: bool = True
    quiet: int = 0
    verbose: bool = False
    mode: Optional[str] = None
    generate_baseline: bool = False
    baseline_file: Optional[str] = None
    rules_file: Optional[str] = None
    config_path: Optional[Path] = None
    progress: Optional[bool] = None


@dataclass
class ScanOutcome:
    exit_code: int
    output: str = ""
    results: list[FileResult] = field(default_factory=list)
    policy: Optional[PolicyResult] = None
    baseline_count: Optional[int] = None
    interrupted: bool = False


@contextlib.contextmanager
def install_signal_handlers(token: ShutdownToken) -> Iterator[None]:
    """Route SIGINT/SIGTERM to ``token`` for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, _frame: object) -> None:
        token.request(signal.Signals(signum).name)

    previous = {}
    for name in SHUTDOWN_SIGNALS:
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        previous[signum] = signal.signal(signum, _handler)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def discover_files(root: Path, extensions: Sequence[str], ignore_set: IgnoreSet) -> list[Path]:
    """List candidate files under ``root`` by extension, skipping ignored paths."""
    if root.is_file():
        return [root.resolve()]

    suffixes = tuple(extensions)
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"
        dirnames[:] = sorted(d for d in dirnames if not ignore_set.matches(rel_dir + d))
        for filename in filenames:
            if not filename.endswith(suffixes):
                continue
            if ignore_set.matches(rel_dir + filename):
                continue
            found.append((Path(dirpath) / filename).resolve())
    return sorted(found)


def resolve_rules_path(root: Path, configured: Optional[str]) -> Optional[Path]:
    """Configured rule file (relative to root), else scangate-rules.yaml if present, else built-in."""
    if configured:
        path = Path(configured)
        return path if path.is_absolute() else root / path
    default = root / DEFAULT_RULES_FILENAME
    return default if default.is_file() else None


class ScanController:
    """Runs one scan. Every collaborator is owned by this instance."""

    def __init__(
        self,
        options: ScanOptions,
        rule_store: Optional[RuleStore] = None,
        lock: Optional[LockManager] = None,
        shutdown: Optional[ShutdownToken] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.options = options
        target = Path(options.path).resolve()
        self.target = target
        self.root = target if target.is_dir() else target.parent
        self.rule_store = rule_store or RuleStore()
        self.lock = lock or LockManager(self.root)
        self.shutdown = shutdown or ShutdownToken()
        self.environ = os.environ if environ is None else environ

    def run(self) -> ScanOutcome:
        """
        Execute the scan.

        Raises:
            LockContentionError: if another scan holds the lock.
            RuleLoadError: if the rule database cannot be loaded.
        """
        if not self.lock.acquire():
            raise LockContentionError(self.lock.lock_path)
        try:
            with install_signal_handlers(self.shutdown):
                return self._run_locked()
        finally:
            self.lock.release()
            self.rule_store.close()

    # ── Run phases ──

    def _run_locked(self) -> ScanOutcome:
        start = time.perf_counter()
        options = self.options
        config = ScanConfig.load(self.root, options.config_path, self.environ)

        mode = ScanMode.from_string(options.mode or config.mode)
        output_format = options.format or config.output.format
        output_file = options.output_file or config.output.file
        concurrency = options.concurrency or config.concurrency

        rule_set = self.rule_store.load(resolve_rules_path(self.root, options.rules_file or config.rules_file))
        ignore_set = IgnoreResolver(config.ignore, config.respect_gitignore).resolve(self.root)

        cache: Optional[ContentCache] = None
        if options.cache and config.cache:
            cache = ContentCache.for_root(self.root, rule_set.hash)
            cache.load()

        baseline = BaselineManager(self.root, options.baseline_file or config.baseline.file)
        if not options.generate_baseline and baseline.load():
            logger.info("Loaded baseline %s", baseline.baseline_path)

        engine = ScanEngine(
            rule_set,
            overrides=config.rules,
            cache=cache,
            large_file_threshold=config.large_file_threshold,
        )
        files = discover_files(self.target, config.extensions, ignore_set)
        logger.info("Scanning %d files with %d rules", len(files), len(rule_set))

        results = self._scan_all(engine, files, concurrency, use_cache=cache is not None, output_format=output_format)

        if cache is not None:
            try:
                cache.save()
            except OSError as exc:
                logger.warning("Cannot save scan cache %s: %s", cache.cache_file, exc)

        if self.shutdown.requested:
            logger.warning(
                "Scan interrupted (%s) after %d of %d files", self.shutdown.reason, len(results), len(files)
            )
            return ScanOutcome(exit_code=1, results=results, interrupted=True)

        findings = [finding for result in results for finding in result.findings]

        if options.generate_baseline:
            return self._generate_baseline(baseline, results, findings)

        policy = PolicyEngine(mode, baseline).evaluate(findings)
        context = ReportContext(
            target=str(self.target),
            results=results,
            policy=policy,
            rule_set=rule_set,
            overrides=config.rules,
            duration_ms=(time.perf_counter() - start) * 1000,
            trace_id=uuid.uuid4().hex[:8],
        )
        output = self._render(context, output_format, output_file)
        return ScanOutcome(exit_code=policy.exit_code, output=output, results=results, policy=policy)

    def _scan_all(
        self,
        engine: ScanEngine,
        files: Sequence[Path],
        concurrency: int,
        use_cache: bool,
        output_format: str,
    ) -> list[FileResult]:
        results: list[FileResult] = []
        futures: dict[Future, Path] = {}

        with ConcurrencyLimiter(concurrency, shutdown=self.shutdown) as limiter:
            for path in files:
                if self.shutdown.requested:
                    break
                futures[limiter.run(engine.scan, path, use_cache)] = path

            with self._progress(len(futures), output_format) as progress:
                for future in as_completed(futures):
                    progress.update(1)
                    try:
                        results.append(future.result())
                    except TaskSkipped:
                        continue
                    except FileReadError as exc:
                        logger.debug("Skipping %s: %s", exc.path, exc.reason)

        return sorted(results, key=lambda r: r.path)

    def _progress(self, total: int, output_format: str):
        enabled = self.options.progress
        if enabled is None:
            enabled = (
                sys.stderr.isatty()
                and not is_ci(self.environ)
                and self.options.quiet == 0
                and output_format == "table"
            )
        if not enabled or total == 0:
            return _NullProgress()
        return click.progressbar(length=total, label="Scanning", file=sys.stderr)

    def _generate_baseline(
        self,
        baseline: BaselineManager,
        results: list[FileResult],
        findings: list,
    ) -> ScanOutcome:
        try:
            count: Optional[int] = baseline.generate(findings)
        except OSError as exc:
            logger.error("Cannot write baseline %s: %s", baseline.baseline_path, exc)
            count = None

        output = ""
        if count is not None and self.options.quiet < 2:
            output = (
                f"[Baseline] Generated with {count} issues -> {baseline.baseline_path} "
                f"({len(results)} files scanned)"
            )
        return ScanOutcome(exit_code=0, output=output, results=results, baseline_count=count)

    def _render(self, context: ReportContext, output_format: str, output_file: Optional[str]) -> str:
        if is_github_actions(self.environ):
            write_step_summary(context, self.environ)

        if output_format == "json":
            content = JSONReporter().report(context, output_file)
        elif output_format == "sarif":
            content = SARIFReporter().report(context, output_file)
        elif output_format == "github":
            content = GitHubAnnotationReporter().report(context, output_file)
        else:
            parts = []
            if is_github_actions(self.environ):
                parts.extend(format_annotation(f) for f in context.reported)
            table = ConsoleReporter(color=not no_color(self.environ), quiet=self.options.quiet).report(context)
            if table:
                parts.append(table)
            if output_file:
                JSONReporter().report(context, output_file)
            return "\n".join(parts)

        return "" if output_file else content


class _NullProgress:
    def __enter__(self) -> "_NullProgress":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def update(self, _count: int) -> None:
        return None
