"""
ScanGate CLI

Command-line interface for running scans.

Commands:
    scangate scan [PATH]      - Scan a directory or file
    scangate init             - Create default config & rules files
    scangate rules            - List the active rule set
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click


def _safe_echo(text: str = "", **kwargs) -> None:
    """Echo text, handling Unicode issues on Windows consoles."""
    try:
        click.echo(text, **kwargs)
    except UnicodeEncodeError:
        safe = text.encode(sys.stdout.encoding or "utf-8", errors="replace").decode(
            sys.stdout.encoding or "utf-8", errors="replace"
        )
        click.echo(safe, **kwargs)

from scangate import __version__
from scangate.core.config import CONFIG_FILENAME, ScanConfig, generate_default_config
from scangate.core.controller import ScanController, ScanOptions, resolve_rules_path
from scangate.core.errors import ScanGateError
from scangate.rules.defaults import DEFAULT_RULES_FILENAME, generate_default_rules
from scangate.rules.store import RuleStore


def _configure_logging(verbose: bool, quiet: int) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet >= 2:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _fail(exc: Exception) -> None:
    _safe_echo(click.style(f"[Error] {exc}", fg="red"), err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="ScanGate")
def cli() -> None:
    """
    ScanGate - Incremental Rule-Based Source Scanner

    Scan source trees against a lint rule database, cache unchanged files,
    and enforce "no new issues" against a baseline in CI.
    """
    pass


# ═══════════════════════════════════════════════════════
#  scangate scan
# ═══════════════════════════════════════════════════════
@cli.command()
@click.argument("path", type=click.Path(exists=True), default=".")
@click.option("--format", "-f", "output_format", type=click.Choice(["table", "json", "sarif", "github"]),
              default=None, help="Output format (default: table).")
@click.option("--output", "-o", "output_file", type=click.Path(), default=None,
              help="Write report to a file.")
@click.option("--concurrency", type=click.IntRange(min=1), default=None,
              help="Max parallel file scans (default: CPU count).")
@click.option("--no-cache", is_flag=True, help="Disable the incremental scan cache.")
@click.option("-q", "--quiet", "quiet", count=True,
              help="-q: only files with errors; -qq: no table output.")
@click.option("-v", "--verbose", is_flag=True, help="Log per-file errors and timing.")
@click.option("--mode", type=click.Choice(["audit", "warn", "enforce"], case_sensitive=False),
              default=None, help="Enforcement mode (default: audit).")
@click.option("--generate-baseline", is_flag=True, help="Write a baseline from the current findings.")
@click.option("--baseline-file", type=click.Path(), default=None,
              help="Baseline file path (default: .scangate-baseline.json).")
@click.option("--rules", "rules_file", type=click.Path(), default=None,
              help="Rule database (YAML or SQLite).")
@click.option("--config", "config_path", type=click.Path(), default=None,
              help="Path to .scangate.yaml configuration file.")
def scan(
    path: str,
    output_format: Optional[str],
    output_file: Optional[str],
    concurrency: Optional[int],
    no_cache: bool,
    quiet: int,
    verbose: bool,
    mode: Optional[str],
    generate_baseline: bool,
    baseline_file: Optional[str],
    rules_file: Optional[str],
    config_path: Optional[str],
) -> None:
    """Scan a directory or file for rule violations.

    Examples:

        scangate scan src

        scangate scan . --format sarif --output results.sarif

        scangate scan . --generate-baseline

        scangate scan . --mode enforce -qq
    """
    _configure_logging(verbose, quiet)

    options = ScanOptions(
        path=Path(path),
        format=output_format,
        output_file=output_file,
        concurrency=concurrency,
        cache=not no_cache,
        quiet=quiet,
        verbose=verbose,
        mode=mode.lower() if mode else None,
        generate_baseline=generate_baseline,
        baseline_file=baseline_file,
        rules_file=rules_file,
        config_path=Path(config_path) if config_path else None,
    )

    try:
        outcome = ScanController(options).run()
    except ScanGateError as exc:
        _fail(exc)
        return
    except OSError as exc:
        _fail(exc)
        return

    if outcome.output:
        _safe_echo(outcome.output)
    if outcome.interrupted:
        _safe_echo(click.style("[Scanner] Scan interrupted, no report written", fg="yellow"), err=True)

    sys.exit(outcome.exit_code)


# ═══════════════════════════════════════════════════════
#  scangate init
# ═══════════════════════════════════════════════════════
@cli.command()
@click.option("--path", "-p", "target_path", type=click.Path(), default=".",
              help="Directory to create config files in.")
def init(target_path: str) -> None:
    """Create default .scangate.yaml and scangate-rules.yaml."""
    target = Path(target_path).resolve()
    target.mkdir(parents=True, exist_ok=True)

    files = [
        (target / CONFIG_FILENAME, generate_default_config),
        (target / DEFAULT_RULES_FILENAME, generate_default_rules),
    ]
    for path, generate in files:
        if path.exists():
            _safe_echo(click.style(f"  [!] {path} already exists, skipping.", fg="yellow"))
        else:
            path.write_text(generate(), encoding="utf-8")
            _safe_echo(click.style(f"  [+] Created {path}", fg="green"))

    _safe_echo("")
    _safe_echo("  Edit these files to customize rules and enforcement.")
    _safe_echo("  Run 'scangate scan' to start scanning.")


# ═══════════════════════════════════════════════════════
#  scangate rules
# ═══════════════════════════════════════════════════════
@cli.command("rules")
@click.argument("path", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--rules", "rules_file", type=click.Path(), default=None,
              help="Rule database (YAML or SQLite).")
def list_rules(path: str, rules_file: Optional[str]) -> None:
    """List the active rules and the rule-set hash."""
    _configure_logging(False, 0)
    root = Path(path).resolve()

    try:
        config = ScanConfig.load(root)
        rules_path = resolve_rules_path(root, rules_file or config.rules_file)
        with RuleStore() as store:
            rule_set = store.load(rules_path)
            active = store.active_rules(config.rules)
    except ScanGateError as exc:
        _fail(exc)
        return

    _safe_echo(click.style(f"  Rules: {rule_set.source}", fg="bright_white", bold=True))
    for entry in active:
        rule = entry.rule
        _safe_echo(f"    {rule.name:24s} {rule.category:9s} {entry.severity.value:8s} {rule.suggestion}")
    disabled = len(rule_set) - len(active)
    if disabled:
        _safe_echo(click.style(f"  {disabled} rule(s) turned off by overrides", fg="yellow"))
    _safe_echo(click.style(f"  Rule-set hash: {rule_set.hash}", fg="bright_black"))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
