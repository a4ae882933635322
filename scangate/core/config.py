"""
ScanGate Configuration Management

Loads configuration from ``.scangate.yaml`` in the scan root.

Resolution order (later wins):
1. built-in defaults
2. the file named by ``extends`` (resolved relative to the config file)
3. ``.scangate.yaml``
4. environment variables (SCANGATE_MODE, SCANGATE_FORMAT, SCANGATE_BASELINE,
   SCANGATE_RULES, SCANGATE_CONCURRENCY)
5. command-line flags (applied by the controller)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from scangate.core.errors import ConfigError
from scangate.core.limiter import default_concurrency
from scangate.core.scanner import LARGE_FILE_THRESHOLD
from scangate.policy.baseline import DEFAULT_BASELINE_FILE
from scangate.rules.store import OVERRIDE_LEVELS

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".scangate.yaml"
DEFAULT_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx"]
VALID_FORMATS = ("table", "json", "sarif", "github")
VALID_MODES = ("audit", "warn", "enforce")
MAX_EXTENDS_DEPTH = 5

ENV_OVERRIDES = {
    "SCANGATE_MODE": ("mode",),
    "SCANGATE_FORMAT": ("output", "format"),
    "SCANGATE_BASELINE": ("baseline", "file"),
    "SCANGATE_RULES": ("rules_file",),
    "SCANGATE_CONCURRENCY": ("concurrency",),
}


@dataclass
class OutputConfig:
    format: str = "table"
    file: Optional[str] = None


@dataclass
class BaselineConfig:
    file: str = DEFAULT_BASELINE_FILE


@dataclass
class ScanConfig:
    """Root configuration object for ScanGate."""

    mode: str = "audit"
    output: OutputConfig = field(default_factory=OutputConfig)
    baseline: BaselineConfig = field(default_factory=BaselineConfig)
    ignore: list[str] = field(default_factory=list)
    rules: dict[str, str] = field(default_factory=dict)
    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    concurrency: int = field(default_factory=default_concurrency)
    cache: bool = True
    respect_gitignore: bool = True
    rules_file: Optional[str] = None
    large_file_threshold: int = LARGE_FILE_THRESHOLD

    @classmethod
    def load(
        cls,
        root_dir: Path,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ScanConfig":
        """
        Load configuration for a scan root, falling back to defaults.

        Raises:
            ConfigError: if an explicitly given ``config_path`` does not exist.
        """
        if config_path is not None and not Path(config_path).exists():
            raise ConfigError(f"Config file not found: {config_path}")
        path = Path(config_path) if config_path else Path(root_dir) / CONFIG_FILENAME

        raw: dict[str, Any] = {}
        if path.exists():
            try:
                raw = _read_with_extends(path, depth=0)
            except (OSError, yaml.YAMLError, ConfigError) as exc:
                logger.warning("Ignoring config %s: %s", path, exc)
                raw = {}

        _apply_env(raw, os.environ if environ is None else environ)
        return cls._from_dict(raw)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "ScanConfig":
        """Build config from a parsed (and merged) YAML dictionary."""
        defaults = cls()

        output_data = data.get("output") or {}
        output = OutputConfig(
            format=_choice(output_data.get("format"), VALID_FORMATS, "output.format", defaults.output.format),
            file=output_data.get("file"),
        )

        baseline_data = data.get("baseline") or {}
        baseline = BaselineConfig(file=str(baseline_data.get("file") or DEFAULT_BASELINE_FILE))

        overrides: dict[str, str] = {}
        for name, level in (data.get("rules") or {}).items():
            # YAML 1.1 reads a bare ``off`` as False
            level = "off" if level is False else str(level).strip().lower()
            if level not in OVERRIDE_LEVELS:
                logger.warning("Ignoring override %s=%r (expected one of %s)", name, level, OVERRIDE_LEVELS)
                continue
            overrides[str(name)] = level

        extensions = [
            ext if ext.startswith(".") else f".{ext}"
            for ext in (str(e) for e in data.get("extensions") or DEFAULT_EXTENSIONS)
        ]

        return cls(
            mode=_choice(data.get("mode"), VALID_MODES, "mode", defaults.mode),
            output=output,
            baseline=baseline,
            ignore=[str(p) for p in data.get("ignore") or []],
            rules=overrides,
            extensions=extensions,
            concurrency=_positive_int(data.get("concurrency"), "concurrency", defaults.concurrency),
            cache=bool(data.get("cache", True)),
            respect_gitignore=bool(data.get("respect_gitignore", True)),
            rules_file=data.get("rules_file"),
            large_file_threshold=_positive_int(
                data.get("large_file_threshold"), "large_file_threshold", LARGE_FILE_THRESHOLD
            ),
        )


def _read_with_extends(path: Path, depth: int) -> dict[str, Any]:
    if depth > MAX_EXTENDS_DEPTH:
        raise ConfigError(f"'extends' chain deeper than {MAX_EXTENDS_DEPTH}")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    parent = data.pop("extends", None)
    if not parent:
        return data
    parent_path = (path.parent / str(parent)).resolve()
    if not parent_path.exists():
        raise ConfigError(f"{path}: extended config {parent} not found")
    return _deep_merge(_read_with_extends(parent_path, depth + 1), data)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_env(data: dict[str, Any], environ: Mapping[str, str]) -> None:
    for variable, keys in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if not value:
            continue
        target = data
        for key in keys[:-1]:
            if not isinstance(target.get(key), dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = value


def _choice(value: Any, choices: tuple[str, ...], name: str, default: str) -> str:
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if normalized not in choices:
        logger.warning("Ignoring %s=%r (expected one of %s)", name, value, choices)
        return default
    return normalized


def _positive_int(value: Any, name: str, default: int) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring %s=%r (expected an integer)", name, value)
        return default
    if number < 1:
        logger.warning("Ignoring %s=%r (must be at least 1)", name, value)
        return default
    return number


def generate_default_config() -> str:
    """Generate a default .scangate.yaml configuration file content."""
    return """\
# ScanGate Configuration

# Enforcement mode: audit (report all), warn (report new), enforce (fail on new errors)
mode: audit

# Output settings
output:
  format: table  # table, json, sarif, github
  # file: scangate-report.sarif

# Baseline of accepted findings
baseline:
  file: .scangate-baseline.json

# Rule database (YAML or SQLite); built-in rules when omitted
rules_file: scangate-rules.yaml

# Per-rule overrides: off, warn, error
rules:
  console_log: off
  # any_type: warn

# File extensions to scan
extensions:
  - .ts
  - .tsx
  - .js
  - .jsx

# Extra ignore patterns (merged with .gitignore and .scangateignore)
ignore:
  - "*.d.ts"

cache: true
respect_gitignore: true
"""
