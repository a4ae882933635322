"""
Pytest Configuration and Fixtures

Shared fixtures for ScanGate tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from scangate.core.finding import Finding, Severity
from scangate.rules.store import RuleSet, compile_rules

TEST_RULES = [
    {
        "name": "no_eval",
        "pattern": r"eval\(",
        "category": "SECURITY",
        "severity": "error",
        "suggestion": "Avoid eval()",
    },
    {
        "name": "sync_read",
        "pattern": r"readFileSync\(",
        "category": "PERF",
        "severity": "warning",
        "suggestion": "Use async file reads",
    },
    {
        "name": "console_log",
        "pattern": r"console\.log\(",
        "category": "STYLE",
        "severity": "info",
        "suggestion": "Remove console.log",
    },
]

RULES_YAML = '''
version: "1"
rules:
  - name: no_eval
    pattern: 'eval\\('
    category: SECURITY
    severity: error
    suggestion: Avoid eval()
  - name: sync_read
    pattern: 'readFileSync\\('
    category: PERF
    severity: warning
    suggestion: Use async file reads
  - name: console_log
    pattern: 'console\\.log\\('
    category: STYLE
    severity: info
    suggestion: Remove console.log
'''

APP_SOURCE = '''import { helper } from "./helper";
const value = eval("1 + 1");
console.log(value);
'''


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def rule_rows() -> list[dict]:
    """Raw rows of the three-rule test rule set."""
    return [dict(row) for row in TEST_RULES]


@pytest.fixture
def rule_set() -> RuleSet:
    """The three-rule test rule set."""
    return compile_rules(TEST_RULES, source="<test>")


@pytest.fixture
def rules_file(temp_dir: Path) -> Path:
    """A YAML rule database with the test rules."""
    path = temp_dir / "rules.yaml"
    path.write_text(RULES_YAML, encoding="utf-8")
    return path


@pytest.fixture
def project(temp_dir: Path) -> Path:
    """A scan root with one violating TypeScript file and the test rules."""
    root = temp_dir / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.ts").write_text(APP_SOURCE, encoding="utf-8")
    (root / "scangate-rules.yaml").write_text(RULES_YAML, encoding="utf-8")
    return root


@pytest.fixture
def sample_findings() -> list[Finding]:
    """A mix of findings across severities."""
    return [
        Finding(
            file="/repo/src/app.ts",
            line=2,
            column=15,
            end_column=20,
            rule_name="no_eval",
            category="SECURITY",
            message="Avoid eval()",
            severity=Severity.ERROR,
        ),
        Finding(
            file="/repo/src/io.ts",
            line=7,
            column=1,
            end_column=14,
            rule_name="sync_read",
            category="PERF",
            message="Use async file reads",
            severity=Severity.WARNING,
        ),
        Finding(
            file="/repo/src/app.ts",
            line=3,
            column=1,
            end_column=13,
            rule_name="console_log",
            category="STYLE",
            message="Remove console.log",
            severity=Severity.INFO,
        ),
    ]
