"""
ScanGate Default Rules

Built-in rule rows used when no rule database is configured. Rows follow the
rule database columns: name, pattern, category, scope, suggestion, severity.
"""

from __future__ import annotations

import yaml

DEFAULT_RULES_FILENAME = "scangate-rules.yaml"

DEFAULT_RULES: list[dict] = [
    # ── DEPS: Node.js compatibility ──
    {"name": "node_fs_import", "pattern": r"""from\s+["'](?:node:)?fs["']""",
     "category": "DEPS", "scope": "IMPORT", "severity": "warning",
     "suggestion": "Use Bun.file() for file operations"},
    {"name": "node_child_process", "pattern": r"""from\s+["'](?:node:)?child_process["']""",
     "category": "DEPS", "scope": "IMPORT", "severity": "warning",
     "suggestion": "Use Bun.spawn() or Bun.$ for shell commands"},
    {"name": "node_fetch_import", "pattern": r"""from\s+["']node-fetch["']""",
     "category": "DEPS", "scope": "IMPORT", "severity": "warning",
     "suggestion": "Use native fetch() - built into Bun"},
    {"name": "express_import", "pattern": r"""from\s+["']express["']""",
     "category": "DEPS", "scope": "IMPORT", "severity": "info",
     "suggestion": "Consider Bun.serve() for better performance"},
    {"name": "axios_import", "pattern": r"""from\s+["']axios["']""",
     "category": "DEPS", "scope": "IMPORT", "severity": "info",
     "suggestion": "Consider native fetch() with Bun enhancements"},
    {"name": "moment_import", "pattern": r"""from\s+["']moment["']""",
     "category": "DEPS", "scope": "IMPORT", "severity": "info",
     "suggestion": "Use Temporal API or date-fns for modern date handling"},

    # ── PERF ──
    {"name": "sync_file_read", "pattern": r"readFileSync\s*\(",
     "category": "PERF", "scope": "GLOBAL", "severity": "warning",
     "suggestion": "Use async Bun.file().text() for non-blocking I/O"},
    {"name": "json_parse_fs", "pattern": r"JSON\.parse\s*\(\s*(?:fs\.readFileSync|await\s+fs)",
     "category": "PERF", "scope": "GLOBAL", "severity": "warning",
     "suggestion": "Use Bun.file(path).json() for direct parsing"},
    {"name": "sync_write", "pattern": r"writeFileSync\s*\(",
     "category": "PERF", "scope": "GLOBAL", "severity": "warning",
     "suggestion": "Use Bun.write() for optimized file writing"},
    {"name": "inefficient_concat", "pattern": r"\.concat\s*\([^)]+\)\s*\.concat",
     "category": "PERF", "scope": "GLOBAL", "severity": "info",
     "suggestion": "Use spread operator [...a, ...b] for array concat"},

    # ── SECURITY ──
    {"name": "eval_usage", "pattern": r"""(?:^|[^"'`])eval\s*\(""",
     "category": "SECURITY", "scope": "GLOBAL", "severity": "error",
     "suggestion": "Avoid eval() - use Function constructor or safer alternatives"},
    {"name": "hardcoded_secret",
     "pattern": r"""(?:password|secret|api_?key|token)\s*[:=]\s*["'][^"']{8,}["']""",
     "category": "SECURITY", "scope": "GLOBAL", "severity": "error",
     "suggestion": "Use environment variables: Bun.env.SECRET_NAME"},
    {"name": "innerHTML_usage", "pattern": r"\.innerHTML\s*=",
     "category": "SECURITY", "scope": "GLOBAL", "severity": "warning",
     "suggestion": "Use textContent or sanitize HTML to prevent XSS"},
    {"name": "sql_concat", "pattern": r"(?:SELECT|INSERT|UPDATE|DELETE).*\+\s*(?:req\.|params\.|query\.)",
     "category": "SECURITY", "scope": "GLOBAL", "severity": "error",
     "suggestion": "Use parameterized queries to prevent SQL injection"},

    # ── COMPAT ──
    {"name": "process_env_check", "pattern": r"process\.env\.\w+\s*(?:===?|!==?)\s*(?:undefined|null)",
     "category": "COMPAT", "scope": "GLOBAL", "severity": "info",
     "suggestion": "Use Bun.env for type-safe environment access"},
    {"name": "require_usage", "pattern": r"""\brequire\s*\(["']""",
     "category": "COMPAT", "scope": "GLOBAL", "severity": "info",
     "suggestion": "Use ESM import syntax for better tree-shaking"},
    {"name": "dirname_usage", "pattern": r"__dirname|__filename",
     "category": "COMPAT", "scope": "GLOBAL", "severity": "info",
     "suggestion": "Use import.meta.dir and import.meta.file in ESM"},

    # ── STYLE ──
    {"name": "console_log", "pattern": r"console\.log\s*\(",
     "category": "STYLE", "scope": "GLOBAL", "severity": "info",
     "suggestion": "Remove console.log or use proper logging"},
    {"name": "todo_comment", "pattern": r"(?://|/\*)\s*TODO:",
     "category": "STYLE", "scope": "GLOBAL", "severity": "info",
     "suggestion": "Address TODO comments before production"},
    {"name": "any_type", "pattern": r":\s*any\b",
     "category": "STYLE", "scope": "GLOBAL", "severity": "info",
     "suggestion": 'Avoid "any" type - use specific types'},
]


def generate_default_rules() -> str:
    """Generate the content of a default scangate-rules.yaml file."""
    header = (
        "# ScanGate Rule Database\n"
        "# Each rule: name, pattern (regex), category, scope, suggestion,\n"
        "# severity (error | warning | info), enabled (default true)\n\n"
    )
    rows = [dict(row, enabled=True) for row in DEFAULT_RULES]
    body = yaml.safe_dump(
        {"version": "1", "rules": rows},
        sort_keys=False,
        allow_unicode=True,
        width=120,
    )
    return header + body
