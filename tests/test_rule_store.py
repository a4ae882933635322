"""
Tests for the Rule Store
"""

import sqlite3
from pathlib import Path

import pytest

from scangate.core.errors import RuleLoadError
from scangate.core.finding import Severity
from scangate.rules.defaults import DEFAULT_RULES, generate_default_rules
from scangate.rules.store import RuleSet, RuleStore, compile_rules, override_severity


class TestCompileRules:
    """Tests for validating and compiling rule rows."""

    def test_compiles_rules(self, rule_set: RuleSet):
        """Test that valid rows become compiled rules."""
        assert len(rule_set) == 3
        assert "no_eval" in rule_set
        rule = rule_set.get("no_eval")
        assert rule.severity == Severity.ERROR
        assert rule.pattern.search('x = eval("1")')
        assert rule.title == "No Eval"

    def test_problems_are_aggregated(self):
        """Test that every bad row is reported in one error."""
        rows = [
            {"name": "bad_regex", "pattern": "eval(", "category": "SECURITY",
             "severity": "error", "suggestion": "x"},
            {"name": "bad_severity", "pattern": "x", "category": "STYLE",
             "severity": "fatal", "suggestion": "x"},
            {"name": "missing_fields", "pattern": "x"},
        ]

        with pytest.raises(RuleLoadError) as exc_info:
            compile_rules(rows, source="rules.yaml")

        assert len(exc_info.value.problems) == 3
        assert exc_info.value.source == "rules.yaml"
        assert "bad_regex" in str(exc_info.value)

    def test_duplicate_names_rejected(self, rule_rows: list):
        """Test that rule names must be unique."""
        with pytest.raises(RuleLoadError, match="duplicate"):
            compile_rules([rule_rows[0], rule_rows[0]], source="<test>")

    def test_disabled_rows_dropped(self, rule_rows: list):
        """Test that disabled rules are not loaded."""
        rows = [dict(rule_rows[0], enabled=False), dict(rule_rows[1], enabled="0"), rule_rows[2]]

        rule_set = compile_rules(rows, source="<test>")

        assert [rule.name for rule in rule_set] == ["console_log"]

    def test_invalid_id_aggregated(self, rule_rows: list):
        """Test that a non-numeric id is reported with the other row problems."""
        rows = [
            dict(rule_rows[0], id="abc"),
            {"name": "missing_fields", "pattern": "x"},
            rule_rows[2],
        ]

        with pytest.raises(RuleLoadError) as exc_info:
            compile_rules(rows, source="rules.yaml")

        assert len(exc_info.value.problems) == 2
        assert any("invalid id 'abc'" in problem for problem in exc_info.value.problems)

    def test_patterns_ignore_case(self):
        """Test that built-in patterns match regardless of case."""
        rule_set = compile_rules(DEFAULT_RULES, source="<built-in>")

        assert rule_set.get("hardcoded_secret").pattern.search('const apiKey = "abcdefgh12345";')
        assert rule_set.get("sql_concat").pattern.search('const q = "select * from t" + req.body;')

    def test_builtin_defaults_compile(self):
        """Test that every built-in rule pattern is valid."""
        rule_set = compile_rules(DEFAULT_RULES, source="<built-in>")

        assert len(rule_set) == len(DEFAULT_RULES)


class TestRuleSetHash:
    """Tests for the rule-set fingerprint."""

    def test_hash_ignores_row_order(self, rule_rows: list):
        """Test that reordering rules keeps the hash."""
        forward = compile_rules(rule_rows, source="a")
        backward = compile_rules(list(reversed(rule_rows)), source="b")

        assert forward.hash == backward.hash

    def test_hash_changes_with_pattern(self, rule_set: RuleSet, rule_rows: list):
        """Test that editing a pattern changes the hash."""
        rows = [dict(rule_rows[0], pattern=r"eval\s*\(")] + rule_rows[1:]

        assert compile_rules(rows, source="<test>").hash != rule_set.hash

    def test_hash_ignores_message(self, rule_set: RuleSet, rule_rows: list):
        """Test that only names and patterns feed the hash."""
        rows = [dict(rule_rows[0], suggestion="Never use eval")] + rule_rows[1:]

        assert compile_rules(rows, source="<test>").hash == rule_set.hash


class TestOverrides:
    """Tests for per-rule override levels."""

    def test_override_levels(self):
        """Test the mapping of override levels to severities."""
        assert override_severity("off") is None
        assert override_severity("warn") == Severity.WARNING
        assert override_severity("error") == Severity.ERROR
        with pytest.raises(ValueError):
            override_severity("loud")

    def test_active_rules_apply_overrides(self, rule_set: RuleSet):
        """Test that overrides change severity or remove rules without mutating them."""
        active = rule_set.active_rules({"no_eval": "warn", "console_log": "off"})

        assert {a.rule.name: a.severity for a in active} == {
            "no_eval": Severity.WARNING,
            "sync_read": Severity.WARNING,
        }
        assert rule_set.get("no_eval").severity == Severity.ERROR
        assert len(rule_set) == 3


class TestRuleStore:
    """Tests for loading rule databases."""

    def test_load_builtin(self):
        """Test that no path selects the built-in rules."""
        with RuleStore() as store:
            rule_set = store.load(None)

        assert rule_set.source == "<built-in>"
        assert len(rule_set) > 0

    def test_load_yaml(self, rules_file: Path, rule_set: RuleSet):
        """Test loading a YAML rule database."""
        with RuleStore() as store:
            loaded = store.load(rules_file)

            assert store.rule_set_hash() == rule_set.hash
            assert len(store.active_rules({"console_log": "off"})) == 2

        assert loaded.source == str(rules_file)

    def test_generated_defaults_round_trip(self, temp_dir: Path):
        """Test that `scangate init` rules load back to the built-in set."""
        path = temp_dir / "scangate-rules.yaml"
        path.write_text(generate_default_rules(), encoding="utf-8")

        with RuleStore() as store:
            from_file = store.load(path)
            builtin = store.load(None)

        assert from_file.hash == builtin.hash

    def test_load_sqlite(self, temp_dir: Path):
        """Test loading the lint_rules table of a SQLite database."""
        db_path = temp_dir / "rules.db"
        connection = sqlite3.connect(db_path)
        connection.execute(
            "CREATE TABLE lint_rules (id INTEGER PRIMARY KEY, name TEXT UNIQUE, pattern TEXT, "
            "category TEXT, severity TEXT, suggestion TEXT, scope TEXT, enabled INTEGER)"
        )
        connection.executemany(
            "INSERT INTO lint_rules VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (1, "no_eval", r"eval\(", "SECURITY", "error", "Avoid eval()", "GLOBAL", 1),
                (2, "old_rule", "var ", "STYLE", "info", "Use let", "GLOBAL", 0),
            ],
        )
        connection.commit()
        connection.close()

        with RuleStore() as store:
            rule_set = store.load(db_path)

        assert [rule.name for rule in rule_set] == ["no_eval"]
        assert rule_set.get("no_eval").id == 1

    def test_missing_file(self, temp_dir: Path):
        """Test that a missing rule file is fatal."""
        with pytest.raises(RuleLoadError):
            RuleStore().load(temp_dir / "nope.yaml")

    def test_yaml_without_rules_list(self, temp_dir: Path):
        """Test that a YAML file without a rules list is rejected."""
        path = temp_dir / "rules.yaml"
        path.write_text("version: 1\n", encoding="utf-8")

        with pytest.raises(RuleLoadError, match="rules"):
            RuleStore().load(path)

    def test_rule_set_before_load(self):
        """Test that the rule set is unavailable before loading."""
        with pytest.raises(RuntimeError):
            RuleStore().rule_set
