"""Tests for rule matching, suppression, and escalation."""

from __future__ import annotations

import pytest

from slopscan.errors import MatchError
from slopscan.rules.catalog import RuleCatalog
from slopscan.rules.models import Category, Rule, Severity
from slopscan.scanner.matcher import is_suppressed, match, match_all, suppressed_rules


class TestMatch:
    def test_explicit_any(self, no_any_rule: Rule):
        findings = match(no_any_rule, "const x: any = 1;\n", "a.ts")
        assert len(findings) == 1
        f = findings[0]
        assert (f.line, f.column) == (1, 8)
        assert f.matched_text == ": any"
        assert f.severity == Severity.HIGH
        assert f.category == Category.TYPE_SAFETY
        assert f.context_line == "const x: any = 1;"

    def test_include_globs_respected(self, no_any_rule: Rule):
        assert match(no_any_rule, "x: any = 1\n", "a.py") == []

    def test_several_matches_on_one_line(self, no_any_rule: Rule):
        findings = match(no_any_rule, "function f(a: any, b: any) {}\n", "a.ts")
        assert [f.column for f in findings] == [13, 21]

    def test_no_match(self, no_any_rule: Rule):
        assert match(no_any_rule, "const x: number = 1;\n", "a.ts") == []

    def test_malformed_pattern_raises_match_error(self):
        bad = Rule(
            id="bad",
            category=Category.STYLE,
            severity=Severity.LOW,
            pattern="(unclosed",
        )
        with pytest.raises(MatchError) as exc:
            match(bad, "anything\n", "a.py")
        assert exc.value.context == {"rule_id": "bad", "path": "a.py"}

    def test_deterministic(self, catalog: RuleCatalog):
        content = "var a = 1;\nif (a == 2) { console.log(a); }\n"
        first = match_all(catalog, content, "a.js")
        assert first == match_all(catalog, content, "a.js")


class TestMatchAll:
    def test_two_rules_one_line_sorted_by_rule_id(self, catalog: RuleCatalog):
        content = "class A {\n  x!: any;\n}\n"
        findings = match_all(catalog, content, "a.ts")
        assert [(f.rule_id, f.line) for f in findings] == [
            ("no-any", 2),
            ("no-non-null-assertion", 2),
        ]

    def test_match_error_isolated(self, no_any_rule: Rule):
        bad = Rule(id="bad", category=Category.STYLE, severity=Severity.LOW, pattern="[")
        errors = []
        findings = match_all(
            [bad, no_any_rule], "let v: any;\n", "a.ts", on_error=errors.append
        )
        assert [f.rule_id for f in findings] == ["no-any"]
        assert [e.context["rule_id"] for e in errors] == ["bad"]

    def test_match_error_propagates_without_handler(self):
        bad = Rule(id="bad", category=Category.STYLE, severity=Severity.LOW, pattern="[")
        with pytest.raises(MatchError):
            match_all([bad], "x\n", "a.ts")


class TestSuppression:
    def test_marker_with_ids(self):
        line = "x = 1  # slopscan-ignore: no-print, no-any"
        assert suppressed_rules(line) == frozenset({"no-print", "no-any"})
        assert is_suppressed("no-any", line)
        assert not is_suppressed("no-eval", line)

    def test_bare_marker_suppresses_everything(self):
        assert suppressed_rules("debugger; // slopscan-ignore") == frozenset()
        assert is_suppressed("no-debugger", "debugger; // slopscan-ignore")

    def test_no_marker(self):
        assert suppressed_rules("plain line") is None

    def test_suppressed_finding_dropped(self, no_any_rule: Rule):
        content = "const x: any = 1; // slopscan-ignore: no-any\nconst y: any = 2;\n"
        findings = match(no_any_rule, content, "a.ts")
        assert [f.line for f in findings] == [2]

    def test_marker_for_other_rule_does_not_suppress(self, no_any_rule: Rule):
        content = "const x: any = 1; // slopscan-ignore: no-console\n"
        assert len(match(no_any_rule, content, "a.ts")) == 1


class TestEscalation:
    def test_sensitive_console_log_escalates(self, catalog: RuleCatalog):
        rule = catalog.get("no-console")
        plain = match(rule, 'console.log("ready");\n', "a.js")
        sensitive = match(rule, 'console.log("token", token);\n', "a.js")
        assert plain[0].severity == Severity.LOW
        assert sensitive[0].severity == Severity.MEDIUM


class TestLineNumbering:
    def test_form_feed_does_not_shift_lines(self, catalog: RuleCatalog):
        content = "x = 1\n\x0c\ny = eval('1')\n"
        findings = match(catalog.get("no-eval"), content, "m.py")
        assert [f.line for f in findings] == [3]

    def test_other_separators_stay_inside_the_line(self, no_any_rule: Rule):
        content = "const a = 1;\u2028const x: any = 1;\x85\nlet y: any;\n"
        findings = match(no_any_rule, content, "a.ts")
        assert [f.line for f in findings] == [1, 2]

    def test_crlf(self, no_any_rule: Rule):
        findings = match(no_any_rule, "let a = 1;\r\nlet x: any;\r\n", "a.ts")
        assert [(f.line, f.context_line) for f in findings] == [(2, "let x: any;")]
