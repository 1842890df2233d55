"""Tests for the fix applier and post-fix validation."""

from __future__ import annotations

import ast
import os
import threading

import pytest

from slopscan.config import SlopScanConfig
from slopscan.errors import FixValidationError, SlopScanError
from slopscan.fixer.applier import FixApplier, annotate, atomic_write, outcome_issues, preview
from slopscan.fixer.models import FixDecision, FixState
from slopscan.fixer.validate import brackets_balanced, is_valid_source, validate_fix
from slopscan.report.models import Finding, IssueKind
from slopscan.rules.builtin import BUILTIN_RULES
from slopscan.rules.catalog import RuleCatalog
from slopscan.rules.models import Category, Rule, Severity
from slopscan.scanner.engine import ScanEngine


def _scan(catalog, root):
    return ScanEngine(catalog, SlopScanConfig(threshold="brutal")).scan(root)


def _always(decision):
    return lambda finding, diff: decision


class TestFixApplier:
    def test_console_log_removed(self, make_tree, catalog):
        root = make_tree({"app.js": 'console.log("debug")\nconst y = 2;\n'})
        report = _scan(catalog, root)
        assert [f.rule_id for f in report.findings] == ["no-console"]

        outcomes = FixApplier(catalog, report.root).apply(report.findings)

        assert [o.state for o in outcomes] == [FixState.APPLIED]
        assert outcomes[0].resolved
        assert (root / "app.js").read_text() == "const y = 2;\n"
        assert _scan(catalog, root).findings == ()

    def test_non_autofixable_left_pending(self, make_tree, catalog):
        root = make_tree({"a.ts": "const x: any = 1;\n"})
        report = _scan(catalog, root)
        outcomes = FixApplier(catalog, report.root).apply(report.findings)
        assert [o.state for o in outcomes] == [FixState.PENDING]
        assert not outcomes[0].resolved
        assert (root / "a.ts").read_text() == "const x: any = 1;\n"

    def test_decider_apply_relocates_later_findings(self, make_tree, catalog):
        root = make_tree({"a.ts": "function f(a: any, b: any) {}\n"})
        report = _scan(catalog, root)
        applier = FixApplier(catalog, report.root, decide=_always(FixDecision.APPLY))
        outcomes = applier.apply(report.findings)

        assert [o.state for o in outcomes] == [FixState.APPLIED, FixState.APPLIED]
        assert (root / "a.ts").read_text() == "function f(a: unknown, b: unknown) {}\n"

    def test_decider_sees_diff(self, make_tree, catalog):
        root = make_tree({"a.ts": "const x: any = 1;\n"})
        report = _scan(catalog, root)
        diffs = []

        def decide(finding, diff):
            diffs.append(diff)
            return FixDecision.SKIP

        outcomes = FixApplier(catalog, report.root, decide=decide).apply(report.findings)
        assert [o.state for o in outcomes] == [FixState.SKIPPED]
        assert "+const x: unknown = 1;" in diffs[0]
        assert (root / "a.ts").read_text() == "const x: any = 1;\n"

    def test_mark_intentional(self, make_tree, catalog):
        root = make_tree({"a.ts": "class A {\n  x!: any;\n}\n"})
        report = _scan(catalog, root)
        applier = FixApplier(
            catalog, report.root, decide=_always(FixDecision.MARK_INTENTIONAL)
        )
        outcomes = applier.apply(report.findings)

        assert {o.state for o in outcomes} == {FixState.MARKED_INTENTIONAL}
        lines = (root / "a.ts").read_text().splitlines()
        assert lines[1] == "  x!: any;  // slopscan-ignore: no-any, no-non-null-assertion"
        assert _scan(catalog, root).findings == ()

    def test_fix_that_breaks_syntax_stays_pending(self, make_tree):
        rule = Rule(
            id="drop-brace",
            category=Category.STYLE,
            severity=Severity.LOW,
            pattern=r"\{",
            autofixable=True,
            fix="",
            include=("*.js",),
        )
        catalog = RuleCatalog([rule])
        source = "function f() {\n  return 1;\n}\n"
        root = make_tree({"a.js": source})
        report = _scan(catalog, root)

        outcomes = FixApplier(catalog, report.root).apply(report.findings)

        assert outcomes[0].state == FixState.PENDING
        assert outcomes[0].error_kind == IssueKind.FIX_VALIDATION
        assert (root / "a.js").read_text() == source
        issues = outcome_issues(outcomes)
        assert [(i.kind, i.path, i.rule_id) for i in issues] == [
            (IssueKind.FIX_VALIDATION, "a.js", "drop-brace")
        ]

    def test_whitespace_fix_keeps_python_structure(self, make_tree):
        catalog = RuleCatalog([r for r in BUILTIN_RULES if r.id == "trailing-whitespace"])
        source = "x = 1   \n\ndef f():  \n    return 2\t\n"
        root = make_tree({"m.py": source})
        report = _scan(catalog, root)
        assert report.total == 3

        FixApplier(catalog, report.root).apply(report.findings)

        fixed = (root / "m.py").read_text()
        assert fixed == "x = 1\n\ndef f():\n    return 2\n"
        assert len(ast.parse(fixed).body) == len(ast.parse(source).body)

    def test_second_run_is_a_no_op(self, make_tree, catalog):
        root = make_tree({"a.js": "var a = 1;\nvar b = 2;\n"})
        report = _scan(catalog, root)
        FixApplier(catalog, report.root).apply(report.findings)
        assert (root / "a.js").read_text() == "let a = 1;\nlet b = 2;\n"

        again = _scan(catalog, root)
        assert again.findings == ()
        assert FixApplier(catalog, again.root).apply(again.findings) == []

    def test_vanished_finding_recorded_as_skipped(self, make_tree, catalog):
        # Deleting the line also removes the trailing whitespace on it
        root = make_tree({"a.js": "console.log(1);  \n"})
        report = _scan(catalog, root)
        assert sorted(f.rule_id for f in report.findings) == [
            "no-console",
            "trailing-whitespace",
        ]

        outcomes = FixApplier(catalog, report.root).apply(report.findings)

        states = {o.finding.rule_id: o for o in outcomes}
        assert states["no-console"].state == FixState.APPLIED
        assert states["trailing-whitespace"].state == FixState.SKIPPED
        assert states["trailing-whitespace"].detail
        assert (root / "a.js").read_text() == ""

    def test_write_failure_leaves_file_untouched(self, make_tree, catalog, monkeypatch):
        root = make_tree({"bad.js": "var a = 1;\n", "good.js": "var b = 2;\n"})
        report = _scan(catalog, root)
        real_replace = os.replace

        def fake_replace(src, dst):
            if str(dst).endswith("bad.js"):
                raise PermissionError(13, "Permission denied", str(dst))
            return real_replace(src, dst)

        monkeypatch.setattr(os, "replace", fake_replace)
        outcomes = FixApplier(catalog, report.root).apply(report.findings)

        by_file = {o.finding.file_path: o for o in outcomes}
        assert by_file["bad.js"].state == FixState.PENDING
        assert by_file["bad.js"].error_kind == IssueKind.WRITE
        assert by_file["good.js"].state == FixState.APPLIED
        assert (root / "bad.js").read_text() == "var a = 1;\n"
        assert (root / "good.js").read_text() == "let b = 2;\n"
        # No temp files left behind
        assert sorted(p.name for p in root.iterdir()) == ["bad.js", "good.js"]

    def test_cancelled_before_start(self, make_tree, catalog):
        root = make_tree({"a.js": "var a = 1;\n"})
        report = _scan(catalog, root)
        cancel = threading.Event()
        cancel.set()
        outcomes = FixApplier(catalog, report.root, cancel=cancel).apply(report.findings)
        assert [(o.state, o.error) for o in outcomes] == [(FixState.PENDING, "cancelled")]
        assert (root / "a.js").read_text() == "var a = 1;\n"

    def test_span_fix_after_form_feed(self, make_tree, catalog):
        root = make_tree({"a.js": "var a = 1;\x0cvar b = 2;\n"})
        report = _scan(catalog, root)
        assert [(f.line, f.column) for f in report.findings] == [(1, 1), (1, 12)]

        outcomes = FixApplier(catalog, report.root).apply(report.findings)

        assert [o.state for o in outcomes] == [FixState.APPLIED, FixState.APPLIED]
        assert (root / "a.js").read_text() == "let a = 1;\x0clet b = 2;\n"

    def test_mark_refused_on_continued_line(self, make_tree, catalog):
        source = "x = eval('1') + \\\n    2\n"
        root = make_tree({"m.py": source})
        report = _scan(catalog, root)
        assert [f.rule_id for f in report.findings] == ["no-eval"]

        applier = FixApplier(
            catalog, report.root, decide=_always(FixDecision.MARK_INTENTIONAL)
        )
        outcomes = applier.apply(report.findings)

        assert outcomes[0].state == FixState.PENDING
        assert outcomes[0].error_kind == IssueKind.FIX_VALIDATION
        assert (root / "m.py").read_text() == source
        ast.parse(source)

    def test_mark_refused_inside_template_literal(self, make_tree, catalog):
        source = "const s = `eval(x)\nmore`;\n"
        root = make_tree({"a.js": source})
        report = _scan(catalog, root)
        assert [f.rule_id for f in report.findings] == ["no-eval"]

        applier = FixApplier(
            catalog, report.root, decide=_always(FixDecision.MARK_INTENTIONAL)
        )
        outcomes = applier.apply(report.findings)

        assert outcomes[0].state == FixState.PENDING
        assert outcomes[0].error_kind == IssueKind.FIX_VALIDATION
        assert (root / "a.js").read_text() == source

    def test_crlf_endings_survive_fix(self, tmp_path, catalog):
        (tmp_path / "a.js").write_bytes(b"var a = 1;\r\nvar b = 2;\r\n")
        report = _scan(catalog, tmp_path)
        FixApplier(catalog, report.root).apply(report.findings)
        assert (tmp_path / "a.js").read_bytes() == b"let a = 1;\r\nlet b = 2;\r\n"


class TestHelpers:
    def test_annotate_python(self, make_tree, catalog):
        root = make_tree({"m.py": "print(x)\n"})
        finding = _scan(catalog, root).findings[0]
        assert annotate("print(x)\n", finding) == "print(x)  # slopscan-ignore: no-print\n"

    def test_annotate_json_refused(self):
        finding = Finding(
            rule_id="hardcoded-secret",
            file_path="c.json",
            line=1,
            column=1,
            end_column=2,
            matched_text="x",
            severity=Severity.CRITICAL,
            category=Category.SECURITY,
        )
        with pytest.raises(SlopScanError):
            annotate('{"a": 1}\n', finding)

    def test_preview_empty_without_fix(self, make_tree, catalog):
        root = make_tree({"m.py": "print(x)\n"})
        finding = _scan(catalog, root).findings[0]
        assert preview(catalog.get("no-print"), "print(x)\n", finding) == ""

    def test_atomic_write_keeps_mode(self, tmp_path):
        path = tmp_path / "run.sh"
        path.write_text("echo hi\n")
        path.chmod(0o755)
        atomic_write(path, "echo bye\n")
        assert path.read_text() == "echo bye\n"
        assert path.stat().st_mode & 0o777 == 0o755

    def test_atomic_write_preserves_crlf(self, tmp_path):
        path = tmp_path / "a.js"
        path.write_bytes(b"a\r\n")
        atomic_write(path, "b\r\n")
        assert path.read_bytes() == b"b\r\n"

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_atomic_write_through_symlink(self, tmp_path):
        target = tmp_path / "a.js"
        target.write_text("var a = 1;\n")
        link = tmp_path / "b.js"
        try:
            os.symlink(target, link)
        except OSError:
            pytest.skip("cannot create symlinks here")
        atomic_write(link, "let a = 1;\n")
        assert link.is_symlink()
        assert target.read_text() == "let a = 1;\n"


class TestValidate:
    def test_python(self):
        assert is_valid_source("x = 1\n", "a.py")
        assert not is_valid_source("def f(:\n", "a.py")

    def test_json_and_yaml(self):
        assert is_valid_source('{"a": 1}', "a.json")
        assert not is_valid_source('{"a": }', "a.json")
        assert is_valid_source("a: 1\n", "a.yaml")
        assert not is_valid_source("a: [1\n", "a.yaml")

    def test_brackets(self):
        assert brackets_balanced("f(a[1], {b: 2})")
        assert not brackets_balanced("f(a[1)]")
        assert is_valid_source('const s = "(";\n', "a.js")

    def test_validate_fix(self):
        validate_fix("x = 1\n", "x = 2\n", "a.py")
        # Broken before: nothing to judge
        validate_fix("def f(:\n", "def g(:\n", "a.py")
        with pytest.raises(FixValidationError):
            validate_fix("x = 1\n", "x = (\n", "a.py")
