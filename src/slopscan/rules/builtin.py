"""Built-in rule set for common AI-generated code smells."""

from __future__ import annotations

from slopscan.rules.models import Category, FixScope, Rule, Severity

_TS = ("*.ts", "*.tsx", "*.mts", "*.cts")
_JS_TS = ("*.js", "*.jsx", "*.mjs", "*.cjs") + _TS
_PY = ("*.py",)
_SENSITIVE = r"(?i)(password|passwd|secret|token|api[_-]?key|credential)"

BUILTIN_RULES: list[Rule] = [
    # type-safety
    Rule(
        id="no-any",
        category=Category.TYPE_SAFETY,
        severity=Severity.HIGH,
        pattern=r"(:\s*|\bas\s+|<)any\b",
        message="Explicit `any` disables type checking",
        fix=r"\1unknown",
        include=_TS,
    ),
    Rule(
        id="no-non-null-assertion",
        category=Category.TYPE_SAFETY,
        severity=Severity.MEDIUM,
        pattern=r"\b[A-Za-z_$][\w$]*!(?=[.:;,)\]\s])",
        message="Non-null assertion hides a possibly undefined value",
        include=_TS,
    ),
    Rule(
        id="no-ts-ignore",
        category=Category.TYPE_SAFETY,
        severity=Severity.HIGH,
        pattern=r"//\s*@ts-(?:ignore|nocheck)\b",
        message="Type errors suppressed instead of fixed",
        include=_JS_TS,
    ),
    Rule(
        id="no-type-ignore",
        category=Category.TYPE_SAFETY,
        severity=Severity.MEDIUM,
        pattern=r"#\s*type:\s*ignore\b",
        message="Type errors suppressed instead of fixed",
        include=_PY,
    ),
    Rule(
        id="no-loose-equality",
        category=Category.TYPE_SAFETY,
        severity=Severity.MEDIUM,
        pattern=r"(?<![=!<>])([!=])=(?!=)",
        message="Loose equality coerces types; use === or !==",
        fix=r"\1==",
        include=_JS_TS,
    ),
    # error-handling
    Rule(
        id="no-empty-catch",
        category=Category.ERROR_HANDLING,
        severity=Severity.HIGH,
        pattern=r"\bcatch\s*(?:\([^)]*\))?\s*\{\s*\}",
        message="Empty catch block swallows errors",
        include=_JS_TS,
    ),
    Rule(
        id="no-bare-except",
        category=Category.ERROR_HANDLING,
        severity=Severity.HIGH,
        pattern=r"\bexcept\s*:",
        message="Bare except catches SystemExit and KeyboardInterrupt",
        fix="except Exception:",
        include=_PY,
    ),
    Rule(
        id="no-except-pass",
        category=Category.ERROR_HANDLING,
        severity=Severity.HIGH,
        pattern=r"\bexcept\b[^:]*:\s*pass\b",
        message="Exception silently discarded",
        include=_PY,
    ),
    # immutability
    Rule(
        id="no-var",
        category=Category.IMMUTABILITY,
        severity=Severity.MEDIUM,
        pattern=r"\bvar\s+(?=[A-Za-z_$])",
        message="`var` is function-scoped and reassignable; prefer let/const",
        autofixable=True,
        fix="let ",
        include=_JS_TS,
    ),
    Rule(
        id="no-mutable-default",
        category=Category.IMMUTABILITY,
        severity=Severity.HIGH,
        pattern=r"\bdef\s+\w+\s*\(.*=\s*(?:\[\]|\{\}|set\(\))",
        message="Mutable default argument is shared between calls",
        include=_PY,
    ),
    # security
    Rule(
        id="no-eval",
        category=Category.SECURITY,
        severity=Severity.CRITICAL,
        pattern=r"(?<![\w.])(?:eval|exec)\s*\(|\bnew\s+Function\s*\(",
        message="Dynamic code execution",
        include=_JS_TS + _PY,
    ),
    Rule(
        id="no-inner-html",
        category=Category.SECURITY,
        severity=Severity.HIGH,
        pattern=r"\.(?:innerHTML|outerHTML)\s*=|dangerouslySetInnerHTML",
        message="Raw HTML injection enables XSS",
        include=_JS_TS,
    ),
    Rule(
        id="hardcoded-secret",
        category=Category.SECURITY,
        severity=Severity.CRITICAL,
        pattern=(
            r"(?:api[_-]?key|secret(?:[_-]?key)?|password|passwd|auth[_-]?token)"
            r"""["']?\s*[=:]\s*["'][^"'\s]{8,}["']"""
        ),
        message="Credential literal committed to source",
        ignore_case=True,
    ),
    Rule(
        id="no-shell-true",
        category=Category.SECURITY,
        severity=Severity.HIGH,
        pattern=r"\bshell\s*=\s*True\b",
        message="Subprocess with shell=True is open to injection",
        include=_PY,
    ),
    # performance
    Rule(
        id="no-sync-fs",
        category=Category.PERFORMANCE,
        severity=Severity.MEDIUM,
        pattern=r"\bfs\.\w+Sync\s*\(",
        message="Synchronous filesystem call blocks the event loop",
        include=_JS_TS,
    ),
    Rule(
        id="no-await-in-loop",
        category=Category.PERFORMANCE,
        severity=Severity.LOW,
        pattern=r"\bfor\b.*\)\s*\{?\s*await\b",
        message="Sequential await inside a loop",
        include=_JS_TS,
    ),
    # architecture
    Rule(
        id="no-console",
        category=Category.ARCHITECTURE,
        severity=Severity.LOW,
        pattern=r"^\s*console\.(?:log|debug|info|trace|dir)\s*\(.*\)\s*;?\s*$",
        message="Leftover debug logging",
        autofixable=True,
        fix="",
        fix_scope=FixScope.LINE,
        include=_JS_TS,
        escalate_when=_SENSITIVE,
    ),
    Rule(
        id="no-debugger",
        category=Category.ARCHITECTURE,
        severity=Severity.MEDIUM,
        pattern=r"^\s*debugger\s*;?\s*$",
        message="Leftover debugger statement",
        autofixable=True,
        fix="",
        fix_scope=FixScope.LINE,
        include=_JS_TS,
    ),
    Rule(
        id="no-print",
        category=Category.ARCHITECTURE,
        severity=Severity.LOW,
        pattern=r"^\s*print\s*\(",
        message="print() instead of logging",
        include=_PY,
        escalate_when=_SENSITIVE,
    ),
    Rule(
        id="max-function-length",
        category=Category.ARCHITECTURE,
        severity=Severity.MEDIUM,
        kind="max-function-length",
        message="Function is too long",
        include=_JS_TS + _PY,
    ),
    Rule(
        id="max-file-length",
        category=Category.ARCHITECTURE,
        severity=Severity.LOW,
        kind="max-file-length",
        message="File is too long",
        include=_JS_TS + _PY,
    ),
    # style
    Rule(
        id="trailing-whitespace",
        category=Category.STYLE,
        severity=Severity.LOW,
        pattern=r"[ \t]+$",
        message="Trailing whitespace",
        autofixable=True,
        fix="",
    ),
    Rule(
        id="todo-comment",
        category=Category.STYLE,
        severity=Severity.LOW,
        pattern=r"(?:#|//|/\*)\s*(?:TODO|FIXME|HACK|XXX)\b",
        message="Unresolved TODO marker",
    ),
]
