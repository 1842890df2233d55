"""Structural matchers — length limits measured on syntax, not single lines.

Python functions are measured with the stdlib ``ast``. For C-like languages
function bodies are found by brace matching on source with strings and
comments blanked out.
"""

from __future__ import annotations

import ast
import logging
import re
from collections.abc import Mapping

from slopscan.report.models import Finding
from slopscan.rules.models import Rule
from slopscan.scanner.languages import (
    C_LIKE,
    blank_strings_and_comments,
    language_for,
    split_lines,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    "max_function_length": 50,
    "max_file_length": 400,
}

# Function heads whose body starts at the next "{"
_JS_FUNCTION_HEADS = [
    re.compile(r"\bfunction\s*\*?\s*([A-Za-z_$][\w$]*)?\s*\("),
    re.compile(
        r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*(?::[^=]+)?=\s*"
        r"(?:async\s+)?(?:\([^()]*\)|[A-Za-z_$][\w$]*)\s*(?::[^=]+)?=>\s*\{"
    ),
    re.compile(
        r"^[ \t]*(?:(?:public|private|protected|static|async|override|readonly)\s+)*"
        r"([A-Za-z_$][\w$]*)\s*\([^()]*\)\s*(?::\s*[^{;]+)?\{",
        re.MULTILINE,
    ),
]
_NOT_METHODS = frozenset({"if", "for", "while", "switch", "catch", "with", "return", "function"})


def run_structural(
    rule: Rule,
    content: str,
    file_path: str,
    limits: Mapping[str, int] | None = None,
) -> list[Finding]:
    """Dispatch a structural rule by its kind."""
    merged = {**DEFAULT_LIMITS, **(limits or {})}
    if rule.kind == "max-file-length":
        return _file_length(rule, content, file_path, merged["max_file_length"])
    if rule.kind == "max-function-length":
        return _function_length(rule, content, file_path, merged["max_function_length"])
    raise ValueError(f"Unknown structural rule kind: {rule.kind}")


def _file_length(rule: Rule, content: str, file_path: str, limit: int) -> list[Finding]:
    lines = split_lines(content)
    if len(lines) <= limit:
        return []
    first_over = lines[limit]
    return [
        Finding(
            rule_id=rule.id,
            file_path=file_path,
            line=limit + 1,
            column=1,
            end_column=len(first_over) + 1,
            matched_text=f"{len(lines)} lines",
            severity=rule.severity,
            category=rule.category,
            message=f"{rule.message or 'File is too long'} ({len(lines)} > {limit} lines)",
            context_line=first_over.strip(),
        )
    ]


def _function_length(
    rule: Rule, content: str, file_path: str, limit: int
) -> list[Finding]:
    language = language_for(file_path)
    if language == "python":
        spans = _python_functions(content, file_path)
    elif language in C_LIKE:
        spans = _brace_functions(content, language)
    else:
        return []

    lines = split_lines(content)
    findings: list[Finding] = []
    for name, start_line, column, end_line in spans:
        length = end_line - start_line + 1
        if length <= limit:
            continue
        line_text = lines[start_line - 1] if start_line <= len(lines) else ""
        findings.append(
            Finding(
                rule_id=rule.id,
                file_path=file_path,
                line=start_line,
                column=column,
                end_column=len(line_text) + 1,
                matched_text=name,
                severity=rule.severity,
                category=rule.category,
                message=(
                    f"{rule.message or 'Function is too long'}: "
                    f"'{name}' has {length} lines (max {limit})"
                ),
                context_line=line_text.strip(),
            )
        )
    return findings


def _python_functions(content: str, file_path: str) -> list[tuple[str, int, int, int]]:
    try:
        tree = ast.parse(content)
    except SyntaxError:
        logger.debug("AST parse failed for %s, skipping function lengths", file_path)
        return []
    spans = []
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            end = getattr(node, "end_lineno", None) or node.lineno
            spans.append((node.name, node.lineno, node.col_offset + 1, end))
    return spans


def _brace_functions(content: str, language: str) -> list[tuple[str, int, int, int]]:
    code = blank_strings_and_comments(content, language)
    spans: dict[int, tuple[str, int, int, int]] = {}
    for head in _JS_FUNCTION_HEADS:
        for m in head.finditer(code):
            name = m.group(1) or "<anonymous>"
            if name in _NOT_METHODS:
                continue
            open_idx = code.find("{", m.end() - 1)
            if open_idx == -1:
                continue
            close_idx = find_matching_brace(code, open_idx)
            if close_idx is None:
                continue
            start = m.start() + (len(m.group(0)) - len(m.group(0).lstrip()))
            if start in spans:
                continue
            start_line = code.count("\n", 0, start) + 1
            column = start - (code.rfind("\n", 0, start) + 1) + 1
            end_line = code.count("\n", 0, close_idx) + 1
            spans[start] = (name, start_line, column, end_line)
    return [spans[k] for k in sorted(spans)]


def find_matching_brace(code: str, open_idx: int) -> int | None:
    """Index of the brace closing ``code[open_idx]``, or None if unbalanced."""
    depth = 0
    for i in range(open_idx, len(code)):
        ch = code[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None
