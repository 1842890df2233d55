"""Matcher — applies one rule to one file's text.

The regex tier is line-oriented and does not know about string literals or
comments, so a pattern can fire inside either. That is an accepted
limitation of this tier; structural rules (see ``scanner.structural``) work
on syntax instead.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from slopscan.errors import MatchError
from slopscan.report.models import Finding
from slopscan.rules.models import Rule, compile_rule
from slopscan.scanner.languages import split_lines
from slopscan.scanner.structural import run_structural

SUPPRESS_MARKER = "slopscan-ignore"
SUPPRESS_RE = re.compile(r"slopscan-ignore(?::\s*([\w\-]+(?:\s*,\s*[\w\-]+)*))?")


def suppressed_rules(line: str) -> frozenset[str] | None:
    """Rule ids suppressed by an inline marker.

    Returns None when the line has no marker and an empty set when the
    marker names no rules (everything on the line is suppressed).
    """
    m = SUPPRESS_RE.search(line)
    if not m:
        return None
    if not m.group(1):
        return frozenset()
    return frozenset(part.strip() for part in m.group(1).split(","))


def is_suppressed(rule_id: str, line: str) -> bool:
    ids = suppressed_rules(line)
    if ids is None:
        return False
    return not ids or rule_id in ids


def match(
    rule: Rule,
    content: str,
    file_path: str,
    limits: Mapping[str, int] | None = None,
) -> list[Finding]:
    """Return the rule's findings in ``content``, ordered by line then column.

    Raises MatchError if the rule cannot be executed (e.g. a malformed
    pattern); callers isolate it to this rule/file pair.
    """
    if not rule.applies_to(file_path):
        return []
    try:
        if rule.is_structural:
            findings = run_structural(rule, content, file_path, limits)
        else:
            findings = _match_regex(rule, content, file_path)
    except Exception as e:
        raise MatchError(
            f"Rule '{rule.id}' failed on {file_path}: {e}",
            context={"rule_id": rule.id, "path": file_path},
        ) from e

    if not findings:
        return findings
    lines = split_lines(content)
    return [
        f
        for f in findings
        if not (f.line <= len(lines) and is_suppressed(rule.id, lines[f.line - 1]))
    ]


def _match_regex(rule: Rule, content: str, file_path: str) -> list[Finding]:
    if rule.compiled is None:
        # Raises re.error for a malformed pattern
        rule = compile_rule(rule)
    regex = rule.compiled
    escalation = rule.compiled_escalation

    findings: list[Finding] = []
    for line_num, line in enumerate(split_lines(content), start=1):
        for m in regex.finditer(line):
            if m.start() == m.end():
                continue
            severity = rule.severity
            if escalation is not None and escalation.search(line):
                severity = severity.escalate()
            findings.append(
                Finding(
                    rule_id=rule.id,
                    file_path=file_path,
                    line=line_num,
                    column=m.start() + 1,
                    end_column=m.end() + 1,
                    matched_text=m.group(0),
                    severity=severity,
                    category=rule.category,
                    message=rule.message,
                    context_line=line.strip(),
                )
            )
    return findings


def match_all(
    rules: Iterable[Rule],
    content: str,
    file_path: str,
    limits: Mapping[str, int] | None = None,
    on_error=None,
) -> list[Finding]:
    """Apply every rule to one file; sorted by line, rule id, column.

    A MatchError from one rule is passed to ``on_error`` (if given) and the
    remaining rules still run.
    """
    findings: list[Finding] = []
    for rule in rules:
        try:
            findings.extend(match(rule, content, file_path, limits))
        except MatchError as e:
            if on_error is None:
                raise
            on_error(e)
    findings.sort(key=Finding.sort_key)
    return findings
