"""Fix applier — rewrites matched spans, one file at a time.

Fixes in the same file are applied sequentially against a single buffer;
distinct files are processed in parallel. After every mutation the file is
re-matched, so the next finding presented always carries up-to-date
coordinates. Every write is atomic (temp file, then ``os.replace``).
"""

from __future__ import annotations

import contextlib
import difflib
import logging
import os
import shutil
import tempfile
import threading
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

from slopscan.errors import FixValidationError, MatchError, SlopScanError, WriteError
from slopscan.fixer.models import FixDecision, FixOutcome, FixState
from slopscan.fixer.validate import validate_fix
from slopscan.report.models import Finding, IssueKind, ScanIssue
from slopscan.rules.catalog import RuleCatalog
from slopscan.rules.models import FixScope, Rule, compile_rule
from slopscan.scanner.languages import (
    blank_strings_and_comments,
    language_for,
    line_comment,
    line_ends_in_string,
    split_lines,
)
from slopscan.scanner.matcher import SUPPRESS_MARKER, SUPPRESS_RE, match_all

logger = logging.getLogger(__name__)

# Called with the finding and a unified diff of the proposed fix ("" if none)
Decider = Callable[[Finding, str], FixDecision]


class StaleFindingError(SlopScanError):
    """The finding no longer matches the file's current text."""


@dataclass(frozen=True)
class _Edit:
    line: int
    column: int
    old_len: int
    new_len: int
    removed_line: bool = False
    added_lines: int = 0


def _split_lines(content: str) -> list[tuple[str, str]]:
    """Split into (text, line ending) pairs so endings survive a rewrite.

    Only ``\n`` ends a line, matching the line numbers the matcher reports.
    """
    pairs = []
    parts = content.split("\n")
    for i, part in enumerate(parts):
        last = i == len(parts) - 1
        if last and part == "":
            break
        ending = "" if last else "\n"
        if part.endswith("\r"):
            part, ending = part[:-1], "\r" + ending
        pairs.append((part, ending))
    return pairs


def _join_lines(pairs: list[tuple[str, str]]) -> str:
    return "".join(text + ending for text, ending in pairs)


def _locate(rule: Rule, line: str, finding: Finding):
    if rule.compiled is None:
        rule = compile_rule(rule)
    for m in rule.compiled.finditer(line):
        if m.start() == finding.column - 1 and m.group(0) == finding.matched_text:
            return m
    raise StaleFindingError(
        f"{finding.location}: '{finding.matched_text}' is no longer there",
        context={"rule_id": finding.rule_id, "path": finding.file_path},
    )


def rewrite(rule: Rule, content: str, finding: Finding) -> tuple[str, _Edit]:
    """Return ``content`` with the rule's fix applied at ``finding``."""
    if rule.fix is None or rule.is_structural:
        raise SlopScanError(f"Rule '{rule.id}' has no fix template")
    pairs = _split_lines(content)
    if finding.line > len(pairs):
        raise StaleFindingError(f"{finding.location}: line no longer exists")
    text, ending = pairs[finding.line - 1]
    m = _locate(rule, text, finding)
    replacement = m.expand(rule.fix)

    if rule.fix_scope == FixScope.LINE:
        if replacement == "":
            del pairs[finding.line - 1]
            return _join_lines(pairs), _Edit(
                finding.line, 1, len(text), 0, removed_line=True
            )
        pairs[finding.line - 1] = (replacement, ending)
        return _join_lines(pairs), _Edit(
            finding.line, 1, len(text), len(replacement),
            added_lines=replacement.count("\n"),
        )

    new_text = text[: m.start()] + replacement + text[m.end() :]
    pairs[finding.line - 1] = (new_text, ending)
    return _join_lines(pairs), _Edit(
        finding.line,
        finding.column,
        m.end() - m.start(),
        len(replacement),
        added_lines=replacement.count("\n"),
    )


def annotate(content: str, finding: Finding) -> str:
    """Append (or extend) an inline suppression marker on the finding's line."""
    language = language_for(finding.file_path)
    comment = line_comment(language)
    if comment is None:
        raise SlopScanError(f"{finding.file_path} has no comment syntax to annotate")
    pairs = _split_lines(content)
    if finding.line > len(pairs):
        raise StaleFindingError(f"{finding.location}: line no longer exists")
    text, ending = pairs[finding.line - 1]

    if line_ends_in_string(content, language, finding.line):
        raise FixValidationError(
            f"{finding.location}: line ends inside a multi-line string",
            context={"rule_id": finding.rule_id, "path": finding.file_path},
        )
    code = split_lines(blank_strings_and_comments(content, language))
    if finding.line <= len(code) and code[finding.line - 1].rstrip().endswith("\\"):
        raise FixValidationError(
            f"{finding.location}: line continues onto the next one",
            context={"rule_id": finding.rule_id, "path": finding.file_path},
        )

    existing = SUPPRESS_RE.search(text)
    if existing and existing.group(1):
        ids = [p.strip() for p in existing.group(1).split(",")]
        if finding.rule_id not in ids:
            text = (
                text[: existing.end(1)]
                + f", {finding.rule_id}"
                + text[existing.end(1) :]
            )
    elif not existing:
        sep = "  " if text.strip() else ""
        text = f"{text.rstrip()}{sep}{comment} {SUPPRESS_MARKER}: {finding.rule_id}"
    pairs[finding.line - 1] = (text, ending)
    return _join_lines(pairs)


def preview(rule: Rule, content: str, finding: Finding) -> str:
    """Unified diff of the proposed fix, or "" if the rule cannot fix it."""
    if rule.fix is None or rule.is_structural:
        return ""
    try:
        new_content, _ = rewrite(rule, content, finding)
    except SlopScanError:
        return ""
    return "".join(
        difflib.unified_diff(
            [text + ending for text, ending in _split_lines(content)],
            [text + ending for text, ending in _split_lines(new_content)],
            fromfile=f"a/{finding.file_path}",
            tofile=f"b/{finding.file_path}",
            n=1,
        )
    )


def atomic_write(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, then replace.

    A symlink is written through: its target is replaced, not the link.
    """
    path = Path(os.path.realpath(path))
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise WriteError(f"Cannot write {path}: {e}", context={"path": str(path)}) from e


def _shift(finding: Finding, edit: _Edit) -> Finding | None:
    """Move a still-pending finding to its coordinates after ``edit``."""
    if finding.line < edit.line:
        return finding
    if finding.line > edit.line:
        delta = edit.added_lines - (1 if edit.removed_line else 0)
        return replace(finding, line=finding.line + delta) if delta else finding
    # Same line
    if edit.removed_line or edit.added_lines:
        return None
    if finding.column > edit.column:
        delta = edit.new_len - edit.old_len
        return replace(
            finding,
            column=finding.column + delta,
            end_column=finding.end_column + delta,
        )
    return finding


class FixApplier:
    """Applies fixes to findings and records a FixOutcome for each.

    A finding is applied when its rule is autofixable, or when ``decide``
    returns APPLY for it. Without a decider, non-autofixable findings stay
    PENDING.
    """

    def __init__(
        self,
        catalog: RuleCatalog,
        root: str | Path,
        decide: Decider | None = None,
        limits: Mapping[str, int] | None = None,
        cancel: threading.Event | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._catalog = catalog
        self._root = Path(root)
        self._decide = decide
        self._limits = dict(limits or {})
        self._cancel = cancel
        # Interactive review runs one file at a time so prompts never interleave
        if decide is not None:
            max_workers = 1
        self._max_workers = max(1, max_workers or os.cpu_count() or 4)

    def apply(self, findings: Iterable[Finding]) -> list[FixOutcome]:
        by_file: dict[str, list[Finding]] = {}
        for f in findings:
            by_file.setdefault(f.file_path, []).append(f)

        outcomes: list[FixOutcome] = []
        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="slopscan-fix"
        ) as pool:
            futures = [
                pool.submit(self._fix_file, rel, sorted(items, key=Finding.sort_key))
                for rel, items in sorted(by_file.items())
            ]
            for fut in futures:
                outcomes.extend(fut.result())

        outcomes.sort(key=lambda o: o.finding.sort_key())
        applied = sum(1 for o in outcomes if o.state == FixState.APPLIED)
        logger.info("Applied %d of %d fixes", applied, len(outcomes))
        return outcomes

    def _fix_file(self, rel: str, findings: list[Finding]) -> list[FixOutcome]:
        path = self._root / rel
        outcomes: list[FixOutcome] = []

        def _pending_all(items: list[Finding], error: str) -> list[FixOutcome]:
            return outcomes + [
                FixOutcome(finding=f, state=FixState.PENDING, error=error) for f in items
            ]

        try:
            # newline="" keeps CRLF endings intact through the rewrite
            with path.open(encoding="utf-8", newline="") as fh:
                content = fh.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s: %s", path, e)
            return _pending_all(findings, f"read failed: {e}")

        # Originals are kept for reporting; queue entries track live coordinates
        queue: list[tuple[Finding, Finding]] = [(f, f) for f in findings]
        while queue:
            if self._cancel is not None and self._cancel.is_set():
                return _pending_all([orig for orig, _ in queue], "cancelled")

            original, current = queue.pop(0)
            rule = self._catalog.get(current.rule_id)
            decision = self._decision_for(rule, content, current)

            if decision is None:
                outcomes.append(FixOutcome(finding=original, state=FixState.PENDING))
                continue
            if decision == FixDecision.SKIP:
                outcomes.append(FixOutcome(finding=original, state=FixState.SKIPPED))
                continue

            try:
                if decision == FixDecision.APPLY:
                    new_content, edit = rewrite(rule, content, current)
                    validate_fix(content, new_content, rel)
                    state = FixState.APPLIED
                else:
                    new_content = annotate(content, current)
                    validate_fix(content, new_content, rel)
                    edit = None
                    state = FixState.MARKED_INTENTIONAL
                atomic_write(path, new_content)
            except WriteError as e:
                logger.warning("%s", e)
                outcomes.append(
                    FixOutcome(
                        finding=original,
                        state=FixState.PENDING,
                        error=str(e),
                        error_kind=IssueKind.WRITE,
                    )
                )
                # The file is unwritable; nothing else in it can be fixed
                return _pending_all([orig for orig, _ in queue], str(e))
            except FixValidationError as e:
                logger.warning("%s: %s", current.location, e)
                outcomes.append(
                    FixOutcome(
                        finding=original,
                        state=FixState.PENDING,
                        error=str(e),
                        error_kind=IssueKind.FIX_VALIDATION,
                    )
                )
                continue
            except SlopScanError as e:
                logger.info("Fix for %s not applied: %s", current.location, e)
                outcomes.append(
                    FixOutcome(finding=original, state=FixState.PENDING, error=str(e))
                )
                continue

            content = new_content
            outcomes.append(FixOutcome(finding=original, state=state))
            queue, resolved = self._relocate(queue, edit, content, rel)
            outcomes.extend(
                FixOutcome(
                    finding=orig,
                    state=FixState.SKIPPED,
                    detail="no longer present after an earlier fix",
                )
                for orig in resolved
            )
        return outcomes

    def _decision_for(
        self, rule: Rule, content: str, finding: Finding
    ) -> FixDecision | None:
        if rule.autofixable and rule.has_fix and not rule.is_structural:
            return FixDecision.APPLY
        if self._decide is None:
            return None
        return self._decide(finding, preview(rule, content, finding))

    def _relocate(
        self,
        queue: list[tuple[Finding, Finding]],
        edit: _Edit | None,
        content: str,
        rel: str,
    ) -> tuple[list[tuple[Finding, Finding]], list[Finding]]:
        """Recompute pending findings against the mutated file."""
        if not queue:
            return queue, []
        rule_ids = {cur.rule_id for _, cur in queue}
        rules = [r for r in self._catalog if r.id in rule_ids]
        try:
            fresh = match_all(rules, content, rel, self._limits)
        except MatchError as e:
            logger.warning("Re-match failed for %s: %s", rel, e)
            fresh = []
        fresh_by_key = {(f.rule_id, f.line, f.column): f for f in fresh}

        kept: list[tuple[Finding, Finding]] = []
        resolved: list[Finding] = []
        for orig, cur in queue:
            moved = _shift(cur, edit) if edit is not None else cur
            live = (
                fresh_by_key.get((moved.rule_id, moved.line, moved.column))
                if moved is not None
                else None
            )
            if live is None:
                resolved.append(orig)
            else:
                kept.append((orig, live))
        return kept, resolved


def outcome_issues(outcomes: Iterable[FixOutcome]) -> list[ScanIssue]:
    """Failed fixes as report issues, distinct from findings."""
    return [
        ScanIssue(
            kind=o.error_kind,
            path=o.finding.file_path,
            message=f"line {o.finding.line}: {o.error}",
            rule_id=o.finding.rule_id,
        )
        for o in outcomes
        if o.error and o.error_kind is not None
    ]
