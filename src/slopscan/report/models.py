"""Report data models — findings, non-fatal issues, and the scan report."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field

from slopscan.rules.models import Category, Severity


@dataclass(frozen=True)
class Finding:
    """A single rule match at a specific file location."""

    rule_id: str
    file_path: str
    line: int
    column: int
    end_column: int
    matched_text: str
    severity: Severity
    category: Category
    message: str = ""
    context_line: str = ""

    @property
    def location(self) -> str:
        return f"{self.file_path}:{self.line}:{self.column}"

    def sort_key(self) -> tuple[str, int, str, int]:
        return (self.file_path, self.line, self.rule_id, self.column)


class IssueKind(enum.Enum):
    """Where a non-fatal error happened."""

    WALK = "walk"
    READ = "read"
    MATCH = "match"
    FIX_VALIDATION = "fix-validation"
    WRITE = "write"


@dataclass(frozen=True)
class ScanIssue:
    """A non-fatal error surfaced in the report alongside findings."""

    kind: IssueKind
    path: str
    message: str
    rule_id: str = ""


@dataclass(frozen=True)
class ScanReport:
    """Aggregated, sorted output of a scan. Never mutated after creation."""

    root: str
    findings: tuple[Finding, ...] = ()
    counts: dict[tuple[Severity, Category], int] = field(default_factory=dict)
    issues: tuple[ScanIssue, ...] = ()
    threshold: Severity = Severity.LOW
    files_scanned: int = 0
    files_skipped: int = 0
    duration: float = 0.0
    cancelled: bool = False
    timestamp: float = field(default_factory=time.time)

    @property
    def total(self) -> int:
        return len(self.findings)

    def count(
        self,
        severity: Severity | None = None,
        category: Category | None = None,
    ) -> int:
        return sum(
            n
            for (sev, cat), n in self.counts.items()
            if (severity is None or sev == severity)
            and (category is None or cat == category)
        )

    def at_or_above(self, severity: Severity) -> list[Finding]:
        return [f for f in self.findings if f.severity.at_least(severity)]

    def by_file(self) -> dict[str, list[Finding]]:
        grouped: dict[str, list[Finding]] = {}
        for f in self.findings:
            grouped.setdefault(f.file_path, []).append(f)
        return grouped
