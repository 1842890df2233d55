"""Reporter — groups, counts, and orders findings into a ScanReport."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import replace

from slopscan.report.models import Finding, ScanIssue, ScanReport
from slopscan.rules.catalog import RuleCatalog
from slopscan.rules.models import SEVERITY_ORDER, Severity

logger = logging.getLogger(__name__)

_SEVERITY_POSITION = {sev: i for i, sev in enumerate(SEVERITY_ORDER)}


def aggregate(
    findings: Iterable[Finding],
    catalog: RuleCatalog,
    issues: Iterable[ScanIssue] = (),
    threshold: Severity = Severity.LOW,
    root: str = "",
    files_scanned: int = 0,
    files_skipped: int = 0,
    duration: float = 0.0,
    cancelled: bool = False,
) -> ScanReport:
    """Build a report from raw findings.

    Findings below ``threshold`` are dropped. The rest are ordered by
    severity (critical first), then category in catalog declaration order,
    then file path, line, and rule id. Every kept finding lands in exactly
    one (severity, category) bucket.
    """
    category_rank = catalog.category_rank()
    kept = [f for f in findings if f.severity.at_least(threshold)]
    kept.sort(
        key=lambda f: (
            _SEVERITY_POSITION[f.severity],
            category_rank.get(f.category, len(category_rank)),
            *f.sort_key(),
        )
    )

    counts = Counter((f.severity, f.category) for f in kept)
    # Bucket order mirrors display order
    ordered_counts = {
        key: counts[key]
        for key in sorted(
            counts,
            key=lambda k: (_SEVERITY_POSITION[k[0]], category_rank.get(k[1], 99)),
        )
    }

    sorted_issues = sorted(
        issues, key=lambda i: (i.path, i.kind.value, i.rule_id, i.message)
    )
    logger.debug(
        "Aggregated %d findings (%d issues) at threshold %s",
        len(kept),
        len(sorted_issues),
        threshold.value,
    )
    return ScanReport(
        root=root,
        findings=tuple(kept),
        counts=ordered_counts,
        issues=tuple(sorted_issues),
        threshold=threshold,
        files_scanned=files_scanned,
        files_skipped=files_skipped,
        duration=duration,
        cancelled=cancelled,
    )


def severity_totals(report: ScanReport) -> dict[Severity, int]:
    """Count per severity, every level present (zeros included)."""
    return {sev: report.count(severity=sev) for sev in SEVERITY_ORDER}


def unresolved(report: ScanReport, floor: Severity) -> int:
    """Number of findings at or above ``floor``."""
    return len(report.at_or_above(floor))


def with_issues(report: ScanReport, extra: Iterable[ScanIssue]) -> ScanReport:
    """A new report carrying additional issues (e.g. failed fixes)."""
    merged = sorted(
        [*report.issues, *extra],
        key=lambda i: (i.path, i.kind.value, i.rule_id, i.message),
    )
    return replace(report, issues=tuple(merged))
