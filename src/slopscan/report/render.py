"""Render a ScanReport as rich tables or a JSON-ready dict."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from slopscan.report.models import ScanReport
from slopscan.report.reporter import severity_totals
from slopscan.rules.models import Severity

SEVERITY_COLORS = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
}


def summary_line(report: ScanReport) -> str:
    """Plain-text severity counts, e.g. ``Critical: 0  High: 1  ...``."""
    totals = severity_totals(report)
    return "  ".join(f"{sev.value.capitalize()}: {n}" for sev, n in totals.items())


def render_text(report: ScanReport, console: Console, show_findings: bool = True) -> None:
    """Print the report: summary, category breakdown, findings, issues."""
    if report.findings and show_findings:
        table = Table(title="Findings", show_lines=False)
        table.add_column("Severity", style="bold", width=9)
        table.add_column("Location", style="cyan")
        table.add_column("Rule")
        table.add_column("Category")
        table.add_column("Match", max_width=50)

        for f in report.findings:
            color = SEVERITY_COLORS.get(f.severity, "white")
            table.add_row(
                f"[{color}]{f.severity.value}[/{color}]",
                escape(f"{f.file_path}:{f.line}"),
                f.rule_id,
                f.category.value,
                escape(f.matched_text.strip()[:50]),
            )
        console.print(table)

    if report.counts:
        breakdown = Table(title="By severity and category", show_lines=False)
        breakdown.add_column("Severity", style="bold")
        breakdown.add_column("Category")
        breakdown.add_column("Count", justify="right")
        for (sev, cat), n in report.counts.items():
            color = SEVERITY_COLORS.get(sev, "white")
            breakdown.add_row(f"[{color}]{sev.value}[/{color}]", cat.value, str(n))
        console.print(breakdown)

    if report.issues:
        issues = Table(title="Errors (not findings)", show_lines=False)
        issues.add_column("Kind", style="magenta")
        issues.add_column("Path", style="cyan")
        issues.add_column("Rule")
        issues.add_column("Message", max_width=70)
        for issue in report.issues:
            issues.add_row(
                issue.kind.value,
                escape(issue.path),
                issue.rule_id,
                escape(issue.message),
            )
        console.print(issues)

    if not report.findings:
        console.print("[green]No findings.[/green]")

    console.print(
        f"\nScanned {report.files_scanned} files "
        f"({report.files_skipped} skipped) "
        f"in {report.duration:.2f}s"
    )
    console.print(summary_line(report), markup=False, highlight=False)
    if report.cancelled:
        console.print("[yellow]Scan was cancelled; results are partial.[/yellow]")


def report_to_dict(report: ScanReport) -> dict:
    """Serializable view of the report, in the same order as the text output."""
    return {
        "root": report.root,
        "threshold": report.threshold.value,
        "files_scanned": report.files_scanned,
        "files_skipped": report.files_skipped,
        "duration": round(report.duration, 3),
        "cancelled": report.cancelled,
        "summary": {sev.value: n for sev, n in severity_totals(report).items()},
        "counts": [
            {"severity": sev.value, "category": cat.value, "count": n}
            for (sev, cat), n in report.counts.items()
        ],
        "findings": [
            {
                "rule": f.rule_id,
                "severity": f.severity.value,
                "category": f.category.value,
                "file": f.file_path,
                "line": f.line,
                "column": f.column,
                "match": f.matched_text,
                "message": f.message,
            }
            for f in report.findings
        ],
        "errors": [
            {
                "kind": i.kind.value,
                "path": i.path,
                "rule": i.rule_id,
                "message": i.message,
            }
            for i in report.issues
        ],
    }
