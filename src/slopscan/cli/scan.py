"""CLI command: slopscan scan [PATH] — scan, report, and optionally fix."""

from __future__ import annotations

import contextlib
import json
import signal
import sys
import threading

import click
from rich.markup import escape
from rich.syntax import Syntax

from slopscan.cli.common import EXIT_FINDINGS, console, load_settings
from slopscan.fixer.applier import FixApplier, outcome_issues
from slopscan.fixer.models import FixDecision, FixOutcome, FixState
from slopscan.report.models import Finding
from slopscan.report.render import render_text, report_to_dict
from slopscan.report.reporter import unresolved, with_issues
from slopscan.scanner.engine import ScanEngine

_DECISION_KEYS = {
    "a": FixDecision.APPLY,
    "s": FixDecision.SKIP,
    "m": FixDecision.MARK_INTENTIONAL,
}


@click.command()
@click.argument("path", required=False, default=".", type=click.Path(exists=True))
@click.option(
    "--fix",
    is_flag=True,
    help=(
        "Apply autofixable rules and prompt for the rest. Only findings at or "
        "above the threshold are fixed."
    ),
)
@click.option("--report", "report_only", is_flag=True, help="Scan only; never modify files.")
@click.option("--threshold", "-t", help="relaxed, balanced, nitpicky, brutal, or a severity.")
@click.option("--fail-on", help="Exit non-zero if findings at this severity or above remain.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Report format.",
)
@click.option("--jobs", "-j", type=click.IntRange(min=1), help="Parallel workers.")
@click.option("--yes", "-y", is_flag=True, help="With --fix, apply every available fix.")
@click.option(
    "--no-input",
    is_flag=True,
    help="With --fix, apply only autofixable rules and leave the rest pending.",
)
@click.pass_context
def scan(
    ctx: click.Context,
    path: str,
    fix: bool,
    report_only: bool,
    threshold: str | None,
    fail_on: str | None,
    output_format: str,
    jobs: int | None,
    yes: bool,
    no_input: bool,
) -> None:
    """Scan source code for sloppy patterns."""
    if fix and report_only:
        raise click.UsageError("--fix and --report are mutually exclusive")

    config, catalog = load_settings(ctx, path, threshold=threshold, fail_on=fail_on)
    engine = ScanEngine(catalog, config, max_workers=jobs)

    if output_format == "text":
        console.print(
            f"[bold]slopscan[/bold] scanning [cyan]{escape(path)}[/cyan] "
            f"with {len(catalog)} rules (threshold [cyan]{config.threshold}[/cyan])\n"
        )

    cancel = threading.Event()
    with _cancel_on_interrupt(cancel):
        report = engine.scan(path, cancel=cancel)

        if fix and report.findings and not cancel.is_set():
            decide = None
            if yes:
                decide = _apply_all
            elif not no_input:
                decide = _prompt_decision
            applier = FixApplier(
                catalog,
                report.root,
                decide=decide,
                limits=engine.limits,
                cancel=cancel,
                max_workers=jobs,
            )
            outcomes = applier.apply(report.findings)
            _print_outcomes(outcomes)
            # Verify: the previous report is superseded by a fresh scan
            report = with_issues(engine.scan(path, cancel=cancel), outcome_issues(outcomes))

    if output_format == "json":
        click.echo(json.dumps(report_to_dict(report), indent=2))
    else:
        render_text(report, console)

    remaining = unresolved(report, config.fail_severity)
    if remaining:
        if output_format == "text":
            console.print(
                f"\n[red]{remaining} finding(s) at or above "
                f"{config.fail_severity.value}[/red]"
            )
        sys.exit(EXIT_FINDINGS)


@contextlib.contextmanager
def _cancel_on_interrupt(event: threading.Event):
    """Set ``event`` on SIGINT instead of raising KeyboardInterrupt."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: object) -> None:
        console.print("\n[dim]Cancelling after in-flight files...[/dim]")
        event.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _apply_all(finding: Finding, diff: str) -> FixDecision:
    return FixDecision.APPLY


def _prompt_decision(finding: Finding, diff: str) -> FixDecision:
    console.print(
        f"\n[bold]{escape(finding.location)}[/bold] "
        f"[yellow]{finding.rule_id}[/yellow] ({finding.severity.value}): "
        f"{escape(finding.message)}"
    )
    console.print(f"  [dim]{escape(finding.context_line)}[/dim]")
    if diff:
        console.print(Syntax(diff, "diff", theme="ansi_dark"))
        choices = ["a", "s", "m"]
        hint = "[a]pply, [s]kip, [m]ark intentional"
    else:
        choices = ["s", "m"]
        hint = "no automatic fix; [s]kip or [m]ark intentional"
    answer = click.prompt(
        hint,
        type=click.Choice(choices),
        default="s",
        show_choices=False,
        err=True,
    )
    return _DECISION_KEYS[answer]


def _print_outcomes(outcomes: list[FixOutcome]) -> None:
    counts = {state: 0 for state in FixState}
    for o in outcomes:
        counts[o.state] += 1
    console.print(
        f"\nFixes: {counts[FixState.APPLIED]} applied, "
        f"{counts[FixState.MARKED_INTENTIONAL]} marked intentional, "
        f"{counts[FixState.SKIPPED]} skipped, "
        f"{counts[FixState.PENDING]} pending"
    )
    for o in outcomes:
        if o.error:
            console.print(
                f"  [red]not fixed[/red] {escape(o.finding.location)} "
                f"{o.finding.rule_id}: {escape(o.error)}"
            )
