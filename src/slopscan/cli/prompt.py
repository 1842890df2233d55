"""CLI command: slopscan prompt [PATH] — emit an LLM review prompt."""

from __future__ import annotations

import click

from slopscan.cli.common import load_settings
from slopscan.config import THRESHOLDS
from slopscan.prompts import build_review_prompt
from slopscan.scanner.engine import ScanEngine


@click.command()
@click.argument("path", required=False, default=".", type=click.Path(exists=True))
@click.option("--threshold", "-t", help="relaxed, balanced, nitpicky, brutal, or a severity.")
@click.option(
    "--max-findings",
    type=click.IntRange(min=1),
    default=50,
    show_default=True,
    help="Findings to include before truncating.",
)
@click.pass_context
def prompt(
    ctx: click.Context,
    path: str,
    threshold: str | None,
    max_findings: int,
) -> None:
    """Scan PATH and print a review prompt for an external model."""
    config, catalog = load_settings(ctx, path, threshold=threshold)
    report = ScanEngine(catalog, config).scan(path)
    level = config.threshold if config.threshold in THRESHOLDS else "balanced"
    click.echo(build_review_prompt(report, level=level, max_findings=max_findings))

