"""CLI command: slopscan rules — list the active rule catalog."""

from __future__ import annotations

import click
from rich.markup import escape
from rich.table import Table

from slopscan.cli.common import console, load_settings
from slopscan.report.render import SEVERITY_COLORS


@click.command()
@click.argument("path", required=False, default=".", type=click.Path(exists=True))
@click.pass_context
def rules(ctx: click.Context, path: str) -> None:
    """List the rules that would run against PATH."""
    config, catalog = load_settings(ctx, path)

    table = Table(title=f"Rules ({len(catalog)})", show_lines=False)
    table.add_column("Rule", style="cyan")
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Fix")
    table.add_column("Applies to", max_width=30)
    table.add_column("Description", max_width=50)

    for rule in catalog.list_rules():
        color = SEVERITY_COLORS.get(rule.severity, "white")
        if rule.autofixable and rule.has_fix:
            fix = "[green]auto[/green]"
        elif rule.has_fix:
            fix = "prompt"
        else:
            fix = "[dim]-[/dim]"
        table.add_row(
            rule.id,
            rule.category.value,
            f"[{color}]{rule.severity.value}[/{color}]",
            fix,
            escape(", ".join(rule.include) or "all files"),
            escape(rule.message),
        )

    console.print(table)
