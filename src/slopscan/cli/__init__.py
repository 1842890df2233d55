"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from slopscan import __version__


@click.group()
@click.version_option(version=__version__, prog_name="slopscan")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a .slopscan.yaml settings file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """slopscan — find and clean up low-quality code patterns."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from slopscan.cli.prompt import prompt  # noqa: F811
    from slopscan.cli.rules import rules  # noqa: F811
    from slopscan.cli.scan import scan  # noqa: F811

    main.add_command(scan)
    main.add_command(rules)
    main.add_command(prompt)


_register_commands()
