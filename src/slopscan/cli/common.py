"""Helpers shared by CLI commands — settings and catalog loading."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from slopscan.config import SlopScanConfig, find_config
from slopscan.errors import CatalogError, ConfigError
from slopscan.rules.catalog import RuleCatalog
from slopscan.rules.loader import build_catalog, parse_rules

console = Console(stderr=True)

EXIT_FINDINGS = 1
EXIT_FATAL = 2


def load_settings(
    ctx: click.Context,
    path: str,
    threshold: str | None = None,
    fail_on: str | None = None,
) -> tuple[SlopScanConfig, RuleCatalog]:
    """Load config and catalog, exiting with status 2 on a fatal error."""
    config_path = ctx.obj.get("config_path") if ctx.obj else None
    if config_path is None:
        config_path = find_config(Path(path))
    try:
        config = SlopScanConfig.load(config_path)
        overrides = {}
        if threshold:
            overrides["threshold"] = threshold
        if fail_on:
            overrides["fail_on"] = fail_on
        if overrides:
            config = SlopScanConfig.from_mapping({**config.model_dump(), **overrides})
        catalog = build_catalog(
            extra_rules=parse_rules(config.rules),
            autofix=config.autofix,
            disable=config.disable,
        )
    except (ConfigError, CatalogError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(EXIT_FATAL)
    return config, catalog
