"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from slopscan.config import SlopScanConfig
from slopscan.rules.catalog import RuleCatalog
from slopscan.rules.loader import build_catalog
from slopscan.rules.models import Category, FixScope, Rule, Severity


@pytest.fixture
def catalog() -> RuleCatalog:
    return build_catalog()


@pytest.fixture
def no_any_rule() -> Rule:
    return Rule(
        id="no-any",
        category=Category.TYPE_SAFETY,
        severity=Severity.HIGH,
        pattern=r"(:\s*|\bas\s+|<)any\b",
        message="Explicit any",
        fix=r"\1unknown",
        include=("*.ts",),
    )


@pytest.fixture
def no_console_rule() -> Rule:
    return Rule(
        id="no-console",
        category=Category.ARCHITECTURE,
        severity=Severity.LOW,
        pattern=r"^\s*console\.(?:log|debug|info)\s*\(.*\)\s*;?\s*$",
        autofixable=True,
        fix="",
        fix_scope=FixScope.LINE,
    )


@pytest.fixture
def brutal_config() -> SlopScanConfig:
    return SlopScanConfig(threshold="brutal")


@pytest.fixture
def make_tree(tmp_path: Path):
    """Write a mapping of relative path → content under tmp_path."""

    def _make(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    return _make
