"""Build Rule objects from YAML mappings."""

from __future__ import annotations

from pathlib import Path

import yaml

from slopscan.errors import ConfigError, InvalidCategoryError
from slopscan.rules.builtin import BUILTIN_RULES
from slopscan.rules.catalog import RuleCatalog
from slopscan.rules.models import STRUCTURAL_KINDS, Category, FixScope, Rule, Severity


def load_rules(path: str | Path) -> list[Rule]:
    """Load a list of rules from a YAML file."""
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read rules file {path}: {e}") from e
    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise ConfigError("Rules YAML must be a list or a mapping with 'rules'")
    return parse_rules(data)


def parse_rules(rules_data: list) -> list[Rule]:
    rules: list[Rule] = []
    for r in rules_data:
        if not isinstance(r, dict):
            raise ConfigError(f"Rule entry must be a mapping, got {r!r}")
        rules.append(parse_rule(r))
    return rules


def parse_rule(data: dict) -> Rule:
    """Build a single Rule from a mapping.

    Raises InvalidCategoryError for a category outside the enumeration and
    ConfigError for any other malformed field.
    """
    rule_id = data.get("id")
    if not rule_id or not isinstance(rule_id, str):
        raise ConfigError(f"Rule is missing an 'id': {data!r}")

    try:
        category = Category(data.get("category", ""))
    except ValueError:
        raise InvalidCategoryError(
            f"Rule '{rule_id}' has unknown category {data.get('category')!r}",
            context={"rule_id": rule_id, "category": data.get("category")},
        ) from None

    try:
        severity = Severity(data.get("severity", "medium"))
        fix_scope = FixScope(data.get("fix_scope", "span"))
    except ValueError as e:
        raise ConfigError(f"Rule '{rule_id}': {e}") from None

    kind = data.get("kind", "regex")
    if kind != "regex" and kind not in STRUCTURAL_KINDS:
        raise ConfigError(f"Rule '{rule_id}' has unknown kind {kind!r}")
    pattern = data.get("pattern", "")
    if kind == "regex" and not pattern:
        raise ConfigError(f"Rule '{rule_id}' needs a 'pattern'")

    include = data.get("include", ())
    if isinstance(include, str):
        include = (include,)

    fix = data.get("fix")
    return Rule(
        id=rule_id,
        category=category,
        severity=severity,
        pattern=str(pattern),
        message=data.get("message", ""),
        autofixable=bool(data.get("autofixable", False)),
        fix=None if fix is None else str(fix),
        fix_scope=fix_scope,
        kind=kind,
        include=tuple(str(g) for g in include),
        escalate_when=data.get("escalate_when"),
        ignore_case=bool(data.get("ignore_case", False)),
    )


def build_catalog(
    extra_rules: list[Rule] | None = None,
    autofix: list[str] | None = None,
    disable: list[str] | None = None,
    include_builtin: bool = True,
) -> RuleCatalog:
    """Assemble the catalog for a run: built-ins, then custom rules."""
    rules = list(BUILTIN_RULES) if include_builtin else []
    rules.extend(extra_rules or [])
    catalog = RuleCatalog(rules)
    if disable:
        catalog = catalog.without(disable)
    if autofix:
        catalog = catalog.with_autofix(autofix)
    return catalog
