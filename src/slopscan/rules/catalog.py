"""Rule catalog — the ordered, validated set of rules for a run."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from slopscan.errors import DuplicateRuleError
from slopscan.rules.models import Category, Rule, compile_rule

logger = logging.getLogger(__name__)


class RuleCatalog:
    """Immutable, ordered collection of compiled rules.

    Declaration order is preserved and drives category display order in
    reports. Rule identifiers must be unique.
    """

    def __init__(self, rules: Iterable[Rule]) -> None:
        compiled: list[Rule] = []
        seen: set[str] = set()
        for rule in rules:
            if rule.id in seen:
                raise DuplicateRuleError(
                    f"Duplicate rule identifier: {rule.id}",
                    context={"rule_id": rule.id},
                )
            seen.add(rule.id)
            try:
                compiled.append(compile_rule(rule))
            except re.error as e:
                # Kept uncompiled: the matcher reports it per file as a MatchError
                logger.warning("Rule '%s' has an invalid pattern: %s", rule.id, e)
                compiled.append(rule)
        self._rules: tuple[Rule, ...] = tuple(compiled)
        self._by_id = {r.id: r for r in self._rules}
        logger.debug("Loaded %d rules", len(self._rules))

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def list_rules(self) -> tuple[Rule, ...]:
        """All rules in declaration order."""
        return self._rules

    def get(self, rule_id: str) -> Rule:
        return self._by_id[rule_id]

    def categories(self) -> tuple[Category, ...]:
        """Categories in first-declaration order, then any unused ones."""
        order: list[Category] = []
        for rule in self._rules:
            if rule.category not in order:
                order.append(rule.category)
        order.extend(c for c in Category if c not in order)
        return tuple(order)

    def category_rank(self) -> dict[Category, int]:
        return {c: i for i, c in enumerate(self.categories())}

    def with_autofix(self, rule_ids: Iterable[str]) -> RuleCatalog:
        """Return a catalog where the given rules are marked autofixable."""
        wanted = set(rule_ids)
        unknown = wanted - set(self._by_id)
        for rule_id in sorted(unknown):
            logger.warning("autofix lists unknown rule '%s'", rule_id)
        return RuleCatalog(
            r.with_autofix(True) if r.id in wanted else r for r in self._rules
        )

    def without(self, rule_ids: Iterable[str]) -> RuleCatalog:
        """Return a catalog with the given rules removed."""
        dropped = set(rule_ids)
        return RuleCatalog(r for r in self._rules if r.id not in dropped)
