"""Rule data models — immutable dataclasses shared by every component."""

from __future__ import annotations

import enum
import fnmatch
import re
from dataclasses import dataclass, field, replace


class Severity(enum.Enum):
    """Finding severity level."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Higher is more severe."""
        return _SEVERITY_RANK[self]

    def at_least(self, other: Severity) -> bool:
        return self.rank >= other.rank

    def escalate(self) -> Severity:
        """Return the next level up; critical stays critical."""
        for sev in SEVERITY_ORDER:
            if sev.rank == self.rank + 1:
                return sev
        return self


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}

# Display order, most severe first
SEVERITY_ORDER: tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
)


class Category(enum.Enum):
    """Closed set of rule categories."""

    TYPE_SAFETY = "type-safety"
    ERROR_HANDLING = "error-handling"
    IMMUTABILITY = "immutability"
    SECURITY = "security"
    PERFORMANCE = "performance"
    ARCHITECTURE = "architecture"
    STYLE = "style"


class FixScope(enum.Enum):
    """What a fix template replaces."""

    SPAN = "span"
    LINE = "line"


# Matcher kinds other than plain regex, implemented in scanner.structural
STRUCTURAL_KINDS = ("max-file-length", "max-function-length")


@dataclass(frozen=True)
class Rule:
    """A named detection pattern with category, severity, and optional fix."""

    id: str
    category: Category
    severity: Severity
    pattern: str = ""
    message: str = ""
    autofixable: bool = False
    fix: str | None = None
    fix_scope: FixScope = FixScope.SPAN
    kind: str = "regex"
    include: tuple[str, ...] = ()
    escalate_when: str | None = None
    ignore_case: bool = False
    compiled: re.Pattern[str] | None = field(
        default=None, compare=False, repr=False
    )
    compiled_escalation: re.Pattern[str] | None = field(
        default=None, compare=False, repr=False
    )

    @property
    def is_structural(self) -> bool:
        return self.kind != "regex"

    @property
    def has_fix(self) -> bool:
        return self.fix is not None

    def applies_to(self, file_path: str) -> bool:
        """True if the rule's include globs select this file."""
        if not self.include:
            return True
        name = file_path.replace("\\", "/").rsplit("/", 1)[-1]
        return any(fnmatch.fnmatch(name, glob) for glob in self.include)

    def with_autofix(self, autofixable: bool) -> Rule:
        """Return a copy with the autofixable flag changed."""
        return replace(self, autofixable=autofixable)


def compile_rule(rule: Rule) -> Rule:
    """Return ``rule`` with its regexes compiled.

    Raises ``re.error`` if a pattern is malformed.
    """
    flags = re.IGNORECASE if rule.ignore_case else 0
    compiled = re.compile(rule.pattern, flags) if rule.kind == "regex" else None
    escalation = re.compile(rule.escalate_when) if rule.escalate_when else None
    return replace(rule, compiled=compiled, compiled_escalation=escalation)
