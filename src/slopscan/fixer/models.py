"""Fix workflow models — decisions, states, and per-finding outcomes."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from slopscan.report.models import Finding, IssueKind


class FixDecision(enum.Enum):
    """A reviewer's choice for one finding."""

    APPLY = "apply"
    SKIP = "skip"
    MARK_INTENTIONAL = "mark-intentional"


class FixState(enum.Enum):
    """Lifecycle of a finding during a fix run.

    PENDING → APPLIED | SKIPPED | MARKED_INTENTIONAL. A failed apply leaves
    the finding PENDING with an error attached.
    """

    PENDING = "pending"
    APPLIED = "applied"
    SKIPPED = "skipped"
    MARKED_INTENTIONAL = "marked-intentional"


@dataclass(frozen=True)
class FixOutcome:
    """What happened to one finding."""

    finding: Finding
    state: FixState
    error: str = ""
    error_kind: IssueKind | None = None
    detail: str = ""

    @property
    def resolved(self) -> bool:
        return self.state in (FixState.APPLIED, FixState.MARKED_INTENTIONAL)
