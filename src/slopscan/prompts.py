"""Review prompts for an external LLM.

Judgment-based review is not done here. This module only turns scan
results into a prompt; whatever model consumes it sits behind the
``Reviewer`` protocol.
"""

from __future__ import annotations

from typing import Protocol

from slopscan.report.models import ScanReport
from slopscan.rules.models import Category

_DEPTH = {
    "relaxed": "Focus only on critical problems. Be very concise.",
    "balanced": "Review thoroughly but stay focused on real problems.",
    "nitpicky": "Review in depth, including maintainability and naming.",
    "brutal": "Leave nothing out. Flag every smell, however small.",
}

_CATEGORY_HINTS = {
    Category.TYPE_SAFETY: "escape hatches from the type system, unchecked casts",
    Category.ERROR_HANDLING: "swallowed errors, overly broad catches, missing cleanup",
    Category.IMMUTABILITY: "shared mutable state, reassignment, mutable defaults",
    Category.SECURITY: "injection, secrets in source, unsafe HTML or eval",
    Category.PERFORMANCE: "blocking calls, needless work in loops",
    Category.ARCHITECTURE: "debug leftovers, oversized functions and files, layering",
    Category.STYLE: "dead comments, TODOs, formatting noise",
}


class Reviewer(Protocol):
    """An external model that answers a review prompt."""

    def review(self, prompt: str) -> str: ...


def build_review_prompt(
    report: ScanReport,
    level: str = "balanced",
    max_findings: int = 50,
) -> str:
    """Build a prompt asking a model to triage the scanner's findings."""
    depth = _DEPTH.get(level, _DEPTH["balanced"])
    categories = sorted({f.category for f in report.findings}, key=list(Category).index)
    hints = [f"- **{c.value}**: {_CATEGORY_HINTS[c]}" for c in categories]

    lines = []
    for f in report.findings[:max_findings]:
        lines.append(
            f"- [{f.severity.value}] {f.file_path}:{f.line} {f.rule_id}: "
            f"{f.message} -> `{f.context_line}`"
        )
    omitted = report.total - len(lines)
    if omitted > 0:
        lines.append(f"- ...and {omitted} more findings omitted.")

    findings_block = "\n".join(lines) if lines else "- (no pattern findings)"
    hints_block = "\n".join(hints) if hints else "- any category"

    return f"""You are reviewing AI-generated code for low-quality patterns ("slop").
A pattern scanner already flagged the locations below. For each one, decide
whether it is a real problem, a false positive, or intentional.

{depth}

## Categories involved:
{hints_block}

## Rules:
- Pattern matches can be false positives inside strings and comments
- Reference the exact file and line for every verdict
- Suggest a concrete fix for each real problem

## Output format (JSON):
{{
  "verdicts": [
    {{
      "file": "path/to/file.ts",
      "line": 42,
      "rule": "no-any",
      "verdict": "fix" or "false-positive" or "intentional",
      "suggestion": "What to change"
    }}
  ]
}}

## Findings:
{findings_block}
"""
