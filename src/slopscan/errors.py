"""Exception taxonomy for slopscan.

Only ``ConfigError`` and the catalog integrity errors abort a run. Everything
else is isolated to a file, rule, or finding and surfaces in the report.
"""

from __future__ import annotations


class SlopScanError(Exception):
    """Base class for all slopscan errors."""

    def __init__(self, message: str, context: dict | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class ConfigError(SlopScanError):
    """Malformed settings. Fatal, raised before any file is scanned."""


class CatalogError(SlopScanError):
    """The rule catalog is inconsistent. Fatal."""


class DuplicateRuleError(CatalogError):
    """Two rules share an identifier."""


class InvalidCategoryError(CatalogError):
    """A rule declares a category outside the closed enumeration."""


class WalkError(SlopScanError):
    """A directory could not be listed; its subtree is skipped."""


class MatchError(SlopScanError):
    """A rule failed to execute against a file."""


class FixValidationError(SlopScanError):
    """A rewritten file no longer parses; the fix is reverted."""


class WriteError(SlopScanError):
    """Writing a fixed file to disk failed."""
