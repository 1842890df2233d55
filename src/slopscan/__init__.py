"""slopscan — rule-based detection and cleanup of low-quality code patterns."""

__version__ = "0.1.0"
