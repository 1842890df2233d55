"""File walking, pattern matching, and scan orchestration."""
