"""Fix application — rewrites, validation, and atomic writes."""
