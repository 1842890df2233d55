"""Rule models, the built-in catalog, and YAML rule loading."""
