"""Scan report aggregation and rendering."""
