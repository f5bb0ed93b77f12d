# src/dictionary/__init__.py — v1
"""Read-side queries over the ingested dictionary."""
