# src/store/__init__.py — v1
"""Document store adapters (MongoDB, in-memory)."""
