# src/cache/__init__.py — v1
"""Content fingerprints and the on-disk embedding cache."""
