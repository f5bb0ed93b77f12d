# src/extraction/__init__.py — v1
"""LIFT parsing, entry extraction, source formatting and sentence derivation."""
