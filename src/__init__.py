# src/__init__.py — v1
"""kubishi — LIFT dictionary ingestion with embedding reuse and backups."""

from kubishi.version import __version__

__all__ = ["__version__"]
