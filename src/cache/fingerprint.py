# src/cache/fingerprint.py — v2
"""Content fingerprints for sentences and cache keys.

Both are SHA-256 over the exact UTF-8 text with no normalization, so the
same literal text always maps to the same hex digest across runs.
"""

from __future__ import annotations

import hashlib


def content_fingerprint(text: str) -> str:
    """Stable record id for a literal sentence text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def cache_key(text: str) -> str:
    """File key for an embedding cache entry."""
    return content_fingerprint(text)
