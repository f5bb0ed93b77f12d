# src/core/clock.py — v1
"""UTC timestamps at the precision MongoDB stores them."""

from __future__ import annotations

from datetime import datetime, timezone


def truncate_ms(value: datetime) -> datetime:
    """Drop sub-millisecond precision (BSON dates are millisecond based)."""
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


def utc_now() -> datetime:
    return truncate_ms(datetime.now(timezone.utc))
