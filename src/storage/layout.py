# src/storage/layout.py — v2
"""Backup directory naming conventions.

Files are named ``<collection>_<key>.json`` with the backup key
``<timestamp>[-<seq>][_<label>]``. The timestamp (UTC,
``YYYY-MM-DD_HH-MM-SS``) is filesystem-safe and sorts chronologically; a
sequence number is added to the second and later snapshots taken within the
same second so an existing backup is never overwritten.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

from kubishi.store.models import DICTIONARY_COLLECTIONS

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

_KEY_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2})(?:-(\d+))?(?:_.+)?$"
)
_LABEL_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*$")
_FILENAME_RE = re.compile(
    r"^(" + "|".join(DICTIONARY_COLLECTIONS) + r")_(.+)\.json$"
)


def make_timestamp(now: datetime | None = None) -> str:
    """Format ``now`` (default: current UTC time) as a backup timestamp."""
    ts = now or datetime.now(timezone.utc)
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime(TIMESTAMP_FORMAT)


def backup_key(timestamp: str, label: str | None = None, sequence: int = 0) -> str:
    """Combine a timestamp, a same-second sequence number and a label."""
    key = f"{timestamp}-{sequence}" if sequence else timestamp
    if label is None:
        return key
    if not _LABEL_RE.match(label):
        raise ValueError(f"Invalid backup label {label!r}: use letters, digits and '-'")
    return f"{key}_{label}"


def key_order(key: str) -> tuple[str, int]:
    """Sort key of a backup key: (timestamp, sequence).

    Keys that do not start with a timestamp sort by their full text.
    """
    match = _KEY_RE.match(key)
    if not match:
        return key, 0
    return match.group(1), int(match.group(2) or 0)


def backup_filename(collection: str, key: str) -> str:
    return f"{collection}_{key}.json"


def backup_file(backup_dir: Path, collection: str, key: str) -> Path:
    return backup_dir / backup_filename(collection, key)


def parse_backup_filename(name: str) -> tuple[str, str] | None:
    """Return (collection, key) for a backup file name, or None."""
    match = _FILENAME_RE.match(name)
    if not match:
        return None
    return match.group(1), match.group(2)


def ensure_backup_dir(backup_dir: Path) -> Path:
    path = Path(backup_dir).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path
