# src/storage/backup.py — v1
"""Backup and restore of the dictionary collections.

Snapshots are written before any destructive collection change and double as
the source of reusable embeddings. Restoring always writes a
``before-rollback`` snapshot of the current state first.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from bson import json_util
from bson.json_util import JSONMode, JSONOptions

from kubishi.storage import layout
from kubishi.storage.models import RestoreReport, Snapshot, SnapshotInfo
from kubishi.store.base_document_store import BaseDocumentStore, Document
from kubishi.store.indexes import ensure_standard_indexes
from kubishi.store.models import DICTIONARY_COLLECTIONS

logger = logging.getLogger(__name__)

SAFETY_LABEL = "before-rollback"

JSON_OPTIONS = JSONOptions(
    json_mode=JSONMode.RELAXED, tz_aware=True, tzinfo=timezone.utc,
)


class SnapshotNotFoundError(LookupError):
    """Raised when a restore selector matches no backup on disk."""


def build_lookup(documents: Iterable[Document]) -> dict[str, Document]:
    """Index documents by their ``id`` field (documents without id are skipped)."""
    return {d["id"]: d for d in documents if d.get("id") is not None}


def dump_documents(documents: list[Document]) -> str:
    return json_util.dumps(documents, json_options=JSON_OPTIONS, indent=2)


def load_documents(text: str) -> list[Document]:
    data = json_util.loads(text, json_options=JSON_OPTIONS)
    if not isinstance(data, list):
        raise ValueError("Backup file must contain a JSON array")
    return data


class BackupManager:
    """Snapshot, list and restore the words/sentences collections."""

    def __init__(
        self,
        store: BaseDocumentStore,
        backup_dir: Path,
        collections: tuple[str, ...] = DICTIONARY_COLLECTIONS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._dir = Path(backup_dir).expanduser()
        self._collections = collections
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def backup_dir(self) -> Path:
        return self._dir

    # --- Snapshot ---

    async def snapshot(
        self, label: str | None = None, write_empty: bool = False,
    ) -> Snapshot:
        """Write every non-empty collection to a timestamped file.

        A missing or empty collection yields an empty lookup and writes no file
        unless ``write_empty`` is set. Existing backup files are never
        overwritten: a second snapshot in the same second gets a sequenced key.
        """
        layout.ensure_backup_dir(self._dir)
        key = self._new_key(layout.make_timestamp(self._clock()), label)
        snap = Snapshot(timestamp=key)

        for collection in self._collections:
            count = await self._store.count(collection)
            documents: list[Document] = []
            if count > 0:
                documents = [
                    {k: v for k, v in d.items() if k != "_id"}
                    for d in await self._store.find(collection)
                ]
            snap.counts[collection] = len(documents)
            snap.lookups[collection] = build_lookup(documents)
            if not documents and not write_empty:
                logger.info("Snapshot %s: %s is empty, nothing saved", key, collection)
                continue
            path = layout.backup_file(self._dir, collection, key)
            with path.open("x", encoding="utf-8") as fh:
                fh.write(dump_documents(documents))
            snap.files[collection] = path
            logger.info("Snapshot %s: saved %d %s to %s", key, len(documents), collection, path)

        return snap

    # --- Listing ---

    def list_snapshots(self) -> list[SnapshotInfo]:
        """Group backup files by key, newest first."""
        if not self._dir.is_dir():
            return []
        found: dict[str, SnapshotInfo] = {}
        for path in self._dir.iterdir():
            parsed = layout.parse_backup_filename(path.name)
            if parsed is None or not path.is_file():
                continue
            collection, key = parsed
            info = found.setdefault(key, SnapshotInfo(timestamp=key))
            setattr(info, collection, True)
        return sorted(
            found.values(),
            key=lambda i: (*layout.key_order(i.timestamp), i.timestamp),
            reverse=True,
        )

    def _new_key(self, timestamp: str, label: str | None) -> str:
        """Backup key for a new snapshot, sequenced after any from the same second."""
        taken = [
            seq for ts, seq in (layout.key_order(i.timestamp) for i in self.list_snapshots())
            if ts == timestamp
        ]
        sequence = max(taken) + 1 if taken else 0
        return layout.backup_key(timestamp, label, sequence)

    def resolve_selector(self, selector: str | int) -> str:
        """Map a 1-based listing index or a backup key to a backup key.

        Raises:
            SnapshotNotFoundError: If nothing matches.
        """
        snapshots = self.list_snapshots()
        if not snapshots:
            raise SnapshotNotFoundError(f"No backups found in {self._dir}")

        text = str(selector).strip()
        if text.isdigit():
            index = int(text) - 1
            if 0 <= index < len(snapshots):
                return snapshots[index].timestamp
            raise SnapshotNotFoundError(
                f"Invalid backup number {text}: choose 1-{len(snapshots)}"
            )
        for info in snapshots:
            if info.timestamp == text:
                return info.timestamp
        raise SnapshotNotFoundError(f"Backup with timestamp {text!r} not found")

    def load_snapshot(self, key: str) -> dict[str, list[Document]]:
        """Read the files of one backup; missing collections are omitted."""
        loaded: dict[str, list[Document]] = {}
        for collection in self._collections:
            path = layout.backup_file(self._dir, collection, key)
            if path.is_file():
                loaded[collection] = load_documents(path.read_text(encoding="utf-8"))
        return loaded

    def load_lookups(self, selector: str | int) -> dict[str, dict[str, Document]]:
        """Id lookups for every collection of a backup (for embedding reuse)."""
        key = self.resolve_selector(selector)
        loaded = self.load_snapshot(key)
        return {c: build_lookup(loaded.get(c, [])) for c in self._collections}

    # --- Restore ---

    async def restore(self, selector: str | int) -> RestoreReport:
        """Restore a backup over the current collections.

        Nothing is mutated when the selector matches no backup.
        """
        key = self.resolve_selector(selector)
        loaded = self.load_snapshot(key)

        safety = await self.snapshot(label=SAFETY_LABEL, write_empty=True)
        report = RestoreReport(restored_from=key, safety_snapshot=safety.timestamp)

        for collection in self._collections:
            report.cleared[collection] = await self._store.delete_many(collection)
        logger.info(
            "Cleared %s",
            ", ".join(f"{n} {c}" for c, n in report.cleared.items()),
        )

        for collection in self._collections:
            documents = loaded.get(collection)
            if documents is None:
                logger.warning("Backup %s has no %s file", key, collection)
                report.missing_files.append(collection)
                continue
            for document in documents:
                document.pop("_id", None)
            report.restored[collection] = await self._store.insert_many(collection, documents)
            logger.info("Restored %d %s", report.restored[collection], collection)

        await ensure_standard_indexes(self._store, self._collections)
        return report


def describe(info: SnapshotInfo) -> str:
    """One-line listing text for a snapshot."""
    return f"{info.timestamp} ({', '.join(info.collections) or 'empty'})"
