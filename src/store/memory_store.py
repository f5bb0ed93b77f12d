# src/store/memory_store.py — v1
"""In-process document store.

Implements the subset of MongoDB semantics the pipeline relies on: equality
filters (matching array members), ``$ne``/``$exists``/``$in``/``$elemMatch``
operators, top-level ``$or``/``$and``, exclusion projections on top-level and
dotted fields, unique indexes and generated ``_id`` values. Suitable for dry
runs and tests.
"""

from __future__ import annotations

import copy
import logging
import random
from typing import Any

from bson import ObjectId

from kubishi.store.base_document_store import BaseDocumentStore, Document, StoreError
from kubishi.store.models import DropOutcome, IndexOutcome

logger = logging.getLogger(__name__)

_MISSING = object()


class MemoryDocumentStore(BaseDocumentStore):
    """Document store held in memory."""

    def __init__(self, database: str = "memory", seed: int | None = None) -> None:
        self._database = database
        self._collections: dict[str, list[Document]] = {}
        self._indexes: dict[str, dict[str, bool]] = {}
        self._rng = random.Random(seed)

    @property
    def database_name(self) -> str:
        return self._database

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    def collection_names(self) -> list[str]:
        return sorted(self._collections)

    def index_fields(self, collection: str) -> dict[str, bool]:
        """Indexed field -> unique flag."""
        return dict(self._indexes.get(collection, {}))

    # --- Writes ---

    async def insert_many(self, collection: str, documents: list[Document]) -> int:
        if not documents:
            return 0
        docs = self._collections.setdefault(collection, [])
        unique_fields = [f for f, u in self._indexes.get(collection, {}).items() if u]
        seen = {f: {_freeze(_get_path(d, f)) for d in docs} for f in unique_fields}

        staged: list[Document] = []
        for document in documents:
            document.setdefault("_id", ObjectId())
            for field in unique_fields:
                key = _freeze(_get_path(document, field))
                if key in seen[field]:
                    raise StoreError(
                        f"Duplicate key {field}={_get_path(document, field)!r} in {collection}"
                    )
                seen[field].add(key)
            staged.append(copy.deepcopy(document))
        docs.extend(staged)
        return len(staged)

    async def update_one(
        self,
        collection: str,
        filter: Document,
        set_fields: Document,
        upsert: bool = False,
        set_on_insert: Document | None = None,
    ) -> None:
        for document in self._collections.get(collection, []):
            if _matches(document, filter):
                document.update(copy.deepcopy(set_fields))
                return
        if upsert:
            new_doc = {k: v for k, v in filter.items() if not k.startswith("$")}
            new_doc.update(set_on_insert or {})
            new_doc.update(set_fields)
            await self.insert_many(collection, [new_doc])

    async def delete_many(self, collection: str, filter: Document | None = None) -> int:
        docs = self._collections.get(collection)
        if not docs:
            return 0
        kept = [d for d in docs if not _matches(d, filter or {})]
        deleted = len(docs) - len(kept)
        self._collections[collection] = kept
        return deleted

    async def drop(self, collection: str) -> DropOutcome:
        if collection not in self._collections and collection not in self._indexes:
            return DropOutcome.ABSENT
        self._collections.pop(collection, None)
        self._indexes.pop(collection, None)
        return DropOutcome.DROPPED

    async def create_index(
        self, collection: str, field: str, unique: bool = False,
    ) -> IndexOutcome:
        indexes = self._indexes.setdefault(collection, {})
        self._collections.setdefault(collection, [])
        if field in indexes:
            return IndexOutcome.EXISTS
        if unique:
            values = [_freeze(_get_path(d, field)) for d in self._collections[collection]]
            if len(values) != len(set(values)):
                raise StoreError(
                    f"Cannot create unique index on {collection}.{field}: duplicates present"
                )
        indexes[field] = unique
        return IndexOutcome.CREATED

    # --- Reads ---

    async def find(
        self,
        collection: str,
        filter: Document | None = None,
        projection: dict[str, int] | None = None,
    ) -> list[Document]:
        return [
            _project(d, projection)
            for d in self._collections.get(collection, [])
            if _matches(d, filter or {})
        ]

    async def find_one(
        self,
        collection: str,
        filter: Document,
        projection: dict[str, int] | None = None,
    ) -> Document | None:
        for document in self._collections.get(collection, []):
            if _matches(document, filter):
                return _project(document, projection)
        return None

    async def sample(
        self,
        collection: str,
        filter: Document | None = None,
        size: int = 1,
        projection: dict[str, int] | None = None,
    ) -> list[Document]:
        matches = [
            d for d in self._collections.get(collection, []) if _matches(d, filter or {})
        ]
        picked = self._rng.sample(matches, min(size, len(matches)))
        return [_project(d, projection) for d in picked]

    async def count(self, collection: str) -> int:
        return len(self._collections.get(collection, []))


# --- Filter / projection helpers ---


def _get_path(document: Any, path: str) -> Any:
    current = document
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part, _MISSING)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else _MISSING
        else:
            return _MISSING
        if current is _MISSING:
            return _MISSING
    return current


def _freeze(value: Any) -> Any:
    if value is _MISSING:
        return None
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    return value


def _value_matches(actual: Any, expected: Any) -> bool:
    if isinstance(expected, dict) and expected and all(k.startswith("$") for k in expected):
        for op, operand in expected.items():
            if op == "$ne":
                if _value_matches(actual, operand):
                    return False
            elif op == "$exists":
                if (actual is not _MISSING) != bool(operand):
                    return False
            elif op == "$in":
                if not any(_value_matches(actual, o) for o in operand):
                    return False
            elif op == "$elemMatch":
                if not isinstance(actual, list) or not any(
                    isinstance(item, dict) and _matches(item, operand) for item in actual
                ):
                    return False
            else:
                raise StoreError(f"Unsupported filter operator: {op}")
        return True
    if actual is _MISSING:
        return expected is None
    if isinstance(actual, list) and not isinstance(expected, list):
        return expected in actual
    return actual == expected


def _matches(document: Document, filter: Document) -> bool:
    for key, expected in filter.items():
        if key == "$or":
            if not any(_matches(document, sub) for sub in expected):
                return False
        elif key == "$and":
            if not all(_matches(document, sub) for sub in expected):
                return False
        elif key.startswith("$"):
            raise StoreError(f"Unsupported filter operator: {key}")
        elif not _value_matches(_get_path(document, key), expected):
            return False
    return True


def _project(document: Document, projection: dict[str, int] | None) -> Document:
    result = copy.deepcopy(document)
    if not projection:
        return result
    if any(v for v in projection.values()):
        raise StoreError("Only exclusion projections are supported")
    for path in projection:
        _remove_path(result, path.split("."))
    return result


def _remove_path(node: Any, parts: list[str]) -> None:
    if isinstance(node, list):
        for item in node:
            _remove_path(item, parts)
        return
    if not isinstance(node, dict):
        return
    head, rest = parts[0], parts[1:]
    if not rest:
        node.pop(head, None)
    elif head in node:
        _remove_path(node[head], rest)
