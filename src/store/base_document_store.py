# src/store/base_document_store.py — v1
"""Abstract document store interface.

The pipeline only needs a handful of primitives; adapters map them onto a
concrete database. Documents are plain dicts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from kubishi.store.models import DropOutcome, IndexOutcome

Document = dict[str, Any]


class StoreError(Exception):
    """Raised when a store operation fails."""


class StoreConnectionError(StoreError):
    """Raised when the store cannot be reached."""


class BaseDocumentStore(ABC):
    """Unified interface for document store backends."""

    @property
    @abstractmethod
    def database_name(self) -> str:
        """Name of the database this store writes to."""

    @abstractmethod
    async def connect(self) -> None:
        """Verify the store is reachable.

        Raises:
            StoreConnectionError: If it is not.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release client resources."""

    @abstractmethod
    async def insert_many(self, collection: str, documents: list[Document]) -> int:
        """Insert documents and return how many were written."""

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: Document | None = None,
        projection: dict[str, int] | None = None,
    ) -> list[Document]:
        """Return all matching documents."""

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        filter: Document,
        projection: dict[str, int] | None = None,
    ) -> Document | None:
        """Return the first matching document, or None."""

    @abstractmethod
    async def sample(
        self,
        collection: str,
        filter: Document | None = None,
        size: int = 1,
        projection: dict[str, int] | None = None,
    ) -> list[Document]:
        """Return up to ``size`` random matching documents."""

    @abstractmethod
    async def update_one(
        self,
        collection: str,
        filter: Document,
        set_fields: Document,
        upsert: bool = False,
        set_on_insert: Document | None = None,
    ) -> None:
        """Apply ``$set`` to the first match, inserting when ``upsert``."""

    @abstractmethod
    async def delete_many(self, collection: str, filter: Document | None = None) -> int:
        """Delete matching documents (indexes are kept) and return the count."""

    @abstractmethod
    async def drop(self, collection: str) -> DropOutcome:
        """Drop a collection with its indexes."""

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Number of documents; 0 for a missing collection."""

    @abstractmethod
    async def create_index(
        self, collection: str, field: str, unique: bool = False,
    ) -> IndexOutcome:
        """Create a single-field ascending index.

        Returns IndexOutcome.EXISTS when an equivalent or conflicting index is
        already present; any other failure raises StoreError.
        """
