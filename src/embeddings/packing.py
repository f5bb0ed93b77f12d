# src/embeddings/packing.py — v1
"""Pack float vectors into BSON float32 vector binaries and back."""

from __future__ import annotations

from bson.binary import Binary, BinaryVectorDtype


def pack_embedding(vector: list[float]) -> Binary:
    """Pack a vector into the BSON vector subtype (float32)."""
    return Binary.from_vector(vector, BinaryVectorDtype.FLOAT32)


def unpack_embedding(packed: Binary) -> list[float]:
    """Inverse of pack_embedding (float32 precision)."""
    return list(packed.as_vector().data)


def has_embedding(document: dict | None) -> bool:
    """True when a stored document carries a non-null embedding."""
    if not document:
        return False
    value = document.get("embedding")
    if value is None:
        return False
    if isinstance(value, (bytes, list)):
        return len(value) > 0
    return True
