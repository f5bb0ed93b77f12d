# src/core/shapes.py — v1
"""Helpers for walking parsed XML trees whose nodes may be single or repeated.

A repeated child element parses to a list, a single one to the node itself,
and an absent one to nothing at all. These helpers fold the three shapes into
one so callers never guess.
"""

from __future__ import annotations

from typing import Any


def as_list(value: Any) -> list[Any]:
    """Coerce a node that may be absent, single, or repeated into a list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def first(value: Any) -> Any:
    """Return the first element of a repeated node, or the node itself."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def dig(node: Any, *path: str) -> Any:
    """Walk ``path`` through nested mappings.

    Repeated nodes met along the way contribute their first element.
    Returns None as soon as a step is missing or not a mapping.
    """
    current = first(node)
    for key in path:
        if not isinstance(current, dict):
            return None
        current = first(current.get(key))
        if current is None:
            return None
    return current


def text_of(node: Any) -> str | None:
    """Return the character data of a leaf node.

    Leaves without attributes parse to plain strings; leaves with attributes
    or mixed content keep their text under ``"_"``.
    """
    node = first(node)
    if node is None:
        return None
    if isinstance(node, str):
        return node
    if isinstance(node, dict):
        value = node.get("_")
        return value if isinstance(value, str) else None
    return None


def attr(node: Any, name: str) -> str | None:
    """Return attribute ``name`` of a node, or None."""
    attrs = dig(node, "$")
    if not isinstance(attrs, dict):
        return None
    value = attrs.get(name)
    return value if isinstance(value, str) else None
