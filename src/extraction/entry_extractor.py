# src/extraction/entry_extractor.py — v1
"""Normalize parsed LIFT entry trees into flat Entry records.

Missing optional fields always become None; only a structurally wrong entry
(not a mapping at all) is fatal.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from kubishi.core.models import Entry, Example, Sense
from kubishi.core.shapes import as_list, attr, dig, text_of
from kubishi.extraction.lift_parser import LiftParseError

logger = logging.getLogger(__name__)


def extract_entries(trees: Iterable[Any]) -> list[Entry]:
    """Convert entry trees into Entry records, skipping null trees.

    Raises:
        LiftParseError: If a tree is neither None nor a mapping.
    """
    entries: list[Entry] = []
    for position, tree in enumerate(trees):
        if tree is None:
            continue
        if not isinstance(tree, dict):
            raise LiftParseError(
                f"Entry #{position} is not an element tree: {type(tree).__name__}"
            )
        entries.append(extract_entry(tree))
    logger.info("Extracted %d entries", len(entries))
    return entries


def extract_entry(tree: dict[str, Any]) -> Entry:
    """Build one Entry from one entry tree."""
    return Entry(
        id=attr(tree, "id"),
        date_created=attr(tree, "dateCreated"),
        date_modified=attr(tree, "dateModified"),
        guid=attr(tree, "guid"),
        lexical_unit=text_of(dig(tree, "lexical-unit", "form", "text")),
        traits=_extract_traits(tree.get("trait")),
        senses=[_extract_sense(s) for s in as_list(tree.get("sense")) if s is not None],
    )


def _extract_traits(node: Any) -> dict[str, str | None]:
    traits: dict[str, str | None] = {}
    for trait in as_list(node):
        name = attr(trait, "name")
        if name is None:
            continue
        # Last duplicate wins.
        traits[name] = attr(trait, "value")
    return traits


def _extract_sense(node: Any) -> Sense:
    if not isinstance(node, dict):
        return Sense()
    return Sense(
        id=attr(node, "id"),
        grammatical_info=attr(node.get("grammatical-info"), "value"),
        gloss=text_of(dig(node, "gloss", "text")),
        definition=text_of(dig(node, "definition", "form", "text")),
        examples=[_extract_example(e) for e in as_list(node.get("example")) if e is not None],
    )


def _extract_example(node: Any) -> Example:
    if not isinstance(node, dict):
        return Example()
    return Example(
        source=attr(node, "source"),
        form=text_of(dig(node, "form", "text")),
        translation=text_of(dig(node, "translation", "form", "text")),
        note=text_of(dig(node, "note", "form", "text")),
    )
