# src/extraction/lift_parser.py — v1
"""LIFT XML reader — turns ``entry`` elements into plain nested trees.

Tree shape per element:
  - attributes under ``"$"``
  - child elements keyed by tag; a repeated tag becomes a list
  - character data under ``"_"``
  - an element with only text (no attributes, no children) collapses to str
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from lxml import etree

logger = logging.getLogger(__name__)

ROOT_TAG = "lift"
ENTRY_TAG = "entry"


class LiftParseError(Exception):
    """Raised when a LIFT document cannot be read as a dictionary."""


def parse_lift(path: Path) -> list[dict[str, Any]]:
    """Parse a LIFT file and return one tree per ``entry`` element.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        LiftParseError: If the XML is malformed or the root is not ``lift``.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"LIFT file not found: {path}")
    return parse_lift_bytes(path.read_bytes())


def parse_lift_bytes(data: bytes) -> list[dict[str, Any]]:
    """Parse LIFT content already loaded in memory."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise LiftParseError(f"Malformed LIFT XML: {exc}") from exc

    if _local_name(root) != ROOT_TAG:
        raise LiftParseError(
            f"Expected root element <{ROOT_TAG}>, found <{_local_name(root)}>"
        )

    entries = [
        element_to_tree(child)
        for child in root
        if isinstance(child.tag, str) and _local_name(child) == ENTRY_TAG
    ]
    logger.debug("Parsed %d entry elements", len(entries))
    return entries


def element_to_tree(element: etree._Element) -> Any:
    """Convert one element (recursively) into the tree shape described above."""
    node: dict[str, Any] = {}
    if element.attrib:
        node["$"] = {_local_name_of(k): v for k, v in element.attrib.items()}

    text_parts: list[str] = [element.text or ""]

    for child in element:
        if isinstance(child.tag, str):
            key = _local_name(child)
            value = element_to_tree(child)
            if key in node:
                existing = node[key]
                if isinstance(existing, list):
                    existing.append(value)
                else:
                    node[key] = [existing, value]
            else:
                node[key] = value
            # Character data inside inline markup belongs to the parent text.
            if key == "span":
                text_parts.append("".join(child.itertext()))
        text_parts.append(child.tail or "")

    text = "".join(text_parts).strip()
    if text:
        if not node:
            return text
        node["_"] = text
    return node if node else ""


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _local_name_of(attr_name: str) -> str:
    if attr_name.startswith("{"):
        return attr_name.split("}", 1)[1]
    return attr_name
