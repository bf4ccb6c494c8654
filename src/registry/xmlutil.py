"""Namespace-agnostic ElementTree helpers for Maven XML documents."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterator, Optional


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an element tag."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def children(element: ET.Element, name: str) -> Iterator[ET.Element]:
    """Yield direct children of ``element`` whose local name is ``name``."""
    for node in element:
        if isinstance(node.tag, str) and local_name(node.tag) == name:
            yield node


def child(element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if element is None:
        return None
    return next(children(element, name), None)


def child_text(element: Optional[ET.Element], name: str) -> Optional[str]:
    """Stripped text of a direct child, or None when absent or blank."""
    node = child(element, name)
    if node is None or node.text is None:
        return None
    text = node.text.strip()
    return text or None
