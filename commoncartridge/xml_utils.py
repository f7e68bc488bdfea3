"""
xml_utils.py

Namespace-agnostic helpers over ElementTree.

Cartridge producers disagree on namespaces (CC 1.0 through 1.3, Canvas
extensions, prefixed or default), so lookups here match elements by their
local name only.

SECURITY: parsing goes through defusedxml to protect against XXE and
entity-expansion attacks.
"""

from __future__ import annotations

from typing import Iterator, List, Optional
from xml.etree import ElementTree as ET

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET


# Exceptions that mean "these bytes are not usable XML"
XML_ERRORS = (ET.ParseError, DefusedXmlException, UnicodeDecodeError)


def parse_xml(data: bytes) -> ET.Element:
    """
    Parse XML bytes into a root element.

    Raises:
        ET.ParseError, DefusedXmlException: If the bytes are not safe, well-formed XML
    """
    return DefusedET.fromstring(data)


def local_name(tag: str) -> str:
    """Strip the {namespace} part of an ElementTree tag."""
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        return tag.rsplit("}", 1)[-1]
    return tag.split(":")[-1]


def iter_children(elem: Optional[ET.Element], tag: str) -> Iterator[ET.Element]:
    """Yield direct children whose local name is tag."""
    if elem is None:
        return
    for child in elem:
        if local_name(child.tag) == tag:
            yield child


def find_child(elem: Optional[ET.Element], tag: str) -> Optional[ET.Element]:
    """First direct child with the given local name, or None."""
    return next(iter_children(elem, tag), None)


def find_children(elem: Optional[ET.Element], tag: str) -> List[ET.Element]:
    """All direct children with the given local name, in document order."""
    return list(iter_children(elem, tag))


def find_path(elem: Optional[ET.Element], *tags: str) -> Optional[ET.Element]:
    """Follow a chain of local names from elem, e.g. find_path(lom, "general", "title")."""
    current = elem
    for tag in tags:
        current = find_child(current, tag)
        if current is None:
            return None
    return current


def find_descendant(elem: Optional[ET.Element], tag: str) -> Optional[ET.Element]:
    """First descendant (document order) with the given local name."""
    if elem is None:
        return None
    for node in elem.iter():
        if node is not elem and local_name(node.tag) == tag:
            return node
    return None


def find_descendants(elem: Optional[ET.Element], tag: str) -> List[ET.Element]:
    """All descendants with the given local name."""
    if elem is None:
        return []
    return [node for node in elem.iter() if node is not elem and local_name(node.tag) == tag]


def get_text(elem: Optional[ET.Element], default: str = "") -> str:
    """Safely get text from an element."""
    if elem is not None and elem.text:
        return elem.text.strip()
    return default


def get_attr(elem: Optional[ET.Element], name: str, default: str = "") -> str:
    """Attribute by local name, ignoring any namespace prefix on the attribute."""
    if elem is None:
        return default
    if name in elem.attrib:
        return elem.attrib[name]
    for key, value in elem.attrib.items():
        if local_name(key) == name:
            return value
    return default


def get_lang_string(elem: Optional[ET.Element]) -> str:
    """
    Text of a LOM langstring container.

    LOM wraps text as <title><string language="en">...</string></title>;
    older producers put the text directly in the container.
    """
    if elem is None:
        return ""
    strings = [get_text(s) for s in iter_children(elem, "string")]
    strings = [s for s in strings if s]
    if strings:
        return strings[0]
    return get_text(elem)
