"""
correlate.py

Join the organization tree with the resource catalog.

build_tree() mirrors the item tree below the organization root, attaching
to every item the resources it references. The join is by containment:
a resource belongs to an item when the resource identifier occurs inside
the item's identifierref. Exact equality is what conforming producers
emit; containment also accepts producers that qualify their references.

Failure policy: by default a subtree that fails to build is replaced by an
empty FullItem (the item itself, no resources, no children) and a warning
is printed, so one bad branch does not hide the rest of a large course.
strict=True raises CorrelationError instead.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from commoncartridge.errors import CorrelationError
from commoncartridge.icons import WARNING
from commoncartridge.models import Item, Manifest, Resource


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class FullItem:
    """An Item with the resources it references and its correlated children."""
    item: Item
    resources: List[Resource] = field(default_factory=list)
    children: List[FullItem] = field(default_factory=list)

    def walk(self):
        """Yield this node and all descendants, pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class FullResource:
    """A resolved resource (typed variant or raw Resource) and the item that references it."""
    resource: Any
    item: Optional[Item] = None


# ============================================================================
# Tree Building
# ============================================================================

def referenced_resources(item: Item, resources: List[Resource]) -> List[Resource]:
    """Catalog resources whose identifier is contained in item.identifier_ref, in catalog order."""
    if not item.identifier_ref:
        return []
    return [r for r in resources if r.identifier and r.identifier in item.identifier_ref]


def build_full_item(
    item: Item,
    resources: List[Resource],
    strict: bool = False,
    quiet: bool = False,
) -> FullItem:
    """Correlate one item and, recursively, its children."""
    full = FullItem(item=item, resources=referenced_resources(item, resources))
    for child in item.children:
        full.children.append(_build_child(child, resources, strict, quiet, parent=item.identifier))
    return full


def _build_child(
    child: Item,
    resources: List[Resource],
    strict: bool,
    quiet: bool,
    parent: str,
) -> FullItem:
    """Build a child subtree, applying the degrade/strict policy on failure."""
    try:
        return build_full_item(child, resources, strict, quiet)
    except CorrelationError:
        raise
    except Exception as e:
        identifier = getattr(child, "identifier", "?")
        if strict:
            raise CorrelationError(
                message=f"Failed to correlate item {identifier}",
                context={"item": identifier, "parent": parent},
                cause=e,
            )
        if not quiet:
            print(f"[correlate:warn] {WARNING} Item {identifier} treated as empty: {e}", file=sys.stderr)
        return FullItem(item=child)


def build_tree(manifest: Manifest, strict: bool = False, quiet: bool = False) -> List[FullItem]:
    """
    Correlated items for the children of the organization root.

    The root itself is structural and is not returned. Order is document
    order; nothing is sorted or de-duplicated.
    """
    root = manifest.organization
    return [
        _build_child(item, manifest.resources, strict, quiet, parent=root.identifier)
        for item in root.children
    ]


# ============================================================================
# Owner Lookups
# ============================================================================

def index_owners(tree: List[FullItem]) -> Dict[str, Item]:
    """
    Map each resource identifier to the first item (pre-order) carrying it.

    Several items may reference one resource; the format does not name an
    owner, so the first one in document order wins.
    """
    owners: Dict[str, Item] = {}
    for top in tree:
        for node in top.walk():
            for resource in node.resources:
                owners.setdefault(resource.identifier, node.item)
    return owners


def find_item(manifest: Manifest, identifier: str) -> Optional[Item]:
    """First item below the organization root whose identifier_ref equals identifier."""
    if not identifier:
        return None
    for top in manifest.organization.children:
        for item in top.walk():
            if item.identifier_ref == identifier:
                return item
    return None
