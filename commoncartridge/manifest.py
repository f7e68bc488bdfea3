"""
manifest.py

Locate imsmanifest.xml inside a cartridge and decode it into the model.

Decoding is best-effort: unknown elements are ignored and missing ones leave
empty values, since real-world exports routinely omit optional metadata.
Only a missing manifest or XML that does not parse is an error.

Usage:
    from commoncartridge.manifest import load_manifest

    manifest, base_path = load_manifest(archive)
"""

from __future__ import annotations

import posixpath
import sys
from typing import List, Optional, Tuple
from xml.etree import ElementTree as ET

from commoncartridge.archive import CartridgeArchive
from commoncartridge.config_utils import MANIFEST_FILENAME
from commoncartridge.errors import ManifestNotFoundError, MalformedXMLError
from commoncartridge.icons import WARNING
from commoncartridge.models import Item, Manifest, ManifestMetadata, Resource
from commoncartridge.xml_utils import (
    XML_ERRORS,
    find_child,
    find_children,
    find_path,
    get_attr,
    get_lang_string,
    get_text,
    parse_xml,
)


# ============================================================================
# Manifest Location
# ============================================================================

def find_manifest_name(names: List[str], filename: str = MANIFEST_FILENAME) -> Optional[str]:
    """
    Pick the manifest entry among the archive names.

    Matches by containment so cartridges zipped with a top-level folder
    (course/imsmanifest.xml) still load. The shallowest match wins.
    """
    matches = [name for name in names if filename in name]
    if not matches:
        return None
    return min(matches, key=lambda name: (name.count("/"), len(name)))


# ============================================================================
# Manifest Parsing
# ============================================================================

def parse_metadata(metadata_elem: Optional[ET.Element]) -> ManifestMetadata:
    """Decode <metadata> and its LOM block."""
    if metadata_elem is None:
        return ManifestMetadata()

    lom = find_child(metadata_elem, "lom")
    general = find_child(lom, "general")
    rights = find_child(lom, "rights")

    keywords = [get_lang_string(k) for k in find_children(general, "keyword")]
    keywords = [k for k in keywords if k]

    return ManifestMetadata(
        schema=get_text(find_child(metadata_elem, "schema")),
        schema_version=get_text(find_child(metadata_elem, "schemaversion")),
        title=get_lang_string(find_child(general, "title")),
        language=get_text(find_child(general, "language")),
        description=get_lang_string(find_child(general, "description")),
        keyword=", ".join(keywords),
        date=get_text(find_path(lom, "lifeCycle", "contribute", "date", "dateTime")),
        copyright=get_text(find_path(rights, "copyrightAndOtherRestrictions", "value")),
        copyright_description=get_lang_string(find_child(rights, "description")),
    )


def parse_item(item_elem: ET.Element) -> Item:
    """Parse an <item> and its nested items."""
    return Item(
        identifier=item_elem.get("identifier", ""),
        identifier_ref=item_elem.get("identifierref", ""),
        title=get_text(find_child(item_elem, "title")),
        children=[parse_item(child) for child in find_children(item_elem, "item")],
    )


def parse_organization(organizations_elem: Optional[ET.Element]) -> Item:
    """
    Return the organization root item.

    A cartridge has one <organization> holding one root <item>; its
    children are the navigable modules.
    """
    organization_elem = find_child(organizations_elem, "organization")
    if organization_elem is None:
        return Item()

    roots = find_children(organization_elem, "item")
    if not roots:
        return Item(identifier=organization_elem.get("identifier", ""))

    if len(roots) == 1:
        return parse_item(roots[0])

    # Non-conforming producers put modules directly under <organization>
    return Item(
        identifier=organization_elem.get("identifier", ""),
        children=[parse_item(root) for root in roots],
    )


def parse_resource(resource_elem: ET.Element) -> Optional[Resource]:
    """Parse a single resource element."""
    identifier = resource_elem.get("identifier", "")

    if not identifier:
        return None

    # Collect file references
    files = []
    for file_elem in find_children(resource_elem, "file"):
        file_href = file_elem.get("href", "")
        if file_href:
            files.append(file_href)

    dependencies = []
    for dep_elem in find_children(resource_elem, "dependency"):
        ref = dep_elem.get("identifierref", "")
        if ref:
            dependencies.append(ref)

    return Resource(
        identifier=identifier,
        type=resource_elem.get("type", ""),
        href=resource_elem.get("href", ""),
        files=files,
        dependencies=dependencies,
        intended_use=get_attr(resource_elem, "intendedUse"),
    )


def parse_manifest(data: bytes, quiet: bool = False) -> Manifest:
    """
    Decode imsmanifest.xml bytes into a Manifest.

    Raises:
        MalformedXMLError: If the bytes are not well-formed XML
    """
    try:
        root = parse_xml(data)
    except XML_ERRORS as e:
        raise MalformedXMLError(
            message="Failed to parse manifest",
            suggestion="imsmanifest.xml must be well-formed XML",
            context={"size": len(data)},
            cause=e,
        )

    resources = []
    for resource_elem in find_children(find_child(root, "resources"), "resource"):
        resource = parse_resource(resource_elem)
        if resource is None:
            if not quiet:
                print(f"[manifest:warn] {WARNING} Skipping resource without identifier", file=sys.stderr)
            continue
        resources.append(resource)

    return Manifest(
        identifier=root.get("identifier", ""),
        metadata=parse_metadata(find_child(root, "metadata")),
        organization=parse_organization(find_child(root, "organizations")),
        resources=resources,
    )


def load_manifest(
    archive: CartridgeArchive,
    filename: str = MANIFEST_FILENAME,
    quiet: bool = False,
) -> Tuple[Manifest, str]:
    """
    Find, read and decode the manifest of an archive.

    Returns:
        (manifest, base_path) where base_path is the manifest's folder inside
        the archive ("" when it sits at the root). Resource hrefs are
        relative to it.

    Raises:
        ManifestNotFoundError: If no entry name contains the manifest filename
        MalformedXMLError: If the manifest does not parse
    """
    name = find_manifest_name(archive.names(), filename)
    if name is None:
        raise ManifestNotFoundError(
            message=f"No {filename} found in cartridge",
            suggestion="Is this an IMS Common Cartridge export?",
            context={"archive": str(archive.path)},
        )

    manifest = parse_manifest(archive.read(name), quiet=quiet)
    return manifest, posixpath.dirname(name)
