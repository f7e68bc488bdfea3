"""
cartridge.py

The object callers hold: a loaded IMS Common Cartridge.

Usage:
    from commoncartridge.cartridge import load

    with load("course.imscc") as cc:
        print(cc.title())
        for full in cc.items():
            print(full.item.title, [r.identifier for r in full.resources])
        weblink = cc.find("ibb3ca45e774c0c487daeb9352e7a4553")

The manifest is decoded once at load time and never changes afterwards.
Everything returned (manifest copies, item trees, decoded content) is
built per call and owned by the caller.
"""

from __future__ import annotations

import copy
import json
import sys
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Union

import yaml

from commoncartridge.archive import CartridgeArchive, open_archive
from commoncartridge.config_utils import CartridgeSettings, load_settings
from commoncartridge.content import Assignment, ExternalToolLink, Quiz, Topic, WebLink
from commoncartridge.correlate import FullItem, FullResource, build_tree, find_item, index_owners
from commoncartridge.errors import ArchiveError, ArchiveFileNotFoundError, DecodeError
from commoncartridge.icons import WARNING
from commoncartridge.manifest import load_manifest
from commoncartridge.models import Item, Manifest
from commoncartridge.resolver import Resolved, ResourceResolver
from commoncartridge.resource_types import ResourceKind


class Cartridge:
    """
    A loaded cartridge: its manifest plus the archive it came from.

    Prefer load() over constructing this directly.
    """

    def __init__(
        self,
        archive: CartridgeArchive,
        manifest: Manifest,
        base_path: str = "",
        settings: Optional[CartridgeSettings] = None,
    ):
        self.archive = archive
        self.path = archive.path
        self.settings = settings or CartridgeSettings()
        self._manifest = manifest
        self._resolver = ResourceResolver(manifest, archive, base_path, self.settings)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self.archive.close()

    def __enter__(self) -> "Cartridge":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Cartridge({str(self.path)!r}, title={self.title()!r})"

    # ------------------------------------------------------------------
    # Manifest views
    # ------------------------------------------------------------------

    def manifest(self) -> Manifest:
        """A copy of the decoded manifest."""
        return copy.deepcopy(self._manifest)

    def title(self) -> str:
        """Course title from the LOM metadata, or "" when the manifest has none."""
        return self._manifest.metadata.title

    def metadata(self) -> Dict[str, str]:
        """User-friendly summary of the <metadata> node."""
        meta = self._manifest.metadata
        return {
            "title": meta.title,
            "schema": meta.schema,
            "schema_version": meta.schema_version,
            "language": meta.language,
            "description": meta.description,
            "keyword": meta.keyword,
            "date": meta.date,
            "copyright": meta.copyright,
            "copyright_description": meta.copyright_description,
        }

    def metadata_json(self) -> str:
        return json.dumps(self.metadata())

    def to_dict(self) -> Dict[str, Any]:
        """Full manifest as nested dicts; absent values appear as "" / []."""
        return self._manifest.to_dict()

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    # ------------------------------------------------------------------
    # Correlated views
    # ------------------------------------------------------------------

    def items(self) -> List[FullItem]:
        """Top-level items with their resources and correlated children."""
        return build_tree(
            self.manifest(),
            strict=self.settings.strict_traversal,
            quiet=self.settings.quiet,
        )

    def resources(self) -> List[FullResource]:
        """
        Every catalog resource, resolved, paired with the item that references it.

        A resource whose file is missing or does not decode is returned raw
        instead of failing the whole listing.
        """
        manifest = self.manifest()
        owners = index_owners(
            build_tree(manifest, strict=self.settings.strict_traversal, quiet=self.settings.quiet)
        )

        resolved = []
        for resource in manifest.resources:
            try:
                found = self._resolver.decode_resource(resource)
            except (ArchiveError, ArchiveFileNotFoundError, DecodeError) as e:
                if not self.settings.quiet:
                    print(f"[cartridge:warn] {WARNING} Using raw resource for {resource.identifier}: {e}",
                          file=sys.stderr)
                found = resource
            resolved.append(FullResource(resource=found, item=owners.get(resource.identifier)))

        return resolved

    # ------------------------------------------------------------------
    # Per-family listings
    # ------------------------------------------------------------------

    def topics(self) -> List[Topic]:
        return self._resolver.list_kind(ResourceKind.TOPIC)

    def weblinks(self) -> List[WebLink]:
        return self._resolver.list_kind(ResourceKind.WEB_LINK)

    def assignments(self) -> List[Assignment]:
        return self._resolver.list_kind(ResourceKind.ASSIGNMENT)

    def quizzes(self) -> List[Quiz]:
        return self._resolver.list_kind(ResourceKind.QUIZ)

    def external_tool_links(self) -> List[ExternalToolLink]:
        return self._resolver.list_kind(ResourceKind.EXTERNAL_TOOL_LINK)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find(self, identifier: str) -> Resolved:
        """
        Resolve a resource by exact identifier.

        Returns the typed variant for topics, web links, assignments, quizzes
        and LTI links; the raw Resource for everything else and for
        resources without files.

        Raises:
            ResourceNotFoundError, ArchiveFileNotFoundError, DecodeError
        """
        return copy.deepcopy(self._resolver.resolve(identifier))

    def find_file(self, identifier: str) -> IO[bytes]:
        """
        Open the first file of a resource. Use as a context manager or close it.

        Raises:
            ResourceNotFoundError, ArchiveFileNotFoundError
        """
        return self._resolver.open_file(identifier)

    def file_path(self, identifier: str) -> str:
        """Archive entry name find_file() would open."""
        return self._resolver.file_path(identifier)

    def find_item(self, identifier: str) -> Optional[Item]:
        """The first item whose identifierref is exactly this resource identifier."""
        item = find_item(self._manifest, identifier)
        return copy.deepcopy(item) if item is not None else None


def load(
    path: Union[str, Path],
    settings: Optional[CartridgeSettings] = None,
) -> Cartridge:
    """
    Open a cartridge (.imscc zip or extracted folder) and decode its manifest.

    Args:
        path: Cartridge location
        settings: Loader settings; defaults come from load_settings()

    Raises:
        ArchiveError: The container cannot be opened
        ManifestNotFoundError: No imsmanifest.xml inside
        MalformedXMLError: The manifest does not parse
    """
    if settings is None:
        settings = load_settings()

    archive = open_archive(path, settings)
    try:
        manifest, base_path = load_manifest(archive, settings.manifest_filename, quiet=settings.quiet)
    except Exception:
        archive.close()
        raise

    return Cartridge(archive, manifest, base_path, settings)
