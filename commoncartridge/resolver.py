"""
resolver.py

Turn resource identifiers into typed content or raw resources, and open
their backing files.

Resolution policy for resolve(identifier):
1. Unknown identifier                        -> ResourceNotFoundError
2. No href and no files                      -> the raw Resource
3. webcontent / associatedcontent / unknown  -> the raw Resource
4. Otherwise decode the backing file         -> Topic, WebLink, Assignment,
                                                Quiz or ExternalToolLink
   (ArchiveFileNotFoundError if the file is missing, DecodeError if it is
   not the expected document)
"""

from __future__ import annotations

import posixpath
import sys
from typing import IO, Dict, List, Optional, Union

from commoncartridge.archive import CartridgeArchive
from commoncartridge.config_utils import CartridgeSettings
from commoncartridge.content import Content, decode_content
from commoncartridge.errors import (
    ArchiveError,
    ArchiveFileNotFoundError,
    DecodeError,
    ResourceNotFoundError,
)
from commoncartridge.icons import WARNING
from commoncartridge.models import Manifest, Resource
from commoncartridge.resource_types import ResourceKind, classify


Resolved = Union[Content, Resource]


class ResourceResolver:
    """
    Lookups over one manifest and the archive it came from.

    Args:
        manifest: Decoded manifest
        archive: Container holding the resource files
        base_path: Folder of imsmanifest.xml inside the archive; hrefs are
            relative to it
        settings: Loader settings (only `quiet` is consulted here)
    """

    def __init__(
        self,
        manifest: Manifest,
        archive: CartridgeArchive,
        base_path: str = "",
        settings: Optional[CartridgeSettings] = None,
    ):
        self.manifest = manifest
        self.archive = archive
        self.base_path = base_path
        self.settings = settings or CartridgeSettings()

        # identifiers are unique; first occurrence wins if a producer repeats one
        self._by_id: Dict[str, Resource] = {}
        for resource in manifest.resources:
            self._by_id.setdefault(resource.identifier, resource)

    def _warn(self, message: str) -> None:
        if not self.settings.quiet:
            print(f"[resolver:warn] {WARNING} {message}", file=sys.stderr)

    def archive_path(self, href: str) -> str:
        """Archive entry name for an href declared in the manifest."""
        if not self.base_path:
            return href
        return posixpath.join(self.base_path, href)

    def get_resource(self, identifier: str) -> Resource:
        """
        Exact-identifier lookup.

        Raises:
            ResourceNotFoundError: If no resource has this identifier
        """
        resource = self._by_id.get(identifier)
        if resource is None:
            raise ResourceNotFoundError(
                message=f"Could not find resource with id: {identifier}",
                context={"identifier": identifier},
            )
        return resource

    def decode_resource(self, resource: Resource) -> Resolved:
        """Apply the resolution policy to an already looked-up resource."""
        path = resource.primary_path
        if not path:
            return resource

        kind = classify(resource.type)
        if not kind.is_structured:
            return resource

        archive_path = self.archive_path(path)
        data = self.archive.read(archive_path)
        return decode_content(kind, data, archive_path)

    def resolve(self, identifier: str) -> Resolved:
        """
        Find a resource and decode it into its typed variant where one applies.

        Raises:
            ResourceNotFoundError: Unknown identifier
            ArchiveFileNotFoundError: The backing file is missing
            DecodeError: The backing file is not the expected document
        """
        return self.decode_resource(self.get_resource(identifier))

    def file_path(self, identifier: str) -> str:
        """
        Archive entry name of the first file listed by a resource.

        Resources that list no <file> fall back to their href.

        Raises:
            ResourceNotFoundError: Unknown identifier
            ArchiveFileNotFoundError: No file declared
        """
        resource = self.get_resource(identifier)
        path = resource.files[0] if resource.files else resource.href
        if not path:
            raise ArchiveFileNotFoundError(
                message=f"Resource {identifier} declares no file",
                context={"identifier": identifier, "type": resource.type},
            )
        return self.archive_path(path)

    def open_file(self, identifier: str) -> IO[bytes]:
        """
        Open the file named by file_path(). The caller closes the stream.

        Raises:
            ResourceNotFoundError: Unknown identifier
            ArchiveFileNotFoundError: No file declared, or the file is missing
        """
        return self.archive.open(self.file_path(identifier))

    def resources_of_kind(self, kind: ResourceKind) -> List[Resource]:
        return [r for r in self.manifest.resources if classify(r.type) is kind]

    def list_kind(self, kind: ResourceKind) -> List[Content]:
        """
        Decode every file of every resource of a structured kind.

        All candidate paths (href, then each <file>) are tried; only decodes
        whose root element matches the kind are kept. A type tag alone is not
        trusted. Missing files are reported; companion files are skipped.
        """
        decoded: List[Content] = []
        for resource in self.resources_of_kind(kind):
            for path in resource.candidate_paths():
                archive_path = self.archive_path(path)
                try:
                    data = self.archive.read(archive_path)
                except ArchiveFileNotFoundError:
                    self._warn(f"Missing file for {resource.identifier}: {archive_path}")
                    continue
                except ArchiveError as e:
                    self._warn(f"Skipping {archive_path}: {e}")
                    continue

                try:
                    decoded.append(decode_content(kind, data, archive_path))
                except DecodeError:
                    continue

        return decoded
