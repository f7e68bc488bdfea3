"""
models.py

In-memory representation of a parsed imsmanifest.xml.

Every field has an empty default so a permissive manifest (missing
metadata, folder items without references, file-less resources) still
produces a complete model.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ManifestMetadata:
    """The <metadata> node: schema info plus the LOM general/lifecycle/rights fields."""
    schema: str = ""
    schema_version: str = ""
    title: str = ""
    language: str = ""
    description: str = ""
    keyword: str = ""
    date: str = ""  # lifeCycle/contribute/date/dateTime
    copyright: str = ""  # rights/copyrightAndOtherRestrictions/value
    copyright_description: str = ""


@dataclass
class Item:
    """A node of the organization tree. identifier_ref is empty for folders."""
    identifier: str = ""
    identifier_ref: str = ""
    title: str = ""
    children: List[Item] = field(default_factory=list)

    def walk(self):
        """Yield this item and all descendants, pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class Resource:
    """A catalog entry from <resources>."""
    identifier: str = ""
    type: str = ""
    href: str = ""
    files: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)  # identifierrefs of other resources
    intended_use: str = ""

    @property
    def primary_path(self) -> str:
        """href if declared, else the first listed file, else empty."""
        if self.href:
            return self.href
        if self.files:
            return self.files[0]
        return ""

    def candidate_paths(self) -> List[str]:
        """href followed by every listed file, without duplicates."""
        paths = []
        for path in [self.href, *self.files]:
            if path and path not in paths:
                paths.append(path)
        return paths


@dataclass
class Manifest:
    """Root of the model: metadata, the single organization root item, and the resources."""
    identifier: str = ""
    metadata: ManifestMetadata = field(default_factory=ManifestMetadata)
    organization: Item = field(default_factory=Item)
    resources: List[Resource] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
