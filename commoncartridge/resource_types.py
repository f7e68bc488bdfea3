"""
resource_types.py

Classify a resource's type tag into a content family.

Type tags are a family prefix plus a minor version (imsdt_xmlv1p1,
imsdt_xmlv1p3, ...). Matching uses regular expressions on the prefix so
cartridges from any CC 1.x revision classify the same way.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import List, Optional, Tuple


class ResourceKind(Enum):
    """Content families a resource type tag can belong to."""
    TOPIC = "topic"
    WEB_LINK = "weblink"
    ASSIGNMENT = "assignment"
    QUIZ = "quiz"
    EXTERNAL_TOOL_LINK = "external_tool_link"
    WEB_CONTENT = "webcontent"
    ASSOCIATED_CONTENT = "associatedcontent"
    UNKNOWN = "unknown"

    @property
    def is_structured(self) -> bool:
        """True if resources of this kind decode into a typed variant."""
        return self.expected_root is not None

    @property
    def expected_root(self) -> Optional[str]:
        """Local name of the root element a decodable file must have."""
        return EXPECTED_ROOTS.get(self)


EXPECTED_ROOTS = {
    ResourceKind.TOPIC: "topic",
    ResourceKind.WEB_LINK: "webLink",
    ResourceKind.ASSIGNMENT: "assignment",
    ResourceKind.QUIZ: "questestinterop",
    ResourceKind.EXTERNAL_TOOL_LINK: "cartridge_basiclti_link",
}

# Order matters only for readability; the patterns are disjoint.
TYPE_PATTERNS: List[Tuple[re.Pattern, ResourceKind]] = [
    (re.compile(r"^imsdt_xmlv1p\d"), ResourceKind.TOPIC),
    (re.compile(r"^imswl_xmlv1p\d"), ResourceKind.WEB_LINK),
    (re.compile(r"^assignment_xmlv1p\d"), ResourceKind.ASSIGNMENT),
    # assessments and question banks: imsqti_xmlv1p2/imscc_xmlv1p1/assessment
    (re.compile(r"^imsqti_xmlv1p\d"), ResourceKind.QUIZ),
    (re.compile(r"^imsbasiclti_xmlv1p\d"), ResourceKind.EXTERNAL_TOOL_LINK),
    (re.compile(r"^webcontent$"), ResourceKind.WEB_CONTENT),
    (re.compile(r"^associatedcontent/imscc_xmlv1p\d/learning-application-resource$"),
     ResourceKind.ASSOCIATED_CONTENT),
]


def classify(resource_type: str) -> ResourceKind:
    """
    Map a raw type tag to its ResourceKind.

    Never raises: unrecognized or empty tags are UNKNOWN, which callers
    treat as "use the raw resource".
    """
    if not resource_type:
        return ResourceKind.UNKNOWN

    tag = resource_type.strip().lower()
    for pattern, kind in TYPE_PATTERNS:
        if pattern.search(tag):
            return kind

    return ResourceKind.UNKNOWN
