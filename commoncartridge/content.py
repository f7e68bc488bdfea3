"""
content.py

Typed representations of the structured resource files a cartridge carries,
and the decoders that build them:

- Topic              imsdt_xmlv1pN        <topic>
- WebLink            imswl_xmlv1pN        <webLink>
- Assignment         assignment_xmlv1pN   <assignment>
- Quiz               imsqti_xmlv1pN/...   <questestinterop>
- ExternalToolLink   imsbasiclti_xmlv1pN  <cartridge_basiclti_link>

Every variant records the root element it was decoded from in xml_name.
decode_content() refuses files whose root is not the one the resource kind
expects, which keeps companion files (assignment_meta.html next to
assignment.xml, for instance) from being mistaken for the real document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union
from xml.etree import ElementTree as ET

from commoncartridge.errors import DecodeError
from commoncartridge.html_to_markdown import convert_html_to_markdown, html_to_text
from commoncartridge.resource_types import ResourceKind
from commoncartridge.xml_utils import (
    XML_ERRORS,
    find_child,
    find_children,
    find_descendant,
    find_descendants,
    find_path,
    get_attr,
    get_text,
    iter_children,
    local_name,
    parse_xml,
)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class Topic:
    """A discussion topic."""
    xml_name: str = "topic"
    title: str = ""
    text: str = ""
    text_type: str = ""
    attachments: List[str] = field(default_factory=list)

    def text_markdown(self) -> str:
        return convert_html_to_markdown(self.text)

    def text_plain(self) -> str:
        return html_to_text(self.text)


@dataclass
class WebLinkURL:
    href: str = ""
    target: str = ""
    window_features: str = ""


@dataclass
class WebLink:
    """An external URL."""
    xml_name: str = "webLink"
    title: str = ""
    url: WebLinkURL = field(default_factory=WebLinkURL)


@dataclass
class Assignment:
    """
    An assignment, from either the IMS assignment extension or Canvas'
    cccv1p0 assignment settings layout.
    """
    xml_name: str = "assignment"
    identifier: str = ""
    title: str = ""
    text: str = ""
    text_type: str = ""
    instructor_text: str = ""
    gradable: bool = False
    points_possible: Optional[float] = None
    grading_type: str = ""
    submission_formats: List[str] = field(default_factory=list)
    attachments: List[str] = field(default_factory=list)

    def text_markdown(self) -> str:
        return convert_html_to_markdown(self.text)

    def text_plain(self) -> str:
        return html_to_text(self.text)


@dataclass
class QuizChoice:
    ident: str = ""
    text: str = ""
    correct: bool = False


@dataclass
class QuizQuestion:
    ident: str = ""
    title: str = ""
    question_type: str = ""  # multiple_choice, true_false, essay, ...
    profile: str = ""  # raw cc_profile value
    points: float = 1.0
    text: str = ""
    choices: List[QuizChoice] = field(default_factory=list)


@dataclass
class QuizSection:
    ident: str = ""
    title: str = ""
    questions: List[QuizQuestion] = field(default_factory=list)
    sections: List[QuizSection] = field(default_factory=list)


@dataclass
class Quiz:
    """A QTI 1.2 assessment (kind "assessment") or question bank (kind "objectbank")."""
    xml_name: str = "questestinterop"
    ident: str = ""
    title: str = ""
    kind: str = "assessment"
    metadata: Dict[str, str] = field(default_factory=dict)
    sections: List[QuizSection] = field(default_factory=list)

    def questions(self) -> List[QuizQuestion]:
        """All questions, depth-first through nested sections."""
        found: List[QuizQuestion] = []
        stack = list(reversed(self.sections))
        while stack:
            section = stack.pop()
            found.extend(section.questions)
            stack.extend(reversed(section.sections))
        return found


@dataclass
class ToolVendor:
    code: str = ""
    name: str = ""
    description: str = ""
    url: str = ""
    contact_email: str = ""


@dataclass
class ExternalToolLink:
    """A Basic LTI link."""
    xml_name: str = "cartridge_basiclti_link"
    title: str = ""
    description: str = ""
    launch_url: str = ""
    secure_launch_url: str = ""
    icon: str = ""
    secure_icon: str = ""
    vendor: ToolVendor = field(default_factory=ToolVendor)
    custom: Dict[str, str] = field(default_factory=dict)
    extensions: Dict[str, Dict[str, str]] = field(default_factory=dict)  # platform -> name -> value


Content = Union[Topic, WebLink, Assignment, Quiz, ExternalToolLink]


# ============================================================================
# Shared Helpers
# ============================================================================

def _attachment_hrefs(parent: Optional[ET.Element]) -> List[str]:
    attachments = find_child(parent, "attachments")
    return [a.get("href", "") for a in find_children(attachments, "attachment") if a.get("href")]


def _to_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ============================================================================
# Topic / WebLink
# ============================================================================

def decode_topic(root: ET.Element) -> Topic:
    text_elem = find_child(root, "text")
    return Topic(
        xml_name=local_name(root.tag),
        title=get_text(find_child(root, "title")),
        text=get_text(text_elem),
        text_type=get_attr(text_elem, "texttype"),
        attachments=_attachment_hrefs(root),
    )


def decode_weblink(root: ET.Element) -> WebLink:
    url_elem = find_child(root, "url")
    return WebLink(
        xml_name=local_name(root.tag),
        title=get_text(find_child(root, "title")),
        url=WebLinkURL(
            href=get_attr(url_elem, "href"),
            target=get_attr(url_elem, "target"),
            window_features=get_attr(url_elem, "windowFeatures"),
        ),
    )


# ============================================================================
# Assignment Processing
# ============================================================================

def decode_assignment(root: ET.Element) -> Assignment:
    """Decode <assignment>, accepting IMS extension and Canvas layouts."""
    # IMS: <text>; Canvas: <description> or <body>
    text_elem = None
    for tag in ("text", "description", "body"):
        text_elem = find_child(root, tag)
        if text_elem is not None:
            break

    gradable_elem = find_child(root, "gradable")
    points = _to_float(get_attr(gradable_elem, "points_possible"))
    if points is None:
        points = _to_float(get_text(find_child(root, "points_possible")))

    gradable = get_text(gradable_elem).lower() == "true" or (
        gradable_elem is None and points is not None
    )

    formats = [
        f.get("type", "")
        for f in find_children(find_child(root, "submission_formats"), "format")
        if f.get("type")
    ]
    if not formats:
        # Canvas: comma-separated <submission_types>
        submission_types = get_text(find_child(root, "submission_types"))
        formats = [s.strip() for s in submission_types.split(",") if s.strip()]

    return Assignment(
        xml_name=local_name(root.tag),
        identifier=root.get("identifier", ""),
        title=get_text(find_child(root, "title")),
        text=get_text(text_elem),
        text_type=get_attr(text_elem, "texttype"),
        instructor_text=get_text(find_child(root, "instructor_text")),
        gradable=gradable,
        points_possible=points,
        grading_type=get_text(find_child(root, "grading_type")),
        submission_formats=formats,
        attachments=_attachment_hrefs(root),
    )


# ============================================================================
# Quiz Processing
# ============================================================================

def map_qti_type(qti_type: str) -> str:
    """Map a cc_profile / question_type value to a short question type."""
    qti_lower = qti_type.lower()

    if "multiple_choice" in qti_lower:
        return "multiple_choice"
    elif "multiple_response" in qti_lower or "multiple_answer" in qti_lower:
        return "multiple_answers"
    elif "true_false" in qti_lower:
        return "true_false"
    elif "fib" in qti_lower or "short_answer" in qti_lower or "fill_in" in qti_lower:
        return "short_answer"
    elif "essay" in qti_lower:
        return "essay"
    elif "file_upload" in qti_lower:
        return "file_upload"
    elif "pattern_match" in qti_lower:
        return "pattern_match"
    else:
        return qti_lower


def parse_qtimetadata(parent: Optional[ET.Element]) -> Dict[str, str]:
    """Collect fieldlabel -> fieldentry pairs of the first qtimetadata below parent."""
    metadata: Dict[str, str] = {}
    qtimetadata = find_descendant(parent, "qtimetadata")
    for metafield in find_children(qtimetadata, "qtimetadatafield"):
        label = get_text(find_child(metafield, "fieldlabel"))
        entry = get_text(find_child(metafield, "fieldentry"))
        if label:
            metadata[label] = entry
    return metadata


def is_correct_answer(item: ET.Element, answer_id: str) -> bool:
    """Check if an answer is marked as correct in QTI."""
    resprocessing = find_child(item, "resprocessing")
    if resprocessing is None:
        return False

    # Look for conditions that set score to 100 for this answer
    for respcondition in find_children(resprocessing, "respcondition"):
        varequal = find_descendant(respcondition, "varequal")
        setvar = find_descendant(respcondition, "setvar")

        if varequal is not None and setvar is not None:
            if get_text(varequal) == answer_id and _to_float(get_text(setvar)) == 100:
                return True

    return False


def parse_choices(item: ET.Element) -> List[QuizChoice]:
    """Response labels with their correctness; fill-in items list accepted answers instead."""
    choices = []
    for label in find_descendants(find_child(item, "presentation"), "response_label"):
        ident = label.get("ident", "")
        choices.append(QuizChoice(
            ident=ident,
            text=get_text(find_descendant(label, "mattext")),
            correct=is_correct_answer(item, ident),
        ))

    if choices:
        return choices

    for varequal in find_descendants(find_child(item, "resprocessing"), "varequal"):
        text = get_text(varequal)
        if text:
            choices.append(QuizChoice(text=text, correct=True))

    return choices


def parse_question(item: ET.Element) -> QuizQuestion:
    """Parse a single QTI <item>."""
    metadata = parse_qtimetadata(find_child(item, "itemmetadata"))
    profile = metadata.get("cc_profile") or metadata.get("question_type", "")

    points = _to_float(metadata.get("cc_weighting") or metadata.get("points_possible", ""))

    presentation = find_child(item, "presentation")
    mattext = find_path(presentation, "material", "mattext")
    if mattext is None:
        mattext = find_descendant(presentation, "mattext")

    return QuizQuestion(
        ident=item.get("ident", ""),
        title=item.get("title", ""),
        question_type=map_qti_type(profile),
        profile=profile,
        points=points if points is not None else 1.0,
        text=get_text(mattext),
        choices=parse_choices(item),
    )


def parse_section(section: ET.Element) -> QuizSection:
    return QuizSection(
        ident=section.get("ident", ""),
        title=section.get("title", ""),
        questions=[parse_question(i) for i in iter_children(section, "item")],
        sections=[parse_section(s) for s in iter_children(section, "section")],
    )


def decode_quiz(root: ET.Element) -> Quiz:
    """Decode <questestinterop> holding an <assessment> or an <objectbank>."""
    assessment = find_child(root, "assessment")
    if assessment is not None:
        return Quiz(
            xml_name=local_name(root.tag),
            ident=assessment.get("ident", ""),
            title=assessment.get("title", ""),
            kind="assessment",
            metadata=parse_qtimetadata(assessment),
            sections=[parse_section(s) for s in iter_children(assessment, "section")],
        )

    bank = find_child(root, "objectbank")
    if bank is not None:
        metadata = parse_qtimetadata(bank)
        return Quiz(
            xml_name=local_name(root.tag),
            ident=bank.get("ident", ""),
            title=metadata.get("bank_title", ""),
            kind="objectbank",
            metadata=metadata,
            sections=[QuizSection(
                ident=bank.get("ident", ""),
                questions=[parse_question(i) for i in iter_children(bank, "item")],
                sections=[parse_section(s) for s in iter_children(bank, "section")],
            )],
        )

    return Quiz(xml_name=local_name(root.tag))


# ============================================================================
# Basic LTI
# ============================================================================

def _properties(parent: Optional[ET.Element]) -> Dict[str, str]:
    """lticm:property name/value pairs; lticm:options flatten to "option.name"."""
    values: Dict[str, str] = {}
    if parent is None:
        return values
    for child in parent:
        tag = local_name(child.tag)
        if tag == "property":
            values[child.get("name", "")] = get_text(child)
        elif tag == "options":
            prefix = child.get("name", "")
            for key, value in _properties(child).items():
                values[f"{prefix}.{key}"] = value
    return values


def decode_external_tool_link(root: ET.Element) -> ExternalToolLink:
    vendor = find_child(root, "vendor")

    extensions: Dict[str, Dict[str, str]] = {}
    for ext in find_children(root, "extensions"):
        extensions.setdefault(ext.get("platform", ""), {}).update(_properties(ext))

    return ExternalToolLink(
        xml_name=local_name(root.tag),
        title=get_text(find_child(root, "title")),
        description=get_text(find_child(root, "description")),
        launch_url=get_text(find_child(root, "launch_url")),
        secure_launch_url=get_text(find_child(root, "secure_launch_url")),
        icon=get_text(find_child(root, "icon")),
        secure_icon=get_text(find_child(root, "secure_icon")),
        vendor=ToolVendor(
            code=get_text(find_child(vendor, "code")),
            name=get_text(find_child(vendor, "name")),
            description=get_text(find_child(vendor, "description")),
            url=get_text(find_child(vendor, "url")),
            contact_email=get_text(find_path(vendor, "contact", "email")),
        ),
        custom=_properties(find_child(root, "custom")),
        extensions=extensions,
    )


# ============================================================================
# Dispatch
# ============================================================================

def decode_content(kind: ResourceKind, data: bytes, path: str = "") -> Content:
    """
    Decode a structured resource file into its typed variant.

    Args:
        kind: Classification of the owning resource; must be structured
        data: Raw file bytes
        path: Archive path, for error context only

    Raises:
        DecodeError: If the bytes are not XML, the root element is not the
            one the kind expects, or the kind has no typed variant
    """
    expected = kind.expected_root
    if expected is None:
        raise DecodeError(
            message=f"Resources of kind {kind.value} have no typed representation",
            context={"kind": kind.value, "path": path},
        )

    try:
        root = parse_xml(data)
    except XML_ERRORS as e:
        raise DecodeError(
            message=f"Failed to parse {path or 'resource file'} as XML",
            context={"kind": kind.value, "path": path},
            cause=e,
        )

    root_name = local_name(root.tag)
    if root_name != expected:
        raise DecodeError(
            message=f"Expected <{expected}> in {path or 'resource file'}, found <{root_name}>",
            context={"kind": kind.value, "path": path, "root": root_name},
        )

    if kind is ResourceKind.TOPIC:
        return decode_topic(root)
    elif kind is ResourceKind.WEB_LINK:
        return decode_weblink(root)
    elif kind is ResourceKind.ASSIGNMENT:
        return decode_assignment(root)
    elif kind is ResourceKind.QUIZ:
        return decode_quiz(root)
    else:
        return decode_external_tool_link(root)
