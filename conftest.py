"""
Shared fixtures: a realistic Common Cartridge built on the fly.

The main fixture mirrors a Canvas export titled "Loaded Course": a
LearningModules root with two modules (11 and 1 items) and 120 resources
covering every content family, plus the awkward cases real exports have
(a file-less resource, a missing file, an unknown type tag, a companion
HTML file next to an assignment).
"""

import zipfile
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest

from commoncartridge.cartridge import load
from commoncartridge.config_utils import CartridgeSettings


# ============================================================================
# Identifiers
# ============================================================================

TOPIC_ID = "i528c2ce0186a758d13a9bd193bd88611"
WEBLINK_ID = "ibb3ca45e774c0c487daeb9352e7a4553"
ASSIGNMENT_ID = "ie801a403cd25e9a771ab7e3a2d6bea3a"
QUIZ_ID = "iad7e264143b9f2ec9dbc71a9d166f6f2"
BANK_ID = "i5b4c3d2e1f0a9b8c7d6e5f4a3b2c1d0e"
LTI_ID = "iae0220efe8693f664806e9bfe43b6e30"
WEBCONTENT_ID = "i3755487a331b36c76cec8bbbcdb7cc66"
ASSOCIATED_ID = "ic1b5d76bd9a4bd37eb78cf0bcb5b84da"
NO_FILE_ID = "i0d8b2e2b3b8a4f7c9e1d2a3b4c5d6e7f"
MISSING_FILE_ID = "i7a1f0c2d3e4b5a69788796a5b4c3d2e1"
UNKNOWN_TYPE_ID = "i9f8e7d6c5b4a39281706f5e4d3c2b1a0"
UNRESOLVED_REF = "i00000000000000000000000000000000"

RESOURCE_COUNT = 120
FILLER_COUNT = RESOURCE_COUNT - 11

COPYRIGHT_DESCRIPTION = "Private (Copyrighted) - http://en.wikipedia.org/wiki/Copyright"


# ============================================================================
# Resource Files
# ============================================================================

TOPIC_XML = """<?xml version="1.0" encoding="UTF-8"?>
<topic xmlns="http://www.imsglobal.org/xsd/imsccv1p1/imsdt_v1p1">
  <title>Introductions</title>
  <text texttype="text/html">&lt;p&gt;Say &lt;strong&gt;hello&lt;/strong&gt; to the class.&lt;/p&gt;</text>
  <attachments>
    <attachment href="web_resources/syllabus.pdf"/>
  </attachments>
</topic>
"""

WEBLINK_XML = """<?xml version="1.0" encoding="UTF-8"?>
<webLink xmlns="http://www.imsglobal.org/xsd/imsccv1p1/imswl_v1p1">
  <title>Course Website</title>
  <url href="https://example.com/course" target="_blank"/>
</webLink>
"""

ASSIGNMENT_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<assignment xmlns="http://www.imsglobal.org/xsd/imscc_extensions/assignment" identifier="{ASSIGNMENT_ID}">
  <title>Essay One</title>
  <text texttype="text/html">&lt;p&gt;Write 500 words.&lt;/p&gt;</text>
  <instructor_text texttype="text/plain">Grade on clarity</instructor_text>
  <gradable points_possible="10">true</gradable>
  <submission_formats>
    <format type="file"/>
    <format type="text"/>
  </submission_formats>
</assignment>
"""

ASSIGNMENT_META_HTML = """<html>
<head><title>Essay One</title></head>
<body><p>Write 500 words.</p></body>
</html>
"""

QUIZ_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<questestinterop xmlns="http://www.imsglobal.org/xsd/ims_qtiasiv1p2">
  <assessment ident="{QUIZ_ID}" title="Quiz One">
    <qtimetadata>
      <qtimetadatafield>
        <fieldlabel>cc_maxattempts</fieldlabel>
        <fieldentry>1</fieldentry>
      </qtimetadatafield>
    </qtimetadata>
    <section ident="root_section">
      <item ident="q1" title="Capital">
        <itemmetadata>
          <qtimetadata>
            <qtimetadatafield>
              <fieldlabel>cc_profile</fieldlabel>
              <fieldentry>cc.multiple_choice.v0p1</fieldentry>
            </qtimetadatafield>
            <qtimetadatafield>
              <fieldlabel>cc_weighting</fieldlabel>
              <fieldentry>2</fieldentry>
            </qtimetadatafield>
          </qtimetadata>
        </itemmetadata>
        <presentation>
          <material>
            <mattext texttype="text/html">What is the capital of France?</mattext>
          </material>
          <response_lid ident="response1" rcardinality="Single">
            <render_choice>
              <response_label ident="a1">
                <material><mattext texttype="text/plain">Paris</mattext></material>
              </response_label>
              <response_label ident="a2">
                <material><mattext texttype="text/plain">Lyon</mattext></material>
              </response_label>
            </render_choice>
          </response_lid>
        </presentation>
        <resprocessing>
          <outcomes>
            <decvar maxvalue="100" minvalue="0" varname="SCORE" vartype="Decimal"/>
          </outcomes>
          <respcondition continue="No">
            <conditionvar>
              <varequal respident="response1">a1</varequal>
            </conditionvar>
            <setvar action="Set" varname="SCORE">100</setvar>
          </respcondition>
        </resprocessing>
      </item>
      <item ident="q2" title="Essay">
        <itemmetadata>
          <qtimetadata>
            <qtimetadatafield>
              <fieldlabel>cc_profile</fieldlabel>
              <fieldentry>cc.essay.v0p1</fieldentry>
            </qtimetadatafield>
          </qtimetadata>
        </itemmetadata>
        <presentation>
          <material>
            <mattext texttype="text/plain">Explain your answer.</mattext>
          </material>
        </presentation>
      </item>
    </section>
  </assessment>
</questestinterop>
"""

BANK_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<questestinterop xmlns="http://www.imsglobal.org/xsd/ims_qtiasiv1p2">
  <objectbank ident="{BANK_ID}">
    <qtimetadata>
      <qtimetadatafield>
        <fieldlabel>bank_title</fieldlabel>
        <fieldentry>Bank One</fieldentry>
      </qtimetadatafield>
    </qtimetadata>
    <item ident="b1" title="Sky">
      <itemmetadata>
        <qtimetadata>
          <qtimetadatafield>
            <fieldlabel>cc_profile</fieldlabel>
            <fieldentry>cc.true_false.v0p1</fieldentry>
          </qtimetadatafield>
        </qtimetadata>
      </itemmetadata>
      <presentation>
        <material><mattext>The sky is blue.</mattext></material>
        <response_lid ident="r1">
          <render_choice>
            <response_label ident="t"><material><mattext>True</mattext></material></response_label>
            <response_label ident="f"><material><mattext>False</mattext></material></response_label>
          </render_choice>
        </response_lid>
      </presentation>
      <resprocessing>
        <respcondition>
          <conditionvar><varequal respident="r1">t</varequal></conditionvar>
          <setvar action="Set" varname="SCORE">100</setvar>
        </respcondition>
      </resprocessing>
    </item>
  </objectbank>
</questestinterop>
"""

LTI_XML = """<?xml version="1.0" encoding="UTF-8"?>
<cartridge_basiclti_link xmlns="http://www.imsglobal.org/xsd/imslticc_v1p0"
    xmlns:blti="http://www.imsglobal.org/xsd/imsbasiclti_v1p0"
    xmlns:lticm="http://www.imsglobal.org/xsd/imslticm_v1p0"
    xmlns:lticp="http://www.imsglobal.org/xsd/imslticp_v1p0">
  <blti:title>Video Tool</blti:title>
  <blti:description>Lecture videos</blti:description>
  <blti:launch_url>http://tool.example.com/launch</blti:launch_url>
  <blti:secure_launch_url>https://tool.example.com/launch</blti:secure_launch_url>
  <blti:custom>
    <lticm:property name="course">101</lticm:property>
  </blti:custom>
  <blti:extensions platform="canvas.instructure.com">
    <lticm:property name="privacy_level">public</lticm:property>
    <lticm:options name="course_navigation">
      <lticm:property name="enabled">true</lticm:property>
    </lticm:options>
  </blti:extensions>
  <blti:vendor>
    <lticp:code>example</lticp:code>
    <lticp:name>Example Inc</lticp:name>
    <lticp:contact>
      <lticp:email>tools@example.com</lticp:email>
    </lticp:contact>
  </blti:vendor>
</cartridge_basiclti_link>
"""

ASSOCIATED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<assignment xmlns="http://canvas.instructure.com/xsd/cccv1p0" identifier="canvas_settings">
  <title>Essay One</title>
  <points_possible>10</points_possible>
  <grading_type>points</grading_type>
  <submission_types>online_upload,online_text_entry</submission_types>
</assignment>
"""

PDF_BYTES = b"%PDF-1.4\n% fake syllabus\n"


# ============================================================================
# Manifest
# ============================================================================

METADATA_XML = f"""  <metadata>
    <schema>IMS Common Cartridge</schema>
    <schemaversion>1.1.0</schemaversion>
    <lomimscc:lom>
      <lomimscc:general>
        <lomimscc:title>
          <lomimscc:string>Loaded Course</lomimscc:string>
        </lomimscc:title>
        <lomimscc:language>en-US</lomimscc:language>
        <lomimscc:description>
          <lomimscc:string>Sample Description</lomimscc:string>
        </lomimscc:description>
        <lomimscc:keyword>
          <lomimscc:string>Test, Attempt</lomimscc:string>
        </lomimscc:keyword>
      </lomimscc:general>
      <lomimscc:lifeCycle>
        <lomimscc:contribute>
          <lomimscc:date>
            <lomimscc:dateTime>2014-09-08</lomimscc:dateTime>
          </lomimscc:date>
        </lomimscc:contribute>
      </lomimscc:lifeCycle>
      <lomimscc:rights>
        <lomimscc:copyrightAndOtherRestrictions>
          <lomimscc:value>yes</lomimscc:value>
        </lomimscc:copyrightAndOtherRestrictions>
        <lomimscc:description>
          <lomimscc:string>{COPYRIGHT_DESCRIPTION}</lomimscc:string>
        </lomimscc:description>
      </lomimscc:rights>
    </lomimscc:lom>
  </metadata>
"""

MANIFEST_OPEN = """<?xml version="1.0" encoding="UTF-8"?>
<manifest identifier="cctd0015" xmlns="http://www.imsglobal.org/xsd/imsccv1p1/imscp_v1p1"
    xmlns:lom="http://ltsc.ieee.org/xsd/imsccv1p1/LOM/resource"
    xmlns:lomimscc="http://ltsc.ieee.org/xsd/imsccv1p1/LOM/manifest">
"""


def _item(identifier: str, title: str, ref: Optional[str] = None, children: str = "") -> str:
    ref_attr = f' identifierref="{ref}"' if ref else ""
    return f'<item identifier="{identifier}"{ref_attr}><title>{title}</title>{children}</item>\n'


def _resource(identifier: str, type_: str, href: Optional[str] = None, files=(), extra: str = "") -> str:
    href_attr = f' href="{href}"' if href else ""
    body = "".join(f'<file href="{f}"/>' for f in files)
    return f'<resource identifier="{identifier}" type="{type_}"{href_attr}>{body}{extra}</resource>\n'


def filler_id(n: int) -> str:
    return f"filler_{n:03d}"


def build_manifest() -> str:
    public = "".join([
        _item("item_topic", "Introductions", TOPIC_ID),
        _item("item_weblink", "Course Website", WEBLINK_ID),
        _item("item_assignment", "Essay One", ASSIGNMENT_ID),
        _item("item_quiz", "Quiz One", QUIZ_ID),
        _item("item_lti", "Video Tool", LTI_ID),
        _item("item_syllabus", "Syllabus", WEBCONTENT_ID),
        _item("item_settings", "Essay Settings", ASSOCIATED_ID),
        _item("item_folder", "Readings", children=_item("item_reading", "Reading", filler_id(0))),
        _item("item_no_file", "Placeholder Tool", NO_FILE_ID),
        _item("item_missing", "Lost Topic", MISSING_FILE_ID),
        _item("item_unresolved", "Dangling", UNRESOLVED_REF),
    ])
    locked = _item("item_weblink_again", "Course Website (again)", WEBLINK_ID)

    organization = _item(
        "LearningModules", "",
        children=_item("module_public", "Public", children=public)
        + _item("module_locked", "Locked", children=locked),
    ).replace("<title></title>", "")

    resources = "".join([
        _resource(TOPIC_ID, "imsdt_xmlv1p1", files=[f"{TOPIC_ID}.xml"]),
        _resource(WEBLINK_ID, "imswl_xmlv1p1", files=[f"{WEBLINK_ID}.xml"]),
        _resource(
            ASSIGNMENT_ID, "assignment_xmlv1p0",
            href=f"{ASSIGNMENT_ID}/assignment.xml",
            files=[f"{ASSIGNMENT_ID}/assignment.xml", f"{ASSIGNMENT_ID}/assignment_meta.html"],
        ),
        _resource(
            QUIZ_ID, "imsqti_xmlv1p2/imscc_xmlv1p1/assessment",
            files=[f"{QUIZ_ID}/assessment_qti.xml"],
            extra=f'<dependency identifierref="{BANK_ID}"/>',
        ),
        _resource(BANK_ID, "imsqti_xmlv1p2/imscc_xmlv1p1/question-bank", files=[f"{BANK_ID}.xml"]),
        _resource(LTI_ID, "imsbasiclti_xmlv1p0", files=[f"{LTI_ID}.xml"]),
        _resource(
            WEBCONTENT_ID, "webcontent",
            href="web_resources/syllabus.pdf", files=["web_resources/syllabus.pdf"],
        ),
        _resource(
            ASSOCIATED_ID, "associatedcontent/imscc_xmlv1p1/learning-application-resource",
            href=f"{ASSOCIATED_ID}/assignment_settings.xml",
            files=[f"{ASSOCIATED_ID}/assignment_settings.xml"],
        ),
        _resource(NO_FILE_ID, "imsbasiclti_xmlv1p0"),
        _resource(MISSING_FILE_ID, "imsdt_xmlv1p1", files=["missing_topic.xml"]),
        _resource(UNKNOWN_TYPE_ID, "x-custom/widget", files=["widget.json"]),
    ])
    resources += "".join(
        _resource(filler_id(n), "webcontent",
                  href=f"web_resources/{filler_id(n)}.html",
                  files=[f"web_resources/{filler_id(n)}.html"])
        for n in range(FILLER_COUNT)
    )

    return (
        MANIFEST_OPEN
        + METADATA_XML
        + '  <organizations>\n    <organization identifier="org_1" structure="rooted-hierarchy">\n'
        + organization
        + "    </organization>\n  </organizations>\n"
        + "  <resources>\n" + resources + "  </resources>\n"
        + "</manifest>\n"
    )


def build_files() -> Dict[str, bytes]:
    """Every archive entry of the sample cartridge, keyed by name."""
    files = {
        "imsmanifest.xml": build_manifest().encode("utf-8"),
        f"{TOPIC_ID}.xml": TOPIC_XML.encode("utf-8"),
        f"{WEBLINK_ID}.xml": WEBLINK_XML.encode("utf-8"),
        f"{ASSIGNMENT_ID}/assignment.xml": ASSIGNMENT_XML.encode("utf-8"),
        f"{ASSIGNMENT_ID}/assignment_meta.html": ASSIGNMENT_META_HTML.encode("utf-8"),
        f"{QUIZ_ID}/assessment_qti.xml": QUIZ_XML.encode("utf-8"),
        f"{BANK_ID}.xml": BANK_XML.encode("utf-8"),
        f"{LTI_ID}.xml": LTI_XML.encode("utf-8"),
        "web_resources/syllabus.pdf": PDF_BYTES,
        f"{ASSOCIATED_ID}/assignment_settings.xml": ASSOCIATED_XML.encode("utf-8"),
        "widget.json": b'{"widget": true}',
    }
    for n in range(FILLER_COUNT):
        files[f"web_resources/{filler_id(n)}.html"] = f"<p>Reading {n}</p>".encode("utf-8")
    return files


def write_zip(path: Path, files: Dict[str, bytes], prefix: str = "") -> Path:
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            zf.writestr(prefix + name, data)
    return path


def write_dir(root: Path, files: Dict[str, bytes]) -> Path:
    for name, data in files.items():
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    return root


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep COSYL_* variables from the developer's shell out of the tests."""
    for name in ("COSYL_CONFIG", "COSYL_MANIFEST_FILENAME", "COSYL_STRICT_TRAVERSAL",
                 "COSYL_MAX_ENTRY_SIZE", "COSYL_MAX_ENTRIES", "COSYL_QUIET"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cartridge_files() -> Dict[str, bytes]:
    return build_files()


@pytest.fixture
def cartridge_path(tmp_path, cartridge_files) -> Path:
    """The sample cartridge as a .imscc zip."""
    return write_zip(tmp_path / "test_01.imscc", cartridge_files)


@pytest.fixture
def cartridge_dir(tmp_path, cartridge_files) -> Path:
    """The sample cartridge extracted into a folder."""
    return write_dir(tmp_path / "extracted", cartridge_files)


@pytest.fixture
def cc(cartridge_path):
    """The sample cartridge, loaded with default settings."""
    cartridge = load(cartridge_path, CartridgeSettings())
    yield cartridge
    cartridge.close()


@pytest.fixture
def make_cartridge(tmp_path) -> Callable[..., Path]:
    """Factory writing arbitrary entries into a zip: make_cartridge({name: bytes}, prefix="")."""
    counter = {"n": 0}

    def _make(files: Dict[str, bytes], prefix: str = "") -> Path:
        counter["n"] += 1
        return write_zip(tmp_path / f"custom_{counter['n']}.imscc", files, prefix)

    return _make
