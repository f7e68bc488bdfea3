#!/usr/bin/env python3
"""
cli.py (cosyl)

Inspect an IMS Common Cartridge from the command line.

Usage:
    cosyl -m course.imscc                 # metadata as JSON
    cosyl -I course.imscc                 # item tree with resources, as JSON
    cosyl --weblinks --topics course.imscc
    cosyl -f i528c2ce0186a758d13a9bd193bd88611 course.imscc
    cosyl -F i3755487a331b36c76cec8bbbcdb7cc66 -o out/ course.imscc

Several listing flags can be combined; output follows the order above.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import posixpath
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from commoncartridge.cartridge import Cartridge, load
from commoncartridge.config_utils import load_settings
from commoncartridge.content import Assignment, Topic
from commoncartridge.errors import CartridgeError
from commoncartridge.icons import (
    ASSIGNMENT,
    ERROR,
    FOLDER,
    INFO,
    LTI,
    QUIZ,
    SUCCESS,
    TOPIC,
    WEBLINK,
)
from commoncartridge.models import Resource

VERSION = "0.1.0"


# ============================================================================
# Output
# ============================================================================

def _dump(obj) -> str:
    if dataclasses.is_dataclass(obj):
        obj = dataclasses.asdict(obj)
    elif isinstance(obj, list):
        obj = [dataclasses.asdict(o) if dataclasses.is_dataclass(o) else o for o in obj]
    return json.dumps(obj)


def _print_markdown(text_owner) -> None:
    markdown = text_owner.text_markdown()
    if markdown:
        print(markdown)
        print()


def print_resources(cc: Cartridge) -> None:
    """One line per catalog resource with the item that references it."""
    for full in cc.resources():
        resource = full.resource
        item_title = full.item.title if full.item is not None else "none"
        if isinstance(resource, Resource):
            label = f"{resource.identifier} ({resource.type or 'untyped'})"
        else:
            label = f"{type(resource).__name__} {getattr(resource, 'title', '')}"
        print(f"{FOLDER} {label} item: {item_title}")


def print_weblinks(cc: Cartridge) -> None:
    for wl in cc.weblinks():
        print(f"{WEBLINK} xml: {wl.xml_name} title: {wl.title} url: {wl.url.href}")


def print_assignments(cc: Cartridge, markdown: bool = False) -> None:
    for a in cc.assignments():
        points = "" if a.points_possible is None else f" points: {a.points_possible:g}"
        print(f"{ASSIGNMENT} xml: {a.xml_name} title: {a.title}{points}")
        if markdown:
            _print_markdown(a)


def print_topics(cc: Cartridge, markdown: bool = False) -> None:
    for t in cc.topics():
        print(f"{TOPIC} xml: {t.xml_name} title: {t.title} attachments: {len(t.attachments)}")
        if markdown:
            _print_markdown(t)


def print_quizzes(cc: Cartridge) -> None:
    for q in cc.quizzes():
        print(f"{QUIZ} xml: {q.xml_name} title: {q.title} items: {len(q.questions())}")


def print_ltis(cc: Cartridge) -> None:
    for lti in cc.external_tool_links():
        url = lti.secure_launch_url or lti.launch_url
        print(f"{LTI} xml: {lti.xml_name} title: {lti.title} description: {lti.description} url: {url}")


def extract_file(cc: Cartridge, identifier: str, output_dir: Path) -> Path:
    """Copy a resource's first file into output_dir; returns the written path."""
    name = posixpath.basename(cc.file_path(identifier))
    output_dir.mkdir(parents=True, exist_ok=True)
    dst = output_dir / name

    with cc.find_file(identifier) as src, open(dst, "wb") as out:
        shutil.copyfileobj(src, out)

    return dst


# ============================================================================
# Main
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cosyl",
        description="Inspect an IMS Common Cartridge (.imscc file or extracted folder)"
    )
    parser.add_argument("cartridge", type=Path, help="Path to the cartridge")
    parser.add_argument("-d", "--debug", action="store_true", help="Debug output")
    parser.add_argument("-m", "--metadata", action="store_true", help="Show metadata as JSON")
    parser.add_argument("-j", "--json", action="store_true", help="Dump the manifest as JSON")
    parser.add_argument("--yaml", action="store_true", help="Dump the manifest as YAML")
    parser.add_argument("-I", "--items", action="store_true",
                        help="List all items with their associated resources")
    parser.add_argument("-r", "--resources", action="store_true", help="List all resources")
    parser.add_argument("--weblinks", action="store_true", help="List all web links")
    parser.add_argument("--assignments", action="store_true", help="List all assignments")
    parser.add_argument("--topics", action="store_true", help="List all discussion topics")
    parser.add_argument("--qtis", action="store_true", help="List all quizzes and question banks")
    parser.add_argument("--ltis", action="store_true", help="List all Basic LTI links")
    parser.add_argument("-f", "--find", metavar="ID", help="Resolve the resource with this identifier")
    parser.add_argument("-F", "--file", metavar="ID",
                        help="Extract the first file of the resource with this identifier")
    parser.add_argument("--output", "-o", type=Path, default=Path("."),
                        help="Directory for -F (default: current directory)")
    parser.add_argument("--markdown", action="store_true",
                        help="Render topic and assignment text as markdown")
    parser.add_argument("--strict", action="store_true",
                        help="Fail on item tree errors instead of skipping the subtree")
    parser.add_argument("--config", type=Path, help="YAML settings file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.debug:
        print(f"[cosyl] {INFO} cosyl v{VERSION}")

    try:
        settings = load_settings(args.config)
        if args.strict:
            settings = dataclasses.replace(settings, strict_traversal=True)

        with load(args.cartridge, settings) as cc:
            if args.debug:
                print(f"[cosyl] {SUCCESS} Loaded cartridge: {cc.title() or args.cartridge}")
            run(cc, args)

    except (CartridgeError, OSError) as e:
        print(f"[cosyl:error] {ERROR} {e}", file=sys.stderr)
        return 1

    return 0


def run(cc: Cartridge, args: argparse.Namespace) -> None:
    """Print everything the flags ask for."""
    if args.metadata:
        print(cc.metadata_json())

    if args.items:
        print(_dump(cc.items()))

    if args.resources:
        print_resources(cc)

    if args.weblinks:
        print_weblinks(cc)

    if args.assignments:
        print_assignments(cc, markdown=args.markdown)

    if args.topics:
        print_topics(cc, markdown=args.markdown)

    if args.qtis:
        print_quizzes(cc)

    if args.ltis:
        print_ltis(cc)

    if args.json:
        print(cc.to_json())

    if args.yaml:
        print(cc.to_yaml(), end="")

    if args.find:
        found = cc.find(args.find)
        if args.markdown and isinstance(found, (Topic, Assignment)):
            print(f"# {found.title}\n")
            _print_markdown(found)
        else:
            print(_dump(found))

    if args.file:
        dst = extract_file(cc, args.file, args.output)
        print(f"found: {dst.name}")
        if args.debug:
            print(f"[cosyl] {SUCCESS} Wrote {dst}")


if __name__ == "__main__":
    sys.exit(main())
