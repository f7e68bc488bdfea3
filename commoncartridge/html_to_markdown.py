"""
html_to_markdown.py

Render the HTML bodies found in cartridge documents (topic text,
assignment instructions, QTI mattext) as markdown or plain text.

This module handles:
1. Converting HTML to markdown using html2text
2. Extracting the <body> when a full HTML document is given
3. Cleaning up html2text artifacts
4. Plain-text extraction with BeautifulSoup for one-line displays

Usage:
    from commoncartridge.html_to_markdown import convert_html_to_markdown

    markdown = convert_html_to_markdown(topic.text)
"""

from __future__ import annotations

import re

import html2text
from bs4 import BeautifulSoup

from commoncartridge.errors import HTMLConversionError


# ============================================================================
# HTML to Markdown Conversion
# ============================================================================

def configure_html2text() -> html2text.HTML2Text:
    """
    Configure html2text converter for cartridge content.

    Returns:
        Configured HTML2Text instance
    """
    h = html2text.HTML2Text()

    # Basic options
    h.body_width = 0  # Don't wrap lines
    h.unicode_snob = True  # Use unicode instead of ASCII
    h.ignore_links = False  # Keep links
    h.ignore_images = False  # Keep images
    h.ignore_emphasis = False  # Keep bold/italic

    # Formatting options
    h.inline_links = True  # Use inline [text](url) format
    h.protect_links = True  # Don't modify URLs
    h.wrap_links = False
    h.mark_code = True

    # List handling
    h.ul_item_mark = '-'
    h.emphasis_mark = '*'
    h.strong_mark = '**'

    return h


def extract_body_content(html: str) -> str:
    """
    Return the inner content of <body> for full documents, or the input
    unchanged for fragments.

    Example:
        >>> extract_body_content('<html><body><p>Hi</p></body></html>')
        '<p>Hi</p>'
    """
    if not html or not html.strip():
        return ""

    soup = BeautifulSoup(html, 'html.parser')
    body = soup.find('body')
    if body:
        return body.decode_contents()

    return html


def convert_html_to_markdown(html: str) -> str:
    """
    Convert HTML to markdown format.

    Args:
        html: HTML fragment or document

    Returns:
        Markdown formatted text

    Raises:
        HTMLConversionError: If conversion fails
    """
    if not html or not html.strip():
        return ""

    try:
        converter = configure_html2text()
        markdown = converter.handle(extract_body_content(html))
        return _cleanup_markdown(markdown)

    except Exception as e:
        raise HTMLConversionError(
            message="Failed to convert HTML to markdown",
            suggestion="Check that HTML is well-formed and contains valid content",
            context={
                "html_length": len(html),
                "html_preview": html[:200] + "..." if len(html) > 200 else html
            },
            cause=e
        )


def _cleanup_markdown(markdown: str) -> str:
    """
    Clean up markdown output from html2text.

    Removes common artifacts and normalizes formatting.
    """
    if not markdown:
        return ""

    # Normalize line endings
    markdown = markdown.replace('\r\n', '\n')

    # Remove trailing whitespace from lines
    markdown = '\n'.join(line.rstrip() for line in markdown.split('\n'))

    # Remove excessive blank lines (more than 2 consecutive)
    markdown = re.sub(r'\n{3,}', '\n\n', markdown)

    return markdown.strip()


def html_to_text(html: str) -> str:
    """Strip tags and collapse whitespace, for one-line summaries."""
    if not html or not html.strip():
        return ""
    text = BeautifulSoup(html, 'html.parser').get_text(" ")
    return " ".join(text.split())
