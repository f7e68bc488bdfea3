"""
errors.py

Exception hierarchy for cartridge loading and lookups.

Every error carries a human message plus optional structured details:
    suggestion  - what the caller can do about it
    context     - dict of values that help diagnose the failure
    cause       - the underlying exception, if any

Usage:
    from commoncartridge.errors import ResourceNotFoundError

    raise ResourceNotFoundError(
        message=f"No resource with identifier {identifier!r}",
        context={"identifier": identifier},
    )
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CartridgeError(Exception):
    """Base class for all commoncartridge errors."""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause is not None:
            parts.append(f"(caused by {type(self.cause).__name__}: {self.cause})")
        if self.suggestion:
            parts.append(f"- {self.suggestion}")
        return " ".join(parts)


class ArchiveError(CartridgeError):
    """The cartridge container could not be opened or read safely."""
    pass


class NotFoundError(CartridgeError):
    """Something looked up by name or identifier does not exist."""
    pass


class ManifestNotFoundError(NotFoundError):
    """No imsmanifest.xml entry in the archive."""
    pass


class ResourceNotFoundError(NotFoundError):
    """No resource with the requested identifier in the manifest."""
    pass


class ArchiveFileNotFoundError(CartridgeError):
    """A path declared by the manifest is absent from the archive.

    Kept apart from NotFoundError: the resource exists, only its file is gone.
    """
    pass


class MalformedXMLError(CartridgeError):
    """The manifest is not well-formed XML."""
    pass


class DecodeError(CartridgeError):
    """A resource file does not decode into the structure its type promises."""
    pass


class CorrelationError(CartridgeError):
    """Building the item tree failed (strict traversal only)."""
    pass


class HTMLConversionError(CartridgeError):
    """Error during HTML to Markdown conversion"""
    pass


class ConfigurationError(CartridgeError):
    """Settings file or environment overrides are invalid."""
    pass
