"""
archive.py

Random-access views over a cartridge container.

A cartridge is normally a zip file (.imscc), but an already-extracted
cartridge folder works the same way. Both expose:
- names()       every entry name, POSIX-style, relative to the container root
- open(name)    a binary stream the caller closes
- read(name)    the whole entry as bytes

Usage:
    from commoncartridge.archive import open_archive

    with open_archive(Path("course.imscc")) as archive:
        for name in archive.names():
            ...
        data = archive.read("imsmanifest.xml")
"""

from __future__ import annotations

import posixpath
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, List, Optional
from urllib.parse import unquote

from commoncartridge.config_utils import CartridgeSettings
from commoncartridge.errors import ArchiveError, ArchiveFileNotFoundError


def is_safe_member_name(member: str) -> bool:
    """
    Validate an entry name for path traversal attempts.

    SECURITY: Keeps directory-backed cartridges from reading outside their root.

    Blocks:
        - Absolute paths (/, C:, etc.)
        - Parent directory references (..)
        - Null bytes
    """
    if not member:
        return False

    # Reject absolute paths
    if member.startswith('/') or member.startswith('\\'):
        return False

    # Reject drive letters (Windows: C:, D:, etc.)
    if len(member) >= 2 and member[1] == ':':
        return False

    # Reject parent directory references in path components
    parts = member.replace('\\', '/').split('/')
    if '..' in parts:
        return False

    if '\0' in member:
        return False

    return True


def normalize_name(name: str) -> str:
    """Normalize a manifest href into archive entry form (no ./, no backslashes)."""
    name = name.replace('\\', '/').strip()
    if not name:
        return ""
    normalized = posixpath.normpath(name)
    if normalized == ".":
        return ""
    return normalized


def format_size(size: int) -> str:
    """Human-readable entry size: bytes below 1 MB, else MB."""
    if size < 1024 * 1024:
        return f"{size} bytes"
    return f"{size / (1024*1024):.1f} MB"


class CartridgeArchive(ABC):
    """
    Abstract random-access container.

    Subclasses provide listing and opening; lookups by manifest href go
    through resolve_name() so percent-encoded or ./-prefixed hrefs still
    find their entry.
    """

    def __init__(self, path: Path, settings: Optional[CartridgeSettings] = None):
        self.path = Path(path)
        self.settings = settings or CartridgeSettings()

    @abstractmethod
    def names(self) -> List[str]:
        """List all file entries in the container."""
        pass

    @abstractmethod
    def _open_entry(self, name: str) -> IO[bytes]:
        """Open an entry known to exist."""
        pass

    @abstractmethod
    def _entry_size(self, name: str) -> int:
        """Uncompressed size of an entry known to exist."""
        pass

    def _entry_set(self):
        return set(self.names())

    def close(self) -> None:
        pass

    def __enter__(self) -> "CartridgeArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __contains__(self, name: str) -> bool:
        return self.resolve_name(name) is not None

    def resolve_name(self, name: str) -> Optional[str]:
        """
        Map a manifest href to an existing entry name.

        Tries the name as written, then normalized, then percent-decoded.

        Returns:
            The matching entry name, or None
        """
        entries = self._entry_set()
        candidates = [name, normalize_name(name), normalize_name(unquote(name))]
        for candidate in candidates:
            if candidate and candidate in entries:
                return candidate
        return None

    def open(self, name: str) -> IO[bytes]:
        """
        Open an entry as a binary stream. The caller closes it.

        Raises:
            ArchiveFileNotFoundError: If no entry matches the name
            ArchiveError: If the entry exceeds the configured size limit
        """
        entry = self._require(name)
        self._check_size(entry)
        return self._open_entry(entry)

    def read(self, name: str) -> bytes:
        """Read an entry fully. Same errors as open()."""
        with self.open(name) as stream:
            return stream.read()

    def _require(self, name: str) -> str:
        entry = self.resolve_name(name)
        if entry is None:
            raise ArchiveFileNotFoundError(
                message=f"No entry named {name!r} in {self.path}",
                suggestion="Check the href/file paths declared in imsmanifest.xml",
                context={"name": name, "archive": str(self.path)},
            )
        return entry

    def _check_size(self, entry: str) -> None:
        # SECURITY: Check individual file size
        size = self._entry_size(entry)
        if size > self.settings.max_entry_size:
            raise ArchiveError(
                message=f"Entry too large: {entry} ({format_size(size)})",
                suggestion="Raise max_entry_size if this cartridge is trusted",
                context={"name": entry, "size": size, "limit": self.settings.max_entry_size},
            )


class ZipArchive(CartridgeArchive):
    """Cartridge packaged as a zip file (.imscc)."""

    def __init__(self, path: Path, settings: Optional[CartridgeSettings] = None):
        super().__init__(path, settings)
        try:
            self._zip = zipfile.ZipFile(self.path, 'r')
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveError(
                message=f"Failed to open cartridge: {self.path}",
                suggestion="Make sure the file is a valid .imscc (zip) package",
                context={"path": str(self.path)},
                cause=e,
            )

        self._infos = {
            info.filename: info
            for info in self._zip.infolist()
            if not info.is_dir()
        }

        # SECURITY: Check number of files
        if len(self._infos) > self.settings.max_entries:
            self._zip.close()
            raise ArchiveError(
                message=f"Cartridge contains too many files: {len(self._infos)}",
                context={"path": str(self.path), "limit": self.settings.max_entries},
            )

    def names(self) -> List[str]:
        return list(self._infos)

    def _entry_set(self):
        return self._infos.keys()

    def _open_entry(self, name: str) -> IO[bytes]:
        return self._zip.open(self._infos[name], 'r')

    def _entry_size(self, name: str) -> int:
        return self._infos[name].file_size

    def close(self) -> None:
        self._zip.close()


class DirectoryArchive(CartridgeArchive):
    """Cartridge that has already been extracted to a folder."""

    def __init__(self, path: Path, settings: Optional[CartridgeSettings] = None):
        super().__init__(path, settings)
        if not self.path.is_dir():
            raise ArchiveError(
                message=f"Not a directory: {self.path}",
                context={"path": str(self.path)},
            )
        self._root = self.path.resolve()
        self._names: Optional[List[str]] = None
        self._name_set: Optional[set] = None

    def names(self) -> List[str]:
        if self._names is None:
            self._names = sorted(
                p.relative_to(self._root).as_posix()
                for p in self._root.rglob('*')
                if p.is_file()
            )
        return list(self._names)

    def _entry_set(self):
        if self._name_set is None:
            self._name_set = set(self.names())
        return self._name_set

    def resolve_name(self, name: str) -> Optional[str]:
        # SECURITY: never resolve hrefs that point outside the cartridge folder
        if not is_safe_member_name(normalize_name(unquote(name))):
            return None
        return super().resolve_name(name)

    def _entry_path(self, name: str) -> Path:
        return self._root / name

    def _open_entry(self, name: str) -> IO[bytes]:
        return open(self._entry_path(name), 'rb')

    def _entry_size(self, name: str) -> int:
        return self._entry_path(name).stat().st_size


def open_archive(path: Path, settings: Optional[CartridgeSettings] = None) -> CartridgeArchive:
    """
    Open a cartridge container, picking the implementation from the path.

    Raises:
        ArchiveError: If the path is missing or neither a folder nor a zip
    """
    if not str(path).strip():
        raise ArchiveError(message="No cartridge path given")

    path = Path(path)

    if path.is_dir():
        return DirectoryArchive(path, settings)

    if not path.is_file():
        raise ArchiveError(
            message=f"Cartridge file not found: {path}",
            context={"path": str(path)},
            cause=FileNotFoundError(str(path)),
        )

    if not zipfile.is_zipfile(path):
        raise ArchiveError(
            message=f"Not a zip package: {path}",
            suggestion="Common Cartridges are zip files, usually with an .imscc extension",
            context={"path": str(path)},
        )

    return ZipArchive(path, settings)
