# SPDX-License-Identifier: MIT
"""Shared data model for VSIX packaging.

Every file destined for an archive is a PackageFile: either a reference to a
path on disk (LocalFile) or content held in memory (InMemoryFile). Dependency
resolution produces DependencyRecord entries, which the file collector turns
into LocalFile entries pointing at each dependency's installed directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

# Root segment of every collected file inside the archive
EXTENSION_ROOT = "extension"


@dataclass
class LocalFile:
    """A file (or directory) on disk to be stored in the archive.

    Attributes:
        archive_path: POSIX path of the entry inside the archive
        source_path: Path on disk; directories are recursed by the writer
    """

    archive_path: str
    source_path: Path


@dataclass
class InMemoryFile:
    """A file whose contents are owned by the entry itself.

    Attributes:
        archive_path: POSIX path of the entry inside the archive
        contents: Raw bytes, or text encoded as UTF-8 when written
    """

    archive_path: str
    contents: Union[bytes, str]

    def as_bytes(self) -> bytes:
        """Return the contents as bytes."""
        if isinstance(self.contents, str):
            return self.contents.encode("utf-8")
        return self.contents


PackageFile = Union[LocalFile, InMemoryFile]


def is_local_file(file: PackageFile) -> bool:
    """Return True if the entry references a path on disk."""
    return isinstance(file, LocalFile)


def is_in_memory_file(file: PackageFile) -> bool:
    """Return True if the entry owns its contents."""
    return isinstance(file, InMemoryFile)


@dataclass(frozen=True)
class DependencyRecord:
    """A production dependency to bundle.

    Attributes:
        name: Package name as it should appear under node_modules
        version: Version or range, None when it cannot be resolved
        installed_path: Directory the dependency is installed in (dedup key)
    """

    name: str
    version: Optional[str]
    installed_path: str


class PackageManager(str, Enum):
    """Package managers whose dependency trees can be resolved."""

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"

    def __str__(self) -> str:
        return self.value


class ExtensionKind(str, Enum):
    """Runtime placement of an extension."""

    UI = "ui"
    WORKSPACE = "workspace"
    WEB = "web"

    def __str__(self) -> str:
        return self.value


# Canonical ordering used whenever a set of kinds is reported
EXTENSION_KIND_ORDER = (ExtensionKind.UI, ExtensionKind.WORKSPACE, ExtensionKind.WEB)


class AssetRole(str, Enum):
    """Well-known asset roles and their VSIX asset type identifiers."""

    MANIFEST = "Microsoft.VisualStudio.Code.Manifest"
    DETAILS = "Microsoft.VisualStudio.Services.Content.Details"
    CHANGELOG = "Microsoft.VisualStudio.Services.Content.Changelog"
    LICENSE = "Microsoft.VisualStudio.Services.Content.License"
    ICON = "Microsoft.VisualStudio.Services.Icons.Default"
    TRANSLATION = "Microsoft.VisualStudio.Code.Translation"


@dataclass(frozen=True)
class ManifestAsset:
    """An asset entry advertised in extension.vsixmanifest.

    Attributes:
        role: The asset role
        path: Archive path of the asset
        language: Language id, only set for translations
    """

    role: AssetRole
    path: str
    language: Optional[str] = None

    @property
    def asset_type(self) -> str:
        """Return the asset type string used in the package manifest."""
        if self.role is AssetRole.TRANSLATION and self.language:
            return f"{self.role.value}.{self.language.upper()}"
        return self.role.value
