# SPDX-License-Identifier: MIT
"""[Content_Types].xml generation for VSIX packages."""

from __future__ import annotations

import mimetypes
import posixpath
from dataclasses import dataclass, field
from typing import Iterable
from xml.etree import ElementTree as ET

from .models import PackageFile

CONTENT_TYPES_PATH = "[Content_Types].xml"
CONTENT_TYPES_NAMESPACE = "http://schemas.openxmlformats.org/package/2006/content-types"

# Checked before the mimetypes registry
DEFAULT_CONTENT_TYPES = {
    ".txt": "text/plain",
    ".json": "application/json",
    ".vsixmanifest": "text/xml",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".cjs": "application/javascript",
    ".jsx": "text/jsx",
    ".ts": "video/mp2t",
    ".mts": "video/mp2t",
    ".cts": "application/typescript",
    ".tsx": "application/typescript",
    ".map": "application/json",
    ".md": "text/markdown",
    ".yml": "text/yaml",
    ".yaml": "text/yaml",
    ".toml": "application/toml",
    ".jade": "text/jade",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",
    ".wasm": "application/wasm",
    ".node": "application/octet-stream",
    ".lock": "text/plain",
    ".snap": "text/plain",
}

# Built-in table only, so results do not depend on the host's mime.types
_MIME_TYPES = mimetypes.MimeTypes()


class ContentTypeError(Exception):
    """Raised when a file extension has no known content type."""

    pass


@dataclass
class ContentTypes:
    """Content types for a set of package files.

    Attributes:
        content_types: Mapping of extension (with leading dot) to MIME type
        xml: The [Content_Types].xml document
    """

    content_types: dict[str, str] = field(default_factory=dict)
    xml: str = ""


def _lookup(extension: str) -> str | None:
    if extension in DEFAULT_CONTENT_TYPES:
        return DEFAULT_CONTENT_TYPES[extension]
    mime, _ = _MIME_TYPES.guess_type(f"file{extension}", strict=False)
    return mime


def build_content_types_xml(content_types: dict[str, str]) -> str:
    """Render the [Content_Types].xml document."""
    root = ET.Element("Types", attrib={"xmlns": CONTENT_TYPES_NAMESPACE})
    for extension, content_type in content_types.items():
        ET.SubElement(root, "Default", attrib={"Extension": extension, "ContentType": content_type})
    return ET.tostring(root, encoding="utf-8", xml_declaration=True).decode("utf-8")


def get_content_types_for_files(files: Iterable[PackageFile]) -> ContentTypes:
    """Map every file extension in a package to its content type.

    Files without an extension are skipped.

    Args:
        files: Package files, keyed by their archive paths

    Returns:
        ContentTypes with the mapping and its XML rendering

    Raises:
        ContentTypeError: If an extension cannot be resolved
    """
    content_types: dict[str, str] = {}
    for file in files:
        _, extension = posixpath.splitext(posixpath.basename(file.archive_path))
        extension = extension.lower()
        if not extension or extension in content_types:
            continue

        content_type = _lookup(extension)
        if content_type is None:
            raise ContentTypeError(f"could not determine content type for file: {file.archive_path}")
        content_types[extension] = content_type

    return ContentTypes(content_types=content_types, xml=build_content_types_xml(content_types))
