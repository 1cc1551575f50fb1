# SPDX-License-Identifier: MIT
"""Packaging tools for Visual Studio Code extensions.

This package collects an extension's files, resolves its production
dependencies, validates its package.json, and writes a VSIX archive with the
extension.vsixmanifest and [Content_Types].xml entries the Marketplace expects.

Example:
    >>> from vsix_utils import PackOptions, pack_extension
    >>>
    >>> result = pack_extension(PackOptions(cwd="my-extension", dependencies=False))
    >>> result.path.name
    'my-extension-1.0.0.vsix'
    >>>
    >>> from vsix_utils import read_vsix
    >>> read_vsix(result.path).package_json["name"]
    'my-extension'
"""

__version__ = "0.1.0"

from .models import (
    LocalFile,
    InMemoryFile,
    PackageFile,
    DependencyRecord,
    PackageManager,
    ExtensionKind,
    AssetRole,
    ManifestAsset,
)
from .ignore import IgnoreRules, load_ignore_rules
from .files import collect_files, expand_files
from .package_manager import (
    PackageManagerError,
    UnsupportedPackageManagerError,
    PackageManagerNotDetectedError,
    detect_package_manager,
    resolve_package_manager,
)
from .dependencies import (
    DependencyResolverError,
    DependencyResolution,
    get_extension_dependencies,
)
from .extension_kind import get_extension_kinds
from .assets import AssetError, locate_assets
from .manifest import ManifestError, ProjectManifest, load_project_manifest, read_project_manifest
from .validation import (
    ManifestValidation,
    ManifestValidationError,
    ManifestValidationType,
    TypesCompatibilityError,
    validate_project_manifest,
    validate_vscode_types_compatibility,
)
from .content_types import ContentTypeError, ContentTypes, get_content_types_for_files
from .vsixmanifest import create_vsix_manifest, parse_vsix_manifest
from .markdown import MarkdownError, infer_base_urls, transform_markdown
from .scripts import ScriptError, prepublish
from .archive import ArchiveError, RawVsixPackage, read_vsix, write_vsix
from .pack import PackError, PackOptions, PackResult, list_files, pack_extension

__all__ = [
    # File model
    "LocalFile",
    "InMemoryFile",
    "PackageFile",
    "DependencyRecord",
    "PackageManager",
    "ExtensionKind",
    "AssetRole",
    "ManifestAsset",
    # File collection
    "IgnoreRules",
    "load_ignore_rules",
    "collect_files",
    "expand_files",
    # Dependencies
    "PackageManagerError",
    "UnsupportedPackageManagerError",
    "PackageManagerNotDetectedError",
    "detect_package_manager",
    "resolve_package_manager",
    "DependencyResolverError",
    "DependencyResolution",
    "get_extension_dependencies",
    # Manifest
    "get_extension_kinds",
    "AssetError",
    "locate_assets",
    "ManifestError",
    "ProjectManifest",
    "load_project_manifest",
    "read_project_manifest",
    "ManifestValidation",
    "ManifestValidationError",
    "ManifestValidationType",
    "TypesCompatibilityError",
    "validate_project_manifest",
    "validate_vscode_types_compatibility",
    # Archive contents
    "ContentTypeError",
    "ContentTypes",
    "get_content_types_for_files",
    "create_vsix_manifest",
    "parse_vsix_manifest",
    "MarkdownError",
    "infer_base_urls",
    "transform_markdown",
    "ScriptError",
    "prepublish",
    # Archive I/O
    "ArchiveError",
    "RawVsixPackage",
    "read_vsix",
    "write_vsix",
    # Packaging
    "PackError",
    "PackOptions",
    "PackResult",
    "list_files",
    "pack_extension",
]
