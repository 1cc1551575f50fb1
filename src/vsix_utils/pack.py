# SPDX-License-Identifier: MIT
"""Packaging pipeline.

Turns an extension project into a VSIX archive. Stages run strictly in
order and the archive is only written once every earlier stage succeeded:

1. read and validate package.json
2. run pre-publish scripts
3. resolve production dependencies
4. collect files through the ignore rules
5. rewrite relative links in README and CHANGELOG
6. locate assets and classify extension kinds
7. generate extension.vsixmanifest and [Content_Types].xml
8. write the archive
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from .archive import write_vsix
from .assets import CHANGELOG_CANDIDATES, find_asset, locate_assets
from .content_types import CONTENT_TYPES_PATH, get_content_types_for_files
from .dependencies import CommandRunner, get_extension_dependencies
from .extension_kind import get_extension_kinds
from .files import DEFAULT_README, collect_files, expand_files
from .ignore import DEFAULT_IGNORE_FILE
from .manifest import read_project_manifest
from .markdown import DEFAULT_BRANCH, transform_markdown
from .models import (
    AssetRole,
    DependencyRecord,
    ExtensionKind,
    InMemoryFile,
    LocalFile,
    ManifestAsset,
    PackageFile,
    PackageManager,
)
from .package_manager import AUTO, PackageManagerNotDetectedError, resolve_package_manager
from .scripts import prepublish, prepublish_scripts
from .validation import ManifestValidationError, validate_project_manifest
from .vsixmanifest import VSIX_MANIFEST_PATH, create_vsix_manifest

logger = logging.getLogger(__name__)

VSIX_SUFFIX = ".vsix"


class PackError(Exception):
    """Raised when a project cannot be packaged."""

    pass


@dataclass
class PackOptions:
    """Options controlling how an extension is packaged.

    Attributes:
        cwd: Extension project directory
        out: Output file or directory (defaults to ``<name>-<version>.vsix`` in cwd)
        readme: README file name
        ignore_file: Ignore file read alongside .gitignore
        package_manager: "npm", "yarn", "pnpm" or "auto"
        dependencies: Bundle production dependencies under node_modules
        pre_release: Package as a pre-release
        run_scripts: Run the vscode:prepublish scripts
        rewrite_markdown: Rewrite relative links in README and CHANGELOG
        base_content_url: Prefix for relative links
        base_images_url: Prefix for relative images
        branch: Branch used for inferred link prefixes
        epoch: Fixed entry timestamp, for reproducible archives
        force: Overwrite an existing package
        stop_dir: Last directory inspected when detecting the package manager
        runner: Command runner used for dependency listing
    """

    cwd: Path = field(default_factory=Path.cwd)
    out: Optional[Path] = None
    readme: str = DEFAULT_README
    ignore_file: Optional[str] = DEFAULT_IGNORE_FILE
    package_manager: Union[PackageManager, str] = AUTO
    dependencies: bool = True
    pre_release: bool = False
    run_scripts: bool = True
    rewrite_markdown: bool = True
    base_content_url: Optional[str] = None
    base_images_url: Optional[str] = None
    branch: str = DEFAULT_BRANCH
    epoch: Optional[int] = None
    force: bool = False
    stop_dir: Optional[Path] = None
    runner: Optional[CommandRunner] = None

    def __post_init__(self) -> None:
        self.cwd = Path(self.cwd)
        if self.out is not None:
            self.out = Path(self.out)


@dataclass
class PackResult:
    """Result of packaging an extension.

    Attributes:
        path: Path to the written .vsix file
        manifest: The extension manifest
        files: Every file written, after directory expansion
        assets: Assets advertised in extension.vsixmanifest
        extension_kinds: Classified extension kinds
        dependencies: Bundled production dependencies
        package_manager: Package manager used, if any was needed
        size: Archive size in bytes
    """

    path: Path
    manifest: dict[str, Any]
    files: list[PackageFile]
    assets: list[ManifestAsset]
    extension_kinds: list[ExtensionKind]
    dependencies: list[DependencyRecord] = field(default_factory=list)
    package_manager: Optional[PackageManager] = None
    size: int = 0


def default_package_name(manifest: dict[str, Any]) -> str:
    """Return the default archive name for a manifest."""
    return f"{manifest.get('name')}-{manifest.get('version')}{VSIX_SUFFIX}"


def resolve_output_path(options: PackOptions, manifest: dict[str, Any]) -> Path:
    """Decide where the archive is written."""
    filename = default_package_name(manifest)
    if options.out is None:
        return options.cwd / filename

    out = options.out if options.out.is_absolute() else options.cwd / options.out
    if out.is_dir() or out.suffix.lower() != VSIX_SUFFIX:
        return out / filename
    return out


def _load_manifest(cwd: Path) -> dict[str, Any]:
    project = read_project_manifest(cwd)
    if project is None:
        raise PackError(f"Could not read package.json in {cwd}")
    return project.manifest


def _validate(manifest: dict[str, Any]) -> None:
    errors = validate_project_manifest(manifest)
    if errors:
        raise ManifestValidationError(errors)


def _package_manager(options: PackOptions) -> PackageManager:
    return resolve_package_manager(options.package_manager, options.cwd, options.stop_dir)


def _run_prepublish(options: PackOptions, manifest: dict[str, Any]) -> None:
    if not prepublish_scripts(manifest, options.pre_release):
        return
    try:
        package_manager = _package_manager(options)
    except PackageManagerNotDetectedError:
        logger.debug("No package manager detected, running scripts with npm")
        package_manager = PackageManager.NPM
    prepublish(options.cwd, package_manager, manifest, options.pre_release)


def _resolve_dependencies(
    options: PackOptions,
    manifest: dict[str, Any],
) -> tuple[list[DependencyRecord], Optional[PackageManager]]:
    if not options.dependencies:
        return [], None
    resolution = get_extension_dependencies(
        manifest,
        package_manager=_package_manager(options),
        cwd=options.cwd,
        runner=options.runner,
    )
    return resolution.dependencies, resolution.package_manager


def _collect(
    options: PackOptions,
    manifest: dict[str, Any],
) -> tuple[list[PackageFile], list[DependencyRecord], Optional[PackageManager]]:
    dependencies, package_manager = _resolve_dependencies(options, manifest)
    files = collect_files(
        options.cwd,
        ignore_file=options.ignore_file,
        readme=options.readme,
        dependencies=dependencies,
    )
    return files, dependencies, package_manager


def _rewrite_markdown(
    files: list[PackageFile],
    options: PackOptions,
    manifest: dict[str, Any],
) -> None:
    """Replace README and CHANGELOG entries with rewritten in-memory copies."""
    targets = {
        f"extension/{name}".lower() for name in [options.readme, *CHANGELOG_CANDIDATES]
    }
    for index, file in enumerate(files):
        if not isinstance(file, LocalFile) or file.archive_path.lower() not in targets:
            continue
        content = Path(file.source_path).read_text(encoding="utf-8")
        rewritten = transform_markdown(
            manifest,
            content,
            base_content_url=options.base_content_url,
            base_images_url=options.base_images_url,
            branch=options.branch,
        )
        files[index] = InMemoryFile(archive_path=file.archive_path, contents=rewritten)


def list_files(options: PackOptions) -> list[str]:
    """List the archive paths of the files a package would contain.

    Dependency folders are expanded. Nothing is written and no scripts run.

    Raises:
        PackError: If package.json cannot be read
    """
    manifest = _load_manifest(options.cwd)
    files, _, _ = _collect(options, manifest)
    return sorted(file.archive_path for file in expand_files(files))


def pack_extension(options: PackOptions) -> PackResult:
    """Package an extension project into a VSIX archive.

    Args:
        options: Packaging options

    Returns:
        PackResult describing the written archive

    Raises:
        PackError: If package.json cannot be read or no files are collected
        ManifestValidationError: If the manifest fails validation
        ScriptError: If a pre-publish script fails
        PackageManagerError: If the package manager is unsupported or not found
        DependencyResolverError: If dependencies cannot be listed
        MarkdownError: If relative links cannot be rewritten
        AssetError: If the declared icon is not packaged
        ContentTypeError: If a file has no known content type
        ArchiveError: If the archive cannot be written
    """
    manifest = _load_manifest(options.cwd)
    _validate(manifest)

    if options.run_scripts:
        _run_prepublish(options, manifest)

    files, dependencies, package_manager = _collect(options, manifest)
    if not files:
        raise PackError(f"No files to package in {options.cwd}")

    if options.rewrite_markdown:
        _rewrite_markdown(files, options, manifest)

    assets = locate_assets(files, manifest, readme=options.readme)
    extension_kinds = get_extension_kinds(manifest)

    if find_asset(assets, AssetRole.LICENSE) is None:
        logger.warning("No LICENSE file found in %s", options.cwd)

    vsix_manifest = InMemoryFile(
        archive_path=VSIX_MANIFEST_PATH,
        contents=create_vsix_manifest(
            manifest,
            assets,
            pre_release=options.pre_release,
            extension_kinds=extension_kinds,
        ),
    )
    expanded = expand_files(files)
    content_types = get_content_types_for_files([vsix_manifest, *expanded])

    entries: list[PackageFile] = [
        vsix_manifest,
        InMemoryFile(archive_path=CONTENT_TYPES_PATH, contents=content_types.xml),
        *expanded,
    ]

    output = resolve_output_path(options, manifest)
    path = write_vsix(entries, output, force=options.force, epoch=options.epoch)
    logger.info("Packaged %s (%d files)", path, len(entries))

    return PackResult(
        path=path,
        manifest=manifest,
        files=entries,
        assets=assets,
        extension_kinds=extension_kinds,
        dependencies=dependencies,
        package_manager=package_manager,
        size=path.stat().st_size,
    )
