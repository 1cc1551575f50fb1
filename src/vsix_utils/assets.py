# SPDX-License-Identifier: MIT
"""Asset location for VSIX packages.

Scans the collected package files for the files advertised as assets in
extension.vsixmanifest: the manifest itself, the readme (details), the
changelog, the license, the icon and any translations.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Any, Iterable, Mapping, Optional, Sequence

from .models import (
    EXTENSION_ROOT,
    AssetRole,
    ManifestAsset,
    PackageFile,
)

logger = logging.getLogger(__name__)

LICENSE_CANDIDATES = [
    "LICENSE",
    "LICENSE.md",
    "LICENSE.txt",
    "LICENCE",
    "LICENCE.md",
    "LICENCE.txt",
]
CHANGELOG_CANDIDATES = ["CHANGELOG.md"]
README_CANDIDATES = ["README.md"]

# Suffix given to a license file found without an extension
LICENSE_RENAME_SUFFIX = ".md"

SEE_LICENSE_PREFIX = "SEE LICENSE IN "


class AssetError(Exception):
    """Raised when an asset declared by the manifest is missing from the package."""

    pass


def to_archive_path(relative_path: str) -> str:
    """Map a manifest-relative path to its archive path under ``extension/``."""
    cleaned = relative_path.replace("\\", "/").lstrip("/")
    return posixpath.normpath(posixpath.join(EXTENSION_ROOT, cleaned))


class _FileIndex:
    """Case-insensitive lookup of package files by archive path."""

    def __init__(self, files: Iterable[PackageFile]):
        self._files: dict[str, PackageFile] = {}
        for file in files:
            # last entry wins, like the archive writer
            self._files[file.archive_path.lower()] = file

    def find(self, candidates: Sequence[str]) -> Optional[PackageFile]:
        for candidate in candidates:
            file = self._files.get(to_archive_path(candidate).lower())
            if file is not None:
                return file
        return None


def _license_candidates(manifest: Mapping[str, Any]) -> list[str]:
    license_field = manifest.get("license")
    if isinstance(license_field, str) and license_field.upper().startswith(SEE_LICENSE_PREFIX):
        hinted = license_field[len(SEE_LICENSE_PREFIX) :].strip()
        if hinted:
            return [hinted]
    return LICENSE_CANDIDATES


def _locate_license(index: _FileIndex, manifest: Mapping[str, Any]) -> Optional[ManifestAsset]:
    file = index.find(_license_candidates(manifest))
    if file is None:
        return None

    _, extension = posixpath.splitext(posixpath.basename(file.archive_path))
    if not extension:
        renamed = file.archive_path + LICENSE_RENAME_SUFFIX
        logger.debug("Renaming license %s to %s", file.archive_path, renamed)
        file.archive_path = renamed

    return ManifestAsset(role=AssetRole.LICENSE, path=file.archive_path)


def _locate_icon(index: _FileIndex, manifest: Mapping[str, Any]) -> Optional[ManifestAsset]:
    icon = manifest.get("icon")
    if not icon:
        return None

    file = index.find([icon])
    if file is None:
        raise AssetError(
            f"The specified icon '{to_archive_path(icon)}' wasn't found in the extension."
        )
    return ManifestAsset(role=AssetRole.ICON, path=file.archive_path)


def _locate_translations(
    index: _FileIndex,
    manifest: Mapping[str, Any],
) -> list[ManifestAsset]:
    contributes = manifest.get("contributes")
    if not isinstance(contributes, Mapping):
        return []

    extension_id = f"{manifest.get('publisher', '')}.{manifest.get('name', '')}".lower()
    assets: list[ManifestAsset] = []
    seen_languages: set[str] = set()

    for localization in contributes.get("localizations") or []:
        language = localization.get("languageId") if isinstance(localization, Mapping) else None
        if not language or language.lower() in seen_languages:
            continue

        for translation in localization.get("translations") or []:
            if not isinstance(translation, Mapping):
                continue
            translation_id = str(translation.get("id", "")).lower()
            if translation_id not in ("vscode", extension_id):
                continue

            file = index.find([translation.get("path", "")])
            if file is None:
                logger.warning(
                    "Translation %s for %s not found in package",
                    translation.get("path"),
                    language,
                )
                continue

            assets.append(
                ManifestAsset(role=AssetRole.TRANSLATION, path=file.archive_path, language=language)
            )
            seen_languages.add(language.lower())
            break

    return assets


def locate_assets(
    files: list[PackageFile],
    manifest: Mapping[str, Any],
    *,
    readme: Optional[str] = None,
) -> list[ManifestAsset]:
    """Find the assets advertised for a package.

    The first candidate found wins for each role. A license without an
    extension is renamed in place: the matching entry of ``files`` gets a
    ``.md`` suffix, so the caller's list reflects the archived name.

    Args:
        files: Collected package files (mutated when the license is renamed)
        manifest: Extension manifest
        readme: README file name override

    Returns:
        The located assets, at most one per role (one per language for translations)

    Raises:
        AssetError: If the manifest declares an icon that is not packaged
    """
    index = _FileIndex(files)
    assets: list[ManifestAsset] = []

    manifest_file = index.find(["package.json"])
    if manifest_file is not None:
        assets.append(ManifestAsset(role=AssetRole.MANIFEST, path=manifest_file.archive_path))

    readme_candidates = ([readme] if readme else []) + README_CANDIDATES
    details = index.find(readme_candidates)
    if details is not None:
        assets.append(ManifestAsset(role=AssetRole.DETAILS, path=details.archive_path))

    changelog = index.find(CHANGELOG_CANDIDATES)
    if changelog is not None:
        assets.append(ManifestAsset(role=AssetRole.CHANGELOG, path=changelog.archive_path))

    license_asset = _locate_license(index, manifest)
    if license_asset is not None:
        assets.append(license_asset)

    icon = _locate_icon(index, manifest)
    if icon is not None:
        assets.append(icon)

    assets.extend(_locate_translations(index, manifest))
    return assets


def find_asset(assets: Iterable[ManifestAsset], role: AssetRole) -> Optional[ManifestAsset]:
    """Return the first asset with the given role."""
    for asset in assets:
        if asset.role is role:
            return asset
    return None
