# SPDX-License-Identifier: MIT
"""Writing and reading VSIX archives.

A VSIX is a ZIP archive holding extension.vsixmanifest, [Content_Types].xml
and the extension files under ``extension/``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
import zipfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional
from xml.etree.ElementTree import ParseError

from .files import expand_files
from .models import InMemoryFile, LocalFile, PackageFile
from .vsixmanifest import VSIX_MANIFEST_PATH, parse_vsix_manifest

logger = logging.getLogger(__name__)

PACKAGE_JSON_PATH = "extension/package.json"

# Earliest timestamp a ZIP entry can carry
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


class ArchiveError(Exception):
    """Raised when a VSIX archive cannot be written or read."""

    pass


@dataclass
class RawVsixPackage:
    """Contents of a VSIX archive.

    Attributes:
        files: Every entry in the archive, in archive order
        manifest: Parsed extension.vsixmanifest
        package_json: Parsed extension/package.json, if present
    """

    files: list[InMemoryFile] = field(default_factory=list)
    manifest: dict[str, Any] = field(default_factory=dict)
    package_json: Optional[dict[str, Any]] = None


def _date_time(epoch: int | float) -> tuple[int, int, int, int, int, int]:
    stamp = datetime.fromtimestamp(epoch, tz=timezone.utc)
    date_time = (stamp.year, stamp.month, stamp.day, stamp.hour, stamp.minute, stamp.second)
    return max(date_time, ZIP_EPOCH)


def _unique_entries(files: Iterable[PackageFile]) -> list[PackageFile]:
    # later entries replace earlier ones with the same archive path
    entries: dict[str, PackageFile] = {}
    for file in files:
        if file.archive_path in entries:
            logger.debug("Replacing duplicate archive entry %s", file.archive_path)
        entries[file.archive_path] = file
    return list(entries.values())


def _write_entry(
    zf: zipfile.ZipFile,
    file: PackageFile,
    date_time: Optional[tuple[int, int, int, int, int, int]],
) -> None:
    if isinstance(file, LocalFile):
        if date_time is None:
            zf.write(file.source_path, file.archive_path)
            return
        info = zipfile.ZipInfo.from_file(
            file.source_path, file.archive_path, strict_timestamps=False
        )
        info.date_time = date_time
        info.compress_type = zipfile.ZIP_DEFLATED
        zf.writestr(info, Path(file.source_path).read_bytes())
        return

    info = zipfile.ZipInfo(file.archive_path, date_time or time.localtime()[:6])
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    zf.writestr(info, file.as_bytes())


def write_vsix(
    files: list[PackageFile],
    package_path: str | Path,
    *,
    force: bool = False,
    epoch: Optional[int | float] = None,
) -> Path:
    """Write package files to a VSIX archive.

    Local entries that point at directories are expanded to every file they
    contain. The archive is written to a temporary file next to the target
    and moved into place, so a failure never leaves a partial package.

    Args:
        files: Files to archive
        package_path: Where to write the archive
        force: Overwrite an existing file at package_path
        epoch: Seconds since the Unix epoch used as every entry's timestamp;
            entries are also sorted by path for reproducible output

    Returns:
        Path to the written archive

    Raises:
        ArchiveError: If there is nothing to write, the target exists without
            force, or a local source is missing
    """
    if not package_path:
        raise ArchiveError("no package path specified")

    target = Path(package_path)
    if target.exists() and not force:
        raise ArchiveError(f"package already exists at {target}")

    if not files:
        raise ArchiveError("no files specified to package")

    try:
        entries = _unique_entries(expand_files(files))
    except FileNotFoundError as e:
        raise ArchiveError(str(e)) from e

    date_time = None
    if epoch is not None:
        date_time = _date_time(epoch)
        entries.sort(key=lambda entry: entry.archive_path)

    target.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    os.close(fd)

    try:
        with zipfile.ZipFile(
            temp_name, "w", zipfile.ZIP_DEFLATED, strict_timestamps=False
        ) as zf:
            for entry in entries:
                _write_entry(zf, entry, date_time)
        os.chmod(temp_name, 0o644)
        os.replace(temp_name, target)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise

    logger.debug("Wrote %d entries to %s", len(entries), target)
    return target


def read_vsix(package_path: str | Path) -> RawVsixPackage:
    """Read every entry of a VSIX archive.

    Args:
        package_path: Path to the archive

    Returns:
        RawVsixPackage with the entries and parsed manifests

    Raises:
        ArchiveError: If the archive is missing, corrupt, or has no
            extension.vsixmanifest
    """
    path = Path(package_path)
    if not path.is_file():
        raise ArchiveError(f"package not found: {path}")

    try:
        with zipfile.ZipFile(path, "r") as zf:
            files = [
                InMemoryFile(archive_path=info.filename, contents=zf.read(info))
                for info in zf.infolist()
                if not info.is_dir()
            ]
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"invalid VSIX archive {path}: {e}") from e

    contents = {file.archive_path: file.contents for file in files}
    if VSIX_MANIFEST_PATH not in contents:
        raise ArchiveError(f"{VSIX_MANIFEST_PATH} file is missing")

    try:
        manifest = parse_vsix_manifest(contents[VSIX_MANIFEST_PATH])
    except ParseError as e:
        raise ArchiveError(f"invalid {VSIX_MANIFEST_PATH} in {path}: {e}") from e

    package_json = None
    if PACKAGE_JSON_PATH in contents:
        try:
            package_json = json.loads(contents[PACKAGE_JSON_PATH])
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ArchiveError(f"invalid {PACKAGE_JSON_PATH} in {path}: {e}") from e

    return RawVsixPackage(files=files, manifest=manifest, package_json=package_json)
