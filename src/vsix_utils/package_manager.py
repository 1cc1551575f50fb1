# SPDX-License-Identifier: MIT
"""Package manager detection.

Detection looks for the nearest enclosing signature: starting at the given
directory and walking towards the filesystem root (or an explicit stopping
directory), each directory is checked for lock files and then for the
``packageManager`` field of its package.json. The first match wins, so a
nested project without its own lock file resolves to its ancestor's manager.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator, Optional, Union

from .models import PackageManager

logger = logging.getLogger(__name__)

# Lock files and workspace files, checked in order within each directory
LOCKFILE_SIGNATURES: list[tuple[str, str]] = [
    ("bun.lock", "bun"),
    ("bun.lockb", "bun"),
    ("deno.lock", "deno"),
    ("pnpm-lock.yaml", "pnpm"),
    ("pnpm-workspace.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
    ("npm-shrinkwrap.json", "npm"),
]

# Managers that can be detected but whose dependency trees are not supported
UNSUPPORTED_PACKAGE_MANAGERS = frozenset({"bun", "deno"})

AUTO = "auto"


class PackageManagerError(Exception):
    """Base exception for package manager resolution."""

    pass


class UnsupportedPackageManagerError(PackageManagerError):
    """Raised when a package manager outside the supported set is requested or found."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unsupported package manager: {name}")


class PackageManagerNotDetectedError(PackageManagerError):
    """Raised when no package manager signature exists at or above a directory."""

    def __init__(self, cwd: Path):
        self.cwd = cwd
        super().__init__(f"could not detect package manager in {cwd} or any parent directory")


def _ancestors(start: Path, stop_dir: Optional[Path]) -> Iterator[Path]:
    """Yield start and its parents, ending at stop_dir or the filesystem root."""
    current = start
    while True:
        yield current
        if stop_dir is not None and current == stop_dir:
            return
        parent = current.parent
        if parent == current:
            return
        current = parent


def _read_package_manager_field(directory: Path) -> Optional[str]:
    """Return the manager name from a package.json ``packageManager`` field."""
    manifest_path = directory / "package.json"
    if not manifest_path.is_file():
        return None

    try:
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.debug("Ignoring unreadable %s during detection", manifest_path)
        return None

    if not isinstance(manifest, dict):
        return None

    field = manifest.get("packageManager")
    if not isinstance(field, str) or not field:
        return None

    # "pnpm@10.5.2" or "yarn@4.0.0+sha256.abc"
    return field.split("@", 1)[0].strip() or None


def _detect_in_directory(directory: Path) -> Optional[str]:
    for filename, name in LOCKFILE_SIGNATURES:
        if (directory / filename).is_file():
            return name
    return _read_package_manager_field(directory)


def detect_package_manager(
    cwd: str | Path,
    stop_dir: Optional[str | Path] = None,
) -> PackageManager:
    """Detect the package manager governing a directory.

    Args:
        cwd: Directory to start from
        stop_dir: Last directory to inspect; defaults to the filesystem root

    Returns:
        The detected PackageManager

    Raises:
        UnsupportedPackageManagerError: If the nearest signature belongs to bun or deno
        PackageManagerNotDetectedError: If no signature is found
    """
    start = Path(cwd).resolve()
    stop = Path(stop_dir).resolve() if stop_dir is not None else None

    for directory in _ancestors(start, stop):
        name = _detect_in_directory(directory)
        if name is None:
            continue

        logger.debug("Detected package manager %s in %s", name, directory)
        if name in UNSUPPORTED_PACKAGE_MANAGERS:
            raise UnsupportedPackageManagerError(name)
        try:
            return PackageManager(name)
        except ValueError:
            raise UnsupportedPackageManagerError(name) from None

    raise PackageManagerNotDetectedError(start)


def resolve_package_manager(
    value: Union[PackageManager, str, None],
    cwd: str | Path,
    stop_dir: Optional[str | Path] = None,
) -> PackageManager:
    """Turn a user-supplied package manager value into a PackageManager.

    ``None`` and ``"auto"`` trigger detection; any other value must name a
    supported manager.

    Raises:
        UnsupportedPackageManagerError: If the value names an unsupported manager
    """
    if isinstance(value, PackageManager):
        return value
    if value is None or value == AUTO:
        return detect_package_manager(cwd, stop_dir)
    try:
        return PackageManager(value)
    except ValueError:
        raise UnsupportedPackageManagerError(str(value)) from None
