# SPDX-License-Identifier: MIT
"""Reading the extension manifest (package.json)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"


class ManifestError(Exception):
    """Raised when the project manifest is missing or unreadable."""

    pass


@dataclass
class ProjectManifest:
    """A manifest together with the file it was read from.

    Attributes:
        file_name: Path to package.json
        manifest: Parsed manifest contents
    """

    file_name: Path
    manifest: dict[str, Any]


def load_project_manifest(project_dir: str | Path) -> ProjectManifest:
    """Read package.json from a project directory.

    Args:
        project_dir: Directory containing package.json

    Returns:
        ProjectManifest with the parsed contents

    Raises:
        ManifestError: If the file is missing, not valid JSON, or not an object
    """
    path = Path(project_dir) / MANIFEST_FILENAME
    if not path.is_file():
        raise ManifestError(f"package.json not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            manifest = json.load(f)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON syntax in {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ManifestError(f"Could not decode {path}: {e}") from e

    if not isinstance(manifest, dict):
        raise ManifestError(f"Expected a JSON object in {path}")

    return ProjectManifest(file_name=path, manifest=manifest)


def read_project_manifest(project_dir: str | Path) -> Optional[ProjectManifest]:
    """Read package.json, returning None when it is missing or malformed."""
    try:
        return load_project_manifest(project_dir)
    except ManifestError as e:
        logger.debug("Could not read project manifest: %s", e)
        return None
