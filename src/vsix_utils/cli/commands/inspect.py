# SPDX-License-Identifier: MIT
"""Inspect an existing VSIX archive."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from ...archive import ArchiveError, read_vsix
from ..main import echo_error, echo_info, pass_context, Context


def _identity(manifest: dict[str, Any]) -> dict[str, str]:
    package_manifest = manifest.get("PackageManifest", {})
    metadata = package_manifest.get("Metadata", {}) if isinstance(package_manifest, dict) else {}
    identity = metadata.get("Identity", {}) if isinstance(metadata, dict) else {}
    return identity if isinstance(identity, dict) else {}


@click.command()
@click.argument(
    "package",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--files/--no-files",
    "show_files",
    default=True,
    help="List archive entries.",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the parsed extension.vsixmanifest as JSON.",
)
@pass_context
def inspect(ctx: Context, package: Path, show_files: bool, as_json: bool) -> None:
    """Show the identity and contents of a .vsix file.

    \b
    Examples:
        vsix inspect my-ext-1.0.0.vsix            # Identity and entries
        vsix inspect my-ext-1.0.0.vsix --json     # Parsed manifest
    """
    try:
        raw = read_vsix(package)
    except ArchiveError as e:
        echo_error(str(e))
        raise SystemExit(1)

    if as_json:
        echo_info(json.dumps(raw.manifest, indent=2))
        return

    identity = _identity(raw.manifest)
    echo_info(f"Package: {package}")
    echo_info(f"  Id: {identity.get('@Publisher', '?')}.{identity.get('@Id', '?')}")
    echo_info(f"  Version: {identity.get('@Version', '?')}")
    if raw.package_json is not None:
        display_name = raw.package_json.get("displayName")
        if display_name:
            echo_info(f"  Display name: {display_name}")
    echo_info(f"  Entries: {len(raw.files)}")

    if show_files:
        for file in raw.files:
            size = len(file.contents)
            echo_info(f"    {file.archive_path} ({size:,} bytes)")
