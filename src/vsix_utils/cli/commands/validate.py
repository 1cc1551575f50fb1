# SPDX-License-Identifier: MIT
"""Validate an extension's package.json."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ...manifest import ManifestError, load_project_manifest
from ...validation import validate_project_manifest
from ..config import ConfigError, find_project_root
from ..main import echo_error, echo_info, echo_success, echo_warning, pass_context, Context


def _check_packaging_hints(manifest: dict) -> list[str]:
    """Return non-fatal issues that still degrade the Marketplace listing."""
    warnings: list[str] = []
    if not manifest.get("repository"):
        warnings.append("No `repository` field; relative README links cannot be rewritten")
    if not manifest.get("license"):
        warnings.append("No `license` field")
    if not manifest.get("description"):
        warnings.append("No `description` field")
    return warnings


@click.command()
@click.option(
    "--manifest",
    "-m",
    "manifest_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to package.json to validate.",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Treat warnings as errors.",
)
@pass_context
def validate(ctx: Context, manifest_path: Optional[Path], strict: bool) -> None:
    """Validate package.json for packaging.

    Checks required fields, identifiers, versions, the VS Code engine range,
    activation events, badges, and the sponsor link.

    \b
    Examples:
        vsix validate                    # Validate current project
        vsix validate -m package.json    # Validate a specific file
        vsix validate --strict           # Treat warnings as errors
    """
    if manifest_path is not None:
        project_dir = manifest_path.parent
    else:
        try:
            project_dir = ctx.project_dir or find_project_root()
        except ConfigError as e:
            echo_error(str(e))
            raise SystemExit(1)

    try:
        project = load_project_manifest(project_dir)
    except ManifestError as e:
        echo_error(str(e))
        raise SystemExit(1)

    echo_info(f"Validating: {project.file_name}")

    errors = validate_project_manifest(project.manifest) or []
    warnings = _check_packaging_hints(project.manifest)

    echo_info("")

    if warnings:
        echo_warning(f"Warnings ({len(warnings)}):")
        for warning in warnings:
            echo_warning(f"  - {warning}")

    if errors:
        echo_error(f"Errors ({len(errors)}):")
        for error in errors:
            field = f"[{error.field}] " if error.field else ""
            echo_error(f"  - {error.type}: {field}{error.message}")

    if errors:
        echo_error("\nValidation failed!")
        raise SystemExit(1)

    if warnings and strict:
        echo_error("\nValidation failed (strict mode)!")
        raise SystemExit(1)

    if warnings:
        echo_success("\nValidation passed with warnings.")
    else:
        echo_success("\nValidation passed!")
