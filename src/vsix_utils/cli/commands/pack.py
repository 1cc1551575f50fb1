# SPDX-License-Identifier: MIT
"""Package an extension into a VSIX archive."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ...archive import ArchiveError
from ...assets import AssetError
from ...content_types import ContentTypeError
from ...dependencies import DependencyResolverError
from ...markdown import MarkdownError
from ...pack import PackError, pack_extension
from ...package_manager import PackageManagerError
from ...scripts import ScriptError
from ...validation import ManifestValidationError
from ..config import ConfigError
from ..main import echo_error, echo_info, echo_success, pass_context, Context

# Errors the packaging pipeline reports to the user
PACKAGING_ERRORS = (
    ArchiveError,
    AssetError,
    ContentTypeError,
    DependencyResolverError,
    MarkdownError,
    PackError,
    PackageManagerError,
    ScriptError,
)


@click.command()
@click.option(
    "--out",
    "-o",
    type=click.Path(path_type=Path),
    help="Output .vsix file or directory.",
)
@click.option("--readme", help="README file name (default: README.md).")
@click.option("--ignore-file", help="Ignore file read alongside .gitignore (default: .vscodeignore).")
@click.option(
    "--package-manager",
    help="Package manager to use: npm, yarn, pnpm or auto.",
)
@click.option(
    "--dependencies/--no-dependencies",
    default=None,
    help="Bundle production dependencies.",
)
@click.option(
    "--pre-release",
    is_flag=True,
    help="Mark the package as a pre-release.",
)
@click.option(
    "--scripts/--no-scripts",
    "run_scripts",
    default=None,
    help="Run vscode:prepublish scripts.",
)
@click.option(
    "--rewrite/--no-rewrite",
    "rewrite_markdown",
    default=None,
    help="Rewrite relative links in README and CHANGELOG.",
)
@click.option("--base-content-url", help="Prefix for relative links.")
@click.option("--base-images-url", help="Prefix for relative images.")
@click.option("--branch", help="Branch used for inferred link prefixes.")
@click.option(
    "--epoch",
    type=int,
    envvar="SOURCE_DATE_EPOCH",
    help="Fixed timestamp (seconds) for every entry, for reproducible archives.",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite an existing package.",
)
@pass_context
def pack(
    ctx: Context,
    out: Optional[Path],
    readme: Optional[str],
    ignore_file: Optional[str],
    package_manager: Optional[str],
    dependencies: Optional[bool],
    pre_release: bool,
    run_scripts: Optional[bool],
    rewrite_markdown: Optional[bool],
    base_content_url: Optional[str],
    base_images_url: Optional[str],
    branch: Optional[str],
    epoch: Optional[int],
    force: bool,
) -> None:
    """Package the extension into a .vsix file.

    Options given on the command line override vsix.toml.

    \b
    Examples:
        vsix pack                          # Write <name>-<version>.vsix
        vsix pack -o dist/                 # Write into dist/
        vsix pack --pre-release            # Package a pre-release
        vsix pack --no-dependencies        # Skip node_modules
        vsix pack --package-manager pnpm   # Resolve dependencies with pnpm
    """
    try:
        config = ctx.load_config().with_overrides(
            out=out,
            readme=readme,
            ignore_file=ignore_file,
            package_manager=package_manager,
            dependencies=dependencies,
            pre_release=pre_release or None,
            run_scripts=run_scripts,
            rewrite_markdown=rewrite_markdown,
            base_content_url=base_content_url,
            base_images_url=base_images_url,
            branch=branch,
            epoch=epoch,
        )
    except ConfigError as e:
        echo_error(str(e))
        raise SystemExit(1)

    options = config.to_options()
    options.force = force

    echo_info(f"Packaging: {options.cwd}")

    try:
        result = pack_extension(options)
    except ManifestValidationError as e:
        echo_error(f"Invalid package.json ({len(e.errors)} problem(s)):")
        for error in e.errors:
            echo_error(f"  - {error.message}")
        raise SystemExit(1)
    except PACKAGING_ERRORS as e:
        echo_error(str(e))
        raise SystemExit(1)

    if ctx.verbose:
        echo_info(f"  Extension kinds: {', '.join(str(kind) for kind in result.extension_kinds)}")
        if result.package_manager is not None:
            echo_info(f"  Package manager: {result.package_manager}")
        for asset in result.assets:
            echo_info(f"  Asset: {asset.asset_type} -> {asset.path}")

    echo_info(f"  Files included: {len(result.files)}")
    if result.dependencies:
        echo_info(f"  Dependencies bundled: {len(result.dependencies)}")
    echo_success(f"Packaged: {result.path} ({result.size:,} bytes)")
