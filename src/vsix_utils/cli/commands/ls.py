# SPDX-License-Identifier: MIT
"""List the files a package would contain."""

from __future__ import annotations

from typing import Optional

import click

from ...pack import list_files
from ..config import ConfigError
from ..main import echo_error, echo_info, pass_context, Context
from .pack import PACKAGING_ERRORS


@click.command()
@click.option("--readme", help="README file name (default: README.md).")
@click.option("--ignore-file", help="Ignore file read alongside .gitignore (default: .vscodeignore).")
@click.option(
    "--package-manager",
    help="Package manager to use: npm, yarn, pnpm or auto.",
)
@click.option(
    "--dependencies/--no-dependencies",
    default=None,
    help="Include production dependencies.",
)
@click.option(
    "--relative",
    is_flag=True,
    help="Print paths relative to the extension root.",
)
@pass_context
def ls(
    ctx: Context,
    readme: Optional[str],
    ignore_file: Optional[str],
    package_manager: Optional[str],
    dependencies: Optional[bool],
    relative: bool,
) -> None:
    """List the files that would be packaged.

    \b
    Examples:
        vsix ls                     # Archive paths, dependencies included
        vsix ls --no-dependencies   # Skip node_modules
    """
    try:
        config = ctx.load_config().with_overrides(
            readme=readme,
            ignore_file=ignore_file,
            package_manager=package_manager,
            dependencies=dependencies,
        )
    except ConfigError as e:
        echo_error(str(e))
        raise SystemExit(1)

    try:
        paths = list_files(config.to_options())
    except PACKAGING_ERRORS as e:
        echo_error(str(e))
        raise SystemExit(1)

    prefix = "extension/"
    for path in paths:
        echo_info(path[len(prefix) :] if relative and path.startswith(prefix) else path)
