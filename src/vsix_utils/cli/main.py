# SPDX-License-Identifier: MIT
"""CLI entry point for vsix command."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .config import ConfigError, PackConfig, load_config


class Context:
    """CLI context object passed to commands."""

    def __init__(self) -> None:
        self.config: Optional[PackConfig] = None
        self.verbose: bool = False
        self.project_dir: Optional[Path] = None

    def load_config(self) -> PackConfig:
        """Load configuration, caching the result."""
        if self.config is None:
            self.config = load_config(self.project_dir)
        return self.config


pass_context = click.make_pass_decorator(Context, ensure=True)


def echo_error(message: str) -> None:
    """Print an error message to stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def echo_success(message: str) -> None:
    """Print a success message."""
    click.secho(message, fg="green")


def echo_info(message: str) -> None:
    """Print an info message."""
    click.echo(message)


def echo_warning(message: str) -> None:
    """Print a warning message."""
    click.secho(f"Warning: {message}", fg="yellow", err=True)


def configure_logging(verbose: bool) -> None:
    """Send library log records to stderr, debug records only when verbose."""
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", level=logging.WARNING)
    logging.getLogger("vsix_utils").setLevel(logging.DEBUG if verbose else logging.WARNING)


@click.group()
@click.version_option(package_name="vsix-utils")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "-C",
    "--directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Change to directory before running command.",
)
@pass_context
def cli(ctx: Context, verbose: bool, directory: Optional[Path]) -> None:
    """VS Code extension packaging tool.

    Package, list, validate, and inspect VSIX extension packages.

    \b
    Examples:
        vsix pack
        vsix pack --pre-release --no-dependencies
        vsix ls
        vsix validate
        vsix inspect my-extension-1.0.0.vsix
    """
    ctx.verbose = verbose
    ctx.project_dir = directory
    configure_logging(verbose)


# Import and register commands
from .commands import pack, ls, validate, inspect

cli.add_command(pack.pack)
cli.add_command(ls.ls)
cli.add_command(validate.validate)
cli.add_command(inspect.inspect)


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except (ConfigError, FileNotFoundError) as e:
        echo_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
