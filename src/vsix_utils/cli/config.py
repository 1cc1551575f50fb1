# SPDX-License-Identifier: MIT
"""CLI configuration loading from vsix.toml."""

from __future__ import annotations

import sys
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from ..manifest import MANIFEST_FILENAME
from ..pack import PackOptions

CONFIG_FILENAME = "vsix.toml"

BOOLEAN_KEYS = ("dependencies", "pre_release", "run_scripts", "rewrite_markdown")
STRING_KEYS = (
    "readme",
    "ignore_file",
    "package_manager",
    "base_content_url",
    "base_images_url",
    "branch",
    "out",
)


class ConfigError(Exception):
    """Raised when configuration loading fails."""

    pass


@dataclass
class PackConfig:
    """Packaging defaults loaded from vsix.toml.

    Keys may live at the top level of vsix.toml or in a ``[tool.vsix]``
    table, spelled with dashes or underscores.

    Attributes:
        project_dir: Extension project directory
        readme: README file name
        ignore_file: Ignore file read alongside .gitignore
        package_manager: "npm", "yarn", "pnpm" or "auto"
        dependencies: Bundle production dependencies
        pre_release: Package as a pre-release
        run_scripts: Run the vscode:prepublish scripts
        rewrite_markdown: Rewrite relative links in README and CHANGELOG
        base_content_url: Prefix for relative links
        base_images_url: Prefix for relative images
        branch: Branch used for inferred link prefixes
        out: Output file or directory
        epoch: Fixed entry timestamp
    """

    project_dir: Path
    readme: str = "README.md"
    ignore_file: Optional[str] = ".vscodeignore"
    package_manager: str = "auto"
    dependencies: bool = True
    pre_release: bool = False
    run_scripts: bool = True
    rewrite_markdown: bool = True
    base_content_url: Optional[str] = None
    base_images_url: Optional[str] = None
    branch: str = "HEAD"
    out: Optional[Path] = None
    epoch: Optional[int] = None

    @classmethod
    def from_toml(cls, project_dir: str | Path) -> "PackConfig":
        """Load configuration from vsix.toml.

        A missing file yields the defaults.

        Args:
            project_dir: Directory containing vsix.toml

        Returns:
            PackConfig instance

        Raises:
            ConfigError: If the file is not valid TOML or has invalid values
        """
        project_path = Path(project_dir)
        config_path = project_path / CONFIG_FILENAME

        if not config_path.exists():
            return cls(project_dir=project_path)

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML syntax in {config_path}: {e}") from e

        return cls.from_dict(data, project_path)

    @classmethod
    def from_dict(cls, data: dict[str, Any], project_dir: Path) -> "PackConfig":
        """Create PackConfig from a parsed vsix.toml dictionary.

        Args:
            data: Parsed vsix.toml
            project_dir: Extension project directory

        Returns:
            PackConfig instance

        Raises:
            ConfigError: If a key is unknown or a value has the wrong type
        """
        tool = data.get("tool")
        table = tool["vsix"] if isinstance(tool, dict) and "vsix" in tool else data

        known = {f.name for f in fields(cls)} - {"project_dir"}
        values: dict[str, Any] = {}
        for raw_key, value in table.items():
            key = raw_key.replace("-", "_")
            if key not in known:
                raise ConfigError(f"Unknown configuration key: {raw_key}")
            values[key] = value

        for key in BOOLEAN_KEYS:
            if key in values and not isinstance(values[key], bool):
                raise ConfigError(f"'{key}' must be true or false")

        for key in STRING_KEYS:
            if key in values and not isinstance(values[key], str):
                raise ConfigError(f"'{key}' must be a string")

        if "epoch" in values and (
            isinstance(values["epoch"], bool) or not isinstance(values["epoch"], int)
        ):
            raise ConfigError("'epoch' must be an integer")

        if "out" in values:
            values["out"] = Path(values["out"])

        return cls(project_dir=project_dir, **values)

    def with_overrides(self, **overrides: Any) -> "PackConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})

    def to_options(self) -> PackOptions:
        """Build PackOptions from this configuration."""
        return PackOptions(
            cwd=self.project_dir,
            out=self.out,
            readme=self.readme,
            ignore_file=self.ignore_file,
            package_manager=self.package_manager,
            dependencies=self.dependencies,
            pre_release=self.pre_release,
            run_scripts=self.run_scripts,
            rewrite_markdown=self.rewrite_markdown,
            base_content_url=self.base_content_url,
            base_images_url=self.base_images_url,
            branch=self.branch,
            epoch=self.epoch,
        )


def find_project_root(start_dir: Optional[str | Path] = None) -> Path:
    """Find the extension root by looking for package.json.

    Args:
        start_dir: Directory to start searching from (defaults to cwd)

    Returns:
        Path to the project root directory

    Raises:
        ConfigError: If no project root is found
    """
    current = Path(start_dir) if start_dir else Path.cwd()
    current = current.resolve()

    while True:
        if (current / MANIFEST_FILENAME).exists():
            return current
        if current == current.parent:
            break
        current = current.parent

    raise ConfigError("Could not find project root (no package.json found)")


def load_config(project_dir: Optional[str | Path] = None) -> PackConfig:
    """Load CLI configuration from the project directory.

    Args:
        project_dir: Project directory (defaults to finding project root)

    Returns:
        PackConfig instance

    Raises:
        ConfigError: If configuration cannot be loaded
    """
    if project_dir is None:
        project_dir = find_project_root()

    return PackConfig.from_toml(project_dir)
