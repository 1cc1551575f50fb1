# SPDX-License-Identifier: MIT
"""File collection for VSIX packages.

This module walks an extension project and decides which files end up in the
package. Two independent exclusion layers are combined:

- a built-in denylist (DEFAULT_IGNORE) that the manifest and README bypass
- the user's ignore files (see :mod:`vsix_utils.ignore`), which nothing bypasses
"""

from __future__ import annotations

import logging
import os
import posixpath
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

import pathspec

from .ignore import DEFAULT_IGNORE_FILE, IgnoreRules, load_ignore_rules
from .models import (
    EXTENSION_ROOT,
    DependencyRecord,
    LocalFile,
    PackageFile,
)

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"
DEFAULT_README = "README.md"

# Built-in denylist, gitignore syntax
DEFAULT_IGNORE = [
    ".vscodeignore",
    "vsix.toml",
    "package-lock.json",
    "npm-shrinkwrap.json",
    "npm-debug.log",
    "yarn.lock",
    "yarn-error.log",
    "pnpm-lock.yaml",
    "bun.lock",
    "bun.lockb",
    ".editorconfig",
    ".npmrc",
    ".yarnrc",
    ".gitattributes",
    "*.todo",
    "tslint.yaml",
    ".eslintrc*",
    ".babelrc*",
    ".prettierrc*",
    ".cz-config.js",
    ".commitlintrc*",
    "webpack.config.js",
    "ISSUE_TEMPLATE.md",
    "CONTRIBUTING.md",
    "PULL_REQUEST_TEMPLATE.md",
    "CODE_OF_CONDUCT.md",
    ".github/",
    ".travis.yml",
    "appveyor.yml",
    "node_modules/",
    "**/.git",
    "**/.git/**",
    "**/.hg/**",
    "**/.svn/**",
    ".idea/",
    "**/*.vsix",
    "**/.DS_Store",
    "**/*.vsixmanifest",
    "**/.vscode-test/**",
    "**/.vscode-test-web/**",
]

_DEFAULT_IGNORE_SPEC = pathspec.GitIgnoreSpec.from_lines(DEFAULT_IGNORE)


def _is_excluded(
    rel_path: str,
    rules: IgnoreRules,
    forced: frozenset[str],
) -> bool:
    """Decide whether a root-relative path is left out of the package.

    The built-in denylist is skipped for forced paths; the user's ignore
    rules apply to every path.
    """
    if rel_path not in forced and _DEFAULT_IGNORE_SPEC.match_file(rel_path):
        return True
    return rules.is_ignored(rel_path)


def _prune_directory(rel_dir: str, forced: frozenset[str]) -> bool:
    """Return True if a directory can be skipped entirely during the walk."""
    if not _DEFAULT_IGNORE_SPEC.match_file(f"{rel_dir}/"):
        return False
    prefix = f"{rel_dir}/"
    return not any(path.startswith(prefix) for path in forced)


def _walk_files(root: Path, forced: frozenset[str], prune: bool = True) -> Iterator[str]:
    """Yield root-relative POSIX paths of every file, following symlinks.

    A directory is skipped only when its real path is one of its own
    ancestors, so aliased directories are walked once per alias.
    """
    # walked path -> real paths of its ancestors
    ancestors: dict[str, tuple[str, ...]] = {os.fspath(root): ()}

    for current, dirs, files in os.walk(root, followlinks=True):
        chain = ancestors.pop(current, ())
        real = os.path.realpath(current)
        if real in chain:
            dirs[:] = []
            continue

        rel_current = Path(current).relative_to(root).as_posix()
        if rel_current == ".":
            rel_current = ""

        dirs[:] = sorted(
            d
            for d in dirs
            if not (prune and _prune_directory(posixpath.join(rel_current, d), forced))
        )
        for d in dirs:
            ancestors[os.path.join(current, d)] = (*chain, real)

        for filename in sorted(files):
            yield posixpath.join(rel_current, filename)


def collect_files(
    root: str | Path,
    *,
    ignore_file: Optional[str] = DEFAULT_IGNORE_FILE,
    readme: str = DEFAULT_README,
    manifest_file: str = MANIFEST_FILE,
    dependencies: Sequence[DependencyRecord] = (),
    rules: Optional[IgnoreRules] = None,
) -> list[PackageFile]:
    """Collect the files of an extension project.

    Args:
        root: Project root directory
        ignore_file: Override ignore file name, read alongside .gitignore
        readme: README file name, force-included past the built-in denylist
        manifest_file: Manifest file name, force-included past the built-in denylist
        dependencies: Production dependencies to add under node_modules
        rules: Pre-compiled ignore rules (loaded from root when omitted)

    Returns:
        Local package files, archive paths rooted at ``extension/``
    """
    root_path = Path(root)
    if rules is None:
        rules = load_ignore_rules(root_path, ignore_file)

    forced = frozenset(
        Path(name).as_posix() for name in (manifest_file, readme) if name
    )

    collected: list[PackageFile] = []
    for rel_path in _walk_files(root_path, forced):
        if _is_excluded(rel_path, rules, forced):
            continue
        collected.append(
            LocalFile(
                archive_path=f"{EXTENSION_ROOT}/{rel_path}",
                source_path=root_path / rel_path,
            )
        )

    for dependency in dependencies:
        collected.append(
            LocalFile(
                archive_path=f"{EXTENSION_ROOT}/node_modules/{dependency.name}",
                source_path=Path(dependency.installed_path),
            )
        )

    logger.debug(
        "Collected %d file(s) from %s (%d dependency folder(s))",
        len(collected),
        root_path,
        len(dependencies),
    )
    return collected


def expand_files(files: Iterable[PackageFile]) -> list[PackageFile]:
    """Replace directory-type local entries with one entry per contained file.

    Args:
        files: Package files, some of which may point at directories

    Returns:
        A new list in which every local entry references a regular file

    Raises:
        FileNotFoundError: If a local entry points at a missing path
    """
    expanded: list[PackageFile] = []
    for file in files:
        if not isinstance(file, LocalFile):
            expanded.append(file)
            continue

        source = Path(file.source_path)
        if source.is_dir():
            for rel_path in _walk_files(source, frozenset(), prune=False):
                expanded.append(
                    LocalFile(
                        archive_path=f"{file.archive_path}/{rel_path}",
                        source_path=source / rel_path,
                    )
                )
        elif source.is_file():
            expanded.append(file)
        else:
            raise FileNotFoundError(f"No such file or directory: {source}")

    return expanded
