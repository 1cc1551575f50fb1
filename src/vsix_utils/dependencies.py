# SPDX-License-Identifier: MIT
"""Production dependency resolution for extension packages.

Each supported package manager reports its dependency tree in a different
format:

- npm prints a flat list of installed directories (``--parseable``)
- yarn prints a JSON tree of ``name@version`` nodes with ``children``
- pnpm prints a JSON array whose first entry holds a map of maps

Every format is parsed by its own function into the same result: a flat list
of DependencyRecord entries deduplicated by installed path.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from .models import DependencyRecord, PackageManager
from .package_manager import resolve_package_manager

logger = logging.getLogger(__name__)

LIST_COMMANDS: dict[PackageManager, list[str]] = {
    PackageManager.NPM: [
        "npm",
        "list",
        "--production",
        "--parseable",
        "--depth=99999",
        "--loglevel=error",
    ],
    PackageManager.YARN: ["yarn", "list", "--prod", "--json"],
    # --ignore-workspace keeps workspace packages out of the tree
    PackageManager.PNPM: [
        "pnpm",
        "list",
        "--production",
        "--json",
        "--depth=99999",
        "--loglevel=error",
        "--ignore-workspace",
    ],
}

NODE_MODULES = "node_modules"

YARN_TREE_PATTERN = re.compile(r'^\{"type":"tree".*$', re.MULTILINE)

CommandRunner = Callable[[list[str], Path], str]


class DependencyResolverError(Exception):
    """Raised when dependency resolution fails."""

    pass


@dataclass
class DependencyNode:
    """Intermediate tree node produced while parsing yarn or pnpm output.

    Attributes:
        name: Package name
        version: Version string, if reported
        path: Installed directory of this node
        children: Nested dependencies
    """

    name: str
    version: Optional[str]
    path: str
    children: list[DependencyNode] = field(default_factory=list)


@dataclass
class DependencyResolution:
    """Result of resolving the production dependencies of an extension.

    Attributes:
        dependencies: Flattened dependency records
        package_manager: Package manager that produced them
    """

    dependencies: list[DependencyRecord]
    package_manager: PackageManager


def flatten_dependency_tree(roots: Iterable[DependencyNode]) -> list[DependencyRecord]:
    """Flatten dependency trees into records, visiting each path once.

    Nodes are emitted in pre-order. A node whose path was already visited is
    skipped together with its subtree, which bounds the work on diamond
    shaped graphs and terminates on cycles.

    Args:
        roots: Top-level dependency nodes

    Returns:
        Records with unique installed paths
    """
    visited: set[str] = set()
    records: list[DependencyRecord] = []
    stack: list[DependencyNode] = list(reversed(list(roots)))

    while stack:
        node = stack.pop()
        if node.path in visited:
            continue
        visited.add(node.path)
        records.append(
            DependencyRecord(name=node.name, version=node.version, installed_path=node.path)
        )
        stack.extend(reversed(node.children))

    return records


# =============================================================================
# Format A: npm
# =============================================================================


def _name_from_installed_path(installed_path: str) -> Optional[str]:
    """Return the package name following the last node_modules segment."""
    parts = Path(installed_path).parts
    indexes = [i for i, part in enumerate(parts) if part == NODE_MODULES]
    if not indexes:
        return None

    index = indexes[-1]
    if index + 1 >= len(parts):
        return None

    segment = parts[index + 1]
    if segment.startswith("@"):
        if index + 2 >= len(parts):
            return None
        return f"{segment}/{parts[index + 2]}"
    return segment


def parse_npm_output(
    stdout: str,
    cwd: str | Path,
    manifest: Mapping[str, Any],
) -> list[DependencyRecord]:
    """Parse ``npm list --parseable`` output.

    Args:
        stdout: Command output, one absolute path per line
        cwd: Project directory (its own line is skipped)
        manifest: Extension manifest, used to look up declared versions

    Returns:
        Dependency records; versions come from the manifest's dependencies map

    Raises:
        DependencyResolverError: If a path does not contain a node_modules segment
    """
    project_paths = {
        os.path.normpath(os.path.abspath(cwd)),
        os.path.normpath(os.path.realpath(cwd)),
    }
    declared = manifest.get("dependencies") or {}

    seen: set[str] = set()
    records: list[DependencyRecord] = []
    for raw_line in stdout.splitlines():
        line = raw_line.strip()
        if not line or not os.path.isabs(line):
            continue
        if os.path.normpath(line) in project_paths:
            continue

        name = _name_from_installed_path(line)
        if name is None:
            raise DependencyResolverError(f"could not parse dependency: {line}")

        if line in seen:
            continue
        seen.add(line)

        version = declared.get(name) if isinstance(declared, Mapping) else None
        records.append(DependencyRecord(name=name, version=version, installed_path=line))

    return records


# =============================================================================
# Format B: yarn
# =============================================================================


def split_yarn_name(value: str) -> tuple[str, Optional[str]]:
    """Split a yarn ``name@range`` node name on its last ``@``.

    Scoped names keep their leading ``@``:

        >>> split_yarn_name("@types/node@^20.0.0")
        ('@types/node', '^20.0.0')
        >>> split_yarn_name("lodash")
        ('lodash', None)
    """
    index = value.rfind("@")
    if index <= 0:
        return value, None
    return value[:index], value[index + 1 :] or None


def _is_range(version: Optional[str]) -> bool:
    return version is not None and version[:1] in ("^", "~")


def _yarn_node(
    prefix: str,
    tree: Mapping[str, Any],
    prune: bool,
    ancestors: set[int],
) -> Optional[DependencyNode]:
    if id(tree) in ancestors:
        return None

    name, version = split_yarn_name(str(tree.get("name", "")))
    if not name:
        return None
    if prune and _is_range(version):
        return None

    path = os.path.join(prefix, name)
    node = DependencyNode(name=name, version=version, path=path)

    ancestors.add(id(tree))
    child_prefix = os.path.join(path, NODE_MODULES)
    for child in tree.get("children") or []:
        if not isinstance(child, Mapping):
            continue
        child_node = _yarn_node(child_prefix, child, prune, ancestors)
        if child_node is not None:
            node.children.append(child_node)
    ancestors.discard(id(tree))

    return node


def yarn_trees_to_nodes(
    trees: Iterable[Mapping[str, Any]],
    cwd: str | Path,
    prune: bool = True,
) -> list[DependencyNode]:
    """Convert yarn tree entries to DependencyNode trees rooted at cwd/node_modules.

    Args:
        trees: The ``data.trees`` entries of ``yarn list --json``
        cwd: Project directory
        prune: Drop nodes whose version is a ``^`` or ``~`` range

    Returns:
        Converted root nodes
    """
    prefix = os.path.join(str(cwd), NODE_MODULES)
    nodes: list[DependencyNode] = []
    for tree in trees:
        if not isinstance(tree, Mapping):
            continue
        node = _yarn_node(prefix, tree, prune, set())
        if node is not None:
            nodes.append(node)
    return nodes


def parse_yarn_output(
    stdout: str,
    cwd: str | Path,
    prune: bool = True,
) -> list[DependencyRecord]:
    """Parse ``yarn list --json`` output.

    Only the single line holding the ``{"type":"tree"...}`` object is parsed,
    since yarn interleaves other JSON events and diagnostics.

    Raises:
        DependencyResolverError: If zero or several tree lines are present,
            or the tree line is not valid JSON
    """
    matches = YARN_TREE_PATTERN.findall(stdout)
    if len(matches) != 1:
        raise DependencyResolverError(
            f"Could not parse result of `yarn list --json`: expected 1 tree line, found {len(matches)}"
        )

    try:
        document = json.loads(matches[0])
    except json.JSONDecodeError as e:
        raise DependencyResolverError(f"Could not parse result of `yarn list --json`: {e}") from e

    data = document.get("data") if isinstance(document, dict) else None
    trees = data.get("trees") if isinstance(data, dict) else None
    if not isinstance(trees, list) or not trees:
        return []

    return flatten_dependency_tree(yarn_trees_to_nodes(trees, cwd, prune))


# =============================================================================
# Format C: pnpm
# =============================================================================


def _pnpm_node(
    key: str,
    value: Mapping[str, Any],
    ancestors: set[int],
) -> Optional[DependencyNode]:
    if id(value) in ancestors:
        return None

    path = value.get("path")
    if not path:
        raise DependencyResolverError(f"pnpm reported dependency '{key}' without a path")

    node = DependencyNode(
        name=str(value.get("from") or key),
        version=value.get("version"),
        path=str(path),
    )

    ancestors.add(id(value))
    for child_key, child in (value.get("dependencies") or {}).items():
        if not isinstance(child, Mapping):
            continue
        child_node = _pnpm_node(child_key, child, ancestors)
        if child_node is not None:
            node.children.append(child_node)
    ancestors.discard(id(value))

    return node


def parse_pnpm_output(stdout: str) -> list[DependencyRecord]:
    """Parse ``pnpm list --json`` output.

    Blank output, an empty array, or a first entry without a dependencies map
    all mean the project has no production dependencies.

    Raises:
        DependencyResolverError: If the output is not valid JSON
    """
    if not stdout.strip():
        return []

    try:
        entries = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise DependencyResolverError(f"Could not parse result of `pnpm list --json`: {e}") from e

    if not isinstance(entries, list) or not entries:
        return []

    entry = entries[0]
    if not isinstance(entry, Mapping) or not isinstance(entry.get("dependencies"), Mapping):
        return []

    roots: list[DependencyNode] = []
    for key, value in entry["dependencies"].items():
        if not isinstance(value, Mapping):
            continue
        node = _pnpm_node(key, value, set())
        if node is not None:
            roots.append(node)

    return flatten_dependency_tree(roots)


# =============================================================================
# Command execution
# =============================================================================


def run_list_command(command: list[str], cwd: Path) -> str:
    """Run a package manager list command and return its stdout.

    Raises:
        DependencyResolverError: If the executable is missing or exits non-zero
    """
    executable = shutil.which(command[0]) or command[0]
    logger.debug("Running %s in %s", " ".join(command), cwd)

    try:
        result = subprocess.run(
            [executable, *command[1:]],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        raise DependencyResolverError(f"Package manager executable not found: {command[0]}") from None
    except OSError as e:
        raise DependencyResolverError(f"Failed to run {command[0]}: {e}") from e

    if result.returncode != 0:
        raise DependencyResolverError(
            f"`{' '.join(command)}` failed with exit code {result.returncode}:\n"
            f"{result.stderr.strip()}"
        )

    return result.stdout


def get_extension_dependencies(
    manifest: Mapping[str, Any],
    *,
    package_manager: Union[PackageManager, str, None] = "auto",
    cwd: Optional[str | Path] = None,
    stop_dir: Optional[str | Path] = None,
    runner: Optional[CommandRunner] = None,
    prune: bool = True,
) -> DependencyResolution:
    """Resolve the production dependencies an extension must bundle.

    Args:
        manifest: Extension manifest (package.json contents)
        package_manager: "npm", "yarn", "pnpm", a PackageManager, or "auto"
        cwd: Project directory (defaults to the current directory)
        stop_dir: Last directory inspected when auto-detecting
        runner: Callable running a command in a directory and returning stdout
        prune: For yarn, drop tree nodes reported with a version range

    Returns:
        DependencyResolution with the flattened records and the manager used

    Raises:
        UnsupportedPackageManagerError: For a manager outside npm, yarn and pnpm
        PackageManagerNotDetectedError: If "auto" finds no signature
        DependencyResolverError: If the list command fails or its output is unusable
    """
    project_dir = Path(cwd) if cwd is not None else Path.cwd()
    resolved = resolve_package_manager(package_manager, project_dir, stop_dir)

    stdout = (runner or run_list_command)(LIST_COMMANDS[resolved], project_dir)

    if resolved is PackageManager.NPM:
        dependencies = parse_npm_output(stdout, project_dir, manifest)
    elif resolved is PackageManager.YARN:
        dependencies = parse_yarn_output(stdout, project_dir, prune=prune)
    else:
        dependencies = parse_pnpm_output(stdout)

    logger.debug("Resolved %d %s dependencies", len(dependencies), resolved.value)
    return DependencyResolution(dependencies=dependencies, package_manager=resolved)
