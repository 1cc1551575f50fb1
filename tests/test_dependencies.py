# SPDX-License-Identifier: MIT
"""Tests for production dependency resolution."""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from vsix_utils.dependencies import (
    LIST_COMMANDS,
    DependencyNode,
    DependencyResolverError,
    flatten_dependency_tree,
    get_extension_dependencies,
    parse_npm_output,
    parse_pnpm_output,
    parse_yarn_output,
    run_list_command,
    split_yarn_name,
)
from vsix_utils.models import PackageManager


def yarn_output(trees: list[dict]) -> str:
    """Build yarn list --json output with surrounding noise."""
    lines = [
        json.dumps({"type": "info", "data": "Visit https://yarnpkg.com for docs"}),
        json.dumps({"type": "tree", "data": {"type": "list", "trees": trees}}, separators=(",", ":")),
        "Done in 0.1s.",
    ]
    return "\n".join(lines)


class TestParseNpmOutput:
    """Tests for the npm --parseable format."""

    def test_flat_paths(self, tmp_path: Path) -> None:
        """Test parsing one installed path per line."""
        stdout = "\n".join(
            [
                str(tmp_path),
                str(tmp_path / "node_modules" / "left-pad"),
                str(tmp_path / "node_modules" / "@scope" / "pkg"),
                str(tmp_path / "node_modules" / "a" / "node_modules" / "b"),
            ]
        )
        manifest = {"dependencies": {"left-pad": "^1.3.0"}}

        records = parse_npm_output(stdout, tmp_path, manifest)

        assert [record.name for record in records] == ["left-pad", "@scope/pkg", "b"]
        assert records[0].version == "^1.3.0"
        assert records[1].version is None
        assert records[2].installed_path == str(tmp_path / "node_modules" / "a" / "node_modules" / "b")

    def test_blank_and_relative_lines_skipped(self, tmp_path: Path) -> None:
        """Test that blank lines and warnings are ignored."""
        stdout = f"\nnpm WARN something\n{tmp_path / 'node_modules' / 'x'}\n\n"
        records = parse_npm_output(stdout, tmp_path, {})
        assert [record.name for record in records] == ["x"]

    def test_duplicate_paths(self, tmp_path: Path) -> None:
        """Test that repeated paths produce one record."""
        line = str(tmp_path / "node_modules" / "x")
        records = parse_npm_output(f"{line}\n{line}\n", tmp_path, {})
        assert len(records) == 1

    def test_path_without_node_modules(self, tmp_path: Path) -> None:
        """Test that an unexpected path is an error."""
        with pytest.raises(DependencyResolverError, match="could not parse dependency"):
            parse_npm_output(str(tmp_path / "elsewhere" / "x"), tmp_path, {})


class TestParseYarnOutput:
    """Tests for the yarn --json tree format."""

    def test_split_yarn_name(self) -> None:
        """Test splitting names on the last @."""
        assert split_yarn_name("@types/node@^20.0.0") == ("@types/node", "^20.0.0")
        assert split_yarn_name("lodash@4.17.21") == ("lodash", "4.17.21")
        assert split_yarn_name("lodash") == ("lodash", None)

    def test_nested_tree(self, tmp_path: Path) -> None:
        """Test that children are placed under their parent's node_modules."""
        stdout = yarn_output(
            [
                {
                    "name": "a@1.0.0",
                    "children": [{"name": "b@2.0.0", "children": []}],
                },
                {"name": "@scope/c@3.0.0"},
            ]
        )

        records = parse_yarn_output(stdout, tmp_path)

        assert [(record.name, record.version) for record in records] == [
            ("a", "1.0.0"),
            ("b", "2.0.0"),
            ("@scope/c", "3.0.0"),
        ]
        assert records[1].installed_path == os.path.join(
            str(tmp_path), "node_modules", "a", "node_modules", "b"
        )

    def test_range_nodes_pruned(self, tmp_path: Path) -> None:
        """Test that nodes reported with a version range are dropped when pruning."""
        stdout = yarn_output(
            [
                {"name": "a@1.0.0", "children": [{"name": "b@^2.0.0"}]},
                {"name": "c@~1.0.0"},
            ]
        )

        assert [record.name for record in parse_yarn_output(stdout, tmp_path)] == ["a"]
        assert [record.name for record in parse_yarn_output(stdout, tmp_path, prune=False)] == [
            "a",
            "b",
            "c",
        ]

    def test_empty_trees(self, tmp_path: Path) -> None:
        """Test that an empty tree list means no dependencies."""
        assert parse_yarn_output(yarn_output([]), tmp_path) == []

    def test_missing_tree_line(self, tmp_path: Path) -> None:
        """Test that output without a tree line is an error."""
        with pytest.raises(DependencyResolverError):
            parse_yarn_output('{"type":"info","data":"nothing"}', tmp_path)

    def test_several_tree_lines(self, tmp_path: Path) -> None:
        """Test that ambiguous output is an error."""
        line = yarn_output([]).splitlines()[1]
        with pytest.raises(DependencyResolverError):
            parse_yarn_output(f"{line}\n{line}", tmp_path)


class TestParsePnpmOutput:
    """Tests for the pnpm --json format."""

    def test_map_of_maps(self, tmp_path: Path) -> None:
        """Test parsing nested dependency maps."""
        a_path = str(tmp_path / "node_modules" / ".pnpm" / "a@1.0.0" / "node_modules" / "a")
        b_path = str(tmp_path / "node_modules" / ".pnpm" / "b@2.0.0" / "node_modules" / "b")
        stdout = json.dumps(
            [
                {
                    "name": "hello-world",
                    "dependencies": {
                        "a": {
                            "from": "a",
                            "version": "1.0.0",
                            "path": a_path,
                            "dependencies": {
                                "b": {"from": "b", "version": "2.0.0", "path": b_path},
                            },
                        },
                    },
                }
            ]
        )

        records = parse_pnpm_output(stdout)

        assert [(record.name, record.version, record.installed_path) for record in records] == [
            ("a", "1.0.0", a_path),
            ("b", "2.0.0", b_path),
        ]

    @pytest.mark.parametrize("stdout", ["", "  \n", "[]", '[{"name": "x"}]'])
    def test_no_dependencies(self, stdout: str) -> None:
        """Test that blank output, an empty array, or a missing map mean none."""
        assert parse_pnpm_output(stdout) == []

    def test_invalid_json(self) -> None:
        """Test that malformed output fails loudly."""
        with pytest.raises(DependencyResolverError):
            parse_pnpm_output("[{")

    def test_missing_path(self) -> None:
        """Test that a dependency without a path is an error."""
        stdout = json.dumps([{"dependencies": {"a": {"version": "1.0.0"}}}])
        with pytest.raises(DependencyResolverError, match="without a path"):
            parse_pnpm_output(stdout)


class TestFlattenDependencyTree:
    """Tests for flatten_dependency_tree."""

    def test_pre_order(self) -> None:
        """Test that nodes are emitted parent first."""
        tree = DependencyNode(
            "a", "1", "/a", [DependencyNode("b", "1", "/a/b"), DependencyNode("c", "1", "/a/c")]
        )
        assert [record.name for record in flatten_dependency_tree([tree])] == ["a", "b", "c"]

    def test_shared_subtree_visited_once(self) -> None:
        """Test that a path reachable twice yields one record."""
        shared = DependencyNode("shared", "1", "/shared")
        roots = [
            DependencyNode("a", "1", "/a", [shared]),
            DependencyNode("b", "1", "/b", [shared]),
        ]
        records = flatten_dependency_tree(roots)
        assert [record.name for record in records] == ["a", "shared", "b"]


class TestGetExtensionDependencies:
    """Tests for get_extension_dependencies."""

    def test_runner_receives_list_command(self, tmp_path: Path) -> None:
        """Test that the resolved manager's list command is run in cwd."""
        calls = []

        def runner(command: list[str], cwd: Path) -> str:
            calls.append((command, cwd))
            return "[]"

        resolution = get_extension_dependencies(
            {}, package_manager="pnpm", cwd=tmp_path, runner=runner
        )

        assert resolution.package_manager is PackageManager.PNPM
        assert resolution.dependencies == []
        assert calls == [(LIST_COMMANDS[PackageManager.PNPM], tmp_path)]

    def test_npm_detected(self, tmp_path: Path) -> None:
        """Test auto-detection followed by npm parsing."""
        (tmp_path / "package-lock.json").write_text("{}")
        dependency = tmp_path / "node_modules" / "left-pad"

        resolution = get_extension_dependencies(
            {"dependencies": {"left-pad": "1.3.0"}},
            cwd=tmp_path,
            stop_dir=tmp_path,
            runner=lambda command, cwd: f"{tmp_path}\n{dependency}\n",
        )

        assert resolution.package_manager is PackageManager.NPM
        assert [(record.name, record.version) for record in resolution.dependencies] == [
            ("left-pad", "1.3.0")
        ]

    def test_yarn_selected(self, tmp_path: Path) -> None:
        """Test that yarn output is routed to the yarn parser."""
        resolution = get_extension_dependencies(
            {},
            package_manager=PackageManager.YARN,
            cwd=tmp_path,
            runner=lambda command, cwd: yarn_output([{"name": "a@1.0.0"}]),
        )
        assert [record.name for record in resolution.dependencies] == ["a"]


class TestRunListCommand:
    """Tests for run_list_command."""

    def test_returns_stdout(self, tmp_path: Path) -> None:
        """Test that stdout is returned on success."""
        completed = MagicMock(returncode=0, stdout="out", stderr="")
        with patch("vsix_utils.dependencies.subprocess.run", return_value=completed) as run:
            assert run_list_command(["npm", "list"], tmp_path) == "out"

        assert run.call_args.kwargs["cwd"] == tmp_path

    def test_non_zero_exit(self, tmp_path: Path) -> None:
        """Test that a failing command raises with its stderr."""
        completed = MagicMock(returncode=1, stdout="", stderr="ELSPROBLEMS")
        with patch("vsix_utils.dependencies.subprocess.run", return_value=completed):
            with pytest.raises(DependencyResolverError, match="ELSPROBLEMS"):
                run_list_command(["npm", "list"], tmp_path)

    def test_missing_executable(self, tmp_path: Path) -> None:
        """Test that a missing executable is reported."""
        with patch("vsix_utils.dependencies.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(DependencyResolverError, match="not found"):
                run_list_command(["pnpm", "list"], tmp_path)
