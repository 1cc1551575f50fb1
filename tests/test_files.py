# SPDX-License-Identifier: MIT
"""Tests for ignore rules and file collection."""

from __future__ import annotations

from pathlib import Path

import pytest

from vsix_utils.files import collect_files, expand_files
from vsix_utils.ignore import IgnoreRules, load_ignore_rules
from vsix_utils.models import DependencyRecord, InMemoryFile, LocalFile


def archive_paths(files) -> list[str]:
    return sorted(file.archive_path for file in files)


class TestIgnoreRules:
    """Tests for layered ignore files."""

    def test_no_ignore_files(self, tmp_path: Path) -> None:
        """Test that a project without ignore files ignores nothing."""
        rules = load_ignore_rules(tmp_path)
        assert rules.patterns == []
        assert rules.sources == []
        assert not rules.is_ignored("out/extension.js")

    def test_gitignore_then_override(self, tmp_path: Path) -> None:
        """Test that the override file can reinstate paths excluded by .gitignore."""
        (tmp_path / ".gitignore").write_text("*.log\n")
        (tmp_path / ".vscodeignore").write_text("!keep.log\nout/**/*.map\n")

        rules = load_ignore_rules(tmp_path)

        assert rules.sources == [tmp_path / ".gitignore", tmp_path / ".vscodeignore"]
        assert rules.is_ignored("debug.log")
        assert not rules.is_ignored("keep.log")
        assert rules.is_ignored("out/extension.js.map")
        assert not rules.is_ignored("out/extension.js")

    def test_custom_ignore_file(self, tmp_path: Path) -> None:
        """Test reading a differently named override file."""
        (tmp_path / ".vscodeignore").write_text("*.js\n")
        (tmp_path / ".packageignore").write_text("*.ts\n")

        rules = load_ignore_rules(tmp_path, ".packageignore")

        assert rules.is_ignored("src/main.ts")
        assert not rules.is_ignored("main.js")

    def test_from_lines(self) -> None:
        """Test compiling rules from pattern lines."""
        rules = IgnoreRules.from_lines(["*.log", "# comment", "", "!keep.log"])
        assert rules.is_ignored("debug.log")
        assert not rules.is_ignored("keep.log")


class TestCollectFiles:
    """Tests for collect_files."""

    def test_small_project(self, tmp_path: Path) -> None:
        """Test that a three-file project is collected under extension/."""
        (tmp_path / "package.json").write_text("{}")
        (tmp_path / "README.md").write_text("# Readme")
        (tmp_path / "extension.js").write_text("")

        files = collect_files(tmp_path)

        assert archive_paths(files) == [
            "extension/README.md",
            "extension/extension.js",
            "extension/package.json",
        ]
        assert all(isinstance(file, LocalFile) for file in files)

    def test_manifest_readme_license(self, tmp_path: Path) -> None:
        """Test that package.json, README.md and LICENSE give exactly three entries."""
        for name in ("package.json", "README.md", "LICENSE"):
            (tmp_path / name).write_text("")

        files = collect_files(tmp_path)

        assert len(files) == 3
        assert all(isinstance(file, LocalFile) for file in files)
        assert archive_paths(files) == [
            "extension/LICENSE",
            "extension/README.md",
            "extension/package.json",
        ]

    def test_override_file_reinstates_gitignored_file(self, tmp_path: Path) -> None:
        """Test that a later !pattern brings back a file excluded by .gitignore."""
        (tmp_path / "package.json").write_text("{}")
        (tmp_path / "debug.log").write_text("")
        (tmp_path / "keep.log").write_text("")
        (tmp_path / ".gitignore").write_text("*.log\n")
        (tmp_path / ".vscodeignore").write_text("!keep.log\n")

        paths = archive_paths(collect_files(tmp_path))

        assert "extension/keep.log" in paths
        assert "extension/debug.log" not in paths

    def test_config_file_not_packaged(self, tmp_path: Path) -> None:
        """Test that vsix.toml stays out of the package."""
        (tmp_path / "package.json").write_text("{}")
        (tmp_path / "vsix.toml").write_text("dependencies = false\n")

        assert archive_paths(collect_files(tmp_path)) == ["extension/package.json"]

    def test_symlinked_directory_alias(self, tmp_path: Path) -> None:
        """Test that a directory and a symlink to it are both walked."""
        (tmp_path / "package.json").write_text("{}")
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "main.js").write_text("")
        (tmp_path / "lib").symlink_to(tmp_path / "src", target_is_directory=True)

        paths = archive_paths(collect_files(tmp_path))

        assert paths == [
            "extension/lib/main.js",
            "extension/package.json",
            "extension/src/main.js",
        ]

    def test_symlink_loop_terminates(self, tmp_path: Path) -> None:
        """Test that a symlink back to an ancestor is not followed."""
        (tmp_path / "package.json").write_text("{}")
        (tmp_path / "out").mkdir()
        (tmp_path / "out" / "main.js").write_text("")
        (tmp_path / "out" / "again").symlink_to(tmp_path, target_is_directory=True)

        paths = archive_paths(collect_files(tmp_path))

        assert paths == ["extension/out/main.js", "extension/package.json"]

    def test_default_denylist(self, extension_dir: Path) -> None:
        """Test that lock files, ignore files and node_modules are skipped."""
        node_modules = extension_dir / "node_modules" / "left-pad"
        node_modules.mkdir(parents=True)
        (node_modules / "index.js").write_text("")
        (extension_dir / ".github").mkdir()
        (extension_dir / ".github" / "ci.yml").write_text("")
        (extension_dir / "old.vsix").write_bytes(b"")

        paths = archive_paths(collect_files(extension_dir))

        assert "extension/package-lock.json" not in paths
        assert "extension/.vscodeignore" not in paths
        assert "extension/old.vsix" not in paths
        assert not any("node_modules" in path for path in paths)
        assert not any(".github" in path for path in paths)

    def test_user_ignore_file(self, extension_dir: Path) -> None:
        """Test that .vscodeignore patterns are honored."""
        paths = archive_paths(collect_files(extension_dir))

        assert "extension/src/extension.ts" not in paths
        assert "extension/extension.js" in paths
        assert "extension/images/screenshot.png" in paths

    def test_manifest_and_readme_bypass_denylist(self, tmp_path: Path) -> None:
        """Test that a README named like a denylisted file is still packaged."""
        (tmp_path / "package.json").write_text("{}")
        (tmp_path / "CONTRIBUTING.md").write_text("")

        default = archive_paths(collect_files(tmp_path))
        forced = archive_paths(collect_files(tmp_path, readme="CONTRIBUTING.md"))

        assert "extension/CONTRIBUTING.md" not in default
        assert "extension/CONTRIBUTING.md" in forced

    def test_user_rules_apply_to_manifest(self, tmp_path: Path) -> None:
        """Test that nothing bypasses the user's own ignore rules."""
        (tmp_path / "package.json").write_text("{}")
        (tmp_path / "README.md").write_text("")
        (tmp_path / ".vscodeignore").write_text("README.md\n")

        paths = archive_paths(collect_files(tmp_path))

        assert paths == ["extension/package.json"]

    def test_dependencies_are_appended(self, tmp_path: Path) -> None:
        """Test that dependency folders become entries under node_modules."""
        (tmp_path / "package.json").write_text("{}")
        dependency_dir = tmp_path / "node_modules" / "@scope" / "pkg"
        dependency_dir.mkdir(parents=True)

        files = collect_files(
            tmp_path,
            dependencies=[
                DependencyRecord(
                    name="@scope/pkg", version="1.0.0", installed_path=str(dependency_dir)
                )
            ],
        )

        assert files[-1].archive_path == "extension/node_modules/@scope/pkg"
        assert files[-1].source_path == dependency_dir


class TestExpandFiles:
    """Tests for expand_files."""

    def test_directory_is_expanded(self, tmp_path: Path) -> None:
        """Test that a directory entry becomes one entry per contained file."""
        package = tmp_path / "pkg"
        (package / "lib").mkdir(parents=True)
        (package / "index.js").write_text("")
        (package / "lib" / "util.js").write_text("")

        expanded = expand_files(
            [LocalFile(archive_path="extension/node_modules/pkg", source_path=package)]
        )

        assert archive_paths(expanded) == [
            "extension/node_modules/pkg/index.js",
            "extension/node_modules/pkg/lib/util.js",
        ]

    def test_dependency_contents_are_not_filtered(self, tmp_path: Path) -> None:
        """Test that the default denylist does not apply inside dependencies."""
        package = tmp_path / "pkg"
        (package / "node_modules" / "inner").mkdir(parents=True)
        (package / "node_modules" / "inner" / "index.js").write_text("")

        expanded = expand_files(
            [LocalFile(archive_path="extension/node_modules/pkg", source_path=package)]
        )

        assert archive_paths(expanded) == [
            "extension/node_modules/pkg/node_modules/inner/index.js"
        ]

    def test_symlinked_dependency_layout(self, tmp_path: Path) -> None:
        """Test that symlinked folders inside a dependency are expanded."""
        store = tmp_path / "store" / "inner"
        store.mkdir(parents=True)
        (store / "index.js").write_text("")
        package = tmp_path / "pkg"
        (package / "node_modules").mkdir(parents=True)
        (package / "index.js").write_text("")
        (package / "node_modules" / "inner").symlink_to(store, target_is_directory=True)
        (package / "vendor").symlink_to(store, target_is_directory=True)

        expanded = expand_files(
            [LocalFile(archive_path="extension/node_modules/pkg", source_path=package)]
        )

        assert archive_paths(expanded) == [
            "extension/node_modules/pkg/index.js",
            "extension/node_modules/pkg/node_modules/inner/index.js",
            "extension/node_modules/pkg/vendor/index.js",
        ]

    def test_in_memory_and_regular_files_pass_through(self, tmp_path: Path) -> None:
        """Test that non-directory entries are kept as they are."""
        regular = tmp_path / "a.txt"
        regular.write_text("a")
        memory = InMemoryFile(archive_path="extension/b.txt", contents="b")
        local = LocalFile(archive_path="extension/a.txt", source_path=regular)

        assert expand_files([local, memory]) == [local, memory]

    def test_missing_source(self, tmp_path: Path) -> None:
        """Test that a missing source path raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            expand_files([LocalFile(archive_path="extension/x", source_path=tmp_path / "x")])
