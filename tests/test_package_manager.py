# SPDX-License-Identifier: MIT
"""Tests for package manager detection."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from vsix_utils.models import PackageManager
from vsix_utils.package_manager import (
    PackageManagerNotDetectedError,
    UnsupportedPackageManagerError,
    detect_package_manager,
    resolve_package_manager,
)


class TestDetectPackageManager:
    """Tests for detect_package_manager."""

    @pytest.mark.parametrize(
        "lockfile,expected",
        [
            ("package-lock.json", PackageManager.NPM),
            ("npm-shrinkwrap.json", PackageManager.NPM),
            ("yarn.lock", PackageManager.YARN),
            ("pnpm-lock.yaml", PackageManager.PNPM),
            ("pnpm-workspace.yaml", PackageManager.PNPM),
        ],
    )
    def test_lockfiles(self, tmp_path: Path, lockfile: str, expected: PackageManager) -> None:
        """Test detection from each lock file."""
        (tmp_path / lockfile).write_text("")
        assert detect_package_manager(tmp_path, stop_dir=tmp_path) is expected

    def test_package_manager_field(self, tmp_path: Path) -> None:
        """Test detection from the packageManager field."""
        (tmp_path / "package.json").write_text(json.dumps({"packageManager": "pnpm@10.5.2"}))
        assert detect_package_manager(tmp_path, stop_dir=tmp_path) is PackageManager.PNPM

    def test_lockfile_wins_over_field(self, tmp_path: Path) -> None:
        """Test that lock files are checked before the packageManager field."""
        (tmp_path / "yarn.lock").write_text("")
        (tmp_path / "package.json").write_text(json.dumps({"packageManager": "pnpm@10.5.2"}))
        assert detect_package_manager(tmp_path, stop_dir=tmp_path) is PackageManager.YARN

    def test_nested_project_uses_ancestor(self, tmp_path: Path) -> None:
        """Test that a nested project resolves to the nearest ancestor's manager."""
        (tmp_path / "pnpm-lock.yaml").write_text("")
        nested = tmp_path / "packages" / "extension"
        nested.mkdir(parents=True)
        (nested / "package.json").write_text("{}")

        assert detect_package_manager(nested, stop_dir=tmp_path) is PackageManager.PNPM

    def test_nearest_signature_wins(self, tmp_path: Path) -> None:
        """Test that a closer signature shadows an ancestor's."""
        (tmp_path / "pnpm-lock.yaml").write_text("")
        nested = tmp_path / "extension"
        nested.mkdir()
        (nested / "yarn.lock").write_text("")

        assert detect_package_manager(nested, stop_dir=tmp_path) is PackageManager.YARN

    @pytest.mark.parametrize("lockfile", ["bun.lock", "bun.lockb", "deno.lock"])
    def test_unsupported_managers(self, tmp_path: Path, lockfile: str) -> None:
        """Test that bun and deno are detected but rejected."""
        (tmp_path / lockfile).write_text("")
        with pytest.raises(UnsupportedPackageManagerError):
            detect_package_manager(tmp_path, stop_dir=tmp_path)

    def test_not_detected(self, tmp_path: Path) -> None:
        """Test that the search stops at stop_dir."""
        (tmp_path / "package-lock.json").write_text("")
        nested = tmp_path / "extension"
        nested.mkdir()

        with pytest.raises(PackageManagerNotDetectedError):
            detect_package_manager(nested, stop_dir=nested)


class TestResolvePackageManager:
    """Tests for resolve_package_manager."""

    @pytest.mark.parametrize("value", ["npm", "yarn", "pnpm"])
    def test_explicit_value(self, tmp_path: Path, value: str) -> None:
        """Test that explicit names are used without detection."""
        assert resolve_package_manager(value, tmp_path) is PackageManager(value)

    def test_enum_value(self, tmp_path: Path) -> None:
        """Test that a PackageManager passes through unchanged."""
        assert resolve_package_manager(PackageManager.YARN, tmp_path) is PackageManager.YARN

    @pytest.mark.parametrize("value", [None, "auto"])
    def test_auto(self, tmp_path: Path, value) -> None:
        """Test that None and "auto" trigger detection."""
        (tmp_path / "yarn.lock").write_text("")
        assert resolve_package_manager(value, tmp_path, tmp_path) is PackageManager.YARN

    def test_unsupported_value(self, tmp_path: Path) -> None:
        """Test that an unknown name is rejected with its name in the message."""
        with pytest.raises(UnsupportedPackageManagerError, match="unsupported package manager: custom"):
            resolve_package_manager("custom", tmp_path)
