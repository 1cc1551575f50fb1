# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for packaging tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Generator

import pytest
from click.testing import CliRunner


def base_manifest(**overrides: Any) -> dict[str, Any]:
    """Return a minimal valid extension manifest."""
    manifest: dict[str, Any] = {
        "name": "hello-world",
        "displayName": "Hello World",
        "description": "Says hello",
        "publisher": "acme",
        "version": "1.0.0",
        "license": "MIT",
        "engines": {"vscode": "^1.74.0"},
        "main": "./extension.js",
        "activationEvents": ["onStartupFinished"],
        "repository": {"type": "git", "url": "https://github.com/acme/hello-world"},
    }
    manifest.update(overrides)
    return manifest


def write_manifest(project_dir: Path, manifest: dict[str, Any]) -> Path:
    """Write package.json into a project directory."""
    path = project_dir / "package.json"
    path.write_text(json.dumps(manifest, indent=2))
    return path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def extension_dir(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a small extension project without dependencies."""
    project_dir = tmp_path / "hello-world"
    project_dir.mkdir()

    write_manifest(project_dir, base_manifest())

    (project_dir / "README.md").write_text(
        "# Hello World\n\n"
        "![screenshot](images/screenshot.png)\n\n"
        "See the [guide](docs/guide.md).\n"
    )
    (project_dir / "CHANGELOG.md").write_text("# Changelog\n\n## 1.0.0\n\n- Initial release\n")
    (project_dir / "LICENSE").write_text("MIT License\n")
    (project_dir / "extension.js").write_text("exports.activate = () => {};\n")

    images = project_dir / "images"
    images.mkdir()
    (images / "screenshot.png").write_bytes(b"\x89PNG\r\n\x1a\n")

    # Sources and lock files never ship
    src = project_dir / "src"
    src.mkdir()
    (src / "extension.ts").write_text("export function activate() {}\n")
    (project_dir / ".vscodeignore").write_text("src/**\n")
    (project_dir / "package-lock.json").write_text("{}\n")

    yield project_dir
