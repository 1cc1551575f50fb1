# SPDX-License-Identifier: MIT
"""Tests for writing and reading VSIX archives."""

from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest

from vsix_utils.archive import ArchiveError, read_vsix, write_vsix
from vsix_utils.models import InMemoryFile, LocalFile
from vsix_utils.vsixmanifest import VSIX_MANIFEST_PATH

MINIMAL_MANIFEST = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<PackageManifest Version="2.0.0"><Metadata>'
    '<Identity Id="hello" Version="1.0.0" Publisher="acme"/>'
    "</Metadata></PackageManifest>"
)


def sample_files(tmp_path: Path) -> list:
    source = tmp_path / "src"
    (source / "lib").mkdir(parents=True, exist_ok=True)
    (source / "extension.js").write_text("exports.activate = () => {};\n")
    (source / "lib" / "util.js").write_text("module.exports = {};\n")
    return [
        InMemoryFile(archive_path=VSIX_MANIFEST_PATH, contents=MINIMAL_MANIFEST),
        InMemoryFile(archive_path="extension/package.json", contents=json.dumps({"name": "hello"})),
        LocalFile(archive_path="extension/extension.js", source_path=source / "extension.js"),
        LocalFile(archive_path="extension/lib", source_path=source / "lib"),
    ]


def entry_names(path: Path) -> list[str]:
    with zipfile.ZipFile(path) as zf:
        return zf.namelist()


class TestWriteVsix:
    """Tests for write_vsix."""

    def test_writes_every_entry(self, tmp_path: Path) -> None:
        """Test that in-memory, local and directory entries are written."""
        target = tmp_path / "out" / "hello-1.0.0.vsix"

        written = write_vsix(sample_files(tmp_path), target)

        assert written == target
        assert entry_names(target) == [
            VSIX_MANIFEST_PATH,
            "extension/package.json",
            "extension/extension.js",
            "extension/lib/util.js",
        ]

    def test_entries_are_deflated(self, tmp_path: Path) -> None:
        """Test that entries are compressed."""
        target = tmp_path / "a.vsix"
        write_vsix(sample_files(tmp_path), target)

        with zipfile.ZipFile(target) as zf:
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())

    def test_duplicate_paths_last_wins(self, tmp_path: Path) -> None:
        """Test that a later entry replaces an earlier one with the same path."""
        target = tmp_path / "a.vsix"
        files = [
            InMemoryFile(archive_path="extension/a.txt", contents="first"),
            InMemoryFile(archive_path="extension/a.txt", contents="second"),
        ]

        write_vsix(files, target)

        with zipfile.ZipFile(target) as zf:
            assert zf.namelist() == ["extension/a.txt"]
            assert zf.read("extension/a.txt") == b"second"

    def test_missing_path(self, tmp_path: Path) -> None:
        """Test that an empty package path is rejected."""
        with pytest.raises(ArchiveError, match="no package path specified"):
            write_vsix(sample_files(tmp_path), "")

    def test_no_files(self, tmp_path: Path) -> None:
        """Test that an empty file list is rejected."""
        with pytest.raises(ArchiveError, match="no files specified to package"):
            write_vsix([], tmp_path / "a.vsix")

    def test_existing_target(self, tmp_path: Path) -> None:
        """Test that an existing package is only replaced with force."""
        target = tmp_path / "a.vsix"
        target.write_bytes(b"old")

        with pytest.raises(ArchiveError, match="package already exists"):
            write_vsix(sample_files(tmp_path), target)
        assert target.read_bytes() == b"old"

        write_vsix(sample_files(tmp_path), target, force=True)
        assert VSIX_MANIFEST_PATH in entry_names(target)

    def test_missing_source_leaves_nothing(self, tmp_path: Path) -> None:
        """Test that a missing source fails before anything is written."""
        target = tmp_path / "out" / "a.vsix"
        files = [LocalFile(archive_path="extension/gone.js", source_path=tmp_path / "gone.js")]

        with pytest.raises(ArchiveError):
            write_vsix(files, target)

        assert not target.exists()

    def test_failed_write_leaves_no_partial_file(self, tmp_path: Path) -> None:
        """Test that an error while writing removes the temporary archive."""
        target = tmp_path / "out" / "a.vsix"
        files = [InMemoryFile(archive_path="extension/a.txt", contents=object())]

        with pytest.raises(TypeError):
            write_vsix(files, target)

        assert not target.exists()
        assert list((tmp_path / "out").iterdir()) == []

    def test_epoch_is_reproducible(self, tmp_path: Path) -> None:
        """Test that a fixed epoch gives byte-identical sorted archives."""
        first = write_vsix(sample_files(tmp_path), tmp_path / "first.vsix", epoch=1700000000)
        files = list(reversed(sample_files(tmp_path)))
        second = write_vsix(files, tmp_path / "second.vsix", epoch=1700000000)

        assert first.read_bytes() == second.read_bytes()
        assert entry_names(first) == sorted(entry_names(first))
        with zipfile.ZipFile(first) as zf:
            assert {info.date_time for info in zf.infolist()} == {(2023, 11, 14, 22, 13, 20)}

    def test_epoch_before_zip_epoch(self, tmp_path: Path) -> None:
        """Test that timestamps before 1980 are clamped."""
        target = write_vsix(sample_files(tmp_path), tmp_path / "a.vsix", epoch=0)
        with zipfile.ZipFile(target) as zf:
            assert {info.date_time for info in zf.infolist()} == {(1980, 1, 1, 0, 0, 0)}


class TestReadVsix:
    """Tests for read_vsix."""

    def test_round_trip(self, tmp_path: Path) -> None:
        """Test reading back a written package."""
        target = write_vsix(sample_files(tmp_path), tmp_path / "a.vsix")

        raw = read_vsix(target)

        assert raw.manifest["PackageManifest"]["Metadata"]["Identity"]["@Id"] == "hello"
        assert raw.package_json == {"name": "hello"}
        assert len(raw.files) == 4
        assert all(isinstance(file, InMemoryFile) for file in raw.files)

    def test_missing_package(self, tmp_path: Path) -> None:
        """Test that a missing file is reported."""
        with pytest.raises(ArchiveError, match="package not found"):
            read_vsix(tmp_path / "missing.vsix")

    def test_not_a_zip(self, tmp_path: Path) -> None:
        """Test that a corrupt archive is reported."""
        path = tmp_path / "bad.vsix"
        path.write_bytes(b"not a zip")
        with pytest.raises(ArchiveError, match="invalid VSIX archive"):
            read_vsix(path)

    def test_missing_manifest(self, tmp_path: Path) -> None:
        """Test that an archive without extension.vsixmanifest is rejected."""
        path = tmp_path / "a.vsix"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("extension/package.json", "{}")

        with pytest.raises(ArchiveError, match="extension.vsixmanifest file is missing"):
            read_vsix(path)

    def test_malformed_manifest(self, tmp_path: Path) -> None:
        """Test that invalid manifest XML is reported."""
        path = tmp_path / "a.vsix"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr(VSIX_MANIFEST_PATH, "<PackageManifest>")

        with pytest.raises(ArchiveError, match="invalid extension.vsixmanifest"):
            read_vsix(path)

    def test_without_package_json(self, tmp_path: Path) -> None:
        """Test that package.json is optional when reading."""
        path = tmp_path / "a.vsix"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr(VSIX_MANIFEST_PATH, MINIMAL_MANIFEST)

        assert read_vsix(path).package_json is None
