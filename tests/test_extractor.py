"""Tests for .zip/.rar extraction.

WHY: Extraction must keep the archive's directory structure (the
interactive delivery walks it) and must refuse anything that is not .zip
or .rar with the user-facing message.

HOW: Real .zip files are built in tmp_path. RAR archives cannot be
written from Python, so rarfile.RarFile is patched and only the wiring
is verified.

RULES:
- Extracted files classify exactly like the same files uploaded directly
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import rarfile

from archive_relay.core.classifier import FileCategory, classify
from archive_relay.core.extractor import (
    ExtractionError,
    UnsupportedFormatError,
    extract_archive,
    extraction_dir_for,
)
from conftest import make_zip


class TestExtractionDir:

    def test_named_after_archive_stem(self, tmp_path):
        assert extraction_dir_for("photos.zip", tmp_path) == tmp_path / "photos"

    def test_ignores_archive_directory(self, tmp_path):
        assert extraction_dir_for("/srv/docs/file_3.rar", tmp_path) == tmp_path / "file_3"


class TestZip:

    def test_extracts_flat_archive(self, tmp_path):
        archive = make_zip(tmp_path / "photos.zip", {"a.png": b"png", "notes.txt": b"hi"})
        out = tmp_path / "out"

        result = extract_archive(archive, out)

        assert result == out
        assert (out / "a.png").read_bytes() == b"png"
        assert (out / "notes.txt").read_bytes() == b"hi"

    def test_preserves_structure(self, tmp_path):
        archive = make_zip(tmp_path / "deep.zip", {
            "top.jpg": b"1",
            "level1/mid.mp4": b"2",
            "level1/level2/bottom.gif": b"3",
        })
        out = tmp_path / "out"

        extract_archive(archive, out)

        assert (out / "top.jpg").is_file()
        assert (out / "level1" / "mid.mp4").is_file()
        assert (out / "level1" / "level2" / "bottom.gif").is_file()

    def test_creates_output_dir(self, tmp_path):
        archive = make_zip(tmp_path / "a.zip", {"x.png": b"x"})
        out = tmp_path / "does" / "not" / "exist"
        extract_archive(archive, out)
        assert out.is_dir()

    def test_extension_match_is_case_insensitive(self, tmp_path):
        archive = make_zip(tmp_path / "UPPER.ZIP", {"x.png": b"x"})
        extract_archive(archive, tmp_path / "out")
        assert (tmp_path / "out" / "x.png").is_file()

    def test_corrupt_zip_raises_extraction_error(self, tmp_path):
        archive = tmp_path / "broken.zip"
        archive.write_bytes(b"this is not a zip file")
        with pytest.raises(ExtractionError):
            extract_archive(archive, tmp_path / "out")

    def test_round_trip_classification(self, tmp_path):
        """A .png inside a .zip is a photo after extraction, like a direct upload."""
        names = ["a.png", "b.mov", "c.txt", "sub/d.webp"]
        archive = make_zip(tmp_path / "mix.zip", {n: b"data" for n in names})
        out = tmp_path / "out"
        extract_archive(archive, out)

        for name in names:
            extracted = out / name
            assert extracted.is_file()
            assert classify(extracted.name) is classify(Path(name).name)
        assert classify((out / "a.png").name) is FileCategory.PHOTO


class TestRar:

    def test_uses_rarfile(self, tmp_path):
        archive = tmp_path / "archive.rar"
        archive.write_bytes(b"Rar!\x1a\x07\x00")
        out = tmp_path / "out"
        fake = MagicMock()
        fake.__enter__.return_value = fake

        with patch("archive_relay.core.extractor.rarfile.RarFile", return_value=fake) as cls:
            extract_archive(archive, out)

        cls.assert_called_once_with(archive)
        fake.extractall.assert_called_once_with(out)
        assert out.is_dir()

    def test_rar_error_becomes_extraction_error(self, tmp_path):
        archive = tmp_path / "bad.rar"
        archive.write_bytes(b"garbage")

        with patch(
            "archive_relay.core.extractor.rarfile.RarFile",
            side_effect=rarfile.BadRarFile("not a rar"),
        ):
            with pytest.raises(ExtractionError):
                extract_archive(archive, tmp_path / "out")


class TestUnsupported:

    @pytest.mark.parametrize("name", ["data.7z", "backup.tar.gz", "noext"])
    def test_raises_unsupported_format(self, tmp_path, name):
        archive = tmp_path / name
        archive.write_bytes(b"whatever")
        with pytest.raises(UnsupportedFormatError) as exc_info:
            extract_archive(archive, tmp_path / "out")
        assert "Only .zip and .rar are supported" in str(exc_info.value)

    def test_does_not_create_output_dir(self, tmp_path):
        archive = tmp_path / "data.7z"
        archive.write_bytes(b"7z")
        with pytest.raises(UnsupportedFormatError):
            extract_archive(archive, tmp_path / "out")
        assert not (tmp_path / "out").exists()

    def test_is_a_value_error(self):
        assert issubclass(UnsupportedFormatError, ValueError)
