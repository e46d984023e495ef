"""Archive extraction for .zip and .rar uploads.

WHY: Users upload archives; the bot sends back what is inside. Extraction
itself is delegated to zipfile and rarfile, this module only picks the
right one and normalizes their failures.

HOW: The format is chosen by the lower-cased extension of the archive
path. Everything is extracted into the output directory, keeping the
archive's internal directory structure.

RULES:
- Only .zip and .rar are supported; anything else raises UnsupportedFormatError
- The output directory is created if it does not exist
- Corrupt archives raise ExtractionError
- .rar needs an unrar-compatible tool on PATH (rarfile shells out to it)
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

import rarfile

logger = logging.getLogger(__name__)


class UnsupportedFormatError(ValueError):
    """Raised for archives whose extension is neither .zip nor .rar."""

    def __init__(self, archive_path: Path | str) -> None:
        self.archive_path = Path(archive_path)
        super().__init__("Unsupported file format. Only .zip and .rar are supported.")


class ExtractionError(Exception):
    """Raised when an archive of a supported format cannot be read."""


def extraction_dir_for(archive_path: Path | str, work_dir: Path | str) -> Path:
    """Return the directory an archive is extracted into.

    One subdirectory of the work directory per archive, named after the
    archive minus its extension ("photos.zip" → work_dir/photos).
    """
    return Path(work_dir) / Path(archive_path).stem


def extract_archive(archive_path: Path | str, output_dir: Path | str) -> Path:
    """Extract a .zip or .rar archive into output_dir and return output_dir.

    Args:
        archive_path: Path to the archive on the local filesystem.
        output_dir: Target directory; created when missing.

    Raises:
        UnsupportedFormatError: The extension is not .zip or .rar.
        ExtractionError: The archive is corrupt or cannot be opened.
    """
    archive_path = Path(archive_path)
    output_dir = Path(output_dir)
    extension = archive_path.suffix.lower()

    if extension not in (".zip", ".rar"):
        raise UnsupportedFormatError(archive_path)

    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Extracting %s into %s", archive_path.name, output_dir)

    try:
        if extension == ".zip":
            with zipfile.ZipFile(archive_path) as archive:
                archive.extractall(output_dir)
        else:
            with rarfile.RarFile(archive_path) as archive:
                archive.extractall(output_dir)
    except (zipfile.BadZipFile, rarfile.Error) as e:
        raise ExtractionError(f"Could not extract {archive_path.name}: {e}") from e

    return output_dir
