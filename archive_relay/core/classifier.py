"""Extension-based file classification.

WHY: The bot decides how to send each extracted file (photo, video, or a
"not supported" notice) and whether an uploaded document is an archive.
All of those decisions hang off the file name alone.

HOW: Looks the extension up in the allow-lists from config. The extension
is the text after the last dot.

RULES:
- Pure function of the file name; never touches the filesystem
- Case-sensitive: "photo.PNG" is UNSUPPORTED
- A name without a dot has the empty extension and is UNSUPPORTED
"""

from __future__ import annotations

import enum
from pathlib import PurePath

from archive_relay.config import (
    SUPPORTED_ARCHIVE_TYPES,
    SUPPORTED_PHOTO_TYPES,
    SUPPORTED_VIDEO_TYPES,
)


class FileCategory(str, enum.Enum):
    PHOTO = "photo"
    VIDEO = "video"
    ARCHIVE = "archive"
    UNSUPPORTED = "unsupported"


def file_extension(file_name: str) -> str:
    """Return the extension of a file name without the dot ("" if none)."""
    name = PurePath(file_name).name
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1]


def classify(file_name: str) -> FileCategory:
    extension = file_extension(file_name)
    if extension in SUPPORTED_PHOTO_TYPES:
        return FileCategory.PHOTO
    if extension in SUPPORTED_VIDEO_TYPES:
        return FileCategory.VIDEO
    if extension in SUPPORTED_ARCHIVE_TYPES:
        return FileCategory.ARCHIVE
    return FileCategory.UNSUPPORTED


def is_multimedia(file_name: str) -> bool:
    return classify(file_name) in (FileCategory.PHOTO, FileCategory.VIDEO)


def is_archive(file_name: str) -> bool:
    return classify(file_name) is FileCategory.ARCHIVE
