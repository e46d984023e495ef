"""Message templates, inline keyboards, and callback payload encoding.

WHY: The bot sends a handful of fixed texts, a directory summary with
buttons, and parses the callback data those buttons return. Keeping the
wording and the payload format here keeps the handlers and the delivery
engine focused on control flow.

HOW: Plain functions returning strings (Markdown) or reply_markup dicts
ready for BotAPIClient.send_message(reply_markup=...). Callback payloads
have the form "<action>:<directory>:<originalFileName>".

RULES:
- Action names must match the ACTION_* constants handled in bot.delivery
- The part of a payload after "<action>:" is the task token (store key)
- callback_data is limited to 64 bytes; longer tokens are replaced by a
  "~" + SHA-1 digest token
- User-supplied names are wrapped in backticks inside Markdown texts
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Dict, List, Tuple

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ACTION_SEND_MEDIA = "send_media_files"
ACTION_EXPLORE_SUBDIRS = "explore_subdirs"
ACTION_IGNORE = "ignore"

ACTIONS = frozenset({ACTION_SEND_MEDIA, ACTION_EXPLORE_SUBDIRS, ACTION_IGNORE})

CALLBACK_DATA_MAX_BYTES = 64
_DIGEST_TOKEN_PREFIX = "~"
_DIGEST_LENGTH = 16

POLL_QUESTION = "Would you like me to send the unzipped the files back to you?"
POLL_YES = "Yes"
POLL_NO = "No"
POLL_OPTIONS = [POLL_YES, POLL_NO]

WELCOME_TEXT = "Welcome to the bot! The bot is functional."
UNKNOWN_COMMAND_TEXT = "I don't understand that command."
UNKNOWN_MESSAGE_TEXT = "I don't understand that message."
UNSUPPORTED_FORMAT_TEXT = "Unsupported file format. Only .zip and .rar are supported."
EXPIRED_PROMPT_TEXT = "This prompt has expired."


# ---------------------------------------------------------------------------
# Callback payloads
# ---------------------------------------------------------------------------


def make_task_token(directory: str, file_name: str) -> str:
    """Build the store token for a directory prompt.

    WHY: The token doubles as the tail of every button's callback_data,
    so it must fit next to the longest action name within 64 bytes.

    HOW: "<directory>:<file_name>" when it fits, otherwise a short digest
    of the same string.
    """
    token = "{}:{}".format(directory, file_name)
    longest = max(len(action) for action in ACTIONS) + 1
    if len(token.encode("utf-8")) + longest <= CALLBACK_DATA_MAX_BYTES:
        return token
    digest = hashlib.sha1(token.encode("utf-8")).hexdigest()[:_DIGEST_LENGTH]
    return _DIGEST_TOKEN_PREFIX + digest


def encode_callback_data(action: str, token: str) -> str:
    if action not in ACTIONS:
        raise ValueError("Unknown callback action: {}".format(action))
    return "{}:{}".format(action, token)


def parse_callback_data(data: str) -> Tuple[str, str]:
    """Split callback data into (action, token).

    Splits on the first colon only, so directory names containing colons
    survive. Raises ValueError for malformed data or unknown actions.
    """
    action, sep, token = data.partition(":")
    if not sep or not token:
        raise ValueError("Malformed callback data: {!r}".format(data))
    if action not in ACTIONS:
        raise ValueError("Unknown callback action: {!r}".format(action))
    return action, token


# ---------------------------------------------------------------------------
# Keyboards
# ---------------------------------------------------------------------------


def build_directory_keyboard(
    token: str,
    offer_media: bool,
    offer_subdirs: bool,
) -> Dict[str, Any]:
    """Build the inline keyboard shown under a directory summary.

    RULES:
    - One button per row
    - Buttons for decisions that do not apply are left out
    - The Ignore button is always present
    """
    rows: List[List[Dict[str, str]]] = []
    if offer_media:
        rows.append([{
            "text": "Send multimedia files here",
            "callback_data": encode_callback_data(ACTION_SEND_MEDIA, token),
        }])
    if offer_subdirs:
        rows.append([{
            "text": "Explore subdirectories here",
            "callback_data": encode_callback_data(ACTION_EXPLORE_SUBDIRS, token),
        }])
    rows.append([{
        "text": "Ignore",
        "callback_data": encode_callback_data(ACTION_IGNORE, token),
    }])
    return {"inline_keyboard": rows}


# ---------------------------------------------------------------------------
# Texts
# ---------------------------------------------------------------------------


def _plural(count: int, noun: str, plural: str = "") -> str:
    if count == 1:
        return "{} {}".format(count, noun)
    return "{} {}".format(count, plural or noun + "s")


def _code(name: str) -> str:
    """Wrap a name in a Markdown code span, replacing backticks inside it."""
    return "`{}`".format(name.replace("`", "'"))


def format_counts(files: int, subdirs: int, multimedia: int) -> str:
    """Format "2 files, 0 subdirectories, 1 multimedia file"."""
    return ", ".join([
        _plural(files, "file"),
        _plural(subdirs, "subdirectory", "subdirectories"),
        _plural(multimedia, "multimedia file"),
    ])


def format_directory_summary(
    directory: str,
    file_name: str,
    files: int,
    subdirs: int,
    multimedia: int,
    example_files: List[str],
    example_subdirs: List[str],
) -> str:
    """Format the summary message for one extracted directory."""
    lines = [
        "\U0001F4C2 {} (from {})".format(_code(directory), _code(file_name)),
        format_counts(files, subdirs, multimedia),
    ]
    if example_files:
        lines.append("")
        lines.append("Files:")
        lines.extend("- " + _code(name) for name in example_files)
        if files > len(example_files):
            lines.append("- ... and {} more".format(files - len(example_files)))
    if example_subdirs:
        lines.append("")
        lines.append("Subdirectories:")
        lines.extend("- " + _code(name) for name in example_subdirs)
        if subdirs > len(example_subdirs):
            lines.append("- ... and {} more".format(subdirs - len(example_subdirs)))
    return "\n".join(lines)


def format_download_path(file_name: str, relative_path: str) -> str:
    return (
        "✅Downloaded {name} successfully on the server!\n\n\n"
        "- File Name: {name}\n"
        "- Path: {path}"
    ).format(name=_code(file_name), path=_code(relative_path))


def format_downloading(file_name: str) -> str:
    return 'Downloading the archive "{}".'.format(file_name)


def format_unsupported_type(file_name: str, extension: str) -> str:
    return 'I don\'t support sending files of type "{}" [File: "{}"].'.format(
        extension, file_name
    )


def format_cleanup_completed(file_name: str) -> str:
    return 'Cleanup completed for the file "{}".'.format(file_name)


def format_process_completed(file_name: str) -> str:
    return 'Process completed for the file "{}".'.format(file_name)


def format_extraction_failed(file_name: str, error: BaseException) -> str:
    return 'Could not extract "{}": {}'.format(file_name, error)


def format_update_error(error: BaseException) -> str:
    return "An error occurred while processing the update.\n\nMessage: {}".format(error)


def relative_directory(directory: Path, work_dir: Path) -> str:
    """Return directory relative to work_dir with POSIX separators."""
    return Path(directory).relative_to(Path(work_dir)).as_posix()
