"""Configuration constants, file type allow-lists, and .env loading.

WHY: The bot talks to a locally hosted Bot API server, writes extracted
archives to a work directory, and decides how to send each file by its
extension. Keeping those values in one module makes them easy to find and
override without touching the handlers.

HOW: python-dotenv loads the .env file on import. Constants are module-level
sets and strings, each overridable through an environment variable. The
load_bot_token() function gives a clear error when the token is missing.

RULES:
- Extension sets hold bare extensions (no dot) and are matched case-sensitively
- The bot token is loaded from the environment, never hardcoded
- All defaults can be overridden via environment variables or CLI flags
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the bot is started from)
load_dotenv()

# ---------------------------------------------------------------------------
# File type allow-lists
# ---------------------------------------------------------------------------

SUPPORTED_PHOTO_TYPES: frozenset[str] = frozenset({
    "jpg", "jpeg", "png", "gif", "webp", "tiff",
})
"""Extensions sent back with sendPhoto."""

SUPPORTED_VIDEO_TYPES: frozenset[str] = frozenset({
    "mp4", "avi", "mov", "mkv", "webm", "ts",
})
"""Extensions sent back with sendVideo."""

SUPPORTED_ARCHIVE_TYPES: frozenset[str] = frozenset({"zip", "rar"})
"""Archive extensions the extractor understands."""

# ---------------------------------------------------------------------------
# Runtime defaults
# ---------------------------------------------------------------------------

DELIVERY_MODES = ("interactive", "automatic")

BOT_API_BASE_URL = os.getenv("BOT_API_BASE_URL", "http://localhost:8081")
UNZIP_DIR = os.getenv("UNZIP_DIR", "./unzipped")
POLL_TIMEOUT_S = int(os.getenv("POLL_TIMEOUT_S", "30"))
DELIVERY_MODE = os.getenv("DELIVERY_MODE", "interactive").lower()
SKIP_BACKLOG = os.getenv("SKIP_BACKLOG", "true").lower() == "true"

# Summary messages list at most this many example names per kind
SUMMARY_EXAMPLE_LIMIT = 5


def load_bot_token() -> str:
    """Load the bot token from the environment.

    WHY: Every Bot API URL embeds the token. Without it the bot cannot make
    a single request, so startup must fail loudly.

    HOW: Reads BOT_TOKEN from os.environ (populated by python-dotenv).

    RULES:
    - Raises ValueError if the token is missing or empty
    - Never returns a default/placeholder value
    """
    token = os.getenv("BOT_TOKEN", "").strip()
    if not token:
        raise ValueError(
            "BOT_TOKEN is required in the environment variables. "
            "Add BOT_TOKEN to the .env file in the project folder."
        )
    return token
