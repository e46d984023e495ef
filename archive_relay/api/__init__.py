"""Bot API client package, the async HTTP interface to the local Bot API server.

WHY: The bot needs to long-poll for updates, download attached files, and
send messages, polls, photos, and videos. This package keeps all Bot API
communication behind one async client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. BotAPIClient provides a
coroutine per Bot API method. Response data is parsed into typed
dataclasses defined in models.py.

RULES:
- All HTTP calls go through BotAPIClient (no direct httpx usage elsewhere)
- Authentication is the bot token embedded in the base URL
"""

from archive_relay.api.client import BotAPIClient, BotAPIError
from archive_relay.api.models import RemoteFile, Update

__all__ = ["BotAPIClient", "BotAPIError", "RemoteFile", "Update"]
