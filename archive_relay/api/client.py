"""Async HTTP client for the locally hosted Bot API server.

WHY: The bot polls for updates, downloads files, and sends messages, polls,
photos, and videos back to chats. This module encapsulates every Bot API
call behind a single client class so the handlers never see URLs, form
encoding, or the response envelope.

HOW: Uses httpx.AsyncClient for non-blocking HTTP, with the token baked
into the base URL (<base>/bot<token>/). BotAPIClient is an async context
manager: enter it to open the connection pool, exit to close it. Each Bot
API method is a separate coroutine. Every response envelope is validated
with jsonschema before the result is unpacked.

RULES:
- Always use the async context manager (async with BotAPIClient(...) as client:)
- Read timeout must exceed the long-poll timeout or getUpdates will fail
- ok=false and non-2xx responses raise BotAPIError; network errors surface
  as httpx.HTTPError
- Photos and videos are uploaded as multipart form data from local files
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx
import jsonschema

from archive_relay.api.models import BotUser, RemoteFile
from archive_relay.config import BOT_API_BASE_URL, load_bot_token

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_SCHEMA_PATH = Path(__file__).parent / "response_schema.json"
_CACHED_SCHEMA: dict[str, Any] | None = None

# Slack on top of the long-poll timeout before httpx gives up on a read
_READ_TIMEOUT_MARGIN_S = 30.0
_UPLOAD_TIMEOUT_S = 600.0


def _get_schema() -> dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


class BotAPIError(Exception):
    """Raised when the Bot API server rejects a request.

    WHY: Callers need a typed exception to tell API rejections (bad chat id,
    file too big, expired callback) apart from network failures.

    HOW: Wraps the Bot API error_code (or HTTP status) and description.

    RULES:
    - Always include status_code and message
    - message is the envelope description or the raw response body
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Bot API error {status_code}: {message}")


class BotAPIClient:
    """Async client for the Bot API methods the bot uses.

    WHY: Provides a clean, typed interface for getMe, getUpdates, getFile,
    sendMessage, sendPoll, sendPhoto, sendVideo, deleteMessage, and
    answerCallbackQuery.

    HOW: Wraps httpx.AsyncClient with base_url <base>/bot<token>/. JSON
    bodies are used for plain methods and multipart form data for uploads.

    RULES:
    - Use as: async with BotAPIClient() as client: ...
    - token defaults to load_bot_token() from .env
    - base_url defaults to BOT_API_BASE_URL from config
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        poll_timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token or load_bot_token()
        self._base_url = (base_url or BOT_API_BASE_URL).rstrip("/")
        self._poll_timeout = poll_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> BotAPIClient:
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/bot{self._token}/",
            timeout=httpx.Timeout(
                self._poll_timeout + _READ_TIMEOUT_MARGIN_S, connect=10.0
            ),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "BotAPIClient must be used as an async context manager: "
                "async with BotAPIClient() as client: ..."
            )
        return self._client

    async def _call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """POST one Bot API method and return the envelope's result.

        WHY: Every method shares the same envelope handling. Centralizing it
        keeps the public methods one-liners over the wire format.

        HOW: JSON body for plain calls, multipart (data + files) when files
        are given. The decoded body is validated against the envelope
        schema; ok=false raises BotAPIError.

        RULES:
        - Non-JSON bodies raise BotAPIError with the HTTP status
        - A schema mismatch raises BotAPIError, not jsonschema errors
        """
        client = self._ensure_client()
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout

        if files:
            resp = await client.post(method, data=params or {}, files=files, **kwargs)
        else:
            resp = await client.post(method, json=params or {}, **kwargs)

        try:
            body = resp.json()
        except ValueError:
            raise BotAPIError(resp.status_code, resp.text) from None

        try:
            jsonschema.validate(instance=body, schema=_get_schema())
        except jsonschema.ValidationError as e:
            raise BotAPIError(
                resp.status_code, f"Malformed response to {method}: {e.message}"
            ) from None

        if not body["ok"]:
            raise BotAPIError(
                body.get("error_code", resp.status_code), body["description"]
            )
        return body["result"]

    # ------------------------------------------------------------------
    # Health check and updates
    # ------------------------------------------------------------------

    async def get_me(self) -> BotUser:
        """Return the bot account; used as the startup health check."""
        return BotUser.from_dict(await self._call("getMe"))

    async def get_updates(
        self, offset: int = 0, timeout: int | None = None
    ) -> list[dict[str, Any]]:
        """Long-poll for updates starting at offset.

        WHY: Passing offset acknowledges every update below it, so the server
        stops redelivering them.

        RULES:
        - timeout defaults to the client's poll_timeout; 0 returns immediately
        - Updates are returned in arrival order, as raw dicts; decoding
          them is left to the caller so one bad update cannot sink a batch
        """
        if timeout is None:
            timeout = self._poll_timeout
        result = await self._call(
            "getUpdates", {"offset": offset, "timeout": timeout}
        )
        return list(result)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def get_file(self, file_id: str) -> RemoteFile:
        """Ask the server to download a file and report its local path.

        Can take a long time for large files; the server finishes the
        download before responding.
        """
        result = await self._call("getFile", {"file_id": file_id}, timeout=_UPLOAD_TIMEOUT_S)
        return RemoteFile.from_dict(result)

    # ------------------------------------------------------------------
    # Outbound messages
    # ------------------------------------------------------------------

    async def send_message(
        self,
        chat_id: int,
        text: str,
        parse_mode: str | None = "Markdown",
        reply_markup: dict[str, Any] | None = None,
    ) -> int:
        """Send a text message and return its message_id."""
        params: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            params["parse_mode"] = parse_mode
        if reply_markup is not None:
            params["reply_markup"] = reply_markup
        result = await self._call("sendMessage", params)
        return result["message_id"]

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        return bool(
            await self._call(
                "deleteMessage", {"chat_id": chat_id, "message_id": message_id}
            )
        )

    async def send_poll(self, chat_id: int, question: str, options: list[str]) -> str:
        """Send a regular (non-anonymous) poll and return the poll id."""
        result = await self._call(
            "sendPoll",
            {"chat_id": chat_id, "question": question, "options": options},
        )
        return result["poll"]["id"]

    async def send_photo(self, chat_id: int, photo_path: Path) -> int:
        return await self._send_media("sendPhoto", "photo", chat_id, photo_path)

    async def send_video(self, chat_id: int, video_path: Path) -> int:
        return await self._send_media("sendVideo", "video", chat_id, video_path)

    async def _send_media(
        self, method: str, field_name: str, chat_id: int, path: Path
    ) -> int:
        """Upload a local file as multipart form data and return the message_id."""
        path = Path(path)
        with open(path, "rb") as f:
            result = await self._call(
                method,
                {"chat_id": str(chat_id)},
                files={field_name: (path.name, f)},
                timeout=_UPLOAD_TIMEOUT_S,
            )
        return result["message_id"]

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> bool:
        """Acknowledge a button press so the client stops its spinner."""
        params: dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            params["text"] = text
        return bool(await self._call("answerCallbackQuery", params))
