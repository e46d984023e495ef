"""Shared test fixtures for the archive_relay test suite.

WHY: The handler, delivery, and loop tests all need a stand-in Bot API
client, a fresh interaction store, a work directory, and small archives
built on the fly. Centralizing them keeps each test module short.

HOW: The client is a MagicMock whose Bot API coroutines are AsyncMocks
with realistic return values (increasing message ids, a fixed poll id).
Archives are real .zip files written into pytest's tmp_path. Update dicts
mirror the Bot API JSON shapes the bot consumes.

RULES:
- No test talks to a real Bot API server
- Every test gets its own store and work directory
- sendMessage ids start at 100 and increase by one per call
"""

from __future__ import annotations

import itertools
import zipfile
from pathlib import Path
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from archive_relay.api.models import RemoteFile
from archive_relay.bot.delivery import DeliveryEngine
from archive_relay.bot.handlers import UpdateHandler
from archive_relay.core.correlator import InteractionStore

CHAT_ID = 4242
POLL_ID = "poll-1"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_zip(path: Path, entries: Dict[str, bytes]) -> Path:
    """Write a .zip archive with the given member names and contents."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return path


def message_update(
    update_id: int,
    chat_id: int = CHAT_ID,
    **fields: Any,
) -> Dict[str, Any]:
    """Build a getUpdates entry carrying a message with extra fields."""
    message = {"message_id": update_id * 10, "chat": {"id": chat_id, "type": "private"}}
    message.update(fields)
    return {"update_id": update_id, "message": message}


def document_update(update_id: int, file_name: str, file_id: str = "doc-1") -> Dict[str, Any]:
    return message_update(
        update_id,
        document={"file_id": file_id, "file_name": file_name, "mime_type": "application/zip"},
    )


def poll_update(
    update_id: int,
    poll_id: str = POLL_ID,
    yes_votes: int = 1,
    no_votes: int = 0,
) -> Dict[str, Any]:
    return {
        "update_id": update_id,
        "poll": {
            "id": poll_id,
            "question": "Would you like me to send the unzipped the files back to you?",
            "options": [
                {"text": "Yes", "voter_count": yes_votes},
                {"text": "No", "voter_count": no_votes},
            ],
            "is_closed": False,
        },
    }


def callback_update(
    update_id: int,
    data: str,
    chat_id: int = CHAT_ID,
    message_id: Optional[int] = 100,
) -> Dict[str, Any]:
    query: Dict[str, Any] = {"id": "cb-{}".format(update_id), "data": data}
    if message_id is not None:
        query["message"] = {"message_id": message_id, "chat": {"id": chat_id}}
    return {"update_id": update_id, "callback_query": query}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def bot_client():
    """A stand-in BotAPIClient with AsyncMock Bot API methods."""
    client = MagicMock()
    client.send_message = AsyncMock(side_effect=itertools.count(100))
    client.send_photo = AsyncMock(return_value=501)
    client.send_video = AsyncMock(return_value=502)
    client.delete_message = AsyncMock(return_value=True)
    client.send_poll = AsyncMock(return_value=POLL_ID)
    client.get_file = AsyncMock(
        return_value=RemoteFile(remote_id="doc-1", local_path="/srv/documents/file_0.zip")
    )
    client.get_updates = AsyncMock(return_value=[])
    client.answer_callback_query = AsyncMock(return_value=True)
    return client


@pytest.fixture
def store():
    return InteractionStore()


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "unzipped"
    path.mkdir()
    return path


@pytest.fixture
def delivery(bot_client, store, work_dir):
    return DeliveryEngine(bot_client, store, work_dir, interactive=True)


@pytest.fixture
def handler(bot_client, store, delivery, work_dir, tmp_path):
    return UpdateHandler(bot_client, store, delivery, work_dir, path_base=tmp_path)


def sent_texts(client) -> list:
    """Return the text of every send_message call, in order."""
    return [c.args[1] for c in client.send_message.call_args_list]
