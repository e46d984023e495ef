"""Bot API update and response dataclasses.

WHY: getUpdates returns nested JSON objects (messages, documents, photo
size variants, polls, callback queries). Typed dataclasses make the fields
the bot relies on explicit and keep dict digging out of the handlers.

HOW: Each dataclass maps to the subset of a Bot API object that the bot
reads. Factory methods (from_dict) parse raw API dicts; optional objects
are None when absent from the payload.

RULES:
- Only fields the bot uses are modeled; unknown keys are ignored
- Update holds at most one of message / poll / callback_query
- PhotoSize variants keep the API order (smallest first)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class BotUser:
    """The bot's own account, as returned by getMe."""

    id: int
    username: str
    first_name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> BotUser:
        return cls(
            id=data["id"],
            username=data.get("username", ""),
            first_name=data.get("first_name", ""),
        )


@dataclass
class RemoteFile:
    """A file prepared for download by getFile.

    WHY: The local Bot API server stores the downloaded file on its own
    disk and reports where. The bot reads it from there instead of fetching
    it over HTTP a second time.

    RULES:
    - remote_id is the Bot API file_id
    - local_path is the server's file_path (absolute in --local mode)
    """

    remote_id: str
    local_path: str
    size: int | None = None

    @classmethod
    def from_dict(cls, data: dict) -> RemoteFile:
        return cls(
            remote_id=data["file_id"],
            local_path=data.get("file_path", ""),
            size=data.get("file_size"),
        )


@dataclass
class Document:
    """A generic file attached to a message."""

    file_id: str
    file_name: str
    mime_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Document:
        return cls(
            file_id=data["file_id"],
            file_name=data.get("file_name", ""),
            mime_type=data.get("mime_type"),
        )


@dataclass
class PhotoSize:
    """One size variant of a photo."""

    file_id: str
    width: int = 0
    height: int = 0
    file_size: int | None = None

    @classmethod
    def from_dict(cls, data: dict) -> PhotoSize:
        return cls(
            file_id=data["file_id"],
            width=data.get("width", 0),
            height=data.get("height", 0),
            file_size=data.get("file_size"),
        )


@dataclass
class Video:
    """A video attached to a message."""

    file_id: str
    file_name: str | None = None
    mime_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Video:
        return cls(
            file_id=data["file_id"],
            file_name=data.get("file_name"),
            mime_type=data.get("mime_type"),
        )


@dataclass
class Message:
    """An incoming chat message.

    RULES:
    - chat_id is always present
    - photo is an empty list when the message carries no photo
    - document / video / text are None when absent
    """

    message_id: int
    chat_id: int
    text: str | None = None
    document: Document | None = None
    photo: list[PhotoSize] = field(default_factory=list)
    video: Video | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        document = data.get("document")
        video = data.get("video")
        return cls(
            message_id=data["message_id"],
            chat_id=data["chat"]["id"],
            text=data.get("text"),
            document=Document.from_dict(document) if document else None,
            photo=[PhotoSize.from_dict(p) for p in data.get("photo", [])],
            video=Video.from_dict(video) if video else None,
        )


@dataclass
class PollOption:
    text: str
    voter_count: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> PollOption:
        return cls(text=data["text"], voter_count=data.get("voter_count", 0))


@dataclass
class Poll:
    """A poll state notification.

    WHY: The Bot API pushes a poll update every time the vote counts of a
    poll sent by the bot change. The bot reads the first voted option.
    """

    id: str
    question: str = ""
    options: list[PollOption] = field(default_factory=list)
    is_closed: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> Poll:
        return cls(
            id=data["id"],
            question=data.get("question", ""),
            options=[PollOption.from_dict(o) for o in data.get("options", [])],
            is_closed=data.get("is_closed", False),
        )

    def chosen_option(self) -> PollOption | None:
        """Return the first option with at least one vote, or None."""
        for option in self.options:
            if option.voter_count > 0:
                return option
        return None


@dataclass
class CallbackQuery:
    """An inline keyboard button press.

    RULES:
    - data is the opaque callback_data string, returned verbatim
    - message is the message the button was attached to (may be None for
      very old messages)
    """

    id: str
    data: str
    message: Message | None = None

    @classmethod
    def from_dict(cls, data: dict) -> CallbackQuery:
        message = data.get("message")
        return cls(
            id=data["id"],
            data=data.get("data", ""),
            message=Message.from_dict(message) if message else None,
        )


@dataclass
class Update:
    """One event from getUpdates.

    WHY: The dispatch loop needs the update_id to advance its cursor and a
    typed payload to route to the right handler.

    RULES:
    - update_id is always present
    - At most one of message / poll / callback_query is set
    - raw keeps the original dict for logging unknown update kinds
    """

    update_id: int
    message: Message | None = None
    poll: Poll | None = None
    callback_query: CallbackQuery | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict) -> Update:
        message = data.get("message")
        poll = data.get("poll")
        callback_query = data.get("callback_query")
        return cls(
            update_id=data["update_id"],
            message=Message.from_dict(message) if message else None,
            poll=Poll.from_dict(poll) if poll else None,
            callback_query=(
                CallbackQuery.from_dict(callback_query) if callback_query else None
            ),
            raw=data,
        )

    @property
    def chat_id(self) -> int | None:
        """The chat this update originated from, or None for poll updates."""
        if self.message is not None:
            return self.message.chat_id
        if self.callback_query is not None and self.callback_query.message is not None:
            return self.callback_query.message.chat_id
        return None
