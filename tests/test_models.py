"""Tests for Bot API dataclass parsing."""

from __future__ import annotations

from archive_relay.api.models import Poll, RemoteFile, Update
from conftest import callback_update, document_update, message_update, poll_update


class TestUpdate:

    def test_text_message(self):
        update = Update.from_dict(message_update(7, text="/start"))
        assert update.update_id == 7
        assert update.message.text == "/start"
        assert update.message.chat_id == 4242
        assert update.poll is None
        assert update.callback_query is None

    def test_document(self):
        update = Update.from_dict(document_update(1, "photos.zip"))
        assert update.message.document.file_name == "photos.zip"
        assert update.message.document.file_id == "doc-1"

    def test_photo_sizes_keep_order(self):
        update = Update.from_dict(message_update(1, photo=[
            {"file_id": "small", "width": 90, "height": 90},
            {"file_id": "large", "width": 1280, "height": 1280},
        ]))
        assert [p.file_id for p in update.message.photo] == ["small", "large"]

    def test_message_without_photo_has_empty_list(self):
        update = Update.from_dict(message_update(1, text="hi"))
        assert update.message.photo == []

    def test_callback_query(self):
        update = Update.from_dict(callback_update(3, "ignore:photos:photos.zip"))
        assert update.callback_query.data == "ignore:photos:photos.zip"
        assert update.callback_query.message.message_id == 100
        assert update.chat_id == 4242

    def test_poll_has_no_chat(self):
        update = Update.from_dict(poll_update(2))
        assert update.poll.id == "poll-1"
        assert update.chat_id is None

    def test_callback_without_message_has_no_chat(self):
        update = Update.from_dict(callback_update(3, "ignore:x", message_id=None))
        assert update.chat_id is None

    def test_unknown_kind_keeps_raw(self):
        raw = {"update_id": 9, "edited_message": {"message_id": 1}}
        update = Update.from_dict(raw)
        assert update.message is None
        assert update.raw == raw


class TestPoll:

    def test_chosen_option_first_voted(self):
        poll = Update.from_dict(poll_update(1, yes_votes=0, no_votes=1)).poll
        assert poll.chosen_option().text == "No"

    def test_chosen_option_none_without_votes(self):
        poll = Poll.from_dict({"id": "p", "options": [{"text": "Yes"}, {"text": "No"}]})
        assert poll.chosen_option() is None


class TestRemoteFile:

    def test_from_dict(self):
        remote = RemoteFile.from_dict({
            "file_id": "abc",
            "file_path": "/srv/bot/documents/file_0.zip",
            "file_size": 1234,
        })
        assert remote.remote_id == "abc"
        assert remote.local_path == "/srv/bot/documents/file_0.zip"
        assert remote.size == 1234
