"""Routing and handling of individual Bot API updates.

WHY: Every update the dispatch loop reads is one of three kinds: a chat
message (text, photo, video, or document), a poll state change, or an
inline button press. Each kind has its own small workflow; this module
holds them so the loop only has to call handle(update).

HOW: UpdateHandler receives its collaborators (client, interaction store,
delivery engine) at construction. Archive uploads are downloaded through
the local server, announced, and followed by a yes/no poll registered in
the store. The poll answer triggers extraction and delivery; button
presses are forwarded to the delivery engine.

RULES:
- Message routing order: photo, video, document, text, anything else
- Only .zip and .rar documents are accepted; others get one plain reply
  and nothing is stored
- A poll answer for an unknown poll id is logged and otherwise ignored
- Poll updates without any vote leave the interaction pending
- Every button press is answered with answerCallbackQuery
- Exceptions not handled here propagate to the dispatch loop's guard
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from archive_relay.api.client import BotAPIClient
from archive_relay.api.models import CallbackQuery, Document, Message, Poll, Update
from archive_relay.bot.delivery import SEND_ERRORS, DeliveryEngine, cleanup
from archive_relay.bot.messages import (
    EXPIRED_PROMPT_TEXT,
    POLL_OPTIONS,
    POLL_QUESTION,
    POLL_YES,
    UNKNOWN_COMMAND_TEXT,
    UNKNOWN_MESSAGE_TEXT,
    UNSUPPORTED_FORMAT_TEXT,
    WELCOME_TEXT,
    format_download_path,
    format_downloading,
    format_extraction_failed,
    format_process_completed,
    parse_callback_data,
)
from archive_relay.core.classifier import is_archive
from archive_relay.core.correlator import (
    DirectoryTask,
    InteractionStore,
    PendingInteraction,
)
from archive_relay.core.extractor import (
    ExtractionError,
    UnsupportedFormatError,
    extract_archive,
    extraction_dir_for,
)

logger = logging.getLogger(__name__)


class UpdateHandler:
    """Dispatches one update to the matching workflow."""

    def __init__(
        self,
        client: BotAPIClient,
        store: InteractionStore,
        delivery: DeliveryEngine,
        work_dir: Path,
        path_base: Optional[Path] = None,
    ) -> None:
        self._client = client
        self._store = store
        self._delivery = delivery
        self._work_dir = Path(work_dir)
        # Download paths are shown relative to this directory
        self._path_base = Path(path_base) if path_base else Path.cwd()

    async def handle(self, update: Update) -> None:
        if update.message is not None:
            await self.handle_message(update.message)
        elif update.poll is not None:
            await self.handle_poll(update.poll)
        elif update.callback_query is not None:
            await self.handle_callback_query(update.callback_query)
        else:
            logger.warning("Unknown update: %s", update.raw)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def handle_message(self, message: Message) -> None:
        chat_id = message.chat_id
        if message.photo:
            # Size variants are ordered smallest first
            await self.handle_multimedia(chat_id, message.photo[-1].file_id)
        elif message.video is not None:
            await self.handle_multimedia(chat_id, message.video.file_id)
        elif message.document is not None:
            await self.handle_document(chat_id, message.document)
        elif message.text is not None:
            await self.handle_text(chat_id, message.text)
        else:
            logger.warning("Unknown message in chat %s: %s", chat_id, message)
            await self._delivery.send_text(chat_id, UNKNOWN_MESSAGE_TEXT)

    async def handle_text(self, chat_id: int, text: str) -> None:
        if text.strip() == "/start":
            await self._delivery.send_text(chat_id, WELCOME_TEXT)
        else:
            await self._delivery.send_text(chat_id, UNKNOWN_COMMAND_TEXT)

    async def handle_multimedia(self, chat_id: int, file_id: str) -> None:
        """Download a photo or video through the server and report where it is."""
        remote = await self._client.get_file(file_id)
        await self._send_download_path(chat_id, remote.local_path)

    async def handle_document(self, chat_id: int, document: Document) -> None:
        if is_archive(document.file_name):
            await self.handle_archive(chat_id, document)
        else:
            logger.info("Rejected document %s", document.file_name)
            await self._delivery.send_text(chat_id, UNSUPPORTED_FORMAT_TEXT)

    async def handle_archive(self, chat_id: int, document: Document) -> None:
        """Download an archive and ask whether its contents should be sent back.

        WHY: Extraction and delivery can flood the chat, so the user confirms
        first. The poll id links the later answer back to this archive.
        """
        await self._delivery.send_text(chat_id, format_downloading(document.file_name))

        logger.info("Download start %s", document.file_name)
        remote = await self._client.get_file(document.file_id)
        logger.info("Download completed %s", document.file_name)
        await self._send_download_path(chat_id, remote.local_path)

        poll_id = await self._client.send_poll(chat_id, POLL_QUESTION, POLL_OPTIONS)
        self._store.register(
            poll_id,
            PendingInteraction(
                token=poll_id,
                file_path=remote.local_path,
                file_name=document.file_name,
                chat_id=chat_id,
            ),
        )

    async def _send_download_path(self, chat_id: int, local_path: str) -> None:
        file_name = os.path.basename(local_path)
        relative = os.path.relpath(local_path, self._path_base)
        await self._delivery.send_text(
            chat_id, format_download_path(file_name, relative), parse_mode="Markdown"
        )

    # ------------------------------------------------------------------
    # Polls
    # ------------------------------------------------------------------

    async def handle_poll(self, poll: Poll) -> None:
        interaction = self._store.peek(poll.id)
        if not isinstance(interaction, PendingInteraction):
            logger.warning("Poll not found: %s", poll.id)
            return

        option = poll.chosen_option()
        if option is None:
            logger.info("Poll %s has no votes yet", poll.id)
            return

        self._store.resolve(poll.id)
        logger.info(
            "Received poll response for %s | Path: %s",
            interaction.file_name, interaction.file_path,
        )

        if option.text != POLL_YES:
            await self._delivery.send_text(
                interaction.chat_id, format_process_completed(interaction.file_name)
            )
            return

        await self._extract_and_deliver(interaction)

    async def _extract_and_deliver(self, interaction: PendingInteraction) -> None:
        chat_id = interaction.chat_id
        file_name = interaction.file_name
        # Named after the server's stored file, which is unique per upload
        root = extraction_dir_for(interaction.file_path, self._work_dir)

        if self._store.pending_for_root(root):
            await self._delivery.send_text(
                chat_id,
                'The archive "{}" is already being delivered. '
                "Answer or ignore its open prompts first.".format(file_name),
            )
            return

        # Leftovers from a run that stopped mid-delivery
        cleanup(root)
        try:
            extract_archive(interaction.file_path, root)
        except UnsupportedFormatError as e:
            await self._delivery.send_text(chat_id, str(e))
            return
        except ExtractionError as e:
            logger.warning("%s", e)
            cleanup(root)
            await self._delivery.send_text(chat_id, str(e))
            return
        except OSError as e:
            logger.exception("Extraction failed for %s", file_name)
            cleanup(root)
            await self._delivery.send_text(chat_id, format_extraction_failed(file_name, e))
            return
        logger.info("Extraction completed %s", file_name)

        await self._delivery.deliver(root, chat_id, file_name)

    # ------------------------------------------------------------------
    # Button presses
    # ------------------------------------------------------------------

    async def handle_callback_query(self, query: CallbackQuery) -> None:
        try:
            action, token = parse_callback_data(query.data)
        except ValueError:
            logger.warning("Malformed callback data: %r", query.data)
            await self._answer(query.id, EXPIRED_PROMPT_TEXT)
            return

        if not isinstance(self._store.peek(token), DirectoryTask):
            logger.warning("Callback token not found: %s", token)
            await self._answer(query.id, EXPIRED_PROMPT_TEXT)
            return

        # Answer before the sends so the button spinner stops right away
        await self._answer(query.id)
        await self._delivery.handle_action(action, token)

    async def _answer(self, callback_query_id: str, text: Optional[str] = None) -> None:
        try:
            await self._client.answer_callback_query(callback_query_id, text)
        except SEND_ERRORS:
            logger.exception("Failed to answer callback query %s", callback_query_id)
