"""Delivery of extracted archive contents back to the chat.

WHY: After an archive is extracted the user gets its photos and videos
back, either all at once or directory by directory with a summary and
buttons to choose what to send and where to look next.

HOW: DeliveryEngine owns both variants:
  automatic   : walk the extraction root recursively and send every file
  interactive : post a summary with buttons for the root directory and
                store a DirectoryTask; each button press (handle_action)
                sends that directory's files and/or posts summaries for its
                immediate subdirectories, one level per confirmation
When no task is left for an extraction root, the root is deleted and a
completion message is sent.

RULES:
- Photos go through sendPhoto, videos through sendVideo; anything else
  gets a "type not supported" text, no bytes are uploaded
- Send failures are logged and yield None; they never stop a traversal
- Cleanup runs even when individual sends failed
- Listing order is whatever os.scandir returns; do not assume it is sorted
  or stable across platforms
- Never posts summaries more than one level below a confirmed directory
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import httpx

from archive_relay.api.client import BotAPIClient, BotAPIError
from archive_relay.bot.messages import (
    ACTION_EXPLORE_SUBDIRS,
    ACTION_IGNORE,
    ACTION_SEND_MEDIA,
    build_directory_keyboard,
    format_cleanup_completed,
    format_directory_summary,
    format_unsupported_type,
    make_task_token,
    relative_directory,
)
from archive_relay.config import SUMMARY_EXAMPLE_LIMIT
from archive_relay.core.classifier import FileCategory, classify, file_extension, is_multimedia
from archive_relay.core.correlator import (
    DirectoryTask,
    InteractionNotFoundError,
    InteractionStore,
)

logger = logging.getLogger(__name__)

# Failures an outbound send may hit; anything else is a bug and propagates
SEND_ERRORS = (httpx.HTTPError, BotAPIError, OSError)


@dataclass
class DirectorySummary:
    """What one directory holds, one level deep."""

    directory: Path
    files: List[Path] = field(default_factory=list)
    subdirs: List[Path] = field(default_factory=list)

    @property
    def multimedia_count(self) -> int:
        return sum(1 for f in self.files if is_multimedia(f.name))

    @property
    def example_files(self) -> List[str]:
        return [f.name for f in self.files[:SUMMARY_EXAMPLE_LIMIT]]

    @property
    def example_subdirs(self) -> List[str]:
        return [d.name for d in self.subdirs[:SUMMARY_EXAMPLE_LIMIT]]


def summarize(directory: Path) -> DirectorySummary:
    """List the regular files and subdirectories directly inside directory.

    Symlinks and special files are skipped.
    """
    summary = DirectorySummary(directory=Path(directory))
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                summary.subdirs.append(Path(entry.path))
            elif entry.is_file(follow_symlinks=False):
                summary.files.append(Path(entry.path))
    return summary


def walk(root: Path) -> Iterator[Path]:
    """Yield every regular file below root, depth first, in listing order."""
    with os.scandir(root) as entries:
        listing = list(entries)
    for entry in listing:
        if entry.is_dir(follow_symlinks=False):
            yield from walk(Path(entry.path))
        elif entry.is_file(follow_symlinks=False):
            yield Path(entry.path)


class DeliveryEngine:
    """Sends extracted files to a chat and tracks interactive traversals."""

    def __init__(
        self,
        client: BotAPIClient,
        store: InteractionStore,
        work_dir: Path,
        interactive: bool = True,
    ) -> None:
        self._client = client
        self._store = store
        self._work_dir = Path(work_dir)
        self.interactive = interactive

    # ------------------------------------------------------------------
    # Outbound helpers
    # ------------------------------------------------------------------

    async def send_text(
        self,
        chat_id: int,
        text: str,
        parse_mode: Optional[str] = None,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> Optional[int]:
        """Send a message; return its id, or None when the send failed.

        A formatted message the server rejects with 400 is sent once more
        as plain text.
        """
        try:
            return await self._client.send_message(
                chat_id, text, parse_mode=parse_mode, reply_markup=reply_markup
            )
        except BotAPIError as e:
            if parse_mode is None or e.status_code != 400:
                logger.exception("Failed to send message to chat %s", chat_id)
                return None
            logger.warning("Resending as plain text to chat %s: %s", chat_id, e.message)
        except SEND_ERRORS:
            logger.exception("Failed to send message to chat %s", chat_id)
            return None

        try:
            return await self._client.send_message(
                chat_id, text, parse_mode=None, reply_markup=reply_markup
            )
        except SEND_ERRORS:
            logger.exception("Failed to send message to chat %s", chat_id)
            return None

    async def send_file(self, chat_id: int, path: Path) -> Optional[int]:
        """Send one extracted file according to its category.

        Returns the message id of whatever was sent, or None on failure.
        """
        path = Path(path)
        category = classify(path.name)
        try:
            if category is FileCategory.PHOTO:
                return await self._client.send_photo(chat_id, path)
            if category is FileCategory.VIDEO:
                return await self._client.send_video(chat_id, path)
        except SEND_ERRORS:
            logger.exception("Failed to send %s to chat %s", path.name, chat_id)
            return None
        return await self.send_text(
            chat_id, format_unsupported_type(path.name, file_extension(path.name))
        )

    async def _delete_prompt(self, chat_id: int, message_id: int) -> None:
        try:
            await self._client.delete_message(chat_id, message_id)
        except SEND_ERRORS:
            logger.exception("Failed to delete prompt %s in chat %s", message_id, chat_id)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def deliver(self, root: Path, chat_id: int, file_name: str) -> None:
        """Start delivering an extraction root to a chat.

        WHY: Called once per archive after extraction. The automatic variant
        finishes here; the interactive one returns after the root summary
        is posted and continues in handle_action.
        """
        root = Path(root)
        if not self.interactive:
            try:
                await self._send_recursive(root, chat_id)
            finally:
                await self._finish(root, chat_id, file_name)
            return

        await self._prompt_directory(root, root, chat_id, file_name)
        await self._finish_if_done(root, chat_id, file_name)

    # ------------------------------------------------------------------
    # Automatic variant
    # ------------------------------------------------------------------

    async def _send_recursive(self, root: Path, chat_id: int) -> int:
        sent = 0
        logger.info("Sending files from %s", root)
        for path in walk(root):
            if await self.send_file(chat_id, path) is not None:
                sent += 1
        logger.info("Sent %d file(s) from %s", sent, root)
        return sent

    # ------------------------------------------------------------------
    # Interactive variant
    # ------------------------------------------------------------------

    async def _prompt_directory(
        self, root: Path, directory: Path, chat_id: int, file_name: str
    ) -> Optional[DirectoryTask]:
        """Post the summary of one directory and register its task.

        RULES:
        - An empty directory gets its summary but no task
        - If the summary could not be sent no task is registered, so the
          directory is skipped
        """
        summary = summarize(directory)
        display = relative_directory(directory, self._work_dir)
        text = format_directory_summary(
            directory=display,
            file_name=file_name,
            files=len(summary.files),
            subdirs=len(summary.subdirs),
            multimedia=summary.multimedia_count,
            example_files=summary.example_files,
            example_subdirs=summary.example_subdirs,
        )

        offer_media = bool(summary.files)
        offer_subdirs = bool(summary.subdirs)
        if not (offer_media or offer_subdirs):
            await self.send_text(chat_id, text, parse_mode="Markdown")
            return None

        token = make_task_token(display, file_name)
        keyboard = build_directory_keyboard(token, offer_media, offer_subdirs)
        message_id = await self.send_text(
            chat_id, text, parse_mode="Markdown", reply_markup=keyboard
        )
        if message_id is None:
            return None

        task = DirectoryTask(
            token=token,
            chat_id=chat_id,
            root=root,
            directory=directory,
            file_name=file_name,
            message_id=message_id,
            media_pending=offer_media,
            subdirs_pending=offer_subdirs,
        )
        self._store.register(token, task)
        return task

    async def handle_action(self, action: str, token: str) -> DirectoryTask:
        """Apply a button press to the directory task registered under token.

        Raises:
            InteractionNotFoundError: no directory task is pending for token.
        """
        task = self._store.peek(token)
        if not isinstance(task, DirectoryTask):
            raise InteractionNotFoundError(token)

        if action == ACTION_SEND_MEDIA and task.media_pending:
            task.media_pending = False
            logger.info("Sending files from %s", task.directory)
            for path in summarize(task.directory).files:
                await self.send_file(task.chat_id, path)
        elif action == ACTION_EXPLORE_SUBDIRS and task.subdirs_pending:
            task.subdirs_pending = False
            for subdir in summarize(task.directory).subdirs:
                await self._prompt_directory(task.root, subdir, task.chat_id, task.file_name)
        elif action == ACTION_IGNORE:
            task.media_pending = False
            task.subdirs_pending = False
        else:
            logger.info("Ignoring repeated %s for %s", action, token)

        if task.finished:
            self._store.resolve(token)
            if task.message_id is not None:
                await self._delete_prompt(task.chat_id, task.message_id)
            await self._finish_if_done(task.root, task.chat_id, task.file_name)
        return task

    async def _finish_if_done(self, root: Path, chat_id: int, file_name: str) -> None:
        if self._store.pending_for_root(root):
            return
        await self._finish(root, chat_id, file_name)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    async def _finish(self, root: Path, chat_id: int, file_name: str) -> None:
        cleanup(root)
        logger.info("Cleanup completed for %s", file_name)
        await self.send_text(chat_id, format_cleanup_completed(file_name))


def cleanup(root: Path) -> None:
    """Delete an extraction root recursively; missing roots are ignored."""
    root = Path(root)
    if root.exists():
        try:
            shutil.rmtree(root)
        except OSError:
            logger.warning("Failed to clean up extraction dir: %s", root)
