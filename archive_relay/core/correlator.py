"""In-memory store of prompts that are waiting for a user's answer.

WHY: The bot asks questions (a yes/no poll after an archive download, a
button keyboard under each directory summary) and gets the answer back
as a separate update much later. The store links the answer's token to
the file and chat the question was about.

HOW: Two record types share one dict keyed by token:
  PendingInteraction : a poll about a downloaded archive (token = poll id)
  DirectoryTask      : a directory summary awaiting its two decisions
                       (token = callback token, see bot.messages)
The store is a plain object owned by whoever builds the bot and passed
into the handlers; there is no module-level state.

RULES:
- At most one record per token; registering a pending token raises
- resolve() removes the record in the same step it returns it
- resolve() on an unknown token raises InteractionNotFoundError
- No locking: only the dispatch loop's single task touches the store
- Records are lost on restart (the prompts become unanswerable)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class InteractionNotFoundError(LookupError):
    """Raised when an answer arrives for a token that is not pending."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"No pending interaction for token {token!r}")


class DuplicateInteractionError(ValueError):
    """Raised when a token is registered while already pending."""


@dataclass
class PendingInteraction:
    """A yes/no poll about a downloaded archive.

    RULES:
    - token is the poll id returned by sendPoll
    - file_path is where the Bot API server stored the archive
    - file_name is the archive name as uploaded by the user
    """

    token: str
    file_path: str
    file_name: str
    chat_id: int


@dataclass
class DirectoryTask:
    """A directory summary waiting for "send media" / "explore" decisions.

    WHY: Interactive delivery suspends after each summary. Instead of
    capturing loop state in closures, everything needed to resume is kept
    in this record.

    RULES:
    - root is the extraction root of the archive this directory belongs to
    - directory is the absolute path of the summarized directory
    - message_id is the summary message carrying the buttons (None until sent)
    - the task is finished when both *_pending flags are False
    """

    token: str
    chat_id: int
    root: Path
    directory: Path
    file_name: str
    message_id: Optional[int] = None
    media_pending: bool = True
    subdirs_pending: bool = True

    @property
    def finished(self) -> bool:
        return not (self.media_pending or self.subdirs_pending)


Interaction = Union[PendingInteraction, DirectoryTask]


class InteractionStore:
    """Owns every pending interaction of a running bot."""

    def __init__(self) -> None:
        self._pending: Dict[str, Interaction] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, token: object) -> bool:
        return token in self._pending

    def register(self, token: str, payload: Interaction) -> None:
        if token in self._pending:
            raise DuplicateInteractionError(
                f"Interaction {token!r} is already pending"
            )
        self._pending[token] = payload
        logger.debug("Registered interaction %s (%d pending)", token, len(self._pending))

    def resolve(self, token: str) -> Interaction:
        """Remove and return the interaction for token.

        Raises:
            InteractionNotFoundError: token was never registered or was
                already resolved.
        """
        try:
            payload = self._pending.pop(token)
        except KeyError:
            raise InteractionNotFoundError(token) from None
        logger.debug("Resolved interaction %s (%d pending)", token, len(self._pending))
        return payload

    def peek(self, token: str) -> Optional[Interaction]:
        """Return the interaction for token without removing it, or None."""
        return self._pending.get(token)

    def pending_for_root(self, root: Path) -> List[DirectoryTask]:
        """Return the directory tasks still open for one extraction root."""
        return [
            task for task in self._pending.values()
            if isinstance(task, DirectoryTask) and task.root == root
        ]
