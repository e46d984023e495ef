"""Long-poll dispatch loop: fetch updates, advance the cursor, route each one.

WHY: The bot has no webhook; it pulls updates from the Bot API server
with getUpdates and handles them one by one. The loop is the only place
that owns the update cursor and the only place that decides what happens
when fetching or handling fails.

HOW: DispatchLoop is an explicit state machine:
  IDLE        : between cycles, or waiting out a backoff delay
  POLLING     : a getUpdates call is in flight
  DISPATCHING : updates from the last batch are being handled
run_once() performs one POLLING → DISPATCHING → IDLE cycle; run_forever()
repeats it until an optional stop event is set. Network failures during
polling are retried after an exponential backoff delay; the sleep
function is injected so tests never wait.

RULES:
- The cursor is set to update_id + 1 before the update is handled, so a
  failing update is never redelivered
- The cursor never decreases
- Updates are decoded one at a time inside the per-update guard; a
  malformed update is logged and skipped
- A handler exception is logged and reported to the originating chat when
  there is one; it never stops the loop
- On the first cycle the backlog can be skipped (skip_backlog=True) so
  stale prompts from a previous run are not replayed
- Updates are handled strictly one at a time
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Dict

import httpx

from archive_relay.api.client import BotAPIClient, BotAPIError
from archive_relay.api.models import Update
from archive_relay.bot.delivery import SEND_ERRORS
from archive_relay.bot.handlers import UpdateHandler
from archive_relay.bot.messages import format_update_error

logger = logging.getLogger(__name__)

# Errors that make a getUpdates call worth retrying
_POLL_ERRORS = (httpx.HTTPError, BotAPIError)


class LoopState(str, enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    DISPATCHING = "dispatching"


@dataclass
class Backoff:
    """Exponential retry delay for failed polls.

    RULES:
    - First delay is initial_s, then grows by factor, capped at max_s
    - reset() after a successful poll starts over at initial_s
    """

    initial_s: float = 1.0
    factor: float = 2.0
    max_s: float = 60.0
    _failures: int = field(default=0, init=False, repr=False)

    def next_delay(self) -> float:
        delay = min(self.initial_s * (self.factor ** self._failures), self.max_s)
        self._failures += 1
        return delay

    def reset(self) -> None:
        self._failures = 0

    @property
    def failures(self) -> int:
        return self._failures


class DispatchLoop:
    """Owns the update cursor and drives UpdateHandler."""

    def __init__(
        self,
        client: BotAPIClient,
        handler: UpdateHandler,
        poll_timeout: int = 30,
        skip_backlog: bool = True,
        backoff: Backoff | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._handler = handler
        self._poll_timeout = poll_timeout
        self._skip_backlog = skip_backlog
        self._backoff = backoff or Backoff()
        self._sleep = sleep
        self._started = False
        self.offset = 0
        self.state = LoopState.IDLE

    def _advance(self, raw: Dict[str, Any]) -> None:
        update_id = raw.get("update_id")
        if isinstance(update_id, int):
            self.offset = max(self.offset, update_id + 1)
        else:
            logger.warning("Update without update_id: %s", raw)

    async def drain_backlog(self) -> int:
        """Fast-forward the cursor past every update already waiting.

        Returns the number of skipped updates.
        """
        skipped = 0
        while True:
            updates = await self._client.get_updates(offset=self.offset, timeout=0)
            if not updates:
                break
            for raw in updates:
                self._advance(raw)
            skipped += len(updates)
        if skipped:
            logger.info("Skipped %d pending update(s) from before startup", skipped)
        return skipped

    async def run_once(self) -> int:
        """Run one poll-and-dispatch cycle and return the number of updates handled.

        WHY: Exposed separately from run_forever so tests can step the loop.

        RULES:
        - A failed poll sleeps for the backoff delay and returns 0
        - A successful poll resets the backoff
        """
        self.state = LoopState.POLLING
        try:
            if not self._started and self._skip_backlog:
                await self.drain_backlog()
            self._started = True
            updates = await self._client.get_updates(
                offset=self.offset, timeout=self._poll_timeout
            )
        except _POLL_ERRORS as e:
            delay = self._backoff.next_delay()
            logger.error("Error receiving updates: %s (retrying in %.1fs)", e, delay)
            self.state = LoopState.IDLE
            await self._sleep(delay)
            return 0

        self._backoff.reset()
        self.state = LoopState.DISPATCHING
        try:
            for raw in updates:
                self._advance(raw)
                await self._dispatch(raw)
        finally:
            self.state = LoopState.IDLE
        return len(updates)

    async def _dispatch(self, raw: Dict[str, Any]) -> None:
        """Decode and handle one update; nothing raised here escapes the loop.

        An update that cannot be decoded has no known chat, so its failure
        is only logged.
        """
        update: Update | None = None
        try:
            update = Update.from_dict(raw)
            await self._handler.handle(update)
        except Exception as e:
            logger.exception("Error handling update %s", raw.get("update_id"))
            if update is not None:
                await self._report_failure(update, e)

    async def _report_failure(self, update: Update, error: Exception) -> None:
        """Best-effort failure notice to the chat the update came from.

        Poll updates carry no chat, so their failures are only logged.
        """
        chat_id = update.chat_id
        if chat_id is None:
            return
        try:
            await self._client.send_message(
                chat_id, format_update_error(error), parse_mode=None
            )
        except SEND_ERRORS:
            logger.exception("Failed to report error to chat %s", chat_id)

    async def run_forever(self, stop_event: asyncio.Event | None = None) -> None:
        logger.info("Dispatch loop started")
        while stop_event is None or not stop_event.is_set():
            await self.run_once()
        logger.info("Dispatch loop stopped at offset %d", self.offset)
