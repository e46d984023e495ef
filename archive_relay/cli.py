"""Command-line entry point that starts the bot.

WHY: The bot runs as a long-lived process next to the local Bot API
server. Operators need one command that reads the .env file, lets them
override the server URL, work directory, and delivery mode, checks the
server is reachable, and then polls forever.

HOW: argparse flags default to the values from config (which python-dotenv
fills from .env). main() configures logging, loads the token, and runs
run_bot() with asyncio.run(). run_bot() wires the client, interaction
store, delivery engine, handler, and dispatch loop together, calls getMe
as a health check, and enters the loop.

RULES:
- A missing BOT_TOKEN exits with status 1 before any request is made
- A failing getMe health check exits with status 1
- Ctrl+C exits with status 130
- Log output goes to stderr
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import httpx

from archive_relay.api.client import BotAPIClient, BotAPIError
from archive_relay.bot.delivery import DeliveryEngine
from archive_relay.bot.handlers import UpdateHandler
from archive_relay.bot.loop import DispatchLoop
from archive_relay.config import (
    BOT_API_BASE_URL,
    DELIVERY_MODE,
    DELIVERY_MODES,
    POLL_TIMEOUT_S,
    SKIP_BACKLOG,
    UNZIP_DIR,
    load_bot_token,
)
from archive_relay.core.correlator import InteractionStore

logger = logging.getLogger(__name__)


class StartupError(Exception):
    """Raised when the Bot API server fails the startup health check."""


async def run_bot(
    token: str,
    base_url: str,
    work_dir: Path,
    interactive: bool = True,
    poll_timeout: int = 30,
    skip_backlog: bool = True,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Wire up the bot and poll until stop_event is set (or forever).

    Raises:
        StartupError: getMe failed, so the server is unreachable or the
            token is rejected.
    """
    work_dir = Path(work_dir)
    work_dir.mkdir(parents=True, exist_ok=True)

    async with BotAPIClient(token=token, base_url=base_url, poll_timeout=poll_timeout) as client:
        try:
            me = await client.get_me()
        except (httpx.HTTPError, BotAPIError) as e:
            raise StartupError("Error starting the bot: {}".format(e)) from e
        logger.info('Bot "%s" is running...', me.username)

        store = InteractionStore()
        delivery = DeliveryEngine(client, store, work_dir, interactive=interactive)
        handler = UpdateHandler(client, store, delivery, work_dir)
        loop = DispatchLoop(
            client,
            handler,
            poll_timeout=poll_timeout,
            skip_backlog=skip_backlog,
        )
        await loop.run_forever(stop_event)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() keeps the flags
    testable without starting the bot.
    """
    parser = argparse.ArgumentParser(
        prog="archive_relay",
        description="Relay the photos and videos inside uploaded .zip/.rar "
                    "archives back to the chat, via a local Bot API server.",
    )

    parser.add_argument(
        "--base-url",
        default=BOT_API_BASE_URL,
        help="Base URL of the local Bot API server (default: %(default)s).",
    )

    parser.add_argument(
        "--work-dir",
        default=UNZIP_DIR,
        help="Directory archives are extracted into (default: %(default)s).",
    )

    parser.add_argument(
        "--mode",
        choices=DELIVERY_MODES,
        default=DELIVERY_MODE if DELIVERY_MODE in DELIVERY_MODES else "interactive",
        help="interactive: ask per directory before sending; "
             "automatic: send everything (default: %(default)s).",
    )

    parser.add_argument(
        "--poll-timeout",
        type=int,
        default=POLL_TIMEOUT_S,
        help="Long-poll timeout in seconds (default: %(default)s).",
    )

    parser.add_argument(
        "--skip-backlog",
        action=argparse.BooleanOptionalAction,
        default=SKIP_BACKLOG,
        help="Skip updates that arrived while the bot was down (default: %(default)s).",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: %(default)s).",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m archive_relay`` and the archive-relay script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        token = load_bot_token()
    except ValueError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(run_bot(
            token=token,
            base_url=args.base_url,
            work_dir=Path(args.work_dir),
            interactive=args.mode == "interactive",
            poll_timeout=args.poll_timeout,
            skip_backlog=args.skip_backlog,
        ))
    except StartupError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nStopped by user.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
