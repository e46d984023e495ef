"""Package entry point for ``python -m archive_relay``.

WHY: Users start the bot with ``python -m archive_relay`` next to a .env
file holding BOT_TOKEN.

HOW: Delegates to the CLI's main() function.
"""

from archive_relay.cli import main

if __name__ == "__main__":
    main()
