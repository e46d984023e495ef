"""Archive Relay Bot: unpacks chat archive uploads and sends the media back.

WHY: Phones cannot open .zip or .rar archives inside a chat. Users forward
an archive to the bot, and the bot downloads it through a locally hosted
Bot API server (no 20 MB limit), extracts it, and sends the photos and
videos inside back to the chat, directory by directory.

HOW: Three layers. api holds the async Bot API client and wire models.
core classifies files, extracts archives, and keeps pending interactions.
bot reacts to updates and drives delivery from the dispatch loop.

RULES:
- All pending prompts live in memory and are lost on restart
- Updates are handled one at a time, in arrival order
"""

__version__ = "0.1.0"
