"""Bot layer: update handlers, delivery engine, and the dispatch loop.

WHY: Everything that reacts to chat events lives here; the api and core
packages stay free of chat workflow logic.

RULES:
- Collaborators (client, store, delivery) are passed in, never global
- Runnable as: python -m archive_relay
"""

from archive_relay.bot.delivery import DeliveryEngine
from archive_relay.bot.handlers import UpdateHandler
from archive_relay.bot.loop import Backoff, DispatchLoop, LoopState

__all__ = ["Backoff", "DeliveryEngine", "DispatchLoop", "LoopState", "UpdateHandler"]
