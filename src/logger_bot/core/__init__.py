"""Core bot logic.

This module exports:
- decode: Realtime frame decoder
- EventDispatcher: Routes application events to the logger command set

The orchestrator lives in ``logger_bot.core.bot``; it depends on the Slack
adapters, which in turn use the decoder.
"""

from logger_bot.core.decoder import decode
from logger_bot.core.dispatcher import DispatchResult, EventDispatcher

__all__ = [
    "DispatchResult",
    "EventDispatcher",
    "decode",
]
