"""Response strategies for the Gemini client.

This module provides the two ways a provider response is consumed:
streaming (parts forwarded on arrival) and turn accumulation.
"""

from chat_bridge.platform.clients.gemini.strategies.base import ElementSource
from chat_bridge.platform.clients.gemini.strategies.streaming import StreamingStrategy
from chat_bridge.platform.clients.gemini.strategies.turn import TurnStrategy

__all__ = [
    "ElementSource",
    "StreamingStrategy",
    "TurnStrategy",
]
