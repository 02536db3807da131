"""Streaming response strategy.

Yields parts as soon as the element carrying them has been parsed.
"""

from collections.abc import AsyncIterator
from typing import Any

from chat_bridge.platform.agent.messages import Part
from chat_bridge.platform.clients.gemini.strategies.base import ElementSource


class StreamingStrategy:
    """Forward each part to the caller as soon as it arrives.

    Suitable when no function call is expected to interrupt the turn, so
    text can reach the client before the provider has finished.
    """

    def __init__(self, source: ElementSource):
        """Initialize the strategy.

        Args:
            source: The element source to read from.
        """
        self._source = source

    async def execute_stream(self, payload: dict[str, Any]) -> AsyncIterator[Part]:
        async for element in self._source.elements(payload):
            for part in element.parts:
                yield part
