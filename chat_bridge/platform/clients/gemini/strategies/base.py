"""Base response strategy interface.

Defines the source protocol shared by the streaming and turn strategies.
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol

from chat_bridge.platform.clients.gemini.parsing import ParsedElement


class ElementSource(Protocol):
    """Issues one provider call and yields its parsed response elements."""

    def elements(self, payload: dict[str, Any]) -> AsyncIterator[ParsedElement]:
        """Send the payload and yield each response element as it completes.

        Args:
            payload: Request body

        Yields:
            ParsedElement objects in arrival order
        """
        ...
