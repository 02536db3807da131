"""Incremental parsing of the provider's streamed response.

``streamGenerateContent`` answers with one JSON array whose elements arrive
over time, split across arbitrary HTTP chunk boundaries. ``JsonArrayDecoder``
turns that byte stream back into complete elements as soon as each one is
closed, and ``parse_response_element`` extracts text and function-call parts
from an element, skipping anything that is missing or mistyped.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from chat_bridge.platform.agent.messages import Part, TextPart, TokenUsage, ToolCall
from chat_bridge.platform.clients.gemini.exceptions import ProviderProtocolError

logger = logging.getLogger(__name__)


def navigate(node: Any, *path: str | int) -> Any:
    """Follow a path of dict keys and list indexes, returning None at the first gap.

    Example:
        navigate(element, "candidates", 0, "content", "parts")
    """
    for key in path:
        if isinstance(key, int):
            if not isinstance(node, list) or not -len(node) <= key < len(node):
                return None
            node = node[key]
        else:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        if node is None:
            return None
    return node


def navigate_list(node: Any, *path: str | int) -> list[Any]:
    """Like navigate, but always returns a list (empty when absent or not a list)."""
    value = navigate(node, *path)
    return value if isinstance(value, list) else []


class JsonArrayDecoder:
    """Push decoder for a JSON array streamed in arbitrary text chunks.

    Elements are returned from ``feed`` as soon as they are complete. A body
    that is a bare JSON object (or several concatenated objects) instead of
    an array is accepted as well.
    """

    def __init__(self) -> None:
        self._decoder = json.JSONDecoder()
        self._buffer = ""
        self._started = False
        self._is_array = False
        self._ended = False

    def feed(self, text: str) -> list[Any]:
        """Add text to the buffer and return every element completed by it."""
        self._buffer += text
        return self._drain(final=False)

    def close(self) -> list[Any]:
        """Finish decoding at end of stream.

        Returns:
            Any element that could only be decided at end of input

        Raises:
            ProviderProtocolError: If the stream ended mid-element or the array was left open
        """
        items = self._drain(final=True)
        if self._buffer.strip():
            raise ProviderProtocolError(
                f"Response stream ended with an incomplete element: {self._buffer.strip()[:80]!r}"
            )
        if self._is_array and not self._ended:
            raise ProviderProtocolError("Response stream ended before the array was closed")
        return items

    def _drain(self, final: bool) -> list[Any]:
        items: list[Any] = []
        buffer = self._buffer
        pos = 0
        length = len(buffer)
        while True:
            while pos < length and buffer[pos].isspace():
                pos += 1
            if pos >= length:
                break

            char = buffer[pos]
            if not self._started:
                self._started = True
                if char == "[":
                    self._is_array = True
                    pos += 1
                    continue
            if self._ended:
                raise ProviderProtocolError("Unexpected data after the end of the response array")
            if self._is_array and char == "]":
                self._ended = True
                pos += 1
                continue
            if self._is_array and char == ",":
                pos += 1
                continue

            try:
                value, end = self._decoder.raw_decode(buffer, pos)
            except json.JSONDecodeError:
                # Incomplete element, wait for more input
                break
            if end == length and not final and not isinstance(value, (dict, list)):
                # A scalar at the end of the buffer may still be growing
                break
            items.append(value)
            pos = end

        self._buffer = buffer[pos:]
        return items


@dataclass
class ParsedElement:
    """Parts and metadata extracted from one response element."""

    parts: list[Part] = field(default_factory=list)
    usage: TokenUsage | None = None
    finish_reason: str | None = None


def parse_part(raw_part: Any) -> list[Part]:
    """Extract text and function-call parts from one raw provider part."""
    if navigate(raw_part, "thought") is True:
        return []

    parts: list[Part] = []
    text = navigate(raw_part, "text")
    if isinstance(text, str):
        parts.append(TextPart(text))

    function_call = navigate(raw_part, "functionCall")
    name = navigate(function_call, "name")
    if isinstance(name, str) and name:
        arguments = navigate(function_call, "args")
        if arguments is None:
            arguments = navigate(function_call, "arguments")
        if not isinstance(arguments, dict):
            arguments = {}
        parts.append(ToolCall.create(name, arguments))
    elif function_call is not None:
        logger.warning("Skipping function call without a name: %r", function_call)
    return parts


def parse_response_element(element: Any) -> ParsedElement:
    """Extract all parts from one element of the provider's response array.

    Missing ``candidates``, ``content`` or ``parts`` at any level are skipped.

    Raises:
        ProviderProtocolError: If the element is an upstream error object
    """
    parsed = ParsedElement()
    if not isinstance(element, dict):
        logger.warning("Skipping non-object response element of type %s", type(element).__name__)
        return parsed

    error = navigate(element, "error")
    if error is not None:
        message = navigate(error, "message")
        code = navigate(error, "code")
        raise ProviderProtocolError(
            message if isinstance(message, str) else json.dumps(error)[:200],
            error_code=code if isinstance(code, int) else None,
        )

    for candidate in navigate_list(element, "candidates"):
        for raw_part in navigate_list(candidate, "content", "parts"):
            parsed.parts.extend(parse_part(raw_part))
        finish_reason = navigate(candidate, "finishReason")
        if isinstance(finish_reason, str):
            parsed.finish_reason = finish_reason

    usage = navigate(element, "usageMetadata")
    if isinstance(usage, dict):
        prompt_tokens = navigate(usage, "promptTokenCount")
        output_tokens = navigate(usage, "candidatesTokenCount")
        parsed.usage = TokenUsage(
            input_tokens=prompt_tokens if isinstance(prompt_tokens, int) else 0,
            output_tokens=output_tokens if isinstance(output_tokens, int) else 0,
        )
    return parsed
