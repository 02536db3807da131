"""Outbound request payload construction.

Translates the framework-agnostic conversation into Gemini ``contents``,
adding function declarations, generation parameters and safety settings.
"""

from collections.abc import Sequence
from typing import Any

from chat_bridge.platform.agent.messages import Message
from chat_bridge.platform.clients.gemini.config import GeminiClientConfig


def _message_parts(message: Message) -> list[dict[str, Any]]:
    if message.role == "tool":
        return [
            {
                "functionResponse": {
                    "name": message.name or "",
                    "response": {"name": message.name or "", "content": message.content},
                }
            }
        ]
    parts: list[dict[str, Any]] = []
    if message.content:
        parts.append({"text": message.content})
    for call in message.tool_calls:
        parts.append({"functionCall": {"name": call.name, "args": call.arguments_dict()}})
    return parts


def _provider_role(message: Message) -> str:
    # Function responses are sent back on the user side of the conversation
    return "model" if message.role == "assistant" else "user"


def build_contents(conversation: Sequence[Message]) -> list[dict[str, Any]]:
    """Convert the conversation to provider contents.

    Consecutive tool messages are merged into one content so that all calls
    from a single model turn are answered together.

    Args:
        conversation: Ordered conversation messages

    Returns:
        List of {"role", "parts"} dicts in conversation order
    """
    contents: list[dict[str, Any]] = []
    previous_role: str | None = None
    for message in conversation:
        parts = _message_parts(message)
        if not parts:
            # The provider rejects contents without parts
            parts = [{"text": ""}]
        if message.role == "tool" and previous_role == "tool":
            contents[-1]["parts"].extend(parts)
        else:
            contents.append({"role": _provider_role(message), "parts": parts})
        previous_role = message.role
    return contents


def build_payload(
    config: GeminiClientConfig,
    conversation: Sequence[Message],
    tools: Sequence[dict[str, Any]] = (),
    system_prompt: str | None = None,
) -> dict[str, Any]:
    """Build the full request body for one provider call.

    Args:
        config: Client configuration holding generation parameters
        conversation: Ordered conversation messages
        tools: Function declarations; omitted from the payload when empty
        system_prompt: Optional system instructions

    Returns:
        JSON-serializable request body
    """
    payload: dict[str, Any] = {
        "contents": build_contents(conversation),
        "generationConfig": {
            "temperature": config.temperature,
            "maxOutputTokens": config.max_output_tokens,
        },
        "safetySettings": [dict(setting) for setting in config.safety_settings],
    }
    if tools:
        payload["tools"] = [{"functionDeclarations": list(tools)}]
    if system_prompt:
        payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
    return payload
