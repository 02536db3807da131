"""Framework-agnostic message, turn and event types.

These types are created fresh for every chat request and define the common
vocabulary shared by the provider client, the tool registry, the
orchestration loop and the event emitter.
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal

Role = Literal["user", "assistant", "tool"]


@dataclass(frozen=True)
class ToolCall:
    """A function-call request parsed from a provider turn.

    Attributes:
        name: Name of the requested tool
        arguments: Read-only mapping of argument names to values
    """

    name: str
    arguments: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def create(cls, name: str, arguments: dict[str, Any] | None = None) -> "ToolCall":
        return cls(name=name, arguments=MappingProxyType(dict(arguments or {})))

    def arguments_dict(self) -> dict[str, Any]:
        return dict(self.arguments)


@dataclass(frozen=True)
class TextPart:
    """A text fragment from a provider turn."""

    text: str


type Part = TextPart | ToolCall


@dataclass(frozen=True)
class Message:
    """One entry of the conversation sent to the provider.

    Attributes:
        role: "user", "assistant" (the provider's own turns) or "tool"
        content: Message text; for tool messages the tool's result text
        tool_calls: Function calls issued in an assistant turn
        name: Tool name (for tool messages)
    """

    role: Role
    content: str
    tool_calls: tuple[ToolCall, ...] = ()
    name: str | None = None

    @classmethod
    def tool_response(cls, call: ToolCall, result: "ToolResult") -> "Message":
        return cls(role="tool", content=result.text, name=call.name)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a tool execution.

    Failures are encoded as descriptive text so the model can react to them
    conversationally; there is no separate error variant.
    """

    text: str
    truncated: bool = False


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class Turn:
    """One complete provider response, parts kept in provider order."""

    parts: tuple[Part, ...] = ()
    usage: TokenUsage = TokenUsage()
    finish_reason: str | None = None

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [part for part in self.parts if isinstance(part, ToolCall)]

    @property
    def texts(self) -> list[str]:
        """Non-empty text fragments, in order."""
        return [part.text for part in self.parts if isinstance(part, TextPart) and part.text]

    @property
    def is_empty(self) -> bool:
        return not self.tool_calls and not self.texts

    def to_message(self) -> Message:
        """Represent this turn as an assistant message for the next provider call."""
        return Message(
            role="assistant",
            content="".join(self.texts),
            tool_calls=tuple(self.tool_calls),
        )


@dataclass(frozen=True)
class WorkspaceContext:
    """Per-request filesystem context.

    Attributes:
        root: Directory tool access is confined to for this request
        current_file: File open in the editor, if known and inside root
    """

    root: Path
    current_file: Path | None = None


# =============================================================================
# Stream events
# =============================================================================


@dataclass(frozen=True)
class TextEvent:
    fragment: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "text", "chunk": self.fragment, "done": False}


@dataclass(frozen=True)
class ToolUseEvent:
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return {"type": "tool_use", "tool": self.name, "args": self.arguments, "done": False}


@dataclass(frozen=True)
class ToolResultEvent:
    name: str
    summary: str
    truncated: bool = False

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": "tool_result",
            "tool": self.name,
            "result": self.summary,
            "truncated": self.truncated,
            "done": False,
        }


@dataclass(frozen=True)
class ErrorEvent:
    message: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "error", "error": self.message, "done": False}


@dataclass(frozen=True)
class DoneEvent:
    def to_wire(self) -> dict[str, Any]:
        return {"type": "done", "done": True}


type StreamEvent = TextEvent | ToolUseEvent | ToolResultEvent | ErrorEvent | DoneEvent
