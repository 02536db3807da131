"""Tool registry: declarations offered to the model and dispatch of its calls.

The registry is the boundary between the orchestration loop and local file
access. ``execute`` never raises; unknown tools and unexpected failures come
back as textual results that are fed to the model like any other.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from time import monotonic
from typing import Any

import structlog

from chat_bridge.agents.workspace.tools.context import ToolContext
from chat_bridge.agents.workspace.tools.files import list_directory, read_file, search_files
from chat_bridge.platform.agent.messages import ToolCall, ToolResult
from chat_bridge.platform.observability.metrics import ToolCallLabels, record_tool_call

logger = structlog.get_logger(__name__)

type ToolHandler = Callable[[Mapping[str, Any], ToolContext], ToolResult]


@dataclass(frozen=True)
class ToolParameter:
    name: str
    description: str
    required: bool = False


@dataclass(frozen=True)
class Tool:
    """A named capability the model can call.

    Attributes:
        name: Function name exposed to the model
        description: What the tool does, shown to the model
        handler: Function of (arguments, context) returning a ToolResult
        parameters: String parameters accepted by the tool
    """

    name: str
    description: str
    handler: ToolHandler
    parameters: tuple[ToolParameter, ...] = field(default_factory=tuple)

    def declaration(self) -> dict[str, Any]:
        """Function declaration in the provider's schema dialect."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "OBJECT",
                "properties": {
                    param.name: {"type": "STRING", "description": param.description}
                    for param in self.parameters
                },
                "required": [param.name for param in self.parameters if param.required],
            },
        }


WORKSPACE_TOOLS = (
    Tool(
        name="read_file",
        description=(
            "Read the contents of a file in the workspace. "
            "Use this to inspect source code before answering questions about it."
        ),
        handler=read_file,
        parameters=(
            ToolParameter(
                "path", "File path relative to the workspace root, e.g. src/Main.java", True
            ),
        ),
    ),
    Tool(
        name="list_directory",
        description="List the files and subdirectories directly inside a workspace directory.",
        handler=list_directory,
        parameters=(
            ToolParameter(
                "path", "Directory path relative to the workspace root; empty for the root"
            ),
        ),
    ),
    Tool(
        name="search_files",
        description=(
            "Find files by name anywhere under a directory. "
            "Matches a case-insensitive substring, or a glob such as *.java."
        ),
        handler=search_files,
        parameters=(
            ToolParameter("pattern", "Substring or glob to match against file names", True),
            ToolParameter(
                "directory", "Directory to search, relative to the workspace root; default root"
            ),
        ),
    ),
)


class ToolRegistry:
    """Fixed set of tools addressable by name."""

    def __init__(self, tools: Iterable[Tool]):
        self._tools = {tool.name: tool for tool in tools}

    @classmethod
    def default(cls) -> "ToolRegistry":
        return cls(WORKSPACE_TOOLS)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def declarations(self) -> list[dict[str, Any]]:
        return [tool.declaration() for tool in self._tools.values()]

    def describe(self) -> list[tuple[str, str]]:
        """(name, description) pairs for the system prompt."""
        return [(tool.name, tool.description) for tool in self._tools.values()]

    def execute(self, call: ToolCall, context: ToolContext) -> ToolResult:
        """Run one tool call.

        Args:
            call: The function call requested by the model
            context: Workspace, sandbox and limits for this request

        Returns:
            The tool's result, or a textual error result; never raises
        """
        tool = self._tools.get(call.name)
        if tool is None:
            logger.warning("Model requested an unknown tool", tool_name=call.name)
            record_tool_call(ToolCallLabels(call.name, "unknown"), duration=0.0)
            available = ", ".join(self._tools)
            return ToolResult(f"Error: unknown function '{call.name}'. Available functions: {available}.")

        start_time = monotonic()
        try:
            result = tool.handler(call.arguments, context)
        except Exception as e:
            record_tool_call(ToolCallLabels(call.name, "error"), duration=monotonic() - start_time)
            logger.exception("Tool execution failed", tool_name=call.name)
            return ToolResult(f"Error: {call.name} failed: {e!s}")

        record_tool_call(ToolCallLabels(call.name, "ok"), duration=monotonic() - start_time)
        logger.debug(
            "Tool executed",
            tool_name=call.name,
            result_chars=len(result.text),
            truncated=result.truncated,
        )
        return result
