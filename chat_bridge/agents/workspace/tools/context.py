"""Execution context handed to every tool."""

from dataclasses import dataclass

from chat_bridge.agents.workspace.tools.sandbox import Sandbox
from chat_bridge.platform.agent.config import SandboxConfig
from chat_bridge.platform.agent.messages import WorkspaceContext


@dataclass(frozen=True)
class ToolContext:
    """Workspace, sandbox and limits for one request.

    Attributes:
        workspace: The request's resolved workspace context
        sandbox: Sandbox rooted at the workspace root
        limits: Size and result-count bounds
    """

    workspace: WorkspaceContext
    sandbox: Sandbox
    limits: SandboxConfig

    @classmethod
    def for_workspace(cls, workspace: WorkspaceContext, limits: SandboxConfig) -> "ToolContext":
        return cls(
            workspace=workspace,
            sandbox=Sandbox(workspace.root, max_file_bytes=limits.max_file_bytes),
            limits=limits,
        )
