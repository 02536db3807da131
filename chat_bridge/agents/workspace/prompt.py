"""System prompt for the workspace assistant."""

from collections.abc import Sequence

from chat_bridge.platform.agent.messages import WorkspaceContext


def build_system_prompt(
    base_prompt: str,
    workspace: WorkspaceContext,
    tools: Sequence[tuple[str, str]] = (),
) -> str:
    """Append the request's workspace details to the configured instructions.

    Args:
        base_prompt: Configured assistant instructions
        workspace: Resolved workspace for the request
        tools: (name, description) pairs of the tools offered, if any

    Returns:
        The full system prompt
    """
    sections = [base_prompt.strip()] if base_prompt.strip() else []
    sections.append(f"Workspace root: {workspace.root}")
    if workspace.current_file is not None:
        relative = workspace.current_file.relative_to(workspace.root).as_posix()
        sections.append(f"The user currently has this file open: {relative}")
    if tools:
        lines = ["Available tools (paths are relative to the workspace root):"]
        lines.extend(f"- {name}: {description}" for name, description in tools)
        sections.append("\n".join(lines))
    return "\n\n".join(sections)
