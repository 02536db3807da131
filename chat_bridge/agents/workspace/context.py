"""Per-request workspace resolution from client hints."""

import os
from pathlib import Path

import structlog

from chat_bridge.platform.agent.messages import WorkspaceContext
from chat_bridge.platform.settings import WorkspaceSettings

logger = structlog.get_logger(__name__)


def _as_path(hint: str | None, base: Path) -> Path | None:
    if not hint or not hint.strip():
        return None
    path = Path(os.path.expanduser(hint.strip()))
    if not path.is_absolute():
        path = base / path
    try:
        return path.resolve()
    except (OSError, RuntimeError):
        # Unresolvable hints (symlink loops, bad encodings) are ignored
        return None


def resolve_workspace_context(
    working_directory: str | None,
    current_file: str | None,
    settings: WorkspaceSettings,
) -> WorkspaceContext:
    """Pick the directory tool access is confined to for one request.

    In order of preference: the directory of the current file when it exists
    and lies inside the server root; the client's working directory when it
    exists and is a directory; the server root.

    Args:
        working_directory: Client-declared working directory, if any
        current_file: File open in the client's editor, if any
        settings: Workspace settings holding the server root

    Returns:
        The request's WorkspaceContext
    """
    server_root = settings.root.resolve()
    working_dir = _as_path(working_directory, server_root)
    file_base = working_dir if working_dir is not None and working_dir.is_dir() else server_root
    file_path = _as_path(current_file, file_base)

    if file_path is not None and file_path.is_file() and file_path.is_relative_to(server_root):
        return WorkspaceContext(root=file_path.parent, current_file=file_path)

    if working_dir is not None and working_dir.is_dir():
        if settings.allow_external_working_directory or working_dir.is_relative_to(server_root):
            inside = (
                file_path is not None
                and file_path.is_file()
                and file_path.is_relative_to(working_dir)
            )
            return WorkspaceContext(root=working_dir, current_file=file_path if inside else None)
        logger.warning(
            "Ignoring working directory outside the server root",
            working_directory=str(working_dir),
        )

    return WorkspaceContext(root=server_root)
