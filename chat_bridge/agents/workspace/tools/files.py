"""Workspace file tools: read_file, list_directory and search_files.

Each tool is a plain function of (arguments, ToolContext) returning a
ToolResult. Sandbox failures and missing files are reported as text; the
registry converts anything unexpected the same way.
"""

import fnmatch
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from chat_bridge.agents.workspace.tools.context import ToolContext
from chat_bridge.agents.workspace.tools.sandbox import AccessDeniedError, TooLargeError
from chat_bridge.platform.agent.messages import ToolResult

GLOB_CHARS = frozenset("*?[")


def _string_arg(arguments: Mapping[str, Any], name: str, default: str | None = None) -> str | None:
    value = arguments.get(name, default)
    if value is None:
        return default
    if not isinstance(value, str):
        return str(value)
    return value


def _fence(content: str) -> str:
    fence = "```"
    while fence in content:
        fence += "`"
    return fence


def read_file(arguments: Mapping[str, Any], context: ToolContext) -> ToolResult:
    """Return a file's content with its relative path and line count."""
    path = _string_arg(arguments, "path")
    if not path:
        return ToolResult("Error: read_file requires a 'path' argument.")

    sandbox = context.sandbox
    try:
        resolved = sandbox.resolve(path)
        content = sandbox.read_bounded(resolved)
    except AccessDeniedError:
        return ToolResult(f"Access denied: '{path}' is outside the workspace and cannot be read.")
    except TooLargeError as e:
        return ToolResult(
            f"File '{e.path}' is too large to read ({e.size} bytes, limit {e.limit} bytes). "
            "Ask the user for the relevant section or search for a more specific file.",
            truncated=True,
        )
    except FileNotFoundError:
        return ToolResult(f"Error: File not found: '{path}'.")
    except IsADirectoryError:
        return ToolResult(f"Error: '{path}' is a directory. Use list_directory to see its contents.")

    line_count = len(content.splitlines())
    fence = _fence(content)
    return ToolResult(
        f"File: {sandbox.relative(resolved)} ({line_count} lines)\n{fence}\n{content}\n{fence}"
    )


def list_directory(arguments: Mapping[str, Any], context: ToolContext) -> ToolResult:
    """List the immediate children of a directory, sorted case-insensitively."""
    path = _string_arg(arguments, "path", "") or ""
    sandbox = context.sandbox
    try:
        resolved = sandbox.resolve(path or ".")
    except AccessDeniedError:
        return ToolResult(f"Access denied: '{path}' is outside the workspace.")

    if not resolved.exists():
        return ToolResult(f"Error: Directory not found: '{path}'.")
    if not resolved.is_dir():
        return ToolResult(f"Error: '{path}' is not a directory. Use read_file to read it.")

    entries = sorted(resolved.iterdir(), key=lambda entry: entry.name.lower())
    lines = [f"Contents of {sandbox.relative(resolved)}:"]
    if not entries:
        lines.append("(empty directory)")
    for entry in entries:
        if entry.is_dir():
            lines.append(f"[DIR]  {entry.name}/")
        else:
            lines.append(f"[FILE] {entry.name}")
    return ToolResult("\n".join(lines))


def _matcher(pattern: str):
    needle = pattern.lower()
    if GLOB_CHARS & set(needle):
        return lambda name: fnmatch.fnmatchcase(name.lower(), needle)
    return lambda name: needle in name.lower()


def _is_pruned(name: str, excluded: frozenset[str]) -> bool:
    return name.startswith(".") or name in excluded


def search_files(arguments: Mapping[str, Any], context: ToolContext) -> ToolResult:
    """Find files whose name matches a substring or glob pattern.

    The walk skips hidden and excluded directories and stops as soon as the
    result cap is reached.
    """
    pattern = (_string_arg(arguments, "pattern") or "").strip()
    if not pattern:
        return ToolResult("Error: search_files requires a non-empty 'pattern' argument.")
    directory = _string_arg(arguments, "directory", "") or ""

    sandbox = context.sandbox
    try:
        top = sandbox.resolve(directory or ".")
    except AccessDeniedError:
        return ToolResult(f"Access denied: '{directory}' is outside the workspace.")
    if not top.is_dir():
        return ToolResult(f"Error: Directory not found: '{directory}'.")

    excluded = context.limits.excluded_dirs
    if any(_is_pruned(part, excluded) for part in top.relative_to(sandbox.root).parts):
        return ToolResult(
            f"Error: '{directory}' is a hidden or excluded directory and is not searched."
        )

    limit = context.limits.max_search_results
    matches = _matcher(pattern)
    found: list[str] = []

    for dirpath, dirnames, filenames in os.walk(top):
        # Pruning in place keeps os.walk out of these directories entirely
        dirnames[:] = sorted(d for d in dirnames if not _is_pruned(d, excluded))
        for filename in sorted(filenames):
            if matches(filename):
                found.append(sandbox.relative(Path(dirpath) / filename))
                if len(found) >= limit:
                    break
        if len(found) >= limit:
            break

    if not found:
        return ToolResult(f"No files matching '{pattern}' found.")

    limited = len(found) >= limit
    lines = [f"Found {len(found)} file(s) matching '{pattern}':", *found]
    if limited:
        lines.append(f"(stopped after {limit} results; narrow the pattern to see more)")
    return ToolResult("\n".join(lines), truncated=limited)
