"""Filesystem sandbox for tool-mediated file access.

Every path a tool touches goes through ``Sandbox.resolve``: the path is
joined to the workspace root, normalized and symlink-resolved, and only then
checked for containment.
"""

import os
from pathlib import Path


class SandboxError(Exception):
    """Base exception for sandbox failures."""


class AccessDeniedError(SandboxError):
    """Raised when a path resolves outside the workspace root."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = str(path)
        super().__init__(f"Access denied: '{self.path}' is outside the workspace")


class TooLargeError(SandboxError):
    """Raised when a file exceeds the readable size bound."""

    def __init__(self, path: str | os.PathLike[str], size: int, limit: int):
        self.path = str(path)
        self.size = size
        self.limit = limit
        super().__init__(f"'{self.path}' is {size} bytes, above the {limit} byte limit")


class Sandbox:
    """Confines path resolution and reads to one workspace root."""

    def __init__(self, root: Path, max_file_bytes: int = 100_000) -> None:
        """Initialize the sandbox.

        Args:
            root: Workspace root; resolved once here
            max_file_bytes: Default bound for read_bounded
        """
        self._root = Path(root).resolve()
        self._max_file_bytes = max_file_bytes

    @property
    def root(self) -> Path:
        return self._root

    @property
    def max_file_bytes(self) -> int:
        return self._max_file_bytes

    def resolve(self, path: str | os.PathLike[str]) -> Path:
        """Resolve a relative or absolute path inside the workspace.

        Args:
            path: Path relative to the root, or absolute

        Returns:
            Absolute, normalized, symlink-resolved path

        Raises:
            AccessDeniedError: If the resolved path is not under the root
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        # resolve() collapses ".." and follows symlinks before the containment check
        resolved = candidate.resolve()
        if not resolved.is_relative_to(self._root):
            raise AccessDeniedError(path)
        return resolved

    def relative(self, path: Path) -> str:
        """Display form of a resolved path, relative to the root ("." for the root)."""
        relative = path.relative_to(self._root).as_posix()
        return relative or "."

    def read_bounded(self, path: str | os.PathLike[str], max_bytes: int | None = None) -> str:
        """Read a text file if it is within the size bound.

        Args:
            path: Path relative to the root, or absolute
            max_bytes: Size bound; defaults to the sandbox's max_file_bytes

        Returns:
            File content decoded as UTF-8 (undecodable bytes replaced)

        Raises:
            AccessDeniedError: If the path escapes the workspace
            TooLargeError: If the file exceeds the bound
            FileNotFoundError: If the file does not exist
            IsADirectoryError: If the path is a directory
        """
        limit = self._max_file_bytes if max_bytes is None else max_bytes
        resolved = self.resolve(path)
        if resolved.is_dir():
            raise IsADirectoryError(str(path))
        size = resolved.stat().st_size
        if size > limit:
            raise TooLargeError(self.relative(resolved), size, limit)
        return resolved.read_text(encoding="utf-8", errors="replace")
