"""Fixtures for workspace agent tests: a small on-disk project and its tool context."""

from pathlib import Path

import pytest

from chat_bridge.agents.workspace.tools import ToolContext
from chat_bridge.platform.agent.config import SandboxConfig
from chat_bridge.platform.agent.messages import WorkspaceContext
from chat_bridge.platform.settings import DEFAULT_EXCLUDED_DIRS


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    """Create a workspace with sources, a hidden dir and a build dir.

    Layout:
        A.java, B.java, README.md
        src/Main.java, src/util/Helper.java
        .git/config.java         (hidden, never searched)
        target/Compiled.java     (excluded, never searched)
    """
    root = tmp_path / "project"
    (root / "src" / "util").mkdir(parents=True)
    (root / ".git").mkdir()
    (root / "target").mkdir()
    (root / "A.java").write_text("class A {}\n")
    (root / "B.java").write_text("class B {\n    int x;\n}\n")
    (root / "README.md").write_text("# Project\n")
    (root / "src" / "Main.java").write_text("public class Main {}\n")
    (root / "src" / "util" / "Helper.java").write_text("class Helper {}\n")
    (root / ".git" / "config.java").write_text("hidden\n")
    (root / "target" / "Compiled.java").write_text("compiled\n")
    return root.resolve()


@pytest.fixture
def sandbox_limits() -> SandboxConfig:
    return SandboxConfig(
        max_file_bytes=1_000,
        max_search_results=20,
        excluded_dirs=DEFAULT_EXCLUDED_DIRS,
    )


@pytest.fixture
def tool_context(workspace_root: Path, sandbox_limits: SandboxConfig) -> ToolContext:
    return ToolContext.for_workspace(WorkspaceContext(root=workspace_root), sandbox_limits)
