"""Integration test fixtures.

This module provides shared fixtures for integration tests:
- A small on-disk workspace
- Settings pointing the service at that workspace and a fake upstream URL
- The full application (middleware + lifespan) behind a TestClient
- A respx router standing in for the upstream provider

The upstream provider is the only mocked collaborator; the orchestration
loop, the tools and the filesystem are real.
"""

from collections.abc import Generator
from pathlib import Path

import pytest
import respx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from chat_bridge.platform.server.app import create_app
from chat_bridge.platform.settings import (
    BridgeSettings,
    ProviderSettings,
    Settings,
    WorkspaceSettings,
)

BASE_URL = "https://gemini.test/v1beta"
MODEL = "gemini-test"
MAX_REQUEST_BYTES = 4_096


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    (root / "src").mkdir(parents=True)
    (root / "A.java").write_text("class A {}\n")
    (root / "B.java").write_text("class B {}\n")
    (root / "src" / "Main.java").write_text("public class Main {}\n")
    return root.resolve()


@pytest.fixture
def stub_settings(workspace_root: Path) -> Settings:
    """Settings for a local service talking to the mocked upstream."""
    return Settings(
        provider=ProviderSettings(api_key="test-api-key", base_url=BASE_URL, model=MODEL),
        workspace=WorkspaceSettings(root=workspace_root),
        bridge=BridgeSettings(max_request_bytes=MAX_REQUEST_BYTES, text_chunk_delay_seconds=0.0),
    )


@pytest.fixture
def test_app(stub_settings: Settings) -> FastAPI:
    return create_app(stub_settings)


@pytest.fixture
def upstream() -> Generator[respx.MockRouter]:
    """Mock router for the upstream provider; unmatched calls fail the test."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def upstream_route(upstream: respx.MockRouter) -> respx.Route:
    """The provider's streamGenerateContent endpoint."""
    return upstream.post(f"{BASE_URL}/models/{MODEL}:streamGenerateContent")


@pytest.fixture
def client(test_app: FastAPI, upstream: respx.MockRouter) -> Generator[TestClient]:
    """Test client running the full lifespan (provider client, health, logging)."""
    with TestClient(test_app) as test_client:
        yield test_client
