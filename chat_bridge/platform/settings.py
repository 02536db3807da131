"""Application settings and configuration.

This module provides Pydantic settings classes for application configuration,
loaded from environment variables with support for nested configuration.
"""

import logging
from pathlib import Path

import pydantic_settings
from pydantic import BaseModel, Field, SecretStr, field_validator

# Workspace root used when none is configured: the directory the service is installed in
INSTALL_ROOT = Path(__file__).resolve().parents[2]

DEFAULT_EXCLUDED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".idea",
        ".vscode",
        "__pycache__",
        "node_modules",
        "bower_components",
        "target",
        "build",
        "dist",
        "out",
        "bin",
        "classes",
        ".gradle",
        "venv",
        ".venv",
    }
)

DEFAULT_SYSTEM_PROMPT = (
    "You are a programming assistant embedded in a code editor. "
    "You can inspect the user's workspace with the provided tools before answering. "
    "Prefer reading the relevant files over guessing, keep answers concise, "
    "and quote file paths relative to the workspace root."
)


class AppHTTPSettings(BaseModel):
    host: str = Field("127.0.0.1")
    port: int = Field(8080)
    log_level: str = Field("INFO")
    log_json: bool | None = Field(
        None, description="Override log format: True=JSON, False=console, None=auto"
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging._nameToLevel:
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class SafetySetting(BaseModel):
    """A single provider content-safety threshold."""

    category: str
    threshold: str


class ProviderSettings(BaseModel):
    """Upstream LLM provider configuration.

    Attributes:
        api_key: Provider API key, kept secret in reprs and logs
        base_url: API base URL (without the model path)
        model: Model identifier used in the request path
        temperature: Sampling temperature
        max_output_tokens: Output length cap per provider turn
        safety_settings: Content-safety thresholds sent with every request
        timeout_seconds: Read timeout for the streamed response
        connect_timeout_seconds: Connection timeout
    """

    api_key: SecretStr
    base_url: str = Field("https://generativelanguage.googleapis.com/v1beta")
    model: str = Field("gemini-1.5-pro-latest")
    temperature: float = Field(0.4, ge=0.0, le=2.0)
    max_output_tokens: int = Field(2048, gt=0)
    safety_settings: list[SafetySetting] = Field(
        default_factory=lambda: [
            SafetySetting(category="HARM_CATEGORY_DANGEROUS_CONTENT", threshold="BLOCK_ONLY_HIGH")
        ]
    )
    timeout_seconds: float = Field(120.0, gt=0)
    connect_timeout_seconds: float = Field(10.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v):
        return v.rstrip("/")


class WorkspaceSettings(BaseModel):
    """Filesystem sandbox configuration.

    Attributes:
        root: Directory all tool-mediated file access is confined to
        max_file_bytes: Largest file read_file will return
        max_search_results: Cap on search_files matches
        excluded_dirs: Directory names search_files never descends into
        allow_external_working_directory: Accept a client working directory outside root
    """

    root: Path = Field(INSTALL_ROOT)
    max_file_bytes: int = Field(100_000, gt=0)
    max_search_results: int = Field(20, gt=0)
    excluded_dirs: frozenset[str] = Field(DEFAULT_EXCLUDED_DIRS)
    allow_external_working_directory: bool = Field(True)

    @field_validator("root")
    @classmethod
    def _validate_root(cls, v: Path) -> Path:
        resolved = v.expanduser().resolve()
        if not resolved.is_dir():
            raise ValueError(f'workspace root "{v}" is not a directory')
        return resolved


class BridgeSettings(BaseModel):
    max_iterations: int = Field(3, ge=1)
    max_request_bytes: int = Field(1_048_576, gt=0)
    tool_result_preview_chars: int = Field(200, gt=0)
    text_chunk_delay_seconds: float = Field(0.02, ge=0.0)
    tools_enabled: bool = Field(True)
    system_prompt: str = Field(DEFAULT_SYSTEM_PROMPT)


class OpenTelemetrySettings(BaseModel):
    enabled: bool = Field(False)
    excluded_urls: str = Field("metrics,health,info")


class BugsnagSettings(BaseModel):
    api_key: str = Field("")
    release_stage: str = Field("local")

    @field_validator("release_stage")
    @classmethod
    def _validate_bugsnag_release_stage(cls, v):
        if v not in ["development", "production", "local"]:
            raise ValueError(f'invalid bugsnag release stage "{v}"')
        return v


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    provider: ProviderSettings

    app_http: AppHTTPSettings = AppHTTPSettings()
    workspace: WorkspaceSettings = WorkspaceSettings()
    bridge: BridgeSettings = BridgeSettings()
    opentelemetry: OpenTelemetrySettings = OpenTelemetrySettings()
    bugsnag: BugsnagSettings = BugsnagSettings()
