"""Configuration for the Gemini client."""

from dataclasses import dataclass, field
from enum import StrEnum

from chat_bridge.platform.settings import ProviderSettings


class ResponseMode(StrEnum):
    """How a provider turn is handed to the caller."""

    STREAMING = "streaming"
    TURN = "turn"


@dataclass(frozen=True)
class GeminiClientConfig:
    """Configuration for a Gemini client instance.

    Attributes:
        api_key: Provider API key, sent as a header and never logged
        base_url: API base URL, e.g. https://generativelanguage.googleapis.com/v1beta
        model: Model identifier
        temperature: Sampling temperature
        max_output_tokens: Output length cap per turn
        safety_settings: List of {"category", "threshold"} dicts
        timeout_seconds: Read timeout for the streamed response
        connect_timeout_seconds: Connection timeout
    """

    api_key: str = field(repr=False)
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-1.5-pro-latest"
    temperature: float = 0.4
    max_output_tokens: int = 2048
    safety_settings: tuple[dict[str, str], ...] = (
        {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_ONLY_HIGH"},
    )
    timeout_seconds: float = 120.0
    connect_timeout_seconds: float = 10.0

    @property
    def stream_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/models/{self.model}:streamGenerateContent"

    @classmethod
    def from_settings(cls, settings: ProviderSettings) -> "GeminiClientConfig":
        return cls(
            api_key=settings.api_key.get_secret_value(),
            base_url=settings.base_url,
            model=settings.model,
            temperature=settings.temperature,
            max_output_tokens=settings.max_output_tokens,
            safety_settings=tuple(s.model_dump() for s in settings.safety_settings),
            timeout_seconds=settings.timeout_seconds,
            connect_timeout_seconds=settings.connect_timeout_seconds,
        )
