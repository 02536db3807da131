"""chat-bridge - Streaming bridge between an editor chat panel and a function-calling LLM."""

from .platform.server.app import create_app
from .platform.settings import Settings


def app():
    """Create the FastAPI application instance."""
    settings = Settings()
    return create_app(settings)
