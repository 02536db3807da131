"""Client dependencies for FastAPI routes."""

from fastapi import Request

from chat_bridge.platform.agent.protocol import Provider


def get_provider(request: Request) -> Provider:
    """Return the provider client created at startup.

    Raises:
        RuntimeError: If the application has not been started
    """
    provider = getattr(request.app.state, "provider", None)
    if provider is None:
        raise RuntimeError("Provider client is not initialized; was the app lifespan run?")
    return provider
