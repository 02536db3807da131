"""FastAPI application factory and server configuration.

This module creates and configures the FastAPI application with all middleware,
routes, and lifecycle management.
"""

import asyncio
import logging
import os
import signal
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from chat_bridge.agents.workspace.routes import chat_router
from chat_bridge.platform.clients.gemini import GeminiClient, GeminiClientConfig, create_http_client
from chat_bridge.platform.constants import SERVICE_NAME, SERVICE_VERSION
from chat_bridge.platform.observability import errors as bugsnag
from chat_bridge.platform.observability.logging import configure_logging
from chat_bridge.platform.observability.metrics import prometheus_middleware
from chat_bridge.platform.server.health import HealthCheck
from chat_bridge.platform.server.middlewares import CorrelationIdMiddleware
from chat_bridge.platform.server.routes import root as root_router
from chat_bridge.platform.settings import Settings

DRAIN_SECONDS = 20


def lifespan_closure(settings: Settings):
    @asynccontextmanager
    async def lifespan(app):
        """
        Use this to initialize all of the singleton dependencies and shared
        objects.  i.e. the provider client, reporters, bugsnag, etc
        """
        if settings.bugsnag.release_stage in ["production", "development"]:
            signal_handler = SignalHandler(app)
            signal_handler.register_signal_handler()
        await bugsnag.initialize_bugsnag(
            settings.bugsnag.api_key,
            settings.bugsnag.release_stage,
        )

        # Configure structured logging (JSON in prod/dev, console in local)
        if settings.app_http.log_json is not None:
            json_output = settings.app_http.log_json
        else:
            json_output = settings.bugsnag.release_stage != "local"
        configure_logging(settings.app_http.log_level, json_output=json_output)

        app.state.settings = settings

        # One pooled HTTP client for all upstream provider calls
        provider_config = GeminiClientConfig.from_settings(settings.provider)
        app.state.http_client = create_http_client(provider_config)
        app.state.provider = GeminiClient(provider_config, http_client=app.state.http_client)

        structlog.get_logger(__name__).info(
            "Service started",
            service=SERVICE_NAME,
            version=SERVICE_VERSION,
            model=provider_config.model,
            workspace_root=str(settings.workspace.root),
            tools_enabled=settings.bridge.tools_enabled,
        )

        HealthCheck.enable()
        yield

        HealthCheck.disable()
        await app.state.http_client.aclose()

    return lifespan


def create_app(settings: Settings):
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings instance

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        lifespan=lifespan_closure(settings),
    )
    app.add_middleware(CorrelationIdMiddleware)
    app.middleware("http")(prometheus_middleware)
    if settings.opentelemetry.enabled:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=settings.opentelemetry.excluded_urls)

    # Include platform routes (health, info, metrics)
    app.include_router(root_router)

    # Include the chat stream route
    app.include_router(chat_router)

    return app


class SignalHandler:
    def __init__(self, app: FastAPI):
        self.app = app

    async def handle_exit(self):
        """
        Handle the exit of the server
        Do NOT use FastAPI @app.on_event("shutdown") or lifespan
        The problem with this method is, it is invoked *after* server
        stops accepting request, so it does not give us any time to
        drain requests in progress
        """
        HealthCheck.disable()
        for _ in range(DRAIN_SECONDS):
            logging.info("Shutting down...")
            await asyncio.sleep(1)

        if hasattr(self.app.state, "http_client"):
            await self.app.state.http_client.aclose()

        # stop service successfully
        os.kill(os.getpid(), signal.SIGUSR1)

    def signal_handler(self):
        """
        Signal handler function
        """
        asyncio.create_task(self.handle_exit())

    def register_signal_handler(self) -> None:
        """
        Register signal handlers for the server
        """
        loop = asyncio.get_running_loop()
        for sig in [signal.SIGINT, signal.SIGTERM]:
            loop.add_signal_handler(sig, self.signal_handler)
