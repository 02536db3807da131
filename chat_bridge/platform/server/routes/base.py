"""Base HTTP endpoints for health checks, metrics, and service info.

This module provides infrastructure endpoints that are typically used
by load balancers, monitoring systems, and the chat client itself.
"""

import logging
import time
from enum import Enum

from fastapi import APIRouter, Depends, Response

from chat_bridge.platform.observability.metrics import metrics as prom_metrics
from chat_bridge.platform.server.dependencies.settings import get_settings
from chat_bridge.platform.server.health import HealthCheck, metadata
from chat_bridge.platform.settings import Settings

logger = logging.getLogger(__name__)

base_router = APIRouter()
base_tags: list[Enum | str] = ["base"]


@base_router.get("/health", tags=base_tags)
async def health(settings: Settings = Depends(get_settings)):
    """Health check endpoint for load balancers and the chat client.

    Returns:
        200 with status, model and a millisecond timestamp if healthy, 404 if draining
    """
    if is_healthy():
        return {
            "status": "healthy",
            "model": settings.provider.model,
            "timestamp": int(time.time() * 1000),
        }
    else:
        return Response(status_code=404)


def is_healthy() -> bool:
    """Check if the service is currently healthy.

    Returns:
        True if HealthCheck is enabled, False otherwise
    """
    if not HealthCheck.status():
        logger.info("health-check: fail. disabled")
        return False

    return True


@base_router.get("/info", tags=base_tags)
async def info():
    return metadata.info()


@base_router.get("/metrics", tags=base_tags)
async def metrics():
    body, media_type = prom_metrics()
    return Response(body, media_type=media_type)
