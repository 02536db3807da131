"""Observability infrastructure module.

This module provides monitoring and error tracking:
- Structured logging with correlation IDs
- Prometheus metrics for HTTP, provider and tool activity
- Bugsnag error reporting
"""

from chat_bridge.platform.observability.logging import (
    bind_chat_context,
    configure_logging,
    correlation_id_ctx,
    redact_secrets,
)
from chat_bridge.platform.observability.metrics import (
    BUCKETS,
    prometheus_middleware,
)

__all__ = [
    "BUCKETS",
    "bind_chat_context",
    "configure_logging",
    "correlation_id_ctx",
    "redact_secrets",
    "prometheus_middleware",
]
