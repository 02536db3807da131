"""Structured logging for the chat bridge.

structlog renders every record, including stdlib records from httpx, uvicorn
and bugsnag. Each line carries the request's correlation ID and, inside a chat
request, the workspace root and model it runs against. Secret values (the
provider API key, authorization headers, ``SecretStr`` fields) are replaced
before rendering.
"""

import logging
import sys
from collections.abc import Mapping
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import structlog
from pydantic import SecretStr

# Request correlation ID, set by CorrelationIdMiddleware
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

REDACTED = "[redacted]"

SECRET_FIELDS = frozenset(
    {
        "api_key",
        "apikey",
        "authorization",
        "password",
        "secret",
        "token",
        "x_goog_api_key",
    }
)
SECRET_SUFFIXES = ("_api_key", "_secret", "_token")

QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _is_secret_field(name: Any) -> bool:
    if not isinstance(name, str):
        return False
    normalized = name.lower().replace("-", "_")
    return normalized in SECRET_FIELDS or normalized.endswith(SECRET_SUFFIXES)


def _redact(value: Any) -> Any:
    if isinstance(value, SecretStr):
        return REDACTED
    if isinstance(value, Mapping):
        return {
            key: REDACTED if _is_secret_field(key) else _redact(item)
            for key, item in value.items()
        }
    return value


def add_correlation_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Processor that adds correlation_id to every log entry."""
    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def redact_secrets(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Processor that masks secret fields, nested header mappings included."""
    for key, value in list(event_dict.items()):
        if _is_secret_field(key):
            event_dict[key] = REDACTED
        else:
            event_dict[key] = _redact(value)
    return event_dict


def bind_chat_context(workspace_root: Path, model: str, current_file: Path | None = None) -> None:
    """Attach the chat request's workspace and model to the current context's log lines.

    Call it inside the task that runs the request so the binding stays local
    to that request.
    """
    fields: dict[str, Any] = {"workspace_root": str(workspace_root), "model": model}
    if current_file is not None:
        fields["current_file"] = str(current_file)
    structlog.contextvars.bind_contextvars(**fields)


def configure_logging(log_level: str, json_output: bool = True) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Logging level (INFO, DEBUG, etc.)
        json_output: True for JSON output (prod/dev), False for console (local)
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        redact_secrets,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # One request line per provider call otherwise
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
