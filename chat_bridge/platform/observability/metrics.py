"""Prometheus metrics collection and HTTP middleware.

This module provides Prometheus metrics integration including HTTP request
duration histograms and the counters recorded by the chat bridge for
provider calls, tool invocations and token usage.
"""

from time import monotonic
from typing import NamedTuple

import prometheus_client


class HTTPLabels(NamedTuple):
    method: str
    path: str
    http_status: str


class ProviderCallLabels(NamedTuple):
    model: str
    mode: str
    outcome: str


class ToolCallLabels(NamedTuple):
    tool_name: str
    outcome: str


# Maybe kinda optimized. Better than templating a string at least.
_NXX_LUT = ["1XX", "2XX", "3XX", "4XX", "5XX"]


def http_status_nxx(status: int) -> str:
    """A coarser 2XX, 4XX, 5XX"""
    return _NXX_LUT[status // 100 - 1]


BUCKETS = (
    # these are log spaced with 1 sig-fig rounding so there are 3 per decade
    0.0002,  # 200 μs
    0.0005,
    0.001,  # 1 ms
    0.002,
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    60,  # provider turns with long outputs
    float("inf"),
)


def get_path(routes, scope) -> str:
    """Extract the matched route path from a request scope.

    Args:
        routes: List of FastAPI/Starlette route objects
        scope: ASGI request scope dictionary

    Returns:
        The matched route path template, or "path-not-found" if no match
    """
    path = "path-not-found"
    for route in routes:
        _, matches = route.matches(scope)
        if len(matches) > 0:
            path = route.path
    return path


async def prometheus_middleware(request, call_next):
    """HTTP middleware that records request duration metrics.

    For streaming responses this measures the time until the response
    starts, not the full lifetime of the event stream.

    Args:
        request: The incoming HTTP request
        call_next: The next middleware/handler in the chain

    Returns:
        The HTTP response from the downstream handler
    """
    start_time = monotonic()
    response = await call_next(request)
    elapsed_sec = monotonic() - start_time
    path = get_path(request.app.routes, request.scope)

    labels = HTTPLabels(
        method=request.method,
        path=path,
        http_status=http_status_nxx(response.status_code),
    )
    http_histogram.labels(*labels).observe(elapsed_sec)

    return response


def setup_metrics_factory(registry, name, documentation, labelnames):
    """Create a Prometheus histogram with standard bucket configuration.

    Args:
        registry: Prometheus registry to register the metric with
        name: Metric name (e.g., "http_request_duration_seconds")
        documentation: Human-readable metric description
        labelnames: Tuple of label names for the histogram

    Returns:
        Configured Prometheus Histogram instance
    """
    return prometheus_client.Histogram(
        name=name,
        documentation=documentation,
        labelnames=labelnames,
        registry=registry,
        buckets=BUCKETS,
    )


http_histogram = setup_metrics_factory(
    prometheus_client.REGISTRY,
    name="http_request_duration_seconds",
    documentation="Request duration (seconds)",
    labelnames=HTTPLabels._fields,
)
provider_histogram = setup_metrics_factory(
    prometheus_client.REGISTRY,
    name="provider_call_duration_seconds",
    documentation="Upstream provider call duration (seconds)",
    labelnames=ProviderCallLabels._fields,
)
tool_histogram = setup_metrics_factory(
    prometheus_client.REGISTRY,
    name="tool_call_duration_seconds",
    documentation="Local tool execution duration (seconds)",
    labelnames=ToolCallLabels._fields,
)
provider_tokens = prometheus_client.Counter(
    name="provider_tokens",
    documentation="Tokens reported by the upstream provider",
    labelnames=("model", "direction"),
    registry=prometheus_client.REGISTRY,
)
loop_iterations = prometheus_client.Histogram(
    name="orchestration_loop_iterations",
    documentation="Provider round-trips per chat request",
    labelnames=("final_state",),
    registry=prometheus_client.REGISTRY,
    buckets=(1, 2, 3, 4, 5, 10, float("inf")),
)


def record_provider_call(labels: ProviderCallLabels, duration: float) -> None:
    provider_histogram.labels(*labels).observe(duration)


def record_tool_call(labels: ToolCallLabels, duration: float) -> None:
    tool_histogram.labels(*labels).observe(duration)


def record_provider_tokens(model: str, input_tokens: int, output_tokens: int) -> None:
    """Add the token counts from one provider turn.

    Args:
        model: Model identifier
        input_tokens: Prompt tokens reported by the provider
        output_tokens: Candidate tokens reported by the provider
    """
    if input_tokens:
        provider_tokens.labels(model, "input").inc(input_tokens)
    if output_tokens:
        provider_tokens.labels(model, "output").inc(output_tokens)


def record_loop_iterations(final_state: str, iterations: int) -> None:
    loop_iterations.labels(final_state).observe(iterations)


def metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output for the /metrics endpoint.

    Returns:
        Tuple of (metrics_body, content_type) for the HTTP response
    """
    return (
        prometheus_client.generate_latest(prometheus_client.REGISTRY),
        prometheus_client.CONTENT_TYPE_LATEST,
    )
