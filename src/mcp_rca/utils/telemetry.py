"""OpenTelemetry tracing helpers for mcp-rca.

Thin wrapper around the OpenTelemetry API so the rest of the codebase can
call ``get_tracer()`` without caring whether the SDK is installed.  Without
a configured SDK the API hands out no-op tracers.

Usage::

    from mcp_rca.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("tool.call") as span:
        span.set_attribute(ATTR_TOOL_NAME, "case_get")

To export spans, call :func:`configure_telemetry` once at startup
(requires the ``otel`` extra: ``pip install mcp-rca[otel]``).  Spans are
never exported to stdout: stdout carries protocol frames.
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace

# ---------------------------------------------------------------------------
# Semantic attribute keys
# ---------------------------------------------------------------------------

ATTR_TOOL_NAME = "mcp_rca.tool.name"
ATTR_REQUEST_ID = "mcp_rca.request.id"
ATTR_RPC_METHOD = "mcp_rca.rpc.method"
ATTR_PROVIDER = "mcp_rca.llm.provider"
ATTR_MODEL = "mcp_rca.llm.model"
ATTR_BACKEND = "mcp_rca.llm.backend"
ATTR_TOKENS_PROMPT = "mcp_rca.llm.tokens.prompt"
ATTR_TOKENS_COMPLETION = "mcp_rca.llm.tokens.completion"
ATTR_TOKENS_TOTAL = "mcp_rca.llm.tokens.total"

_INSTRUMENTATION_NAME = "mcp_rca"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name* (no-op unless configured)."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(*, service_name: str = "mcp-rca", otlp_endpoint: str) -> None:
    """Export spans via OTLP/gRPC to *otlp_endpoint* (requires ``mcp-rca[otel]``).

    Raises
    ------
    ImportError
        If ``opentelemetry-sdk`` or the OTLP exporter is not installed.
    """
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import BatchSpanProcessor  # pyright: ignore[reportMissingImports]
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk and opentelemetry-exporter-otlp are required for "
            "configure_telemetry(). Install them with: pip install mcp-rca[otel]"
        )
        raise ImportError(msg) from exc

    resource: Any = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
    trace.set_tracer_provider(provider)
