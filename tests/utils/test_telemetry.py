"""Tests for OpenTelemetry tracing helpers."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from opentelemetry import trace

from mcp_rca.utils.telemetry import (
    ATTR_BACKEND,
    ATTR_MODEL,
    ATTR_PROVIDER,
    ATTR_REQUEST_ID,
    ATTR_RPC_METHOD,
    ATTR_TOOL_NAME,
    configure_telemetry,
    get_tracer,
)


class TestGetTracer:
    def test_returns_tracer(self) -> None:
        assert isinstance(get_tracer("test.module"), trace.Tracer)

    def test_default_name(self) -> None:
        assert isinstance(get_tracer(), trace.Tracer)

    def test_noop_span(self) -> None:
        """Without SDK configured, spans should be no-ops."""
        tracer = get_tracer("test.noop")
        with tracer.start_as_current_span("tools/call") as span:
            span.set_attribute(ATTR_TOOL_NAME, "case_get")


class TestConfigureTelemetry:
    def test_raises_without_sdk(self) -> None:
        with patch.dict("sys.modules", {"opentelemetry.sdk.resources": None}):
            with pytest.raises(ImportError, match="pip install mcp-rca\\[otel\\]"):
                configure_telemetry(otlp_endpoint="http://localhost:4317")

    def test_raises_without_exporter(self) -> None:
        with patch.dict("sys.modules", {"opentelemetry.exporter.otlp.proto.grpc.trace_exporter": None}):
            with pytest.raises(ImportError, match="opentelemetry-exporter-otlp"):
                configure_telemetry(otlp_endpoint="http://localhost:4317")

    def test_installs_provider(self) -> None:
        pytest.importorskip("opentelemetry.sdk.trace")
        pytest.importorskip("opentelemetry.exporter.otlp.proto.grpc.trace_exporter")

        with patch("mcp_rca.utils.telemetry.trace.set_tracer_provider") as set_provider:
            configure_telemetry(service_name="mcp-rca-test", otlp_endpoint="http://localhost:4317")

        (provider,), _ = set_provider.call_args
        try:
            assert provider.resource.attributes["service.name"] == "mcp-rca-test"
        finally:
            provider.shutdown()


class TestAttributeConstants:
    @pytest.mark.parametrize(
        "key", [ATTR_TOOL_NAME, ATTR_REQUEST_ID, ATTR_RPC_METHOD, ATTR_PROVIDER, ATTR_MODEL, ATTR_BACKEND]
    )
    def test_namespaced(self, key: str) -> None:
        assert key.startswith("mcp_rca.")
