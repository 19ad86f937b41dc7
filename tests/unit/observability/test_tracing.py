"""Unit tests for OpenTelemetry tracing helpers and middleware.

Spans are captured with an in-memory exporter on a local TracerProvider,
so the process-wide provider is never replaced.
"""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind

from query_service.observability import tracing
from query_service.observability.tracing import TracingMiddleware, _headers_to_dict


@pytest.fixture
def exporter() -> Generator[InMemorySpanExporter, None, None]:
    """Route get_tracer() to a provider backed by an in-memory exporter."""
    span_exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))

    with patch.object(tracing, "get_tracer", side_effect=provider.get_tracer):
        yield span_exporter

    provider.shutdown()


def _traced_app(exclude_paths: list[str] | None = None) -> FastAPI:
    app = FastAPI()

    @app.get("/status")
    async def status_route() -> dict[str, str]:
        return {"status": "running"}

    @app.post("/query")
    async def query_route() -> dict[str, str]:
        return {"answer": "ok"}

    app.add_middleware(TracingMiddleware, exclude_paths=exclude_paths)
    return app


class TestHeadersToDict:
    def test_lowercases_keys(self) -> None:
        headers = [(b"Content-Type", b"application/json"), (b"X-Request-ID", b"abc")]

        assert _headers_to_dict(headers) == {
            "content-type": "application/json",
            "x-request-id": "abc",
        }


class TestTracingMiddleware:
    """Test server spans around HTTP requests."""

    def test_creates_server_span(self, exporter: InMemorySpanExporter) -> None:
        client = TestClient(_traced_app())

        response = client.post("/query")

        assert response.status_code == 200
        (span,) = exporter.get_finished_spans()
        assert span.name == "POST /query"
        assert span.kind == SpanKind.SERVER
        assert span.attributes["http.status_code"] == 200
        assert span.attributes["http.route"] == "/query"

    def test_excluded_path_has_no_span(self, exporter: InMemorySpanExporter) -> None:
        client = TestClient(_traced_app(exclude_paths=["/status"]))

        client.get("/status")

        assert exporter.get_finished_spans() == ()

    def test_propagates_incoming_trace_context(self, exporter: InMemorySpanExporter) -> None:
        trace_id = "4bf92f3577b34da6a3ce929d0e0e4736"
        client = TestClient(_traced_app())

        client.post(
            "/query",
            headers={"traceparent": f"00-{trace_id}-00f067aa0ba902b7-01"},
        )

        (span,) = exporter.get_finished_spans()
        assert format(span.context.trace_id, "032x") == trace_id


class TestSetupTracing:
    """Test setup_tracing() / shutdown_tracing() bookkeeping."""

    def test_setup_is_idempotent(self) -> None:
        with patch.object(tracing.trace, "set_tracer_provider") as set_provider:
            first = tracing.setup_tracing("test-service")
            second = tracing.setup_tracing("other-service")
            tracing.shutdown_tracing()

        assert first is second
        set_provider.assert_called_once_with(first)

    def test_shutdown_without_setup_is_noop(self) -> None:
        tracing.shutdown_tracing()
