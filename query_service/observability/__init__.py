"""Observability package: OpenTelemetry tracing for llm-query-service."""

from query_service.observability.tracing import (
    TracingMiddleware,
    extract_trace_context,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)

__all__ = [
    "TracingMiddleware",
    "extract_trace_context",
    "get_tracer",
    "setup_tracing",
    "shutdown_tracing",
]
