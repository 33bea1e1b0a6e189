"""Tracing, metrics and invocation context helpers."""

from __future__ import annotations

from agentflow.observability.context import (
    InvocationContext,
    get_current_invocation,
    new_invocation_id,
    use_invocation,
)
from agentflow.observability.metrics import AggregatedMetrics, MetricsRegistry
from agentflow.observability.tracing import (
    ObservabilityConfig,
    ObservabilityManager,
    current_traceparent,
    initialize_observability,
    shutdown_observability,
    trace_span,
)

__all__ = [
    "AggregatedMetrics",
    "InvocationContext",
    "MetricsRegistry",
    "ObservabilityConfig",
    "ObservabilityManager",
    "current_traceparent",
    "get_current_invocation",
    "initialize_observability",
    "new_invocation_id",
    "shutdown_observability",
    "trace_span",
    "use_invocation",
]
