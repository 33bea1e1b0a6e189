"""
OpenTelemetry tracing for agent runs, steps, tool calls and LLM calls.

Spans are always created through the OpenTelemetry API; they are no-ops
until :func:`initialize_observability` installs an SDK tracer provider.
Export goes to an OTLP HTTP endpoint when configured and to the console
otherwise.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from agentflow.settings import AgentFlowSettings, get_settings

logger = logging.getLogger(__name__)

TRACER_NAME = "agentflow"


class ObservabilityConfig:
    """Configuration for tracing export."""

    def __init__(
        self,
        enable_tracing: bool = False,
        service_name: str = "agentflow",
        otlp_endpoint: Optional[str] = None,
    ):
        self.enable_tracing = enable_tracing
        self.service_name = service_name
        self.otlp_endpoint = otlp_endpoint

    @classmethod
    def from_settings(cls, settings: Optional[AgentFlowSettings] = None) -> ObservabilityConfig:
        """Create configuration from ``AGENTFLOW_*`` settings."""
        resolved = settings or get_settings()
        return cls(
            enable_tracing=resolved.OTEL_TRACING_ENABLED,
            service_name=resolved.SERVICE_NAME,
            otlp_endpoint=resolved.OTLP_ENDPOINT,
        )


class ObservabilityManager:
    """
    Owns the SDK tracer provider installed for the process.

    Singleton pattern for global access, matching OpenTelemetry's own
    process-wide provider.
    """

    _instance: Optional[ObservabilityManager] = None
    _lock = threading.Lock()

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self.config = config or ObservabilityConfig.from_settings()
        self._initialized = False
        self._provider: Optional[TracerProvider] = None

    @classmethod
    def get_instance(cls, config: Optional[ObservabilityConfig] = None) -> ObservabilityManager:
        """Get or create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls(config)
        return cls._instance

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Install the SDK tracer provider when tracing is enabled."""
        with self._lock:
            if self._initialized:
                return
            if self.config.enable_tracing:
                self._init_tracing()
            self._initialized = True
            logger.info("Observability initialized: tracing=%s", self.config.enable_tracing)

    def _init_tracing(self) -> None:
        resource = Resource.create({"service.name": self.config.service_name})
        provider = TracerProvider(resource=resource)

        if self.config.otlp_endpoint:
            exporter = OTLPSpanExporter(endpoint=f"{self.config.otlp_endpoint}/v1/traces")
            provider.add_span_processor(BatchSpanProcessor(exporter))
        else:
            provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(provider)
        self._provider = provider
        logger.info("OpenTelemetry tracing initialized")

    def shutdown(self) -> None:
        """Flush and shut down the provider installed by this manager."""
        with self._lock:
            if self._provider is not None:
                self._provider.shutdown()
                self._provider = None
            self._initialized = False
            logger.info("Observability shutdown complete")


def initialize_observability(config: Optional[ObservabilityConfig] = None) -> None:
    """Initialize tracing with optional configuration (defaults to settings)."""
    ObservabilityManager.get_instance(config).initialize()


def shutdown_observability() -> None:
    ObservabilityManager.get_instance().shutdown()


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


def _attribute_value(value: Any) -> Any:
    if isinstance(value, (str, bool, int, float)):
        return value
    return str(value)


@contextmanager
def trace_span(name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[trace.Span]:
    """
    Context manager for creating a trace span.

    ``None`` attribute values are skipped and non-primitive values are
    stringified. Exceptions escaping the block are recorded on the span.

    Usage:
        with trace_span("agentflow.tool.call", {"tool.name": "weather"}) as span:
            span.set_attribute("tool.status", "ok")
    """
    with get_tracer().start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, _attribute_value(value))
        yield span


def current_traceparent() -> Optional[str]:
    """Return the W3C traceparent of the current span when one is recording."""
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return f"00-{ctx.trace_id:032x}-{ctx.span_id:016x}-01"


__all__ = [
    "ObservabilityConfig",
    "ObservabilityManager",
    "current_traceparent",
    "get_tracer",
    "initialize_observability",
    "shutdown_observability",
    "trace_span",
]
