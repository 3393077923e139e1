"""
Observability utilities for rage-retrieval.

Provides the structured logging and metrics collaborator interfaces, their
default logging-backed implementations, and the emitter that turns retrieval
events into redacted, correlation-tagged records.

Injecting custom collaborators:

    class StatsdSink:
        def record_api_call(self, metric: ApiCallMetric) -> None:
            statsd.timing("rage.api_call", metric.duration_ms)

    client = RetrievalClient(settings, metrics=StatsdSink())
"""

from rage_retrieval.core.observability.audit import (
    AuditEvent,
    AuditLogger,
    StructuredLogger,
    get_audit_logger,
)
from rage_retrieval.core.observability.metrics import (
    ApiCallMetric,
    Metric,
    MetricsCollector,
    MetricsSink,
    MetricType,
)
from rage_retrieval.core.observability.telemetry import RetrievalTelemetry

__all__ = [
    "ApiCallMetric",
    "AuditEvent",
    "AuditLogger",
    "Metric",
    "MetricType",
    "MetricsCollector",
    "MetricsSink",
    "RetrievalTelemetry",
    "StructuredLogger",
    "get_audit_logger",
]
