"""Metrics collection for observability.

Provides the ``MetricsSink`` collaborator interface, the ``ApiCallMetric``
record it consumes, and a default sink emitting metrics to the logger.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiCallMetric:
    """One HTTP call against the retrieval backend.

    ``endpoint`` is always the sanitized form (tenant ids masked).
    ``status_code`` is 0 when no response was received.
    """

    endpoint: str
    duration_ms: float
    status_code: int
    response_size_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@runtime_checkable
class MetricsSink(Protocol):
    """Collaborator that receives API call metrics (fire-and-forget)."""

    def record_api_call(self, metric: ApiCallMetric) -> None: ...


class MetricType(Enum):
    """Types of metrics that can be emitted."""

    COUNTER = "counter"
    GAUGE = "gauge"
    TIMER = "timer"


@dataclass
class Metric:
    """Structured metric data."""

    name: str
    value: Union[int, float]
    metric_type: MetricType
    labels: Dict[str, str] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "value": self.value,
            "type": self.metric_type.value,
            "labels": self.labels,
            "timestamp": self.timestamp,
        }


class MetricsCollector:
    """
    Default ``MetricsSink`` that emits metrics to the standard logger.

    Metrics are logged as structured records for easy parsing by
    log aggregation systems (e.g., Datadog, Splunk, CloudWatch).
    """

    def __init__(self, prefix: str = "rage_retrieval", *, enabled: bool = True):
        self.prefix = prefix
        self.enabled = enabled
        self._logger = logging.getLogger(f"{__name__}.metrics")

    def emit(self, metric: Metric) -> None:
        """Emit a metric to the logger.

        Args:
            metric: The Metric to emit
        """
        if not self.enabled:
            return
        self._logger.info(f"METRIC: {self.prefix}.{metric.name}", extra={"metric": metric.to_dict()})

    def counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        """Emit a counter metric."""
        self.emit(Metric(name=name, value=value, metric_type=MetricType.COUNTER, labels=labels or {}))

    def gauge(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        """Emit a gauge metric."""
        self.emit(Metric(name=name, value=value, metric_type=MetricType.GAUGE, labels=labels or {}))

    def timer(self, name: str, duration_ms: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Emit a timer metric (duration in milliseconds)."""
        self.emit(Metric(name=name, value=duration_ms, metric_type=MetricType.TIMER, labels=labels or {}))

    def record_api_call(self, metric: ApiCallMetric) -> None:
        """Emit the counter, latency and payload size for one API call."""
        labels = {"endpoint": metric.endpoint, "status_code": str(metric.status_code)}
        self.counter("api_call.count", labels=labels)
        self.timer("api_call.duration_ms", metric.duration_ms, labels=labels)
        self.gauge("api_call.response_size_bytes", metric.response_size_bytes, labels=labels)
