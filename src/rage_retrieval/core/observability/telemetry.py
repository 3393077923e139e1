"""Observability emitter for retrieval attempts and API calls.

Converts executor and client events into the shapes expected by the
injected ``StructuredLogger`` and ``MetricsSink`` collaborators. Every
payload is redacted (credentials masked, tenant ids scrubbed) before it
leaves this module.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from rage_retrieval.core.errors import ClassifiedError
from rage_retrieval.core.observability.audit import StructuredLogger, get_audit_logger
from rage_retrieval.core.observability.metrics import ApiCallMetric, MetricsSink
from rage_retrieval.core.redaction import redact_payload, scrub_identifiers

if TYPE_CHECKING:
    from rage_retrieval.core.resilience.models import AttemptRecord

logger = logging.getLogger(__name__)

# Event names
ATTEMPT_STARTED = "retrieval.attempt.start"
ATTEMPT_SUCCEEDED = "retrieval.attempt.success"
RETRY_SCHEDULED = "retrieval.retry.scheduled"
ATTEMPT_FAILED = "retrieval.attempt.terminal_failure"
RETRY_BUDGET_EXHAUSTED = "retrieval.retry.budget_exhausted"
OPERATION_CANCELLED = "retrieval.cancelled"
API_CALL = "retrieval.api_call"
HEALTH_CHECK = "retrieval.health_check"


class RetrievalTelemetry:
    """Emit redacted, correlation-tagged events to injected collaborators.

    Collaborator failures never propagate into the retrieval path; they are
    reported to the module logger instead.

    Args:
        structured_logger: Event collaborator (default: global AuditLogger).
        metrics: Metrics collaborator (None disables metric emission).
        scrub_values: Raw identifiers (org id, pipeline id, api key) that
            must never appear in any emitted payload.
    """

    def __init__(
        self,
        structured_logger: Optional[StructuredLogger] = None,
        metrics: Optional[MetricsSink] = None,
        *,
        scrub_values: Iterable[str] = (),
    ):
        self._logger = structured_logger or get_audit_logger()
        self._metrics = metrics
        self._scrub = tuple(value for value in scrub_values if value)

    # ------------------------------------------------------------------
    # Generic emission
    # ------------------------------------------------------------------

    def event(
        self,
        event_name: str,
        payload: Dict[str, Any],
        correlation_id: str,
        *,
        level: str = "info",
    ) -> None:
        """Emit one structured event with a redacted payload."""
        safe_payload = redact_payload(payload, scrub_values=self._scrub)
        try:
            self._logger.log_event(event_name, level, safe_payload, correlation_id)
        except Exception:
            logger.debug("Structured logger failed for %s", event_name, exc_info=True)

    def api_call(self, metric: ApiCallMetric, correlation_id: str) -> None:
        """Report one HTTP call to the metrics sink and the event log."""
        safe_metric = ApiCallMetric(
            endpoint=scrub_identifiers(metric.endpoint, self._scrub),
            duration_ms=round(metric.duration_ms, 2),
            status_code=metric.status_code,
            response_size_bytes=metric.response_size_bytes,
        )
        level = "info" if 200 <= safe_metric.status_code < 300 else "warning"
        self.event(API_CALL, safe_metric.to_dict(), correlation_id, level=level)
        if self._metrics is None:
            return
        try:
            self._metrics.record_api_call(safe_metric)
        except Exception:
            logger.debug("Metrics sink failed for %s", safe_metric.endpoint, exc_info=True)

    # ------------------------------------------------------------------
    # Executor hooks
    # ------------------------------------------------------------------

    def attempt_started(
        self,
        record: "AttemptRecord",
        *,
        max_attempts: int,
        operation: str,
        correlation_id: str,
    ) -> None:
        self.event(
            ATTEMPT_STARTED,
            {"operation": operation, "max_attempts": max_attempts, **record.to_dict()},
            correlation_id,
            level="debug",
        )

    def attempt_succeeded(self, record: "AttemptRecord", *, operation: str, correlation_id: str) -> None:
        self.event(ATTEMPT_SUCCEEDED, {"operation": operation, **record.to_dict()}, correlation_id)

    def retry_scheduled(
        self,
        record: "AttemptRecord",
        error: ClassifiedError,
        *,
        operation: str,
        correlation_id: str,
    ) -> None:
        self.event(
            RETRY_SCHEDULED,
            {
                "operation": operation,
                "reason": error.kind.value,
                "error": error.to_dict(),
                **record.to_dict(),
            },
            correlation_id,
            level="warning",
        )

    def attempt_failed(
        self,
        record: "AttemptRecord",
        error: ClassifiedError,
        *,
        operation: str,
        correlation_id: str,
    ) -> None:
        self.event(
            ATTEMPT_FAILED,
            {"operation": operation, "error": error.to_dict(), **record.to_dict()},
            correlation_id,
            level="error",
        )

    def retry_budget_exhausted(
        self,
        record: "AttemptRecord",
        *,
        elapsed_ms: float,
        budget_ms: int,
        delay_ms: float,
        operation: str,
        correlation_id: str,
    ) -> None:
        self.event(
            RETRY_BUDGET_EXHAUSTED,
            {
                "operation": operation,
                "elapsed_ms": round(elapsed_ms, 2),
                "budget_ms": budget_ms,
                "next_delay_ms": round(delay_ms, 2),
                **record.to_dict(),
            },
            correlation_id,
            level="warning",
        )

    def cancelled(self, record: "AttemptRecord", *, operation: str, correlation_id: str) -> None:
        self.event(OPERATION_CANCELLED, {"operation": operation, **record.to_dict()}, correlation_id, level="warning")
