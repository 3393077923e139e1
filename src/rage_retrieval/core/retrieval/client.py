"""Retrieval client for a hosted vector retrieval pipeline.

Translates a :class:`RetrievalQuery` into an authenticated
``POST {base_uri}/org/{org_id}/pipelines/{pipeline_id}/retrieval`` call and
parses the ranked documents. All failure handling is delegated to the
error classifier and the resilience executor.

Example usage:
    settings = RetrievalSettings.from_env()
    client = RetrievalClient(settings)
    result = await client.retrieve(
        RetrievalQuery(question="What is the parental leave policy?", num_results=3),
        correlation_id="rage-1718000000000-abc123xyz",
    )
    for doc in result.results:
        print(doc.score, doc.source_metadata.get("source"))
"""

import logging
import time
from typing import TYPE_CHECKING, Optional, Protocol, Union

import httpx

from rage_retrieval.core.context import resolve_correlation_id
from rage_retrieval.core.errors import (
    CircuitBreakerError,
    ClassifiedError,
    ErrorKind,
    ResponseFormatError,
    classify_failure,
)
from rage_retrieval.core.observability import (
    ApiCallMetric,
    MetricsCollector,
    MetricsSink,
    RetrievalTelemetry,
    StructuredLogger,
)
from rage_retrieval.core.observability.telemetry import HEALTH_CHECK
from rage_retrieval.core.redaction import redact_credentials, scrub_identifiers
from rage_retrieval.core.resilience import (
    JitterSource,
    RetryPolicy,
    SleepFunc,
    execute_with_resilience,
)
from rage_retrieval.core.retrieval.endpoints import build_retrieval_url, sanitize_url
from rage_retrieval.core.retrieval.models import HealthStatus, RetrievalQuery, RetrievalResult
from rage_retrieval.core.retrieval.parsing import normalize_response, parse_retry_after, read_error_body

if TYPE_CHECKING:
    from rage_retrieval.config import RetrievalSettings

logger = logging.getLogger(__name__)

HEALTH_CHECK_QUESTION = "health check test query"

# Failure kinds reported to a caller-supplied circuit breaker
_BREAKER_FAILURE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.TIMEOUT, ErrorKind.SERVER, ErrorKind.RATE_LIMIT})


class CircuitBreakerGate(Protocol):
    """Caller-supplied circuit breaker consulted before every attempt."""

    def allow_request(self) -> bool: ...

    def record_success(self) -> None: ...

    def record_failure(self) -> None: ...


def _elapsed_ms(since: float) -> float:
    return (time.monotonic() - since) * 1000.0


class RetrievalClient:
    """Resilient client for the pipeline retrieval endpoint.

    Holds only immutable state (settings, retry policy, collaborators), so
    one instance can serve any number of concurrent ``retrieve()`` calls.

    Args:
        settings: Pre-validated connection and retry settings.
        logger: StructuredLogger collaborator (default: global AuditLogger).
        metrics: MetricsSink collaborator (default: logging MetricsCollector
            when ``settings.metrics_enabled``).
        policy: Retry policy override (default: derived from settings).
        jitter: Injectable jitter source for deterministic testing.
        sleep_func: Injectable sleep function for time control in tests.
        transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
        circuit_breaker: Optional caller-supplied breaker gate.
    """

    def __init__(
        self,
        settings: "RetrievalSettings",
        *,
        logger: Optional[StructuredLogger] = None,
        metrics: Optional[MetricsSink] = None,
        policy: Optional[RetryPolicy] = None,
        jitter: Optional[JitterSource] = None,
        sleep_func: Optional[SleepFunc] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        circuit_breaker: Optional[CircuitBreakerGate] = None,
    ):
        self._settings = settings
        self._policy = policy or settings.retry_policy()
        self._jitter = jitter
        self._sleep = sleep_func
        self._transport = transport
        self._breaker = circuit_breaker
        self._url = build_retrieval_url(settings.base_uri, settings.org_id, settings.pipeline_id)
        self._endpoint = sanitize_url(self._url)
        self._scrub_values = (settings.org_id, settings.pipeline_id, settings.api_key)

        if metrics is None and settings.metrics_enabled:
            metrics = MetricsCollector()
        self._telemetry = RetrievalTelemetry(logger, metrics, scrub_values=self._scrub_values)

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def endpoint(self) -> str:
        """Sanitized endpoint URL, safe to log."""
        return self._endpoint

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def retrieve(
        self,
        query: Union[RetrievalQuery, str],
        correlation_id: Optional[str] = None,
    ) -> RetrievalResult:
        """Retrieve ranked documents for a question.

        Args:
            query: Query model, or a bare question using configured defaults.
            correlation_id: Id for all telemetry of this call (default:
                context id, else a freshly generated one).

        Returns:
            Parsed result, documents ordered by descending score.

        Raises:
            ClassifiedError: Terminal or exhausted failure, unchanged from
                the resilience executor.
        """
        cid = resolve_correlation_id(correlation_id, self._settings.correlation_id_prefix)
        if isinstance(query, str):
            query = RetrievalQuery(
                question=query,
                num_results=self._settings.num_results_default,
                rerank=self._settings.rerank,
            )

        start_time = time.monotonic()
        self._telemetry.event(
            "retrieval.request",
            {
                "endpoint": self._endpoint,
                "question_length": len(query.question),
                "num_results": query.num_results,
                "rerank": query.rerank,
                "filter_keys": sorted(query.metadata_filters),
            },
            cid,
            level="debug",
        )

        result = await execute_with_resilience(
            lambda: self._attempt(query, cid),
            correlation_id=cid,
            timeout_ms=self._settings.timeout_ms,
            policy=self._policy,
            telemetry=self._telemetry,
            jitter=self._jitter,
            sleep_func=self._sleep,
            operation_name="retrieve",
            on_failure=self._report_breaker_failure if self._breaker is not None else None,
        )

        self._telemetry.event(
            "retrieval.completed",
            {
                "endpoint": self._endpoint,
                "count": result.count,
                "total": result.total,
                "duration_ms": round(_elapsed_ms(start_time), 2),
            },
            cid,
        )
        return result

    async def health_check(self, correlation_id: Optional[str] = None) -> HealthStatus:
        """Probe the endpoint with a one-result, no-rerank query.

        Never raises (other than for caller cancellation): failures are
        reported as an ``unhealthy`` status.

        Args:
            correlation_id: Id for all telemetry of this probe.

        Returns:
            Health status with latency and sanitized endpoint.
        """
        cid = resolve_correlation_id(correlation_id, self._settings.correlation_id_prefix)
        probe = RetrievalQuery(question=HEALTH_CHECK_QUESTION, num_results=1, rerank=False)
        start_time = time.monotonic()

        try:
            await self.retrieve(probe, cid)
        except ClassifiedError as exc:
            status = HealthStatus(
                status="unhealthy",
                endpoint=self._endpoint,
                duration_ms=round(_elapsed_ms(start_time), 2),
                error=scrub_identifiers(exc.safe_message, self._scrub_values),
                error_kind=exc.kind.value,
                correlation_id=cid,
            )
        except Exception as exc:
            status = HealthStatus(
                status="unhealthy",
                endpoint=self._endpoint,
                duration_ms=round(_elapsed_ms(start_time), 2),
                error=scrub_identifiers(redact_credentials(str(exc)), self._scrub_values),
                error_kind=ErrorKind.UNKNOWN.value,
                correlation_id=cid,
            )
        else:
            status = HealthStatus(
                status="healthy",
                endpoint=self._endpoint,
                duration_ms=round(_elapsed_ms(start_time), 2),
                correlation_id=cid,
            )

        self._telemetry.event(
            HEALTH_CHECK,
            status.to_dict(),
            cid,
            level="info" if status.is_healthy else "warning",
        )
        return status

    # ------------------------------------------------------------------
    # Single attempt
    # ------------------------------------------------------------------

    async def _attempt(self, query: RetrievalQuery, correlation_id: str) -> RetrievalResult:
        """One HTTP attempt, gated by the optional circuit breaker."""
        if self._breaker is None:
            return await self._post(query, correlation_id)

        if not self._breaker.allow_request():
            raise CircuitBreakerError(
                "Circuit breaker is open for the retrieval endpoint",
                breaker_name=self._endpoint,
            )
        result = await self._post(query, correlation_id)
        self._breaker.record_success()
        return result

    def _report_breaker_failure(self, error: ClassifiedError) -> None:
        # Runs from the executor so attempts cancelled by the timeout still count
        if self._breaker is not None and error.kind in _BREAKER_FAILURE_KINDS:
            self._breaker.record_failure()

    def _headers(self, correlation_id: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Content-Type": "application/json",
            "User-Agent": self._settings.user_agent,
            "X-Correlation-ID": correlation_id,
        }

    async def _post(self, query: RetrievalQuery, correlation_id: str) -> RetrievalResult:
        status_code = 0
        response_size = 0
        start_time = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout_ms / 1000.0,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._url,
                    json=query.to_request_body(),
                    headers=self._headers(correlation_id),
                )
            status_code = response.status_code
            response_size = len(response.content or b"")
        finally:
            self._telemetry.api_call(
                ApiCallMetric(
                    endpoint=self._endpoint,
                    duration_ms=_elapsed_ms(start_time),
                    status_code=status_code,
                    response_size_bytes=response_size,
                ),
                correlation_id,
            )

        duration_ms = _elapsed_ms(start_time)

        if 200 <= status_code < 300:
            try:
                data = response.json()
            except ValueError:
                raise ResponseFormatError("Retrieval response body could not be decoded as JSON") from None
            return normalize_response(
                data,
                score_field=self._settings.score_field,
                fallback_processing_ms=round(duration_ms, 2),
            )

        raise classify_failure(
            status_code=status_code,
            message=f"Retrieval request failed with HTTP {status_code}",
            retry_after_seconds=parse_retry_after(response),
            correlation_id=correlation_id,
            context={
                "endpoint": self._endpoint,
                "response_body": read_error_body(response),
            },
        )
