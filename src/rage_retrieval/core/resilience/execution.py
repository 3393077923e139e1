"""Bounded retry/timeout execution of an async operation.

Each attempt is bounded by a per-attempt timeout, every failure is
classified, and only retryable, non-terminal failures are retried with
exponential backoff.

Per-attempt state machine:

    INIT -> ATTEMPT -> SUCCESS
                    -> RETRYABLE_FAILURE -> BACKOFF -> ATTEMPT
                    -> TERMINAL_FAILURE
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar

from rage_retrieval.core.errors import ClassifiedError, classify_failure
from rage_retrieval.core.observability import RetrievalTelemetry
from rage_retrieval.core.resilience.models import (
    AttemptOutcome,
    AttemptRecord,
    JitterSource,
    RandomJitter,
    RetryPolicy,
    SleepFunc,
)
from rage_retrieval.core.resilience.retry import compute_backoff_delay_ms, should_retry

T = TypeVar("T")


def _elapsed_ms(since: float) -> float:
    return (time.monotonic() - since) * 1000.0


async def execute_with_resilience(
    operation: Callable[[], Awaitable[T]],
    *,
    correlation_id: str,
    timeout_ms: int,
    policy: RetryPolicy,
    telemetry: Optional[RetrievalTelemetry] = None,
    jitter: Optional[JitterSource] = None,
    sleep_func: Optional[SleepFunc] = None,
    operation_name: str = "retrieve",
    on_failure: Optional[Callable[[ClassifiedError], None]] = None,
) -> T:
    """Execute an async operation under the retry policy.

    Execution order per attempt:
    1. Run the operation under ``asyncio.wait_for`` (expiry cancels it)
    2. Classify any failure and hand it to ``on_failure``
    3. Retry only retryable, non-terminal failures while attempts remain
    4. Sleep for the backoff delay, honoring rate-limit hints

    Caller cancellation propagates immediately and skips further retries.

    Args:
        operation: Async callable with no arguments (use lambda for args).
        correlation_id: Id attached to every event and to the error.
        timeout_ms: Per-attempt timeout in milliseconds.
        policy: Retry policy (attempts, backoff, jitter, optional budget).
        telemetry: Event emitter (default logs to the global audit logger).
        jitter: Injectable jitter source for deterministic testing.
        sleep_func: Injectable sleep function for time control in tests.
        operation_name: Label included in every event.
        on_failure: Called with every classified attempt failure, timeouts
            included. Not called on caller cancellation.

    Returns:
        Result from the operation on success.

    Raises:
        ClassifiedError: The last failure, unchanged, once no retry applies.

    Testing example:
        >>> sleep_times = []
        >>> async def fake_sleep(s): sleep_times.append(s)
        >>> await execute_with_resilience(
        ...     op, correlation_id="c-1", timeout_ms=5000,
        ...     policy=policy, jitter=no_jitter, sleep_func=fake_sleep,
        ... )
    """
    _telemetry = telemetry or RetrievalTelemetry()
    _jitter = jitter or RandomJitter()
    _sleep = sleep_func or asyncio.sleep
    timeout_seconds = timeout_ms / 1000.0
    start_time = time.monotonic()

    attempt = 0
    last_error: Optional[ClassifiedError] = None

    while attempt < policy.max_attempts:
        attempt += 1
        record = AttemptRecord(attempt_number=attempt, started_at=datetime.now(timezone.utc))
        attempt_start = time.monotonic()
        context = {"operation": operation_name, "attempt": attempt}
        _telemetry.attempt_started(
            record,
            max_attempts=policy.max_attempts,
            operation=operation_name,
            correlation_id=correlation_id,
        )

        try:
            result = await asyncio.wait_for(operation(), timeout=timeout_seconds)
        except asyncio.CancelledError:
            record.duration_ms = _elapsed_ms(attempt_start)
            _telemetry.cancelled(record, operation=operation_name, correlation_id=correlation_id)
            raise
        except asyncio.TimeoutError as exc:
            error = classify_failure(
                exc,
                message=f"Attempt {attempt} timed out after {timeout_ms}ms",
                correlation_id=correlation_id,
                context={**context, "timeout_ms": timeout_ms},
            )
        except Exception as exc:
            error = classify_failure(exc, correlation_id=correlation_id, context=context)
        else:
            record.duration_ms = _elapsed_ms(attempt_start)
            record.outcome = AttemptOutcome.SUCCESS
            _telemetry.attempt_succeeded(record, operation=operation_name, correlation_id=correlation_id)
            return result

        record.duration_ms = _elapsed_ms(attempt_start)
        if not error.correlation_id:
            error.correlation_id = correlation_id
        error.context.setdefault("attempt", attempt)
        last_error = error
        if on_failure is not None:
            on_failure(error)

        if not should_retry(error, attempt, policy):
            record.outcome = AttemptOutcome.TERMINAL_FAILURE
            _telemetry.attempt_failed(record, error, operation=operation_name, correlation_id=correlation_id)
            raise error

        delay_ms = compute_backoff_delay_ms(policy, attempt, jitter=_jitter, error=error)

        # Stop early rather than sleep past the cumulative budget
        if policy.max_elapsed_ms is not None:
            elapsed_ms = _elapsed_ms(start_time)
            if elapsed_ms + delay_ms > policy.max_elapsed_ms:
                record.outcome = AttemptOutcome.TERMINAL_FAILURE
                _telemetry.retry_budget_exhausted(
                    record,
                    elapsed_ms=elapsed_ms,
                    budget_ms=policy.max_elapsed_ms,
                    delay_ms=delay_ms,
                    operation=operation_name,
                    correlation_id=correlation_id,
                )
                _telemetry.attempt_failed(record, error, operation=operation_name, correlation_id=correlation_id)
                raise error

        record.outcome = AttemptOutcome.RETRYABLE_FAILURE
        record.delay_before_next_ms = delay_ms
        _telemetry.retry_scheduled(record, error, operation=operation_name, correlation_id=correlation_id)
        await _sleep(delay_ms / 1000.0)

    # All attempts exhausted
    if last_error:
        raise last_error
    raise RuntimeError("execute_with_resilience: unexpected state")
