"""Tests for execute_with_resilience."""

import asyncio

import pytest

from rage_retrieval.core.errors import ClassifiedError, ErrorKind
from rage_retrieval.core.observability import RetrievalTelemetry
from rage_retrieval.core.resilience import RetryPolicy, execute_with_resilience, no_jitter


def failing_operation(kind: ErrorKind, calls: list, errors: list):
    """Build an operation that always raises a fresh error of *kind*."""

    async def operation():
        calls.append(1)
        error = ClassifiedError(kind, f"failure {len(calls)}")
        errors.append(error)
        raise error

    return operation


@pytest.fixture
def telemetry(recording_logger):
    return RetrievalTelemetry(structured_logger=recording_logger)


class TestRetryLoop:
    @pytest.mark.asyncio
    async def test_server_failures_exhaust_attempts(self, telemetry, sleep_recorder):
        """Three server failures: three calls, sleeps of 1s and 2s, last error re-raised."""
        calls, errors = [], []
        policy = RetryPolicy(max_attempts=3, base_delay_ms=1000, jitter_fraction=0.0)

        with pytest.raises(ClassifiedError) as exc_info:
            await execute_with_resilience(
                failing_operation(ErrorKind.SERVER, calls, errors),
                correlation_id="cid-1",
                timeout_ms=5000,
                policy=policy,
                telemetry=telemetry,
                jitter=no_jitter,
                sleep_func=sleep_recorder,
            )

        assert len(calls) == 3
        assert sleep_recorder.sleeps == [1.0, 2.0]
        assert exc_info.value is errors[-1]
        assert exc_info.value.kind is ErrorKind.SERVER

    @pytest.mark.asyncio
    async def test_success_after_retry(self, telemetry, recording_logger, sleep_recorder):
        """A transient failure followed by success returns the result."""
        calls = []

        async def operation():
            calls.append(1)
            if len(calls) == 1:
                raise ClassifiedError(ErrorKind.NETWORK, "ECONNRESET")
            return "ok"

        result = await execute_with_resilience(
            operation,
            correlation_id="cid-2",
            timeout_ms=5000,
            policy=RetryPolicy(max_attempts=3, base_delay_ms=500, jitter_fraction=0.0),
            telemetry=telemetry,
            jitter=no_jitter,
            sleep_func=sleep_recorder,
        )

        assert result == "ok"
        assert len(calls) == 2
        assert sleep_recorder.sleeps == [0.5]
        assert recording_logger.names() == [
            "retrieval.attempt.start",
            "retrieval.retry.scheduled",
            "retrieval.attempt.start",
            "retrieval.attempt.success",
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [ErrorKind.AUTH, ErrorKind.VALIDATION, ErrorKind.CONFIGURATION])
    async def test_terminal_failures_not_retried(self, kind, telemetry, recording_logger, sleep_recorder):
        """Terminal kinds fail after a single attempt without sleeping."""
        calls, errors = [], []

        with pytest.raises(ClassifiedError) as exc_info:
            await execute_with_resilience(
                failing_operation(kind, calls, errors),
                correlation_id="cid-3",
                timeout_ms=5000,
                policy=RetryPolicy(max_attempts=3, base_delay_ms=1000),
                telemetry=telemetry,
                sleep_func=sleep_recorder,
            )

        assert len(calls) == 1
        assert sleep_recorder.sleeps == []
        assert exc_info.value.kind is kind
        assert "retrieval.attempt.terminal_failure" in recording_logger.names()
        assert "retrieval.retry.scheduled" not in recording_logger.names()

    @pytest.mark.asyncio
    async def test_raw_exceptions_are_classified(self, telemetry, sleep_recorder):
        """Unclassified exceptions are classified and tagged with the correlation id."""

        async def operation():
            raise KeyError("results")

        with pytest.raises(ClassifiedError) as exc_info:
            await execute_with_resilience(
                operation,
                correlation_id="cid-4",
                timeout_ms=5000,
                policy=RetryPolicy(max_attempts=2, base_delay_ms=100),
                telemetry=telemetry,
                sleep_func=sleep_recorder,
            )

        assert exc_info.value.kind is ErrorKind.UNKNOWN
        assert exc_info.value.correlation_id == "cid-4"
        assert exc_info.value.context["attempt"] == 1
        assert sleep_recorder.sleeps == []

    @pytest.mark.asyncio
    async def test_rate_limit_hint_respected(self, telemetry, sleep_recorder):
        """A retry-after hint stretches the backoff sleep."""
        calls = []

        async def operation():
            calls.append(1)
            if len(calls) == 1:
                raise ClassifiedError(ErrorKind.RATE_LIMIT, "HTTP 429", retry_after_seconds=3)
            return "ok"

        await execute_with_resilience(
            operation,
            correlation_id="cid-5",
            timeout_ms=5000,
            policy=RetryPolicy(max_attempts=2, base_delay_ms=1000, jitter_fraction=0.0),
            telemetry=telemetry,
            jitter=no_jitter,
            sleep_func=sleep_recorder,
        )

        assert sleep_recorder.sleeps[0] >= 3.0

    @pytest.mark.asyncio
    async def test_failure_hook_sees_every_attempt(self, telemetry, sleep_recorder):
        """on_failure receives each classified failure, retried or terminal."""
        calls, errors, reported = [], [], []

        with pytest.raises(ClassifiedError):
            await execute_with_resilience(
                failing_operation(ErrorKind.SERVER, calls, errors),
                correlation_id="cid-hook",
                timeout_ms=5000,
                policy=RetryPolicy(max_attempts=2, base_delay_ms=100, jitter_fraction=0.0),
                telemetry=telemetry,
                jitter=no_jitter,
                sleep_func=sleep_recorder,
                on_failure=reported.append,
            )

        assert reported == errors
        assert [error.context["attempt"] for error in reported] == [1, 2]


class TestTimeoutsAndCancellation:
    @pytest.mark.asyncio
    async def test_attempt_timeout_cancels_operation(self, telemetry, sleep_recorder):
        """An expired attempt is cancelled and reported as a non-retried timeout."""
        cancelled = asyncio.Event()
        calls = []

        async def operation():
            calls.append(1)
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(ClassifiedError) as exc_info:
            await execute_with_resilience(
                operation,
                correlation_id="cid-6",
                timeout_ms=50,
                policy=RetryPolicy(max_attempts=3, base_delay_ms=100),
                telemetry=telemetry,
                sleep_func=sleep_recorder,
            )

        assert cancelled.is_set()
        assert len(calls) == 1
        assert exc_info.value.kind is ErrorKind.TIMEOUT
        assert exc_info.value.retryable is False
        assert "50ms" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates(self, telemetry, recording_logger, sleep_recorder):
        """Cancelling the caller stops the loop immediately with no retry."""
        started = asyncio.Event()
        calls = []

        async def operation():
            calls.append(1)
            started.set()
            await asyncio.Event().wait()

        task = asyncio.create_task(
            execute_with_resilience(
                operation,
                correlation_id="cid-7",
                timeout_ms=5000,
                policy=RetryPolicy(max_attempts=3, base_delay_ms=100),
                telemetry=telemetry,
                sleep_func=sleep_recorder,
            )
        )
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(calls) == 1
        assert sleep_recorder.sleeps == []
        assert "retrieval.cancelled" in recording_logger.names()
        assert "retrieval.retry.scheduled" not in recording_logger.names()


    @pytest.mark.asyncio
    async def test_timeout_reaches_failure_hook(self, telemetry, sleep_recorder):
        """A timed-out attempt is reported to on_failure even though its operation was cancelled."""
        reported = []

        async def operation():
            await asyncio.sleep(10)

        with pytest.raises(ClassifiedError):
            await execute_with_resilience(
                operation,
                correlation_id="cid-6b",
                timeout_ms=50,
                policy=RetryPolicy(max_attempts=1, base_delay_ms=100),
                telemetry=telemetry,
                sleep_func=sleep_recorder,
                on_failure=reported.append,
            )

        assert [error.kind for error in reported] == [ErrorKind.TIMEOUT]
        assert reported[0].correlation_id == "cid-6b"

    @pytest.mark.asyncio
    async def test_caller_cancellation_skips_failure_hook(self, telemetry, sleep_recorder):
        started = asyncio.Event()
        reported = []

        async def operation():
            started.set()
            await asyncio.Event().wait()

        task = asyncio.create_task(
            execute_with_resilience(
                operation,
                correlation_id="cid-7b",
                timeout_ms=5000,
                policy=RetryPolicy(max_attempts=3, base_delay_ms=100),
                telemetry=telemetry,
                sleep_func=sleep_recorder,
                on_failure=reported.append,
            )
        )
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert reported == []


class TestRetryBudget:
    @pytest.mark.asyncio
    async def test_budget_stops_retries_early(self, telemetry, recording_logger, sleep_recorder):
        """Retries stop once the next delay would overrun the elapsed budget."""
        calls, errors = [], []
        policy = RetryPolicy(
            max_attempts=5,
            base_delay_ms=1000,
            jitter_fraction=0.0,
            max_elapsed_ms=1500,
        )

        with pytest.raises(ClassifiedError) as exc_info:
            await execute_with_resilience(
                failing_operation(ErrorKind.SERVER, calls, errors),
                correlation_id="cid-8",
                timeout_ms=5000,
                policy=policy,
                telemetry=telemetry,
                jitter=no_jitter,
                sleep_func=sleep_recorder,
            )

        # second retry would need 2000ms, past the 1500ms budget
        assert len(calls) == 2
        assert sleep_recorder.sleeps == [1.0]
        assert exc_info.value is errors[-1]
        exhausted = recording_logger.named("retrieval.retry.budget_exhausted")
        assert len(exhausted) == 1
        assert exhausted[0]["payload"]["budget_ms"] == 1500
        assert exhausted[0]["payload"]["next_delay_ms"] == 2000.0

    @pytest.mark.asyncio
    async def test_no_budget_uses_all_attempts(self, telemetry, sleep_recorder):
        calls, errors = [], []

        with pytest.raises(ClassifiedError):
            await execute_with_resilience(
                failing_operation(ErrorKind.NETWORK, calls, errors),
                correlation_id="cid-9",
                timeout_ms=5000,
                policy=RetryPolicy(max_attempts=4, base_delay_ms=100, jitter_fraction=0.0),
                telemetry=telemetry,
                jitter=no_jitter,
                sleep_func=sleep_recorder,
            )

        assert len(calls) == 4
        assert sleep_recorder.sleeps == [0.1, 0.2, 0.4]


class TestEventEmission:
    @pytest.mark.asyncio
    async def test_every_event_carries_correlation_id(self, telemetry, recording_logger, sleep_recorder):
        """All lifecycle events are tagged with the operation's correlation id."""
        calls, errors = [], []

        with pytest.raises(ClassifiedError):
            await execute_with_resilience(
                failing_operation(ErrorKind.SERVER, calls, errors),
                correlation_id="rage-1700000000000-abc123xyz",
                timeout_ms=5000,
                policy=RetryPolicy(max_attempts=2, base_delay_ms=100, jitter_fraction=0.0),
                telemetry=telemetry,
                jitter=no_jitter,
                sleep_func=sleep_recorder,
            )

        assert recording_logger.events
        assert {event["correlation_id"] for event in recording_logger.events} == {"rage-1700000000000-abc123xyz"}
        assert recording_logger.names() == [
            "retrieval.attempt.start",
            "retrieval.retry.scheduled",
            "retrieval.attempt.start",
            "retrieval.attempt.terminal_failure",
        ]

    @pytest.mark.asyncio
    async def test_retry_event_payload(self, telemetry, recording_logger, sleep_recorder):
        """The retry event carries attempt number, reason and delay."""
        calls, errors = [], []

        with pytest.raises(ClassifiedError):
            await execute_with_resilience(
                failing_operation(ErrorKind.SERVER, calls, errors),
                correlation_id="cid-10",
                timeout_ms=5000,
                policy=RetryPolicy(max_attempts=2, base_delay_ms=250, jitter_fraction=0.0),
                telemetry=telemetry,
                jitter=no_jitter,
                sleep_func=sleep_recorder,
            )

        retry = recording_logger.named("retrieval.retry.scheduled")[0]
        assert retry["level"] == "warning"
        assert retry["payload"]["attempt"] == 1
        assert retry["payload"]["reason"] == "server"
        assert retry["payload"]["delay_before_next_ms"] == 250.0
        assert retry["payload"]["outcome"] == "retryable_failure"
