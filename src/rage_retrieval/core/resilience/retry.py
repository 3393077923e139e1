"""Retry eligibility and exponential backoff with jitter.

Pure helpers used by the executor; usable on their own to preview a
policy's delay schedule.
"""

from typing import Optional

from rage_retrieval.core.errors import ClassifiedError, ErrorKind
from rage_retrieval.core.resilience.models import JitterSource, RetryPolicy, no_jitter


def should_retry(error: ClassifiedError, attempt: int, policy: RetryPolicy) -> bool:
    """Decide whether a failed attempt may be retried.

    Args:
        error: The classified failure of the attempt.
        attempt: 1-indexed number of the attempt that just failed.
        policy: Retry policy in force.

    Returns:
        True when attempts remain, the error is retryable, and its kind
        is not terminal.
    """
    return attempt < policy.max_attempts and error.retryable and not error.kind.is_terminal


def compute_backoff_delay_ms(
    policy: RetryPolicy,
    retry_number: int,
    *,
    jitter: Optional[JitterSource] = None,
    error: Optional[ClassifiedError] = None,
) -> float:
    """Compute the delay before retry *retry_number* (1-indexed).

    ``delay = base_delay_ms * multiplier ** (n - 1) * (1 + jitter)``.
    For rate-limit errors carrying a ``retry_after_seconds`` hint the
    larger of the computed delay and the hint wins.

    Args:
        policy: Retry policy in force.
        retry_number: Which retry this delay precedes (1 for the first).
        jitter: Jitter source returning a value in ``[0, fraction)``.
        error: The failure being retried, for server back-pressure hints.

    Returns:
        Delay in milliseconds.

    Example:
        >>> policy = RetryPolicy(max_attempts=3, base_delay_ms=1000, jitter_fraction=0)
        >>> [compute_backoff_delay_ms(policy, n) for n in (1, 2)]
        [1000.0, 2000.0]
    """
    _jitter = jitter or no_jitter
    delay = policy.base_delay_ms * (policy.backoff_multiplier ** (retry_number - 1))
    delay *= 1.0 + _jitter(policy.jitter_fraction)

    if error is not None and error.kind is ErrorKind.RATE_LIMIT and error.retry_after_seconds is not None:
        delay = max(delay, error.retry_after_seconds * 1000.0)

    return float(delay)
