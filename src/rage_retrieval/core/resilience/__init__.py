"""Resilience layer: bounded retry, per-attempt timeout, and backoff.

Submodules:
- models: RetryPolicy, AttemptOutcome, AttemptRecord, SleepFunc, JitterSource
- retry: should_retry, compute_backoff_delay_ms
- execution: execute_with_resilience
"""

from rage_retrieval.core.resilience.execution import execute_with_resilience
from rage_retrieval.core.resilience.models import (
    DEFAULT_JITTER_FRACTION,
    MAX_JITTER_FRACTION,
    AttemptOutcome,
    AttemptRecord,
    JitterSource,
    RandomJitter,
    RetryPolicy,
    SleepFunc,
    no_jitter,
)
from rage_retrieval.core.resilience.retry import compute_backoff_delay_ms, should_retry

__all__ = [
    "AttemptOutcome",
    "AttemptRecord",
    "JitterSource",
    "DEFAULT_JITTER_FRACTION",
    "MAX_JITTER_FRACTION",
    "RandomJitter",
    "RetryPolicy",
    "SleepFunc",
    "compute_backoff_delay_ms",
    "execute_with_resilience",
    "no_jitter",
    "should_retry",
]
