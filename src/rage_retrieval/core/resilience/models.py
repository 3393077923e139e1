"""Resilience data models, enums, and protocols.

Defines the core types used across the resilience sub-package:
- RetryPolicy for bounded retry/backoff tuning
- AttemptOutcome / AttemptRecord for per-attempt observability
- SleepFunc and JitterSource protocols for deterministic tests
"""

import random
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Protocol

MAX_JITTER_FRACTION = 0.1
DEFAULT_JITTER_FRACTION = 0.05


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration held by a client instance.

    Attributes:
        max_attempts: Total attempts including the first one (>= 1).
        base_delay_ms: Delay before the first retry (> 0).
        backoff_multiplier: Growth factor per retry.
        jitter_fraction: Upper bound (exclusive) of the random jitter
            added to each delay, as a fraction of it, in [0, 0.1).
        max_elapsed_ms: Optional cap on total wall-clock time spent in the
            retry loop. None means only ``max_attempts`` bounds it.
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000
    backoff_multiplier: float = 2.0
    jitter_fraction: float = DEFAULT_JITTER_FRACTION
    max_elapsed_ms: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"Invalid max_attempts: {self.max_attempts} (must be >= 1)")
        if self.base_delay_ms <= 0:
            raise ValueError(f"Invalid base_delay_ms: {self.base_delay_ms} (must be > 0)")
        if not 0.0 <= self.jitter_fraction < MAX_JITTER_FRACTION:
            raise ValueError(
                f"Invalid jitter_fraction: {self.jitter_fraction} (must be within [0, {MAX_JITTER_FRACTION}))"
            )
        if self.max_elapsed_ms is not None and self.max_elapsed_ms <= 0:
            raise ValueError(f"Invalid max_elapsed_ms: {self.max_elapsed_ms} (must be > 0)")


class AttemptOutcome(str, Enum):
    """How a single attempt ended."""

    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


@dataclass
class AttemptRecord:
    """Ephemeral record of one attempt, never persisted."""

    attempt_number: int
    started_at: datetime
    outcome: Optional[AttemptOutcome] = None
    delay_before_next_ms: Optional[float] = None
    duration_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "attempt": self.attempt_number,
            "started_at": self.started_at.isoformat(),
        }
        if self.outcome is not None:
            result["outcome"] = self.outcome.value
        if self.delay_before_next_ms is not None:
            result["delay_before_next_ms"] = round(self.delay_before_next_ms, 2)
        if self.duration_ms is not None:
            result["duration_ms"] = round(self.duration_ms, 2)
        return result


class SleepFunc(Protocol):
    """Protocol for injectable sleep function."""

    async def __call__(self, seconds: float) -> None: ...


class JitterSource(Protocol):
    """Protocol for injectable jitter: returns a value in ``[0, fraction)``."""

    def __call__(self, fraction: float) -> float: ...


class RandomJitter:
    """Uniform jitter drawn from a (seedable) Random instance."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def __call__(self, fraction: float) -> float:
        if fraction <= 0:
            return 0.0
        return self._rng.random() * fraction


def no_jitter(fraction: float) -> float:
    """Jitter source that always returns zero."""
    return 0.0
