"""Correlation id propagation via context variables.

A correlation id ties together every telemetry event emitted for one
logical retrieval, across retries and across components.
"""

import random
import string
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_correlation_id(prefix: str = "rage", *, rng: Optional[random.Random] = None) -> str:
    """Generate a new correlation id.

    Format is ``<prefix>-<epoch ms>-<9 base36 chars>``.

    Args:
        prefix: Leading label, usually the configured correlation prefix.
        rng: Injectable Random instance for deterministic testing.

    Returns:
        A fresh correlation id string.
    """
    _rng = rng or random.SystemRandom()
    suffix = "".join(_rng.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def get_correlation_id() -> str:
    """Get the correlation id bound to the current context ("" if unset)."""
    return correlation_id.get()


def resolve_correlation_id(explicit: Optional[str], prefix: str = "rage") -> str:
    """Pick the explicit id, else the context id, else a generated one."""
    if explicit:
        return explicit
    return get_correlation_id() or generate_correlation_id(prefix)


@contextmanager
def correlation_context(value: Optional[str] = None, *, prefix: str = "rage") -> Iterator[str]:
    """Bind a correlation id for the duration of a block.

    Example:
        >>> with correlation_context() as cid:
        ...     await client.retrieve("benefits overview")  # events tagged with cid
    """
    cid = value or generate_correlation_id(prefix)
    token = correlation_id.set(cid)
    try:
        yield cid
    finally:
        correlation_id.reset(token)
