"""Error taxonomy for rage-retrieval.

Usage:
    from rage_retrieval.core.errors import ClassifiedError, ErrorKind, classify_failure

    try:
        result = await client.retrieve(query)
    except ClassifiedError as exc:
        if exc.kind is ErrorKind.AUTH:
            ...
"""

from rage_retrieval.core.errors.classification import (
    RETRYABLE_KINDS,
    TERMINAL_KINDS,
    ClassifiedError,
    ErrorKind,
    classify_failure,
)
from rage_retrieval.core.errors.signals import CircuitBreakerError, ResponseFormatError

__all__ = [
    "CircuitBreakerError",
    "ClassifiedError",
    "ErrorKind",
    "RETRYABLE_KINDS",
    "ResponseFormatError",
    "TERMINAL_KINDS",
    "classify_failure",
]
