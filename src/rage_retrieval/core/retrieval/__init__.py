"""Retrieval client, request/response models, and response parsing."""

from rage_retrieval.core.retrieval.client import (
    HEALTH_CHECK_QUESTION,
    CircuitBreakerGate,
    RetrievalClient,
)
from rage_retrieval.core.retrieval.endpoints import build_retrieval_url, sanitize_url
from rage_retrieval.core.retrieval.models import (
    DEFAULT_NUM_RESULTS,
    MAX_NUM_RESULTS,
    MIN_NUM_RESULTS,
    HealthStatus,
    RetrievalQuery,
    RetrievalResult,
    RetrievedDocument,
)
from rage_retrieval.core.retrieval.parsing import (
    UNREADABLE_BODY,
    normalize_response,
    parse_retry_after,
    read_error_body,
)

__all__ = [
    "CircuitBreakerGate",
    "DEFAULT_NUM_RESULTS",
    "HEALTH_CHECK_QUESTION",
    "HealthStatus",
    "MAX_NUM_RESULTS",
    "MIN_NUM_RESULTS",
    "RetrievalClient",
    "RetrievalQuery",
    "RetrievalResult",
    "RetrievedDocument",
    "UNREADABLE_BODY",
    "build_retrieval_url",
    "normalize_response",
    "parse_retry_after",
    "read_error_body",
    "sanitize_url",
]
