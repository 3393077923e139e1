"""Signal exceptions raised inside a retrieval attempt.

These never reach callers directly: the resilience executor classifies
them into a :class:`~rage_retrieval.core.errors.classification.ClassifiedError`.
"""

from typing import Any, Optional


class CircuitBreakerError(Exception):
    """Circuit breaker is open and rejecting requests.

    Attributes:
        breaker_name: Name of the circuit breaker.
        retry_after: Seconds until the breaker may admit a probe request.
    """

    def __init__(
        self,
        message: str = "Circuit breaker is open",
        breaker_name: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.breaker_name = breaker_name
        self.retry_after = retry_after


class ResponseFormatError(Exception):
    """A 2xx response body that is not a recognizable retrieval payload.

    Attributes:
        body_type: Python type name of the decoded body.
    """

    def __init__(self, message: str, body: Any = None):
        super().__init__(message)
        self.body_type = type(body).__name__
