"""Error taxonomy and failure classification.

Every failure seen by the retrieval stack is mapped onto exactly one
:class:`ErrorKind`, carried by a single :class:`ClassifiedError` exception.
Classification is a pure function: no logging, no I/O.
"""

import errno
import socket
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from rage_retrieval.core.errors.signals import CircuitBreakerError
from rage_retrieval.core.redaction import redact_credentials, redact_payload


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    SERVER = "server"
    CONFIGURATION = "configuration"
    CIRCUIT_BREAKER = "circuit_breaker"
    UNKNOWN = "unknown"

    @property
    def default_retryable(self) -> bool:
        return self in RETRYABLE_KINDS

    @property
    def is_terminal(self) -> bool:
        """Terminal kinds are never retried, whatever the retryable flag says."""
        return self in TERMINAL_KINDS


RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.RATE_LIMIT, ErrorKind.SERVER})

TERMINAL_KINDS = frozenset(
    {
        ErrorKind.AUTH,
        ErrorKind.VALIDATION,
        ErrorKind.CONFIGURATION,
        ErrorKind.CIRCUIT_BREAKER,
    }
)


class ClassifiedError(Exception):
    """A failure tagged with its :class:`ErrorKind`.

    ``str()`` and :meth:`to_dict` only ever expose the redacted message.

    Attributes:
        message: Raw (unredacted) failure description.
        retryable: Whether the executor may retry this failure.
        correlation_id: Id of the logical operation that failed.
        context: Extra structured detail (endpoint, attempt, ...).
        timestamp: UTC time of classification.
        status_code: HTTP status, when the failure came from a response.
        retry_after_seconds: Server back-pressure hint for rate limits.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        retryable: Optional[bool] = None,
        correlation_id: str = "",
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
        retry_after_seconds: Optional[int] = None,
        timestamp: Optional[datetime] = None,
    ):
        super().__init__(message)
        self._kind = kind
        self.message = message
        self.retryable = kind.default_retryable if retryable is None else retryable
        self.correlation_id = correlation_id
        self.context: Dict[str, Any] = context or {}
        self.status_code = status_code
        self.retry_after_seconds = retry_after_seconds
        self.timestamp = timestamp or datetime.now(timezone.utc)

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def safe_message(self) -> str:
        """Message with bearer tokens and key/password fields masked."""
        return redact_credentials(self.message)

    def __str__(self) -> str:
        return self.safe_message

    def __repr__(self) -> str:
        return f"ClassifiedError(kind={self._kind.value!r}, message={self.safe_message!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the externally visible (redacted) dictionary form."""
        result: Dict[str, Any] = {
            "error_kind": self._kind.value,
            "message": self.safe_message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.retry_after_seconds is not None:
            result["retry_after_seconds"] = self.retry_after_seconds
        if self.context:
            result["context"] = redact_payload(self.context)
        return result


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

_CONNECTION_ERRNOS = frozenset({errno.ECONNREFUSED, errno.ECONNRESET})

_CONNECTION_MARKERS = (
    "econnrefused",
    "enotfound",
    "econnreset",
    "connection refused",
    "connection reset",
    "name or service not known",
    "nodename nor servname provided",
    "temporary failure in name resolution",
)

_CONNECTION_EXCEPTIONS = (
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    ConnectionRefusedError,
    ConnectionResetError,
    socket.gaierror,
)


def _is_connection_failure(error: Optional[BaseException]) -> bool:
    """Check *error* and its cause chain for low-level connection failures."""
    seen: set[int] = set()
    current = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, _CONNECTION_EXCEPTIONS):
            return True
        if isinstance(current, OSError) and current.errno in _CONNECTION_ERRNOS:
            return True
        current = current.__cause__ or current.__context__
    return False


def _contains(text: str, *needles: str) -> bool:
    return any(needle in text for needle in needles)


def _match_kind(
    error: Optional[BaseException],
    status_code: Optional[int],
    text: str,
) -> ErrorKind:
    """Apply the classification rules in priority order."""
    if _is_connection_failure(error) or _contains(text, *_CONNECTION_MARKERS):
        return ErrorKind.NETWORK

    if isinstance(error, (TimeoutError, httpx.TimeoutException)) or _contains(text, "timeout", "timed out"):
        return ErrorKind.TIMEOUT

    if status_code in (401, 403) or _contains(text, "unauthorized", "forbidden"):
        return ErrorKind.AUTH

    if status_code == 429 or _contains(text, "rate limit", "too many requests"):
        return ErrorKind.RATE_LIMIT

    if status_code is not None and status_code >= 500:
        return ErrorKind.SERVER

    if status_code is not None and 400 <= status_code < 500:
        return ErrorKind.VALIDATION

    if _contains(text, "config", "missing", "invalid"):
        return ErrorKind.CONFIGURATION

    if isinstance(error, CircuitBreakerError):
        return ErrorKind.CIRCUIT_BREAKER

    return ErrorKind.UNKNOWN


def _describe(error: Optional[BaseException]) -> str:
    if error is None:
        return "Unknown error"
    return str(error) or type(error).__name__


def classify_failure(
    error: Optional[BaseException] = None,
    *,
    status_code: Optional[int] = None,
    message: Optional[str] = None,
    retry_after_seconds: Optional[int] = None,
    correlation_id: str = "",
    context: Optional[Dict[str, Any]] = None,
) -> ClassifiedError:
    """Map a raw failure onto a :class:`ClassifiedError`.

    Accepts an exception, an HTTP status (with its message), or both.
    An exception that is already classified is returned as-is.

    Args:
        error: The raised exception, if any.
        status_code: HTTP status of a non-2xx response.
        message: Failure description; defaults to ``str(error)``.
        retry_after_seconds: ``Retry-After`` hint, kept only for rate limits.
        correlation_id: Id of the logical operation.
        context: Extra structured detail to attach.

    Returns:
        The classified error (not raised).

    Example:
        >>> classify_failure(status_code=503, message="HTTP 503").kind
        <ErrorKind.SERVER: 'server'>
    """
    if isinstance(error, ClassifiedError):
        return error

    text = message if message is not None else _describe(error)
    kind = _match_kind(error, status_code, text.lower())

    details = dict(context or {})
    if error is not None:
        details.setdefault("exception_type", type(error).__name__)

    return ClassifiedError(
        kind,
        text,
        correlation_id=correlation_id,
        context=details,
        status_code=status_code,
        retry_after_seconds=retry_after_seconds if kind is ErrorKind.RATE_LIMIT else None,
    )
