"""Response parsing for the retrieval backend.

Normalizes the supported body shapes into a :class:`RetrievalResult`:

- ``{"documents": [...]}``: pipeline retrieval format (similarity/relevancy)
- ``{"results": [...], "total": N}``: generic search format
- ``[...]``: bare list of result objects
"""

import math
from typing import TYPE_CHECKING, Any, Literal, Optional

from rage_retrieval.core.errors import ResponseFormatError
from rage_retrieval.core.redaction import redact_credentials
from rage_retrieval.core.retrieval.models import RetrievalResult, RetrievedDocument

if TYPE_CHECKING:
    import httpx

ScoreField = Literal["auto", "similarity", "relevancy"]

UNREADABLE_BODY = "Unable to read error response"

_MAX_ERROR_BODY_CHARS = 500


# ---------------------------------------------------------------------------
# Success bodies
# ---------------------------------------------------------------------------


def _clamp_score(value: Any) -> float:
    """Coerce a backend score into [0, 1]; unusable values become 0."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(score):
        return 0.0
    return min(1.0, max(0.0, score))


def _first_present(item: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return None


def _require_mapping(item: Any, index: int) -> dict[str, Any]:
    if not isinstance(item, dict):
        raise ResponseFormatError(
            f"Retrieval result at position {index} is a {type(item).__name__}, expected an object",
            body=item,
        )
    return item


def _document_score(doc: dict[str, Any], score_field: ScoreField) -> float:
    if score_field == "similarity":
        value = doc.get("similarity")
    elif score_field == "relevancy":
        value = doc.get("relevancy")
    else:
        value = _first_present(doc, "relevancy", "similarity")
    if value is None:
        value = doc.get("score")
    return _clamp_score(value)


def _parse_document(doc: dict[str, Any], index: int, score_field: ScoreField) -> RetrievedDocument:
    metadata = {
        "source": _first_present(doc, "source_display_name", "filename"),
        "filename": doc.get("filename"),
        "chunk_id": doc.get("chunk_id"),
        "total_chunks": doc.get("total_chunks"),
        "origin": doc.get("origin"),
        "similarity": doc.get("similarity"),
        "relevancy": doc.get("relevancy"),
    }
    return RetrievedDocument(
        id=str(_first_present(doc, "id", "chunk_id") or f"doc-{index}"),
        score=_document_score(doc, score_field),
        text=str(doc.get("text") or ""),
        source_metadata={key: value for key, value in metadata.items() if value is not None},
    )


def _parse_result(item: dict[str, Any], index: int) -> RetrievedDocument:
    payload = item.get("payload") if isinstance(item.get("payload"), dict) else {}
    metadata = item.get("metadata") if isinstance(item.get("metadata"), dict) else {}
    source = _first_present(metadata, "source") or item.get("source")
    if source is not None:
        metadata = {**metadata, "source": source}
    return RetrievedDocument(
        id=str(item.get("id") or f"result-{index}"),
        score=_clamp_score(_first_present(item, "score", "distance")),
        text=str(_first_present(item, "text", "content") or payload.get("text") or ""),
        source_metadata=metadata,
    )


def _processing_time(data: dict[str, Any], fallback_ms: float) -> float:
    value = _first_present(data, "processing_time_ms", "processing_time", "elapsed_time")
    try:
        return max(0.0, float(value)) if value is not None else fallback_ms
    except (TypeError, ValueError):
        return fallback_ms


def _total(data: dict[str, Any], count: int) -> int:
    value = data.get("total")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        return count
    return int(value)


def normalize_response(
    data: Any,
    *,
    score_field: ScoreField = "auto",
    fallback_processing_ms: float = 0.0,
) -> RetrievalResult:
    """Normalize a decoded 2xx body into a :class:`RetrievalResult`.

    Args:
        data: Decoded JSON body.
        score_field: Which document score to rank by; ``auto`` prefers the
            reranked relevancy and falls back to similarity.
        fallback_processing_ms: Used when the backend reports no timing.

    Returns:
        Result with scores clamped to [0, 1] and sorted descending.

    Raises:
        ResponseFormatError: If the body matches none of the known shapes.
    """
    if isinstance(data, dict) and isinstance(data.get("documents"), list):
        documents = [
            _parse_document(_require_mapping(doc, i), i, score_field) for i, doc in enumerate(data["documents"])
        ]
        diagnostics = {key: data[key] for key in ("average_relevancy", "ndcg") if data.get(key) is not None}
        return RetrievalResult(
            results=documents,
            count=len(documents),
            total=_total(data, len(documents)),
            processing_time_ms=_processing_time(data, fallback_processing_ms),
            query=data.get("question"),
            diagnostics=diagnostics,
        )

    if isinstance(data, dict) and isinstance(data.get("results"), list):
        results = [_parse_result(_require_mapping(item, i), i) for i, item in enumerate(data["results"])]
        return RetrievalResult(
            results=results,
            count=len(results),
            total=_total(data, len(results)),
            processing_time_ms=_processing_time(data, fallback_processing_ms),
            query=_first_present(data, "query", "question"),
        )

    if isinstance(data, list):
        results = [_parse_result(_require_mapping(item, i), i) for i, item in enumerate(data)]
        return RetrievalResult(
            results=results,
            count=len(results),
            total=len(results),
            processing_time_ms=fallback_processing_ms,
        )

    raise ResponseFormatError(
        f"Unrecognized retrieval response shape: {type(data).__name__}",
        body=data,
    )


# ---------------------------------------------------------------------------
# Error bodies
# ---------------------------------------------------------------------------


def read_error_body(response: "httpx.Response") -> str:
    """Best-effort, redacted description of a non-2xx response body.

    Prefers ``{"error": ...}`` / ``{"message": ...}`` JSON fields, falls
    back to the raw text, and to a fixed placeholder when the body cannot
    be read at all.
    """
    try:
        text = response.text
    except Exception:
        return UNREADABLE_BODY

    message: Optional[str] = None
    try:
        data = response.json()
    except Exception:
        data = None
    if isinstance(data, dict):
        error_field = data.get("error")
        if isinstance(error_field, dict):
            message = str(error_field.get("message") or error_field)
        elif isinstance(error_field, str):
            message = error_field
        elif isinstance(data.get("message"), str):
            message = data["message"]

    if message is None:
        message = text if isinstance(text, str) else ""
    return redact_credentials(message[:_MAX_ERROR_BODY_CHARS]) or UNREADABLE_BODY


def parse_retry_after(response: "httpx.Response") -> Optional[int]:
    """Parse the ``Retry-After`` header from an HTTP response.

    Handles numeric (integer or float) values only, rounded up to whole
    seconds.  RFC 7231 date-based values are not supported and will
    return ``None``.

    Args:
        response: An httpx Response object.

    Returns:
        Seconds to wait before retrying, or ``None`` if the header is
        missing or unparseable.
    """
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            seconds = float(retry_after)
        except ValueError:
            return None
        if seconds >= 0 and not math.isinf(seconds):
            return math.ceil(seconds)
    return None
