"""Endpoint construction and sanitization for the retrieval backend."""

import re
from urllib.parse import quote, urlsplit, urlunsplit

from rage_retrieval.core.redaction import MASK

_ORG_SEGMENT = re.compile(r"/org/[^/?#]+")
_PIPELINE_SEGMENT = re.compile(r"/pipelines/[^/?#]+")

INVALID_URL = "[invalid-url]"


def build_retrieval_url(base_uri: str, org_id: str, pipeline_id: str) -> str:
    """Build ``{base_uri}/org/{org_id}/pipelines/{pipeline_id}/retrieval``."""
    return (
        f"{base_uri.rstrip('/')}/org/{quote(org_id, safe='')}"
        f"/pipelines/{quote(pipeline_id, safe='')}/retrieval"
    )


def sanitize_url(url: str) -> str:
    """Mask organization and pipeline path segments for logging.

    Scheme and host are kept; userinfo and fragment are dropped.

    Args:
        url: Absolute URL that may embed tenant identifiers.

    Returns:
        The URL with ``/org/<id>`` and ``/pipelines/<id>`` replaced by the
        mask, or ``"[invalid-url]"`` if it cannot be parsed.

    Example:
        >>> sanitize_url("https://api.example.com/org/org-123/pipelines/pipe-456/retrieval")
        'https://api.example.com/org/***/pipelines/***/retrieval'
    """
    try:
        parts = urlsplit(url)
        host = parts.hostname or ""
        if parts.port:
            host = f"{host}:{parts.port}"
    except ValueError:
        return INVALID_URL

    path = _ORG_SEGMENT.sub(f"/org/{MASK}", parts.path)
    path = _PIPELINE_SEGMENT.sub(f"/pipelines/{MASK}", path)
    return urlunsplit((parts.scheme, host, path, parts.query, ""))
