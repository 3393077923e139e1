"""Sensitive data redaction utilities.

Provides pattern-based masking of credentials and tenant identifiers.
Safe for use before logging or including data in error messages.
"""

import re
from typing import Any, Final, Iterable, Pattern

MASK: Final[str] = "***"

_BEARER_PATTERN: Final[Pattern[str]] = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9\-._~+/]+=*")

# Quoted `token`/`key`/`password` fields (also `api_key`, `accessToken`, ...).
# Group 1 is the key plus separator, group 2 the opening quote.
_FIELD_PATTERN: Final[Pattern[str]] = re.compile(
    r"""(?i)(["']?[\w-]*(?:token|key|password)["']?\s*:\s*)(["'])(?:\\.|(?!\2).)+\2"""
)

SENSITIVE_KEYS: Final[frozenset[str]] = frozenset(
    {
        "password",
        "passwd",
        "pwd",
        "secret",
        "token",
        "api_key",
        "apikey",
        "access_token",
        "refresh_token",
        "private_key",
        "secret_key",
        "auth",
        "authorization",
        "credential",
        "credentials",
        "jwt",
        "jwt_token",
    }
)
"""Payload keys whose values are masked entirely, whatever their content."""

# Shorter values are too likely to collide with unrelated text; settings
# validation rejects identifiers below this length.
MIN_SCRUB_LENGTH: Final = 4


def redact_credentials(text: str) -> str:
    """Mask bearer tokens and key/token/password-shaped fields in *text*.

    Applies, in order, ``Bearer <token>`` -> ``Bearer ***`` and
    ``"token": "<value>"`` -> ``"token": "***"`` (key and quoting kept).
    Idempotent: redacting already-redacted text returns it unchanged.

    Args:
        text: Input text that may contain credentials.

    Returns:
        Text with credential values replaced by the mask.
    """
    if not text:
        return text
    result = _BEARER_PATTERN.sub(f"Bearer {MASK}", text)
    return _FIELD_PATTERN.sub(lambda m: f"{m.group(1)}{m.group(2)}{MASK}{m.group(2)}", result)


def scrub_identifiers(text: str, values: Iterable[str]) -> str:
    """Replace every occurrence of the given raw identifiers with the mask."""
    for value in values:
        if value and len(value) >= MIN_SCRUB_LENGTH:
            text = text.replace(value, MASK)
    return text


def redact_payload(
    data: Any,
    *,
    scrub_values: Iterable[str] = (),
    max_depth: int = 10,
) -> Any:
    """Recursively redact sensitive data from strings, dicts, and lists.

    Values under sensitive keys are masked entirely; every other string is
    passed through :func:`redact_credentials` and has the *scrub_values*
    (tenant ids, API keys) masked.

    Args:
        data: The data to redact (string, dict, list, or nested structure)
        scrub_values: Raw identifiers that must never appear in output
        max_depth: Maximum recursion depth to prevent stack overflow

    Returns:
        A copy of the data with sensitive values redacted

    Example:
        >>> redact_payload({"api_key": "sk-123", "note": "Bearer abc"})
        {'api_key': '***', 'note': 'Bearer ***'}
    """
    if max_depth <= 0:
        return "[MAX_DEPTH_EXCEEDED]"

    scrub = tuple(scrub_values)

    if isinstance(data, str):
        return scrub_identifiers(redact_credentials(data), scrub)

    elif isinstance(data, dict):
        result = {}
        for key, value in data.items():
            key_lower = str(key).lower().replace("-", "_")
            if key_lower in SENSITIVE_KEYS:
                result[key] = MASK
            else:
                result[key] = redact_payload(value, scrub_values=scrub, max_depth=max_depth - 1)
        return result

    elif isinstance(data, (list, tuple)):
        redacted = [redact_payload(item, scrub_values=scrub, max_depth=max_depth - 1) for item in data]
        return type(data)(redacted) if isinstance(data, tuple) else redacted

    return data
