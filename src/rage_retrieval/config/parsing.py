"""Parsing helpers for configuration values from TOML and environment."""

from typing import Any, Optional

VALID_SCORE_FIELDS = frozenset({"auto", "similarity", "relevancy"})
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_int(value: Any, name: str) -> int:
    """Parse an integer setting, naming the setting in the error."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid integer for {name}: {value!r}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {value!r}") from None


def _parse_optional_int(value: Any, name: str) -> Optional[int]:
    """Parse an integer setting where empty/"none"/"0" means unset."""
    if value is None or str(value).strip().lower() in {"", "none", "off", "0"}:
        return None
    return _parse_int(value, name)


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise ValueError(f"Invalid {name}: {value} (must be between {low} and {high})")


def _normalize_log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level == "WARN":
        level = "WARNING"
    return level
