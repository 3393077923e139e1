"""RetrievalSettings dataclass.

This module defines the ``RetrievalSettings`` class (field declarations and
simple accessor methods).  Loading and validation logic lives in the
``_SettingsLoader`` mixin (``loader.py``) which ``RetrievalSettings``
inherits from.
"""

import logging
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_package_version
from typing import Any, Dict, Optional

from rage_retrieval.config.loader import _SettingsLoader
from rage_retrieval.core.redaction import MASK
from rage_retrieval.core.resilience.models import RetryPolicy


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("rage-retrieval")
    except PackageNotFoundError:
        return "0.1.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()

_LOG_HANDLER_NAME = "rage_retrieval.console"


@dataclass
class RetrievalSettings(_SettingsLoader):
    """Connection, retry, and logging settings with env var and TOML overrides."""

    # Connection
    base_uri: str = ""
    org_id: str = ""
    pipeline_id: str = ""
    api_key: str = field(default="", repr=False)

    # Performance
    timeout_ms: int = 5000
    retry_attempts: int = 2  # Retries after the first attempt
    retry_delay_ms: int = 1000
    max_retry_elapsed_ms: Optional[int] = None  # Cumulative retry budget (None = attempts only)

    # Retrieval
    num_results_default: int = 5
    rerank: bool = True
    score_field: str = "auto"
    user_agent: str = field(default_factory=lambda: f"rage-retrieval/{_PACKAGE_VERSION}")

    # Logging and metrics
    log_level: str = "INFO"
    structured_logging: bool = True
    metrics_enabled: bool = True
    correlation_id_prefix: str = "rage"

    def retry_policy(self) -> RetryPolicy:
        """Derive the immutable retry policy (first attempt + retries)."""
        return RetryPolicy(
            max_attempts=self.retry_attempts + 1,
            base_delay_ms=self.retry_delay_ms,
            max_elapsed_ms=self.max_retry_elapsed_ms,
        )

    def to_safe_dict(self) -> Dict[str, Any]:
        """Settings with credentials and tenant ids masked, for display."""
        return {
            "base_uri": self.base_uri,
            "org_id": MASK if self.org_id else "",
            "pipeline_id": MASK if self.pipeline_id else "",
            "api_key": MASK if self.api_key else "",
            "timeout_ms": self.timeout_ms,
            "retry_attempts": self.retry_attempts,
            "retry_delay_ms": self.retry_delay_ms,
            "max_retry_elapsed_ms": self.max_retry_elapsed_ms,
            "num_results_default": self.num_results_default,
            "rerank": self.rerank,
            "score_field": self.score_field,
            "user_agent": self.user_agent,
            "log_level": self.log_level,
            "metrics_enabled": self.metrics_enabled,
        }

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.structured_logging:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        root_logger = logging.getLogger("rage_retrieval")
        root_logger.setLevel(level)

        handler = next((h for h in root_logger.handlers if h.get_name() == _LOG_HANDLER_NAME), None)
        if handler is None:
            handler = logging.StreamHandler()
            handler.set_name(_LOG_HANDLER_NAME)
            root_logger.addHandler(handler)
        handler.setFormatter(formatter)
