"""RetrievalSettings loading and validation logic.

Provides ``_SettingsLoader``, a mixin class whose methods are inherited by
``RetrievalSettings`` (defined in ``settings.py``).  Splitting loading and
validation into its own module keeps ``settings.py`` focused on field
definitions and simple accessors.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, cast
from urllib.parse import urlsplit

from rage_retrieval.config.parsing import (
    VALID_LOG_LEVELS,
    VALID_SCORE_FIELDS,
    _check_range,
    _normalize_log_level,
    _parse_bool,
    _parse_int,
    _parse_optional_int,
)
from rage_retrieval.core.redaction import MIN_SCRUB_LENGTH

if TYPE_CHECKING:
    from rage_retrieval.config.settings import RetrievalSettings

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VAR = "RAGE_CONFIG_FILE"

# Project-local config files, first match wins
_PROJECT_CONFIG_FILES = ("rage-retrieval.toml", ".rage-retrieval.toml")

# (attribute, environment variable) pairs for required connection settings
_REQUIRED_FIELDS = (
    ("base_uri", "RAGE_VECTORIZE_URI"),
    ("org_id", "RAGE_VECTORIZE_ORGANIZATION_ID"),
    ("pipeline_id", "RAGE_VECTORIZE_PIPELINE_ID"),
    ("api_key", "RAGE_VECTORIZE_API_KEY"),
)


class _SettingsLoader:
    """Mixin providing config-loading methods for ``RetrievalSettings``.

    At runtime ``self`` is always a ``RetrievalSettings`` instance.
    """

    if TYPE_CHECKING:
        base_uri: str
        org_id: str
        pipeline_id: str
        api_key: str
        timeout_ms: int
        retry_attempts: int
        retry_delay_ms: int
        num_results_default: int
        rerank: bool
        score_field: str
        user_agent: str
        max_retry_elapsed_ms: Optional[int]
        log_level: str
        structured_logging: bool
        metrics_enabled: bool
        correlation_id_prefix: str

    @classmethod
    def from_env(cls, config_file: Optional[str] = None, *, validate: bool = True) -> "RetrievalSettings":
        """
        Create settings from environment variables and an optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config (explicit path, ``RAGE_CONFIG_FILE``, or
           ./rage-retrieval.toml / ./.rage-retrieval.toml)
        3. Default values

        Args:
            config_file: Explicit TOML path.
            validate: Run :meth:`validate` before returning.

        Raises:
            ValueError: If a value cannot be parsed, or validation fails.
        """
        settings = cls()

        toml_path = config_file or os.environ.get(CONFIG_FILE_ENV_VAR)
        if toml_path:
            settings._load_toml(Path(toml_path))
        else:
            for name in _PROJECT_CONFIG_FILES:
                project_config = Path(name)
                if project_config.exists():
                    settings._load_toml(project_config)
                    logger.debug(f"Loaded project config from {project_config}")
                    break

        settings._load_env()
        if validate:
            settings.validate()

        return cast("RetrievalSettings", settings)

    def _load_toml(self, path: Path) -> None:
        """Load settings from a TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in config file {path}: {e}") from e

        self._apply_toml(data)

    def _apply_toml(self, data: Dict[str, Any]) -> None:
        # Connection settings
        if "vectorize" in data:
            vec = data["vectorize"]
            if "uri" in vec:
                self.base_uri = str(vec["uri"])
            if "organization_id" in vec:
                self.org_id = str(vec["organization_id"])
            if "pipeline_id" in vec:
                self.pipeline_id = str(vec["pipeline_id"])
            if "api_key" in vec:
                self.api_key = str(vec["api_key"])

        # Retrieval and retry settings
        if "retrieval" in data:
            ret = data["retrieval"]
            if "timeout_ms" in ret:
                self.timeout_ms = _parse_int(ret["timeout_ms"], "retrieval.timeout_ms")
            if "retry_attempts" in ret:
                self.retry_attempts = _parse_int(ret["retry_attempts"], "retrieval.retry_attempts")
            if "retry_delay_ms" in ret:
                self.retry_delay_ms = _parse_int(ret["retry_delay_ms"], "retrieval.retry_delay_ms")
            if "max_retry_elapsed_ms" in ret:
                self.max_retry_elapsed_ms = _parse_optional_int(
                    ret["max_retry_elapsed_ms"], "retrieval.max_retry_elapsed_ms"
                )
            if "num_results" in ret:
                self.num_results_default = _parse_int(ret["num_results"], "retrieval.num_results")
            if "rerank" in ret:
                self.rerank = _parse_bool(ret["rerank"])
            if "score_field" in ret:
                self.score_field = str(ret["score_field"]).strip().lower()
            if "user_agent" in ret:
                self.user_agent = str(ret["user_agent"])
            if "correlation_id_prefix" in ret:
                self.correlation_id_prefix = str(ret["correlation_id_prefix"])

        # Logging and metrics settings
        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = _normalize_log_level(log["level"])
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])
            if "metrics_enabled" in log:
                self.metrics_enabled = _parse_bool(log["metrics_enabled"])

    def _load_env(self) -> None:
        """Load settings from environment variables."""
        # Connection
        if uri := os.environ.get("RAGE_VECTORIZE_URI"):
            self.base_uri = uri
        if org_id := os.environ.get("RAGE_VECTORIZE_ORGANIZATION_ID"):
            self.org_id = org_id
        if pipeline_id := os.environ.get("RAGE_VECTORIZE_PIPELINE_ID"):
            self.pipeline_id = pipeline_id
        if api_key := os.environ.get("RAGE_VECTORIZE_API_KEY"):
            self.api_key = api_key

        # Performance
        if timeout := os.environ.get("RAGE_TIMEOUT_MS"):
            self.timeout_ms = _parse_int(timeout, "RAGE_TIMEOUT_MS")
        if attempts := os.environ.get("RAGE_RETRY_ATTEMPTS"):
            self.retry_attempts = _parse_int(attempts, "RAGE_RETRY_ATTEMPTS")
        if delay := os.environ.get("RAGE_RETRY_DELAY_MS"):
            self.retry_delay_ms = _parse_int(delay, "RAGE_RETRY_DELAY_MS")
        if budget := os.environ.get("RAGE_MAX_RETRY_ELAPSED_MS"):
            self.max_retry_elapsed_ms = _parse_optional_int(budget, "RAGE_MAX_RETRY_ELAPSED_MS")

        # Retrieval
        if num_results := os.environ.get("RAGE_NUM_RESULTS"):
            self.num_results_default = _parse_int(num_results, "RAGE_NUM_RESULTS")
        if rerank := os.environ.get("RAGE_RERANK"):
            self.rerank = _parse_bool(rerank)
        if score_field := os.environ.get("RAGE_SCORE_FIELD"):
            self.score_field = score_field.strip().lower()
        if user_agent := os.environ.get("RAGE_USER_AGENT"):
            self.user_agent = user_agent

        # Logging and metrics
        if level := os.environ.get("RAGE_LOG_LEVEL"):
            self.log_level = _normalize_log_level(level)
        if structured := os.environ.get("RAGE_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)
        if metrics_enabled := os.environ.get("RAGE_METRICS_ENABLED"):
            self.metrics_enabled = _parse_bool(metrics_enabled)
        if prefix := os.environ.get("RAGE_CORRELATION_ID_PREFIX"):
            self.correlation_id_prefix = prefix

    def validate(self) -> None:
        """Check required fields and value ranges.

        Raises:
            ValueError: Naming every missing required setting, or the first
                out-of-range value.
        """
        missing = [env_var for attr, env_var in _REQUIRED_FIELDS if not getattr(self, attr)]
        if missing:
            raise ValueError(f"Missing required retrieval settings: {', '.join(missing)}")

        for attr, env_var in _REQUIRED_FIELDS[1:]:
            if len(getattr(self, attr)) < MIN_SCRUB_LENGTH:
                raise ValueError(f"Invalid {env_var}: must be at least {MIN_SCRUB_LENGTH} characters")

        parsed = urlsplit(self.base_uri)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Invalid RAGE_VECTORIZE_URI: must be an absolute http(s) URL")

        _check_range("timeout_ms", self.timeout_ms, 1000, 30000)
        _check_range("retry_attempts", self.retry_attempts, 0, 5)
        _check_range("retry_delay_ms", self.retry_delay_ms, 100, 10000)
        _check_range("num_results_default", self.num_results_default, 1, 20)

        if self.max_retry_elapsed_ms is not None and self.max_retry_elapsed_ms <= 0:
            raise ValueError(f"Invalid max_retry_elapsed_ms: {self.max_retry_elapsed_ms} (must be > 0)")
        if self.score_field not in VALID_SCORE_FIELDS:
            raise ValueError(
                f"Invalid score_field: {self.score_field!r}. Must be one of: {sorted(VALID_SCORE_FIELDS)}"
            )
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level!r}. Must be one of: {sorted(VALID_LOG_LEVELS)}")
        if not self.user_agent.strip():
            raise ValueError("Invalid user_agent: must not be empty")
