"""Shared test fixtures for rage-retrieval tests.

Provides recording collaborators (structured logger, metrics sink, sleep),
a settings factory, and mock httpx response/client builders.
"""

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from rage_retrieval.config import RetrievalSettings

# ---------------------------------------------------------------------------
# Recording collaborators
# ---------------------------------------------------------------------------


class RecordingLogger:
    """StructuredLogger that keeps every event in memory."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    def log_event(self, event_name: str, level: str, payload: dict[str, Any], correlation_id: str) -> None:
        self.events.append(
            {
                "event_name": event_name,
                "level": level,
                "payload": payload,
                "correlation_id": correlation_id,
            }
        )

    def names(self) -> list[str]:
        return [event["event_name"] for event in self.events]

    def named(self, event_name: str) -> list[dict[str, Any]]:
        return [event for event in self.events if event["event_name"] == event_name]


class RecordingMetrics:
    """MetricsSink that keeps every ApiCallMetric in memory."""

    def __init__(self) -> None:
        self.metrics: list[Any] = []

    def record_api_call(self, metric: Any) -> None:
        self.metrics.append(metric)


class SleepRecorder:
    """Async sleep replacement recording requested durations (seconds)."""

    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.sleeps.append(seconds)


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def recording_metrics():
    return RecordingMetrics()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def make_settings():
    """Factory for RetrievalSettings with test connection values."""

    def _make(**overrides: Any) -> RetrievalSettings:
        values: dict[str, Any] = {
            "base_uri": "https://api.example.com",
            "org_id": "org-123",
            "pipeline_id": "pipe-456",
            "api_key": "test-api-key-abcdef",
            "timeout_ms": 5000,
            "retry_attempts": 2,
            "retry_delay_ms": 1000,
            "num_results_default": 5,
            "user_agent": "rage-retrieval-tests/1.0",
        }
        values.update(overrides)
        return RetrievalSettings(**values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


# ---------------------------------------------------------------------------
# Mock response builder
# ---------------------------------------------------------------------------


def make_mock_response(
    *,
    status_code: int = 200,
    headers: dict | None = None,
    json_data: Any = None,
    text: str = "",
    raise_json: bool = False,
) -> MagicMock:
    """Build a mock httpx.Response.

    Args:
        status_code: HTTP status code.
        headers: Response headers dict.
        json_data: JSON body (returned by response.json()).
        text: Plain text body.
        raise_json: If True, response.json() raises ValueError.

    Returns:
        MagicMock configured as an httpx.Response.
    """
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.headers = headers or {}

    if raise_json:
        response.json.side_effect = ValueError("No JSON")
        response.text = text
    elif json_data is not None:
        response.json.return_value = json_data
        response.text = text or json.dumps(json_data)
    else:
        response.json.side_effect = ValueError("No JSON")
        response.text = text

    response.content = response.text.encode()
    return response


@pytest.fixture
def mock_response():
    """The make_mock_response builder, as a fixture."""
    return make_mock_response


@pytest.fixture
def http_client():
    """Patch httpx.AsyncClient; yields the mock client used inside ``async with``."""
    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=None)
        mock_client_class.return_value = mock_client
        yield mock_client
