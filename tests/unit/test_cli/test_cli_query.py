"""Unit tests for the rage-retrieval query CLI command.

Tests cover:
- Offline --mock runs through the full client stack
- JSON envelope on success and on classified failures
- Configuration and validation errors
- Option mapping onto RetrievalQuery
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

from rage_retrieval.cli.main import cli
from rage_retrieval.core.errors import ClassifiedError, ErrorKind
from rage_retrieval.core.retrieval import RetrievalResult, RetrievedDocument


def patched_client(**retrieve_kwargs):
    """Patch the command's RetrievalClient with a mock whose retrieve is an AsyncMock."""
    client = MagicMock()
    client.retrieve = AsyncMock(**retrieve_kwargs)
    return patch("rage_retrieval.cli.commands.query.RetrievalClient", return_value=client), client


class TestQueryMockMode:
    """Tests for --mock runs."""

    def test_mock_query_returns_ranked_documents(self, cli_runner, clean_env):
        """--mock answers from canned documents without credentials."""
        result = cli_runner.invoke(cli, ["query", "What is RAGE?", "--mock"])

        assert result.exit_code == 0, f"Unexpected output: {result.output}"
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["error"] is None
        assert data["data"]["mock"] is True
        assert data["data"]["count"] == 2
        assert data["data"]["total"] == 2
        assert [doc["id"] for doc in data["data"]["results"]] == ["doc_1", "doc_2"]
        assert data["data"]["correlation_id"].startswith("rage-")

    def test_num_results_limits_documents(self, cli_runner, clean_env):
        """-n caps the number of returned documents."""
        result = cli_runner.invoke(cli, ["query", "What is RAGE?", "--mock", "-n", "1"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["count"] == 1
        assert data["data"]["total"] == 2

    def test_explicit_correlation_id(self, cli_runner, clean_env):
        result = cli_runner.invoke(cli, ["query", "q", "--mock", "--correlation-id", "ticket-42"])

        assert json.loads(result.output)["data"]["correlation_id"] == "ticket-42"

    def test_pretty_format(self, cli_runner, clean_env):
        """--format pretty prints a ranked, human-readable listing."""
        result = cli_runner.invoke(cli, ["query", "q", "--mock", "--format", "pretty"])

        assert result.exit_code == 0
        assert "2 of 2 results" in result.output
        assert "1. test-document-1.txt  score=0.950" in result.output


class TestQueryOptions:
    """Tests for option mapping onto the query."""

    def test_filters_and_flags_forwarded(self, cli_runner, configured_env):
        """Filters are JSON-decoded where possible and flags override settings."""
        patcher, client = patched_client(return_value=RetrievalResult())
        with patcher:
            result = cli_runner.invoke(
                cli,
                [
                    "query",
                    "leave policy",
                    "-n",
                    "7",
                    "--no-rerank",
                    "--filter",
                    "dept=hr",
                    "--filter",
                    "year=2024",
                    "--filter",
                    'tags=["a","b"]',
                ],
            )

        assert result.exit_code == 0, f"Unexpected output: {result.output}"
        query, cid = client.retrieve.call_args.args
        assert query.question == "leave policy"
        assert query.num_results == 7
        assert query.rerank is False
        assert query.metadata_filters == {"dept": "hr", "year": 2024, "tags": ["a", "b"]}
        assert cid.startswith("rage-")

    def test_num_results_out_of_range_is_usage_error(self, cli_runner, clean_env):
        result = cli_runner.invoke(cli, ["query", "q", "--mock", "-n", "50"])

        assert result.exit_code == 2

    def test_malformed_filter(self, cli_runner, clean_env):
        """A filter without '=' is rejected before any request."""
        result = cli_runner.invoke(cli, ["query", "q", "--mock", "--filter", "nokey"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["data"]["error_code"] == "VALIDATION_ERROR"

    def test_blank_question(self, cli_runner, clean_env):
        result = cli_runner.invoke(cli, ["query", "   ", "--mock"])

        assert result.exit_code == 1
        assert json.loads(result.output)["data"]["error_code"] == "VALIDATION_ERROR"


class TestQueryErrors:
    """Tests for configuration and retrieval failures."""

    def test_missing_configuration(self, cli_runner, clean_env):
        """Without settings or --mock the command reports a configuration error."""
        result = cli_runner.invoke(cli, ["query", "q"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["data"]["error_code"] == "CONFIGURATION_ERROR"
        assert "RAGE_VECTORIZE_URI" in data["error"]
        assert "remediation" in data["data"]

    def test_config_file_supplies_settings(self, cli_runner, clean_env):
        """Connection settings can come from a TOML file via --config."""
        config = clean_env / "custom.toml"
        config.write_text(
            "[vectorize]\n"
            'uri = "https://api.example.com/v1"\n'
            'organization_id = "org-1234"\n'
            'pipeline_id = "pipe-5678"\n'
            'api_key = "toml-key-0001"\n'
        )
        document = RetrievedDocument(id="d", score=0.5)
        patcher, _ = patched_client(return_value=RetrievalResult(results=[document], count=1, total=1))
        with patcher as client_class:
            result = cli_runner.invoke(cli, ["--config", str(config), "query", "q"])

        assert result.exit_code == 0, f"Unexpected output: {result.output}"
        assert json.loads(result.output)["data"]["count"] == 1
        settings = client_class.call_args.args[0]
        assert settings.org_id == "org-1234"
        assert settings.api_key == "toml-key-0001"

    def test_classified_failure_envelope(self, cli_runner, configured_env):
        """A classified failure maps onto <KIND>_ERROR with the error details."""
        error = ClassifiedError(
            ErrorKind.AUTH,
            "Retrieval request failed with HTTP 401",
            correlation_id="cid-cli",
            status_code=401,
        )
        patcher, _ = patched_client(side_effect=error)
        with patcher:
            result = cli_runner.invoke(cli, ["query", "q"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["error"] == "Retrieval request failed with HTTP 401"
        assert data["data"]["error_code"] == "AUTH_ERROR"
        assert data["data"]["error_type"] == "auth"
        assert data["data"]["retryable"] is False
        assert data["data"]["status_code"] == 401


class TestVersion:
    def test_version_option(self, cli_runner):
        from rage_retrieval import __version__

        result = cli_runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output
