"""Health command: probe the retrieval endpoint."""

import asyncio
from typing import Optional

import click

from rage_retrieval.cli.context import load_settings
from rage_retrieval.cli.mock import mock_transport
from rage_retrieval.cli.output import emit_error, emit_success
from rage_retrieval.core.retrieval import RetrievalClient


@click.command("health")
@click.option("--correlation-id", default=None, help="Correlation id to tag all telemetry with.")
@click.option("--mock", "use_mock", is_flag=True, help="Probe the canned mock backend.")
@click.pass_context
def health_cmd(ctx: click.Context, correlation_id: Optional[str], use_mock: bool) -> None:
    """Check that the retrieval endpoint answers a minimal query.

    Exits 0 when healthy and 1 when unhealthy.
    """
    settings = load_settings(ctx, use_mock=use_mock)
    client = RetrievalClient(settings, transport=mock_transport() if use_mock else None)

    status = asyncio.run(client.health_check(correlation_id))

    if status.is_healthy:
        emit_success(status.to_dict())
        return

    emit_error(
        f"Retrieval endpoint is unhealthy: {status.error}",
        code="UNHEALTHY",
        error_type=status.error_kind or "unknown",
        details=status.to_dict(),
    )
