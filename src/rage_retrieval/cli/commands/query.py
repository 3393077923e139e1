"""Query command: run one retrieval and print the ranked documents."""

import asyncio
import json
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

import click
from pydantic import ValidationError

from rage_retrieval.cli.context import load_settings
from rage_retrieval.cli.mock import mock_transport
from rage_retrieval.cli.output import emit_error, emit_success
from rage_retrieval.core.context import resolve_correlation_id
from rage_retrieval.core.errors import ClassifiedError
from rage_retrieval.core.retrieval import (
    MAX_NUM_RESULTS,
    MIN_NUM_RESULTS,
    RetrievalClient,
    RetrievalQuery,
    RetrievalResult,
)

_PREVIEW_CHARS = 200


def _parse_filters(filters: Tuple[str, ...]) -> Dict[str, Any]:
    """Parse ``KEY=VALUE`` pairs; JSON scalars are decoded, anything else kept as text."""
    parsed: Dict[str, Any] = {}
    for entry in filters:
        key, sep, raw_value = entry.partition("=")
        if not sep or not key.strip():
            emit_error(
                f"Malformed filter {entry!r}: expected KEY=VALUE",
                code="VALIDATION_ERROR",
                error_type="validation",
                remediation="Pass filters as --filter category=handbook",
            )
        try:
            value = json.loads(raw_value)
        except ValueError:
            value = raw_value
        parsed[key.strip()] = value
    return parsed


def _render_pretty(result: RetrievalResult, correlation_id: str) -> None:
    click.echo(f"{result.count} of {result.total} results ({result.processing_time_ms:.0f}ms) [{correlation_id}]")
    for rank, doc in enumerate(result.results, start=1):
        source = doc.source_metadata.get("source", "unknown source")
        click.echo(f"\n{rank}. {source}  score={doc.score:.3f}")
        text = doc.text if len(doc.text) <= _PREVIEW_CHARS else doc.text[:_PREVIEW_CHARS] + "..."
        click.echo(f"   {text}")


@click.command("query")
@click.argument("question")
@click.option(
    "--num-results",
    "-n",
    type=click.IntRange(MIN_NUM_RESULTS, MAX_NUM_RESULTS),
    default=None,
    help="Maximum number of documents to return (default from settings).",
)
@click.option("--rerank/--no-rerank", default=None, help="Toggle the reranking pass.")
@click.option("--filter", "filters", multiple=True, metavar="KEY=VALUE", help="Metadata filter (repeatable).")
@click.option(
    "--timeout",
    "timeout_ms",
    type=click.IntRange(1000, 30000),
    default=None,
    help="Per-attempt timeout in milliseconds.",
)
@click.option("--correlation-id", default=None, help="Correlation id to tag all telemetry with.")
@click.option("--mock", "use_mock", is_flag=True, help="Answer from canned documents, no network.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "pretty"]),
    default="json",
    show_default=True,
    help="Output format.",
)
@click.pass_context
def query_cmd(
    ctx: click.Context,
    question: str,
    num_results: Optional[int],
    rerank: Optional[bool],
    filters: Tuple[str, ...],
    timeout_ms: Optional[int],
    correlation_id: Optional[str],
    use_mock: bool,
    output_format: str,
) -> None:
    """Retrieve documents relevant to QUESTION."""
    settings = load_settings(ctx, use_mock=use_mock)
    if timeout_ms is not None:
        settings = replace(settings, timeout_ms=timeout_ms)

    try:
        query = RetrievalQuery(
            question=question,
            num_results=num_results if num_results is not None else settings.num_results_default,
            rerank=settings.rerank if rerank is None else rerank,
            metadata_filters=_parse_filters(filters),
        )
    except ValidationError as e:
        emit_error(
            f"Invalid query: {e.errors()[0]['msg']}",
            code="VALIDATION_ERROR",
            error_type="validation",
            remediation="Provide a non-empty question",
        )

    cid = resolve_correlation_id(correlation_id, settings.correlation_id_prefix)
    client = RetrievalClient(settings, transport=mock_transport() if use_mock else None)

    try:
        result = asyncio.run(client.retrieve(query, cid))
    except ClassifiedError as exc:
        emit_error(
            exc.safe_message,
            code=f"{exc.kind.value.upper()}_ERROR",
            error_type=exc.kind.value,
            details=exc.to_dict(),
        )

    if output_format == "pretty":
        _render_pretty(result, cid)
        return

    emit_success({"correlation_id": cid, "mock": use_mock, **result.model_dump(mode="json")})
