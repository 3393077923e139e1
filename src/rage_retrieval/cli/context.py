"""Shared CLI state: global options and settings resolution."""

from dataclasses import dataclass, replace
from typing import Optional

import click

from rage_retrieval.cli import mock
from rage_retrieval.cli.output import emit_error
from rage_retrieval.config import RetrievalSettings


@dataclass
class CLIContext:
    """Global options captured by the root command group."""

    config_file: Optional[str] = None
    log_level: Optional[str] = None


def get_context(ctx: click.Context) -> CLIContext:
    """Return the CLIContext stored on the root click context."""
    obj = ctx.find_object(CLIContext)
    return obj if obj is not None else CLIContext()


def load_settings(ctx: click.Context, *, use_mock: bool = False) -> RetrievalSettings:
    """Resolve settings for a command, exiting with an error envelope on failure.

    In mock mode, missing connection settings are filled with placeholders
    and validation of credentials is skipped.
    """
    cli_ctx = get_context(ctx)
    try:
        settings = RetrievalSettings.from_env(cli_ctx.config_file, validate=not use_mock)
    except ValueError as e:
        emit_error(
            str(e),
            code="CONFIGURATION_ERROR",
            error_type="configuration",
            remediation="Set the RAGE_VECTORIZE_* environment variables or pass --config",
        )

    if use_mock:
        settings = replace(
            settings,
            base_uri=mock.MOCK_BASE_URI,
            org_id=settings.org_id or mock.MOCK_ORG_ID,
            pipeline_id=settings.pipeline_id or mock.MOCK_PIPELINE_ID,
            api_key=settings.api_key or mock.MOCK_API_KEY,
        )

    if cli_ctx.log_level:
        settings.log_level = cli_ctx.log_level.upper()
        settings.setup_logging()

    return settings
