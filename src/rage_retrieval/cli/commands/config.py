"""Config command: show resolved settings with secrets masked."""

import click

from rage_retrieval.cli.context import load_settings
from rage_retrieval.cli.output import emit_success


@click.command("config")
@click.pass_context
def config_cmd(ctx: click.Context) -> None:
    """Validate and print the resolved settings (credentials masked)."""
    settings = load_settings(ctx)
    emit_success({"settings": settings.to_safe_dict(), "valid": True})
