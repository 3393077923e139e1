"""Entry point for the ``rage-retrieval`` command line tool."""

from typing import Optional

import click

from rage_retrieval import __version__
from rage_retrieval.cli.commands import config_cmd, health_cmd, query_cmd
from rage_retrieval.cli.context import CLIContext


@click.group()
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="TOML settings file (default: RAGE_CONFIG_FILE or ./rage-retrieval.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Emit logs to stderr at this level.",
)
@click.version_option(__version__, prog_name="rage-retrieval")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: Optional[str]) -> None:
    """Query a hosted retrieval pipeline with retries and telemetry."""
    ctx.obj = CLIContext(config_file=config_file, log_level=log_level)


cli.add_command(query_cmd)
cli.add_command(health_cmd)
cli.add_command(config_cmd)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
