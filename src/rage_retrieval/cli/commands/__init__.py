"""CLI commands."""

from rage_retrieval.cli.commands.config import config_cmd
from rage_retrieval.cli.commands.health import health_cmd
from rage_retrieval.cli.commands.query import query_cmd

__all__ = [
    "config_cmd",
    "health_cmd",
    "query_cmd",
]
