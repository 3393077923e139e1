"""JSON response envelope for CLI commands.

Every command prints exactly one JSON document to stdout:

    {"success": true, "data": {...}, "error": null}
    {"success": false, "data": {"error_code": ..., ...}, "error": "message"}
"""

import json
import sys
from typing import Any, Dict, NoReturn, Optional

import click


def _emit(payload: Dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def emit_success(data: Dict[str, Any]) -> None:
    """Print a success envelope."""
    _emit({"success": True, "data": data, "error": None})


def emit_error(
    message: str,
    *,
    code: str,
    error_type: str,
    remediation: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> NoReturn:
    """Print an error envelope and exit with status 1.

    Args:
        message: Human-readable (already redacted) error message.
        code: Machine-readable error code, e.g. ``VALIDATION_ERROR``.
        error_type: Error category, e.g. an ``ErrorKind`` value.
        remediation: Optional hint on how to fix the problem.
        details: Extra structured detail merged into ``data``.
    """
    data: Dict[str, Any] = {"error_code": code, "error_type": error_type}
    if remediation:
        data["remediation"] = remediation
    if details:
        data.update(details)
    _emit({"success": False, "data": data, "error": message})
    sys.exit(1)
