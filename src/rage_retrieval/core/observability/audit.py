"""Structured event logging for retrieval operations.

Provides the ``StructuredLogger`` collaborator interface and its default
implementation, which writes audit events to the standard logger with the
full event attached as structured ``extra`` data.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Protocol, runtime_checkable

from rage_retrieval.core.context import get_correlation_id

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@runtime_checkable
class StructuredLogger(Protocol):
    """Collaborator that receives structured events.

    Implementations must be safe for concurrent use and must not block the
    calling task for an unbounded time.
    """

    def log_event(
        self,
        event_name: str,
        level: str,
        payload: Dict[str, Any],
        correlation_id: str,
    ) -> None: ...


@dataclass
class AuditEvent:
    """Structured event record."""

    event_name: str
    level: str = "info"
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    correlation_id: str = ""

    def __post_init__(self) -> None:
        """Auto-populate correlation_id from context if not set."""
        if not self.correlation_id:
            self.correlation_id = get_correlation_id()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "event": self.event_name,
            "level": self.level,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        return result


class AuditLogger:
    """
    Default ``StructuredLogger`` backed by the standard logging module.

    Events are written to a dedicated logger for easy filtering by
    log aggregation systems.
    """

    def __init__(self, name: str = f"{__name__}.events"):
        self._logger = logging.getLogger(name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        level = _LEVELS.get(event.level, logging.INFO)
        self._logger.log(level, f"AUDIT: {event.event_name}", extra={"audit": event.to_dict()})

    def log_event(
        self,
        event_name: str,
        level: str,
        payload: Dict[str, Any],
        correlation_id: str,
    ) -> None:
        self.log(
            AuditEvent(
                event_name=event_name,
                level=level,
                details=payload,
                correlation_id=correlation_id,
            )
        )


# Global audit logger
_audit = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """Get the global audit logger."""
    return _audit
