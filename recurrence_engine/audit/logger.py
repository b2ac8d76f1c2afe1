"""
Audit Logger

DESIGN DECISION: Every edit the engine prepares is logged. This provides:
1. Traceability of how a master record reached its state
2. Debugging capability for move-pair problems
3. An event feed the storage collaborator may persist

The audit logger:
- Is synchronous, like the rest of the engine
- Gracefully handles sink failures (doesn't break the edit if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from datetime import date
from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from recurrence_engine.config import get_settings
from recurrence_engine.models.audit import AuditEvent, AuditEventBuilder


AuditSink = Callable[[AuditEvent], None]


def configure_logging(json_output: bool = True) -> None:
    """Configure structlog for local logging."""
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(get_settings().engine.log_json)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional sink supplied by the storage collaborator
    """

    def __init__(
        self,
        sink: Optional[AuditSink] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Callable receiving every event.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger(__name__)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Forwards to the sink if one is configured.

        Returns True if the sink accepted the event (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink:
            try:
                self._sink(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_one_time_moved(
        self,
        master_id: str,
        from_date: date,
        to_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.one_time_moved(
            master_id=master_id,
            from_date=from_date,
            to_date=to_date,
            correlation_id=correlation_id,
        ))

    def log_occurrence_moved(
        self,
        master_id: str,
        source: date,
        target: date,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.occurrence_moved(
            master_id=master_id,
            source=source,
            target=target,
            correlation_id=correlation_id,
        ))

    def log_series_moved(
        self,
        master_id: str,
        old_anchor: date,
        new_anchor: date,
        dropped_moves: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.series_moved(
            master_id=master_id,
            old_anchor=old_anchor,
            new_anchor=new_anchor,
            dropped_moves=dropped_moves,
            correlation_id=correlation_id,
        ))

    def log_series_updated(
        self,
        master_id: str,
        fields: list[str],
        cleared_overrides: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.series_updated(
            master_id=master_id,
            fields=fields,
            cleared_overrides=cleared_overrides,
            correlation_id=correlation_id,
        ))

    def log_occurrence_updated(
        self,
        master_id: str,
        occurrence_date: date,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.occurrence_updated(
            master_id=master_id,
            occurrence_date=occurrence_date,
            fields=fields,
            correlation_id=correlation_id,
        ))

    def log_occurrence_deleted(
        self,
        master_id: str,
        occurrence_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.occurrence_deleted(
            master_id=master_id,
            occurrence_date=occurrence_date,
            correlation_id=correlation_id,
        ))

    def log_series_deleted(
        self,
        master_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.series_deleted(
            master_id=master_id,
            correlation_id=correlation_id,
        ))

    def log_batch_prepared(
        self,
        operation: str,
        updated: int,
        removed: int,
        missing: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.batch_prepared(
            operation=operation,
            updated=updated,
            removed=removed,
            missing=missing,
            correlation_id=correlation_id,
        ))

    def log_invalid_operation(
        self,
        master_id: str,
        operation: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.invalid_operation(
            master_id=master_id,
            operation=operation,
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_pairing_inconsistency(
        self,
        master_id: str,
        issues: list[dict],
        has_errors: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.pairing_inconsistency(
            master_id=master_id,
            issues=issues,
            has_errors=has_errors,
            correlation_id=correlation_id,
        ))


    def log_system_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action that touches several records
    (e.g., a bulk delete) and pass it to every call it makes.
    """
    return uuid4()
