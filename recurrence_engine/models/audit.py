"""
Audit Models for the Recurrence Engine

Every edit the engine prepares is described by an audit event. This provides:
1. Traceability of how a master record reached its current state
2. Debugging information when a move pair goes wrong
3. A feed the storage collaborator can persist if it wants to

DESIGN DECISION: Audit events describe what the engine handed back. They
are created after the operator ran, never before.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    One per mutation kind, plus the diagnostics.
    """
    # Moves
    ONE_TIME_MOVED = "one_time_moved"
    OCCURRENCE_MOVED = "occurrence_moved"
    SERIES_MOVED = "series_moved"

    # Edits
    SERIES_UPDATED = "series_updated"
    OCCURRENCE_UPDATED = "occurrence_updated"

    # Deletions
    OCCURRENCE_DELETED = "occurrence_deleted"
    SERIES_DELETED = "series_deleted"

    # Multi-record edits
    BATCH_PREPARED = "batch_prepared"

    # Diagnostics
    INVALID_OPERATION = "invalid_operation"
    PAIRING_INCONSISTENCY = "pairing_inconsistency"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every prepared edit creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which master record is this about?
    master_id: Optional[str] = Field(
        default=None,
        description="ID of the master record this event relates to"
    )
    occurrence_date: Optional[date] = Field(
        default=None,
        description="Occurrence the edit targeted, if any"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one bulk edit)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "master_id": self.master_id,
            "occurrence_date": self.occurrence_date.isoformat() if self.occurrence_date else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.occurrence_moved(master_id, source, target)
        event = AuditEventBuilder.series_deleted(master_id)
    """

    @staticmethod
    def one_time_moved(
        master_id: str,
        from_date: date,
        to_date: date,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ONE_TIME_MOVED,
            master_id=master_id,
            occurrence_date=from_date,
            correlation_id=correlation_id,
            description=f"One-time entry moved from {from_date} to {to_date}",
            details={
                "from": from_date.isoformat(),
                "to": to_date.isoformat(),
            },
        )

    @staticmethod
    def occurrence_moved(
        master_id: str,
        source: date,
        target: date,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCE_MOVED,
            master_id=master_id,
            occurrence_date=source,
            correlation_id=correlation_id,
            description=f"Occurrence moved from {source} to {target}",
            details={
                "source": source.isoformat(),
                "target": target.isoformat(),
            },
        )

    @staticmethod
    def series_moved(
        master_id: str,
        old_anchor: date,
        new_anchor: date,
        dropped_moves: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SERIES_MOVED,
            master_id=master_id,
            correlation_id=correlation_id,
            description=f"Series re-anchored from {old_anchor} to {new_anchor}",
            details={
                "old_anchor": old_anchor.isoformat(),
                "new_anchor": new_anchor.isoformat(),
                "dropped_move_exceptions": dropped_moves,
            },
        )

    @staticmethod
    def series_updated(
        master_id: str,
        fields: list[str],
        cleared_overrides: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SERIES_UPDATED,
            master_id=master_id,
            correlation_id=correlation_id,
            description=f"Series updated ({', '.join(fields) or 'no fields'})",
            details={
                "fields": fields,
                "cleared_overrides": cleared_overrides,
            },
        )

    @staticmethod
    def occurrence_updated(
        master_id: str,
        occurrence_date: date,
        fields: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCE_UPDATED,
            master_id=master_id,
            occurrence_date=occurrence_date,
            correlation_id=correlation_id,
            description=f"Occurrence on {occurrence_date} updated",
            details={
                "fields": fields,
            },
        )

    @staticmethod
    def occurrence_deleted(
        master_id: str,
        occurrence_date: date,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCE_DELETED,
            master_id=master_id,
            occurrence_date=occurrence_date,
            correlation_id=correlation_id,
            description=f"Occurrence on {occurrence_date} deleted",
        )

    @staticmethod
    def series_deleted(
        master_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SERIES_DELETED,
            master_id=master_id,
            correlation_id=correlation_id,
            description="Whole entry removed",
        )

    @staticmethod
    def batch_prepared(
        operation: str,
        updated: int,
        removed: int,
        missing: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_PREPARED,
            severity=AuditSeverity.WARNING if missing else AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=f"Batch {operation}: {updated} updated, {removed} removed",
            details={
                "operation": operation,
                "updated": updated,
                "removed": removed,
                "missing_master_ids": missing,
            },
        )

    @staticmethod
    def invalid_operation(
        master_id: str,
        operation: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVALID_OPERATION,
            severity=AuditSeverity.WARNING,
            master_id=master_id,
            correlation_id=correlation_id,
            description=f"{operation} left the entry unchanged: {reason}",
            details={
                "operation": operation,
                "reason": reason,
            },
        )

    @staticmethod
    def pairing_inconsistency(
        master_id: str,
        issues: list[dict],
        has_errors: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAIRING_INCONSISTENCY,
            severity=AuditSeverity.ERROR if has_errors else AuditSeverity.WARNING,
            master_id=master_id,
            correlation_id=correlation_id,
            description=f"Move pairing check found {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
