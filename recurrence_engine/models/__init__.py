"""
Data Models Package

This package contains all Pydantic models used by the recurrence engine.
All data flowing through the engine must conform to these schemas.
"""

from recurrence_engine.models.entry import (
    DELETED,
    BillCategory,
    EntryException,
    EntryKind,
    EntryPatch,
    Instance,
    InstanceState,
    MalformedEntryError,
    MasterEntry,
    OccurrenceRef,
    RecurrenceEnd,
    RecurrenceEndKind,
    RecurrenceRule,
    instance_id,
    split_instance_id,
)
from recurrence_engine.models.slot import (
    DeletedSlot,
    FieldOverrides,
    MovedAwaySlot,
    MovedInSlot,
    OverriddenSlot,
    Slot,
    parse_slot,
    serialize_slot,
    slots_of,
    with_slots,
)
from recurrence_engine.models.window import EvaluationInstant, Window
from recurrence_engine.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from recurrence_engine.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Entry models
    "DELETED",
    "BillCategory",
    "EntryException",
    "EntryKind",
    "EntryPatch",
    "Instance",
    "InstanceState",
    "MalformedEntryError",
    "MasterEntry",
    "OccurrenceRef",
    "RecurrenceEnd",
    "RecurrenceEndKind",
    "RecurrenceRule",
    "instance_id",
    "split_instance_id",
    # Slot states
    "DeletedSlot",
    "FieldOverrides",
    "MovedAwaySlot",
    "MovedInSlot",
    "OverriddenSlot",
    "Slot",
    "parse_slot",
    "serialize_slot",
    "slots_of",
    "with_slots",
    # Window
    "EvaluationInstant",
    "Window",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
