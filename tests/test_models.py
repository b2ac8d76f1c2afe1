"""
Tests for the Recurrence Engine models

Test strategy:
1. Parsing of the persisted record shape (including legacy spellings)
2. Serialization back to the persisted shape
3. Slot states, windows and evaluation instants
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from recurrence_engine.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    BillCategory,
    DeletedSlot,
    EntryException,
    EntryKind,
    EntryPatch,
    EvaluationInstant,
    FieldOverrides,
    MalformedEntryError,
    MasterEntry,
    MovedAwaySlot,
    MovedInSlot,
    OccurrenceRef,
    OverriddenSlot,
    RecurrenceEnd,
    RecurrenceEndKind,
    RecurrenceRule,
    ValidationIssue,
    ValidationResult,
    Window,
    instance_id,
    parse_slot,
    serialize_slot,
    slots_of,
    split_instance_id,
    with_slots,
)


def _record(**fields) -> dict:
    record = {
        "id": "rent",
        "date": "2024-01-31",
        "name": "Rent",
        "amount": "1200.00",
        "type": "bill",
        "recurrence": "monthly",
    }
    record.update(fields)
    return record


class TestMasterEntryParsing:
    """Tests for reading persisted records."""

    def test_from_record_basic(self):
        """Test parsing a plain monthly bill."""
        master = MasterEntry.from_record(_record(category="rent", isAutoPay=True))
        assert master.id == "rent"
        assert master.anchor_date == date(2024, 1, 31)
        assert master.amount == Decimal("1200.00")
        assert master.kind == EntryKind.BILL
        assert master.category == BillCategory.RENT
        assert master.recurrence == RecurrenceRule.MONTHLY
        assert master.is_auto_pay is True
        assert master.recurrence_end.kind == RecurrenceEndKind.NEVER

    @pytest.mark.parametrize("legacy,expected", [
        ("bi-weekly", RecurrenceRule.BIWEEKLY),
        ("3months", RecurrenceRule.QUARTERLY),
        ("6months", RecurrenceRule.SEMIANNUAL),
        ("12months", RecurrenceRule.ANNUAL),
    ])
    def test_legacy_recurrence_names(self, legacy, expected):
        """Test that older recurrence spellings are normalized."""
        master = MasterEntry.from_record(_record(recurrence=legacy))
        assert master.recurrence == expected

    def test_missing_recurrence_means_one_time(self):
        """Test that a record without a rule is a one-time entry."""
        record = _record()
        del record["recurrence"]
        master = MasterEntry.from_record(record)
        assert master.recurrence == RecurrenceRule.NONE
        assert master.is_recurring is False

    def test_income_drops_category_and_autopay(self):
        """Test that income never carries bill-only fields."""
        master = MasterEntry.from_record(_record(
            type="income",
            category="rent",
            isAutoPay=True,
        ))
        assert master.kind == EntryKind.INCOME
        assert master.category is None
        assert master.is_auto_pay is False

    def test_empty_category_is_ignored(self):
        """Test that an empty category string reads as no category."""
        master = MasterEntry.from_record(_record(category=""))
        assert master.category is None

    def test_end_date(self):
        """Test the flat recurrenceEndDate field."""
        master = MasterEntry.from_record(_record(recurrenceEndDate="2024-06-30"))
        assert master.recurrence_end == RecurrenceEnd.on_date(date(2024, 6, 30))

    def test_end_count(self):
        """Test the flat recurrenceCount field."""
        master = MasterEntry.from_record(_record(recurrenceCount=3))
        assert master.recurrence_end == RecurrenceEnd.after_count(3)

    def test_end_date_wins_over_count(self):
        """Test that the end date takes precedence when both are present."""
        master = MasterEntry.from_record(_record(
            recurrenceEndDate="2024-06-30",
            recurrenceCount=3,
        ))
        assert master.recurrence_end.kind == RecurrenceEndKind.ON_DATE

    def test_missing_anchor_is_malformed(self):
        """Test that a record without a date is rejected."""
        record = _record()
        del record["date"]
        with pytest.raises(MalformedEntryError, match="rent"):
            MasterEntry.from_record(record)

    def test_unknown_recurrence_is_malformed(self):
        """Test that an unknown rule is rejected."""
        with pytest.raises(MalformedEntryError):
            MasterEntry.from_record(_record(recurrence="fortnightly"))

    def test_double_marker_is_malformed(self):
        """Test that an exception can't be both moved away and moved in."""
        with pytest.raises(MalformedEntryError):
            MasterEntry.from_record(_record(exceptions={
                "2024-02-29": {"movedTo": "2024-03-02", "movedFrom": "2024-01-31"},
            }))

    def test_exceptions_keyed_by_date(self):
        """Test that exception keys are parsed to dates."""
        master = MasterEntry.from_record(_record(exceptions={
            "2024-02-29": {"amount": "1300.00", "isPaid": True},
        }))
        exception = master.exceptions[date(2024, 2, 29)]
        assert exception.amount == Decimal("1300.00")
        assert exception.is_paid is True

    def test_legacy_deletion_flag(self):
        """Test that `movedFrom: true` reads as a deletion."""
        master = MasterEntry.from_record(_record(exceptions={
            "2024-02-29": {"movedFrom": True},
        }))
        assert master.exceptions[date(2024, 2, 29)].is_deletion is True

    def test_legacy_false_flag_means_no_marker(self):
        """Test that `movedFrom: false` reads as no marker at all."""
        master = MasterEntry.from_record(_record(exceptions={
            "2024-02-29": {"movedFrom": False, "name": "Late rent"},
        }))
        exception = master.exceptions[date(2024, 2, 29)]
        assert exception.moved_from is None
        assert exception.name == "Late rent"

    def test_masters_are_frozen(self, weekly_master):
        """Test that master records can't be mutated in place."""
        with pytest.raises(ValueError):
            weekly_master.name = "Other"


class TestMasterEntrySerialization:
    """Tests for writing records back to the persisted shape."""

    def test_to_record_uses_persisted_keys(self, weekly_master):
        """Test camelCase keys, ISO dates and omitted nulls."""
        record = weekly_master.to_record()
        assert record["date"] == "2024-03-04"
        assert record["type"] == "bill"
        assert record["recurrence"] == "weekly"
        assert record["isAutoPay"] is False
        assert "category" not in record
        assert "exceptions" not in record

    def test_to_record_flattens_end(self, make_master):
        """Test that the end condition is written as flat fields."""
        master = make_master(recurrence_end=RecurrenceEnd.after_count(4))
        record = master.to_record()
        assert record["recurrenceCount"] == 4
        assert "recurrenceEndDate" not in record

    def test_record_round_trip(self):
        """Test that parse(serialize(m)) == m."""
        master = MasterEntry.from_record(_record(
            category="rent",
            recurrenceEndDate="2024-12-31",
            exceptions={
                "2024-02-29": {"movedTo": "2024-03-01"},
                "2024-03-01": {"movedFrom": "2024-02-29", "name": "Rent (late)"},
                "2024-04-30": {"movedFrom": "deleted"},
            },
        ))
        assert MasterEntry.from_record(master.to_record()) == master

    def test_exception_record(self):
        """Test exception serialization."""
        exception = EntryException(moved_from=date(2024, 3, 11), amount=Decimal("5"))
        assert exception.to_record() == {"amount": 5.0, "movedFrom": "2024-03-11"}

    def test_amount_is_written_as_number(self):
        """Test that records carry amounts as JSON numbers, not strings."""
        master = MasterEntry.from_record(_record())
        record = master.to_record()
        assert record["amount"] == 1200.0
        assert isinstance(record["amount"], float)
        assert MasterEntry.from_record(record).amount == Decimal("1200.00")

    def test_revision_token_tracks_content(self, weekly_master):
        """Test that the revision token changes with the record."""
        same = weekly_master.model_copy()
        changed = weekly_master.model_copy(update={"name": "Rent!"})
        assert weekly_master.revision_token() == same.revision_token()
        assert weekly_master.revision_token() != changed.revision_token()


class TestEntryPatch:
    """Tests for edit patches."""

    def test_changes_only_include_set_fields(self):
        """Test that unset fields don't take part."""
        patch = EntryPatch(amount=Decimal("10"))
        assert patch.changes() == {"amount": Decimal("10")}

    def test_explicit_none_is_a_change(self):
        """Test that an explicit None is kept (it means 'revert')."""
        patch = EntryPatch(name=None)
        assert patch.changes() == {"name": None}

    def test_patch_accepts_persisted_keys(self):
        """Test that patches can be built from camelCase input."""
        patch = EntryPatch.model_validate({"isPaid": True, "type": "income"})
        assert patch.changes() == {"is_paid": True, "kind": EntryKind.INCOME}


class TestInstanceIds:
    """Tests for instance ID helpers."""

    def test_instance_id(self):
        assert instance_id("rent", date(2024, 3, 11)) == "rent-2024-03-11"

    def test_split_instance_id(self):
        """Test that master IDs containing hyphens survive."""
        assert split_instance_id("car-loan-2024-03-11") == ("car-loan", date(2024, 3, 11))

    def test_split_without_date(self):
        assert split_instance_id("rent") == ("rent", None)

    def test_split_with_impossible_date(self):
        """Test that a date-shaped but invalid suffix isn't split."""
        assert split_instance_id("rent-2024-02-30") == ("rent-2024-02-30", None)

    def test_occurrence_ref_from_instance_id(self):
        ref = OccurrenceRef.from_instance_id("rent-2024-03-11")
        assert ref == OccurrenceRef(master_id="rent", occurrence_date=date(2024, 3, 11))

    def test_occurrence_ref_rejects_bare_id(self):
        with pytest.raises(MalformedEntryError):
            OccurrenceRef.from_instance_id("rent")


class TestSlots:
    """Tests for parsed slot states."""

    def test_parse_each_state(self):
        """Test that every exception shape maps to one slot state."""
        assert isinstance(parse_slot(EntryException(moved_from="deleted")), DeletedSlot)
        assert isinstance(parse_slot(EntryException(moved_to=date(2024, 3, 13))), MovedAwaySlot)
        assert isinstance(parse_slot(EntryException(moved_from=date(2024, 3, 11))), MovedInSlot)
        assert isinstance(parse_slot(EntryException(name="x")), OverriddenSlot)

    def test_deletion_drops_other_fields(self):
        """Test that the deletion sentinel carries nothing else."""
        slot = parse_slot(EntryException(moved_from="deleted", amount=Decimal("1")))
        assert serialize_slot(slot) == EntryException(moved_from="deleted")

    def test_moved_slot_keeps_overrides(self):
        slot = MovedInSlot(
            origin=date(2024, 3, 11),
            overrides=FieldOverrides(amount=Decimal("99")),
            is_paid=True,
        )
        exception = serialize_slot(slot)
        assert exception.moved_from == date(2024, 3, 11)
        assert exception.amount == Decimal("99")
        assert exception.is_paid is True
        assert parse_slot(exception) == slot

    def test_with_slots_drops_empty_overrides(self, weekly_master):
        """Test that an empty overridden slot isn't persisted."""
        master = with_slots(weekly_master, {
            date(2024, 3, 11): OverriddenSlot(),
            date(2024, 3, 18): DeletedSlot(),
        })
        assert list(master.exceptions) == [date(2024, 3, 18)]
        assert slots_of(master) == {date(2024, 3, 18): DeletedSlot()}

    def test_overrides_differing_from_baseline(self, weekly_master):
        overrides = FieldOverrides(name="Rent", amount=Decimal("99"))
        assert overrides.differing_from(weekly_master.baseline) == FieldOverrides(amount=Decimal("99"))

    def test_layered_overrides(self):
        bottom = FieldOverrides(name="a", amount=Decimal("1"))
        top = FieldOverrides(amount=Decimal("2"))
        assert bottom.layered(top) == FieldOverrides(name="a", amount=Decimal("2"))


class TestWindowAndInstant:
    """Tests for windows and evaluation instants."""

    def test_window_contains(self, march):
        assert date(2024, 3, 1) in march
        assert date(2024, 3, 31) in march
        assert date(2024, 4, 1) not in march

    def test_inverted_window_is_empty(self):
        assert Window(start=date(2024, 3, 10), end=date(2024, 3, 1)).is_empty

    def test_naive_instant_is_utc(self):
        instant = EvaluationInstant(now=datetime(2024, 3, 15, 23, 30))
        assert instant.paid_through() == date(2024, 3, 15)

    def test_instant_uses_local_date(self):
        """Test that 02:00 UTC is still the previous evening in New York."""
        instant = EvaluationInstant(
            now=datetime(2024, 3, 15, 2, 0),
            timezone="America/New_York",
        )
        assert instant.paid_through() == date(2024, 3, 14)

    def test_cutoff_hour(self):
        """Test that today only counts once the cutoff hour is reached."""
        instant = EvaluationInstant(now=datetime(2024, 3, 15, 8, 0))
        assert instant.paid_through(cutoff_hour=9) == date(2024, 3, 14)
        assert instant.paid_through(cutoff_hour=8) == date(2024, 3, 15)

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValueError):
            EvaluationInstant(now=datetime(2024, 3, 15), timezone="Mars/Olympus")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SERIES_DELETED,
            description="Whole entry removed",
        )
        assert event.event_type == AuditEventType.SERIES_DELETED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.occurrence_moved(
            master_id="rent",
            source=date(2024, 3, 11),
            target=date(2024, 3, 13),
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "occurrence_moved"
        assert log_dict["occurrence_date"] == "2024-03-11"
        assert log_dict["details"]["target"] == "2024-03-13"

    def test_batch_with_missing_masters_warns(self):
        """Test that a batch with unknown master IDs is a warning."""
        correlation_id = uuid4()
        event = AuditEventBuilder.batch_prepared(
            operation="delete",
            updated=1,
            removed=0,
            missing=["gone"],
            correlation_id=correlation_id,
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.correlation_id == correlation_id

    def test_invalid_operation_is_warning(self):
        event = AuditEventBuilder.invalid_operation("rent", "move_one_time", "entry recurs weekly")
        assert event.severity == AuditSeverity.WARNING
        assert event.details["operation"] == "move_one_time"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            master_id="rent",
            issues=[
                ValidationIssue(
                    occurrence_date=date(2024, 3, 13),
                    related_date=date(2024, 3, 11),
                    issue_type="duplicate_landing",
                    message="Two origins",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.is_consistent is False

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            master_id="rent",
            issues=[
                ValidationIssue(
                    occurrence_date=date(2024, 3, 11),
                    issue_type="missing_back_reference",
                    message="No back reference",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0

    def test_unknown_issue_type_rejected(self):
        with pytest.raises(ValueError):
            ValidationIssue(
                occurrence_date=date(2024, 3, 11),
                issue_type="bad_vibes",
                message="?",
                severity="warning",
            )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
