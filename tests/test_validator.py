"""
Tests for the move-pair validator.
"""

import pytest
from datetime import date

from recurrence_engine.config import EngineSettings
from recurrence_engine.models import MasterEntry, MovedAwaySlot, MovedInSlot, with_slots
from recurrence_engine.mutations import move_single_occurrence
from recurrence_engine.validation import PairingValidator


MAR_11 = date(2024, 3, 11)
MAR_13 = date(2024, 3, 13)
MAR_18 = date(2024, 3, 18)


@pytest.fixture
def validator(settings) -> PairingValidator:
    return PairingValidator(settings)


class TestPairingValidator:
    """Tests for PairingValidator.validate."""

    def test_clean_series(self, validator, weekly_master):
        result = validator.validate(weekly_master)
        assert result.is_consistent
        assert result.skipped is False
        assert result.master_id == "rent"

    def test_operator_output_is_consistent(self, validator, weekly_master):
        moved = move_single_occurrence(weekly_master, MAR_11, MAR_13)
        assert validator.validate(moved).is_consistent

    def test_missing_back_reference(self, validator):
        """Test a movedTo whose target never recorded the move."""
        master = MasterEntry.from_record({
            "id": "rent",
            "date": "2024-03-04",
            "name": "Rent",
            "amount": "1200",
            "recurrence": "weekly",
            "exceptions": {"2024-03-11": {"movedTo": "2024-03-13"}},
        })
        result = validator.validate(master)
        assert [issue.issue_type for issue in result.issues] == ["missing_back_reference"]
        issue = result.issues[0]
        assert issue.occurrence_date == MAR_11
        assert issue.related_date == MAR_13
        assert issue.severity == "warning"
        assert result.has_errors is False

    def test_duplicate_landing(self, validator, weekly_master):
        """Test two origins moved onto the same date."""
        master = with_slots(weekly_master, {
            MAR_11: MovedAwaySlot(target=MAR_13),
            MAR_13: MovedInSlot(origin=MAR_11),
            MAR_18: MovedAwaySlot(target=MAR_13),
        })
        result = validator.validate(master)
        issue_types = {issue.issue_type for issue in result.issues}
        assert issue_types == {"missing_back_reference", "duplicate_landing"}
        assert result.has_errors is True
        assert result.error_count == 1

    def test_orphan_landing(self, validator, weekly_master):
        master = with_slots(weekly_master, {MAR_13: MovedInSlot(origin=MAR_11)})
        result = validator.validate(master)
        assert [issue.issue_type for issue in result.issues] == ["orphan_landing"]
        assert result.issues[0].related_date == MAR_11

    def test_never_repairs(self, validator, weekly_master):
        master = with_slots(weekly_master, {MAR_13: MovedInSlot(origin=MAR_11)})
        before = master.to_record()
        validator.validate(master)
        assert master.to_record() == before


class TestEnvironment:
    """Tests for production skipping."""

    def test_skipped_in_production(self, weekly_master):
        validator = PairingValidator(EngineSettings(app_environment="production"))
        master = with_slots(weekly_master, {MAR_13: MovedInSlot(origin=MAR_11)})
        result = validator.validate(master)
        assert validator.enabled is False
        assert result.skipped is True
        assert result.issues == []

    def test_forced_in_production(self, weekly_master):
        validator = PairingValidator(EngineSettings(app_environment="Production"), force=True)
        master = with_slots(weekly_master, {MAR_13: MovedInSlot(origin=MAR_11)})
        assert validator.enabled is True
        assert len(validator.validate(master).issues) == 1


class TestSummary:
    """Tests for get_summary."""

    def test_consistent_summary(self, validator, weekly_master):
        summary = validator.get_summary(validator.validate(weekly_master))
        assert summary == "All move pairs of rent are consistent."

    def test_issue_summary(self, validator, weekly_master):
        master = with_slots(weekly_master, {MAR_13: MovedInSlot(origin=MAR_11)})
        summary = validator.get_summary(validator.validate(master))
        assert summary.startswith("1 pairing issue(s) in rent:")
        assert "[warning]" in summary

    def test_skipped_summary(self, weekly_master):
        validator = PairingValidator(EngineSettings(app_environment="production"))
        summary = validator.get_summary(validator.validate(weekly_master))
        assert summary == "Validation skipped for rent."


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
