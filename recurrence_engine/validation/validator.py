"""
Move-Pair Validator

DESIGN DECISION: This is an advisory check, not a gate. Every edit the
engine prepares keeps move pairs consistent; the validator exists to catch
records that were written some other way (older clients, hand edits, a
half-applied batch).

Checks:
- missing_back_reference: a movedTo whose target lacks the matching movedFrom
- duplicate_landing:      two origins moved onto the same target date
- orphan_landing:         a movedFrom whose origin doesn't point back

IMPORTANT: Validation NEVER repairs a record.
It logs what it found and returns it for the caller to act on.
"""

from typing import Optional

import structlog

from recurrence_engine.config import EngineSettings, get_settings
from recurrence_engine.models.entry import MasterEntry
from recurrence_engine.models.slot import MovedAwaySlot, MovedInSlot, slots_of
from recurrence_engine.models.validation import ValidationIssue, ValidationResult


class PairingValidator:
    """
    Validates the move pairs of a master record.

    Skipped in production unless forced, since well-formed operator output
    can't trip it.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        force: bool = False,
    ):
        """
        Initialize validator.

        Args:
            settings: Engine settings. Loaded from the environment if None.
            force: Validate even in production.
        """
        self._settings = settings or get_settings().engine
        self._force = force
        self._logger = structlog.get_logger(__name__)

    @property
    def enabled(self) -> bool:
        return self._force or not self._settings.is_production

    def _check_pairs(self, master: MasterEntry) -> list[ValidationIssue]:
        issues = []
        slots = slots_of(master)
        landed_from = {}

        for day, slot in sorted(slots.items()):
            if isinstance(slot, MovedAwaySlot):
                landing = slots.get(slot.target)
                if not (isinstance(landing, MovedInSlot) and landing.origin == day):
                    issues.append(ValidationIssue(
                        occurrence_date=day,
                        related_date=slot.target,
                        issue_type="missing_back_reference",
                        message=(
                            f"{day} moved to {slot.target}, but {slot.target} "
                            f"doesn't record a move from {day}"
                        ),
                        severity="warning",
                    ))

                if slot.target in landed_from:
                    issues.append(ValidationIssue(
                        occurrence_date=slot.target,
                        related_date=day,
                        issue_type="duplicate_landing",
                        message=(
                            f"Both {landed_from[slot.target]} and {day} "
                            f"moved onto {slot.target}"
                        ),
                        severity="error",
                    ))
                else:
                    landed_from[slot.target] = day

            elif isinstance(slot, MovedInSlot):
                origin_slot = slots.get(slot.origin)
                if not (isinstance(origin_slot, MovedAwaySlot) and origin_slot.target == day):
                    issues.append(ValidationIssue(
                        occurrence_date=day,
                        related_date=slot.origin,
                        issue_type="orphan_landing",
                        message=f"{day} claims a move from {slot.origin}, which doesn't point here",
                        severity="warning",
                    ))

        return issues

    def validate(self, master: MasterEntry) -> ValidationResult:
        """
        Check one master record's move pairs.

        Returns:
            ValidationResult with all issues found (empty when skipped)
        """
        if not self.enabled:
            return ValidationResult(master_id=master.id, skipped=True)

        issues = self._check_pairs(master)
        for issue in issues:
            log = self._logger.error if issue.severity == "error" else self._logger.warning
            log(
                "pairing_inconsistency",
                master_id=master.id,
                issue_type=issue.issue_type,
                occurrence_date=issue.occurrence_date.isoformat(),
                related_date=issue.related_date.isoformat() if issue.related_date else None,
            )

        return ValidationResult(master_id=master.id, issues=issues)

    def get_summary(self, result: ValidationResult) -> str:
        """
        Generate a readable summary of a validation result.

        Meant for developer tooling and test failure output.
        """
        if result.skipped:
            return f"Validation skipped for {result.master_id}."
        if result.is_consistent:
            return f"All move pairs of {result.master_id} are consistent."

        lines = [f"{len(result.issues)} pairing issue(s) in {result.master_id}:"]
        for issue in result.issues:
            lines.append(f"   • [{issue.severity}] {issue.message}")
        return "\n".join(lines)
