"""
Validation Models

Findings of the move-pair consistency check. Advisory only: the engine
reports inconsistencies, it never repairs them.
"""

from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single pairing inconsistency."""

    occurrence_date: date = Field(
        ...,
        description="Exception date the issue was found at"
    )
    related_date: Optional[date] = Field(
        default=None,
        description="The other end of the move pair, if any"
    )
    issue_type: str = Field(
        ...,
        pattern="^(missing_back_reference|duplicate_landing|orphan_landing)$",
        description="Type of issue"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating one master record."""

    master_id: str = Field(
        ...,
        description="ID of the master record validated"
    )
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    skipped: bool = Field(
        default=False,
        description="True when validation was disabled for this environment"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All issues found"
    )

    @property
    def is_consistent(self) -> bool:
        return not self.issues

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
