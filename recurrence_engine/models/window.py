"""
Window and evaluation-instant models.

The engine never reads a clock. Callers pass the instant they want
paid status evaluated at, together with the user's IANA timezone.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Window(BaseModel):
    """Inclusive [start, end] date range to materialize."""
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    @classmethod
    def single(cls, day: date) -> 'Window':
        return cls(start=day, end=day)

    @classmethod
    def everything(cls) -> 'Window':
        """The whole representable calendar."""
        return cls(start=date.min, end=date.max)


class EvaluationInstant(BaseModel):
    """
    The moment paid status is evaluated at.

    Naive datetimes are taken to be UTC.
    """
    model_config = ConfigDict(frozen=True)

    now: datetime
    timezone: str = Field(
        default="UTC",
        description="IANA timezone of the user"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    def local_now(self) -> datetime:
        now = self.now
        if now.tzinfo is None:
            now = now.replace(tzinfo=ZoneInfo("UTC"))
        return now.astimezone(ZoneInfo(self.timezone))

    def paid_through(self, cutoff_hour: int = 0) -> date:
        """
        Last local date whose autopay occurrences count as paid.

        Today counts once the local clock reaches `cutoff_hour`.
        """
        local = self.local_now()
        if local.hour < cutoff_hour:
            return local.date() - timedelta(days=1)
        return local.date()
