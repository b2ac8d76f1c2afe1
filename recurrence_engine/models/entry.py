"""
Core Data Models for the Recurrence Engine

These models define the schemas for everything flowing through the engine.
They are designed to:
1. Parse the loosely shaped persisted record once, at the boundary
2. Be immutable values (every edit returns a new record)
3. Serialize back to the persisted shape for the storage collaborator

DESIGN DECISION: We use Pydantic v2 with frozen models. Persisted keys are
camelCase; the few keys that don't follow the field name ("date", "type")
carry explicit aliases.
"""

import hashlib
import json
import re
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


DELETED = "deleted"


class MalformedEntryError(ValueError):
    """A persisted record violates the engine's preconditions."""
    pass


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryKind(str, Enum):
    """Whether an entry takes money out or brings it in."""
    BILL = "bill"
    INCOME = "income"


class BillCategory(str, Enum):
    """
    Supported bill categories.

    Only bills carry a category; income never does.
    """
    RENT = "rent"
    UTILITIES = "utilities"
    PHONE_BILL = "phone bill"
    VEHICLES = "vehicles"
    LOANS = "loans"
    CREDIT_CARDS = "credit cards"
    GROCERIES = "groceries"
    DAY_CARE = "day care"
    SUBSCRIPTIONS = "subscriptions"
    RECREATIONS = "recreations"
    NECESSITIES = "necessities"
    VICES = "vices"
    PERSONAL_MAINTENANCE = "personal maintenance"
    OTHER = "other"


class RecurrenceRule(str, Enum):
    """How often an entry repeats."""
    NONE = "none"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"

    @property
    def is_recurring(self) -> bool:
        return self is not RecurrenceRule.NONE

    @property
    def interval_days(self) -> Optional[int]:
        """Stride in days for the week family, None otherwise."""
        return _DAY_STRIDES.get(self)

    @property
    def interval_months(self) -> Optional[int]:
        """Stride in months for the month family, None otherwise."""
        return _MONTH_STRIDES.get(self)


_DAY_STRIDES = {
    RecurrenceRule.WEEKLY: 7,
    RecurrenceRule.BIWEEKLY: 14,
}

_MONTH_STRIDES = {
    RecurrenceRule.MONTHLY: 1,
    RecurrenceRule.BIMONTHLY: 2,
    RecurrenceRule.QUARTERLY: 3,
    RecurrenceRule.SEMIANNUAL: 6,
    RecurrenceRule.ANNUAL: 12,
}

# Spellings found in older records
LEGACY_RECURRENCE_NAMES = {
    "bi-weekly": RecurrenceRule.BIWEEKLY.value,
    "3months": RecurrenceRule.QUARTERLY.value,
    "6months": RecurrenceRule.SEMIANNUAL.value,
    "12months": RecurrenceRule.ANNUAL.value,
}


class RecurrenceEndKind(str, Enum):
    """How a series ends."""
    NEVER = "never"
    ON_DATE = "on_date"
    AFTER_COUNT = "after_count"


# =============================================================================
# RECURRENCE END
# =============================================================================

class RecurrenceEnd(BaseModel):
    """
    End condition of a series.

    ON_DATE includes occurrences falling on `until`.
    AFTER_COUNT counts the anchor as occurrence #1.
    """
    model_config = ConfigDict(frozen=True)

    kind: RecurrenceEndKind = RecurrenceEndKind.NEVER
    until: Optional[date] = None
    count: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode='after')
    def validate_kind_fields(self) -> 'RecurrenceEnd':
        if self.kind == RecurrenceEndKind.ON_DATE and self.until is None:
            raise ValueError("An on-date end requires 'until'")
        if self.kind == RecurrenceEndKind.AFTER_COUNT and self.count is None:
            raise ValueError("An after-count end requires 'count'")
        return self

    @classmethod
    def never(cls) -> 'RecurrenceEnd':
        return cls()

    @classmethod
    def on_date(cls, until: date) -> 'RecurrenceEnd':
        return cls(kind=RecurrenceEndKind.ON_DATE, until=until)

    @classmethod
    def after_count(cls, count: int) -> 'RecurrenceEnd':
        return cls(kind=RecurrenceEndKind.AFTER_COUNT, count=count)


# =============================================================================
# PERSISTED EXCEPTION RECORD
# =============================================================================

class EntryException(BaseModel):
    """
    Per-date exception as it is persisted.

    This is the loosely shaped record: any combination of optional fields.
    The engine never branches on it directly; see models.slot for the
    parsed form.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    name: Optional[str] = None
    amount: Optional[Decimal] = None
    category: Optional[BillCategory] = None
    order: Optional[int] = None
    is_paid: Optional[bool] = None
    moved_to: Optional[date] = None
    moved_from: Optional[Union[Literal["deleted"], date]] = None

    @field_validator('moved_from', mode='before')
    @classmethod
    def read_legacy_deletion(cls, v: Any) -> Any:
        """Older records flag deletions with `movedFrom: true`."""
        if v is True:
            return DELETED
        if v is False:
            return None
        return v

    @model_validator(mode='after')
    def validate_single_marker(self) -> 'EntryException':
        if self.moved_to is not None and self.moved_from is not None:
            raise ValueError("An exception carries at most one of movedTo/movedFrom")
        return self

    @field_serializer("amount", when_used="json-unless-none")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)

    @property
    def is_deletion(self) -> bool:
        return self.moved_from == DELETED

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# MASTER ENTRY
# =============================================================================

class MasterEntry(BaseModel):
    """
    The single persisted record describing a recurring or one-time item.

    Owned by the storage collaborator. The engine reads it as an
    immutable value and returns new values from every mutation.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Master record ID"
    )
    anchor_date: date = Field(
        ...,
        alias="date",
        description="First occurrence of the series"
    )
    name: str = Field(
        ...,
        description="Display name"
    )
    amount: Decimal = Field(
        ...,
        description="Amount per occurrence"
    )
    kind: EntryKind = Field(
        default=EntryKind.BILL,
        alias="type",
    )
    category: Optional[BillCategory] = None
    recurrence: RecurrenceRule = RecurrenceRule.NONE
    recurrence_end: RecurrenceEnd = Field(default_factory=RecurrenceEnd.never)
    is_auto_pay: bool = False

    # Only meaningful for one-time entries
    is_paid: Optional[bool] = None
    order: Optional[int] = None

    exceptions: dict[date, EntryException] = Field(default_factory=dict)

    @model_validator(mode='before')
    @classmethod
    def lift_persisted_shape(cls, data: Any) -> Any:
        """Normalize legacy spellings and the flat recurrence-end fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        recurrence = data.get("recurrence")
        if isinstance(recurrence, str):
            data["recurrence"] = LEGACY_RECURRENCE_NAMES.get(recurrence, recurrence)

        end_date = data.pop("recurrenceEndDate", None) or data.pop("recurrence_end_date", None)
        end_count = data.pop("recurrenceCount", None) or data.pop("recurrence_count", None)
        if "recurrenceEnd" not in data and "recurrence_end" not in data:
            # End date wins when both are present
            if end_date:
                data["recurrenceEnd"] = {"kind": RecurrenceEndKind.ON_DATE, "until": end_date}
            elif end_count:
                data["recurrenceEnd"] = {"kind": RecurrenceEndKind.AFTER_COUNT, "count": end_count}

        kind = data.get("type", data.get("kind"))
        if kind == EntryKind.INCOME.value:
            for key in ("category", "isAutoPay", "is_auto_pay"):
                data.pop(key, None)
        elif data.get("category") == "":
            data.pop("category")

        return data

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, amount: Decimal) -> float:
        """Records store amounts as plain JSON numbers."""
        return float(amount)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence.is_recurring

    @property
    def baseline(self) -> dict[str, Any]:
        """Fields an occurrence may override, at their series values."""
        return {
            "name": self.name,
            "amount": self.amount,
            "category": self.category,
            "order": self.order,
        }

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted shape (camelCase, ISO dates, no nulls)."""
        record = self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude={"recurrence_end", "exceptions"},
        )
        end = self.recurrence_end
        if end.kind == RecurrenceEndKind.ON_DATE:
            record["recurrenceEndDate"] = end.until.isoformat()
        elif end.kind == RecurrenceEndKind.AFTER_COUNT:
            record["recurrenceCount"] = end.count
        if self.exceptions:
            record["exceptions"] = {
                day.isoformat(): exception.to_record()
                for day, exception in sorted(self.exceptions.items())
            }
        return record

    def revision_token(self) -> str:
        """Stable content hash of the record; changes whenever the record does."""
        canonical = json.dumps(self.to_record(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> 'MasterEntry':
        """
        Parse a persisted record.

        Raises:
            MalformedEntryError: If the record is missing its anchor date or
                otherwise violates the schema.
        """
        try:
            return cls.model_validate(record)
        except ValidationError as e:
            raise MalformedEntryError(
                f"Malformed entry {record.get('id', '<no id>')!r}: {e}"
            ) from e


# =============================================================================
# EDIT PATCH
# =============================================================================

class EntryPatch(BaseModel):
    """
    A user edit. Only fields that were explicitly set take part.

    Series edits use every field; single-occurrence edits use the
    overridable ones (name, amount, category, order) plus is_paid.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    name: Optional[str] = None
    amount: Optional[Decimal] = None
    kind: Optional[EntryKind] = Field(default=None, alias="type")
    category: Optional[BillCategory] = None
    recurrence: Optional[RecurrenceRule] = None
    recurrence_end: Optional[RecurrenceEnd] = None
    is_auto_pay: Optional[bool] = None
    is_paid: Optional[bool] = None
    order: Optional[int] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# INSTANCE (never persisted)
# =============================================================================

class InstanceState(str, Enum):
    """How an instance came to be on its date."""
    SCHEDULED = "scheduled"
    OVERRIDDEN = "overridden"
    MOVED_IN = "moved_in"


class Instance(BaseModel):
    """
    One concrete occurrence, fully resolved through its exceptions.

    Recomputed on demand; never persisted.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    master_id: str
    occurrence_date: date
    name: str
    amount: Decimal
    kind: EntryKind
    category: Optional[BillCategory] = None
    recurrence: RecurrenceRule
    is_auto_pay: bool = False
    order: Optional[int] = None
    is_paid: bool = False
    state: InstanceState = InstanceState.SCHEDULED
    moved_from: Optional[date] = None

    @property
    def display_key(self) -> tuple:
        """Sort key for callers that order a day's instances for display."""
        return (
            self.occurrence_date,
            self.order if self.order is not None else 0,
            self.name.lower(),
        )


_INSTANCE_ID = re.compile(r"^(.*)-(\d{4})-(\d{2})-(\d{2})$")


def instance_id(master_id: str, occurrence_date: date) -> str:
    return f"{master_id}-{occurrence_date.isoformat()}"


def split_instance_id(value: str) -> tuple[str, Optional[date]]:
    """
    Split an instance ID into (master ID, occurrence date).

    IDs without a date suffix are returned as (value, None).
    """
    match = _INSTANCE_ID.match(value)
    if not match:
        return value, None
    try:
        day = date(int(match.group(2)), int(match.group(3)), int(match.group(4)))
    except ValueError:
        return value, None
    return match.group(1), day


class OccurrenceRef(BaseModel):
    """Points at one occurrence of one master record."""
    model_config = ConfigDict(frozen=True)

    master_id: str
    occurrence_date: date

    @classmethod
    def from_instance_id(cls, value: str) -> 'OccurrenceRef':
        master_id, day = split_instance_id(value)
        if day is None:
            raise MalformedEntryError(f"Not an instance ID: {value!r}")
        return cls(master_id=master_id, occurrence_date=day)
