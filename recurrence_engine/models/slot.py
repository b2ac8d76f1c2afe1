"""
Occurrence Slot States

DESIGN DECISION: The persisted exception record is loosely shaped (any mix
of optional fields). Branching on "which fields happen to be present" all
over the engine is how move pairs get corrupted, so every exception is
parsed once into an explicit tagged state:

- OverriddenSlot: field overrides and/or an explicit paid flag
- MovedAwaySlot:  the occurrence left this date for `target`
- MovedInSlot:    the occurrence arrived here from `origin`
- DeletedSlot:    permanently suppressed

A date with no exception at all is Scheduled. The engine reads and writes
slots; only this module knows the persisted shape.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from recurrence_engine.models.entry import (
    DELETED,
    BillCategory,
    EntryException,
    MasterEntry,
)


OVERRIDABLE_FIELDS = ("name", "amount", "category", "order")


class FieldOverrides(BaseModel):
    """Per-occurrence replacements for series fields. None means 'inherit'."""
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    amount: Optional[Decimal] = None
    category: Optional[BillCategory] = None
    order: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, field) is None for field in OVERRIDABLE_FIELDS)

    def as_dict(self) -> dict[str, Any]:
        return {
            field: getattr(self, field)
            for field in OVERRIDABLE_FIELDS
            if getattr(self, field) is not None
        }

    def layered(self, top: 'FieldOverrides') -> 'FieldOverrides':
        """These overrides with `top`'s set fields on top."""
        return FieldOverrides(**{**self.as_dict(), **top.as_dict()})

    def differing_from(self, baseline: dict[str, Any]) -> 'FieldOverrides':
        """Drop overrides that merely repeat the series value."""
        return FieldOverrides(**{
            field: value
            for field, value in self.as_dict().items()
            if value != baseline.get(field)
        })


class OverriddenSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["overridden"] = "overridden"
    overrides: FieldOverrides = Field(default_factory=FieldOverrides)
    is_paid: Optional[bool] = None

    @property
    def is_empty(self) -> bool:
        return self.overrides.is_empty and self.is_paid is None


class MovedAwaySlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["moved_away"] = "moved_away"
    target: date
    overrides: FieldOverrides = Field(default_factory=FieldOverrides)
    is_paid: Optional[bool] = None


class MovedInSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["moved_in"] = "moved_in"
    origin: date
    overrides: FieldOverrides = Field(default_factory=FieldOverrides)
    is_paid: Optional[bool] = None


class DeletedSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["deleted"] = "deleted"


Slot = Annotated[
    Union[OverriddenSlot, MovedAwaySlot, MovedInSlot, DeletedSlot],
    Field(discriminator="state"),
]


def parse_slot(exception: EntryException) -> Slot:
    """Read one persisted exception into its slot state."""
    if exception.is_deletion:
        return DeletedSlot()

    overrides = FieldOverrides(
        name=exception.name,
        amount=exception.amount,
        category=exception.category,
        order=exception.order,
    )
    if exception.moved_to is not None:
        return MovedAwaySlot(
            target=exception.moved_to,
            overrides=overrides,
            is_paid=exception.is_paid,
        )
    if exception.moved_from is not None:
        return MovedInSlot(
            origin=exception.moved_from,
            overrides=overrides,
            is_paid=exception.is_paid,
        )
    return OverriddenSlot(overrides=overrides, is_paid=exception.is_paid)


def serialize_slot(slot: Slot) -> EntryException:
    """Write a slot state back to the persisted exception shape."""
    if isinstance(slot, DeletedSlot):
        return EntryException(moved_from=DELETED)

    fields = slot.overrides.as_dict()
    if slot.is_paid is not None:
        fields["is_paid"] = slot.is_paid
    if isinstance(slot, MovedAwaySlot):
        fields["moved_to"] = slot.target
    elif isinstance(slot, MovedInSlot):
        fields["moved_from"] = slot.origin
    return EntryException(**fields)


def slots_of(master: MasterEntry) -> dict[date, Slot]:
    return {day: parse_slot(exception) for day, exception in master.exceptions.items()}


def with_slots(master: MasterEntry, slots: dict[date, Slot]) -> MasterEntry:
    """
    A copy of `master` whose exceptions are exactly `slots`.

    Empty overridden slots are dropped: they are indistinguishable from
    Scheduled.
    """
    exceptions = {
        day: serialize_slot(slot)
        for day, slot in sorted(slots.items())
        if not (isinstance(slot, OverriddenSlot) and slot.is_empty)
    }
    return master.model_copy(update={"exceptions": exceptions})
