"""
Mutation Operators

One pure function per kind of user edit. Each takes a master record and
returns the next-state record; the storage collaborator persists it as a
full replace.

GUARANTEES:
- Inputs are never mutated (master records are frozen values)
- Operators are total: an edit that doesn't apply returns the input unchanged
- Move pairs stay paired: exception[d].movedTo = t <=> exception[t].movedFrom = d
- A deleted date never comes back

Callers must route by recurrence type before invoking an operator
(one-time entries move with move_one_time, recurring ones with
move_single_occurrence or move_series). The engine facade does this.
"""

from datetime import date
from typing import Optional

from recurrence_engine.expansion.recurrence import is_occurrence
from recurrence_engine.models.entry import EntryPatch, MasterEntry
from recurrence_engine.models.slot import (
    OVERRIDABLE_FIELDS,
    DeletedSlot,
    FieldOverrides,
    MovedAwaySlot,
    MovedInSlot,
    OverriddenSlot,
    slots_of,
    with_slots,
)


# Series fields that may be explicitly cleared by a patch
_NULLABLE_SERIES_FIELDS = {"category", "order", "is_paid"}


def move_one_time(master: MasterEntry, from_date: date, to_date: date) -> MasterEntry:
    """Move a one-time entry by changing its date."""
    if from_date == to_date or master.is_recurring:
        return master
    return master.model_copy(update={"anchor_date": to_date})


def move_single_occurrence(master: MasterEntry, source: date, target: date) -> MasterEntry:
    """
    Move one occurrence of a recurring series from `source` to `target`.

    If `source` is itself a moved-in occurrence, the pair is re-pointed from
    its original origin and the stale landing is removed, so the occurrence
    keeps its identity across repeated drags. Moving it back onto its
    origin dissolves the pair.

    Overrides (and an explicit paid flag) travel with the occurrence.
    No-op when the move can't be expressed without breaking the pairing
    invariants: sources that are not occurrences of the series, deleted or
    already-moved sources, landings whose origin was deleted, and targets
    that are deleted, moved away, edited in place, or occupied by another
    moved occurrence.
    """
    if source == target or not master.is_recurring:
        return master

    slots = slots_of(master)
    source_slot = slots.get(source)
    if isinstance(source_slot, (DeletedSlot, MovedAwaySlot)):
        return master
    if not isinstance(source_slot, MovedInSlot) and not is_occurrence(master, source):
        return master

    origin = source_slot.origin if isinstance(source_slot, MovedInSlot) else source
    origin_slot = slots.get(origin)
    if isinstance(origin_slot, DeletedSlot):
        return master

    if isinstance(source_slot, (OverriddenSlot, MovedInSlot)):
        carried, carried_paid = source_slot.overrides, source_slot.is_paid
    else:
        carried, carried_paid = FieldOverrides(), None

    if target == origin:
        slots.pop(source, None)
        leftover = FieldOverrides()
        leftover_paid = None
        if isinstance(origin_slot, MovedAwaySlot):
            leftover, leftover_paid = origin_slot.overrides, origin_slot.is_paid
        slots[origin] = OverriddenSlot(
            overrides=leftover.layered(carried),
            is_paid=carried_paid if carried_paid is not None else leftover_paid,
        )
        return with_slots(master, slots)

    landing = slots.get(target)
    if isinstance(landing, (DeletedSlot, MovedAwaySlot, OverriddenSlot)):
        return master
    if isinstance(landing, MovedInSlot) and landing.origin != origin:
        return master

    if isinstance(origin_slot, MovedAwaySlot):
        previous = slots.get(origin_slot.target)
        if isinstance(previous, MovedInSlot) and previous.origin == origin:
            del slots[origin_slot.target]
        slots[origin] = MovedAwaySlot(
            target=target,
            overrides=origin_slot.overrides,
            is_paid=origin_slot.is_paid,
        )
    else:
        slots[origin] = MovedAwaySlot(target=target)

    if source != origin:
        slots.pop(source, None)
    slots[target] = MovedInSlot(origin=origin, overrides=carried, is_paid=carried_paid)
    return with_slots(master, slots)


def move_series(master: MasterEntry, new_anchor: date) -> MasterEntry:
    """
    Re-anchor a whole series.

    Every move pair is dropped; overrides and deletions stay where they are.
    """
    kept = {
        day: slot
        for day, slot in slots_of(master).items()
        if not isinstance(slot, (MovedAwaySlot, MovedInSlot))
    }
    return with_slots(master, kept).model_copy(update={"anchor_date": new_anchor})


def update_series(master: MasterEntry, patch: EntryPatch) -> MasterEntry:
    """
    Apply `patch` to the series baseline.

    One-off overrides are erased so every occurrence reverts to the new
    baseline. Move markers and deletion sentinels survive; moved
    occurrences lose their overrides but stay where they were moved.
    """
    changes = {
        field: value
        for field, value in patch.changes().items()
        if value is not None or field in _NULLABLE_SERIES_FIELDS
    }

    kept = {}
    for day, slot in slots_of(master).items():
        if isinstance(slot, DeletedSlot):
            kept[day] = slot
        elif isinstance(slot, MovedAwaySlot):
            kept[day] = MovedAwaySlot(target=slot.target)
        elif isinstance(slot, MovedInSlot):
            kept[day] = MovedInSlot(origin=slot.origin)

    data = master.model_dump()
    data.update(changes)
    data["exceptions"] = {}
    # Re-validate so kind-dependent rules (income has no category) apply
    updated = MasterEntry.model_validate(data)
    return with_slots(updated, kept)


def update_single_occurrence(
    master: MasterEntry,
    occurrence_date: date,
    patch: EntryPatch,
) -> MasterEntry:
    """
    Override fields of the occurrence on `occurrence_date`.

    The patch is merged over any existing overrides; only values that
    differ from the series baseline are kept. A field explicitly set to
    None reverts to the series value. `is_paid` is stored verbatim when
    supplied. Deleted and moved-away dates are left alone.
    """
    changes = patch.changes()
    slots = slots_of(master)
    slot = slots.get(occurrence_date)
    if isinstance(slot, (DeletedSlot, MovedAwaySlot)):
        return master

    merged = slot.overrides.as_dict() if slot is not None else {}
    for field in OVERRIDABLE_FIELDS:
        if field not in changes:
            continue
        if changes[field] is None:
            merged.pop(field, None)
        else:
            merged[field] = changes[field]
    overrides = FieldOverrides(**merged).differing_from(master.baseline)

    if "is_paid" in changes:
        is_paid = changes["is_paid"]
    else:
        is_paid = slot.is_paid if slot is not None else None

    if isinstance(slot, MovedInSlot):
        slots[occurrence_date] = MovedInSlot(origin=slot.origin, overrides=overrides, is_paid=is_paid)
    else:
        slots[occurrence_date] = OverriddenSlot(overrides=overrides, is_paid=is_paid)
    return with_slots(master, slots)


def set_occurrence_paid(master: MasterEntry, occurrence_date: date, is_paid: bool) -> MasterEntry:
    """
    Mark one occurrence paid or unpaid.

    One-time entries carry the flag on the master itself.
    """
    if not master.is_recurring:
        return master.model_copy(update={"is_paid": is_paid})
    return update_single_occurrence(master, occurrence_date, EntryPatch(is_paid=is_paid))


def delete_single_occurrence(master: MasterEntry, occurrence_date: date) -> MasterEntry:
    """
    Permanently suppress the occurrence on `occurrence_date`.

    Any overrides or move marker there are replaced by the deletion
    sentinel. The other end of a move pair is fixed up so the pairing
    stays consistent: deleting a moved-in occurrence deletes its origin
    too, and deleting a moved-away origin drops its landing.
    """
    slots = slots_of(master)
    slot = slots.get(occurrence_date)

    if isinstance(slot, MovedInSlot):
        origin_slot = slots.get(slot.origin)
        if isinstance(origin_slot, MovedAwaySlot) and origin_slot.target == occurrence_date:
            slots[slot.origin] = DeletedSlot()
    elif isinstance(slot, MovedAwaySlot):
        landing = slots.get(slot.target)
        if isinstance(landing, MovedInSlot) and landing.origin == occurrence_date:
            del slots[slot.target]

    slots[occurrence_date] = DeletedSlot()
    return with_slots(master, slots)


def delete_series(master: MasterEntry) -> Optional[MasterEntry]:
    """
    Remove the whole record.

    Returns None; the storage collaborator performs the actual deletion.
    """
    return None
