"""
Exception Overlay

Merges a master record's per-date slots onto its candidate dates and
produces the concrete Instances for a window.

Rules, in order:
1. A deleted slot suppresses its date for good.
2. A moved-away slot suppresses its own date. Its target materializes
   (once, if in the window) with the origin's overrides, then the target
   slot's own overrides on top.
3. A moved-in slot materializes through its origin's pairing. If the
   pairing produces nothing (orphan landing, or an origin the rule no
   longer produces), a landing on one of the series' own dates falls back
   to that date's occurrence with the slot's overrides; a landing anywhere
   else materializes nothing.
4. Everything else gets its field overrides applied.

Paid status: an explicit isPaid always wins. Otherwise one-time entries use
the master's flag, and recurring autopay entries count as paid up to the
evaluation instant's paid-through date.
"""

from datetime import date
from typing import Optional

from recurrence_engine.config import EngineSettings, get_settings
from recurrence_engine.expansion.recurrence import expand, is_occurrence
from recurrence_engine.models.entry import (
    EntryKind,
    Instance,
    InstanceState,
    MasterEntry,
    instance_id,
)
from recurrence_engine.models.slot import (
    DeletedSlot,
    FieldOverrides,
    MovedAwaySlot,
    MovedInSlot,
    OverriddenSlot,
    slots_of,
)
from recurrence_engine.models.window import EvaluationInstant, Window


def resolve_paid(
    master: MasterEntry,
    day: date,
    explicit: Optional[bool],
    paid_through: date,
    income_counts_as_autopay: bool = False,
) -> bool:
    """Paid status of the occurrence on `day`."""
    if explicit is not None:
        return explicit
    if not master.is_recurring:
        return bool(master.is_paid)

    autopays = master.is_auto_pay or (
        income_counts_as_autopay and master.kind == EntryKind.INCOME
    )
    return autopays and day <= paid_through


def _build_instance(
    master: MasterEntry,
    day: date,
    overrides: FieldOverrides,
    is_paid: bool,
    state: InstanceState,
    moved_from: Optional[date] = None,
) -> Instance:
    values = {**master.baseline, **overrides.as_dict()}
    return Instance(
        id=instance_id(master.id, day),
        master_id=master.id,
        occurrence_date=day,
        name=values["name"],
        amount=values["amount"],
        kind=master.kind,
        category=values["category"],
        recurrence=master.recurrence,
        is_auto_pay=master.is_auto_pay,
        order=values["order"],
        is_paid=is_paid,
        state=state,
        moved_from=moved_from,
    )


def materialize(
    master: MasterEntry,
    candidates: list[date],
    window: Window,
    as_of: EvaluationInstant,
    *,
    autopay_cutoff_hour: int = 0,
    income_counts_as_autopay: bool = False,
) -> list[Instance]:
    """
    Resolve `candidates` through the master's exceptions.

    Returns one Instance per date, ascending by date. Display ordering
    within a day is left to the caller (see Instance.display_key).
    """
    slots = slots_of(master)
    paid_through = as_of.paid_through(autopay_cutoff_hour)
    produced: dict[date, Instance] = {}

    def paid(day: date, explicit: Optional[bool]) -> bool:
        return resolve_paid(master, day, explicit, paid_through, income_counts_as_autopay)

    for day in candidates:
        slot = slots.get(day)
        if slot is None:
            produced[day] = _build_instance(
                master, day, FieldOverrides(), paid(day, None), InstanceState.SCHEDULED,
            )
        elif isinstance(slot, OverriddenSlot):
            produced[day] = _build_instance(
                master, day, slot.overrides, paid(day, slot.is_paid), InstanceState.OVERRIDDEN,
            )
        # deleted, moved-away and moved-in dates are handled below (or not at all)

    for origin, slot in sorted(slots.items()):
        if not isinstance(slot, MovedAwaySlot):
            continue
        target = slot.target
        if target not in window or target in produced:
            continue

        landing = slots.get(target)
        if isinstance(landing, DeletedSlot):
            continue
        if not is_occurrence(master, origin):
            # The series no longer produces the origin (e.g. the rule changed)
            continue

        overrides = slot.overrides
        explicit = slot.is_paid
        if isinstance(landing, (MovedInSlot, OverriddenSlot)):
            overrides = overrides.layered(landing.overrides)
            if landing.is_paid is not None:
                explicit = landing.is_paid

        produced[target] = _build_instance(
            master, target, overrides, paid(target, explicit), InstanceState.MOVED_IN,
            moved_from=origin,
        )

    # A landing on one of the series' own dates whose pairing produced
    # nothing still holds that date's scheduled occurrence
    for day in candidates:
        slot = slots.get(day)
        if isinstance(slot, MovedInSlot) and day not in produced:
            state = (
                InstanceState.SCHEDULED
                if slot.overrides.is_empty and slot.is_paid is None
                else InstanceState.OVERRIDDEN
            )
            produced[day] = _build_instance(
                master, day, slot.overrides, paid(day, slot.is_paid), state,
            )

    return [produced[day] for day in sorted(produced)]


def materialize_window(
    master: MasterEntry,
    window: Window,
    as_of: EvaluationInstant,
    settings: Optional[EngineSettings] = None,
) -> list[Instance]:
    """Expand `master` over `window` and resolve its exceptions."""
    settings = settings or get_settings().engine
    return materialize(
        master,
        expand(master, window),
        window,
        as_of,
        autopay_cutoff_hour=settings.autopay_cutoff_hour,
        income_counts_as_autopay=settings.income_counts_as_autopay,
    )
