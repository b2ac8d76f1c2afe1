"""
Recurrence Expansion

Turns a master record's rule and anchor date into the candidate occurrence
dates inside a window.

DESIGN DECISION: Occurrence k is always computed from the anchor
(anchor + k strides), never from occurrence k-1. For the month family this
keeps the anchor's day-of-month: a series anchored on the 31st lands on
Feb 28/29 and comes back to the 31st in March, instead of drifting to the
28th forever. `relativedelta` clamps to the last valid day of the month.

Week strides fast-forward to the window start arithmetically, so a weekly
series anchored decades ago costs the same as one anchored last week.
"""

from datetime import date, timedelta
from typing import Iterator, Optional

from dateutil.relativedelta import relativedelta

from recurrence_engine.models.entry import MasterEntry, RecurrenceEndKind
from recurrence_engine.models.window import Window


def occurrence_at(master: MasterEntry, index: int) -> date:
    """
    Date of occurrence `index` (0 is the anchor).

    Raises:
        OverflowError, ValueError: Past the end of the representable calendar.
    """
    rule = master.recurrence
    if rule.interval_days:
        return master.anchor_date + timedelta(days=index * rule.interval_days)
    if rule.interval_months:
        return master.anchor_date + relativedelta(months=index * rule.interval_months)
    return master.anchor_date


def first_index_on_or_after(master: MasterEntry, start: date) -> int:
    """Smallest occurrence index whose date is >= start."""
    anchor = master.anchor_date
    if start <= anchor:
        return 0

    rule = master.recurrence
    if rule.interval_days:
        # ceil division
        return -(-(start - anchor).days // rule.interval_days)

    months = (start.year - anchor.year) * 12 + (start.month - anchor.month)
    index = months // rule.interval_months
    # At most two steps: the candidate is in start's month or the one before
    while occurrence_at(master, index) < start:
        index += 1
    return index


def iter_occurrences(master: MasterEntry, start: Optional[date] = None) -> Iterator[date]:
    """
    Yield the series' occurrence dates in ascending order.

    Begins at the first occurrence on or after `start` (the anchor when
    omitted) and honors the end condition. A `never` series runs until the
    end of the calendar, so callers must stop consuming.
    """
    if not master.is_recurring:
        if start is None or master.anchor_date >= start:
            yield master.anchor_date
        return

    end = master.recurrence_end
    try:
        index = 0 if start is None else first_index_on_or_after(master, start)
    except (OverflowError, ValueError):
        return

    while True:
        if end.kind == RecurrenceEndKind.AFTER_COUNT and index >= end.count:
            return
        try:
            current = occurrence_at(master, index)
        except (OverflowError, ValueError):
            return
        if end.kind == RecurrenceEndKind.ON_DATE and current > end.until:
            return
        yield current
        index += 1


def expand(master: MasterEntry, window: Window) -> list[date]:
    """
    Candidate occurrence dates of `master` inside `window`, ascending.

    Exceptions are not consulted here; see overlay.materialize.
    """
    if window.is_empty:
        return []

    if not master.is_recurring:
        return [master.anchor_date] if master.anchor_date in window else []

    candidates = []
    for current in iter_occurrences(master, window.start):
        if current > window.end:
            break
        candidates.append(current)
    return candidates


def is_occurrence(master: MasterEntry, day: date) -> bool:
    """True if `day` is one of the series' own (anchor-derived) dates."""
    return bool(expand(master, Window.single(day)))
