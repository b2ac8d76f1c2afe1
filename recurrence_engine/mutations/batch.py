"""
Multi-record Edits

Bulk delete, bulk mark-paid and reorder touch several master records at
once. Each returns a single MasterBatch.

CRITICAL: The storage collaborator must commit a batch atomically. Applying
half of a batch can strand a move pair in one record while its partner
edit in another never lands.
"""

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, Field

from recurrence_engine.models.entry import EntryPatch, MasterEntry, OccurrenceRef
from recurrence_engine.mutations.operators import (
    delete_single_occurrence,
    set_occurrence_paid,
    update_series,
    update_single_occurrence,
)


class MasterBatch(BaseModel):
    """Next state of every record a bulk edit touched."""

    updated: dict[str, MasterEntry] = Field(
        default_factory=dict,
        description="Replacement records by master ID"
    )
    removed: list[str] = Field(
        default_factory=list,
        description="Master IDs to delete outright"
    )
    missing: list[str] = Field(
        default_factory=list,
        description="Referenced master IDs that weren't supplied (skipped)"
    )

    @property
    def is_empty(self) -> bool:
        return not self.updated and not self.removed

    def apply_to(self, masters: Mapping[str, MasterEntry]) -> dict[str, MasterEntry]:
        """The collection after this batch, for in-memory collaborators."""
        result = {
            master_id: master
            for master_id, master in masters.items()
            if master_id not in self.removed
        }
        result.update(self.updated)
        return result


class _BatchBuilder:
    """Tracks the working copy of each record across one bulk edit."""

    def __init__(self, masters: Mapping[str, MasterEntry]):
        self._masters = masters
        self._working: dict[str, MasterEntry] = {}
        self._removed: list[str] = []
        self._missing: list[str] = []

    def current(self, master_id: str):
        if master_id in self._removed:
            return None
        if master_id in self._working:
            return self._working[master_id]
        master = self._masters.get(master_id)
        if master is None and master_id not in self._missing:
            self._missing.append(master_id)
        return master

    def replace(self, master: MasterEntry) -> None:
        self._working[master.id] = master

    def remove(self, master_id: str) -> None:
        self._working.pop(master_id, None)
        self._removed.append(master_id)

    def build(self) -> MasterBatch:
        return MasterBatch(
            updated=self._working,
            removed=self._removed,
            missing=self._missing,
        )


def delete_occurrences(
    masters: Mapping[str, MasterEntry],
    refs: Iterable[OccurrenceRef],
) -> MasterBatch:
    """Delete every referenced occurrence. One-time entries are removed whole."""
    builder = _BatchBuilder(masters)
    for ref in refs:
        master = builder.current(ref.master_id)
        if master is None:
            continue
        if master.is_recurring:
            builder.replace(delete_single_occurrence(master, ref.occurrence_date))
        else:
            builder.remove(master.id)
    return builder.build()


def mark_occurrences_paid(
    masters: Mapping[str, MasterEntry],
    refs: Iterable[OccurrenceRef],
    is_paid: bool = True,
) -> MasterBatch:
    """Set the paid flag on every referenced occurrence."""
    builder = _BatchBuilder(masters)
    for ref in refs:
        master = builder.current(ref.master_id)
        if master is None:
            continue
        builder.replace(set_occurrence_paid(master, ref.occurrence_date, is_paid))
    return builder.build()


def reorder_occurrences(
    masters: Mapping[str, MasterEntry],
    ordered: Iterable[OccurrenceRef],
) -> MasterBatch:
    """
    Give each referenced occurrence its position in `ordered` as its order.

    One-time entries carry the order on the master itself.
    """
    builder = _BatchBuilder(masters)
    for index, ref in enumerate(ordered):
        master = builder.current(ref.master_id)
        if master is None:
            continue
        patch = EntryPatch(order=index)
        if master.is_recurring:
            builder.replace(update_single_occurrence(master, ref.occurrence_date, patch))
        else:
            builder.replace(update_series(master, patch))
    return builder.build()


def refs_for(instance_ids: Iterable[str]) -> list[OccurrenceRef]:
    """Turn instance IDs (as shown to the user) into occurrence refs."""
    return [OccurrenceRef.from_instance_id(value) for value in instance_ids]

