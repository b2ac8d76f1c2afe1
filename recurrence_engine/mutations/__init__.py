"""
Mutations Package

Pure next-state operators for single records, and multi-record batches.
"""

from recurrence_engine.mutations.batch import (
    MasterBatch,
    delete_occurrences,
    mark_occurrences_paid,
    refs_for,
    reorder_occurrences,
)
from recurrence_engine.mutations.operators import (
    delete_series,
    delete_single_occurrence,
    move_one_time,
    move_series,
    move_single_occurrence,
    set_occurrence_paid,
    update_series,
    update_single_occurrence,
)

__all__ = [
    # Single-record operators
    "delete_series",
    "delete_single_occurrence",
    "move_one_time",
    "move_series",
    "move_single_occurrence",
    "set_occurrence_paid",
    "update_series",
    "update_single_occurrence",
    # Batches
    "MasterBatch",
    "delete_occurrences",
    "mark_occurrences_paid",
    "refs_for",
    "reorder_occurrences",
]
