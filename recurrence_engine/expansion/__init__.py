"""
Expansion Package

Recurrence expansion, exception overlay and the caller-owned cache.
"""

from recurrence_engine.expansion.cache import ExpansionCache
from recurrence_engine.expansion.overlay import (
    materialize,
    materialize_window,
    resolve_paid,
)
from recurrence_engine.expansion.recurrence import (
    expand,
    first_index_on_or_after,
    is_occurrence,
    iter_occurrences,
    occurrence_at,
)

__all__ = [
    "ExpansionCache",
    "expand",
    "first_index_on_or_after",
    "is_occurrence",
    "iter_occurrences",
    "materialize",
    "materialize_window",
    "occurrence_at",
    "resolve_paid",
]
