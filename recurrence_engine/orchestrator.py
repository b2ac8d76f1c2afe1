"""
Main Orchestrator for the Recurrence Engine

This module ties the components together behind one facade:
1. Reading: master + window + instant → Instances (optionally cached)
2. Editing: edit request + master → next master (routed to the right operator)

DESIGN DECISION: The orchestrator enforces the boundaries the operators
assume:
- Edits are routed by recurrence type before an operator runs
- Every prepared edit is audited
- Move pairs are re-checked after each edit (advisory)

It performs no I/O. The caller persists what it returns.
"""

from datetime import date, datetime
from typing import Iterable, Optional
from uuid import UUID

from recurrence_engine.audit import AuditLogger, AuditSink
from recurrence_engine.config import EngineSettings, get_settings
from recurrence_engine.expansion import ExpansionCache, expand, materialize
from recurrence_engine.models.entry import (
    EntryPatch,
    Instance,
    MalformedEntryError,
    MasterEntry,
    OccurrenceRef,
)
from recurrence_engine.models.validation import ValidationResult
from recurrence_engine.models.window import EvaluationInstant, Window
from recurrence_engine.mutations import (
    MasterBatch,
    delete_occurrences,
    delete_series,
    delete_single_occurrence,
    mark_occurrences_paid,
    move_one_time,
    move_series,
    move_single_occurrence,
    reorder_occurrences,
    set_occurrence_paid,
    update_series,
    update_single_occurrence,
)
from recurrence_engine.validation import PairingValidator


class CalendarEngine:
    """
    Facade over expansion and mutation.

    Flow for an edit:
    1. Route → pick the operator for the entry's recurrence type
    2. Apply → pure operator returns the next master
    3. Audit → log what was prepared
    4. Check → advisory move-pair validation

    The returned master is a full replacement for the stored record.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[PairingValidator] = None,
        cache: Optional[ExpansionCache] = None,
    ):
        self._settings = settings or get_settings().engine
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or PairingValidator(self._settings)
        self._cache = cache

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def load_entries(
        self,
        records: Iterable[dict],
        correlation_id: Optional[UUID] = None,
    ) -> dict[str, MasterEntry]:
        """
        Parse persisted records, keyed by master ID.

        Raises:
            MalformedEntryError: on the first record that can't be parsed
        """
        masters = {}
        for record in records:
            try:
                master = MasterEntry.from_record(record)
            except MalformedEntryError as e:
                self._audit_logger.log_system_error(
                    error_type="malformed_entry",
                    error_message=str(e),
                    details={"record_id": record.get("id")},
                    correlation_id=correlation_id,
                )
                raise
            masters[master.id] = master
        return masters

    def as_of(self, now: datetime, timezone: Optional[str] = None) -> EvaluationInstant:
        """Build an evaluation instant, defaulting to the configured timezone."""
        return EvaluationInstant(now=now, timezone=timezone or self._settings.default_timezone)

    def instances_for(
        self,
        master: MasterEntry,
        window: Window,
        as_of: EvaluationInstant,
    ) -> list[Instance]:
        """Materialize one master over a window."""

        def compute() -> list[Instance]:
            return materialize(
                master,
                expand(master, window),
                window,
                as_of,
                autopay_cutoff_hour=self._settings.autopay_cutoff_hour,
                income_counts_as_autopay=self._settings.income_counts_as_autopay,
            )

        if self._cache is None:
            return compute()

        key = ExpansionCache.key_for(
            master,
            window,
            as_of.paid_through(self._settings.autopay_cutoff_hour),
            self._settings.income_counts_as_autopay,
        )
        return self._cache.get_or_compute(key, compute)

    def instances_for_all(
        self,
        masters: Iterable[MasterEntry],
        window: Window,
        as_of: EvaluationInstant,
    ) -> list[Instance]:
        """Materialize many masters; the result is ordered by date only."""
        instances = []
        for master in masters:
            instances.extend(self.instances_for(master, window, as_of))
        return sorted(instances, key=lambda instance: instance.occurrence_date)

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def _check(self, master: MasterEntry, correlation_id: Optional[UUID]) -> Optional[ValidationResult]:
        if not self._settings.validate_after_mutation:
            return None
        result = self._validator.validate(master)
        if result.issues:
            self._audit_logger.log_pairing_inconsistency(
                master_id=master.id,
                issues=[issue.model_dump(mode="json") for issue in result.issues],
                has_errors=result.has_errors,
                correlation_id=correlation_id,
            )
        return result

    def _forget(self, master_id: str) -> None:
        if self._cache is not None:
            self._cache.invalidate(master_id)

    def move_entry(
        self,
        master: MasterEntry,
        occurrence_date: date,
        new_date: date,
        move_all: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> MasterEntry:
        """
        Move a dragged instance.

        One-time entries change their date. For recurring entries,
        `move_all` re-anchors the series on `new_date`; otherwise only the
        occurrence on `occurrence_date` moves.
        """
        if not master.is_recurring:
            updated = move_one_time(master, occurrence_date, new_date)
            if updated is not master:
                self._audit_logger.log_one_time_moved(
                    master.id, occurrence_date, new_date, correlation_id,
                )
        elif move_all:
            updated = move_series(master, new_date)
            dropped = len(master.exceptions) - len(updated.exceptions)
            self._audit_logger.log_series_moved(
                master.id, master.anchor_date, new_date, dropped, correlation_id,
            )
        else:
            updated = move_single_occurrence(master, occurrence_date, new_date)
            if updated is master and occurrence_date != new_date:
                self._audit_logger.log_invalid_operation(
                    master.id,
                    "move_single_occurrence",
                    f"{occurrence_date} can't move to {new_date}",
                    correlation_id,
                )
            elif updated is not master:
                self._audit_logger.log_occurrence_moved(
                    master.id, occurrence_date, new_date, correlation_id,
                )

        self._forget(master.id)
        self._check(updated, correlation_id)
        return updated

    def move_one_time_entry(
        self,
        master: MasterEntry,
        from_date: date,
        to_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> MasterEntry:
        """
        Move a one-time entry, refusing (and logging) recurring ones.

        Prefer move_entry, which routes for you.
        """
        if master.is_recurring:
            self._audit_logger.log_invalid_operation(
                master.id,
                "move_one_time",
                f"entry recurs {master.recurrence.value}",
                correlation_id,
            )
            return master
        return self.move_entry(master, from_date, to_date, correlation_id=correlation_id)

    def update_entry(
        self,
        master: MasterEntry,
        patch: EntryPatch,
        occurrence_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> MasterEntry:
        """
        Apply an edit to one occurrence, or to the whole series.

        One-time entries and calls without `occurrence_date` edit the series.
        """
        if occurrence_date is not None and master.is_recurring:
            updated = update_single_occurrence(master, occurrence_date, patch)
            self._audit_logger.log_occurrence_updated(
                master.id, occurrence_date, sorted(patch.changes()), correlation_id,
            )
        else:
            updated = update_series(master, patch)
            cleared = len(master.exceptions) - len(updated.exceptions)
            self._audit_logger.log_series_updated(
                master.id, sorted(patch.changes()), cleared, correlation_id,
            )

        self._forget(master.id)
        self._check(updated, correlation_id)
        return updated

    def set_paid(
        self,
        master: MasterEntry,
        occurrence_date: date,
        is_paid: bool,
        correlation_id: Optional[UUID] = None,
    ) -> MasterEntry:
        """Toggle the paid flag of one instance."""
        updated = set_occurrence_paid(master, occurrence_date, is_paid)
        self._audit_logger.log_occurrence_updated(
            master.id, occurrence_date, ["is_paid"], correlation_id,
        )
        self._forget(master.id)
        self._check(updated, correlation_id)
        return updated

    def delete_entry(
        self,
        master: MasterEntry,
        occurrence_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[MasterEntry]:
        """
        Delete one occurrence, or the whole entry.

        Returns None when the whole record should be removed (one-time
        entries, or no occurrence given).
        """
        self._forget(master.id)

        if occurrence_date is None or not master.is_recurring:
            self._audit_logger.log_series_deleted(master.id, correlation_id)
            return delete_series(master)

        updated = delete_single_occurrence(master, occurrence_date)
        self._audit_logger.log_occurrence_deleted(master.id, occurrence_date, correlation_id)
        self._check(updated, correlation_id)
        return updated

    # -------------------------------------------------------------------------
    # Multi-record edits
    # -------------------------------------------------------------------------

    def _finish_batch(
        self,
        operation: str,
        batch: MasterBatch,
        correlation_id: Optional[UUID],
    ) -> MasterBatch:
        for master_id in [*batch.updated, *batch.removed]:
            self._forget(master_id)
        self._audit_logger.log_batch_prepared(
            operation,
            updated=len(batch.updated),
            removed=len(batch.removed),
            missing=batch.missing,
            correlation_id=correlation_id,
        )
        for master in batch.updated.values():
            self._check(master, correlation_id)
        return batch

    def delete_many(
        self,
        masters: dict[str, MasterEntry],
        refs: Iterable[OccurrenceRef],
        correlation_id: Optional[UUID] = None,
    ) -> MasterBatch:
        return self._finish_batch("delete", delete_occurrences(masters, refs), correlation_id)

    def mark_paid_many(
        self,
        masters: dict[str, MasterEntry],
        refs: Iterable[OccurrenceRef],
        is_paid: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> MasterBatch:
        return self._finish_batch(
            "mark_paid", mark_occurrences_paid(masters, refs, is_paid), correlation_id,
        )

    def reorder(
        self,
        masters: dict[str, MasterEntry],
        ordered: Iterable[OccurrenceRef],
        correlation_id: Optional[UUID] = None,
    ) -> MasterBatch:
        return self._finish_batch("reorder", reorder_occurrences(masters, ordered), correlation_id)


# =============================================================================
# Factory Function
# =============================================================================

def create_engine(
    audit_sink: Optional[AuditSink] = None,
    use_cache: bool = True,
) -> CalendarEngine:
    """
    Create a CalendarEngine from environment settings.

    Args:
        audit_sink: Receives every audit event. Local logging only if None.
        use_cache: Memoize expansions in a bounded LRU.
    """
    settings = get_settings().engine
    cache = ExpansionCache(settings.cache_max_entries) if use_cache else None
    return CalendarEngine(
        settings=settings,
        audit_logger=AuditLogger(audit_sink),
        cache=cache,
    )
