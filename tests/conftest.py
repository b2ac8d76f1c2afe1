"""
Shared fixtures.

Masters are built through factories so each test states only the fields it
cares about.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from recurrence_engine.audit import AuditLogger
from recurrence_engine.config import EngineSettings
from recurrence_engine.models import (
    EvaluationInstant,
    MasterEntry,
    RecurrenceRule,
    Window,
)


@pytest.fixture
def make_master():
    """Factory for MasterEntry values with sensible defaults."""

    def _make(**overrides) -> MasterEntry:
        fields = {
            "id": "rent",
            "anchor_date": date(2024, 3, 4),
            "name": "Rent",
            "amount": Decimal("1200.00"),
            "recurrence": RecurrenceRule.WEEKLY,
        }
        fields.update(overrides)
        return MasterEntry(**fields)

    return _make


@pytest.fixture
def weekly_master(make_master) -> MasterEntry:
    """Weekly bill anchored on Monday 2024-03-04."""
    return make_master()


@pytest.fixture
def one_time_master(make_master) -> MasterEntry:
    return make_master(
        id="dentist",
        name="Dentist",
        amount=Decimal("80.00"),
        anchor_date=date(2024, 3, 10),
        recurrence=RecurrenceRule.NONE,
    )


@pytest.fixture
def march() -> Window:
    return Window(start=date(2024, 3, 1), end=date(2024, 3, 31))


@pytest.fixture
def as_of() -> EvaluationInstant:
    """Midday UTC on 2024-03-15."""
    return EvaluationInstant(now=datetime(2024, 3, 15, 12, 0))


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(app_environment="development")


@pytest.fixture
def audit_events() -> list:
    """Collects every event handed to the audit sink."""
    return []


@pytest.fixture
def audit_logger(audit_events) -> AuditLogger:
    return AuditLogger(sink=audit_events.append)
