"""
Pytest fixtures for the billing core test suite.

Provides:
- A fresh in-memory SQLite database per test (tables created from the ORM)
- Deterministic clock and default configuration
- Factory fixtures for reference data (employees, customers, articles)
- Structured log capture
"""

import json
import logging
from collections.abc import Generator
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from billing_config import BillingConfig
from billing_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from billing_kernel.domain.clock import DeterministicClock
from billing_kernel.domain.dtos import ArticleGroupType, CustomerType
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from billing_kernel.models import (
    AbsenceModel,
    ArticleGroupModel,
    ArticleModel,
    CalendarDayModel,
    CustomerModel,
    EmployeeCostHistoryModel,
    EmployeeModel,
)

# Test actor ID for all test operations
TEST_ACTOR_ID = UUID("00000000-0000-4000-a000-000000000001")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture billing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "budget_published" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("billing_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """A session on a private in-memory SQLite database."""
    init_engine_from_url("sqlite://")
    create_tables()
    sess = get_session()
    yield sess
    sess.close()
    reset_engine()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 15, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def config() -> BillingConfig:
    return BillingConfig.with_defaults()


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


# =============================================================================
# Reference data factories
# =============================================================================


@pytest.fixture
def make_employee(session):
    def _make(
        name: str = "Anna Andersson",
        cost_per_hour: Decimal = Decimal("400"),
        default_price_per_hour: Decimal = Decimal("1000"),
        weekly_hours: Decimal = Decimal("40"),
        target_utilization: Decimal = Decimal("0.75"),
        active: bool = True,
    ) -> EmployeeModel:
        row = EmployeeModel(
            name=name,
            cost_per_hour=cost_per_hour,
            default_price_per_hour=default_price_per_hour,
            weekly_hours=weekly_hours,
            target_utilization=target_utilization,
            active=active,
            created_by_id=TEST_ACTOR_ID,
        )
        session.add(row)
        session.commit()
        return row

    return _make


@pytest.fixture
def make_customer(session):
    def _make(
        name: str = "Acme AB",
        customer_type: CustomerType = CustomerType.LOPANDE,
        client_manager_id: UUID | None = None,
        active: bool = True,
    ) -> CustomerModel:
        row = CustomerModel(
            name=name,
            customer_type=customer_type.value,
            client_manager_id=client_manager_id,
            active=active,
            created_by_id=TEST_ACTOR_ID,
        )
        session.add(row)
        session.commit()
        return row

    return _make


@pytest.fixture
def make_article_group(session):
    def _make(
        name: str = "Löpande redovisning",
        group_type: ArticleGroupType = ArticleGroupType.ORDINARIE,
    ) -> ArticleGroupModel:
        row = ArticleGroupModel(
            name=name, group_type=group_type.value, created_by_id=TEST_ACTOR_ID,
        )
        session.add(row)
        session.commit()
        return row

    return _make


@pytest.fixture
def make_article(session, make_article_group):
    def _make(
        code: str | None = None,
        name: str = "Bokföring",
        group: ArticleGroupModel | None = None,
        included_in_fixed_price: bool = False,
    ) -> ArticleModel:
        group = group or make_article_group()
        row = ArticleModel(
            code=code or f"A-{uuid4().hex[:8]}",
            name=name,
            article_group_id=group.id,
            included_in_fixed_price=included_in_fixed_price,
            created_by_id=TEST_ACTOR_ID,
        )
        session.add(row)
        session.commit()
        return row

    return _make


@pytest.fixture
def add_cost_history(session):
    def _add(
        employee_id: UUID,
        cost_per_hour: Decimal,
        effective_from: date,
        effective_to: date | None = None,
    ) -> EmployeeCostHistoryModel:
        row = EmployeeCostHistoryModel(
            employee_id=employee_id,
            cost_per_hour=cost_per_hour,
            effective_from=effective_from,
            effective_to=effective_to,
            created_by_id=TEST_ACTOR_ID,
        )
        session.add(row)
        session.commit()
        return row

    return _add


@pytest.fixture
def add_absence(session):
    def _add(employee_id: UUID, absence_date: date, hours: Decimal) -> AbsenceModel:
        row = AbsenceModel(
            employee_id=employee_id,
            absence_date=absence_date,
            hours=hours,
            reason="vacation",
            created_by_id=TEST_ACTOR_ID,
        )
        session.add(row)
        session.commit()
        return row

    return _add


@pytest.fixture
def seed_calendar(session):
    """Insert one row per day of a month; weekends flagged, optional holidays."""

    def _seed(year: int, month: int, holidays: tuple[int, ...] = ()) -> int:
        day = date(year, month, 1)
        work_days = 0
        while day.month == month:
            is_weekend = day.weekday() >= 5
            is_holiday = day.day in holidays
            session.add(
                CalendarDayModel(
                    day=day,
                    is_weekend=is_weekend,
                    is_holiday=is_holiday,
                    holiday_name="Helgdag" if is_holiday else None,
                )
            )
            if not (is_weekend or is_holiday):
                work_days += 1
            day = date.fromordinal(day.toordinal() + 1)
        session.commit()
        return work_days

    return _seed


@pytest.fixture
def employee(make_employee) -> EmployeeModel:
    return make_employee()


@pytest.fixture
def customer(make_customer) -> CustomerModel:
    return make_customer()


@pytest.fixture
def article(make_article) -> ArticleModel:
    return make_article(code="BOK")
