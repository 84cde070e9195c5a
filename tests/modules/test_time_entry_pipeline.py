"""
Tests for TimeEntryService.

Covers:
- The pricing pipeline on save (cost history, resolver, calculator)
- Hours validation and period locks
- Repricing after rule changes
- Copying the previous week
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from billing_kernel.domain.periods import YearMonth
from billing_kernel.exceptions import (
    EmployeeNotFoundError,
    InvalidHoursError,
    PeriodLockedError,
    TimeEntryNotFoundError,
)
from billing_kernel.models import TimeEntryModel
from billing_kernel.services.period_lock_service import PeriodLockService
from billing_modules.pricing import PricingService
from billing_modules.time_entry import TimeEntryService

MONDAY = date(2024, 3, 11)


@pytest.fixture
def service(session, clock, config):
    return TimeEntryService(session, clock=clock, config=config)


@pytest.fixture
def pricing(session, clock):
    return PricingService(session, clock=clock)


@pytest.fixture
def lock(session, clock, test_actor_id):
    def _lock(period: YearMonth):
        PeriodLockService(session, clock).lock(period, test_actor_id)
        session.commit()

    return _lock


class TestPipeline:

    def test_default_pricing_without_rule(self, service, employee, customer, article, test_actor_id):
        entry = service.upsert(
            employee.id, customer.id, article.id, MONDAY, Decimal("2"), test_actor_id,
        )

        assert entry.cost_amount == Decimal("800")
        assert entry.calculated_price == Decimal("2000")
        assert entry.pricing_rule_id is None

    def test_rule_applied(self, service, pricing, employee, customer, article, test_actor_id):
        rule = pricing.create_rule(
            "Pair", "CUSTOMER_ARTICLE", test_actor_id,
            customer_id=customer.id, article_id=article.id,
            price_per_hour=Decimal("100"), markup=Decimal("0.1"),
            discount=Decimal("0.05"), minimum_charge=Decimal("150"),
        )

        entry = service.upsert(
            employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id,
        )

        assert entry.calculated_price == Decimal("150")
        assert entry.pricing_rule_id == rule.id

    def test_article_group_rule_used_on_save(
        self, service, pricing, employee, customer, article, test_actor_id,
    ):
        group_rule = pricing.create_rule(
            "Group", "ARTICLE_GROUP", test_actor_id,
            article_group_id=article.article_group_id, price_per_hour=Decimal("700"),
        )
        pricing.create_rule("Global", "GLOBAL", test_actor_id, price_per_hour=Decimal("1200"))

        entry = service.upsert(
            employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id,
        )

        assert entry.pricing_rule_id == group_rule.id
        assert entry.calculated_price == Decimal("700")

    def test_cost_history_on_entry_date(
        self, service, employee, customer, article, add_cost_history, test_actor_id,
    ):
        add_cost_history(employee.id, Decimal("300"), date(2024, 1, 1), date(2024, 2, 29))

        february = service.upsert(
            employee.id, customer.id, article.id, date(2024, 2, 20), Decimal("1"), test_actor_id,
        )
        march = service.upsert(
            employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id,
        )

        assert february.cost_amount == Decimal("300")
        assert march.cost_amount == Decimal("400")

    def test_running_price_and_texts_stored(self, service, employee, customer, article, test_actor_id):
        entry = service.upsert(
            employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id,
            comment="Månadsbokslut", invoice_text="Bokföring mars", running_price=Decimal("900"),
        )

        assert entry.running_price == Decimal("900")
        assert entry.comment == "Månadsbokslut"
        assert entry.invoice_text == "Bokföring mars"

    def test_edit_recomputes(self, service, employee, customer, article, test_actor_id):
        entry = service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id)

        edited = service.upsert(
            employee.id, customer.id, article.id, MONDAY, Decimal("3"), test_actor_id,
            entry_id=entry.id,
        )

        assert edited.id == entry.id
        assert edited.calculated_price == Decimal("3000")

    @pytest.mark.parametrize("hours", ["-0.5", "24.5"])
    def test_hours_out_of_range(self, service, employee, customer, article, hours, test_actor_id):
        with pytest.raises(InvalidHoursError) as exc_info:
            service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal(hours), test_actor_id)

        assert exc_info.value.code == "INVALID_HOURS"

    def test_boundary_hours_accepted(self, service, employee, customer, article, test_actor_id):
        entry = service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("24"), test_actor_id)

        assert entry.hours == Decimal("24")

    def test_unknown_employee(self, service, customer, article, test_actor_id):
        with pytest.raises(EmployeeNotFoundError):
            service.upsert(uuid4(), customer.id, article.id, MONDAY, Decimal("1"), test_actor_id)

    def test_save_logged_with_context(
        self, service, employee, customer, article, test_actor_id, captured_logs,
    ):
        service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id)

        [saved] = [r for r in captured_logs() if r["message"] == "time_entry_saved"]
        assert saved["employee_id"] == str(employee.id)
        assert saved["calculated_price"] == "1000.00"


class TestLocks:

    def test_locked_month_rejected(self, service, lock, employee, customer, article, test_actor_id):
        lock(YearMonth(2024, 3))

        with pytest.raises(PeriodLockedError):
            service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id)

    def test_moving_entry_out_of_locked_month_rejected(
        self, service, lock, employee, customer, article, test_actor_id,
    ):
        entry = service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id)
        lock(YearMonth(2024, 3))

        with pytest.raises(PeriodLockedError):
            service.upsert(
                employee.id, customer.id, article.id, date(2024, 4, 2), Decimal("1"),
                test_actor_id, entry_id=entry.id,
            )

    def test_delete_in_locked_month_rejected(
        self, session, service, lock, employee, customer, article, test_actor_id,
    ):
        entry = service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id)
        lock(YearMonth(2024, 3))

        with pytest.raises(PeriodLockedError):
            service.delete(entry.id)

        assert session.get(TimeEntryModel, entry.id) is not None

    def test_unlocked_month_writable_again(
        self, session, service, lock, clock, employee, customer, article, test_actor_id,
    ):
        lock(YearMonth(2024, 3))
        PeriodLockService(session, clock).unlock(YearMonth(2024, 3), test_actor_id)
        session.commit()

        entry = service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id)

        assert entry.hours == Decimal("1")


class TestRepriceDeleteCopy:

    def test_reprice_after_new_rule(self, service, pricing, employee, customer, article, test_actor_id):
        entry = service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("2"), test_actor_id)
        rule = pricing.create_rule(
            "Customer", "CUSTOMER", test_actor_id,
            customer_id=customer.id, price_per_hour=Decimal("500"),
        )

        repriced = service.reprice(entry.id, test_actor_id)

        assert repriced.calculated_price == Decimal("1000")
        assert repriced.pricing_rule_id == rule.id

    def test_delete(self, session, service, employee, customer, article, test_actor_id):
        entry = service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id)

        service.delete(entry.id)

        assert session.get(TimeEntryModel, entry.id) is None

    def test_delete_unknown(self, service):
        with pytest.raises(TimeEntryNotFoundError):
            service.delete(uuid4())

    def test_copy_previous_week_reprices(
        self, service, pricing, employee, customer, article, test_actor_id,
    ):
        service.upsert(employee.id, customer.id, article.id, date(2024, 3, 4), Decimal("2"), test_actor_id)
        service.upsert(employee.id, customer.id, article.id, date(2024, 3, 6), Decimal("3"), test_actor_id)
        pricing.create_rule(
            "From 11th", "CUSTOMER", test_actor_id,
            customer_id=customer.id, price_per_hour=Decimal("600"), valid_from=MONDAY,
        )

        created = service.copy_previous_week(employee.id, MONDAY, test_actor_id)

        week = service.week(employee.id, MONDAY)
        assert created == 2
        assert [e.entry_date for e in week] == [date(2024, 3, 11), date(2024, 3, 13)]
        assert [e.calculated_price for e in week] == [Decimal("1200"), Decimal("1800")]

    def test_copy_previous_week_carries_running_price(
        self, service, employee, customer, article, test_actor_id, captured_logs,
    ):
        service.upsert(
            employee.id, customer.id, article.id, date(2024, 3, 4), Decimal("2"), test_actor_id,
            comment="Avstämning", running_price=Decimal("1500"),
        )

        service.copy_previous_week(employee.id, MONDAY, test_actor_id)

        [copy] = service.week(employee.id, MONDAY)
        assert copy.running_price == Decimal("1500")
        assert copy.comment == "Avstämning"
        [record] = [r for r in captured_logs() if r["message"] == "time_entries_copied"]
        assert record["copied_count"] == 1
        assert record["employee_id"] == str(employee.id)
        assert record["actor_id"] == str(test_actor_id)

    def test_day(self, service, employee, customer, article, test_actor_id):
        service.upsert(employee.id, customer.id, article.id, MONDAY, Decimal("1"), test_actor_id)

        assert len(service.day(employee.id, MONDAY)) == 1
        assert service.day(employee.id, date(2024, 3, 12)) == []
