"""
Tests for BudgetService.

Covers:
- Draft create/edit and validation
- Publish: versioning, auto-close of superseded entries, atomicity
- Copy from previous month
- Deletion and period locks
- Effective budgets, range totals and history on persisted rows
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from billing_kernel.domain.dtos import BudgetFilter, BudgetStatus
from billing_kernel.domain.periods import YearMonth
from billing_kernel.exceptions import (
    ArticleNotFoundError,
    BudgetEntryKeyMismatchError,
    BudgetEntryNotEditableError,
    CustomerNotFoundError,
    NoDraftsToPublishError,
    NoPublishedBudgetError,
    PeriodLockedError,
)
from billing_kernel.models import BudgetEntryModel
from billing_kernel.services.period_lock_service import PeriodLockService
from billing_modules.budget import BudgetService

JAN = YearMonth(2024, 1)
FEB = YearMonth(2024, 2)
MAR = YearMonth(2024, 3)
APR = YearMonth(2024, 4)


@pytest.fixture
def service(session, clock, config):
    return BudgetService(session, clock=clock, config=config)


@pytest.fixture
def publish_budget(service, customer, article, test_actor_id):
    """Draft and publish one entry; returns the published DTO."""

    def _publish(period: YearMonth, hours: str = "10", amount: str = "10000", article_id=None):
        service.upsert_draft(
            customer.id, article_id or article.id, period,
            Decimal(hours), Decimal(amount), test_actor_id,
        )
        service.publish(period, test_actor_id)
        return [
            e for e in service.list_entries(period, BudgetStatus.PUBLISHED)
            if e.article_id == (article_id or article.id)
        ][-1]

    return _publish


class TestDrafts:
    """upsert_draft()."""

    def test_creates_draft(self, service, customer, article, test_actor_id):
        entry = service.upsert_draft(
            customer.id, article.id, JAN, Decimal("12"), Decimal("9000"), test_actor_id,
        )

        assert entry.status == BudgetStatus.DRAFT
        assert entry.version == 0
        assert entry.start == JAN
        assert entry.is_open

    def test_second_upsert_updates_same_draft(self, service, customer, article, test_actor_id):
        first = service.upsert_draft(
            customer.id, article.id, JAN, Decimal("12"), Decimal("9000"), test_actor_id,
        )
        second = service.upsert_draft(
            customer.id, article.id, JAN, Decimal("15"), Decimal("9500"), test_actor_id,
        )

        assert second.id == first.id
        assert second.hours == Decimal("15")
        assert len(service.list_entries(JAN, BudgetStatus.DRAFT)) == 1

    def test_negative_hours_rejected(self, service, customer, article, test_actor_id):
        with pytest.raises(ValueError):
            service.upsert_draft(
                customer.id, article.id, JAN, Decimal("-1"), Decimal("0"), test_actor_id,
            )

    def test_unknown_customer(self, service, article, test_actor_id):
        with pytest.raises(CustomerNotFoundError):
            service.upsert_draft(uuid4(), article.id, JAN, Decimal("1"), Decimal("1"), test_actor_id)

    def test_unknown_article(self, service, customer, test_actor_id):
        with pytest.raises(ArticleNotFoundError):
            service.upsert_draft(customer.id, uuid4(), JAN, Decimal("1"), Decimal("1"), test_actor_id)

    def test_published_entry_not_editable(self, service, publish_budget, customer, article, test_actor_id):
        published = publish_budget(JAN)

        with pytest.raises(BudgetEntryNotEditableError) as exc_info:
            service.upsert_draft(
                customer.id, article.id, JAN, Decimal("1"), Decimal("1"), test_actor_id,
                entry_id=published.id,
            )

        assert exc_info.value.status == "PUBLISHED"

    def test_locked_period_rejected(self, session, service, customer, article, clock, test_actor_id):
        PeriodLockService(session, clock).lock(JAN, test_actor_id)
        session.commit()

        with pytest.raises(PeriodLockedError) as exc_info:
            service.upsert_draft(
                customer.id, article.id, JAN, Decimal("1"), Decimal("1"), test_actor_id,
            )

        assert exc_info.value.period == "2024-01"

    def test_edit_by_id_checks_entry_month_lock(
        self, session, service, customer, article, clock, test_actor_id,
    ):
        draft = service.upsert_draft(
            customer.id, article.id, JAN, Decimal("10"), Decimal("1"), test_actor_id,
        )
        PeriodLockService(session, clock).lock(JAN, test_actor_id)
        session.commit()

        with pytest.raises(PeriodLockedError) as exc_info:
            service.upsert_draft(
                customer.id, article.id, FEB, Decimal("99"), Decimal("1"), test_actor_id,
                entry_id=draft.id,
            )

        assert exc_info.value.period == "2024-01"
        session.expire_all()
        assert session.get(BudgetEntryModel, draft.id).hours == Decimal("10")

    @pytest.mark.parametrize("field", ["customer_id", "article_id", "start"])
    def test_edit_by_id_rejects_other_keys(
        self, session, service, customer, article, make_customer, make_article, field,
        test_actor_id,
    ):
        draft = service.upsert_draft(
            customer.id, article.id, JAN, Decimal("10"), Decimal("1"), test_actor_id,
        )
        keys = {"customer_id": customer.id, "article_id": article.id, "start": JAN}
        keys[field] = {
            "customer_id": lambda: make_customer("Other AB").id,
            "article_id": lambda: make_article(code="LON").id,
            "start": lambda: FEB,
        }[field]()

        with pytest.raises(BudgetEntryKeyMismatchError) as exc_info:
            service.upsert_draft(
                keys["customer_id"], keys["article_id"], keys["start"],
                Decimal("99"), Decimal("1"), test_actor_id, entry_id=draft.id,
            )

        assert exc_info.value.field == field
        session.expire_all()
        assert session.get(BudgetEntryModel, draft.id).hours == Decimal("10")

    def test_edit_by_id_with_matching_keys(self, service, customer, article, test_actor_id):
        draft = service.upsert_draft(
            customer.id, article.id, JAN, Decimal("10"), Decimal("1"), test_actor_id,
        )

        edited = service.upsert_draft(
            customer.id, article.id, JAN, Decimal("12"), Decimal("2"), test_actor_id,
            entry_id=draft.id,
        )

        assert edited.id == draft.id
        assert edited.hours == Decimal("12")

    def test_draft_saved_logged_with_context(
        self, service, customer, article, test_actor_id, captured_logs,
    ):
        service.upsert_draft(customer.id, article.id, JAN, Decimal("10"), Decimal("1"), test_actor_id)
        service.upsert_draft(customer.id, article.id, JAN, Decimal("11"), Decimal("1"), test_actor_id)

        saved = [r for r in captured_logs() if r["message"] == "budget_draft_saved"]
        assert [r["is_new"] for r in saved] == [True, False]
        assert saved[0]["actor_id"] == str(test_actor_id)
        assert saved[0]["customer_id"] == str(customer.id)
        assert saved[0]["period"] == "2024-01"


class TestPublish:
    """publish()."""

    def test_promotes_drafts_with_version_one(self, service, customer, article, test_actor_id):
        service.upsert_draft(customer.id, article.id, JAN, Decimal("10"), Decimal("1"), test_actor_id)

        result = service.publish(JAN, test_actor_id)

        assert result.published == 1
        assert result.version == 1
        assert result.closed == 0
        [entry] = service.list_entries(JAN)
        assert entry.status == BudgetStatus.PUBLISHED
        assert entry.version == 1

    def test_republishing_same_month_increments_version(
        self, service, publish_budget, customer, article, test_actor_id,
    ):
        publish_budget(JAN, hours="10")
        service.upsert_draft(customer.id, article.id, JAN, Decimal("12"), Decimal("1"), test_actor_id)

        result = service.publish(JAN, test_actor_id)

        assert result.version == 2
        # Same start month is not closed; the version tie-break decides.
        assert result.closed == 0
        [effective] = service.effective_budgets(JAN)
        assert effective.hours == Decimal("12")

    def test_auto_closes_superseded_entry(self, service, publish_budget):
        original = publish_budget(JAN, hours="10")

        revised = publish_budget(APR, hours="20")

        history = {e.id: e for g in service.history(original.customer_id) for e in g.entries}
        assert history[original.id].end == MAR
        assert history[revised.id].is_open
        assert [e.hours for e in service.effective_budgets(MAR)] == [Decimal("10")]
        assert [e.hours for e in service.effective_budgets(APR)] == [Decimal("20")]

    def test_auto_close_limited_to_same_pair(self, service, publish_budget, make_article):
        other_article = make_article(code="LON")
        publish_budget(JAN, article_id=other_article.id)

        publish_budget(APR)

        [other] = [e for e in service.effective_budgets(APR) if e.article_id == other_article.id]
        assert other.is_open

    def test_no_drafts(self, service, test_actor_id):
        with pytest.raises(NoDraftsToPublishError):
            service.publish(JAN, test_actor_id)

    def test_publish_logged(self, service, customer, article, test_actor_id, captured_logs):
        service.upsert_draft(customer.id, article.id, JAN, Decimal("10"), Decimal("1"), test_actor_id)

        service.publish(JAN, test_actor_id)

        published = [r for r in captured_logs() if r["message"] == "budget_published"]
        assert published and published[0]["version"] == 1

    def test_failed_publish_leaves_nothing_behind(
        self, session, service, publish_budget, customer, article, test_actor_id, monkeypatch,
    ):
        original = publish_budget(JAN, hours="10")
        draft = service.upsert_draft(
            customer.id, article.id, APR, Decimal("20"), Decimal("1"), test_actor_id,
        )
        close_superseded = service._close_superseded

        def close_then_fail(*args, **kwargs):
            close_superseded(*args, **kwargs)
            session.flush()
            raise RuntimeError("storage failure")

        monkeypatch.setattr(service, "_close_superseded", close_then_fail)

        with pytest.raises(RuntimeError, match="storage failure"):
            service.publish(APR, test_actor_id)

        session.expire_all()
        kept = session.get(BudgetEntryModel, original.id)
        assert kept.end_year is None and kept.end_month is None
        pending = session.get(BudgetEntryModel, draft.id)
        assert pending.status == BudgetStatus.DRAFT.value
        assert pending.version == 0
        assert [e.hours for e in service.effective_budgets(APR)] == [Decimal("10")]


class TestCopyFromPreviousMonth:
    """copy_from_previous_month()."""

    def test_copies_effective_entries_as_drafts(self, service, publish_budget, test_actor_id):
        publish_budget(JAN, hours="10", amount="5000")

        created = service.copy_from_previous_month(FEB, test_actor_id)

        assert created == 1
        [draft] = service.list_entries(FEB, BudgetStatus.DRAFT)
        assert draft.hours == Decimal("10")
        assert draft.amount == Decimal("5000")

    def test_existing_drafts_skipped(self, service, publish_budget, customer, article, test_actor_id):
        publish_budget(JAN)
        service.upsert_draft(customer.id, article.id, FEB, Decimal("3"), Decimal("3"), test_actor_id)

        assert service.copy_from_previous_month(FEB, test_actor_id) == 0
        [draft] = service.list_entries(FEB, BudgetStatus.DRAFT)
        assert draft.hours == Decimal("3")

    def test_nothing_to_copy(self, service, test_actor_id):
        with pytest.raises(NoPublishedBudgetError) as exc_info:
            service.copy_from_previous_month(FEB, test_actor_id)

        assert exc_info.value.period == "2024-01"

    def test_copy_logged(self, service, publish_budget, test_actor_id, captured_logs):
        publish_budget(JAN)

        service.copy_from_previous_month(FEB, test_actor_id)

        [record] = [
            r for r in captured_logs() if r["message"] == "budget_copied_from_previous_month"
        ]
        assert record["created_count"] == 1
        assert record["skipped"] == 0
        assert record["period"] == "2024-02"


class TestDelete:
    """delete_entry() / delete_entries()."""

    def test_delete_entry(self, session, service, customer, article, test_actor_id):
        entry = service.upsert_draft(customer.id, article.id, JAN, Decimal("1"), Decimal("1"), test_actor_id)

        service.delete_entry(entry.id)

        assert session.get(BudgetEntryModel, entry.id) is None

    def test_delete_entries_by_status(self, service, publish_budget, customer, article, test_actor_id):
        publish_budget(JAN)
        service.upsert_draft(customer.id, article.id, JAN, Decimal("1"), Decimal("1"), test_actor_id)

        deleted = service.delete_entries(customer.id, JAN, BudgetStatus.DRAFT)

        assert deleted == 1
        assert [e.status for e in service.list_entries(JAN)] == [BudgetStatus.PUBLISHED]

    def test_delete_in_locked_period(self, session, service, customer, article, clock, test_actor_id):
        entry = service.upsert_draft(customer.id, article.id, JAN, Decimal("1"), Decimal("1"), test_actor_id)
        PeriodLockService(session, clock).lock(JAN, test_actor_id)
        session.commit()

        with pytest.raises(PeriodLockedError):
            service.delete_entry(entry.id)

        assert session.get(BudgetEntryModel, entry.id) is not None


class TestReadSide:
    """effective_budgets(), budget_range() and history()."""

    def test_drafts_never_effective(self, service, customer, article, test_actor_id):
        service.upsert_draft(customer.id, article.id, JAN, Decimal("10"), Decimal("1"), test_actor_id)

        assert service.effective_budgets(JAN) == []

    def test_range_resums_month_by_month(self, service, publish_budget):
        entry = publish_budget(JAN, hours="10", amount="8000")
        publish_budget(APR, hours="20", amount="9000")

        totals = service.budget_range(JAN, YearMonth(2024, 6))

        total = totals[entry.key]
        # Jan-Mar at 10h, Apr-Jun at 20h.
        assert total.total_hours == Decimal("90")
        assert total.total_amount == Decimal("51000")

    def test_range_filtered_by_customer(self, service, publish_budget, make_customer):
        publish_budget(JAN)

        totals = service.budget_range(JAN, MAR, BudgetFilter(customer_id=make_customer("Other").id))

        assert totals == {}

    def test_history_grouped_newest_first(self, service, publish_budget, customer):
        publish_budget(JAN)
        publish_budget(APR)

        groups = service.history(customer.id)

        assert [g.period for g in groups] == [APR, JAN]
