"""
Tests for the budget range aggregator.

Covers:
- Month-by-month re-summation of effective entries
- Linearity under month-splitting (property test)
- Inverted and empty ranges
- Thread-pool evaluation and the per-month fetch variant
"""

from decimal import Decimal
from uuid import UUID, uuid4

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from billing_engines.budget_aggregation import (
    aggregate_budget_range,
    aggregate_budget_range_fetched,
)
from billing_kernel.domain.dtos import BudgetEntry, BudgetFilter, BudgetStatus, pair_key
from billing_kernel.domain.periods import YearMonth, month_range

CUSTOMERS = (
    UUID("10000000-0000-4000-a000-000000000001"),
    UUID("10000000-0000-4000-a000-000000000002"),
)
ARTICLES = (
    UUID("20000000-0000-4000-a000-000000000001"),
    UUID("20000000-0000-4000-a000-000000000002"),
)


def budget(
    start: YearMonth,
    end: YearMonth | None = None,
    hours: str = "10",
    amount: str = "10000",
    customer_id: UUID = CUSTOMERS[0],
    article_id: UUID = ARTICLES[0],
    version: int = 1,
) -> BudgetEntry:
    return BudgetEntry(
        id=uuid4(),
        customer_id=customer_id,
        article_id=article_id,
        start_year=start.year,
        start_month=start.month,
        end_year=end.year if end else None,
        end_month=end.month if end else None,
        hours=Decimal(hours),
        amount=Decimal(amount),
        status=BudgetStatus.PUBLISHED,
        version=version,
    )


class TestAggregateBudgetRange:
    """Tests for aggregate_budget_range()."""

    def test_entry_counted_once_per_covered_month(self):
        entry = budget(YearMonth(2024, 1), hours="10", amount="8000")

        totals = aggregate_budget_range([entry], YearMonth(2024, 1), YearMonth(2024, 6))

        total = totals[pair_key(CUSTOMERS[0], ARTICLES[0])]
        assert total.total_hours == Decimal("60")
        assert total.total_amount == Decimal("48000")

    def test_revision_mid_range(self):
        old = budget(YearMonth(2024, 1), end=YearMonth(2024, 2), hours="10")
        new = budget(YearMonth(2024, 3), hours="20")

        totals = aggregate_budget_range([old, new], YearMonth(2024, 1), YearMonth(2024, 4))

        assert totals[pair_key(CUSTOMERS[0], ARTICLES[0])].total_hours == Decimal("60")

    def test_overlapping_open_entries_deduplicated_per_month(self):
        old = budget(YearMonth(2024, 1), hours="10")
        new = budget(YearMonth(2024, 3), hours="20")

        totals = aggregate_budget_range([old, new], YearMonth(2024, 1), YearMonth(2024, 4))

        # Jan, Feb from the old entry; Mar, Apr from the new one.
        assert totals[pair_key(CUSTOMERS[0], ARTICLES[0])].total_hours == Decimal("60")

    def test_range_across_year_boundary(self):
        entry = budget(YearMonth(2023, 11), hours="5")

        totals = aggregate_budget_range([entry], YearMonth(2023, 12), YearMonth(2024, 2))

        assert totals[entry.key].total_hours == Decimal("15")

    def test_inverted_range_is_empty(self):
        entry = budget(YearMonth(2024, 1))

        assert aggregate_budget_range([entry], YearMonth(2024, 5), YearMonth(2024, 1)) == {}

    def test_filter_restricts_pairs(self):
        a = budget(YearMonth(2024, 1), customer_id=CUSTOMERS[0])
        b = budget(YearMonth(2024, 1), customer_id=CUSTOMERS[1])

        totals = aggregate_budget_range(
            [a, b], YearMonth(2024, 1), YearMonth(2024, 2),
            BudgetFilter(customer_id=CUSTOMERS[1]),
        )

        assert list(totals) == [b.key]

    def test_thread_pool_matches_sequential(self):
        entries = [
            budget(YearMonth(2024, 1), customer_id=c, article_id=a, hours=str(i + 1))
            for i, (c, a) in enumerate(
                (c, a) for c in CUSTOMERS for a in ARTICLES
            )
        ]
        start, end = YearMonth(2024, 1), YearMonth(2025, 12)

        sequential = aggregate_budget_range(entries, start, end)
        pooled = aggregate_budget_range(entries, start, end, max_workers=4)

        assert pooled == sequential

    def test_fetched_variant_calls_fetch_per_month(self):
        entry = budget(YearMonth(2024, 1), hours="3")
        seen: list[YearMonth] = []

        def fetch(month: YearMonth) -> list[BudgetEntry]:
            seen.append(month)
            return [entry]

        totals = aggregate_budget_range_fetched(
            fetch, YearMonth(2024, 1), YearMonth(2024, 3), max_workers=2,
        )

        assert sorted(seen) == list(month_range(YearMonth(2024, 1), YearMonth(2024, 3)))
        assert totals[entry.key].total_hours == Decimal("9")


months = st.builds(YearMonth, st.integers(2023, 2025), st.integers(1, 12))

entries_strategy = st.lists(
    st.builds(
        lambda start, length, hours, customer, article, version: budget(
            start,
            end=None if length is None else _advance(start, length),
            hours=str(hours),
            amount=str(hours * 900),
            customer_id=customer,
            article_id=article,
            version=version,
        ),
        start=months,
        length=st.one_of(st.none(), st.integers(0, 12)),
        hours=st.integers(0, 80),
        customer=st.sampled_from(CUSTOMERS),
        article=st.sampled_from(ARTICLES),
        version=st.integers(1, 3),
    ),
    max_size=8,
)


def _advance(start: YearMonth, months_ahead: int) -> YearMonth:
    end = start
    for _ in range(months_ahead):
        end = end.next()
    return end


class TestMonthSplittingLinearity:
    """Aggregating [start, end] equals the sum of single-month aggregations."""

    @settings(max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(entries=entries_strategy, start=months, span=st.integers(0, 5))
    def test_range_equals_sum_of_months(self, entries, start, span):
        end = _advance(start, span)

        whole = aggregate_budget_range(entries, start, end)

        hours: dict[str, Decimal] = {}
        amounts: dict[str, Decimal] = {}
        for month in month_range(start, end):
            for key, total in aggregate_budget_range(entries, month, month).items():
                hours[key] = hours.get(key, Decimal("0")) + total.total_hours
                amounts[key] = amounts.get(key, Decimal("0")) + total.total_amount

        assert {k: t.total_hours for k, t in whole.items()} == hours
        assert {k: t.total_amount for k, t in whole.items()} == amounts
