"""
Tests for derived statistics and formatting.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from money_ledger.models.ledger import (
    Category,
    Currency,
    DateFormat,
    Language,
    Transaction,
)
from money_ledger.statistics import (
    MonthlyTrendPoint,
    expense_breakdown,
    format_date,
    format_money,
    format_month,
    month_over_month,
    monthly_expense_trend,
    summarize,
)


def tx(id, date, amount, category_id="exp1", type="expense"):
    return Transaction(
        id=id, date=date, amount=Decimal(amount), type=type, category_id=category_id,
    )


CATEGORIES = (
    Category(id="exp1", name="Food", type="expense", color="#ef4444"),
    Category(id="exp2", name="Dining", type="expense", color="#f97316"),
    Category(id="exp3", name="Retired", type="expense", color="#64748b", is_active=False),
    Category(id="inc1", name="Salary", type="income", color="#10b981"),
)


class TestSummary:
    """Tests for the period summary."""

    def test_totals_and_savings_rate(self):
        summary = summarize([
            tx("a", "2024-03-01", "2500000", "inc1", "income"),
            tx("b", "2024-03-02", "12000"),
            tx("c", "2024-03-03", "30000", "exp2"),
        ])
        assert summary.income == Decimal("2500000")
        assert summary.expense == Decimal("42000")
        assert summary.balance == Decimal("2458000")
        assert summary.savings_rate == Decimal("98.3")

    def test_no_income_has_no_savings_rate(self):
        summary = summarize([tx("b", "2024-03-02", "12000")])
        assert summary.balance == Decimal("-12000")
        assert summary.savings_rate is None

    def test_empty(self):
        summary = summarize([])
        assert summary.income == summary.expense == summary.balance == Decimal("0")


class TestBreakdown:
    """Tests for the expense breakdown by category."""

    def test_sorted_largest_first(self):
        breakdown = expense_breakdown(
            [
                tx("a", "2024-03-01", "12000", "exp1"),
                tx("b", "2024-03-02", "30000", "exp2"),
                tx("c", "2024-03-03", "3000", "exp1"),
                tx("d", "2024-03-04", "999999", "inc1", "income"),
            ],
            CATEGORIES,
        )
        assert [(b.category_id, b.amount) for b in breakdown] == [
            ("exp2", Decimal("30000")),
            ("exp1", Decimal("15000")),
        ]
        assert breakdown[0].name == "Dining"
        assert breakdown[0].color == "#f97316"

    def test_dangling_category_is_uncategorized(self):
        breakdown = expense_breakdown(
            [tx("a", "2024-03-01", "500", "gone")], CATEGORIES, language=Language.KO,
        )
        [entry] = breakdown
        assert entry.is_uncategorized
        assert entry.name == "미분류"
        assert entry.color == "#cbd5e1"

    def test_active_only_drops_inactive(self):
        transactions = [tx("a", "2024-03-01", "500", "exp3"), tx("b", "2024-03-01", "100")]
        assert len(expense_breakdown(transactions, CATEGORIES)) == 2
        only_active = expense_breakdown(transactions, CATEGORIES, active_only=True)
        assert [b.category_id for b in only_active] == ["exp1"]


class TestTrend:
    """Tests for the monthly trend and month-over-month comparison."""

    TRANSACTIONS = [
        tx("dec", "2023-12-15", "999"),
        tx("jan", "2024-01-10", "100"),
        tx("feb", "2024-02-29T23:59:59", "200"),
        tx("mar1", "2024-03-01", "300", "exp2"),
        tx("mar2", "2024-03-31T23:00:00", "50"),
        tx("pay", "2024-03-25", "5000", "inc1", "income"),
        tx("apr", "2024-04-01", "777"),
    ]

    def test_trend_buckets_oldest_first(self):
        trend = monthly_expense_trend(self.TRANSACTIONS, months=3, today=datetime(2024, 3, 20))

        assert [p.month for p in trend] == ["2024-01", "2024-02", "2024-03"]
        assert [p.total for p in trend] == [Decimal("100"), Decimal("200"), Decimal("350")]
        assert trend[2].by_category == {"exp2": Decimal("300"), "exp1": Decimal("50")}

    def test_empty_months_are_present(self):
        trend = monthly_expense_trend([], months=6, today=datetime(2024, 3, 20))
        assert [p.month for p in trend] == [
            "2023-10", "2023-11", "2023-12", "2024-01", "2024-02", "2024-03",
        ]
        assert all(p.total == 0 for p in trend)

    def test_rejects_non_positive_range(self):
        with pytest.raises(ValueError):
            monthly_expense_trend([], months=0)

    def test_month_over_month(self):
        trend = monthly_expense_trend(self.TRANSACTIONS, months=3, today=datetime(2024, 3, 20))
        analysis = month_over_month(trend, CATEGORIES)

        assert analysis.diff == Decimal("150")
        assert analysis.percent == Decimal("75.0")
        assert analysis.top_mover.id == "exp2"
        assert analysis.top_mover_amount == Decimal("300")

    def test_previous_month_without_spending(self):
        points = [
            MonthlyTrendPoint(month="2024-02", by_category={}, total=Decimal("0")),
            MonthlyTrendPoint(month="2024-03", by_category={"exp1": Decimal("10")},
                              total=Decimal("10")),
        ]
        assert month_over_month(points, CATEGORIES).percent == Decimal("100")

        points[1] = MonthlyTrendPoint(month="2024-03", by_category={}, total=Decimal("0"))
        assert month_over_month(points, CATEGORIES).percent == Decimal("0")

    def test_needs_two_points(self):
        trend = monthly_expense_trend([], months=1, today=datetime(2024, 3, 20))
        assert month_over_month(trend, CATEGORIES) is None

    def test_tie_goes_to_first_category(self):
        points = [
            MonthlyTrendPoint(month="2024-02", by_category={}, total=Decimal("0")),
            MonthlyTrendPoint(month="2024-03", by_category={}, total=Decimal("0")),
        ]
        assert month_over_month(points, CATEGORIES).top_mover.id == "exp1"


class TestFormatting:
    """Tests for money, date and month labels."""

    @pytest.mark.parametrize("amount, currency, expected", [
        (Decimal("5000"), Currency.KRW, "₩5,000"),
        (Decimal("1234.5"), Currency.KRW, "₩1,235"),
        (Decimal("5000"), Currency.USD, "$5,000.00"),
        (Decimal("1234.5"), Currency.AUD, "A$1,234.50"),
        (Decimal("-1500"), Currency.KRW, "-₩1,500"),
        (Decimal("0"), Currency.USD, "$0.00"),
    ])
    def test_format_money(self, amount, currency, expected):
        assert format_money(amount, currency) == expected

    @pytest.mark.parametrize("date_format, expected", [
        (DateFormat.ISO, "2024-03-05"),
        (DateFormat.DAY_FIRST, "05/03/2024"),
        (DateFormat.MONTH_FIRST, "03/05/2024"),
        (DateFormat.KOREAN, "2024. 03. 05."),
    ])
    def test_format_date(self, date_format, expected):
        assert format_date(datetime(2024, 3, 5, 14, 0), date_format) == expected

    def test_format_month(self):
        assert format_month(datetime(2024, 3, 5), Language.EN) == "Mar 2024"
        assert format_month(datetime(2024, 3, 5), Language.KO) == "2024년 3월"
