"""
Derived Ledger Statistics

Pure functions over the ledger's transactions and categories, for the
dashboard and trend views:
- period summary (income, expense, balance, savings rate)
- expense breakdown by category
- monthly expense trend over the last N months
- month-over-month comparison with the biggest mover
- money / date / month formatting

Nothing here touches the remote store. Dangling category references are
reported as "uncategorized", never as errors.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel

from money_ledger.models.defaults import UNCATEGORIZED_COLOR, UNCATEGORIZED_LABEL
from money_ledger.models.ledger import (
    Category,
    Currency,
    DateFormat,
    Language,
    Transaction,
    TransactionType,
)
from money_ledger.period import end_of_month, start_of_month


ZERO = Decimal("0")

TREND_RANGES = (6, 12)


# =============================================================================
# RESULT MODELS
# =============================================================================

class PeriodSummary(BaseModel):
    income: Decimal
    expense: Decimal
    balance: Decimal
    # Percent of income kept; None when there was no income
    savings_rate: Optional[Decimal] = None


class CategoryTotal(BaseModel):
    category_id: str
    name: str
    color: str
    amount: Decimal
    is_uncategorized: bool = False


class MonthlyTrendPoint(BaseModel):
    month: str  # yyyy-MM
    by_category: dict[str, Decimal]
    total: Decimal


class TrendAnalysis(BaseModel):
    diff: Decimal
    percent: Decimal
    top_mover: Optional[Category] = None
    top_mover_amount: Decimal = ZERO


# =============================================================================
# AGGREGATES
# =============================================================================

def summarize(transactions: Iterable[Transaction]) -> PeriodSummary:
    """Income, expense and balance over `transactions`."""
    income = ZERO
    expense = ZERO
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount

    balance = income - expense
    savings_rate = None
    if income > 0:
        savings_rate = (balance / income * 100).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )
    return PeriodSummary(
        income=income,
        expense=expense,
        balance=balance,
        savings_rate=savings_rate,
    )


def expense_breakdown(
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
    language: Language = Language.EN,
    active_only: bool = False,
) -> list[CategoryTotal]:
    """
    Expense totals per category, largest first.

    With active_only, totals for inactive categories are dropped.
    Transactions pointing at a missing category are grouped under their
    id and labeled "uncategorized".
    """
    lookup = {c.id: c for c in categories}
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        totals[t.category_id] = totals.get(t.category_id, ZERO) + t.amount

    result = []
    for category_id, amount in totals.items():
        category = lookup.get(category_id)
        if category is None:
            result.append(CategoryTotal(
                category_id=category_id,
                name=UNCATEGORIZED_LABEL[language],
                color=UNCATEGORIZED_COLOR,
                amount=amount,
                is_uncategorized=True,
            ))
            continue
        if active_only and not category.is_active:
            continue
        result.append(CategoryTotal(
            category_id=category_id,
            name=category.name,
            color=category.color,
            amount=amount,
        ))

    result.sort(key=lambda item: item.amount, reverse=True)
    return result


def monthly_expense_trend(
    transactions: Iterable[Transaction],
    months: int = 6,
    today: Optional[datetime] = None,
) -> list[MonthlyTrendPoint]:
    """
    Expense per category for each of the last `months` calendar months,
    oldest first, ending with the month of `today`.
    """
    if months < 1:
        raise ValueError("months must be at least 1")
    today = today or datetime.now()
    first = start_of_month(today - relativedelta(months=months - 1))
    last = end_of_month(today)

    buckets: dict[str, dict[str, Decimal]] = {}
    for offset in range(months):
        key = (first + relativedelta(months=offset)).strftime("%Y-%m")
        buckets[key] = {}

    for t in transactions:
        if t.type != TransactionType.EXPENSE or not (first <= t.date <= last):
            continue
        bucket = buckets.get(t.date.strftime("%Y-%m"))
        if bucket is not None:
            bucket[t.category_id] = bucket.get(t.category_id, ZERO) + t.amount

    return [
        MonthlyTrendPoint(
            month=month,
            by_category=by_category,
            total=sum(by_category.values(), ZERO),
        )
        for month, by_category in buckets.items()
    ]


def month_over_month(
    trend: list[MonthlyTrendPoint],
    categories: Iterable[Category],
) -> Optional[TrendAnalysis]:
    """
    Compare the last two points of a trend.

    percent is relative to the previous month, one decimal. With no spending
    the previous month it is 100 for any increase and 0 otherwise. The top
    mover is the expense category with the largest increase; ties go to
    the first category in list order.
    """
    if len(trend) < 2:
        return None

    this_month, last_month = trend[-1], trend[-2]
    diff = this_month.total - last_month.total
    if last_month.total:
        percent = (diff / last_month.total * 100).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )
    else:
        percent = Decimal("100") if diff > 0 else ZERO

    top_mover = None
    max_increase = None
    for category in categories:
        if category.type != TransactionType.EXPENSE:
            continue
        increase = (
            this_month.by_category.get(category.id, ZERO)
            - last_month.by_category.get(category.id, ZERO)
        )
        if max_increase is None or increase > max_increase:
            max_increase = increase
            top_mover = category

    return TrendAnalysis(
        diff=diff,
        percent=percent,
        top_mover=top_mover,
        top_mover_amount=max_increase if max_increase is not None else ZERO,
    )


# =============================================================================
# FORMATTING
# =============================================================================

CURRENCY_SYMBOLS: dict[Currency, str] = {
    Currency.KRW: "₩",
    Currency.USD: "$",
    Currency.AUD: "A$",
}

# Won has no minor unit in everyday use
CURRENCY_DECIMALS: dict[Currency, int] = {
    Currency.KRW: 0,
    Currency.USD: 2,
    Currency.AUD: 2,
}

DATE_PATTERNS: dict[DateFormat, str] = {
    DateFormat.ISO: "%Y-%m-%d",
    DateFormat.DAY_FIRST: "%d/%m/%Y",
    DateFormat.MONTH_FIRST: "%m/%d/%Y",
    DateFormat.KOREAN: "%Y. %m. %d.",
}

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def format_money(amount: Decimal, currency: Currency) -> str:
    """
    "₩5,000", "$5,000.00", "A$1,234.50"; negatives lead with "-".
    """
    currency = Currency(currency)
    places = CURRENCY_DECIMALS[currency]
    exponent = Decimal(1).scaleb(-places)
    value = Decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{CURRENCY_SYMBOLS[currency]}{abs(value):,.{places}f}"


def format_date(value: datetime, date_format: DateFormat) -> str:
    return value.strftime(DATE_PATTERNS[DateFormat(date_format)])


def format_month(value: datetime, language: Language) -> str:
    """Month label for the period selector: "Mar 2024" / "2024년 3월"."""
    if Language(language) == Language.KO:
        return f"{value.year}년 {value.month}월"
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.year}"
