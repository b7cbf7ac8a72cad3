# finvue/aggregation.py
"""Derived figures for dashboards and reports.

Every function here is pure: it takes transactions (and budgets or pulses)
plus filter parameters and returns fresh values in a single target
currency. Nothing is cached, so callers simply call again whenever the
store or a filter changes.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from finvue.core.currency import normalize
from finvue.core.models import (
    Budget,
    PulseFrequency,
    RecurringPulse,
    Transaction,
    TransactionType,
    UserConfig,
    parse_date,
)

# Rough monthly multipliers, not calendar-exact.
MONTHLY_FACTORS: Dict[PulseFrequency, float] = {
    PulseFrequency.DAILY: 30.0,
    PulseFrequency.WEEKLY: 4.0,
    PulseFrequency.MONTHLY: 1.0,
    PulseFrequency.YEARLY: 1.0 / 12.0,
}


@dataclass
class Totals:
    income: float = 0.0
    expense: float = 0.0

    @property
    def balance(self) -> float:
        return self.income - self.expense

    @property
    def savings_rate(self) -> float:
        if self.income > 0:
            return self.balance / self.income * 100
        return 0.0


@dataclass
class BudgetStatus:
    category: str
    limit: float
    actual: float
    percent: float

    @property
    def over_limit(self) -> bool:
        return self.percent > 100


@dataclass
class Projection:
    income: float = 0.0
    expense: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expense


@dataclass
class Dashboard:
    currency_code: str
    start: Optional[str]
    end: Optional[str]
    totals: Totals
    global_balance: float
    breakdown: Dict[str, float]
    budgets: List[BudgetStatus]
    projection: Projection
    pulse_counts: Dict[str, int] = field(default_factory=dict)


def _bound(value) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return parse_date(value).isoformat()
    return str(value)


def filter_by_range(
    transactions: Iterable[Transaction],
    start_date=None,
    end_date=None,
) -> List[Transaction]:
    """Keep transactions dated within ``[start_date, end_date]``.

    Either bound may be omitted. Dates are compared as fixed-width ISO
    ``YYYY-MM-DD`` strings.
    """
    start = _bound(start_date)
    end = _bound(end_date)
    kept = []
    for tx in transactions:
        day = tx.date.isoformat()
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        kept.append(tx)
    return kept


def filter_transactions(
    transactions: Iterable[Transaction],
    tx_type: Optional[TransactionType] = None,
    search: Optional[str] = None,
    start_date=None,
    end_date=None,
) -> List[Transaction]:
    """Activity-list view: type, text and date filters, newest first."""
    txs = list(transactions)
    if tx_type is not None:
        wanted = TransactionType(tx_type)
        txs = [t for t in txs if t.type is wanted]
    if search:
        needle = search.lower()
        txs = [
            t for t in txs
            if needle in (t.description or "").lower() or needle in t.category.lower()
        ]
    txs = filter_by_range(txs, start_date, end_date)
    return sorted(txs, key=lambda t: t.date, reverse=True)


def _normalized(tx, currency_code: str) -> float:
    return normalize(tx.amount, tx.currency_code, currency_code)


def compute_totals(transactions: Iterable[Transaction], currency_code: str) -> Totals:
    totals = Totals()
    for tx in transactions:
        value = _normalized(tx, currency_code)
        if tx.type is TransactionType.INCOME:
            totals.income += value
        elif tx.type is TransactionType.EXPENSE:
            totals.expense += value
        else:
            raise ValueError(f"Unsupported transaction type {tx.type!r}")
    return totals


def category_breakdown(
    transactions: Iterable[Transaction], currency_code: str
) -> Dict[str, float]:
    """Sum normalized expense amounts per category."""
    data: Dict[str, float] = defaultdict(float)
    for tx in transactions:
        if tx.type is TransactionType.EXPENSE:
            data[tx.category] += _normalized(tx, currency_code)
    return dict(data)


def budget_performance(
    budgets: Iterable[Budget], breakdown: Dict[str, float]
) -> List[BudgetStatus]:
    """Compare each budget limit against actual spend, worst first.

    ``sorted`` is stable, so budgets with equal percentages keep their
    configured order.
    """
    statuses = []
    for budget in budgets:
        actual = breakdown.get(budget.category, 0.0)
        percent = actual / budget.limit * 100 if budget.limit > 0 else 0.0
        statuses.append(
            BudgetStatus(
                category=budget.category,
                limit=budget.limit,
                actual=actual,
                percent=percent,
            )
        )
    return sorted(statuses, key=lambda s: s.percent, reverse=True)


def monthly_equivalent(pulse: RecurringPulse, currency_code: str) -> float:
    try:
        factor = MONTHLY_FACTORS[PulseFrequency(pulse.frequency)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported pulse frequency '{pulse.frequency}'.") from None
    return normalize(pulse.amount, pulse.currency_code, currency_code) * factor


def recurring_projection(
    pulses: Iterable[RecurringPulse], currency_code: str
) -> Projection:
    """Estimate the monthly load of all recurring pulses.

    Daily pulses count 30 times a month and weekly ones 4 times, so the
    figure is an approximation rather than a calendar projection.
    """
    projection = Projection()
    for pulse in pulses:
        value = monthly_equivalent(pulse, currency_code)
        if pulse.type is TransactionType.INCOME:
            projection.income += value
        elif pulse.type is TransactionType.EXPENSE:
            projection.expense += value
        else:
            raise ValueError(f"Unsupported pulse type {pulse.type!r}")
    return projection


def build_dashboard(
    transactions: Iterable[Transaction],
    config: UserConfig,
    start_date=None,
    end_date=None,
) -> Dashboard:
    txs = list(transactions)
    code = config.currency.code
    filtered = filter_by_range(txs, start_date, end_date)
    breakdown = category_breakdown(filtered, code)
    pulses = config.recurring_pulses
    return Dashboard(
        currency_code=code,
        start=_bound(start_date),
        end=_bound(end_date),
        totals=compute_totals(filtered, code),
        global_balance=compute_totals(txs, code).balance,
        breakdown=breakdown,
        budgets=budget_performance(config.budgets, breakdown),
        projection=recurring_projection(pulses, code),
        pulse_counts={
            t.value: sum(1 for p in pulses if p.type is t) for t in TransactionType
        },
    )
