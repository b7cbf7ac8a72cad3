from dataclasses import replace
from datetime import date, datetime

import pytest

from finvue.aggregation import (
    budget_performance,
    build_dashboard,
    category_breakdown,
    compute_totals,
    filter_by_range,
    filter_transactions,
    recurring_projection,
)
from finvue.core.models import (
    Budget,
    PulseFrequency,
    RecurringPulse,
    Transaction,
    TransactionType,
    UserConfig,
)

INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE


def tx(day, amount, tx_type=EXPENSE, category="Food", currency="USD", description=""):
    return Transaction(
        id=f"tx-{day}-{amount}",
        date=date.fromisoformat(day),
        description=description,
        amount=amount,
        category=category,
        type=tx_type,
        currency_code=currency,
    )


def pulse(amount, frequency, tx_type=EXPENSE, currency="USD"):
    return RecurringPulse(
        id="node-x",
        description="p",
        amount=amount,
        category="Other",
        type=tx_type,
        currency_code=currency,
        frequency=PulseFrequency(frequency),
        next_pulse_date=date(2025, 1, 1),
    )


def test_mixed_currency_totals():
    txs = [tx("2025-01-01", 100, INCOME, "Salary"), tx("2025-01-02", 50, currency="EUR")]
    totals = compute_totals(txs, "USD")
    assert totals.income == pytest.approx(100)
    assert totals.expense == pytest.approx(54.35, abs=0.01)
    assert totals.balance == pytest.approx(45.65, abs=0.01)
    assert totals.savings_rate == pytest.approx(45.65, abs=0.01)


def test_savings_rate_without_income_is_zero():
    totals = compute_totals([tx("2025-01-02", 80)], "USD")
    assert totals.savings_rate == 0
    assert totals.balance == -80


def test_empty_totals():
    totals = compute_totals([], "EUR")
    assert (totals.income, totals.expense, totals.balance, totals.savings_rate) == (0, 0, 0, 0)


def test_range_filter_is_inclusive_and_open_ended():
    txs = [tx("2025-01-31", 1), tx("2025-02-01", 2), tx("2025-02-28", 3), tx("2025-03-01", 4)]
    assert [t.amount for t in filter_by_range(txs, "2025-02-01", "2025-02-28")] == [2, 3]
    assert [t.amount for t in filter_by_range(txs, start_date="2025-02-28")] == [3, 4]
    assert [t.amount for t in filter_by_range(txs, end_date=date(2025, 1, 31))] == [1]
    assert len(filter_by_range(txs, "", "")) == 4


def test_category_breakdown_only_counts_expenses():
    txs = [
        tx("2025-01-01", 10, category="Food"),
        tx("2025-01-02", 9.2, category="Food", currency="EUR"),
        tx("2025-01-03", 5, category="Transport"),
        tx("2025-01-04", 1000, INCOME, "Salary"),
    ]
    breakdown = category_breakdown(txs, "USD")
    assert breakdown == {"Food": pytest.approx(20), "Transport": pytest.approx(5)}


def test_budget_performance_sorted_worst_first():
    budgets = [Budget("Food", 100), Budget("Transport", 10), Budget("Fun", 0)]
    statuses = budget_performance(budgets, {"Food": 50, "Transport": 12, "Fun": 30})
    assert [s.category for s in statuses] == ["Transport", "Food", "Fun"]
    assert statuses[0].percent == pytest.approx(120)
    assert statuses[0].over_limit
    assert statuses[2].percent == 0
    assert statuses[2].actual == 30


def test_budget_sort_is_stable_for_ties():
    budgets = [Budget("B", 100), Budget("A", 100), Budget("C", 10)]
    statuses = budget_performance(budgets, {"A": 50, "B": 50})
    assert [s.category for s in statuses] == ["B", "A", "C"]


def test_budget_without_spend_is_zero():
    [status] = budget_performance([Budget("Housing", 500)], {})
    assert status.actual == 0
    assert status.percent == 0


def test_recurring_projection_monthly_factors():
    pulses = [
        pulse(1, "daily"),
        pulse(10, "weekly"),
        pulse(100, "monthly"),
        pulse(1200, "yearly", INCOME),
        pulse(92, "monthly", INCOME, currency="EUR"),
    ]
    projection = recurring_projection(pulses, "USD")
    assert projection.expense == pytest.approx(30 + 40 + 100)
    assert projection.income == pytest.approx(100 + 100)
    assert projection.net == pytest.approx(30)


def test_filter_transactions_type_search_and_order():
    txs = [
        tx("2025-01-01", 1, description="Coffee"),
        tx("2025-03-01", 2, category="Transport", description="Bus"),
        tx("2025-02-01", 3, INCOME, "Salary", description="ACME payroll"),
    ]
    assert [t.amount for t in filter_transactions(txs)] == [2, 3, 1]
    assert [t.amount for t in filter_transactions(txs, tx_type="expense")] == [2, 1]
    assert [t.amount for t in filter_transactions(txs, search="trans")] == [2]
    assert [t.amount for t in filter_transactions(txs, search="COFFEE")] == [1]
    assert [t.amount for t in filter_transactions(txs, start_date="2025-02-01")] == [2, 3]


def test_build_dashboard_combines_views():
    config = UserConfig(
        budgets=[Budget("Food", 40)],
        recurring_pulses=[pulse(5, "weekly"), pulse(3000, "monthly", INCOME)],
    )
    txs = [
        tx("2025-01-05", 3000, INCOME, "Salary"),
        tx("2025-02-05", 30, category="Food"),
        tx("2025-02-06", 10, category="Food"),
    ]
    dash = build_dashboard(txs, config, "2025-02-01", "2025-02-28")
    assert dash.totals.income == 0
    assert dash.totals.expense == pytest.approx(40)
    assert dash.global_balance == pytest.approx(2960)
    assert dash.breakdown == {"Food": pytest.approx(40)}
    assert dash.budgets[0].percent == pytest.approx(100)
    assert not dash.budgets[0].over_limit
    assert dash.projection.expense == pytest.approx(20)
    assert dash.pulse_counts == {"income": 1, "expense": 1}
    assert (dash.start, dash.end) == ("2025-02-01", "2025-02-28")


def test_recurring_projection_rejects_unknown_type():
    bad = replace(pulse(5, "monthly"), type="transfer")
    with pytest.raises(ValueError):
        recurring_projection([bad], "USD")


def test_range_filter_drops_time_of_datetime_bounds():
    txs = [tx("2025-01-31", 1), tx("2025-02-01", 2), tx("2025-02-28", 3)]
    kept = filter_by_range(txs, datetime(2025, 2, 1, 9, 30), datetime(2025, 2, 28, 8, 0))
    assert [t.amount for t in kept] == [2, 3]
