import itertools

import pytest

from finvue.core.currency import format_amount, get_currency, normalize, rate
from finvue.core.models import EXCHANGE_RATES, SUPPORTED_CURRENCIES


def test_eur_to_usd():
    assert normalize(50, "EUR", "USD") == pytest.approx(54.347826, rel=1e-6)


def test_unknown_code_falls_back_to_one():
    assert rate("XYZ") == 1.0
    assert normalize(10, "XYZ", "USD") == 10
    assert normalize(10, "USD", "XYZ") == 10


def test_custom_rate_table():
    assert normalize(10, "A", "B", {"A": 2.0, "B": 5.0}) == 25.0


@pytest.mark.parametrize(
    "a,b", list(itertools.permutations([c.code for c in SUPPORTED_CURRENCIES], 2))
)
def test_round_trip(a, b):
    assert normalize(normalize(123.45, a, b), b, a) == pytest.approx(123.45)


def test_every_supported_currency_has_a_rate():
    assert {c.code for c in SUPPORTED_CURRENCIES} == set(EXCHANGE_RATES)


def test_get_currency_defaults_to_first():
    assert get_currency("EUR").symbol == "€"
    assert get_currency("nope") == SUPPORTED_CURRENCIES[0]


def test_format_amount():
    assert format_amount(1234.5, get_currency("USD")) == "$1,234.50"
    assert format_amount(-3, get_currency("EUR")) == "-€3.00"
    assert format_amount(94500.4, get_currency("ALL")) == "94,500 Lek"
