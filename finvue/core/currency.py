# finvue/core/currency.py
from typing import Dict, Optional

from finvue.core.models import EXCHANGE_RATES, SUPPORTED_CURRENCIES, Currency


def rate(code: str, rates: Optional[Dict[str, float]] = None) -> float:
    """Units of ``code`` per reference unit; unknown codes count as 1."""
    table = EXCHANGE_RATES if rates is None else rates
    return table.get(code) or 1.0


def normalize(amount, from_code, to_code, rates=None):
    """Convert ``amount`` from one currency into another.

    No rounding happens here; formatting is left to :func:`format_amount`.
    """
    return (amount / rate(from_code, rates)) * rate(to_code, rates)


def is_supported(code: str) -> bool:
    return any(c.code == code for c in SUPPORTED_CURRENCIES)


def get_currency(code: Optional[str]) -> Currency:
    """Return the supported currency for ``code`` or the default one."""
    for currency in SUPPORTED_CURRENCIES:
        if currency.code == code:
            return currency
    return SUPPORTED_CURRENCIES[0]


def format_amount(value: float, currency: Currency) -> str:
    sign = "-" if value < 0 else ""
    if currency.code == "ALL":
        return f"{sign}{abs(value):,.0f} Lek"
    return f"{sign}{currency.symbol}{abs(value):,.2f}"
