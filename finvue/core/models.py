# finvue/core/models.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional


class ValidationError(ValueError):
    """Raised when user input cannot become a transaction, pulse or budget."""


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class PulseFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str
    name: str

    def to_dict(self) -> dict:
        return {"code": self.code, "symbol": self.symbol, "name": self.name}


SUPPORTED_CURRENCIES: List[Currency] = [
    Currency("USD", "$", "US Dollar"),
    Currency("EUR", "€", "Euro"),
    Currency("ALL", "Lek", "Albanian Lek"),
]

# Units of each currency per 1 USD.
EXCHANGE_RATES: Dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "ALL": 94.5,
}

INITIAL_CATEGORIES: Dict[str, List[str]] = {
    "expense": [
        "Housing", "Food", "Transport", "Utilities", "Entertainment",
        "Healthcare", "Shopping", "Education", "Other",
    ],
    "income": ["Salary", "Freelance", "Investments", "Gift", "Other"],
}

PULSE_MARKER = "[PULSE] "


def new_id(prefix: str = "tx") -> str:
    """Return a collision-free identifier such as ``tx-3f2a...``."""
    return f"{prefix}-{uuid.uuid4().hex}"


def parse_date(value) -> date:
    """Coerce ``value`` into a calendar date, dropping any time component."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        # ISO strings such as 2025-01-31T00:00:00.000Z carry a time part
        if "T" in text:
            text = text.split("T", 1)[0]
        return date.fromisoformat(text)
    raise ValueError(f"Unrecognized date value: {value!r}")


@dataclass
class Transaction:
    id: str
    date: date
    description: str
    amount: float
    category: str
    type: TransactionType
    currency_code: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "description": self.description,
            "amount": self.amount,
            "category": self.category,
            "type": self.type.value,
            "currencyCode": self.currency_code,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        return cls(
            id=str(data["id"]),
            date=parse_date(data["date"]),
            description=data.get("description") or "",
            amount=float(data["amount"]),
            category=str(data["category"]),
            type=TransactionType(data["type"]),
            currency_code=str(data["currencyCode"]),
        )


@dataclass
class RecurringPulse:
    id: str
    description: str
    amount: float
    category: str
    type: TransactionType
    currency_code: str
    frequency: PulseFrequency
    next_pulse_date: date

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": self.amount,
            "category": self.category,
            "type": self.type.value,
            "currencyCode": self.currency_code,
            "frequency": self.frequency.value,
            "nextPulseDate": self.next_pulse_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecurringPulse":
        return cls(
            id=str(data["id"]),
            description=data.get("description") or "",
            amount=float(data["amount"]),
            category=str(data["category"]),
            type=TransactionType(data["type"]),
            currency_code=str(data["currencyCode"]),
            frequency=PulseFrequency(data["frequency"]),
            next_pulse_date=parse_date(data["nextPulseDate"]),
        )


@dataclass
class Budget:
    category: str
    limit: float

    def to_dict(self) -> dict:
        return {"category": self.category, "limit": self.limit}

    @classmethod
    def from_dict(cls, data: dict) -> "Budget":
        return cls(category=str(data["category"]), limit=float(data["limit"]))


@dataclass
class UserCategories:
    expense: List[str] = field(default_factory=lambda: list(INITIAL_CATEGORIES["expense"]))
    income: List[str] = field(default_factory=lambda: list(INITIAL_CATEGORIES["income"]))

    def for_type(self, tx_type: TransactionType) -> List[str]:
        if tx_type is TransactionType.INCOME:
            return self.income
        if tx_type is TransactionType.EXPENSE:
            return self.expense
        raise ValueError(f"Unsupported transaction type {tx_type!r}")

    def to_dict(self) -> dict:
        return {"expense": list(self.expense), "income": list(self.income)}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "UserCategories":
        data = data if isinstance(data, dict) else {}
        return cls(
            expense=_unique(data.get("expense")) or list(INITIAL_CATEGORIES["expense"]),
            income=_unique(data.get("income")) or list(INITIAL_CATEGORIES["income"]),
        )


def _unique(values) -> List[str]:
    if not isinstance(values, list):
        return []
    seen = []
    for value in values:
        name = str(value).strip()
        if name and name not in seen:
            seen.append(name)
    return seen


@dataclass
class UserConfig:
    currency: Currency = SUPPORTED_CURRENCIES[0]
    categories: UserCategories = field(default_factory=UserCategories)
    budgets: List[Budget] = field(default_factory=list)
    recurring_pulses: List[RecurringPulse] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "currency": self.currency.to_dict(),
            "categories": self.categories.to_dict(),
            "budgets": [b.to_dict() for b in self.budgets],
            "recurringPulses": [p.to_dict() for p in self.recurring_pulses],
        }


@dataclass
class ParsedTransaction:
    """Structured result of a natural-language parse."""

    description: str
    amount: float
    category: str
    type: TransactionType
    date: date
    currency_code: str
