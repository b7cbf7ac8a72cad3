# finvue/store.py
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date
from typing import List, Optional

from finvue.core.currency import get_currency, is_supported
from finvue.core.models import (
    Budget,
    ParsedTransaction,
    PulseFrequency,
    RecurringPulse,
    Transaction,
    TransactionType,
    UserCategories,
    UserConfig,
    ValidationError,
    new_id,
    parse_date,
)
from finvue.recurring import SyncResult, synchronize
from finvue.utils import dedupe_transactions
from finvue.storage import (
    Storage,
    load_config,
    load_transactions,
    save_config,
    save_transactions,
)

logger = logging.getLogger(__name__)


def _coerce_type(value) -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError:
        raise ValidationError(f"Unknown transaction type '{value}'.") from None


def _coerce_amount(value) -> float:
    if value is None or value == "":
        raise ValidationError("An amount is required.")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid amount '{value}'.") from None
    if amount != amount or amount < 0:
        raise ValidationError("Amount must be a non-negative number.")
    return amount


def _coerce_date(value) -> date:
    if value is None or value == "":
        return date.today()
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD.") from None


def validate_entry(
    categories: UserCategories,
    *,
    amount,
    category,
    tx_type,
    currency_code,
    date_value=None,
    description: str = "",
) -> dict:
    """Check a manual entry and return its normalized fields.

    Raises :class:`ValidationError` without touching any state.
    """
    tx_type = _coerce_type(tx_type)
    amount = _coerce_amount(amount)
    if not category:
        raise ValidationError("A category is required.")
    if category not in categories.for_type(tx_type):
        raise ValidationError(
            f"Unknown {tx_type.value} category '{category}'."
        )
    if not is_supported(currency_code):
        raise ValidationError(f"Unsupported currency '{currency_code}'.")
    return {
        "date": _coerce_date(date_value),
        "description": (description or "").strip(),
        "amount": amount,
        "category": category,
        "type": tx_type,
        "currency_code": currency_code,
    }


class TransactionStore:
    """Owns the transaction list and the user configuration.

    Every change goes through one of the named commands below. They run
    under a single lock, so pulse synchronization, edits and saves never
    interleave.
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage
        self._lock = threading.RLock()
        self._transactions: List[Transaction] = load_transactions(storage)
        self._config: UserConfig = load_config(storage)

    @property
    def transactions(self) -> List[Transaction]:
        with self._lock:
            return [replace(t) for t in self._transactions]

    @property
    def config(self) -> UserConfig:
        with self._lock:
            return replace(
                self._config,
                categories=UserCategories(
                    expense=list(self._config.categories.expense),
                    income=list(self._config.categories.income),
                ),
                budgets=[replace(b) for b in self._config.budgets],
                recurring_pulses=[replace(p) for p in self._config.recurring_pulses],
            )

    def get_transaction(self, tx_id: str) -> Transaction:
        with self._lock:
            for tx in self._transactions:
                if tx.id == tx_id:
                    return replace(tx)
        raise KeyError(tx_id)

    # -- transactions ---------------------------------------------------

    def _save_transactions(self) -> None:
        save_transactions(self.storage, self._transactions)

    def _save_config(self) -> None:
        save_config(self.storage, self._config)

    def add_transaction(
        self,
        *,
        amount,
        category,
        tx_type,
        currency_code=None,
        date_value=None,
        description: str = "",
    ) -> Transaction:
        with self._lock:
            fields = validate_entry(
                self._config.categories,
                amount=amount,
                category=category,
                tx_type=tx_type,
                currency_code=currency_code or self._config.currency.code,
                date_value=date_value,
                description=description,
            )
            tx = Transaction(id=new_id("tx"), **fields)
            self._transactions.insert(0, tx)
            self._save_transactions()
            logger.info("Added %s %s on %s", tx.type.value, tx.id, tx.date)
            return replace(tx)

    def update_transaction(self, tx: Transaction) -> Transaction:
        with self._lock:
            index = next(
                (i for i, t in enumerate(self._transactions) if t.id == tx.id), None
            )
            if index is None:
                raise KeyError(tx.id)
            fields = validate_entry(
                self._config.categories,
                amount=tx.amount,
                category=tx.category,
                tx_type=tx.type,
                currency_code=tx.currency_code,
                date_value=tx.date,
                description=tx.description,
            )
            updated = Transaction(id=tx.id, **fields)
            self._transactions[index] = updated
            self._save_transactions()
            return replace(updated)

    def delete_transaction(self, tx_id: str) -> bool:
        with self._lock:
            remaining = [t for t in self._transactions if t.id != tx_id]
            if len(remaining) == len(self._transactions):
                return False
            self._transactions = remaining
            self._save_transactions()
            return True

    def import_transactions(self, transactions: List[Transaction]) -> List[Transaction]:
        """Add already validated transactions, skipping ones the store holds."""
        with self._lock:
            fresh = dedupe_transactions(transactions, self._transactions)
            if fresh:
                self._transactions = [replace(t) for t in fresh] + self._transactions
                self._save_transactions()
            return [replace(t) for t in fresh]

    def apply_parsed(self, parsed: Optional[ParsedTransaction]) -> Optional[Transaction]:
        """Add a transaction from a parse result; ``None`` changes nothing."""
        if parsed is None:
            return None
        return self.add_transaction(
            amount=parsed.amount,
            category=parsed.category,
            tx_type=parsed.type,
            currency_code=parsed.currency_code,
            date_value=parsed.date,
            description=parsed.description,
        )

    # -- pulses ---------------------------------------------------------

    def synchronize_pulses(self, today=None) -> SyncResult:
        with self._lock:
            result = synchronize(self._config.recurring_pulses, today or date.today())
            if not result.modified:
                return result
            self._transactions = list(result.materialized) + self._transactions
            self._config = replace(self._config, recurring_pulses=result.updated_pulses)
            self._save_transactions()
            self._save_config()
            logger.info("Materialized %d pulse transaction(s)", len(result.materialized))
            return result

    def add_pulse(
        self,
        *,
        description: str,
        amount,
        category,
        tx_type,
        frequency,
        start_date=None,
        currency_code=None,
    ) -> RecurringPulse:
        with self._lock:
            if not (description or "").strip():
                raise ValidationError("A pulse needs a description.")
            try:
                frequency = PulseFrequency(frequency)
            except ValueError:
                raise ValidationError(f"Unknown frequency '{frequency}'.") from None
            fields = validate_entry(
                self._config.categories,
                amount=amount,
                category=category,
                tx_type=tx_type,
                currency_code=currency_code or self._config.currency.code,
                date_value=start_date,
                description=description,
            )
            pulse = RecurringPulse(
                id=new_id("node"),
                description=fields["description"],
                amount=fields["amount"],
                category=fields["category"],
                type=fields["type"],
                currency_code=fields["currency_code"],
                frequency=frequency,
                next_pulse_date=fields["date"],
            )
            self.update_config(
                recurring_pulses=self._config.recurring_pulses + [pulse]
            )
            return replace(pulse)

    def remove_pulse(self, pulse_id: str) -> bool:
        with self._lock:
            pulses = [p for p in self._config.recurring_pulses if p.id != pulse_id]
            if len(pulses) == len(self._config.recurring_pulses):
                return False
            self.update_config(recurring_pulses=pulses)
            return True

    # -- configuration --------------------------------------------------

    def update_config(self, **changes) -> UserConfig:
        """Replace selected config fields wholesale and persist."""
        with self._lock:
            self._config = replace(self._config, **changes)
            self._save_config()
            return self.config

    def set_currency(self, code: str) -> UserConfig:
        if not is_supported(code):
            raise ValidationError(f"Unsupported currency '{code}'.")
        return self.update_config(currency=get_currency(code))

    def add_category(self, tx_type, name: str) -> UserConfig:
        tx_type = _coerce_type(tx_type)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name cannot be empty.")
        with self._lock:
            cats = self._config.categories
            current = cats.for_type(tx_type)
            if name in current:
                return self.config
            if tx_type is TransactionType.EXPENSE:
                updated = UserCategories(expense=current + [name], income=list(cats.income))
            else:
                updated = UserCategories(expense=list(cats.expense), income=current + [name])
            return self.update_config(categories=updated)

    def remove_category(self, tx_type, name: str) -> UserConfig:
        tx_type = _coerce_type(tx_type)
        with self._lock:
            cats = self._config.categories
            current = [c for c in cats.for_type(tx_type) if c != name]
            if not current:
                raise ValidationError(
                    f"Cannot remove the last {tx_type.value} category."
                )
            changes = {}
            if tx_type is TransactionType.EXPENSE:
                changes["categories"] = UserCategories(expense=current, income=list(cats.income))
                changes["budgets"] = [b for b in self._config.budgets if b.category != name]
            else:
                changes["categories"] = UserCategories(expense=list(cats.expense), income=current)
            return self.update_config(**changes)

    def set_budget(self, category: str, limit) -> UserConfig:
        with self._lock:
            if category not in self._config.categories.expense:
                raise ValidationError(f"Unknown expense category '{category}'.")
            limit = _coerce_amount(limit)
            budgets = list(self._config.budgets)
            for i, budget in enumerate(budgets):
                if budget.category == category:
                    budgets[i] = Budget(category=category, limit=limit)
                    break
            else:
                budgets.append(Budget(category=category, limit=limit))
            return self.update_config(budgets=budgets)

    def remove_budget(self, category: str) -> UserConfig:
        with self._lock:
            return self.update_config(
                budgets=[b for b in self._config.budgets if b.category != category]
            )
