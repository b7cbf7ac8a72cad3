# finvue/storage.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Protocol

from finvue.core.currency import get_currency
from finvue.core.models import (
    Budget,
    RecurringPulse,
    Transaction,
    UserCategories,
    UserConfig,
)

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "finvue_transactions"
CONFIG_KEY = "finvue_config"


class Storage(Protocol):
    """Key-value persistence for the two JSON blobs the store keeps."""

    def load(self, key: str): ...

    def save(self, key: str, value) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[dict] = None) -> None:
        self._data = {k: json.dumps(v) for k, v in (initial or {}).items()}

    def load(self, key: str):
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def save(self, key: str, value) -> None:
        self._data[key] = json.dumps(value)


class JsonFileStorage:
    """Stores each key as ``<data_dir>/<key>.json``."""

    def __init__(self, data_dir) -> None:
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def load(self, key: str):
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as fp:
                return json.load(fp)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable %s: %s", path, exc)
            return None

    def save(self, key: str, value) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as fp:
                json.dump(value, fp, indent=2, ensure_ascii=False)
        except OSError as exc:
            logger.error("Could not save %s: %s", path, exc)


def _load_records(raw, cls, label: str) -> list:
    if not isinstance(raw, list):
        return []
    records = []
    for entry in raw:
        try:
            records.append(cls.from_dict(entry))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed %s %r: %s", label, entry, exc)
    return records


def load_transactions(storage: Storage) -> List[Transaction]:
    return _load_records(storage.load(TRANSACTIONS_KEY), Transaction, "transaction")


def save_transactions(storage: Storage, transactions: List[Transaction]) -> None:
    storage.save(TRANSACTIONS_KEY, [t.to_dict() for t in transactions])


def config_from_dict(data) -> UserConfig:
    """Build a :class:`UserConfig`, falling back to defaults field by field."""
    if not isinstance(data, dict):
        return UserConfig()
    currency = data.get("currency")
    code = currency.get("code") if isinstance(currency, dict) else currency
    budgets = {}
    for budget in _load_records(data.get("budgets"), Budget, "budget"):
        budgets[budget.category] = budget
    return UserConfig(
        currency=get_currency(code),
        categories=UserCategories.from_dict(data.get("categories")),
        budgets=list(budgets.values()),
        recurring_pulses=_load_records(data.get("recurringPulses"), RecurringPulse, "pulse"),
    )


def load_config(storage: Storage) -> UserConfig:
    return config_from_dict(storage.load(CONFIG_KEY))


def save_config(storage: Storage, config: UserConfig) -> None:
    storage.save(CONFIG_KEY, config.to_dict())
