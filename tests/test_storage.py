import json

from finvue.core.models import INITIAL_CATEGORIES, PulseFrequency
from finvue.storage import (
    CONFIG_KEY,
    TRANSACTIONS_KEY,
    JsonFileStorage,
    MemoryStorage,
    load_config,
    load_transactions,
)
from finvue.store import TransactionStore


def test_json_file_round_trip(tmp_path):
    storage = JsonFileStorage(tmp_path / "data")
    store = TransactionStore(storage)
    store.add_transaction(amount=9, category="Food", tx_type="expense",
                          date_value="2025-02-03", description='Say "cheese"')
    store.set_budget("Food", 100)

    assert (tmp_path / "data" / "finvue_transactions.json").exists()
    raw = json.loads((tmp_path / "data" / "finvue_config.json").read_text())
    assert raw["currency"] == {"code": "USD", "symbol": "$", "name": "US Dollar"}

    reloaded = TransactionStore(JsonFileStorage(tmp_path / "data"))
    assert reloaded.transactions == store.transactions
    assert reloaded.config.budgets[0].limit == 100


def test_missing_files_give_defaults(tmp_path):
    storage = JsonFileStorage(tmp_path)
    assert load_transactions(storage) == []
    config = load_config(storage)
    assert config.currency.code == "USD"
    assert config.categories.expense == INITIAL_CATEGORIES["expense"]


def test_corrupt_json_gives_defaults(tmp_path):
    (tmp_path / "finvue_transactions.json").write_text("{not json")
    assert load_transactions(JsonFileStorage(tmp_path)) == []


def test_malformed_records_are_skipped():
    storage = MemoryStorage({
        TRANSACTIONS_KEY: [
            {"id": "a", "date": "2025-01-01", "description": "", "amount": 1,
             "category": "Food", "type": "expense", "currencyCode": "USD"},
            {"id": "b", "date": "01/02/2025", "amount": 1, "category": "Food",
             "type": "expense", "currencyCode": "USD"},
            {"id": "c", "date": "2025-01-03", "amount": 1, "category": "Food",
             "type": "transfer", "currencyCode": "USD"},
            "garbage",
        ],
        CONFIG_KEY: {
            "currency": {"code": "GBP"},
            "categories": {"expense": [], "income": ["Salary", "Salary", "Bonus"]},
            "budgets": [{"category": "Food", "limit": 10}, {"category": "Food", "limit": 20}],
            "recurringPulses": [
                {"id": "p1", "description": "ok", "amount": 5, "category": "Food",
                 "type": "expense", "currencyCode": "USD", "frequency": "weekly",
                 "nextPulseDate": "2025-01-01"},
                {"id": "p2", "description": "bad", "amount": 5, "category": "Food",
                 "type": "expense", "currencyCode": "USD", "frequency": "hourly",
                 "nextPulseDate": "2025-01-01"},
            ],
        },
    })
    assert [t.id for t in load_transactions(storage)] == ["a"]
    config = load_config(storage)
    assert config.currency.code == "USD"
    assert config.categories.expense == INITIAL_CATEGORIES["expense"]
    assert config.categories.income == ["Salary", "Bonus"]
    assert [(b.category, b.limit) for b in config.budgets] == [("Food", 20)]
    assert [p.id for p in config.recurring_pulses] == ["p1"]
    assert config.recurring_pulses[0].frequency is PulseFrequency.WEEKLY


def test_legacy_config_with_plain_currency_code():
    storage = MemoryStorage({CONFIG_KEY: {"currency": "ALL"}})
    assert load_config(storage).currency.symbol == "Lek"


def test_save_failure_is_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")
    storage = JsonFileStorage(blocker / "data")
    storage.save(TRANSACTIONS_KEY, [])
    assert "Could not save" in caplog.text


def test_non_mapping_categories_fall_back_to_seeds():
    storage = MemoryStorage({CONFIG_KEY: {"categories": ["Food", "Rent"]}})
    config = load_config(storage)
    assert config.categories.expense == INITIAL_CATEGORIES["expense"]
    assert config.categories.income == INITIAL_CATEGORIES["income"]
    assert TransactionStore(storage).config.categories.expense == INITIAL_CATEGORIES["expense"]
