from datetime import date

import pytest

from finvue.core.models import TransactionType, ValidationError
from finvue.manual import load_manual_transactions


def write_manual(path):
    path.write_text(
        """\
- date: 2025-05-04
  description: Farmers Market
  category: Food
  amount: 10
- date: 2025-05-05
  category: Gift
  type: income
  amount: 50
  currency: EUR
"""
    )


def test_load_manual_transactions(tmp_path):
    path = tmp_path / "manual.yaml"
    write_manual(path)
    txs = load_manual_transactions(path)
    assert [t.date for t in txs] == [date(2025, 5, 4), date(2025, 5, 5)]
    assert txs[0].type is TransactionType.EXPENSE
    assert txs[0].currency_code == "USD"
    assert txs[1].type is TransactionType.INCOME
    assert txs[1].currency_code == "EUR"
    assert txs[0].id != txs[1].id


def test_missing_fields(tmp_path):
    path = tmp_path / "manual.yaml"
    path.write_text("- amount: 3\n  category: Food\n")
    with pytest.raises(ValueError, match="date"):
        load_manual_transactions(path)
    path.write_text("- date: 2025-01-01\n  category: Food\n")
    with pytest.raises(ValueError, match="amount"):
        load_manual_transactions(path)


def test_unknown_category_rejects_file(tmp_path):
    path = tmp_path / "manual.yaml"
    path.write_text("- date: 2025-01-01\n  category: Yachts\n  amount: 3\n")
    with pytest.raises(ValidationError):
        load_manual_transactions(path)


def test_non_mapping_entry_is_rejected(tmp_path):
    path = tmp_path / "manual.yaml"
    path.write_text("- just a string\n")
    with pytest.raises(ValueError, match="just a string"):
        load_manual_transactions(path)
