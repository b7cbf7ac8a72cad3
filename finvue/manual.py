# finvue/manual.py
import yaml

from finvue.core.models import Transaction, UserCategories, new_id
from finvue.store import validate_entry


def load_manual_transactions(path, categories=None, default_currency="USD"):
    """Load transactions from a YAML list of entries.

    Each entry needs ``date``, ``amount``, ``category`` and ``type``;
    ``description`` and ``currency`` are optional. Every entry is validated
    before any transaction is returned, so a bad file yields nothing.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or []
    if not isinstance(data, list):
        raise ValueError(f"Manual transactions file {path} must contain a list.")

    categories = categories or UserCategories()
    txs = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError(f"Invalid manual entry: {entry!r}")
        if not entry.get('date'):
            raise ValueError(f"Missing 'date' in manual entry: {entry}")
        if entry.get('amount') is None:
            raise ValueError(f"Missing 'amount' in manual entry: {entry}")
        fields = validate_entry(
            categories,
            amount=entry.get('amount'),
            category=entry.get('category'),
            tx_type=entry.get('type', 'expense'),
            currency_code=entry.get('currency', default_currency),
            date_value=str(entry.get('date')),
            description=entry.get('description', ''),
        )
        txs.append(Transaction(id=new_id("tx"), **fields))
    return txs
