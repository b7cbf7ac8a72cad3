# finvue/utils.py
from calendar import monthrange


def month_bounds(month_str):
    """
    Return the inclusive (start, end) ISO dates of a YYYY-MM month.
    """
    year, month = map(int, month_str.split('-'))
    last = monthrange(year, month)[1]
    return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last:02d}"

def dedupe_transactions(transactions, existing=()):
    """
    Drop entries matching (date, description, amount, category, type, currency)
    of an earlier entry or of anything in ``existing``.
    """
    def key(tx):
        return (tx.date, tx.description, tx.amount, tx.category, tx.type, tx.currency_code)

    seen = {key(tx) for tx in existing}
    unique = []
    for tx in transactions:
        k = key(tx)
        if k not in seen:
            seen.add(k)
            unique.append(tx)
    return unique
