# finvue/outputs/csv_output.py

import os
from datetime import date

from finvue.outputs.base import BaseOutput

HEADERS = ["Date", "Description", "Category", "Type", "Amount", "Currency"]


def _quote(value) -> str:
    return '"' + str(value or "").replace('"', '""') + '"'


def _amount(value) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def to_csv(transactions) -> str:
    """Render transactions in the export layout, keeping the given order."""
    lines = [",".join(HEADERS)]
    for tx in transactions:
        lines.append(",".join([
            tx.date.isoformat(),
            _quote(tx.description),
            _quote(tx.category),
            tx.type.value,
            _amount(tx.amount),
            tx.currency_code,
        ]))
    return "\n".join(lines)


class CSVOutput(BaseOutput):
    """
    Writes the selected transactions to finvue_export_<today>.csv in the
    configured export directory. Description and Category are always quoted.
    """
    def __init__(self, config):
        self.config     = config
        self.output_dir = config.get('export_dir', 'exports')

    def append(self, transactions, path=None):
        if not transactions:
            print("No transactions to write.")
            return None

        os.makedirs(self.output_dir, exist_ok=True)
        out_path = path or os.path.join(
            self.output_dir, f"finvue_export_{date.today().isoformat()}.csv"
        )
        with open(out_path, 'w', newline='', encoding='utf-8') as f:
            f.write(to_csv(transactions))

        print(f"Written {len(transactions)} transactions to {out_path}")
        return out_path
