# finvue/outputs/excel_output.py

"""Excel output module backed by XlsxWriter.

The workbook has an ``AllData`` worksheet with one row per transaction in
its original currency, and a ``Summary`` worksheet listing expense totals
per category normalized to the preferred currency, largest first.
"""

from __future__ import annotations

from datetime import date
import os
import xlsxwriter

from finvue.aggregation import category_breakdown, compute_totals
from finvue.outputs.base import BaseOutput
from finvue.outputs.csv_output import HEADERS


class ExcelOutput(BaseOutput):
    """Generate a local Excel workbook of the selected transactions."""

    ALL_DATA = "AllData"
    SUMMARY = "Summary"

    def __init__(self, config: dict):
        self.config = config
        self.output_dir = config.get("export_dir", "exports")
        self.currency_code = config.get("currency", "USD")

    def append(self, transactions, path=None):
        if not transactions:
            print("No transactions to write.")
            return None

        os.makedirs(self.output_dir, exist_ok=True)
        out_path = path or os.path.join(
            self.output_dir, f"finvue_export_{date.today().isoformat()}.xlsx"
        )

        workbook = xlsxwriter.Workbook(out_path)
        amount_fmt = workbook.add_format({"num_format": "#,##0.00"})

        all_ws = workbook.add_worksheet(self.ALL_DATA)
        all_ws.freeze_panes(1, 0)
        all_ws.write_row(0, 0, HEADERS)
        for idx, tx in enumerate(transactions, start=1):
            all_ws.write_row(idx, 0, [
                tx.date.isoformat(),
                tx.description,
                tx.category,
                tx.type.value,
            ])
            all_ws.write_number(idx, 4, float(tx.amount), amount_fmt)
            all_ws.write(idx, 5, tx.currency_code)
        all_ws.set_column(4, 4, None, amount_fmt)
        all_ws.add_table(0, 0, len(transactions), len(HEADERS) - 1, {
            "columns": [{"header": h} for h in HEADERS]
        })

        summary_ws = workbook.add_worksheet(self.SUMMARY)
        summary_ws.freeze_panes(1, 0)
        summary_ws.set_column(1, 1, None, amount_fmt)
        summary_ws.write_row(0, 0, ["Category", f"Expense ({self.currency_code})"])
        breakdown = category_breakdown(transactions, self.currency_code)
        row_idx = 1
        for cat, total in sorted(breakdown.items(), key=lambda kv: kv[1], reverse=True):
            summary_ws.write(row_idx, 0, cat)
            summary_ws.write_number(row_idx, 1, total, amount_fmt)
            row_idx += 1

        totals = compute_totals(transactions, self.currency_code)
        row_idx += 1
        for label, value in (
            ("Total Income", totals.income),
            ("Total Expense", totals.expense),
            ("Balance", totals.balance),
        ):
            summary_ws.write(row_idx, 0, label)
            summary_ws.write_number(row_idx, 1, value, amount_fmt)
            row_idx += 1

        workbook.close()
        print(f"Written Excel workbook {out_path}")
        return out_path
