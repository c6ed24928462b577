import csv
from datetime import datetime
from io import StringIO
from typing import Optional, Sequence

from models import CategoryType, Transaction

REPORT_HEADER = ["Date", "Category", "Type", "Amount", "Description"]
SUMMARY_MARKER = "RESUMEN"


def _writer(output: StringIO):
    return csv.writer(output, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)


def escape_csv_value(value: Optional[str]) -> str:
    """
    Quote a single field the way the report writer does: fields holding a
    comma, a double quote or a line break are wrapped in quotes with inner
    quotes doubled, anything else is returned untouched.
    """
    if not value:
        return ""
    output = StringIO()
    _writer(output).writerow([value])
    return output.getvalue()[: -len("\n")]


def format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def format_amount(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    whole, rest = divmod(abs(cents), 100)
    return f"{sign}{whole}.{rest:02d}"


def render_transaction_report(transactions: Sequence[Transaction]) -> str:
    """Render transactions (already in report order) followed by the summary block."""
    output = StringIO()
    writer = _writer(output)
    writer.writerow(REPORT_HEADER)

    income = 0
    expense = 0
    for txn in transactions:
        category_type = txn.category.type
        if category_type == CategoryType.income:
            income += txn.amount_cents
        else:
            expense += txn.amount_cents
        writer.writerow(
            [
                format_timestamp(txn.date),
                txn.category.name,
                category_type.value,
                format_amount(txn.amount_cents),
                txn.description or "",
            ]
        )

    writer.writerow([])
    writer.writerow([SUMMARY_MARKER])
    writer.writerow(
        ["Total Income", "", CategoryType.income.value, format_amount(income), ""]
    )
    writer.writerow(
        ["Total Expense", "", CategoryType.expense.value, format_amount(expense), ""]
    )
    writer.writerow(["Balance", "", "", format_amount(income - expense), ""])
    return output.getvalue().rstrip("\n")
