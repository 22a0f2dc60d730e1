from datetime import datetime, timezone
from typing import List, Optional

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from app.models.transaction import Transaction
from app.utils.periods import as_utc

# (header, width in mm, alignment)
_COLUMNS = [
    ("Date", 28, "L"),
    ("Description", 66, "L"),
    ("Category", 36, "L"),
    ("Type", 28, "L"),
    ("Amount", 32, "R"),
]


def _latin1(text: str) -> str:
    # Core PDF fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def _money(amount: float) -> str:
    return f"${amount:,.2f}"


def render_monthly_report(
    user_name: str,
    user_email: str,
    transactions: List[Transaction],
    total_income: float,
    total_expense: float,
    period_label: str,
    generated_on: Optional[datetime] = None,
) -> bytes:
    """Render the monthly financial statement and return the PDF bytes."""
    generated_on = generated_on or datetime.now(timezone.utc)
    net_balance = total_income - total_expense

    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    # Header
    pdf.set_text_color(15, 23, 42)
    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 10, "Monthly Financial Report", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(0, 8, _latin1(f"For {user_name}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", "", 10)
    pdf.set_text_color(71, 85, 105)
    pdf.cell(0, 6, _latin1(f"Email: {user_email}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(0, 6, f"Report Period: {period_label}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(0, 6, f"Generated On: {generated_on.strftime('%Y-%m-%d')}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(6)

    # Summary
    pdf.set_text_color(15, 23, 42)
    pdf.set_font("Helvetica", "BU", 14)
    pdf.cell(0, 10, "Summary", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    summary = [
        ("Total Income", total_income, (22, 163, 74)),
        ("Total Expense", total_expense, (220, 38, 38)),
        ("Net Balance", net_balance, (22, 163, 74) if net_balance >= 0 else (220, 38, 38)),
    ]
    pdf.set_font("Helvetica", "B", 10)
    pdf.set_text_color(71, 85, 105)
    for label, _, _ in summary:
        pdf.cell(60, 6, label, align="C")
    pdf.ln(6)
    pdf.set_font("Helvetica", "B", 14)
    for _, amount, color in summary:
        pdf.set_text_color(*color)
        pdf.cell(60, 8, _money(amount), align="C")
    pdf.ln(14)

    # Transactions
    pdf.set_text_color(15, 23, 42)
    pdf.set_font("Helvetica", "BU", 14)
    pdf.cell(0, 10, "Transactions", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.set_font("Helvetica", "B", 9)
    pdf.set_fill_color(52, 211, 153)
    pdf.set_text_color(255, 255, 255)
    for header, width, align in _COLUMNS:
        pdf.cell(width, 7, header, border=1, align=align, fill=True)
    pdf.ln(7)

    pdf.set_font("Helvetica", "", 8)
    pdf.set_text_color(0, 0, 0)
    if not transactions:
        pdf.cell(sum(width for _, width, _ in _COLUMNS), 6, "No transactions", border=1, align="C")
        pdf.ln(6)
    for txn in transactions:
        row = [
            as_utc(txn.date).strftime("%Y-%m-%d"),
            _latin1(txn.description or "-")[:40],
            txn.category.value,
            txn.type.value.capitalize(),
            _money(txn.amount),
        ]
        for value, (_, width, align) in zip(row, _COLUMNS):
            pdf.cell(width, 6, value, border=1, align=align)
        pdf.ln(6)

    return bytes(pdf.output())
