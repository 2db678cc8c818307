import io
from datetime import datetime
from typing import List, Optional

import pandas as pd
from PIL import Image, ImageDraw, ImageFont

from models import Expense, Participant, Report, ReportExpense, ReportSummary
from settlement_optimizer import SettlementOptimizer, round_to_two_decimals

REPORT_TITLE = "DamFair Expense Report"


def format_currency(amount: float) -> str:
    """USD with thousands separators, e.g. -$1,234.50"""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_date(value: datetime) -> str:
    return f"{value:%b} {value.day}, {value.year}, {value:%I:%M %p}"


def build_report(participants: List[Participant], expenses: List[Expense], generated_at: Optional[datetime] = None) -> Report:
    """Collect everything the exports need into one Report"""
    result = SettlementOptimizer.optimize_settlements(participants, expenses)
    generated_at = generated_at or datetime.now()

    return Report(
        title=REPORT_TITLE,
        generated_at=format_date(generated_at),
        summary=ReportSummary(
            total_participants=len(participants),
            total_expenses=len(expenses),
            total_amount=round_to_two_decimals(sum(expense.amount for expense in expenses)),
            total_settlements=len(result["optimal_settlements"]),
        ),
        participants=[{"name": p.name} for p in participants],
        expenses=[
            ReportExpense(
                description=expense.description,
                amount=expense.amount,
                payer=expense.payer,
                involved=expense.involved,
                date=format_date(expense.date),
                share_per_person=round_to_two_decimals(expense.amount / len(expense.involved)),
            )
            for expense in expenses
        ],
        balances=result["balances"],
        settlements=result["optimal_settlements"],
        detailed_stats=result["stats"],
    )


def report_to_csv(report: Report) -> str:
    """Render the stats, settlements and expenses as consecutive CSV sections"""
    stats_df = pd.DataFrame(
        [
            {
                "Name": stat.name,
                "Total Paid": stat.total_paid,
                "Total Owed": stat.total_owed,
                "Net Balance": stat.net_balance,
            }
            for stat in report.detailed_stats
        ],
        columns=["Name", "Total Paid", "Total Owed", "Net Balance"],
    )
    settlements_df = pd.DataFrame(
        [{"From": s.from_, "To": s.to, "Amount": s.amount} for s in report.settlements],
        columns=["From", "To", "Amount"],
    )
    expenses_df = pd.DataFrame(
        [
            {
                "Description": e.description,
                "Amount": e.amount,
                "Payer": e.payer,
                "Involved": "; ".join(e.involved),
                "Date": e.date,
                "Share Per Person": e.share_per_person,
            }
            for e in report.expenses
        ],
        columns=["Description", "Amount", "Payer", "Involved", "Date", "Share Per Person"],
    )

    sections = [
        ("Participant Summary", stats_df),
        ("Settlement Plan", settlements_df),
        ("Expenses", expenses_df),
    ]
    return "\n".join(f"# {title}\n{df.to_csv(index=False)}" for title, df in sections)


def report_to_text(report: Report) -> str:
    lines = [
        report.title,
        f"Generated: {report.generated_at}",
        "",
        f"Participants: {report.summary.total_participants}",
        f"Total Expenses: {report.summary.total_expenses}",
        f"Total Amount: {format_currency(report.summary.total_amount)}",
        f"Settlements: {report.summary.total_settlements}",
        "",
        "Settlement Plan",
    ]

    if report.settlements:
        for settlement in report.settlements:
            lines.append(f"  {settlement.from_} pays {settlement.to} {format_currency(settlement.amount)}")
    else:
        lines.append("  All debts are already settled!")

    lines.extend(["", "Participant Summary"])
    for stat in report.detailed_stats:
        sign = "+" if stat.net_balance > 0 else ""
        lines.append(
            f"  {stat.name}: paid {format_currency(stat.total_paid)}, "
            f"owes {format_currency(stat.total_owed)}, "
            f"net {sign}{format_currency(stat.net_balance)}"
        )

    lines.extend(["", "Expenses"])
    for expense in report.expenses:
        lines.append(
            f"  {expense.date} - {expense.description}: {format_currency(expense.amount)} "
            f"paid by {expense.payer}, split between {', '.join(expense.involved)} "
            f"({format_currency(expense.share_per_person)} each)"
        )

    return "\n".join(lines) + "\n"


PAGE_WIDTH = 794
PAGE_HEIGHT = 1123
MARGIN = 40
LINE_HEIGHT = 20
SECTION_TITLES = ("Settlement Plan", "Participant Summary", "Expenses")


def _render_lines(lines: List[str], height: int) -> Image.Image:
    font = ImageFont.load_default()
    widest = max((ImageDraw.Draw(Image.new("RGB", (1, 1))).textlength(line, font=font) for line in lines), default=0)
    width = max(PAGE_WIDTH, int(widest) + 2 * MARGIN)

    image = Image.new("RGB", (width, height), "white")
    draw = ImageDraw.Draw(image)
    y = MARGIN
    for line in lines:
        if line == REPORT_TITLE:
            fill = "#3b82f6"
        elif line in SECTION_TITLES:
            fill = "#374151"
        else:
            fill = "#111827"
        draw.text((MARGIN, y), line, fill=fill, font=font)
        y += LINE_HEIGHT
    return image


def report_to_image(report: Report) -> Image.Image:
    """The text report drawn onto a single white image"""
    lines = report_to_text(report).splitlines()
    return _render_lines(lines, 2 * MARGIN + LINE_HEIGHT * len(lines))


def report_to_png(report: Report) -> bytes:
    buffer = io.BytesIO()
    report_to_image(report).save(buffer, format="PNG")
    return buffer.getvalue()


def report_to_pdf(report: Report) -> bytes:
    """Paginated PDF of the text report, one rendered image per page"""
    lines = report_to_text(report).splitlines()
    per_page = (PAGE_HEIGHT - 2 * MARGIN) // LINE_HEIGHT
    pages = [
        _render_lines(lines[start:start + per_page], PAGE_HEIGHT)
        for start in range(0, len(lines), per_page)
    ]

    buffer = io.BytesIO()
    pages[0].save(buffer, format="PDF", save_all=True, append_images=pages[1:], resolution=96.0)
    return buffer.getvalue()
