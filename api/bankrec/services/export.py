"""Export adapters.

Turn an already-computed statement into a flat spreadsheet row or into the
sectioned layout of a printed bank reconciliation statement. Corrected
balances and the difference are taken from the statement as stamped; the
only arithmetic here is the per-list running total, done with the calculator.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from .calculator import running_totals, to_decimal, total

CENT = Decimal("0.01")

EXPORT_COLUMNS = [
    "Statement ID",
    "Bank Name",
    "Bank Code",
    "Reconciliation Date",
    "Reconciliation Month",
    "Balance as per Bank",
    "Balance as per Book",
    "Corrected Bank Balance",
    "Corrected Book Balance",
    "Difference",
    "Bank Additions",
    "Bank Deductions",
    "Book Additions",
    "Book Deductions",
]


def money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Any) -> str:
    return f"{money(value):,.2f}"


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def serialize_items(items: Iterable[Any] | None) -> str:
    return "; ".join(f"{_field(i, 'narration') or ''}: {money(_field(i, 'amount'))}" for i in (items or []))


def statement_row(st: Any) -> dict:
    d = st.reconciliation_date
    return {
        "Statement ID": st.statement_id,
        "Bank Name": st.bank_name,
        "Bank Code": st.bank_code,
        "Reconciliation Date": d.isoformat() if hasattr(d, "isoformat") else (d or ""),
        "Reconciliation Month": st.reconciliation_month,
        "Balance as per Bank": money(st.balance_as_per_bank),
        "Balance as per Book": money(st.balance_as_per_book),
        "Corrected Bank Balance": money(st.corrected_balance),
        "Corrected Book Balance": money(st.corrected_book_balance),
        "Difference": money(st.difference),
        "Bank Additions": serialize_items(st.additions),
        "Bank Deductions": serialize_items(st.deductions),
        "Book Additions": serialize_items(st.book_additions),
        "Book Deductions": serialize_items(st.book_deductions),
    }


def statement_rows(statements: Iterable[Any]) -> list[dict]:
    return [statement_row(st) for st in statements]


@dataclass(frozen=True)
class DocumentLine:
    narration: str
    amount: Decimal
    running_total: Decimal


@dataclass(frozen=True)
class AdjustmentBlock:
    label: str
    lines: list[DocumentLine]
    total: Decimal


@dataclass(frozen=True)
class DocumentSection:
    title: str
    opening_label: str
    opening_balance: Decimal
    additions: AdjustmentBlock
    deductions: AdjustmentBlock
    corrected_label: str
    corrected_balance: Decimal


@dataclass(frozen=True)
class StatementDocument:
    heading: str
    title: str
    statement_id: int | None
    bank_code: str
    bank_name: str
    reconciliation_date: Any
    reconciliation_month: str
    bank: DocumentSection
    book: DocumentSection
    difference: Decimal
    reconciled: bool


def _block(label: str, items: Iterable[Any] | None) -> AdjustmentBlock:
    items = list(items or [])
    lines = [
        DocumentLine(narration=_field(i, "narration") or "", amount=to_decimal(_field(i, "amount")), running_total=run)
        for i, run in zip(items, running_totals(items))
    ]
    return AdjustmentBlock(label=label, lines=lines, total=total(items))


def build_document(st: Any, report_heading: str) -> StatementDocument:
    bank = DocumentSection(
        title="Bank Side",
        opening_label="Balance as per Bank Statement",
        opening_balance=to_decimal(st.balance_as_per_bank),
        additions=_block("Add:", st.additions),
        deductions=_block("Less:", st.deductions),
        corrected_label="Corrected Bank Balance",
        corrected_balance=to_decimal(st.corrected_balance),
    )
    book = DocumentSection(
        title="Book Side",
        opening_label="Balance as per Cash Book",
        opening_balance=to_decimal(st.balance_as_per_book),
        additions=_block("Add:", st.book_additions),
        deductions=_block("Less:", st.book_deductions),
        corrected_label="Corrected Book Balance",
        corrected_balance=to_decimal(st.corrected_book_balance),
    )
    diff = to_decimal(st.difference)
    return StatementDocument(
        heading=report_heading,
        title="Bank Reconciliation",
        statement_id=st.statement_id,
        bank_code=st.bank_code,
        bank_name=st.bank_name,
        reconciliation_date=st.reconciliation_date,
        reconciliation_month=st.reconciliation_month,
        bank=bank,
        book=book,
        difference=diff,
        reconciled=diff == 0,
    )
