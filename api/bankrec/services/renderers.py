"""Binary renderings of export data: .xlsx via openpyxl, PDF via reportlab."""
import io
from typing import Iterable

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from .export import EXPORT_COLUMNS, StatementDocument, DocumentSection, format_money

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# A4 in points with the statement's print margins
PAGE_W, PAGE_H = A4
LEFT, RIGHT, TOP, BOTTOM = 90, 36, 36, 36


def workbook_bytes(rows: Iterable[dict], sheet_title: str = "Reconciliations") -> bytes:
    rows = list(rows)
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    ws.append(EXPORT_COLUMNS)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append([row.get(col) for col in EXPORT_COLUMNS])

    # size each column to its longest value
    for idx, col in enumerate(EXPORT_COLUMNS, start=1):
        longest = max([len(col)] + [len(str(r.get(col) if r.get(col) is not None else "")) for r in rows])
        ws.column_dimensions[get_column_letter(idx)].width = longest + 2

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def read_code_name_rows(data: bytes) -> list[tuple[str, str]]:
    """First two columns (code, name) of the first sheet, header row skipped."""
    wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        out: list[tuple[str, str]] = []
        for i, row in enumerate(ws.iter_rows(values_only=True)):
            if i == 0 or not row:
                continue
            code = str(row[0]).strip() if row[0] is not None else ""
            name = str(row[1]).strip() if len(row) > 1 and row[1] is not None else ""
            if code and name:
                out.append((code, name))
        return out
    finally:
        wb.close()


class _PdfWriter:
    def __init__(self, c: canvas.Canvas):
        self.c = c
        self.y = PAGE_H - TOP

    def _need(self, h: float) -> None:
        if self.y - h < BOTTOM:
            self.c.showPage()
            self.y = PAGE_H - TOP

    def centered(self, text: str, font: str = "Helvetica", size: float = 10) -> None:
        self._need(size + 6)
        self.c.setFont(font, size)
        self.c.drawCentredString(LEFT + (PAGE_W - LEFT - RIGHT) / 2, self.y, text)
        self.y -= size + 6

    def line(self, label: str, amount: str = "", total: str = "", bold: bool = False, indent: float = 0) -> None:
        self._need(14)
        self.c.setFont("Helvetica-Bold" if bold else "Helvetica", 9)
        self.c.drawString(LEFT + indent, self.y, label[:70])
        if amount:
            self.c.drawRightString(PAGE_W - RIGHT - 90, self.y, amount)
        if total:
            self.c.drawRightString(PAGE_W - RIGHT, self.y, total)
        self.y -= 14

    def rule(self) -> None:
        self._need(6)
        self.c.line(LEFT, self.y + 4, PAGE_W - RIGHT, self.y + 4)
        self.y -= 6

    def gap(self, h: float = 8) -> None:
        self.y -= h


def _section(w: _PdfWriter, s: DocumentSection) -> None:
    w.line(s.title, bold=True)
    w.line(s.opening_label, total=format_money(s.opening_balance))
    for block in (s.additions, s.deductions):
        w.line(block.label, bold=True, indent=8)
        for ln in block.lines:
            w.line(ln.narration, amount=format_money(ln.amount), indent=16)
        w.line(f"Total {block.label.rstrip(':').lower()}", total=format_money(block.total), indent=8)
    w.rule()
    w.line(s.corrected_label, total=format_money(s.corrected_balance), bold=True)
    w.gap()


def pdf_bytes(doc: StatementDocument) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Bank Reconciliation #{doc.statement_id}")
    w = _PdfWriter(c)

    w.centered(doc.heading, "Helvetica-Bold", 14)
    w.centered(doc.title, "Helvetica-Bold", 11)
    w.rule()
    d = doc.reconciliation_date
    w.line(f"Bank: {doc.bank_code} - {doc.bank_name}")
    w.line(f"Statement No: {doc.statement_id}    Date: {d.isoformat() if hasattr(d, 'isoformat') else d}")
    w.line(f"Reconciliation for the month of {doc.reconciliation_month}")
    w.gap()

    _section(w, doc.bank)
    _section(w, doc.book)

    w.rule()
    status = "Reconciled" if doc.reconciled else "Difference"
    w.line(f"{status} (Corrected Bank - Corrected Book)", total=format_money(doc.difference), bold=True)

    c.showPage()
    c.save()
    return buf.getvalue()
