from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class AdjustmentItemIn(BaseModel):
    narration: str = ""
    # Raw form input; non-numeric text is reported by validation, not rejected here
    amount: Any = 0


class StatementIn(BaseModel):
    bank_code: str = ""
    reconciliation_date: Optional[str] = None
    balance_as_per_bank: Any = 0
    balance_as_per_book: Any = 0
    additions: List[AdjustmentItemIn] = Field(default_factory=list)
    deductions: List[AdjustmentItemIn] = Field(default_factory=list)
    book_additions: List[AdjustmentItemIn] = Field(default_factory=list)
    book_deductions: List[AdjustmentItemIn] = Field(default_factory=list)


class AdjustmentItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    narration: str
    amount: Decimal


class TotalsOut(BaseModel):
    total_additions: Decimal
    total_deductions: Decimal
    corrected_balance: Decimal
    total_book_additions: Decimal
    total_book_deductions: Decimal
    corrected_book_balance: Decimal
    difference: Decimal
    reconciled: bool


class IssueOut(BaseModel):
    field: str
    message: str


class PreviewOut(BaseModel):
    totals: TotalsOut
    issues: List[IssueOut]


class StatementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    statement_id: int
    bank_code: str
    bank_name: str
    reconciliation_date: date
    reconciliation_month: str
    balance_as_per_bank: Decimal
    balance_as_per_book: Decimal
    additions: List[AdjustmentItemOut]
    deductions: List[AdjustmentItemOut]
    book_additions: List[AdjustmentItemOut]
    book_deductions: List[AdjustmentItemOut]
    total_additions: Decimal
    total_deductions: Decimal
    corrected_balance: Decimal
    total_book_additions: Decimal
    total_book_deductions: Decimal
    corrected_book_balance: Decimal
    difference: Decimal
    created_at: datetime
    updated_at: datetime


class StatementRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    statement_id: int
    bank_code: str
    reconciliation_date: date
    corrected_balance: Decimal
    corrected_book_balance: Decimal


class ContinuityOut(BaseModel):
    month: Optional[str] = None
    duplicate: Optional[StatementRef] = None
    predecessor: Optional[StatementRef] = None
    can_create: bool
    copy_forward_available: bool


class MonthCount(BaseModel):
    month: str
    label: str
    reconciliations: int


class DashboardOut(BaseModel):
    month: str
    reconciliations_this_month: int
    total_reconciled_value: Decimal
    statements_with_differences: int
    chart: List[MonthCount]
