"""Pure reconciliation arithmetic.

Runs on every keystroke of the statement form, so nothing here raises on bad
input: anything that is not a finite number counts as zero. Values keep their
full Decimal precision; rounding to cents is a presentation concern.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

ZERO = Decimal("0")
# Scale of stored money columns
STORAGE_PLACES = Decimal("0.0001")
# Largest magnitude a NUMERIC(18, 4) column holds
STORAGE_LIMIT = Decimal("1E14")


def to_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return ZERO
    try:
        # str() keeps floats like 0.1 from dragging in binary noise
        d = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return ZERO
    return d if d.is_finite() else ZERO


def to_storage(value: Any) -> Decimal:
    """``to_decimal`` rounded to the scale money is persisted at."""
    try:
        return to_decimal(value).quantize(STORAGE_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO


def _amount_of(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("amount")
    return getattr(item, "amount", None)


def total(items: Iterable[Any] | None) -> Decimal:
    return sum((to_decimal(_amount_of(i)) for i in (items or [])), ZERO)


def running_totals(items: Iterable[Any] | None) -> list[Decimal]:
    out: list[Decimal] = []
    acc = ZERO
    for i in items or []:
        acc += to_decimal(_amount_of(i))
        out.append(acc)
    return out


def corrected_balance(starting: Any, additions: Iterable[Any] | None, deductions: Iterable[Any] | None) -> Decimal:
    # Negative results are valid (overdrawn accounts) and are not clamped.
    return to_decimal(starting) + total(additions) - total(deductions)


def difference(corrected_bank: Any, corrected_book: Any) -> Decimal:
    return to_decimal(corrected_bank) - to_decimal(corrected_book)


@dataclass(frozen=True)
class ReconciliationTotals:
    total_additions: Decimal
    total_deductions: Decimal
    corrected_balance: Decimal
    total_book_additions: Decimal
    total_book_deductions: Decimal
    corrected_book_balance: Decimal
    difference: Decimal

    @property
    def is_reconciled(self) -> bool:
        return self.difference == ZERO

    def as_dict(self) -> dict:
        return asdict(self)


def calculate(
    balance_as_per_bank: Any,
    additions: Iterable[Any] | None,
    deductions: Iterable[Any] | None,
    balance_as_per_book: Any,
    book_additions: Iterable[Any] | None,
    book_deductions: Iterable[Any] | None,
) -> ReconciliationTotals:
    additions = list(additions or [])
    deductions = list(deductions or [])
    book_additions = list(book_additions or [])
    book_deductions = list(book_deductions or [])

    bank = corrected_balance(balance_as_per_bank, additions, deductions)
    book = corrected_balance(balance_as_per_book, book_additions, book_deductions)
    return ReconciliationTotals(
        total_additions=total(additions),
        total_deductions=total(deductions),
        corrected_balance=bank,
        total_book_additions=total(book_additions),
        total_book_deductions=total(book_deductions),
        corrected_book_balance=book,
        difference=difference(bank, book),
    )
