"""Month continuity across a user's statements for one bank.

A reconciliation date is a calendar date. ISO strings are read by their
``YYYY-MM-DD`` components and never go through a local-timezone timestamp,
aware datetimes are moved to UTC before truncation, and months compare as
``(year, month)`` pairs.
"""
import re
from datetime import date, datetime, timezone
from typing import Any, Iterable, Protocol

_ISO_DATE = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})")

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class StatementLike(Protocol):
    statement_id: int
    bank_code: str
    reconciliation_date: Any


def normalize_date(value: Any) -> date | None:
    """Calendar date for ``value`` or None if it cannot be read."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        m = _ISO_DATE.match(text)
        if not m:
            return None
        rest = text[10:]
        if rest:
            if rest[0] not in "Tt ":
                return None
            try:
                dt = datetime.fromisoformat(text.replace("Z", "+00:00").replace("z", "+00:00"))
            except ValueError:
                return None
            return normalize_date(dt)
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            return None
    return None


def month_key(value: Any) -> tuple[int, int] | None:
    d = normalize_date(value)
    return (d.year, d.month) if d else None


def previous_month(key: tuple[int, int]) -> tuple[int, int]:
    year, month = key
    return (year - 1, 12) if month == 1 else (year, month - 1)


def format_month(key: tuple[int, int]) -> str:
    return f"{key[0]:04d}-{key[1]:02d}"


def reconciliation_month_label(value: Any) -> str:
    """Label of the month a statement is prepared for.

    A statement dated in March reconciles February, so the label names the
    month before the reconciliation date's month.
    """
    key = month_key(value)
    if key is None:
        return ""
    year, month = previous_month(key)
    return f"{MONTH_NAMES[month - 1]} {year}"


def _latest_in_month(history: Iterable[StatementLike], bank_code: str, key: tuple[int, int]):
    found = None
    for rec in history:
        if rec.bank_code != bank_code or month_key(rec.reconciliation_date) != key:
            continue
        if found is None or (rec.statement_id or 0) > (found.statement_id or 0):
            found = rec
    return found


def find_duplicate(history: Iterable[StatementLike], bank_code: str | None, when: Any):
    """Statement already filed for ``bank_code`` in the month of ``when``."""
    key = month_key(when)
    if not bank_code or key is None:
        return None
    return _latest_in_month(history, bank_code, key)


def find_predecessor(history: Iterable[StatementLike], bank_code: str | None, when: Any):
    """Statement for ``bank_code`` in the calendar month right before ``when``."""
    key = month_key(when)
    if not bank_code or key is None:
        return None
    return _latest_in_month(history, bank_code, previous_month(key))
