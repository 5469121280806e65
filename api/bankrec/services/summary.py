from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from .calculator import to_decimal
from .continuity import MONTH_NAMES, format_month, month_key, previous_month


def dashboard_summary(statements: Iterable[Any], month: date, months_back: int = 12) -> dict:
    """Headline numbers for the selected month plus a per-month statement count.

    ``chart`` lists the ``months_back`` months ending at the selected one,
    oldest first.
    """
    selected = (month.year, month.month)
    in_month = 0
    value = Decimal("0")
    with_difference = 0
    counts: dict[tuple[int, int], int] = {}

    for st in statements:
        key = month_key(st.reconciliation_date)
        if key is None:
            continue
        if key == selected:
            in_month += 1
            value += to_decimal(st.corrected_balance)
        if to_decimal(st.difference) != 0:
            with_difference += 1
        counts[key] = counts.get(key, 0) + 1

    keys = [selected]
    while len(keys) < months_back:
        keys.append(previous_month(keys[-1]))
    chart = [
        {"month": format_month(k), "label": MONTH_NAMES[k[1] - 1][:3], "reconciliations": counts.get(k, 0)}
        for k in reversed(keys)
    ]
    return {
        "month": format_month(selected),
        "reconciliations_this_month": in_month,
        "total_reconciled_value": value,
        "statements_with_differences": with_difference,
        "chart": chart,
    }
