"""In-memory edit state for one statement.

The draft is what a form binds to: balances, the four adjustment lists, the
bank/date pair and, in create mode, the continuity state (duplicate found,
copy-forward offer). Totals are recalculated from the current values on
demand; observers registered with ``on_difference_changed`` hear about every
change of the live difference.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable

from .adjustments import ADJUSTMENT_KINDS, AdjustmentItem, AdjustmentList
from .calculator import STORAGE_LIMIT, ReconciliationTotals, calculate, to_decimal, to_storage
from .continuity import find_duplicate, find_predecessor, month_key, normalize_date
from .errors import DuplicateConflict, ValidationIssue
from .policy import DEFAULT_POLICY, ReconciliationPolicy

logger = logging.getLogger(__name__)

CREATE = "create"
EDIT = "edit"

DifferenceListener = Callable[[Decimal | None], None]


class ReconciliationDraft:
    def __init__(
        self,
        mode: str = CREATE,
        history: Iterable[Any] | None = None,
        policy: ReconciliationPolicy = DEFAULT_POLICY,
    ):
        self.mode = mode
        self.policy = policy
        self.history = list(history or [])

        self.record_id = None
        self.statement_id: int | None = None
        self.bank_code: str = ""
        self.reconciliation_date: Any = None
        self.balance_as_per_bank: Any = Decimal("0")
        self.balance_as_per_book: Any = Decimal("0")
        self.additions = AdjustmentList()
        self.deductions = AdjustmentList()
        self.book_additions = AdjustmentList()
        self.book_deductions = AdjustmentList()
        # Values stamped on the record when an edit draft was loaded.
        self.loaded_totals: ReconciliationTotals | None = None

        self.duplicate = None
        self.copy_forward_candidate = None
        self._offered: set[tuple[str, Any]] = set()
        self._candidate_pair: tuple[str, Any] | None = None

        self._listeners: list[DifferenceListener] = []
        self._last_difference: Decimal | None = None

    # -- construction ------------------------------------------------------

    @classmethod
    def for_create(
        cls,
        history: Iterable[Any] | None = None,
        policy: ReconciliationPolicy = DEFAULT_POLICY,
        seed: bool = True,
        reconciliation_date: Any = None,
    ) -> "ReconciliationDraft":
        draft = cls(CREATE, history, policy)
        if seed:
            for kind in ADJUSTMENT_KINDS:
                setattr(draft, kind, AdjustmentList.starter(kind))
        draft.reconciliation_date = reconciliation_date
        draft._last_difference = draft.totals.difference
        return draft

    @classmethod
    def for_edit(cls, statement: Any, policy: ReconciliationPolicy = DEFAULT_POLICY) -> "ReconciliationDraft":
        """Load a persisted statement verbatim; stored totals are not recomputed."""
        draft = cls(EDIT, None, policy)
        draft.record_id = statement.id
        draft.statement_id = statement.statement_id
        draft.bank_code = statement.bank_code
        draft.reconciliation_date = statement.reconciliation_date
        draft.balance_as_per_bank = statement.balance_as_per_bank
        draft.balance_as_per_book = statement.balance_as_per_book
        for kind in ADJUSTMENT_KINDS:
            setattr(draft, kind, AdjustmentList.of(getattr(statement, kind)))
        draft.loaded_totals = ReconciliationTotals(
            total_additions=statement.total_additions,
            total_deductions=statement.total_deductions,
            corrected_balance=statement.corrected_balance,
            total_book_additions=statement.total_book_additions,
            total_book_deductions=statement.total_book_deductions,
            corrected_book_balance=statement.corrected_book_balance,
            difference=statement.difference,
        )
        draft._last_difference = draft.loaded_totals.difference
        return draft

    @classmethod
    def from_values(
        cls,
        values: dict,
        mode: str = CREATE,
        history: Iterable[Any] | None = None,
        policy: ReconciliationPolicy = DEFAULT_POLICY,
    ) -> "ReconciliationDraft":
        draft = cls(mode, history, policy)
        draft.balance_as_per_bank = values.get("balance_as_per_bank", Decimal("0"))
        draft.balance_as_per_book = values.get("balance_as_per_book", Decimal("0"))
        for kind in ADJUSTMENT_KINDS:
            setattr(draft, kind, AdjustmentList.of(values.get(kind)))
        draft.bank_code = (values.get("bank_code") or "").strip()
        draft.reconciliation_date = values.get("reconciliation_date")
        draft._last_difference = draft.totals.difference
        draft._check_continuity()
        return draft

    # -- live calculation ---------------------------------------------------

    @property
    def totals(self) -> ReconciliationTotals:
        return calculate(
            self.balance_as_per_bank,
            self.additions,
            self.deductions,
            self.balance_as_per_book,
            self.book_additions,
            self.book_deductions,
        )

    def on_difference_changed(self, callback: DifferenceListener) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it.

        Callbacks get the new difference, or None when the draft is closed.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _broadcasting(self) -> bool:
        return self.mode == CREATE or self.policy.broadcast_while_editing

    def _emit(self, value: Decimal | None) -> None:
        for cb in list(self._listeners):
            cb(value)

    def changed(self) -> Decimal:
        """Recalculate after a mutation and notify listeners if the difference moved."""
        diff = self.totals.difference
        if diff != self._last_difference:
            self._last_difference = diff
            if self._broadcasting():
                self._emit(diff)
        return diff

    def close(self) -> None:
        if self._broadcasting():
            self._emit(None)
        self._listeners.clear()

    # -- field setters ------------------------------------------------------

    def set_balance_as_per_bank(self, value: Any) -> None:
        self.balance_as_per_bank = value
        self.changed()

    def set_balance_as_per_book(self, value: Any) -> None:
        self.balance_as_per_book = value
        self.changed()

    def list_for(self, kind: str) -> AdjustmentList:
        if kind not in ADJUSTMENT_KINDS:
            raise KeyError(kind)
        return getattr(self, kind)

    def add_item(self, kind: str, narration: str = "", amount: Any = Decimal("0"), after: int | None = None):
        items = self.list_for(kind)
        item = AdjustmentItem(narration=narration, amount=amount)
        if after is None:
            items.append(item)
        else:
            items.insert_after(after, item)
        self.changed()
        return item

    def update_item(self, kind: str, index: int, narration: str | None = None, amount: Any = None):
        item = self.list_for(kind).update(index, narration=narration, amount=amount)
        self.changed()
        return item

    def remove_item(self, kind: str, index: int):
        item = self.list_for(kind).remove_at(index)
        self.changed()
        return item

    def set_bank_code(self, code: str | None) -> None:
        self.bank_code = (code or "").strip()
        self._check_continuity()

    def set_reconciliation_date(self, value: Any) -> None:
        self.reconciliation_date = value
        self._check_continuity()

    def set_history(self, history: Iterable[Any]) -> None:
        self.history = list(history)
        self._check_continuity()

    # -- continuity ---------------------------------------------------------

    def _check_continuity(self) -> None:
        if self.mode != CREATE:
            self.duplicate = None
            self.copy_forward_candidate = None
            return
        d = normalize_date(self.reconciliation_date)
        self.duplicate = find_duplicate(self.history, self.bank_code, d)
        if self.duplicate is not None:
            self.copy_forward_candidate = None
            return
        pair = (self.bank_code, d)
        if pair in self._offered:
            # offered already; keep a pending offer only while the pair is unchanged
            if pair != self._candidate_pair:
                self.copy_forward_candidate = None
            return
        self.copy_forward_candidate = find_predecessor(self.history, self.bank_code, d)
        self._candidate_pair = pair
        if self.copy_forward_candidate is not None:
            self._offered.add(pair)

    @property
    def duplicate_conflict(self) -> DuplicateConflict | None:
        if self.duplicate is None:
            return None
        key = month_key(self.reconciliation_date)
        return DuplicateConflict(
            bank_code=self.bank_code,
            month=f"{key[0]:04d}-{key[1]:02d}",
            statement_id=self.duplicate.statement_id,
        )

    def decline_copy_forward(self) -> None:
        self.copy_forward_candidate = None

    def copy_forward(self) -> bool:
        """Take the predecessor's corrected balances and zero-amount narrations.

        Only offered once per bank/date pair in create mode and only when no
        duplicate exists. Returns False when there is nothing to copy.
        """
        prev = self.copy_forward_candidate
        if self.mode != CREATE or prev is None or self.duplicate is not None:
            return False
        self.balance_as_per_bank = to_decimal(prev.corrected_balance)
        self.balance_as_per_book = to_decimal(prev.corrected_book_balance)
        for kind in ADJUSTMENT_KINDS:
            setattr(self, kind, AdjustmentList.of(getattr(prev, kind)).zeroed())
        self.copy_forward_candidate = None
        logger.debug("copied forward statement #%s into draft", prev.statement_id)
        self.changed()
        return True

    # -- validation / serialisation ----------------------------------------

    def validate(self) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        if not self.bank_code:
            issues.append(ValidationIssue("bank_code", "Bank code is required."))
        if self.reconciliation_date in (None, ""):
            issues.append(ValidationIssue("reconciliation_date", "Date is required."))
        elif normalize_date(self.reconciliation_date) is None:
            issues.append(ValidationIssue("reconciliation_date", "Date is not a valid calendar date."))
        for name in ("balance_as_per_bank", "balance_as_per_book"):
            if not _is_number(getattr(self, name)):
                issues.append(ValidationIssue(name, "Balance must be a number."))
            elif abs(to_decimal(getattr(self, name))) >= STORAGE_LIMIT:
                issues.append(ValidationIssue(name, "Balance is too large."))
        for kind in ADJUSTMENT_KINDS:
            for i, item in enumerate(getattr(self, kind)):
                if self.policy.require_narration and not (item.narration or "").strip():
                    issues.append(ValidationIssue(f"{kind}.{i}.narration", "Narration is required."))
                if not _is_number(item.amount):
                    issues.append(ValidationIssue(f"{kind}.{i}.amount", "Amount must be a number."))
                elif to_decimal(item.amount) < 0:
                    issues.append(ValidationIssue(f"{kind}.{i}.amount", "Amount must be positive."))
                elif to_decimal(item.amount) >= STORAGE_LIMIT:
                    issues.append(ValidationIssue(f"{kind}.{i}.amount", "Amount is too large."))
        return issues

    def values(self) -> dict:
        return {
            "bank_code": self.bank_code,
            "reconciliation_date": normalize_date(self.reconciliation_date),
            "balance_as_per_bank": to_storage(self.balance_as_per_bank),
            "balance_as_per_book": to_storage(self.balance_as_per_book),
            **{kind: [{"narration": (i.narration or "").strip(), "amount": to_storage(i.amount)}
                      for i in getattr(self, kind)] for kind in ADJUSTMENT_KINDS},
        }

    def mark_saved(self, statement: Any) -> None:
        self.mode = EDIT
        self.record_id = statement.id
        self.statement_id = statement.statement_id
        self.duplicate = None
        self.copy_forward_candidate = None


def _is_number(value: Any) -> bool:
    if value is None or value == "":
        # blank amount fields count as zero
        return True
    if isinstance(value, bool):
        return False
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).strip().replace(",", ""))
    except (InvalidOperation, ValueError):
        return False
    return d.is_finite()
