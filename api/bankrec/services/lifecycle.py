"""Create/update/delete of persisted statements.

Every save recomputes the derived totals from the draft's current balances
and adjustment lists and writes record and items in one transaction. A
failing write is rolled back and surfaced as ``PersistenceFailure``; the
caller's draft is left exactly as it was so nothing typed is lost.
"""
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.bank import Bank
from ..models.base import utcnow
from ..models.statement import Statement, StatementItem
from .adjustments import ADJUSTMENT_KINDS
from .calculator import calculate, to_decimal
from .continuity import find_duplicate, format_month, month_key, reconciliation_month_label
from .draft import CREATE, ReconciliationDraft
from .errors import DuplicateConflict, ExportBlocked, PersistenceFailure, ValidationIssue
from .export import StatementDocument, build_document
from .policy import DEFAULT_POLICY, ReconciliationPolicy

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    statement: Statement | None = None
    issues: list[ValidationIssue] = field(default_factory=list)
    conflict: DuplicateConflict | None = None
    created: bool = False

    @property
    def ok(self) -> bool:
        return self.statement is not None


@dataclass
class ExportResult:
    save: SaveResult
    document: StatementDocument | None = None
    blocked: ExportBlocked | None = None


class StatementLifecycle:
    def __init__(self, db: Session, policy: ReconciliationPolicy = DEFAULT_POLICY):
        self.db = db
        self.policy = policy

    # -- reads --------------------------------------------------------------

    def history(self, user_id: UUID, bank_code: str | None = None) -> list[Statement]:
        q = self.db.query(Statement).filter(Statement.user_id == user_id)
        if bank_code:
            q = q.filter(Statement.bank_code == bank_code)
        return q.order_by(Statement.statement_id).all()

    def get(self, user_id: UUID, record_id: UUID) -> Statement | None:
        st = self.db.get(Statement, record_id)
        if not st or st.user_id != user_id:
            return None
        return st

    def next_statement_id(self, user_id: UUID) -> int:
        current = (
            self.db.query(sa.func.coalesce(sa.func.max(Statement.statement_id), 0))
            .filter(Statement.user_id == user_id)
            .scalar()
        )
        return int(current) + 1

    def bank_name(self, code: str) -> str | None:
        return self.db.query(Bank.name).filter(Bank.code == code).scalar()

    # -- drafts -------------------------------------------------------------

    def new_draft(self, user_id: UUID, seed: bool = True, reconciliation_date: Any = None) -> ReconciliationDraft:
        return ReconciliationDraft.for_create(
            history=self.history(user_id),
            policy=self.policy,
            seed=seed,
            reconciliation_date=reconciliation_date,
        )

    def edit_draft(self, statement: Statement) -> ReconciliationDraft:
        return ReconciliationDraft.for_edit(statement, policy=self.policy)

    # -- writes -------------------------------------------------------------

    def save(self, user_id: UUID, draft: ReconciliationDraft) -> SaveResult:
        if draft.mode == CREATE:
            return self.create(user_id, draft)
        return self.update(user_id, draft.record_id, draft)

    def create(self, user_id: UUID, draft: ReconciliationDraft) -> SaveResult:
        issues = draft.validate()
        bank_name = None
        if draft.bank_code:
            bank_name = self.bank_name(draft.bank_code)
            if bank_name is None:
                issues.append(ValidationIssue("bank_code", f"Unknown bank code {draft.bank_code}."))
        if issues:
            return SaveResult(issues=issues)

        values = draft.values()
        # Re-read history: the draft's copy may be stale by the time the user saves.
        history = self.history(user_id, values["bank_code"])
        dup = find_duplicate(history, values["bank_code"], values["reconciliation_date"])
        if dup is not None and self.policy.block_duplicates:
            conflict = DuplicateConflict(
                bank_code=values["bank_code"],
                month=format_month(month_key(values["reconciliation_date"])),
                statement_id=dup.statement_id,
            )
            logger.info("blocked duplicate statement for user %s: %s", user_id, conflict.message)
            return SaveResult(conflict=conflict)

        now = utcnow()
        st = Statement(user_id=user_id, created_at=now)
        try:
            st.statement_id = self.next_statement_id(user_id)
            self._stamp(st, values, bank_name, now)
            self.db.add(st)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("could not create statement for user %s: %s", user_id, exc)
            raise PersistenceFailure(str(exc)) from exc
        self.db.refresh(st)
        logger.info("created statement #%s (%s) for user %s", st.statement_id, st.bank_code, user_id)
        draft.mark_saved(st)
        return SaveResult(statement=st, created=True)

    def update(self, user_id: UUID, record_id: UUID, draft: ReconciliationDraft) -> SaveResult:
        st = self.get(user_id, record_id)
        if st is None:
            raise LookupError(f"statement {record_id} not found")

        issues = draft.validate()
        bank_name = st.bank_name
        if draft.bank_code and draft.bank_code != st.bank_code:
            bank_name = self.bank_name(draft.bank_code)
            if bank_name is None:
                issues.append(ValidationIssue("bank_code", f"Unknown bank code {draft.bank_code}."))
        elif draft.bank_code:
            bank_name = self.bank_name(draft.bank_code) or st.bank_name
        if issues:
            return SaveResult(issues=issues)

        # Duplicate check is skipped on edit: the bank/date pair was validated on create.
        values = draft.values()
        try:
            self._stamp(st, values, bank_name, utcnow())
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("could not update statement #%s for user %s: %s", st.statement_id, user_id, exc)
            raise PersistenceFailure(str(exc)) from exc
        self.db.refresh(st)
        logger.info("updated statement #%s for user %s", st.statement_id, user_id)
        draft.mark_saved(st)
        return SaveResult(statement=st)

    def delete(self, user_id: UUID, record_id: UUID) -> bool:
        st = self.get(user_id, record_id)
        if st is None:
            return False
        try:
            self.db.delete(st)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("could not delete statement %s: %s", record_id, exc)
            raise PersistenceFailure(str(exc)) from exc
        logger.info("deleted statement #%s for user %s", st.statement_id, user_id)
        return True

    def _stamp(self, st: Statement, values: dict, bank_name: str | None, now) -> None:
        totals = calculate(
            values["balance_as_per_bank"],
            values["additions"],
            values["deductions"],
            values["balance_as_per_book"],
            values["book_additions"],
            values["book_deductions"],
        )
        st.bank_code = values["bank_code"]
        st.bank_name = bank_name or ""
        st.reconciliation_date = values["reconciliation_date"]
        st.reconciliation_month = reconciliation_month_label(values["reconciliation_date"])
        st.balance_as_per_bank = values["balance_as_per_bank"]
        st.balance_as_per_book = values["balance_as_per_book"]
        for name, value in totals.as_dict().items():
            setattr(st, name, value)
        st.items = [
            StatementItem(kind=kind, position=pos, narration=row["narration"], amount=row["amount"])
            for kind in ADJUSTMENT_KINDS
            for pos, row in enumerate(values[kind])
        ]
        st.updated_at = now

    # -- export -------------------------------------------------------------

    def export_gate(self, statement: Statement) -> ExportBlocked | None:
        if self.policy.export_requires_reconciled and to_decimal(statement.difference) != 0:
            return ExportBlocked(
                statement_id=statement.statement_id,
                reason="Statement must be reconciled (difference of 0.00) before export.",
            )
        return None

    def save_and_export(self, user_id: UUID, draft: ReconciliationDraft, report_heading: str) -> ExportResult:
        """Save the draft, then build its document if the save and the gate pass."""
        result = self.save(user_id, draft)
        if not result.ok:
            return ExportResult(save=result)
        blocked = self.export_gate(result.statement)
        if blocked is not None:
            logger.info("export of statement #%s blocked: %s", blocked.statement_id, blocked.reason)
            return ExportResult(save=result, blocked=blocked)
        return ExportResult(save=result, document=build_document(result.statement, report_heading))
