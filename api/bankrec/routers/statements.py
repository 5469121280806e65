import logging
from dataclasses import asdict
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from bankrec.config import Settings
from bankrec.db import get_db
from bankrec.models.statement import Statement
from bankrec.routers.report_settings import current_heading
from bankrec.routers.users import get_user_or_404
from bankrec.schemas.statements import (
    StatementIn,
    StatementOut,
    StatementRef,
    PreviewOut,
    TotalsOut,
    IssueOut,
    ContinuityOut,
    DashboardOut,
)
from bankrec.services.continuity import find_duplicate, find_predecessor, format_month, month_key, normalize_date
from bankrec.services.draft import CREATE, EDIT, ReconciliationDraft
from bankrec.services.errors import PersistenceFailure
from bankrec.services.export import StatementDocument, build_document, statement_rows
from bankrec.services.lifecycle import SaveResult, StatementLifecycle
from bankrec.services.policy import ReconciliationPolicy
from bankrec.services.renderers import XLSX_MEDIA_TYPE, pdf_bytes, workbook_bytes
from bankrec.services.summary import dashboard_summary

logger = logging.getLogger(__name__)

settings = Settings()

router = APIRouter(prefix="/api/v1/users/{user_id}/statements", tags=["statements"])


def get_policy() -> ReconciliationPolicy:
    return settings.policy()


def get_lifecycle(db: Session = Depends(get_db), policy: ReconciliationPolicy = Depends(get_policy)) -> StatementLifecycle:
    return StatementLifecycle(db, policy)


def _statement_or_404(lc: StatementLifecycle, user_id: UUID, record_id: UUID) -> Statement:
    st = lc.get(user_id, record_id)
    if st is None:
        raise HTTPException(404, "Statement not found")
    return st


def _raise_for(result: SaveResult) -> None:
    if result.issues:
        raise HTTPException(422, [{"field": i.field, "message": i.message} for i in result.issues])
    if result.conflict is not None:
        raise HTTPException(409, {"message": result.conflict.message, "statement_id": result.conflict.statement_id})


def _save(lc: StatementLifecycle, user_id: UUID, draft: ReconciliationDraft) -> Statement:
    try:
        result = lc.save(user_id, draft)
    except PersistenceFailure as exc:
        raise HTTPException(503, exc.message)
    _raise_for(result)
    return result.statement


def _pdf_response(doc: StatementDocument) -> Response:
    return Response(
        content=pdf_bytes(doc),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="reconciliation-{doc.statement_id}.pdf"'},
    )


@router.get("/", response_model=list[StatementOut])
def list_statements(user_id: UUID, q: str | None = None, db: Session = Depends(get_db), lc: StatementLifecycle = Depends(get_lifecycle)):
    get_user_or_404(user_id, db)
    rows = sorted(lc.history(user_id), key=lambda s: s.statement_id, reverse=True)
    if q:
        needle = q.lower()
        rows = [
            s for s in rows
            if needle in (s.bank_name or "").lower()
            or needle in s.bank_code.lower()
            or needle in s.reconciliation_date.isoformat()
            or needle in str(s.statement_id)
        ]
    return rows


@router.post("/preview", response_model=PreviewOut)
def preview_statement(user_id: UUID, payload: StatementIn, policy: ReconciliationPolicy = Depends(get_policy)):
    draft = ReconciliationDraft.from_values(payload.model_dump(), policy=policy)
    totals = draft.totals
    return PreviewOut(
        totals=TotalsOut(**totals.as_dict(), reconciled=totals.is_reconciled),
        issues=[IssueOut(field=i.field, message=i.message) for i in draft.validate()],
    )


@router.get("/template", response_model=StatementIn)
def statement_template(user_id: UUID, db: Session = Depends(get_db), lc: StatementLifecycle = Depends(get_lifecycle)):
    get_user_or_404(user_id, db)
    draft = lc.new_draft(user_id, reconciliation_date=date.today())
    values = draft.values()
    values["reconciliation_date"] = values["reconciliation_date"].isoformat()
    return values


@router.get("/continuity", response_model=ContinuityOut)
def statement_continuity(
    user_id: UUID,
    bank_code: str,
    reconciliation_date: str,
    db: Session = Depends(get_db),
    lc: StatementLifecycle = Depends(get_lifecycle),
):
    get_user_or_404(user_id, db)
    d = normalize_date(reconciliation_date)
    if d is None:
        raise HTTPException(422, "reconciliation_date must be YYYY-MM-DD")
    bank_code = bank_code.strip()
    history = lc.history(user_id, bank_code)
    dup = find_duplicate(history, bank_code, d)
    pred = None if dup else find_predecessor(history, bank_code, d)
    return ContinuityOut(
        month=format_month(month_key(d)),
        duplicate=StatementRef.model_validate(dup) if dup else None,
        predecessor=StatementRef.model_validate(pred) if pred else None,
        can_create=dup is None or not lc.policy.block_duplicates,
        copy_forward_available=pred is not None,
    )


@router.get("/copy-forward", response_model=StatementIn)
def copy_forward_template(
    user_id: UUID,
    bank_code: str,
    reconciliation_date: str,
    db: Session = Depends(get_db),
    lc: StatementLifecycle = Depends(get_lifecycle),
):
    get_user_or_404(user_id, db)
    if normalize_date(reconciliation_date) is None:
        raise HTTPException(422, "reconciliation_date must be YYYY-MM-DD")
    draft = lc.new_draft(user_id, seed=False)
    draft.set_bank_code(bank_code)
    draft.set_reconciliation_date(reconciliation_date)
    if draft.duplicate is not None:
        raise HTTPException(409, {"message": draft.duplicate_conflict.message, "statement_id": draft.duplicate.statement_id})
    if not draft.copy_forward():
        raise HTTPException(404, "No statement for the previous month to copy from")
    values = draft.values()
    values["reconciliation_date"] = values["reconciliation_date"].isoformat()
    return values


@router.get("/dashboard", response_model=DashboardOut)
def statements_dashboard(user_id: UUID, month: str | None = None, db: Session = Depends(get_db), lc: StatementLifecycle = Depends(get_lifecycle)):
    get_user_or_404(user_id, db)
    selected = normalize_date(f"{month}-01") if month else date.today()
    if selected is None:
        raise HTTPException(422, "month must be YYYY-MM")
    return dashboard_summary(lc.history(user_id), selected)


@router.get("/export.xlsx")
def export_statements_xlsx(user_id: UUID, db: Session = Depends(get_db), lc: StatementLifecycle = Depends(get_lifecycle)):
    get_user_or_404(user_id, db)
    content = workbook_bytes(statement_rows(lc.history(user_id)))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="my-reconciliations.xlsx"'},
    )


@router.post("/", response_model=StatementOut, status_code=201)
def create_statement(user_id: UUID, payload: StatementIn, db: Session = Depends(get_db), lc: StatementLifecycle = Depends(get_lifecycle)):
    get_user_or_404(user_id, db)
    draft = ReconciliationDraft.from_values(payload.model_dump(), mode=CREATE, policy=lc.policy)
    return _save(lc, user_id, draft)


@router.post("/export.pdf")
def create_and_export_pdf(user_id: UUID, payload: StatementIn, db: Session = Depends(get_db), lc: StatementLifecycle = Depends(get_lifecycle)):
    """Save a new statement, then return it as a PDF."""
    get_user_or_404(user_id, db)
    draft = ReconciliationDraft.from_values(payload.model_dump(), mode=CREATE, policy=lc.policy)
    return _save_and_export(lc, user_id, draft, current_heading(db))


@router.get("/{record_id}", response_model=StatementOut)
def get_statement(user_id: UUID, record_id: UUID, lc: StatementLifecycle = Depends(get_lifecycle)):
    return _statement_or_404(lc, user_id, record_id)


@router.put("/{record_id}", response_model=StatementOut)
def update_statement(user_id: UUID, record_id: UUID, payload: StatementIn, lc: StatementLifecycle = Depends(get_lifecycle)):
    _statement_or_404(lc, user_id, record_id)
    draft = ReconciliationDraft.from_values(payload.model_dump(), mode=EDIT, policy=lc.policy)
    draft.record_id = record_id
    return _save(lc, user_id, draft)


@router.delete("/{record_id}", status_code=204)
def delete_statement(user_id: UUID, record_id: UUID, lc: StatementLifecycle = Depends(get_lifecycle)):
    try:
        deleted = lc.delete(user_id, record_id)
    except PersistenceFailure as exc:
        raise HTTPException(503, exc.message)
    if not deleted:
        raise HTTPException(404, "Statement not found")
    return


@router.get("/{record_id}/document", response_model=dict)
def statement_document(user_id: UUID, record_id: UUID, db: Session = Depends(get_db), lc: StatementLifecycle = Depends(get_lifecycle)):
    st = _statement_or_404(lc, user_id, record_id)
    return jsonable_encoder(asdict(build_document(st, current_heading(db))))


@router.get("/{record_id}/export.pdf")
def export_statement_pdf(user_id: UUID, record_id: UUID, db: Session = Depends(get_db), lc: StatementLifecycle = Depends(get_lifecycle)):
    st = _statement_or_404(lc, user_id, record_id)
    blocked = lc.export_gate(st)
    if blocked is not None:
        logger.info("pdf export of statement #%s refused: %s", blocked.statement_id, blocked.reason)
        raise HTTPException(409, blocked.reason)
    return _pdf_response(build_document(st, current_heading(db)))


@router.post("/{record_id}/export.pdf")
def save_and_export_pdf(user_id: UUID, record_id: UUID, payload: StatementIn, db: Session = Depends(get_db), lc: StatementLifecycle = Depends(get_lifecycle)):
    """Save edits to an existing statement, then return it as a PDF."""
    _statement_or_404(lc, user_id, record_id)
    draft = ReconciliationDraft.from_values(payload.model_dump(), mode=EDIT, policy=lc.policy)
    draft.record_id = record_id
    return _save_and_export(lc, user_id, draft, current_heading(db))


def _save_and_export(lc: StatementLifecycle, user_id: UUID, draft: ReconciliationDraft, heading: str) -> Response:
    try:
        result = lc.save_and_export(user_id, draft, heading)
    except PersistenceFailure as exc:
        raise HTTPException(503, exc.message)
    _raise_for(result.save)
    if result.blocked is not None:
        raise HTTPException(409, result.blocked.reason)
    return _pdf_response(result.document)
