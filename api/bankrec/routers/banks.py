import logging
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from sqlalchemy.orm import Session

from bankrec.db import get_db
from bankrec.models.bank import Bank
from bankrec.schemas.banks import BankCreate, BankPatch, BankOut, BankImportResult
from bankrec.services.renderers import read_code_name_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/banks", tags=["banks"])


@router.get("/", response_model=list[BankOut])
def list_banks(db: Session = Depends(get_db)):
    return db.query(Bank).order_by(Bank.code).all()


@router.post("/", response_model=BankOut, status_code=201)
def create_bank(payload: BankCreate, db: Session = Depends(get_db)):
    if db.query(Bank).filter_by(code=payload.code).one_or_none():
        raise HTTPException(409, f"Bank code {payload.code} already exists")
    b = Bank(code=payload.code, name=payload.name)
    db.add(b)
    db.commit()
    db.refresh(b)
    return b


@router.patch("/{bank_id}", response_model=BankOut)
def update_bank(bank_id: UUID, payload: BankPatch, db: Session = Depends(get_db)):
    b = db.get(Bank, bank_id)
    if not b:
        raise HTTPException(404, "Bank not found")
    # code is the lookup key on saved statements, so only the name is editable
    if payload.name is not None:
        b.name = payload.name
    db.commit()
    db.refresh(b)
    return b


@router.delete("/{bank_id}", status_code=204)
def delete_bank(bank_id: UUID, db: Session = Depends(get_db)):
    b = db.get(Bank, bank_id)
    if not b:
        raise HTTPException(404, "Bank not found")
    db.delete(b)
    db.commit()
    return


@router.post("/import", response_model=BankImportResult)
async def import_banks(file: UploadFile = File(...), db: Session = Depends(get_db)):
    data = await file.read()
    try:
        rows = read_code_name_rows(data)
    except Exception as exc:
        raise HTTPException(400, f"Could not read spreadsheet: {exc}")
    existing = {code for (code,) in db.query(Bank.code).all()}
    created = skipped = 0
    for code, name in rows:
        if code in existing:
            skipped += 1
            continue
        db.add(Bank(code=code, name=name))
        existing.add(code)
        created += 1
    db.commit()
    logger.info("imported banks from %s: %d created, %d skipped", file.filename, created, skipped)
    return BankImportResult(created=created, skipped=skipped)
