from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bankrec.config import Settings
from bankrec.db import get_db
from bankrec.models.base import utcnow
from bankrec.models.report_settings import ReportSettings
from bankrec.schemas.report_settings import ReportSettingsIn, ReportSettingsOut

settings = Settings()

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


def current_heading(db: Session) -> str:
    row = db.get(ReportSettings, 1)
    return row.report_heading if row else settings.default_report_heading


@router.get("/report", response_model=ReportSettingsOut)
def get_report_settings(db: Session = Depends(get_db)):
    return ReportSettingsOut(report_heading=current_heading(db))


@router.put("/report", response_model=ReportSettingsOut)
def put_report_settings(payload: ReportSettingsIn, db: Session = Depends(get_db)):
    row = db.get(ReportSettings, 1)
    if row is None:
        row = ReportSettings(id=1, report_heading=payload.report_heading)
        db.add(row)
    else:
        row.report_heading = payload.report_heading
        row.updated_at = utcnow()
    db.commit()
    return ReportSettingsOut(report_heading=row.report_heading)
