from pydantic import BaseModel, ConfigDict, constr


class ReportSettingsIn(BaseModel):
    report_heading: constr(strip_whitespace=True, min_length=1, max_length=300)


class ReportSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    report_heading: str
