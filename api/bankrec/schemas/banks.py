from uuid import UUID
from pydantic import BaseModel, ConfigDict, constr


class BankCreate(BaseModel):
    code: constr(strip_whitespace=True, min_length=1, max_length=32)
    name: constr(strip_whitespace=True, min_length=1, max_length=200)


class BankPatch(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=200) | None = None


class BankOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    code: str
    name: str


class BankImportResult(BaseModel):
    created: int
    skipped: int
