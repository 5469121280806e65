from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, constr


class UserCreate(BaseModel):
    email: constr(min_length=3, max_length=320)
    display_name: constr(max_length=200) | None = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    email: str
    display_name: str | None
    created_at: datetime
