"""Patient schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PatientBase(BaseModel):
    name: str
    contact_number: str


class PatientCreate(PatientBase):
    pass


class PatientUpdate(BaseModel):
    name: Optional[str] = None
    contact_number: Optional[str] = None


class PatientRead(PatientBase):
    id: int
    owner_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PatientDeleted(BaseModel):
    status: str
    id: int
    deleted_session_ids: list[int]
