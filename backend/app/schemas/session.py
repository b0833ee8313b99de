"""Session schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class SessionBase(BaseModel):
    date: Optional[str] = None
    time: Optional[str] = None
    notes: Optional[str] = ""


class SessionCreate(SessionBase):
    # Required fields are checked by the repository so the error names the field.
    patient_id: Optional[int] = None
    patient_name: Optional[str] = None
    completed: bool = False
    amount: Optional[float] = None


class SessionUpdate(BaseModel):
    patient_id: Optional[int] = None
    patient_name: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    notes: Optional[str] = None
    completed: Optional[bool] = None
    amount: Optional[float] = None


class SessionComplete(BaseModel):
    amount: Optional[float] = None
    context: Optional[Literal["past", "upcoming"]] = None


class SessionFilter(BaseModel):
    patient_id: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    completed: Optional[bool] = None


class SessionRead(BaseModel):
    id: int
    owner_id: int
    patient_id: int
    patient_name: str
    date: str
    time: str
    notes: str
    completed: bool
    amount: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SessionWithReminder(SessionRead):
    reminder_handle: Optional[str] = None
