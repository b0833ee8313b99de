"""Session endpoints."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, status

from backend.app.dependencies.auth import get_current_user, get_engine
from backend.app.models.session import Session as SessionModel
from backend.app.models.user import User
from backend.app.schemas.session import (
    SessionComplete,
    SessionCreate,
    SessionFilter,
    SessionRead,
    SessionUpdate,
    SessionWithReminder,
)
from backend.app.services.session_engine import SessionEngine

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _with_reminder(session_obj: SessionModel, handle: Optional[str]) -> dict:
    data = SessionRead.model_validate(session_obj).model_dump()
    data["reminder_handle"] = handle
    return data


@router.post("/", response_model=SessionWithReminder, status_code=status.HTTP_201_CREATED)
async def create_session(
    session_in: SessionCreate,
    engine: SessionEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    session_obj, handle = engine.create_session(
        current_user.id,
        patient_id=session_in.patient_id,
        patient_name=session_in.patient_name,
        date=session_in.date,
        time=session_in.time,
        notes=session_in.notes,
        completed=session_in.completed,
        amount=session_in.amount,
    )
    return _with_reminder(session_obj, handle)


@router.get("/", response_model=list[SessionRead])
async def list_sessions(
    patient_id: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    completed: bool | None = None,
    engine: SessionEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    filters = SessionFilter(patient_id=patient_id, start_date=start_date, end_date=end_date, completed=completed)
    return engine.list_sessions(current_user.id, filters)


@router.get("/today", response_model=list[SessionRead])
async def list_today(engine: SessionEngine = Depends(get_engine), current_user: User = Depends(get_current_user)):
    return engine.list_today(current_user.id)


@router.get("/upcoming", response_model=list[SessionRead])
async def list_upcoming(engine: SessionEngine = Depends(get_engine), current_user: User = Depends(get_current_user)):
    return engine.list_upcoming(current_user.id)


@router.get("/past", response_model=list[SessionRead])
async def list_past(engine: SessionEngine = Depends(get_engine), current_user: User = Depends(get_current_user)):
    return engine.list_past(current_user.id)


@router.get("/patient/{patient_id}", response_model=list[SessionRead])
async def list_patient_sessions(
    patient_id: int,
    view: Literal["all", "upcoming", "past"] = "all",
    engine: SessionEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    return engine.list_by_patient(current_user.id, patient_id, view=view)


@router.get("/{session_id}", response_model=SessionRead)
async def get_session(session_id: int, engine: SessionEngine = Depends(get_engine), current_user: User = Depends(get_current_user)):
    return engine.get_session(current_user.id, session_id)


@router.put("/{session_id}", response_model=SessionWithReminder)
async def update_session(
    session_id: int,
    session_in: SessionUpdate,
    engine: SessionEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    previous_handle = engine.notifier.pending_handle(current_user.id, session_id)
    session_obj, handle = engine.update_session(
        current_user.id,
        session_id,
        session_in.model_dump(exclude_unset=True),
        previous_handle=previous_handle,
    )
    return _with_reminder(session_obj, handle)


@router.delete("/{session_id}")
async def delete_session(session_id: int, engine: SessionEngine = Depends(get_engine), current_user: User = Depends(get_current_user)):
    handle = engine.notifier.pending_handle(current_user.id, session_id)
    engine.delete_session(current_user.id, session_id, handle=handle)
    return {"status": "deleted", "id": session_id}


@router.post("/{session_id}/complete", response_model=SessionRead)
async def complete_session(
    session_id: int,
    payload: SessionComplete | None = None,
    engine: SessionEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    payload = payload or SessionComplete()
    return engine.complete_session(current_user.id, session_id, amount=payload.amount, context=payload.context)


@router.post("/{session_id}/reopen", response_model=SessionRead)
async def reopen_session(session_id: int, engine: SessionEngine = Depends(get_engine), current_user: User = Depends(get_current_user)):
    return engine.reopen_session(current_user.id, session_id)
