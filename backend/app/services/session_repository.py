"""Owner-scoped persistence for sessions."""

import logging
from datetime import datetime
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.orm import Session

from backend.app.core.errors import NotFoundError, SessionEngineError, ValidationError
from backend.app.core.time import storage_date, storage_time
from backend.app.db.storage import commit_or_raise, read_with_retry
from backend.app.models.patient import Patient
from backend.app.models.session import Session as SessionModel
from backend.app.schemas.session import SessionFilter
from backend.app.services.completion import ensure_not_future, mark_complete, mark_incomplete, validate_amount

logger = logging.getLogger(__name__)

T = TypeVar("T")

IMMUTABLE_FIELDS = ("id", "owner_id")
MUTABLE_FIELDS = ("patient_id", "patient_name", "date", "time", "notes", "completed", "amount")


class SessionRepository:
    def __init__(self, db: Session):
        self.db = db

    def _read(self, fetch: Callable[[], T]) -> T:
        return read_with_retry(self.db, fetch)

    def _commit(self) -> None:
        commit_or_raise(self.db)

    def _owned_patient(self, owner_id: int, patient_id: int) -> Patient:
        patient = self._read(
            lambda: self.db.query(Patient).filter(Patient.id == patient_id, Patient.owner_id == owner_id).first()
        )
        if not patient:
            raise NotFoundError("Patient not found", field="patient_id")
        return patient

    def create(
        self,
        owner_id: int,
        *,
        patient_id: Optional[int],
        date,
        time,
        notes: Optional[str] = "",
        completed: bool = False,
        amount=None,
        patient_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SessionModel:
        if patient_id is None:
            raise ValidationError("Patient ID is required", field="patient_id")
        if not date:
            raise ValidationError("Date is required", field="date")
        if not time:
            raise ValidationError("Time is required", field="time")
        date_str = storage_date(date)
        time_str = storage_time(time)

        patient = self._owned_patient(owner_id, patient_id)
        session_obj = SessionModel(
            owner_id=owner_id,
            patient_id=patient.id,
            patient_name=(patient_name or "").strip() or patient.name,
            date=date_str,
            time=time_str,
            notes=notes or "",
            completed=False,
            amount=None,
        )
        if completed:
            mark_complete(session_obj, amount, now=now)
        elif amount is not None:
            raise ValidationError("Amount can only be recorded on a completed session", field="amount")

        self.db.add(session_obj)
        self._commit()
        self.db.refresh(session_obj)
        logger.info("Created session %s for patient %s (owner %s)", session_obj.id, patient.id, owner_id)
        return session_obj

    def get(self, owner_id: int, session_id: int) -> SessionModel:
        session_obj = self._read(
            lambda: self.db.query(SessionModel)
            .filter(SessionModel.id == session_id, SessionModel.owner_id == owner_id)
            .first()
        )
        if not session_obj:
            raise NotFoundError("Session not found")
        return session_obj

    def update(self, owner_id: int, session_id: int, patch: dict, *, now: Optional[datetime] = None) -> SessionModel:
        session_obj = self.get(owner_id, session_id)
        for field in patch:
            if field in IMMUTABLE_FIELDS:
                raise ValidationError(f"{field} cannot be changed", field=field)
            if field not in MUTABLE_FIELDS:
                raise ValidationError(f"Unknown field {field}", field=field)
        try:
            self._apply_patch(owner_id, session_obj, patch, now)
        except SessionEngineError:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(session_obj)
        logger.info("Updated session %s (owner %s): %s", session_obj.id, owner_id, sorted(patch))
        return session_obj

    def _apply_patch(self, owner_id: int, session_obj: SessionModel, patch: dict, now: Optional[datetime]) -> None:
        if "patient_id" in patch:
            if patch["patient_id"] is None:
                raise ValidationError("Patient ID is required", field="patient_id")
            session_obj.patient_id = self._owned_patient(owner_id, patch["patient_id"]).id
        if "patient_name" in patch:
            name = (patch["patient_name"] or "").strip()
            if not name:
                raise ValidationError("Patient name cannot be empty", field="patient_name")
            session_obj.patient_name = name
        if "date" in patch:
            if not patch["date"]:
                raise ValidationError("Date is required", field="date")
            session_obj.date = storage_date(patch["date"])
        if "time" in patch:
            if not patch["time"]:
                raise ValidationError("Time is required", field="time")
            session_obj.time = storage_time(patch["time"])
        if "notes" in patch:
            session_obj.notes = patch["notes"] or ""

        completed = patch.get("completed")
        if completed is False:
            if patch.get("amount") is not None:
                raise ValidationError("Amount can only be recorded on a completed session", field="amount")
            mark_incomplete(session_obj)
        elif completed is True:
            mark_complete(session_obj, patch.get("amount"), now=now)
        elif "amount" in patch:
            if patch["amount"] is None:
                session_obj.amount = None
            elif not session_obj.completed:
                raise ValidationError("Amount can only be recorded on a completed session", field="amount")
            else:
                session_obj.amount = validate_amount(patch["amount"])

        # A completed session cannot be moved to a day that has not happened yet.
        if "date" in patch and session_obj.completed:
            ensure_not_future(session_obj, now)

    def save(self, session_obj: SessionModel) -> SessionModel:
        self._commit()
        self.db.refresh(session_obj)
        return session_obj

    def delete(self, owner_id: int, session_id: int) -> None:
        session_obj = self.get(owner_id, session_id)
        self.db.delete(session_obj)
        self._commit()
        logger.info("Deleted session %s (owner %s)", session_id, owner_id)

    def delete_for_patient(self, owner_id: int, patient_id: int) -> List[int]:
        """Stage deletion of every session of a patient. The caller commits."""
        sessions = self._read(
            lambda: self.db.query(SessionModel)
            .filter(SessionModel.owner_id == owner_id, SessionModel.patient_id == patient_id)
            .all()
        )
        for session_obj in sessions:
            self.db.delete(session_obj)
        return [session_obj.id for session_obj in sessions]

    def find(self, owner_id: int, filters: Optional[SessionFilter] = None) -> List[SessionModel]:
        """Matching sessions in insertion order."""
        query = self.db.query(SessionModel).filter(SessionModel.owner_id == owner_id)
        if filters is not None:
            if filters.patient_id is not None:
                query = query.filter(SessionModel.patient_id == filters.patient_id)
            if filters.start_date:
                query = query.filter(SessionModel.date >= storage_date(filters.start_date, field="start_date"))
            if filters.end_date:
                query = query.filter(SessionModel.date <= storage_date(filters.end_date, field="end_date"))
            if filters.completed is not None:
                query = query.filter(SessionModel.completed.is_(filters.completed))
        query = query.order_by(SessionModel.id.asc())
        return self._read(query.all)

    def list(self, owner_id: int, filters: Optional[SessionFilter] = None) -> List[SessionModel]:
        """Matching sessions, most recent schedule first."""
        sessions = self.find(owner_id, filters)
        return sorted(sessions, key=lambda s: (s.date, s.time), reverse=True)
