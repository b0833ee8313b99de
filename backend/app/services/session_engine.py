"""Session lifecycle operations offered to the transport layer.

Every call takes the owner id explicitly. Create and update return the
reminder handle alongside the session; the caller owns that handle and passes
it back on the next update or delete.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from backend.app.core.settings import get_settings
from backend.app.core.time import local_now
from backend.app.models.patient import Patient
from backend.app.models.session import Session as SessionModel
from backend.app.schemas.session import SessionFilter
from backend.app.services.completion import mark_complete, mark_incomplete
from backend.app.services.notifications import DatabaseNotifier
from backend.app.services.patients import PatientService
from backend.app.services.reminders import ReminderScheduler
from backend.app.services.session_repository import SessionRepository
from backend.app.services.session_views import SessionViews

logger = logging.getLogger(__name__)


class SessionEngine:
    def __init__(
        self,
        db: Session,
        scheduler: Optional[ReminderScheduler] = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.db = db
        self.clock = clock
        self.repository = SessionRepository(db)
        self.patients = PatientService(db)
        self.views = SessionViews(self.repository, self.patients, clock=clock)
        if scheduler is None:
            lead = timedelta(minutes=get_settings().reminder_lead_minutes)
            scheduler = ReminderScheduler(DatabaseNotifier(db), lead=lead, clock=clock)
        self.scheduler = scheduler

    @property
    def notifier(self):
        return self.scheduler.notifier

    def create_session(self, owner_id: int, **fields) -> Tuple[SessionModel, Optional[str]]:
        session_obj = self.repository.create(owner_id, now=self.clock(), **fields)
        # The write is committed; a reminder failure must not undo it.
        handle = self.scheduler.schedule(session_obj)
        return session_obj, handle

    def update_session(
        self,
        owner_id: int,
        session_id: int,
        patch: dict,
        previous_handle: Optional[str] = None,
    ) -> Tuple[SessionModel, Optional[str]]:
        current = self.repository.get(owner_id, session_id)
        before = (current.date, current.time)
        session_obj = self.repository.update(owner_id, session_id, patch, now=self.clock())
        if (session_obj.date, session_obj.time) == before:
            return session_obj, previous_handle
        return session_obj, self.scheduler.reschedule(previous_handle, session_obj)

    def delete_session(self, owner_id: int, session_id: int, handle: Optional[str] = None) -> None:
        self.repository.delete(owner_id, session_id)
        self.scheduler.cancel(handle)

    def get_session(self, owner_id: int, session_id: int) -> SessionModel:
        return self.repository.get(owner_id, session_id)

    def list_sessions(self, owner_id: int, filters: Optional[SessionFilter] = None) -> List[SessionModel]:
        return self.repository.list(owner_id, filters)

    def list_today(self, owner_id: int) -> List[SessionModel]:
        return self.views.today(owner_id, now=self.clock())

    def list_upcoming(self, owner_id: int) -> List[SessionModel]:
        return self.views.upcoming(owner_id)

    def list_past(self, owner_id: int) -> List[SessionModel]:
        return self.views.past(owner_id)

    def list_by_patient(self, owner_id: int, patient_id: int, view: str = "all") -> List[SessionModel]:
        return self.views.by_patient(owner_id, patient_id, view=view)

    def complete_session(
        self,
        owner_id: int,
        session_id: int,
        amount=None,
        context: Optional[str] = None,
    ) -> SessionModel:
        session_obj = self.repository.get(owner_id, session_id)
        mark_complete(session_obj, amount, context=context, now=self.clock())
        self.repository.save(session_obj)
        logger.info("Completed session %s (owner %s, amount=%s)", session_id, owner_id, session_obj.amount)
        return session_obj

    def reopen_session(self, owner_id: int, session_id: int) -> SessionModel:
        session_obj = self.repository.get(owner_id, session_id)
        mark_incomplete(session_obj)
        self.repository.save(session_obj)
        logger.info("Reopened session %s (owner %s)", session_id, owner_id)
        return session_obj

    def delete_patient(self, owner_id: int, patient_id: int, handles: Iterable[Optional[str]] = ()) -> List[int]:
        session_ids = self.patients.delete(owner_id, patient_id)
        for handle in handles:
            self.scheduler.cancel(handle)
        return session_ids

    def get_patient(self, owner_id: int, patient_id: int) -> Patient:
        return self.patients.get(owner_id, patient_id)
