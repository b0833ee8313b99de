"""Named views over an owner's sessions: today, upcoming, past, per patient.

"Upcoming" and "past" are decided by the completion flag only. A session whose
date has gone by but was never completed stays upcoming until someone completes
or deletes it.
"""

from datetime import datetime
from typing import Callable, List, Optional

from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.core.time import combine, local_now, today_storage_date
from backend.app.models.session import Session as SessionModel
from backend.app.schemas.session import SessionFilter
from backend.app.services.patients import PatientService
from backend.app.services.session_repository import SessionRepository

PATIENT_VIEWS = ("all", "upcoming", "past")


def schedule_key(session_obj: SessionModel) -> datetime:
    return combine(session_obj.date, session_obj.time)


def sort_ascending(sessions: List[SessionModel]) -> List[SessionModel]:
    return sorted(sessions, key=schedule_key)


def sort_descending(sessions: List[SessionModel]) -> List[SessionModel]:
    # reverse=True keeps equal keys in their original (insertion) order
    return sorted(sessions, key=schedule_key, reverse=True)


class SessionViews:
    def __init__(
        self,
        repository: SessionRepository,
        patients: PatientService,
        clock: Callable[[], datetime] = local_now,
    ):
        self.repository = repository
        self.patients = patients
        self.clock = clock

    def today(self, owner_id: int, now: Optional[datetime] = None) -> List[SessionModel]:
        today = today_storage_date(now or self.clock())
        sessions = self.repository.find(owner_id, SessionFilter(start_date=today, end_date=today))
        return sorted(sessions, key=lambda s: s.time)

    def upcoming(self, owner_id: int) -> List[SessionModel]:
        return sort_ascending(self.repository.find(owner_id, SessionFilter(completed=False)))

    def past(self, owner_id: int) -> List[SessionModel]:
        return sort_descending(self.repository.find(owner_id, SessionFilter(completed=True)))

    def by_patient(self, owner_id: int, patient_id: int, view: str = "all") -> List[SessionModel]:
        if view not in PATIENT_VIEWS:
            raise ValidationError(f"Unknown view {view!r}", field="view")
        if self.patients.find_owned(owner_id, patient_id) is None:
            raise NotFoundError("Patient not found", field="patient_id")

        if view == "past":
            return sort_descending(
                self.repository.find(owner_id, SessionFilter(patient_id=patient_id, completed=True))
            )
        completed = False if view == "upcoming" else None
        return sort_ascending(
            self.repository.find(owner_id, SessionFilter(patient_id=patient_id, completed=completed))
        )
