"""Owner-scoped patient operations, including the session cascade on delete."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.db.storage import commit_or_raise, read_with_retry
from backend.app.models.patient import Patient
from backend.app.services.session_repository import SessionRepository

logger = logging.getLogger(__name__)


def _required_text(value: Optional[str], field: str, label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{label} is required", field=field)
    return text


class PatientService:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        commit_or_raise(self.db)

    def find_owned(self, owner_id: int, patient_id: int) -> Optional[Patient]:
        return read_with_retry(
            self.db,
            lambda: self.db.query(Patient).filter(Patient.id == patient_id, Patient.owner_id == owner_id).first(),
        )

    def get(self, owner_id: int, patient_id: int) -> Patient:
        patient = self.find_owned(owner_id, patient_id)
        if not patient:
            raise NotFoundError("Patient not found", field="patient_id")
        return patient

    def list(self, owner_id: int) -> List[Patient]:
        return read_with_retry(
            self.db,
            lambda: self.db.query(Patient)
            .filter(Patient.owner_id == owner_id)
            .order_by(Patient.created_at.desc(), Patient.id.desc())
            .all(),
        )

    def create(self, owner_id: int, *, name: Optional[str], contact_number: Optional[str]) -> Patient:
        patient = Patient(
            owner_id=owner_id,
            name=_required_text(name, "name", "Name"),
            contact_number=_required_text(contact_number, "contact_number", "Contact number"),
        )
        self.db.add(patient)
        self._commit()
        self.db.refresh(patient)
        logger.info("Created patient %s (owner %s)", patient.id, owner_id)
        return patient

    def update(
        self,
        owner_id: int,
        patient_id: int,
        *,
        name: Optional[str] = None,
        contact_number: Optional[str] = None,
    ) -> Patient:
        patient = self.get(owner_id, patient_id)
        # Existing sessions keep the name they were booked under.
        if name is not None:
            patient.name = _required_text(name, "name", "Name")
        if contact_number is not None:
            patient.contact_number = _required_text(contact_number, "contact_number", "Contact number")
        self._commit()
        self.db.refresh(patient)
        return patient

    def delete(self, owner_id: int, patient_id: int) -> List[int]:
        """Delete a patient and all of its sessions in one commit.

        Returns the ids of the deleted sessions.
        """
        patient = self.get(owner_id, patient_id)
        session_ids = SessionRepository(self.db).delete_for_patient(owner_id, patient.id)
        self.db.delete(patient)
        self._commit()
        logger.info("Deleted patient %s and %d session(s) (owner %s)", patient_id, len(session_ids), owner_id)
        return session_ids
