"""Patient endpoints."""

from fastapi import APIRouter, Depends, status

from backend.app.dependencies.auth import get_current_user, get_engine
from backend.app.models.user import User
from backend.app.schemas.patient import PatientCreate, PatientDeleted, PatientRead, PatientUpdate
from backend.app.services.session_engine import SessionEngine

router = APIRouter(prefix="/patients", tags=["patients"])


@router.post("/", response_model=PatientRead, status_code=status.HTTP_201_CREATED)
async def create_patient(
    patient_in: PatientCreate,
    engine: SessionEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    return engine.patients.create(current_user.id, name=patient_in.name, contact_number=patient_in.contact_number)


@router.get("/", response_model=list[PatientRead])
async def list_patients(engine: SessionEngine = Depends(get_engine), current_user: User = Depends(get_current_user)):
    return engine.patients.list(current_user.id)


@router.get("/{patient_id}", response_model=PatientRead)
async def get_patient(patient_id: int, engine: SessionEngine = Depends(get_engine), current_user: User = Depends(get_current_user)):
    return engine.get_patient(current_user.id, patient_id)


@router.put("/{patient_id}", response_model=PatientRead)
async def update_patient(
    patient_id: int,
    patient_in: PatientUpdate,
    engine: SessionEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    return engine.patients.update(
        current_user.id,
        patient_id,
        name=patient_in.name,
        contact_number=patient_in.contact_number,
    )


@router.delete("/{patient_id}", response_model=PatientDeleted)
async def delete_patient(patient_id: int, engine: SessionEngine = Depends(get_engine), current_user: User = Depends(get_current_user)):
    sessions = engine.list_by_patient(current_user.id, patient_id)
    handles = [engine.notifier.pending_handle(current_user.id, s.id) for s in sessions]
    deleted_ids = engine.delete_patient(current_user.id, patient_id, handles=handles)
    return {"status": "deleted", "id": patient_id, "deleted_session_ids": deleted_ids}
