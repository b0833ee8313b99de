from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from backend.app.core.errors import DependencyError, NotFoundError, PreconditionError, ValidationError
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.user import User
from backend.app.schemas.session import SessionFilter
from backend.app.services.patients import PatientService
from backend.app.services.session_repository import SessionRepository

NOW = datetime(2025, 3, 10, 12, 0)


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


def make_owner(db, email):
    user = User(email=email, hashed_password="x")
    db.add(user)
    db.commit()
    return user.id


@pytest.fixture
def owner_id(db):
    return make_owner(db, "owner@example.com")


@pytest.fixture
def patient(db, owner_id):
    return PatientService(db).create(owner_id, name="Asha", contact_number="555-0100")


def test_create_normalizes_and_snapshots_patient_name(db, owner_id, patient):
    repo = SessionRepository(db)
    session_obj = repo.create(owner_id, patient_id=patient.id, date=date(2025, 3, 10), time="14:00:00")
    assert session_obj.id is not None
    assert session_obj.date == "2025-03-10"
    assert session_obj.time == "14:00"
    assert session_obj.patient_name == "Asha"
    assert session_obj.notes == ""
    assert session_obj.completed is False
    assert session_obj.amount is None

    PatientService(db).update(owner_id, patient.id, name="Asha Rao")
    assert repo.get(owner_id, session_obj.id).patient_name == "Asha"


@pytest.mark.parametrize(
    "fields, field",
    [
        ({"patient_id": None, "date": "2025-03-10", "time": "10:00"}, "patient_id"),
        ({"date": None, "time": "10:00"}, "date"),
        ({"date": "2025-03-10", "time": ""}, "time"),
        ({"date": "10-03-2025", "time": "10:00"}, "date"),
    ],
)
def test_create_validation_names_field(db, owner_id, patient, fields, field):
    fields = {"patient_id": patient.id, **fields}
    with pytest.raises(ValidationError) as exc_info:
        SessionRepository(db).create(owner_id, **fields)
    assert exc_info.value.field == field


def test_create_for_foreign_patient_is_not_found(db, patient):
    other_owner = make_owner(db, "other@example.com")
    with pytest.raises(NotFoundError):
        SessionRepository(db).create(other_owner, patient_id=patient.id, date="2025-03-10", time="10:00")


def test_create_amount_requires_completion(db, owner_id, patient):
    with pytest.raises(ValidationError):
        SessionRepository(db).create(owner_id, patient_id=patient.id, date="2025-03-01", time="10:00", amount=100)


def test_create_completed_in_future_rejected(db, owner_id, patient):
    with pytest.raises(PreconditionError):
        SessionRepository(db).create(
            owner_id, patient_id=patient.id, date="2025-03-11", time="10:00", completed=True, now=NOW
        )


def test_get_foreign_session_looks_missing(db, owner_id, patient):
    repo = SessionRepository(db)
    session_obj = repo.create(owner_id, patient_id=patient.id, date="2025-03-10", time="10:00")
    other_owner = make_owner(db, "other@example.com")
    with pytest.raises(NotFoundError) as foreign:
        repo.get(other_owner, session_obj.id)
    with pytest.raises(NotFoundError) as missing:
        repo.get(owner_id, 9999)
    assert foreign.value.message == missing.value.message


def test_update_reopen_clears_amount(db, owner_id, patient):
    repo = SessionRepository(db)
    session_obj = repo.create(
        owner_id, patient_id=patient.id, date="2025-03-01", time="10:00", completed=True, amount=500, now=NOW
    )
    assert session_obj.amount == Decimal("500")

    updated = repo.update(owner_id, session_obj.id, {"completed": False})
    assert updated.completed is False
    assert updated.amount is None


def test_update_rejects_amount_on_incomplete_session(db, owner_id, patient):
    repo = SessionRepository(db)
    session_obj = repo.create(owner_id, patient_id=patient.id, date="2025-03-01", time="10:00")
    with pytest.raises(ValidationError):
        repo.update(owner_id, session_obj.id, {"amount": 100})
    assert repo.get(owner_id, session_obj.id).amount is None


def test_update_rejects_immutable_fields(db, owner_id, patient):
    repo = SessionRepository(db)
    session_obj = repo.create(owner_id, patient_id=patient.id, date="2025-03-01", time="10:00")
    with pytest.raises(ValidationError) as exc_info:
        repo.update(owner_id, session_obj.id, {"owner_id": 99})
    assert exc_info.value.field == "owner_id"


def test_update_failed_validation_leaves_session_untouched(db, owner_id, patient):
    repo = SessionRepository(db)
    session_obj = repo.create(owner_id, patient_id=patient.id, date="2025-03-01", time="10:00")
    with pytest.raises(ValidationError):
        repo.update(owner_id, session_obj.id, {"notes": "changed", "time": "25:00"})
    reloaded = repo.get(owner_id, session_obj.id)
    assert reloaded.notes == ""
    assert reloaded.time == "10:00"


def test_delete_is_owner_scoped(db, owner_id, patient):
    repo = SessionRepository(db)
    session_obj = repo.create(owner_id, patient_id=patient.id, date="2025-03-01", time="10:00")
    other_owner = make_owner(db, "other@example.com")
    with pytest.raises(NotFoundError):
        repo.delete(other_owner, session_obj.id)
    repo.delete(owner_id, session_obj.id)
    with pytest.raises(NotFoundError):
        repo.delete(owner_id, session_obj.id)


def test_list_filters_inclusive_date_range_and_completion(db, owner_id, patient):
    repo = SessionRepository(db)
    second_patient = PatientService(db).create(owner_id, name="Ben", contact_number="555-0101")
    for day in ("2025-03-01", "2025-03-05", "2025-03-10"):
        repo.create(owner_id, patient_id=patient.id, date=day, time="10:00")
    repo.create(owner_id, patient_id=second_patient.id, date="2025-03-05", time="09:00", completed=True, now=NOW)

    in_range = repo.list(owner_id, SessionFilter(start_date="2025-03-05", end_date="2025-03-10"))
    assert [(s.date, s.time) for s in in_range] == [("2025-03-10", "10:00"), ("2025-03-05", "10:00"), ("2025-03-05", "09:00")]

    by_patient = repo.list(owner_id, SessionFilter(patient_id=second_patient.id))
    assert [s.patient_name for s in by_patient] == ["Ben"]

    assert len(repo.list(owner_id, SessionFilter(completed=True))) == 1
    assert len(repo.list(owner_id, SessionFilter(completed=False))) == 3


def test_list_rejects_malformed_filter_date(db, owner_id):
    with pytest.raises(ValidationError) as exc_info:
        SessionRepository(db).list(owner_id, SessionFilter(start_date="March 5"))
    assert exc_info.value.field == "start_date"


def test_storage_failure_on_write_is_dependency_error(db, owner_id, patient, monkeypatch):
    repo = SessionRepository(db)

    def broken_commit():
        raise OperationalError("INSERT INTO sessions", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(DependencyError):
        repo.create(owner_id, patient_id=patient.id, date="2025-03-10", time="10:00")
    monkeypatch.undo()
    assert repo.find(owner_id) == []


def test_read_retried_once_before_failing(db, owner_id, monkeypatch):
    repo = SessionRepository(db)
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return ["ok"]

    assert repo._read(flaky) == ["ok"]

    def always_broken():
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    with pytest.raises(DependencyError):
        repo._read(always_broken)


def test_update_cannot_move_completed_session_into_future(db, owner_id, patient):
    repo = SessionRepository(db)
    session_obj = repo.create(
        owner_id, patient_id=patient.id, date="2025-03-01", time="10:00", completed=True, amount=500, now=NOW
    )
    with pytest.raises(PreconditionError) as exc_info:
        repo.update(owner_id, session_obj.id, {"date": "2025-03-20"}, now=NOW)
    assert exc_info.value.field == "date"
    reloaded = repo.get(owner_id, session_obj.id)
    assert reloaded.date == "2025-03-01"
    assert reloaded.completed is True

    moved = repo.update(owner_id, session_obj.id, {"date": "2025-03-10"}, now=NOW)
    assert moved.date == "2025-03-10"


def test_update_reopen_and_reschedule_into_future(db, owner_id, patient):
    repo = SessionRepository(db)
    session_obj = repo.create(
        owner_id, patient_id=patient.id, date="2025-03-01", time="10:00", completed=True, now=NOW
    )
    updated = repo.update(owner_id, session_obj.id, {"date": "2025-03-20", "completed": False}, now=NOW)
    assert updated.date == "2025-03-20"
    assert updated.completed is False


def test_patient_reads_retried_once(db, owner_id, patient, monkeypatch):
    real_query = db.query
    calls = []

    def flaky_query(*entities):
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return real_query(*entities)

    monkeypatch.setattr(db, "query", flaky_query)
    assert PatientService(db).get(owner_id, patient.id).id == patient.id
    assert len(calls) == 2


def test_storage_failure_on_patient_reads_is_dependency_error(db, owner_id, patient, monkeypatch):
    def broken_query(*entities):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "query", broken_query)
    service = PatientService(db)
    with pytest.raises(DependencyError):
        service.get(owner_id, patient.id)
    with pytest.raises(DependencyError):
        service.list(owner_id)
    with pytest.raises(DependencyError):
        service.delete(owner_id, patient.id)
