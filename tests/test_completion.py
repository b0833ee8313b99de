from datetime import datetime
from decimal import Decimal

import pytest

from backend.app.core.errors import PreconditionError, ValidationError
from backend.app.db import base  # noqa: F401  registers all mappers
from backend.app.models.session import Session as SessionModel
from backend.app.services.completion import (
    SessionState,
    mark_complete,
    mark_incomplete,
    state_of,
    validate_amount,
)

NOW = datetime(2025, 3, 10, 12, 0)


def make_session(date="2025-03-10", time="10:00", completed=False, amount=None):
    return SessionModel(
        id=1,
        owner_id=1,
        patient_id=1,
        patient_name="Asha",
        date=date,
        time=time,
        notes="",
        completed=completed,
        amount=amount,
    )


def test_complete_past_session_with_amount():
    session_obj = make_session(date="2025-03-01")
    mark_complete(session_obj, 500, now=NOW)
    assert session_obj.completed is True
    assert session_obj.amount == Decimal("500")
    assert state_of(session_obj) is SessionState.COMPLETED


def test_complete_without_amount_is_payment_pending():
    session_obj = make_session()
    mark_complete(session_obj, now=NOW)
    assert session_obj.completed is True
    assert session_obj.amount is None


def test_complete_later_today_is_allowed():
    session_obj = make_session(date="2025-03-10", time="18:00")
    mark_complete(session_obj, now=NOW)
    assert session_obj.completed is True


def test_complete_future_session_rejected_and_unchanged():
    session_obj = make_session(date="2025-03-11")
    with pytest.raises(PreconditionError):
        mark_complete(session_obj, 300, now=NOW)
    assert session_obj.completed is False
    assert session_obj.amount is None


def test_complete_from_upcoming_context_always_rejected():
    session_obj = make_session(date="2020-01-01")
    with pytest.raises(PreconditionError) as exc_info:
        mark_complete(session_obj, context="upcoming", now=NOW)
    assert "Upcoming sessions cannot be marked as complete" in exc_info.value.message
    assert session_obj.completed is False


def test_complete_from_past_context_skips_date_gate():
    session_obj = make_session(date="2030-01-01")
    mark_complete(session_obj, 100, context="past", now=NOW)
    assert session_obj.completed is True


def test_unknown_context_rejected():
    with pytest.raises(ValidationError):
        mark_complete(make_session(), context="someday", now=NOW)


def test_recording_payment_on_completed_session():
    session_obj = make_session(date="2030-01-01", completed=True)
    mark_complete(session_obj, 250, now=NOW)
    assert session_obj.amount == Decimal("250")


@pytest.mark.parametrize("amount", [0, -5, "abc", float("nan"), True])
def test_invalid_amounts_rejected(amount):
    with pytest.raises(ValidationError) as exc_info:
        validate_amount(amount)
    assert exc_info.value.field == "amount"


def test_mark_incomplete_always_clears_amount():
    session_obj = make_session(completed=True, amount=Decimal("500"))
    mark_incomplete(session_obj)
    assert session_obj.completed is False
    assert session_obj.amount is None
    assert state_of(session_obj) is SessionState.INCOMPLETE


def test_amount_rounded_to_cents():
    assert validate_amount("12.345") == Decimal("12.35")
    assert validate_amount(99.999) == Decimal("100.00")


@pytest.mark.parametrize("amount", [0.004, "0.001"])
def test_sub_cent_amount_rejected(amount):
    with pytest.raises(ValidationError) as exc_info:
        validate_amount(amount)
    assert exc_info.value.field == "amount"


def test_amount_too_large_for_column_rejected():
    assert validate_amount("99999999.99") == Decimal("99999999.99")
    with pytest.raises(ValidationError):
        validate_amount(10 ** 8)


def test_sub_cent_amount_leaves_session_incomplete():
    session_obj = make_session(date="2025-03-01")
    with pytest.raises(ValidationError):
        mark_complete(session_obj, 0.004, now=NOW)
    assert session_obj.completed is False
    assert session_obj.amount is None
