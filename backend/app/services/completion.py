"""Completion and payment transitions for a session.

Two states: incomplete (initial) and completed. A completed session may carry
an amount; reopening always clears it.
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from backend.app.core.errors import PreconditionError, ValidationError
from backend.app.core.time import local_now, parse_date
from backend.app.models.session import Session as SessionModel

logger = logging.getLogger(__name__)

UPCOMING_CONTEXT = "upcoming"
PAST_CONTEXT = "past"
COMPLETION_CONTEXTS = (UPCOMING_CONTEXT, PAST_CONTEXT)

UPCOMING_COMPLETION_MESSAGE = (
    "Upcoming sessions cannot be marked as complete. Please wait until the session date has passed."
)
FUTURE_COMPLETION_MESSAGE = "Sessions cannot be completed before they occur."

CENT = Decimal("0.01")
# Numeric(10, 2) holds at most eight digits before the decimal point.
MAX_AMOUNT = Decimal("99999999.99")


class SessionState(str, Enum):
    INCOMPLETE = "incomplete"
    COMPLETED = "completed"


def state_of(session_obj: SessionModel) -> SessionState:
    return SessionState.COMPLETED if session_obj.completed else SessionState.INCOMPLETE


def validate_amount(amount) -> Optional[Decimal]:
    """Parse an amount and round it to cents. Anything that rounds to zero is refused."""
    if amount is None:
        return None
    if isinstance(amount, bool):
        raise ValidationError("Amount must be a positive number", field="amount")
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("Amount must be a positive number", field="amount") from exc
    if not value.is_finite():
        raise ValidationError("Amount must be a positive number", field="amount")
    if value > MAX_AMOUNT:
        raise ValidationError(f"Amount cannot exceed {MAX_AMOUNT}", field="amount")
    value = value.quantize(CENT, rounding=ROUND_HALF_UP)
    if value <= 0:
        raise ValidationError("Amount must be a positive number", field="amount")
    return value


def ensure_not_future(session_obj: SessionModel, now: Optional[datetime] = None) -> None:
    today = (now or local_now()).date()
    if parse_date(session_obj.date) > today:
        raise PreconditionError(FUTURE_COMPLETION_MESSAGE, field="date")


def mark_complete(
    session_obj: SessionModel,
    amount=None,
    *,
    context: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SessionModel:
    """Mark a session completed, optionally capturing its payment amount.

    ``context`` is the view the request came from. From ``"upcoming"`` the
    transition is always refused; from ``"past"`` it is always allowed; with no
    context the session date must not be later than today. Completing an
    already completed session only records or corrects the amount.
    """
    value = validate_amount(amount)
    if context is not None and context not in COMPLETION_CONTEXTS:
        raise ValidationError(f"Unknown completion context {context!r}", field="context")

    if context == UPCOMING_CONTEXT:
        raise PreconditionError(UPCOMING_COMPLETION_MESSAGE)

    if not session_obj.completed and context is None:
        ensure_not_future(session_obj, now)

    session_obj.completed = True
    if value is not None:
        session_obj.amount = value
    logger.debug("Session %s marked complete (amount=%s)", session_obj.id, session_obj.amount)
    return session_obj


def mark_incomplete(session_obj: SessionModel) -> SessionModel:
    """Reopen a session. The amount is dropped regardless of its prior value."""
    session_obj.completed = False
    session_obj.amount = None
    return session_obj
