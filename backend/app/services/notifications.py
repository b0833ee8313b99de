"""In-process notification backend that keeps one-shot reminders in the database.

Delivery is left to whatever polls ``due()``; this module only registers,
cancels and looks up pending reminders.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.db.storage import read_with_retry
from backend.app.models.reminder import Reminder

logger = logging.getLogger(__name__)

PENDING = "pending"
CANCELLED = "cancelled"


class DatabaseNotifier:
    def __init__(self, db: Session):
        self.db = db

    def register_one_shot(self, trigger_at: datetime, payload: dict) -> str:
        reminder = Reminder(
            handle=uuid4().hex,
            owner_id=payload.get("owner_id"),
            session_id=payload["session_id"],
            trigger_at=trigger_at,
            title=payload.get("title", ""),
            body=payload.get("body", ""),
            patient_name=payload.get("patient_name"),
            time=payload.get("time"),
            status=PENDING,
        )
        self.db.add(reminder)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return reminder.handle

    def cancel(self, handle: str) -> None:
        reminder = self.db.get(Reminder, handle)
        if reminder is None or reminder.status != PENDING:
            raise KeyError(handle)
        reminder.status = CANCELLED
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def pending_handle(self, owner_id: int, session_id: int) -> Optional[str]:
        reminder = read_with_retry(
            self.db,
            lambda: self.db.query(Reminder)
            .filter(
                Reminder.owner_id == owner_id,
                Reminder.session_id == session_id,
                Reminder.status == PENDING,
            )
            .order_by(Reminder.created_at.desc())
            .first(),
        )
        return reminder.handle if reminder else None

    def due(self, now: datetime) -> List[Reminder]:
        return read_with_retry(
            self.db,
            lambda: self.db.query(Reminder)
            .filter(Reminder.status == PENDING, Reminder.trigger_at <= now)
            .order_by(Reminder.trigger_at.asc())
            .all(),
        )
