"""Session reminders, fired a fixed lead time before the session starts.

Reminders are auxiliary: nothing here raises into the caller. A failed
registration yields no handle and a failed cancellation is only logged.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from backend.app.core.time import combine, local_now
from backend.app.models.session import Session as SessionModel

logger = logging.getLogger(__name__)

DEFAULT_LEAD = timedelta(hours=1)
REMINDER_TITLE = "Upcoming Session Reminder"


class Notifier(Protocol):
    def register_one_shot(self, trigger_at: datetime, payload: dict) -> str:
        ...

    def cancel(self, handle: str) -> None:
        ...


def reminder_payload(session_obj: SessionModel) -> dict:
    return {
        "session_id": session_obj.id,
        "owner_id": session_obj.owner_id,
        "patient_name": session_obj.patient_name,
        "time": session_obj.time,
        "title": REMINDER_TITLE,
        "body": f"You have a session with {session_obj.patient_name} at {session_obj.time}",
    }


class ReminderScheduler:
    def __init__(
        self,
        notifier: Notifier,
        lead: timedelta = DEFAULT_LEAD,
        clock: Callable[[], datetime] = local_now,
    ):
        self.notifier = notifier
        self.lead = lead
        self.clock = clock

    def trigger_for(self, session_obj: SessionModel) -> datetime:
        return combine(session_obj.date, session_obj.time) - self.lead

    def schedule(self, session_obj: SessionModel) -> Optional[str]:
        trigger_at = self.trigger_for(session_obj)
        if trigger_at <= self.clock():
            logger.info("Reminder for session %s not scheduled, trigger %s already passed", session_obj.id, trigger_at)
            return None
        try:
            handle = self.notifier.register_one_shot(trigger_at, reminder_payload(session_obj))
        except Exception:
            logger.exception("Failed to schedule reminder for session %s", session_obj.id)
            return None
        logger.info("Scheduled reminder %s for session %s at %s", handle, session_obj.id, trigger_at)
        return handle

    def cancel(self, handle: Optional[str]) -> None:
        if not handle:
            return
        try:
            self.notifier.cancel(handle)
        except Exception as exc:
            logger.warning("Could not cancel reminder %s: %r", handle, exc)
            return
        logger.debug("Cancelled reminder %s", handle)

    def reschedule(self, previous_handle: Optional[str], session_obj: SessionModel) -> Optional[str]:
        self.cancel(previous_handle)
        return self.schedule(session_obj)
