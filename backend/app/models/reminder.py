"""Pending one-shot reminders held by the in-process notifier."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class Reminder(Base):
    __tablename__ = "reminders"

    handle = Column(String(32), primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    # Plain column: a reminder may outlive its session until it is cancelled.
    session_id = Column(Integer, nullable=False, index=True)
    trigger_at = Column(DateTime, nullable=False)
    title = Column(String, nullable=False)
    body = Column(String, nullable=False)
    patient_name = Column(String, nullable=True)
    time = Column(String(5), nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, default=utc_now)
