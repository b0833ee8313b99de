"""Session model.

``date`` and ``time`` are local wall-clock strings (``YYYY-MM-DD`` / ``HH:MM``);
fixed width, so lexicographic comparison matches chronological order.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from backend.app.db.base_class import Base
from backend.app.core.time import utc_now


class Session(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    patient_name = Column(String, nullable=False)
    date = Column(String(10), nullable=False, index=True)
    time = Column(String(5), nullable=False)
    notes = Column(Text, nullable=False, default="")
    completed = Column(Boolean, nullable=False, default=False)
    amount = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    owner = relationship("User", back_populates="sessions", foreign_keys=[owner_id])
    patient = relationship("Patient", back_populates="sessions", foreign_keys=[patient_id])
