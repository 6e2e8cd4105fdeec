"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text
from cureveda.database import Base


class Appointment(Base):
    """A patient's consultation request and its lifecycle state."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(String, nullable=False)
    patient_id = Column(String, nullable=False)
    requested_time = Column(DateTime)
    final_time = Column(DateTime, nullable=True)
    status = Column(String, nullable=False, default="pending")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
