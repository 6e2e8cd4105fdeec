"""Manual schedule slot model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Integer, String, Text, Time, UniqueConstraint
from cureveda.database import Base


class ScheduleSlot(Base):
    """A time window the doctor has declared on their own schedule."""
    __tablename__ = "doctor_schedule"
    __table_args__ = (
        UniqueConstraint("doctor_id", "date", "start_time", "end_time", name="unique_doctor_date_time"),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(String, nullable=False)
    doctor_name = Column(String, nullable=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="available")
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)
