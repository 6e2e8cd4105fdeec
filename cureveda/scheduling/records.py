"""Plain records passed across the store adapter boundary."""

from datetime import date, datetime, time
from enum import Enum

from pydantic import BaseModel


class AppointmentStatus(str, Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    POSTPONED = 'postponed'
    COMPLETED = 'completed'


TERMINAL_STATUSES = frozenset({AppointmentStatus.REJECTED, AppointmentStatus.COMPLETED})
SCHEDULED_STATUSES = frozenset({AppointmentStatus.ACCEPTED, AppointmentStatus.POSTPONED})


class AgendaItemType(str, Enum):
    MANUAL = 'manual'
    APPOINTMENT = 'appointment'


class ManualScheduleSlot(BaseModel):
    id: int
    doctor_id: str
    doctor_name: str | None = None
    date: date
    start_time: time
    end_time: time
    description: str | None = None
    status: str = 'available'
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class Appointment(BaseModel):
    id: int
    doctor_id: str
    patient_id: str
    requested_time: datetime | None = None
    final_time: datetime | None = None
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True

    @property
    def effective_time(self) -> datetime | None:
        return self.final_time or self.requested_time


class AppointmentFilter(BaseModel):
    """Optional constraints for listing a doctor's appointments.

    ``starts_at``/``ends_at`` bound the effective time as a half-open range.
    """

    status: AppointmentStatus | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None


class AppointmentPatch(BaseModel):
    status: AppointmentStatus | None = None
    final_time: datetime | None = None


class AgendaItem(BaseModel):
    id: int
    type: AgendaItemType
    display_time: str
    title: str
    status: str
    sort_key: datetime
    raw: ManualScheduleSlot | Appointment
