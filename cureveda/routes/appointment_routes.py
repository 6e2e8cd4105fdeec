from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator

from cureveda.routes.dependencies import get_appointment_store, get_lifecycle, to_http_exception
from cureveda.scheduling import errors
from cureveda.scheduling.appointment_store import AppointmentStore
from cureveda.scheduling.lifecycle import AppointmentLifecycle
from cureveda.scheduling.records import Appointment, AppointmentFilter, AppointmentStatus

router = APIRouter(tags=['appointments'])

MAX_APPOINTMENT_NOTES_LENGTH = 600


class CreateAppointmentRequest(BaseModel):
    doctor_id: str
    patient_id: str
    requested_time: datetime
    notes: str | None = None

    @field_validator('doctor_id', 'patient_id')
    @classmethod
    def validate_identifier(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Doctor and patient ids are required.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class TransitionRequest(BaseModel):
    action: str
    new_time: str | None = None

    @field_validator('action')
    @classmethod
    def normalize_action(cls, value: str) -> str:
        return value.strip().lower()


@router.post('', response_model=Appointment, status_code=status.HTTP_201_CREATED)
async def request_appointment(
    data: CreateAppointmentRequest,
    store: AppointmentStore = Depends(get_appointment_store),
):
    try:
        return await store.insert(data.doctor_id, data.patient_id, data.requested_time, data.notes)
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc


@router.get('', response_model=list[Appointment])
async def list_appointments(
    doctor_id: str = Query(...),
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    store: AppointmentStore = Depends(get_appointment_store),
):
    try:
        return await store.list_by_doctor(doctor_id, AppointmentFilter(status=appointment_status))
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc


@router.get('/pending', response_model=list[Appointment])
async def list_pending_appointments(
    doctor_id: str = Query(...),
    store: AppointmentStore = Depends(get_appointment_store),
):
    try:
        return await store.list_pending(doctor_id)
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc


@router.get('/upcoming', response_model=list[Appointment])
async def list_upcoming_appointments(
    patient_id: str = Query(...),
    store: AppointmentStore = Depends(get_appointment_store),
):
    try:
        return await store.list_upcoming_for_patient(patient_id)
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc


@router.get('/{appointment_id}', response_model=Appointment)
async def get_appointment(
    appointment_id: int,
    store: AppointmentStore = Depends(get_appointment_store),
):
    try:
        return await store.get_by_id(appointment_id)
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc


@router.post('/{appointment_id}/transition', response_model=Appointment)
async def transition_appointment(
    appointment_id: int,
    data: TransitionRequest,
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    try:
        return await lifecycle.transition(appointment_id, data.action, data.new_time)
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc
