import asyncio
from datetime import datetime

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from cureveda.routes.appointment_routes import (
    CreateAppointmentRequest,
    TransitionRequest,
    get_appointment,
    list_appointments,
    list_pending_appointments,
    list_upcoming_appointments,
    request_appointment,
    transition_appointment,
)
from cureveda.routes.dependencies import to_http_exception
from cureveda.scheduling import errors
from cureveda.scheduling.records import AppointmentStatus

DOCTOR = 'dr.rao@example.com'
PATIENT = 'meera@example.com'


def _request(appointment_store, requested_time: datetime = datetime(2025, 9, 25, 11, 0)):
    data = CreateAppointmentRequest(doctor_id=DOCTOR, patient_id=PATIENT, requested_time=requested_time)
    return asyncio.run(request_appointment(data, store=appointment_store))


def test_create_appointment_request_normalizes_fields() -> None:
    request = CreateAppointmentRequest(
        doctor_id=' dr.rao@example.com ',
        patient_id=' meera@example.com ',
        requested_time='2025-09-25T11:00:00',
        notes='   ',
    )

    assert request.doctor_id == DOCTOR
    assert request.patient_id == PATIENT
    assert request.requested_time == datetime(2025, 9, 25, 11, 0)
    assert request.notes is None


def test_create_appointment_request_rejects_long_notes() -> None:
    with pytest.raises(ValidationError):
        CreateAppointmentRequest(
            doctor_id=DOCTOR,
            patient_id=PATIENT,
            requested_time=datetime(2025, 9, 25, 11, 0),
            notes='x' * 601,
        )


def test_transition_request_normalizes_action() -> None:
    assert TransitionRequest(action=' Accept ').action == 'accept'


def test_request_appointment_starts_pending(appointment_store) -> None:
    appointment = _request(appointment_store)

    assert appointment.status is AppointmentStatus.PENDING
    pending = asyncio.run(list_pending_appointments(doctor_id=DOCTOR, store=appointment_store))
    assert [item.id for item in pending] == [appointment.id]


def test_list_appointments_filters_by_status(appointment_store, lifecycle) -> None:
    accepted = _request(appointment_store)
    _request(appointment_store, requested_time=datetime(2025, 9, 25, 12, 0))
    asyncio.run(transition_appointment(accepted.id, TransitionRequest(action='accept'), lifecycle=lifecycle))

    listed = asyncio.run(
        list_appointments(doctor_id=DOCTOR, appointment_status=AppointmentStatus.ACCEPTED, store=appointment_store)
    )

    assert [item.id for item in listed] == [accepted.id]


def test_transition_postpone_without_time_is_bad_request(appointment_store, lifecycle) -> None:
    appointment = _request(appointment_store)

    with pytest.raises(HTTPException) as exception_info:
        asyncio.run(transition_appointment(appointment.id, TransitionRequest(action='postpone'), lifecycle=lifecycle))

    assert exception_info.value.status_code == 400
    unchanged = asyncio.run(get_appointment(appointment.id, store=appointment_store))
    assert unchanged.status is AppointmentStatus.PENDING


def test_transition_postpone_sets_final_time(appointment_store, lifecycle) -> None:
    appointment = _request(appointment_store)

    postponed = asyncio.run(
        transition_appointment(
            appointment.id,
            TransitionRequest(action='postpone', new_time='2025-09-26 15:00'),
            lifecycle=lifecycle,
        )
    )

    assert postponed.status is AppointmentStatus.POSTPONED
    assert postponed.final_time == datetime(2025, 9, 26, 15, 0)


def test_transition_on_rejected_appointment_is_bad_request(appointment_store, lifecycle) -> None:
    appointment = _request(appointment_store)
    asyncio.run(transition_appointment(appointment.id, TransitionRequest(action='reject'), lifecycle=lifecycle))

    with pytest.raises(HTTPException) as exception_info:
        asyncio.run(transition_appointment(appointment.id, TransitionRequest(action='accept'), lifecycle=lifecycle))

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail['code'] == 'invalid_transition'


def test_get_missing_appointment_is_not_found(appointment_store) -> None:
    with pytest.raises(HTTPException) as exception_info:
        asyncio.run(get_appointment(999, store=appointment_store))

    assert exception_info.value.status_code == 404


def test_list_upcoming_appointments_rejects_blank_patient(appointment_store) -> None:
    with pytest.raises(HTTPException) as exception_info:
        asyncio.run(list_upcoming_appointments(patient_id='  ', store=appointment_store))

    assert exception_info.value.status_code == 400


@pytest.mark.parametrize(
    ('error', 'status_code'),
    [
        (errors.ValidationError('bad'), 400),
        (errors.InvalidTransitionError('done'), 400),
        (errors.NotFoundError('missing'), 404),
        (errors.ConflictError('taken'), 409),
        (errors.InvariantViolation('no final time'), 422),
        (errors.TransportError('down'), 503),
        (errors.ScheduleError('unknown'), 500),
    ],
)
def test_to_http_exception_maps_error_kinds(error: errors.ScheduleError, status_code: int) -> None:
    exception = to_http_exception(error)

    assert exception.status_code == status_code
    assert exception.detail == error.message
