from functools import lru_cache

from fastapi import HTTPException, status

from cureveda.scheduling import errors
from cureveda.scheduling.agenda import AgendaBuilder
from cureveda.scheduling.appointment_store import AppointmentStore
from cureveda.scheduling.change_feed import ChangeFeed
from cureveda.scheduling.lifecycle import AppointmentLifecycle
from cureveda.scheduling.schedule_store import ManualScheduleStore

_ERROR_STATUS_CODES = (
    (errors.ValidationError, status.HTTP_400_BAD_REQUEST),
    (errors.NotFoundError, status.HTTP_404_NOT_FOUND),
    (errors.ConflictError, status.HTTP_409_CONFLICT),
    (errors.InvariantViolation, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (errors.TransportError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


@lru_cache
def get_schedule_store() -> ManualScheduleStore:
    return ManualScheduleStore()


@lru_cache
def get_appointment_store() -> AppointmentStore:
    return AppointmentStore()


def get_agenda_builder() -> AgendaBuilder:
    return AgendaBuilder(get_schedule_store(), get_appointment_store())


def get_lifecycle() -> AppointmentLifecycle:
    return AppointmentLifecycle(get_appointment_store())


def get_change_feed() -> ChangeFeed:
    from cureveda.database import change_feed

    return change_feed


def to_http_exception(exc: errors.ScheduleError) -> HTTPException:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, mapped_status in _ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            status_code = mapped_status
            break

    if exc.details:
        detail = {'message': exc.message, 'code': exc.code, **exc.details}
    else:
        detail = exc.message
    return HTTPException(status_code=status_code, detail=detail)
