import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from cureveda.models.appointment import Appointment as AppointmentRow
from cureveda.scheduling.errors import InvalidTransitionError, InvariantViolation, NotFoundError, ValidationError
from cureveda.scheduling.records import (
    SCHEDULED_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentFilter,
    AppointmentPatch,
    AppointmentStatus,
)
from cureveda.scheduling.store import SqlStore
from cureveda.scheduling.validators import to_local_naive

logger = logging.getLogger(__name__)


def _effective_time_column():
    return func.coalesce(AppointmentRow.final_time, AppointmentRow.requested_time)


def _require_id(value: str, field: str) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise ValidationError(f'{field} is required.', field=field)
    return normalized


class AppointmentStore(SqlStore):
    """Create, read and update access to the ``appointments`` table."""

    async def list_by_doctor(self, doctor_id: str, filters: AppointmentFilter | None = None) -> list[Appointment]:
        doctor_id = _require_id(doctor_id, 'doctor_id')
        filters = filters or AppointmentFilter()

        def work(db: Session) -> list[Appointment]:
            query = db.query(AppointmentRow).filter(AppointmentRow.doctor_id == doctor_id)
            if filters.status is not None:
                query = query.filter(AppointmentRow.status == filters.status.value)
            if filters.starts_at is not None:
                query = query.filter(_effective_time_column() >= to_local_naive(filters.starts_at))
            if filters.ends_at is not None:
                query = query.filter(_effective_time_column() < to_local_naive(filters.ends_at))
            rows = query.order_by(AppointmentRow.created_at.desc(), AppointmentRow.id.desc()).all()
            return [Appointment.model_validate(row) for row in rows]

        return await self._run('list appointments', work)

    async def list_pending(self, doctor_id: str) -> list[Appointment]:
        return await self.list_by_doctor(doctor_id, AppointmentFilter(status=AppointmentStatus.PENDING))

    async def list_upcoming_for_patient(self, patient_id: str, now: datetime | None = None) -> list[Appointment]:
        """Accepted or postponed appointments for a patient that have not started yet."""
        patient_id = _require_id(patient_id, 'patient_id')
        cutoff = to_local_naive(now) if now is not None else datetime.now()

        def work(db: Session) -> list[Appointment]:
            effective_time = _effective_time_column()
            rows = db.query(AppointmentRow).filter(
                AppointmentRow.patient_id == patient_id,
                AppointmentRow.status.in_([status.value for status in SCHEDULED_STATUSES]),
                effective_time.is_not(None),
                effective_time > cutoff,
            ).order_by(effective_time.asc(), AppointmentRow.id.asc()).all()
            return [Appointment.model_validate(row) for row in rows]

        return await self._run('list upcoming appointments', work)

    async def get_by_id(self, appointment_id: int) -> Appointment:
        def work(db: Session) -> Appointment:
            row = db.get(AppointmentRow, appointment_id)
            if row is None:
                raise NotFoundError('Appointment not found.', appointment_id=appointment_id)
            return Appointment.model_validate(row)

        return await self._run('get appointment', work)

    async def insert(
        self,
        doctor_id: str,
        patient_id: str,
        requested_time: datetime | None,
        notes: str | None = None,
    ) -> Appointment:
        doctor_id = _require_id(doctor_id, 'doctor_id')
        patient_id = _require_id(patient_id, 'patient_id')
        if requested_time is not None:
            requested_time = to_local_naive(requested_time)

        def work(db: Session) -> Appointment:
            row = AppointmentRow(
                doctor_id=doctor_id,
                patient_id=patient_id,
                requested_time=requested_time,
                notes=notes,
                status=AppointmentStatus.PENDING.value,
                created_at=datetime.now(),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return Appointment.model_validate(row)

        appointment = await self._run('create appointment', work)
        logger.info('Appointment %s requested by %s with %s.', appointment.id, patient_id, doctor_id)
        return appointment

    async def update_partial(self, appointment_id: int, patch: AppointmentPatch) -> Appointment:
        """Apply ``patch`` to one appointment.

        The merged result is checked before anything is written: a rejected or
        completed appointment is never changed again, and an accepted or
        postponed appointment must carry a final time.
        """
        fields = patch.model_dump(exclude_unset=True)
        if fields.get('status') is None:
            fields.pop('status', None)
        if fields.get('final_time') is not None:
            fields['final_time'] = to_local_naive(fields['final_time'])

        def work(db: Session) -> Appointment:
            row = db.get(AppointmentRow, appointment_id)
            if row is None:
                raise NotFoundError('Appointment not found.', appointment_id=appointment_id)

            current_status = AppointmentStatus(row.status)
            if current_status in TERMINAL_STATUSES:
                raise InvalidTransitionError(
                    f'Appointment is already {current_status.value}.',
                    appointment_id=appointment_id,
                    status=current_status.value,
                )

            status = fields['status'] if 'status' in fields else current_status
            final_time = fields['final_time'] if 'final_time' in fields else row.final_time
            if status in SCHEDULED_STATUSES and final_time is None:
                raise InvariantViolation(
                    f'An appointment cannot be {status.value} without a final time.',
                    appointment_id=appointment_id,
                    status=status.value,
                )

            if 'status' in fields:
                row.status = fields['status'].value
            if 'final_time' in fields:
                row.final_time = fields['final_time']
            db.commit()
            db.refresh(row)
            return Appointment.model_validate(row)

        return await self._run('update appointment', work)
