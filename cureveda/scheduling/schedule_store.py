import logging
from datetime import date, datetime, time

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cureveda.models.schedule_slot import ScheduleSlot
from cureveda.scheduling.errors import ConflictError, NotFoundError, ValidationError
from cureveda.scheduling.records import ManualScheduleSlot
from cureveda.scheduling.store import SqlStore
from cureveda.scheduling.validators import DATE_FORMAT, TIME_FORMAT, parse_date, require_valid_slot

logger = logging.getLogger(__name__)

DEFAULT_SLOT_STATUS = 'available'


class ManualScheduleStore(SqlStore):
    """Create, read and delete access to the doctor's own ``doctor_schedule`` rows."""

    async def list_by_doctor_and_date(self, doctor_id: str, slot_date: date | str) -> list[ManualScheduleSlot]:
        parsed_date = parse_date(slot_date)

        def work(db: Session) -> list[ManualScheduleSlot]:
            rows = db.query(ScheduleSlot).filter(
                ScheduleSlot.doctor_id == doctor_id,
                ScheduleSlot.date == parsed_date,
            ).order_by(ScheduleSlot.start_time.asc(), ScheduleSlot.id.asc()).all()
            return [ManualScheduleSlot.model_validate(row) for row in rows]

        return await self._run('list schedule slots', work)

    async def insert(
        self,
        doctor_id: str,
        slot_date: date | str,
        start_time: time | str,
        end_time: time | str,
        description: str | None = None,
        doctor_name: str | None = None,
        status: str = DEFAULT_SLOT_STATUS,
    ) -> ManualScheduleSlot:
        doctor_id = (doctor_id or '').strip()
        if not doctor_id:
            raise ValidationError('doctor_id is required.', field='doctor_id')
        parsed_date, parsed_start, parsed_end = require_valid_slot(slot_date, start_time, end_time)
        description = (description or '').strip() or None
        status = (status or '').strip() or DEFAULT_SLOT_STATUS

        def work(db: Session) -> ManualScheduleSlot:
            now = datetime.now()
            row = ScheduleSlot(
                doctor_id=doctor_id,
                doctor_name=doctor_name,
                date=parsed_date,
                start_time=parsed_start,
                end_time=parsed_end,
                description=description,
                status=status,
                created_at=now,
                updated_at=now,
            )
            db.add(row)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise ConflictError(
                    'This time slot is already on the schedule. Choose a different time.',
                    doctor_id=doctor_id,
                    date=parsed_date.strftime(DATE_FORMAT),
                    start_time=parsed_start.strftime(TIME_FORMAT),
                    end_time=parsed_end.strftime(TIME_FORMAT),
                ) from exc
            db.refresh(row)
            return ManualScheduleSlot.model_validate(row)

        slot = await self._run('create schedule slot', work)
        logger.info(
            'Schedule slot %s added for %s on %s (%s-%s).',
            slot.id,
            doctor_id,
            slot.date,
            slot.start_time.strftime(TIME_FORMAT),
            slot.end_time.strftime(TIME_FORMAT),
        )
        return slot

    async def delete_by_id(self, slot_id: int) -> None:
        def work(db: Session) -> None:
            slot = db.get(ScheduleSlot, slot_id)
            if slot is None:
                raise NotFoundError('Schedule slot not found.', slot_id=slot_id)
            db.delete(slot)
            db.commit()

        await self._run('delete schedule slot', work)
        logger.info('Schedule slot %s deleted.', slot_id)
