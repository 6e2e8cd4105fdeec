"""Daily agenda for one doctor.

Merges the doctor's manual schedule slots with accepted appointments into
a single list ordered by time. Both sources are re-fetched on every call;
nothing is cached between calls.
"""

import logging
from datetime import date, datetime

from cureveda.scheduling.appointment_store import AppointmentStore
from cureveda.scheduling.records import (
    AgendaItem,
    AgendaItemType,
    Appointment,
    AppointmentFilter,
    AppointmentStatus,
    ManualScheduleSlot,
)
from cureveda.scheduling.schedule_store import ManualScheduleStore
from cureveda.scheduling.validators import TIME_FORMAT, parse_date

logger = logging.getLogger(__name__)

MANUAL_SLOT_TITLE = 'Scheduled Time'
APPOINTMENT_TITLE_PREFIX = 'Appointment: '


def project_slot(slot: ManualScheduleSlot) -> AgendaItem:
    return AgendaItem(
        id=slot.id,
        type=AgendaItemType.MANUAL,
        display_time=f'{slot.start_time.strftime(TIME_FORMAT)} - {slot.end_time.strftime(TIME_FORMAT)}',
        title=MANUAL_SLOT_TITLE,
        status=slot.status,
        sort_key=datetime.combine(slot.date, slot.start_time),
        raw=slot,
    )


def project_appointment(appointment: Appointment, effective_time: datetime) -> AgendaItem:
    return AgendaItem(
        id=appointment.id,
        type=AgendaItemType.APPOINTMENT,
        display_time=effective_time.strftime(TIME_FORMAT),
        title=f'{APPOINTMENT_TITLE_PREFIX}{appointment.patient_id}',
        status=appointment.status.value,
        sort_key=effective_time,
        raw=appointment,
    )


def merge_agenda(
    target_date: date,
    slots: list[ManualScheduleSlot],
    appointments: list[Appointment],
) -> list[AgendaItem]:
    """Project both sources and order them by time.

    Appointments are placed by their effective time and kept only when it
    falls on ``target_date``. Manual slots come first when times tie.
    Overlaps between the two sources are not detected.
    """
    items = [project_slot(slot) for slot in slots]

    for appointment in appointments:
        effective_time = appointment.effective_time
        if effective_time is None or effective_time.date() != target_date:
            continue
        items.append(project_appointment(appointment, effective_time))

    return sorted(items, key=lambda item: item.sort_key)


class AgendaBuilder:
    def __init__(self, schedule_store: ManualScheduleStore, appointment_store: AppointmentStore):
        self.schedule_store = schedule_store
        self.appointment_store = appointment_store

    async def build_agenda(self, doctor_id: str, agenda_date: date | str) -> list[AgendaItem]:
        target_date = parse_date(agenda_date)

        slots = await self.schedule_store.list_by_doctor_and_date(doctor_id, target_date)
        # Not date-filtered at the store: the effective time is only known per record.
        accepted = await self.appointment_store.list_by_doctor(
            doctor_id,
            AppointmentFilter(status=AppointmentStatus.ACCEPTED),
        )

        agenda = merge_agenda(target_date, slots, accepted)
        logger.debug('Built agenda for %s on %s with %d items.', doctor_id, target_date, len(agenda))
        return agenda
