import logging
from datetime import datetime
from enum import Enum
from typing import Callable

from cureveda.scheduling.appointment_store import AppointmentStore
from cureveda.scheduling.errors import InvalidTransitionError, ValidationError
from cureveda.scheduling.records import (
    SCHEDULED_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentPatch,
    AppointmentStatus,
)
from cureveda.scheduling.validators import parse_datetime_string

logger = logging.getLogger(__name__)


class AppointmentAction(str, Enum):
    ACCEPT = 'accept'
    REJECT = 'reject'
    POSTPONE = 'postpone'
    COMPLETE = 'complete'


def parse_action(action: AppointmentAction | str) -> AppointmentAction:
    if isinstance(action, AppointmentAction):
        return action
    try:
        return AppointmentAction((action or '').strip().lower())
    except ValueError as exc:
        allowed = ', '.join(item.value for item in AppointmentAction)
        raise ValidationError(f'Unknown action {action!r}; expected one of: {allowed}.', action=action) from exc


class AppointmentLifecycle:
    """Doctor-side state transitions for appointment requests.

    Each transition is one ``update_partial`` call. Rebuilding the agenda
    afterwards is left to the caller.
    """

    def __init__(self, store: AppointmentStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    async def transition(
        self,
        appointment_id: int,
        action: AppointmentAction | str,
        new_time: datetime | str | None = None,
    ) -> Appointment:
        action = parse_action(action)

        postponed_to = None
        if action is AppointmentAction.POSTPONE:
            postponed_to = parse_datetime_string(new_time)

        current = await self.store.get_by_id(appointment_id)
        if current.status in TERMINAL_STATUSES:
            raise InvalidTransitionError(
                f'Appointment is already {current.status.value}.',
                appointment_id=appointment_id,
                status=current.status.value,
                action=action.value,
            )

        if action is AppointmentAction.ACCEPT:
            patch = AppointmentPatch(
                status=AppointmentStatus.ACCEPTED,
                final_time=current.final_time or current.requested_time or self.clock(),
            )
        elif action is AppointmentAction.REJECT:
            patch = AppointmentPatch(status=AppointmentStatus.REJECTED)
        elif action is AppointmentAction.POSTPONE:
            patch = AppointmentPatch(status=AppointmentStatus.POSTPONED, final_time=postponed_to)
        else:
            if current.status not in SCHEDULED_STATUSES:
                raise InvalidTransitionError(
                    'Only accepted or postponed appointments can be completed.',
                    appointment_id=appointment_id,
                    status=current.status.value,
                    action=action.value,
                )
            patch = AppointmentPatch(status=AppointmentStatus.COMPLETED)

        updated = await self.store.update_partial(appointment_id, patch)
        logger.info(
            'Appointment %s moved from %s to %s.',
            appointment_id,
            current.status.value,
            updated.status.value,
        )
        return updated
