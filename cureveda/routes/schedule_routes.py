import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, field_validator

from cureveda.routes.dependencies import (
    get_agenda_builder,
    get_change_feed,
    get_schedule_store,
    to_http_exception,
)
from cureveda.scheduling import errors
from cureveda.scheduling.agenda import AgendaBuilder
from cureveda.scheduling.change_feed import ChangeFeed
from cureveda.scheduling.listener import AgendaChangeListener
from cureveda.scheduling.records import AgendaItem, ManualScheduleSlot
from cureveda.scheduling.schedule_store import ManualScheduleStore
from cureveda.scheduling.validators import require_valid_slot

router = APIRouter(tags=['schedule'])

logger = logging.getLogger(__name__)

MAX_SLOT_DESCRIPTION_LENGTH = 600
REFRESH_MESSAGE = 'refresh'


class CreateSlotRequest(BaseModel):
    doctor_id: str
    doctor_name: str | None = None
    date: str
    start_time: str
    end_time: str
    description: str | None = None

    @field_validator('doctor_id')
    @classmethod
    def validate_doctor_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Doctor id is required.')
        return normalized

    @field_validator('date', 'start_time', 'end_time')
    @classmethod
    def strip_value(cls, value: str) -> str:
        return value.strip()

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_SLOT_DESCRIPTION_LENGTH:
            raise ValueError(f'Description must be {MAX_SLOT_DESCRIPTION_LENGTH} characters or fewer.')

        return normalized


class AgendaResponse(BaseModel):
    doctor_id: str
    date: str
    status: str = 'ok'
    items: list[AgendaItem]


async def load_agenda_payload(builder: AgendaBuilder, doctor_id: str, agenda_date: str) -> dict:
    """Agenda as a JSON-ready dict; failures come back as ``status: error`` instead of an empty list."""
    try:
        items = await builder.build_agenda(doctor_id, agenda_date)
    except errors.ScheduleError as exc:
        return {
            'doctor_id': doctor_id,
            'date': agenda_date,
            'status': 'error',
            'code': exc.code,
            'detail': exc.message,
        }
    return AgendaResponse(doctor_id=doctor_id, date=agenda_date, items=items).model_dump(mode='json')


@router.post('/slots', response_model=ManualScheduleSlot, status_code=status.HTTP_201_CREATED)
async def create_slot(
    data: CreateSlotRequest,
    store: ManualScheduleStore = Depends(get_schedule_store),
):
    try:
        require_valid_slot(data.date, data.start_time, data.end_time)
        return await store.insert(
            data.doctor_id,
            data.date,
            data.start_time,
            data.end_time,
            description=data.description,
            doctor_name=data.doctor_name,
        )
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/slots/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(
    slot_id: int,
    store: ManualScheduleStore = Depends(get_schedule_store),
):
    try:
        await store.delete_by_id(slot_id)
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc


@router.get('/slots', response_model=list[ManualScheduleSlot])
async def list_slots(
    doctor_id: str = Query(...),
    date: str = Query(...),
    store: ManualScheduleStore = Depends(get_schedule_store),
):
    try:
        return await store.list_by_doctor_and_date(doctor_id.strip(), date.strip())
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc


@router.get('/agenda', response_model=AgendaResponse)
async def get_agenda(
    doctor_id: str = Query(...),
    date: str = Query(...),
    builder: AgendaBuilder = Depends(get_agenda_builder),
):
    doctor_id = doctor_id.strip()
    date = date.strip()
    try:
        items = await builder.build_agenda(doctor_id, date)
    except errors.ScheduleError as exc:
        raise to_http_exception(exc) from exc
    return AgendaResponse(doctor_id=doctor_id, date=date, items=items)


@router.websocket('/agenda/ws')
async def stream_agenda(
    websocket: WebSocket,
    doctor_id: str,
    date: str,
    builder: AgendaBuilder = Depends(get_agenda_builder),
    feed: ChangeFeed = Depends(get_change_feed),
):
    await websocket.accept()
    doctor_id = doctor_id.strip()
    date = date.strip()

    async def push_agenda() -> None:
        await websocket.send_json(await load_agenda_payload(builder, doctor_id, date))

    async with AgendaChangeListener(feed, doctor_id, push_agenda):
        await push_agenda()
        try:
            while True:
                message = await websocket.receive()
                if message['type'] == 'websocket.disconnect':
                    raise WebSocketDisconnect(message.get('code', 1000))
                # Binary frames carry nothing we act on.
                text = message.get('text')
                if isinstance(text, str) and text.strip().lower() == REFRESH_MESSAGE:
                    await push_agenda()
        except WebSocketDisconnect:
            logger.debug('Agenda stream for %s on %s closed.', doctor_id, date)
