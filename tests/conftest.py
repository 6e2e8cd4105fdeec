import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from cureveda.database import Base  # noqa: E402
from cureveda.models.appointment import Appointment  # noqa: E402
from cureveda.models.schedule_slot import ScheduleSlot  # noqa: E402
from cureveda.scheduling.agenda import AgendaBuilder  # noqa: E402
from cureveda.scheduling.appointment_store import AppointmentStore  # noqa: E402
from cureveda.scheduling.change_feed import ChangeFeed  # noqa: E402
from cureveda.scheduling.lifecycle import AppointmentLifecycle  # noqa: E402
from cureveda.scheduling.schedule_store import ManualScheduleStore  # noqa: E402


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[Appointment.__table__, ScheduleSlot.__table__])
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Appointment.__table__, ScheduleSlot.__table__])
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine)


@pytest.fixture
def feed(session_factory) -> ChangeFeed:
    change_feed = ChangeFeed()
    change_feed.bind(session_factory)
    return change_feed


@pytest.fixture
def schedule_store(session_factory) -> ManualScheduleStore:
    return ManualScheduleStore(session_factory, timeout_seconds=5)


@pytest.fixture
def appointment_store(session_factory) -> AppointmentStore:
    return AppointmentStore(session_factory, timeout_seconds=5)


@pytest.fixture
def agenda_builder(schedule_store, appointment_store) -> AgendaBuilder:
    return AgendaBuilder(schedule_store, appointment_store)


@pytest.fixture
def lifecycle(appointment_store) -> AppointmentLifecycle:
    return AppointmentLifecycle(appointment_store)
