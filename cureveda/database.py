from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from cureveda.core import config
from cureveda.scheduling.change_feed import ChangeFeed


def build_engine(database_url: str):
    if database_url.startswith('sqlite'):
        return create_engine(database_url, connect_args={'check_same_thread': False})
    return create_engine(database_url, pool_pre_ping=True)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

Base = declarative_base()

change_feed = ChangeFeed()
change_feed.bind(SessionLocal)

_schema_lock = Lock()
_schedule_schema_checked = False
_appointment_schema_checked = False


def ensure_schedule_schema() -> None:
    global _schedule_schema_checked

    if _schedule_schema_checked:
        return

    with _schema_lock:
        if _schedule_schema_checked:
            return

        inspector = inspect(engine)

        if 'doctor_schedule' not in inspector.get_table_names():
            _schedule_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('doctor_schedule')}
        migration_steps = [
            ('doctor_name', 'ALTER TABLE doctor_schedule ADD COLUMN doctor_name VARCHAR'),
            ('description', 'ALTER TABLE doctor_schedule ADD COLUMN description TEXT'),
            ('status', "ALTER TABLE doctor_schedule ADD COLUMN status VARCHAR DEFAULT 'available'"),
            ('updated_at', 'ALTER TABLE doctor_schedule ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_doctor_schedule_doctor ON doctor_schedule(doctor_id)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_doctor_schedule_date ON doctor_schedule(date)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_doctor_schedule_status ON doctor_schedule(status)')
            )

        _schedule_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('final_time', 'ALTER TABLE appointments ADD COLUMN final_time TIMESTAMP'),
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes TEXT'),
            ('created_at', 'ALTER TABLE appointments ADD COLUMN created_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_doctor_status ON appointments(doctor_id, status)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_patient ON appointments(patient_id)')
            )

        _appointment_schema_checked = True
