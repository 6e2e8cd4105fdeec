import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from cureveda.core import config
from cureveda.database import Base, engine, ensure_appointment_schema, ensure_schedule_schema
from cureveda.models import appointment, schedule_slot  # noqa: F401
from cureveda.routes import appointment_routes, schedule_routes


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


configure_logging()
config.validate_runtime_config()

app = FastAPI(title='CureVeda Schedule API', debug=config.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_schedule_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and Postgres credentials.')


@app.get('/')
def root():
    return {'status': 'CureVeda Schedule API Running'}


app.include_router(schedule_routes.router, prefix='/schedule')
app.include_router(appointment_routes.router, prefix='/appointments')
