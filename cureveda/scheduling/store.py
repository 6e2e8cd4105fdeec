import asyncio
import logging
from threading import Event
from typing import Callable, TypeVar

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cureveda.core import config
from cureveda.scheduling.errors import ScheduleError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar('T')

DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'


class SqlStore:
    """Runs blocking SQLAlchemy work off the event loop, bounded by a timeout.

    Each call gets its own session. Anything that is not already a
    ``ScheduleError`` leaves as a ``TransportError``. Once a call has timed
    out its session refuses to commit, so a caller that retries never
    doubles the write.
    """

    def __init__(self, session_factory=None, timeout_seconds: float | None = None):
        if session_factory is None:
            from cureveda.database import SessionLocal

            session_factory = SessionLocal
        self.session_factory = session_factory
        self.timeout_seconds = config.STORE_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds

    async def _run(self, operation: str, work: Callable[[Session], T]) -> T:
        abandoned = Event()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._run_in_session, operation, work, abandoned),
                timeout=self.timeout_seconds,
            )
        except ScheduleError:
            raise
        except asyncio.TimeoutError as exc:
            abandoned.set()
            logger.warning('%s timed out after %.1fs.', operation, self.timeout_seconds)
            raise TransportError(f'{operation} timed out.', operation=operation) from exc
        except SQLAlchemyError as exc:
            logger.exception('%s failed against the store.', operation)
            raise TransportError(DATABASE_UNAVAILABLE, operation=operation) from exc
        except (TypeError, ValueError) as exc:
            logger.exception('%s returned a malformed record.', operation)
            raise TransportError(f'{operation} returned a malformed record.', operation=operation) from exc

    def _run_in_session(self, operation: str, work: Callable[[Session], T], abandoned: Event) -> T:
        db = self.session_factory()

        def refuse_abandoned_commit(session: Session) -> None:
            if abandoned.is_set():
                logger.warning('%s discarded its write; the caller already timed out.', operation)
                raise TransportError(f'{operation} timed out.', operation=operation)

        event.listen(db, 'before_commit', refuse_abandoned_commit)
        try:
            return work(db)
        except (SQLAlchemyError, ScheduleError):
            db.rollback()
            raise
        finally:
            db.close()
