"""Re-merge trigger driven by the store's change feed.

The feed delivers every change to a table regardless of owner, so the
listener checks each event against its doctor before scheduling a refresh.
Bursts of events within the debounce window collapse into one refresh.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable

from cureveda.core import config
from cureveda.scheduling.change_feed import ChangeEvent, ChangeFeed, Subscription

logger = logging.getLogger(__name__)

WATCHED_TABLES = ('appointments', 'doctor_schedule')

RefreshCallback = Callable[[], Awaitable[None] | None]


class AgendaChangeListener:
    def __init__(
        self,
        feed: ChangeFeed,
        doctor_id: str,
        on_change: RefreshCallback,
        debounce_seconds: float | None = None,
        tables: tuple[str, ...] = WATCHED_TABLES,
    ):
        self.feed = feed
        self.doctor_id = doctor_id
        self.on_change = on_change
        self.debounce_seconds = (
            config.AGENDA_REFRESH_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self.tables = tables
        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscriptions: list[Subscription] = []
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    async def __aenter__(self) -> 'AgendaChangeListener':
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    @property
    def active(self) -> bool:
        return bool(self._subscriptions) and not self._closed

    def start(self) -> None:
        if self._subscriptions:
            return
        self._loop = asyncio.get_running_loop()
        self._closed = False
        self._subscriptions = [self.feed.subscribe(table, self._handle_event) for table in self.tables]

    async def stop(self) -> None:
        self._closed = True
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def is_relevant(self, change: ChangeEvent) -> bool:
        return any(
            row is not None and row.get('doctor_id') == self.doctor_id
            for row in (change.new, change.old)
        )

    def _handle_event(self, change: ChangeEvent) -> None:
        # Called from whichever thread committed the change.
        if self._closed or self._loop is None or not self.is_relevant(change):
            return
        try:
            self._loop.call_soon_threadsafe(self._schedule_refresh)
        except RuntimeError:
            logger.debug('Dropped %s change for %s; event loop is closed.', change.table, self.doctor_id)

    def _schedule_refresh(self) -> None:
        if self._closed:
            return
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        if self.debounce_seconds <= 0:
            self._fire()
        else:
            self._timer = self._loop.call_later(self.debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._closed:
            return
        task = self._loop.create_task(self._run_callback())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_callback(self) -> None:
        try:
            result = self.on_change()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception('Agenda refresh for %s failed.', self.doctor_id)
