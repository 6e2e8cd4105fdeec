"""In-process change feed built on SQLAlchemy session events.

Row changes are collected during flush and published only once the
surrounding transaction commits, so subscribers never see writes that
were rolled back. Every subscriber of a table receives every change to
that table; filtering is the subscriber's job.
"""

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable

from sqlalchemy import event, inspect

logger = logging.getLogger(__name__)

INSERT = 'INSERT'
UPDATE = 'UPDATE'
DELETE = 'DELETE'

_PENDING_KEY = 'cureveda_pending_changes'


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    type: str
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    def __init__(self, feed: 'ChangeFeed', table: str, callback: ChangeCallback):
        self.feed = feed
        self.table = table
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.feed._remove(self)


class ChangeFeed:
    def __init__(self):
        self._lock = Lock()
        self._subscriptions: dict[str, list[Subscription]] = {}

    def bind(self, session_factory) -> None:
        """Publish changes committed by sessions created from ``session_factory``."""
        event.listen(session_factory, 'after_flush', self._collect_changes)
        event.listen(session_factory, 'after_commit', self._publish_pending)
        event.listen(session_factory, 'after_rollback', self._discard_pending)

    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        subscription = Subscription(self, table, callback)
        with self._lock:
            self._subscriptions.setdefault(table, []).append(subscription)
        return subscription

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(table, []))

    def publish(self, change: ChangeEvent) -> None:
        with self._lock:
            subscribers = list(self._subscriptions.get(change.table, []))

        for subscription in subscribers:
            try:
                subscription.callback(change)
            except Exception:
                logger.exception('Change subscriber for %s failed on %s event.', change.table, change.type)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscriptions.get(subscription.table, [])
            if subscription in subscribers:
                subscribers.remove(subscription)

    def _collect_changes(self, session, flush_context) -> None:
        pending = session.info.setdefault(_PENDING_KEY, [])

        for instance in session.new:
            pending.append(ChangeEvent(_table_name(instance), INSERT, new=_row_snapshot(instance)))

        for instance in session.dirty:
            if not session.is_modified(instance, include_collections=False):
                continue
            pending.append(
                ChangeEvent(
                    _table_name(instance),
                    UPDATE,
                    new=_row_snapshot(instance),
                    old=_row_snapshot(instance, previous=True),
                )
            )

        for instance in session.deleted:
            pending.append(ChangeEvent(_table_name(instance), DELETE, old=_row_snapshot(instance)))

    def _publish_pending(self, session) -> None:
        pending = session.info.pop(_PENDING_KEY, [])
        for change in pending:
            self.publish(change)

    def _discard_pending(self, session) -> None:
        session.info.pop(_PENDING_KEY, None)


def _table_name(instance) -> str:
    return instance.__table__.name


def _row_snapshot(instance, previous: bool = False) -> dict[str, Any]:
    state = inspect(instance)
    snapshot: dict[str, Any] = {}
    for column_attr in state.mapper.column_attrs:
        key = column_attr.key
        value = getattr(instance, key)
        if previous:
            history = state.attrs[key].history
            if history.deleted:
                value = history.deleted[0]
        snapshot[key] = value
    return snapshot
