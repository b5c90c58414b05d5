# backend/utils/realtime.py
"""In-process change feed for the storefront tables.

Rows inserted, updated or deleted through any SQLAlchemy session are staged
at flush time and published once the transaction commits; a rollback drops
them. Views subscribe per table, optionally narrowed to rows whose column
equals a value (e.g. ``("user_id", 7)``), and re-fetch when notified.
"""
import asyncio
import enum
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

WATCHED_TABLES = {"food_items", "food_item_variants", "orders", "order_items", "addresses"}
_PENDING_KEY = "storefront_pending_changes"

RowFilter = Tuple[str, Any]


class ChangeType(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    type: ChangeType
    record: Dict[str, Any] = field(default_factory=dict)

    def matches(self, row_filter: Optional[RowFilter]) -> bool:
        if row_filter is None:
            return True
        column, value = row_filter
        return self.record.get(column) == value

    def as_dict(self) -> dict:
        return {"table": self.table, "type": self.type.value, "record": self.record}


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, callback: Callable[[ChangeEvent], None],
                 row_filter: Optional[RowFilter] = None):
        self.feed = feed
        self.table = table
        self.callback = callback
        self.row_filter = row_filter
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.feed._remove(self)
            self.active = False


class ChangeFeed:
    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, table: str, callback: Callable[[ChangeEvent], None],
                  row_filter: Optional[RowFilter] = None) -> Subscription:
        if table not in WATCHED_TABLES:
            raise ValueError(f"Table {table!r} is not watched")
        sub = Subscription(self, table, callback, row_filter)
        with self._lock:
            self._subscriptions[table].append(sub)
        return sub

    def _remove(self, sub: Subscription):
        with self._lock:
            subs = self._subscriptions.get(sub.table, [])
            if sub in subs:
                subs.remove(sub)

    def subscriber_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscriptions.get(table, []))
            return sum(len(s) for s in self._subscriptions.values())

    def publish(self, change: ChangeEvent):
        with self._lock:
            targets = list(self._subscriptions.get(change.table, []))
        for sub in targets:
            if not change.matches(sub.row_filter):
                continue
            try:
                sub.callback(change)
            except Exception:
                # One broken subscriber must not stop delivery to the others
                logger.exception("Change subscriber for %s failed", change.table)

    def clear(self):
        with self._lock:
            self._subscriptions.clear()


change_feed = ChangeFeed()


def queue_forwarder(loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue") -> Callable[[ChangeEvent], None]:
    """Callback that hands events from the committing thread to an event loop."""
    def _forward(change: ChangeEvent):
        loop.call_soon_threadsafe(queue.put_nowait, change)
    return _forward


def _snapshot(obj) -> Dict[str, Any]:
    # Only loaded attributes; server defaults are not fetched back mid-flush
    state = inspect(obj)
    return {
        attr.key: state.dict[attr.key]
        for attr in state.mapper.column_attrs
        if attr.key in state.dict
    }


def _stage(pending: list, obj, change_type: ChangeType):
    table = getattr(obj, "__tablename__", None)
    if table in WATCHED_TABLES:
        pending.append(ChangeEvent(table=table, type=change_type, record=_snapshot(obj)))


@event.listens_for(Session, "after_flush")
def _collect_changes(session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        _stage(pending, obj, ChangeType.INSERT)
    for obj in session.dirty:
        if session.is_modified(obj, include_collections=False):
            _stage(pending, obj, ChangeType.UPDATE)
    for obj in session.deleted:
        _stage(pending, obj, ChangeType.DELETE)


@event.listens_for(Session, "after_commit")
def _publish_changes(session):
    for change in session.info.pop(_PENDING_KEY, []):
        change_feed.publish(change)


@event.listens_for(Session, "after_soft_rollback")
def _discard_changes(session, previous_transaction):
    session.info.pop(_PENDING_KEY, None)
