# Live, ordered view of one user's gameplay logs.
#
#   view = LiveHistoryView(store, owner_id)
#   subscription = view.subscribe()
#   async for snapshot in subscription:   # first item is the full current set
#       render(snapshot.records)          # newest first
#   ...
#   subscription.unsubscribe()
#
# Each subscription keeps its own snapshot; nothing is buffered once it is
# torn down, and a new subscription starts again from the full current set.
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from result_store import ChangeEvent, GameplayLogRecord, ResultStore

logger = logging.getLogger(__name__)

_CLOSED = object()


@dataclass(frozen=True)
class HistorySnapshot:
    records: Tuple[GameplayLogRecord, ...]
    changed_ids: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "items": [r.to_dict() for r in self.records],
            "changed": list(self.changed_ids),
        }


def order_records(records: Iterable[GameplayLogRecord]) -> Tuple[GameplayLogRecord, ...]:
    """Newest first; id breaks ties so the order is total."""
    return tuple(sorted(records, key=lambda r: (r.created_at, r.id), reverse=True))


class HistorySubscription:
    def __init__(self, store: ResultStore, owner_id: str, loop: asyncio.AbstractEventLoop):
        self.owner_id = owner_id
        self.latest: Optional[HistorySnapshot] = None
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()
        self._records: Dict[str, GameplayLogRecord] = {}
        self._closed = False
        # The store pushes the initial batch from inside listen()
        self._registration = store.listen(owner_id, self._on_changes)

    @property
    def closed(self) -> bool:
        return self._closed

    def _on_changes(self, events):
        # Called on the writer's thread; hand over to our own loop.
        if self._closed:
            return
        self._enqueue(list(events))

    def _enqueue(self, item):
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Loop already closed: the viewer went away without unsubscribing.
            logger.debug("Dropping history events for owner=%s; loop closed", self.owner_id)

    def _merge(self, events: Iterable[ChangeEvent]) -> HistorySnapshot:
        changed = []
        for event in events:
            self._records[event.record.id] = event.record
            changed.append(event.record.id)
        # Full re-sort on every batch; per-user record counts are small.
        self.latest = HistorySnapshot(order_records(self._records.values()), tuple(changed))
        return self.latest

    def __aiter__(self):
        return self

    async def __anext__(self) -> HistorySnapshot:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        return self._merge(item)

    def unsubscribe(self):
        if self._closed:
            return
        self._closed = True
        self._registration.remove()
        self._enqueue(_CLOSED)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.unsubscribe()


class LiveHistoryView:
    """Restartable source of history subscriptions for one viewer."""

    def __init__(self, store: ResultStore, owner_id: str):
        self.store = store
        self.owner_id = owner_id

    def subscribe(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> HistorySubscription:
        if loop is None:
            loop = asyncio.get_running_loop()
        return HistorySubscription(self.store, self.owner_id, loop)
