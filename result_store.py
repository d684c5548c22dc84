"""
Result store: append-only gameplay log records, scoped per app and owner,
plus a change feed that pushes every new record to the owner's listeners.

The store assigns the id and the creation timestamp itself. Timestamps are
strictly increasing across every writer in the process, so ordering by
`created_at` is total even for concurrent submissions.
"""
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from analysis_schema import AnalysisResult
from db import Database
from errors import PersistenceError
from models import GameplayLog

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _us_to_datetime(us: int) -> datetime:
    return _EPOCH + timedelta(microseconds=us)


@dataclass(frozen=True)
class GameplayLogRecord:
    id: str
    owner_id: str
    created_at: datetime
    source_text: Optional[str] = None
    source_file_url: Optional[str] = None
    source_file_name: Optional[str] = None
    source_file_mime_type: Optional[str] = None
    result: Optional[AnalysisResult] = None
    model_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.owner_id,
            "timestamp": self.created_at.isoformat(),
            "logContent": self.source_text,
            "fileUrl": self.source_file_url,
            "fileName": self.source_file_name,
            "fileMimeType": self.source_file_mime_type,
            "analysis": self.result.to_dict() if self.result is not None else None,
            "model": self.model_name,
        }


@dataclass(frozen=True)
class RecordDraft:
    """Everything the caller supplies; id and timestamp come from the store."""

    owner_id: str
    source_text: Optional[str] = None
    source_file_url: Optional[str] = None
    source_file_name: Optional[str] = None
    source_file_mime_type: Optional[str] = None
    result: Optional[AnalysisResult] = None
    model_name: Optional[str] = None

    def __post_init__(self):
        if not self.owner_id:
            raise ValueError("owner_id is required")
        if (self.source_text is None) == (self.source_file_url is None):
            raise ValueError("exactly one of source_text / source_file_url must be set")


@dataclass(frozen=True)
class ChangeEvent:
    kind: str  # only "added": records are never updated by the pipeline
    record: GameplayLogRecord


Listener = Callable[[List[ChangeEvent]], None]


class ListenerRegistration:
    def __init__(self, store: "ResultStore", owner_id: str, token: int):
        self._store = store
        self._owner_id = owner_id
        self._token = token
        self.active = True

    def remove(self):
        if self.active:
            self._store._remove_listener(self._owner_id, self._token)
            self.active = False


class ResultStore:
    def __init__(self, database: Database, app_id: str):
        self.database = database
        self.app_id = app_id
        # Guards timestamp assignment, commit order, and the listener table.
        self._lock = threading.RLock()
        self._last_us = 0
        self._listeners: Dict[str, Dict[int, Listener]] = {}
        self._next_token = 0

    # ---------------- writes ----------------
    def _next_timestamp_us(self) -> int:
        now = time.time_ns() // 1000
        if now <= self._last_us:
            now = self._last_us + 1
        self._last_us = now
        return now

    def append(self, draft: RecordDraft) -> GameplayLogRecord:
        with self._lock:
            created_us = self._next_timestamp_us()
            record = GameplayLogRecord(
                id=uuid.uuid4().hex,
                owner_id=draft.owner_id,
                created_at=_us_to_datetime(created_us),
                source_text=draft.source_text,
                source_file_url=draft.source_file_url,
                source_file_name=draft.source_file_name,
                source_file_mime_type=draft.source_file_mime_type,
                result=draft.result,
                model_name=draft.model_name,
            )
            row = GameplayLog(
                id=record.id,
                app_id=self.app_id,
                owner_id=record.owner_id,
                created_at_us=created_us,
                source_text=record.source_text,
                source_file_url=record.source_file_url,
                source_file_name=record.source_file_name,
                source_file_mime_type=record.source_file_mime_type,
                model_name=record.model_name,
            )
            if record.result is not None:
                row.analysis_text = record.result.analysis_text
                row.suggestions = list(record.result.suggestions)
                row.errors_detected = list(record.result.errors_detected)

            with self.database.session() as db:
                try:
                    db.add(row)
                    db.commit()
                except SQLAlchemyError as e:
                    db.rollback()
                    logger.error("Failed to append gameplay log for owner=%s: %s", draft.owner_id, e)
                    raise PersistenceError(details=str(e)) from e

            logger.debug("Appended gameplay log id=%s owner=%s", record.id, record.owner_id)
            self._publish(record.owner_id, [ChangeEvent("added", record)])
            return record

    # ---------------- reads ----------------
    def _owner_query(self, owner_id: str):
        return select(GameplayLog).where(
            GameplayLog.app_id == self.app_id,
            GameplayLog.owner_id == owner_id,
        )

    def list_for_owner(self, owner_id: str) -> List[GameplayLogRecord]:
        """All of the owner's records, newest first."""
        try:
            with self.database.session() as db:
                rows = db.execute(
                    self._owner_query(owner_id).order_by(GameplayLog.created_at_us.desc())
                ).scalars().all()
                return [_to_record(r) for r in rows]
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load gameplay logs.", details=str(e)) from e

    def get(self, owner_id: str, record_id: str) -> Optional[GameplayLogRecord]:
        try:
            with self.database.session() as db:
                row = db.execute(
                    self._owner_query(owner_id).where(GameplayLog.id == record_id)
                ).scalar_one_or_none()
                return _to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load gameplay log.", details=str(e)) from e

    def count(self) -> int:
        with self.database.session() as db:
            return db.scalar(
                select(func.count()).select_from(GameplayLog).where(GameplayLog.app_id == self.app_id)
            )

    # ---------------- change feed ----------------
    def listen(self, owner_id: str, callback: Listener) -> ListenerRegistration:
        """
        Subscribe to the owner's records. The callback first receives the full
        current set as one batch of "added" events, then one batch per append.
        Callbacks run on the writer's thread and must not block.
        """
        with self._lock:
            current = self.list_for_owner(owner_id)
            token = self._next_token
            self._next_token += 1
            self._listeners.setdefault(owner_id, {})[token] = callback
            self._deliver(callback, [ChangeEvent("added", r) for r in current])
        return ListenerRegistration(self, owner_id, token)

    def _remove_listener(self, owner_id: str, token: int):
        with self._lock:
            listeners = self._listeners.get(owner_id)
            if listeners is None:
                return
            listeners.pop(token, None)
            if not listeners:
                del self._listeners[owner_id]

    def listener_count(self, owner_id: str) -> int:
        with self._lock:
            return len(self._listeners.get(owner_id, {}))

    def _publish(self, owner_id: str, events: List[ChangeEvent]):
        for callback in list(self._listeners.get(owner_id, {}).values()):
            self._deliver(callback, events)

    @staticmethod
    def _deliver(callback: Listener, events: List[ChangeEvent]):
        # One broken listener must not fail the write or starve the others
        try:
            callback(events)
        except Exception:
            logger.exception("Gameplay log listener raised; continuing")


def _to_record(row: GameplayLog) -> GameplayLogRecord:
    result = None
    if row.analysis_text is not None:
        result = AnalysisResult(
            analysis_text=row.analysis_text,
            suggestions=tuple(row.suggestions or ()),
            errors_detected=tuple(row.errors_detected or ()),
        )
    return GameplayLogRecord(
        id=row.id,
        owner_id=row.owner_id,
        created_at=_us_to_datetime(row.created_at_us),
        source_text=row.source_text,
        source_file_url=row.source_file_url,
        source_file_name=row.source_file_name,
        source_file_mime_type=row.source_file_mime_type,
        result=result,
        model_name=row.model_name,
    )
