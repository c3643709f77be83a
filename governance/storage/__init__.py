"""
Record Store Layer

RESPONSIBILITY: Append-only persistence of governance records
ALLOWED INPUTS: (record_type, fields) pairs from the audit recorder and the
                integrity aggregator
OUTPUTS: Record, filtered time-range query results

WHAT THIS LAYER MUST NOT DO:
============================
- Interpret record fields
- Make policy decisions
- Delete or modify existing records (append-only)

BOUNDARY ENFORCEMENT:
=====================
- Appends are idempotent when the fields carry an "id": a second append with
  the same id returns the id and stores nothing
- Every backend failure surfaces as RecordStoreError
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
import json
import logging
import sqlite3
import threading

from ..clock import Clock, default_clock
from ..contracts.base import Timestamp, TimeRange, generate_id
from ..contracts.records import Record
from ..errors import RecordStoreError

logger = logging.getLogger(__name__)


# =============================================================================
# STORAGE INTERFACE (Dependency Inversion)
# =============================================================================

class RecordStore:
    """
    Abstract record store.

    Implementations must be safe for concurrent use by the audit recorder
    and the aggregator's probe threads.
    """

    def append(self, record_type: str, fields: Mapping[str, Any]) -> str:
        """Append a record, returning its id."""
        raise NotImplementedError

    def query(
        self,
        record_type: str,
        filter: Optional[Mapping[str, Any]] = None,
        time_range: Optional[TimeRange] = None
    ) -> List[Record]:
        """Records of ``record_type`` in append order."""
        raise NotImplementedError


def _record_id(fields: Mapping[str, Any]) -> str:
    record_id = fields.get("id")
    return str(record_id) if record_id else generate_id()


def _select(
    records: List[Record],
    filter: Optional[Mapping[str, Any]],
    time_range: Optional[TimeRange]
) -> List[Record]:
    return [
        r for r in records
        if r.matches(filter)
        and (time_range is None or time_range.contains(r.recorded_at))
    ]


# =============================================================================
# IN-MEMORY IMPLEMENTATION
# =============================================================================

class InMemoryRecordStore(RecordStore):
    """
    In-memory record store for tests and single-process deployments.

    Lists are append-only; the id index enforces idempotence.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = default_clock(clock)
        self._records: Dict[str, List[Record]] = {}
        self._ids: Dict[Tuple[str, str], Record] = {}
        self._lock = threading.Lock()

    def append(self, record_type: str, fields: Mapping[str, Any]) -> str:
        record_id = _record_id(fields)
        with self._lock:
            if (record_type, record_id) in self._ids:
                return record_id
            record = Record(
                record_id=record_id,
                record_type=record_type,
                recorded_at=self._clock.now(),
                fields=dict(fields, id=record_id),
            )
            self._records.setdefault(record_type, []).append(record)
            self._ids[(record_type, record_id)] = record
        return record_id

    def query(
        self,
        record_type: str,
        filter: Optional[Mapping[str, Any]] = None,
        time_range: Optional[TimeRange] = None
    ) -> List[Record]:
        with self._lock:
            records = list(self._records.get(record_type, []))
        return _select(records, filter, time_range)

    def count(self, record_type: str) -> int:
        with self._lock:
            return len(self._records.get(record_type, []))


# =============================================================================
# SQLITE IMPLEMENTATION
# =============================================================================

class SQLiteRecordStore(RecordStore):
    """
    SQLite-backed record store.

    Fields are stored as a JSON document per row. A connection is opened per
    call, so the store can be shared between threads.
    """

    def __init__(self, db_path: Path, clock: Optional[Clock] = None):
        self._db_path = Path(db_path)
        self._clock = default_clock(clock)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_conn() as conn:
            conn.executescript('''
                CREATE TABLE IF NOT EXISTS records (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    record_id TEXT NOT NULL,
                    record_type TEXT NOT NULL,
                    recorded_at TEXT NOT NULL,
                    fields TEXT NOT NULL,
                    UNIQUE (record_type, record_id)
                );

                CREATE INDEX IF NOT EXISTS idx_records_type
                    ON records(record_type, seq);

                CREATE INDEX IF NOT EXISTS idx_records_time
                    ON records(record_type, recorded_at);
            ''')

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        """Get database connection; sqlite errors become RecordStoreError."""
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            raise RecordStoreError(f"Cannot open record store at {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            raise RecordStoreError(f"Record store operation failed: {e}") from e
        finally:
            conn.close()

    def append(self, record_type: str, fields: Mapping[str, Any]) -> str:
        record_id = _record_id(fields)
        try:
            document = json.dumps(dict(fields, id=record_id), sort_keys=True)
        except (TypeError, ValueError) as e:
            raise RecordStoreError(f"Record fields are not JSON-serializable: {e}") from e

        with self._get_conn() as conn:
            conn.execute('''
                INSERT OR IGNORE INTO records (record_id, record_type, recorded_at, fields)
                VALUES (?, ?, ?, ?)
            ''', (record_id, record_type, _sortable_iso(self._clock.now()), document))
        return record_id

    def query(
        self,
        record_type: str,
        filter: Optional[Mapping[str, Any]] = None,
        time_range: Optional[TimeRange] = None
    ) -> List[Record]:
        sql = '''
            SELECT record_id, record_type, recorded_at, fields
            FROM records WHERE record_type = ?
        '''
        params: List[Any] = [record_type]
        if time_range is not None:
            sql += ' AND recorded_at >= ? AND recorded_at <= ?'
            params += [_sortable_iso(time_range.start), _sortable_iso(time_range.end)]
        sql += ' ORDER BY seq'

        with self._get_conn() as conn:
            rows = conn.execute(sql, params).fetchall()

        records = [
            Record(
                record_id=row['record_id'],
                record_type=row['record_type'],
                recorded_at=Timestamp.from_iso(row['recorded_at']),
                fields=json.loads(row['fields']),
            )
            for row in rows
        ]
        return _select(records, filter, None)


def _sortable_iso(timestamp: Timestamp) -> str:
    """Fixed-width UTC ISO string; lexicographic order equals time order."""
    return timestamp.value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f+00:00')


def create_store(backend: str, path: Optional[str] = None, clock: Optional[Clock] = None) -> RecordStore:
    """Factory for the backends named in GovernanceConfig.store_backend."""
    if backend == "memory":
        return InMemoryRecordStore(clock=clock)
    if backend == "sqlite":
        if not path:
            raise ValueError("sqlite record store requires a path")
        logger.info("Opening SQLite record store at %s", path)
        return SQLiteRecordStore(Path(path), clock=clock)
    raise ValueError(f"Unknown store backend: {backend}")
