"""Durable SQLite outbox of not-yet-delivered location records.

The outbox is the single source of truth for what has not been confirmed
delivered. A row lives here from ingestion until the collection service
acknowledges an upload that contained it; nothing is deleted speculatively.

All calls are synchronous and complete without yielding to the event loop,
so an insert can never land between an upload's read and its delete.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Sequence
from pathlib import Path
from types import TracebackType

from pydantic import ValidationError

from geosentinel.exceptions import SentinelStorageError
from geosentinel.ingestion.normalize import checked_epoch_ms, safe_float
from geosentinel.models.location import LocationRecord

_logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS locations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    latitude REAL NOT NULL,
    longitude REAL NOT NULL,
    timestamp INTEGER NOT NULL
)
"""

# SQLite's default host-parameter limit is 999 on older builds.
_DELETE_CHUNK = 500


class OutboxStore:
    """Append-only table of pending :class:`LocationRecord` rows.

    Parameters
    ----------
    path : Path or str
        Database file, or ``":memory:"`` for a throwaway store.

    Raises
    ------
    SentinelStorageError
        If the database cannot be opened or the schema cannot be created.
        This is the one storage failure that is fatal at startup.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = str(path)
        try:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._conn: sqlite3.Connection | None = sqlite3.connect(self._path)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=FULL")
            with self._conn:
                self._conn.execute(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            _logger.error("Cannot open outbox at %s: %s", self._path, exc)
            raise SentinelStorageError(f"Cannot open outbox at {self._path}: {exc}") from exc
        _logger.debug("Outbox ready at %s", self._path)

    def __enter__(self) -> OutboxStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def path(self) -> str:
        return self._path

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise SentinelStorageError("Outbox is closed")
        return self._conn

    def insert(self, latitude: float, longitude: float, captured_at: int) -> int:
        """Durably append a record and return its id.

        Raises
        ------
        ValueError
            If a coordinate is not finite or *captured_at* is not a positive
            integer epoch-millisecond timestamp. Nothing is written.
        SentinelStorageError
            On any storage failure. The sample is *not* stored; the caller
            owns it and must retry.
        """
        lat, lng, ts = safe_float(latitude), safe_float(longitude), checked_epoch_ms(captured_at)
        if lat is None or lng is None:
            raise ValueError(f"non-finite coordinate: {latitude!r}, {longitude!r}")
        if ts is None:
            raise ValueError(f"invalid capture timestamp: {captured_at!r}")
        conn = self._require_conn()
        try:
            with conn:
                cursor = conn.execute(
                    "INSERT INTO locations (latitude, longitude, timestamp) VALUES (?, ?, ?)",
                    (lat, lng, ts),
                )
        except sqlite3.Error as exc:
            _logger.error("Outbox insert failed: %s", exc)
            raise SentinelStorageError(f"Outbox insert failed: {exc}") from exc
        record_id = cursor.lastrowid
        if record_id is None:
            raise SentinelStorageError("Outbox insert returned no row id")
        return record_id

    def peek_batch(self, limit: int) -> list[LocationRecord]:
        """Return up to *limit* oldest pending records, lowest id first.

        The result is a snapshot: rows inserted afterwards are not part of it.
        """
        if limit < 1:
            return []
        conn = self._require_conn()
        try:
            rows = conn.execute(
                "SELECT id, latitude, longitude, timestamp FROM locations ORDER BY id ASC LIMIT ?",
                (int(limit),),
            ).fetchall()
        except sqlite3.Error as exc:
            _logger.error("Outbox read failed: %s", exc)
            raise SentinelStorageError(f"Outbox read failed: {exc}") from exc
        try:
            return [
                LocationRecord(id=row[0], latitude=row[1], longitude=row[2], captured_at=row[3])
                for row in rows
            ]
        except ValidationError as exc:
            _logger.error("Outbox holds an unreadable row: %s", exc)
            raise SentinelStorageError(f"Outbox holds an unreadable row: {exc}") from exc

    def delete_batch(self, ids: Iterable[int]) -> int:
        """Delete exactly *ids* in one transaction; return how many existed.

        Ids that are already gone are ignored, so deleting the same record
        from two paths is harmless. Either every listed row is removed or,
        on failure, none is.
        """
        unique_ids = sorted({int(i) for i in ids})
        if not unique_ids:
            return 0
        conn = self._require_conn()
        deleted = 0
        try:
            with conn:
                for chunk in _chunks(unique_ids, _DELETE_CHUNK):
                    placeholders = ",".join("?" for _ in chunk)
                    cursor = conn.execute(f"DELETE FROM locations WHERE id IN ({placeholders})", chunk)  # noqa: S608
                    deleted += cursor.rowcount
        except sqlite3.Error as exc:
            _logger.error("Outbox delete of %d ids failed: %s", len(unique_ids), exc)
            raise SentinelStorageError(f"Outbox delete failed: {exc}") from exc
        return deleted

    def pending_count(self) -> int:
        conn = self._require_conn()
        try:
            row = conn.execute("SELECT COUNT(*) FROM locations").fetchone()
        except sqlite3.Error as exc:
            raise SentinelStorageError(f"Outbox count failed: {exc}") from exc
        return int(row[0])

    def close(self) -> None:
        conn = self._conn
        self._conn = None
        if conn is not None:
            conn.close()


def _chunks(values: Sequence[int], size: int) -> Iterable[Sequence[int]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]
