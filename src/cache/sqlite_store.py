# src/cache/sqlite_store.py - v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3. Rows are insert-only; a lookup is an exact match on
the fingerprint column, restricted to successful rows, newest first,
limited to one row.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from pydantic import ValidationError

from careocr.cache.base_cache_store import BaseRecognitionCache
from careocr.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS recognition_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fingerprint TEXT NOT NULL,
    success INTEGER NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_recognition_fingerprint
    ON recognition_log(fingerprint, success, created_at);
"""


class SqliteCacheStore(BaseRecognitionCache):
    """SQLite-backed recognition log."""

    def __init__(self, db_path: Path | str) -> None:
        super().__init__()
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def delete(self, fingerprint: str) -> None:
        self._conn.execute(
            "DELETE FROM recognition_log WHERE fingerprint = ?", (fingerprint,)
        )
        self._conn.commit()

    async def list_entries(self) -> list[CacheEntry]:
        cursor = self._conn.execute(
            "SELECT data FROM recognition_log ORDER BY created_at, id"
        )
        entries: list[CacheEntry] = []
        for (data,) in cursor.fetchall():
            entry = self._decode(data)
            if entry is not None:
                entries.append(entry)
        return entries

    async def _load_latest(self, fingerprint: str) -> CacheEntry | None:
        cursor = self._conn.execute(
            """SELECT data FROM recognition_log
               WHERE fingerprint = ? AND success = 1
               ORDER BY created_at DESC, id DESC
               LIMIT 1""",
            (fingerprint,),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._decode(row[0])

    async def _append(self, entry: CacheEntry) -> None:
        self._conn.execute(
            """INSERT INTO recognition_log (fingerprint, success, data, created_at)
               VALUES (?, ?, ?, ?)""",
            (
                entry.fingerprint,
                int(entry.result.success),
                entry.model_dump_json(),
                entry.created_at.isoformat(),
            ),
        )
        self._conn.commit()

    async def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _decode(data: str) -> CacheEntry | None:
        try:
            return CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache row: %s", e)
            return None
