"""Durable store backed by SQLite."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from imgrelay.cache.stats import CacheEntry
from imgrelay.errors.exceptions import PersistenceError
from imgrelay.types import ImageKind, RelayReference

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEFAULT_DB_PATH = Path.home() / ".imgrelay" / "cache.db"


class SqliteStore:
    """SQLite-backed persistent store.

    Blocking calls run in a worker thread; a thread lock serializes them so
    one connection can be shared.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or _DEFAULT_DB_PATH
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._create_table()

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def get(self, key: str) -> CacheEntry | None:
        return await self._run(self._get_sync, key)

    async def put(self, key: str, entry: CacheEntry) -> None:
        await self._run(self._put_sync, key, entry)

    async def touch(self, key: str, when: float) -> None:
        await self._run(
            self._execute, "UPDATE images SET last_accessed = ? WHERE key = ?", (when, key)
        )

    async def delete(self, key: str) -> bool:
        rowcount = await self._run(self._execute, "DELETE FROM images WHERE key = ?", (key,))
        return rowcount > 0

    async def clear(self) -> None:
        await self._run(self._execute, "DELETE FROM images", ())

    async def size(self) -> int:
        return await self._run(self._size_sync)

    async def keys(self) -> list[str]:
        return await self._run(self._keys_sync)

    async def close(self) -> None:
        with self._lock:
            self._conn.close()

    async def _run(self, fn: Callable[..., T], *args: object) -> T:
        try:
            return await asyncio.to_thread(self._locked, fn, *args)
        except sqlite3.Error as e:
            logger.error("SQLite store %s failed: %s", self._db_path, e)
            raise PersistenceError(f"Cache store failure: {e}", original=e) from e

    def _locked(self, fn: Callable[..., T], *args: object) -> T:
        with self._lock:
            return fn(*args)

    def _get_sync(self, key: str) -> CacheEntry | None:
        row = self._conn.execute("SELECT * FROM images WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        entry = self._row_to_entry(row)
        if entry.is_expired:
            self._conn.execute("DELETE FROM images WHERE key = ?", (key,))
            self._conn.commit()
            return None
        return entry

    def _put_sync(self, key: str, entry: CacheEntry) -> None:
        relay_json = entry.relay.model_dump_json() if entry.relay else None
        # Single statement + commit: readers see the old row or the new one
        self._conn.execute(
            """INSERT OR REPLACE INTO images
               (key, image_id, origin_url, kind, content_type, data, relay,
                size_bytes, created_at, last_accessed, ttl_seconds, seq)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?,
                       COALESCE((SELECT MAX(seq) FROM images), 0) + 1)""",
            (
                key, entry.image_id, entry.origin_url, entry.kind.value,
                entry.content_type, entry.data, relay_json, entry.size_bytes,
                entry.created_at, entry.last_accessed or time.time(), entry.ttl_seconds,
            ),
        )
        self._conn.commit()

    def _execute(self, sql: str, params: tuple) -> int:
        cursor = self._conn.execute(sql, params)
        self._conn.commit()
        return cursor.rowcount

    def _size_sync(self) -> int:
        self._purge_expired()
        row = self._conn.execute("SELECT COUNT(*) FROM images").fetchone()
        return row[0]

    def _keys_sync(self) -> list[str]:
        self._purge_expired()
        rows = self._conn.execute("SELECT key FROM images ORDER BY seq ASC").fetchall()
        return [row[0] for row in rows]

    def _purge_expired(self) -> None:
        self._conn.execute(
            "DELETE FROM images WHERE ttl_seconds IS NOT NULL AND created_at + ttl_seconds < ?",
            (time.time(),),
        )
        self._conn.commit()

    def _create_table(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS images (
                key TEXT PRIMARY KEY,
                image_id TEXT,
                origin_url TEXT,
                kind TEXT,
                content_type TEXT,
                data BLOB,
                relay TEXT,
                size_bytes INTEGER,
                created_at REAL,
                last_accessed REAL,
                ttl_seconds REAL,
                seq INTEGER
            )
        """)
        self._conn.commit()

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> CacheEntry:
        relay = None
        if row["relay"]:
            try:
                relay = RelayReference(**json.loads(row["relay"]))
            except (json.JSONDecodeError, TypeError) as e:
                raise PersistenceError(f"Corrupt relay reference for {row['key']}") from e

        return CacheEntry(
            key=row["key"],
            image_id=row["image_id"] or "",
            origin_url=row["origin_url"] or "",
            kind=ImageKind(row["kind"] or ImageKind.POSTER.value),
            content_type=row["content_type"] or "image/jpeg",
            data=row["data"],
            relay=relay,
            size_bytes=row["size_bytes"] or 0,
            created_at=row["created_at"],
            last_accessed=row["last_accessed"],
            ttl_seconds=row["ttl_seconds"],
        )
