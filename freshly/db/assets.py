"""Persistent store for generated images, keyed by asset key."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from ..imagegen import GeneratedImage
from .schema import ensure_schema

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "~/.config/freshly/freshly.db"


class AssetStore(ABC):
    """Key/value persistence for generated assets.

    Implementations must not raise from :meth:`get` or :meth:`set`: a read
    failure is a miss and a write failure is reported as False.
    """

    @abstractmethod
    async def get(self, key: str) -> GeneratedImage | None:
        ...

    @abstractmethod
    async def set(self, key: str, value: GeneratedImage) -> bool:
        ...

    def close(self) -> None:
        """Release any resources held by the store."""


class SQLiteAssetStore(AssetStore):
    """Stores generated images in the ``generated_assets`` table.

    Queries run in worker threads so a slow or locked database never blocks
    the event loop. One connection is shared and used by one thread at a time.
    """

    def __init__(
        self, db_path: str | Path = DEFAULT_DB_PATH, timeout: float = 5.0
    ) -> None:
        self._db_path = db_path
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(
                self._db_path, timeout=self._timeout, check_same_thread=False
            )
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _fetch(self, key: str) -> GeneratedImage | None:
        with self._lock:
            row = self._get_conn().execute(
                "SELECT mime_type, data FROM generated_assets WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        return GeneratedImage(data=bytes(row["data"]), mime_type=row["mime_type"])

    def _upsert(self, key: str, value: GeneratedImage) -> None:
        with self._lock:
            conn = self._get_conn()
            try:
                conn.execute(
                    """INSERT INTO generated_assets (key, mime_type, data)
                       VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                         mime_type=excluded.mime_type,
                         data=excluded.data,
                         created_at=datetime('now', 'localtime')""",
                    (key, value.mime_type, value.data),
                )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

    def _delete(self, key: str) -> None:
        with self._lock:
            conn = self._get_conn()
            conn.execute("DELETE FROM generated_assets WHERE key = ?", (key,))
            conn.commit()

    def _keys(self, prefix: str) -> list[str]:
        with self._lock:
            rows = self._get_conn().execute(
                "SELECT key FROM generated_assets WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [r["key"] for r in rows]

    async def get(self, key: str) -> GeneratedImage | None:
        try:
            return await asyncio.to_thread(self._fetch, key)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Asset store read failed for %s: %s", key, e)
            return None

    async def set(self, key: str, value: GeneratedImage) -> bool:
        try:
            await asyncio.to_thread(self._upsert, key, value)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Asset store write failed for %s: %s", key, e)
            return False
        return True

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def keys(self, prefix: str = "") -> list[str]:
        """Return stored keys starting with ``prefix``, sorted."""
        return await asyncio.to_thread(self._keys, prefix)
