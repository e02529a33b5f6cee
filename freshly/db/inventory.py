"""Food inventory CRUD operations."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from pathlib import Path

from ..expiry import classify, to_day
from ..models import InventoryItem
from .schema import ensure_schema


class InventoryDB:
    """Manages the inventory table."""

    def __init__(self, db_path: str | Path = "~/.config/freshly/freshly.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def create(self, item: InventoryItem) -> int:
        """Insert an item and return its row ID.

        The stored status is recomputed from ``expiry_date``.
        """
        status = classify(item.expiry_date).category.stored
        conn = self._get_conn()
        cur = conn.execute(
            """INSERT INTO inventory (name, category, expiry_date, status, image_url)
               VALUES (?, ?, ?, ?, ?)""",
            (item.name, item.category, item.expiry_date, status, item.image_url),
        )
        conn.commit()
        return cur.lastrowid

    def list(self) -> list[InventoryItem]:
        """Return all items, soonest expiry first."""
        rows = self._get_conn().execute(
            "SELECT * FROM inventory ORDER BY expiry_date ASC, id ASC"
        ).fetchall()
        return [InventoryItem.from_row(dict(r)) for r in rows]

    def get(self, item_id: int) -> InventoryItem | None:
        row = self._get_conn().execute(
            "SELECT * FROM inventory WHERE id = ?", (item_id,)
        ).fetchone()
        return InventoryItem.from_row(dict(row)) if row else None

    def delete(self, item_id: int) -> bool:
        """Delete an item by ID. Returns False if it did not exist."""
        conn = self._get_conn()
        cur = conn.execute("DELETE FROM inventory WHERE id = ?", (item_id,))
        conn.commit()
        return cur.rowcount > 0

    def set_image_url(self, item_id: int, image_url: str | None) -> None:
        conn = self._get_conn()
        conn.execute(
            "UPDATE inventory SET image_url = ? WHERE id = ?",
            (image_url, item_id),
        )
        conn.commit()

    def refresh_statuses(self, today: date | datetime | str | None = None) -> int:
        """Recompute the cached status column for every item.

        Returns:
            Number of rows whose status changed.
        """
        day = to_day(today if today is not None else datetime.now())
        conn = self._get_conn()
        rows = conn.execute("SELECT id, expiry_date, status FROM inventory").fetchall()
        changed = 0
        for row in rows:
            status = classify(row["expiry_date"], day).category.stored
            if status != row["status"]:
                conn.execute(
                    "UPDATE inventory SET status = ? WHERE id = ?",
                    (status, row["id"]),
                )
                changed += 1
        conn.commit()
        return changed
