"""Data models for inventory records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from .expiry import ExpiryStatus, classify


@dataclass
class InventoryItem:
    """A tracked food item.

    ``status`` is a cached projection of :func:`classify` over
    ``expiry_date``; :meth:`freshness` is authoritative.
    """

    name: str
    category: str            # Canonical category id (grains, dairy, ...)
    expiry_date: str         # ISO-8601 date or datetime
    status: str = ""
    image_url: str | None = None
    id: int | None = None

    def freshness(self, now: date | datetime | str | None = None) -> ExpiryStatus:
        return classify(self.expiry_date, now)

    def with_status(self, now: date | datetime | str | None = None) -> InventoryItem:
        """Return a copy whose ``status`` matches the current classification."""
        return InventoryItem(
            name=self.name,
            category=self.category,
            expiry_date=self.expiry_date,
            status=self.freshness(now).category.stored,
            image_url=self.image_url,
            id=self.id,
        )

    @classmethod
    def from_row(cls, row: dict) -> InventoryItem:
        return cls(
            id=row["id"],
            name=row["name"],
            category=row["category"],
            expiry_date=row["expiry_date"],
            status=row["status"],
            image_url=row.get("image_url"),
        )
