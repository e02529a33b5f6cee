"""Freshness-based filtering, grouping and icon lookup for inventory lists."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from .catalog import category_key, item_key
from .expiry import Freshness, to_day
from .models import InventoryItem

ALL = "All"


def _today(today: date | datetime | str | None) -> date:
    return to_day(today if today is not None else datetime.now())


def parse_filter(value: str) -> Freshness | None:
    """Parse a filter name; ``All`` (any case) means no filter.

    Raises:
        ValueError: For unknown filter names.
    """
    if value.strip().casefold() == ALL.casefold():
        return None
    for status in Freshness:
        if status.value.casefold() == value.strip().casefold():
            return status
    raise ValueError(f"Unknown filter: {value!r}")


def sort_by_expiry(items: Iterable[InventoryItem]) -> list[InventoryItem]:
    return sorted(items, key=lambda i: to_day(i.expiry_date))


def filter_items(
    items: Iterable[InventoryItem],
    status_filter: Freshness | None = None,
    today: date | datetime | str | None = None,
) -> list[InventoryItem]:
    """Keep items whose current classification matches ``status_filter``."""
    if status_filter is None:
        return list(items)
    day = _today(today)
    return [i for i in items if i.freshness(day).category is status_filter]


def group_by_status(
    items: Iterable[InventoryItem],
    today: date | datetime | str | None = None,
) -> dict[Freshness, list[InventoryItem]]:
    day = _today(today)
    groups: dict[Freshness, list[InventoryItem]] = {s: [] for s in Freshness}
    for item in items:
        groups[item.freshness(day).category].append(item)
    return groups


def status_counts(
    items: Iterable[InventoryItem],
    today: date | datetime | str | None = None,
) -> dict[Freshness, int]:
    return {s: len(g) for s, g in group_by_status(items, today).items()}


def show_filter_chips(
    items: Iterable[InventoryItem],
    today: date | datetime | str | None = None,
) -> bool:
    """Filter chips are only useful once two or more statuses are present."""
    return sum(1 for n in status_counts(items, today).values() if n) >= 2


def expiring_items(
    items: Iterable[InventoryItem],
    today: date | datetime | str | None = None,
) -> list[InventoryItem]:
    """Urgent or Soon items that have not expired yet, soonest first."""
    day = _today(today)
    result = []
    for item in items:
        status = item.freshness(day)
        if not status.expired and status.category is not Freshness.FRESH:
            result.append(item)
    return sort_by_expiry(result)


def icon_key_for(item: InventoryItem) -> str:
    return category_key(item.category)


def image_key_for(item: InventoryItem) -> str:
    return item_key(item.name)
