"""Freshness classification from stored expiry timestamps."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

URGENT_DAYS = 2
SOON_DAYS = 5

# Days-left value that fills the progress bar completely
_PROGRESS_FULL_DAYS = 10
_PROGRESS_MIN = 0.05


class Freshness(str, Enum):
    URGENT = "Urgent"
    SOON = "Soon"
    FRESH = "Fresh"

    @property
    def stored(self) -> str:
        """Value written to the inventory ``status`` column."""
        return self.value.lower()


@dataclass(frozen=True)
class ExpiryStatus:
    category: Freshness
    days_left: int  # negative once expired

    @property
    def expired(self) -> bool:
        return self.days_left < 0

    @property
    def progress_ratio(self) -> float:
        ratio = self.days_left / _PROGRESS_FULL_DAYS
        return min(1.0, max(_PROGRESS_MIN, ratio))


def to_day(value: date | datetime | str) -> date:
    """Reduce a date, datetime or ISO-8601 string to its calendar day.

    Aware datetimes are converted to local time first so that both sides of
    a comparison are measured on the same calendar.

    Raises:
        ValueError: If a string is not valid ISO-8601.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def classify(
    expiry_date: date | datetime | str,
    now: date | datetime | str | None = None,
) -> ExpiryStatus:
    """Classify an expiry date relative to ``now`` (default: current time).

    Time of day is discarded on both sides, so the result is stable for the
    whole calendar day.
    """
    today = to_day(now if now is not None else datetime.now())
    days_left = (to_day(expiry_date) - today).days

    if days_left <= URGENT_DAYS:
        category = Freshness.URGENT
    elif days_left <= SOON_DAYS:
        category = Freshness.SOON
    else:
        category = Freshness.FRESH
    return ExpiryStatus(category=category, days_left=days_left)
