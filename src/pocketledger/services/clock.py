"""Time helpers shared by services."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""

    return datetime.now(timezone.utc)


def local_today(now: datetime, timezone_name: str | None) -> date:
    """Return the calendar day of *now* in the given IANA timezone (UTC if unset)."""

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(timezone_name or "UTC")).date()


def coerce_date(value: date | datetime | str) -> date:
    """Accept a date, datetime or ISO ``YYYY-MM-DD`` string and return a date."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


__all__ = ["Clock", "coerce_date", "local_today", "utc_now"]
