"""Pluggable time source so date logic can be tested at a fixed instant."""

from datetime import date, datetime, timezone
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of the current time and of "today"."""

    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """Wall clock in the configured IANA timezone."""

    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


def utc(moment: datetime) -> datetime:
    """Normalize an aware datetime to UTC for storage and comparisons."""
    return moment.astimezone(timezone.utc)
