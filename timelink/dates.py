"""Date range helpers.

All datetimes stored locally are UTC and tz-naive. Inputs may be dates,
naive datetimes (interpreted in ``settings.timezone``) or aware datetimes.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from timelink.config import settings

DateLike = Union[date, datetime, str]


def _local_tz(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.timezone)


def parse_datetime(value: DateLike, tz_name: Optional[str] = None) -> datetime:
    """Parse a date/datetime/ISO string into an aware datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=_local_tz(tz_name))
    return value


def to_utc(value: Optional[DateLike], tz_name: Optional[str] = None) -> Optional[datetime]:
    """Normalize to UTC tz-naive (safe for DB storage and comparisons)."""
    if value is None:
        return None
    return parse_datetime(value, tz_name).astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class DateRange:
    """Half-open range ``[since, until)``."""

    since: datetime
    until: datetime

    def __post_init__(self):
        if self.utc_since >= self.utc_until:
            raise ValueError(f"Invalid date range: {self.since} is not before {self.until}")

    @classmethod
    def from_values(cls, since: DateLike, until: DateLike, tz_name: Optional[str] = None) -> "DateRange":
        return cls(parse_datetime(since, tz_name), parse_datetime(until, tz_name))

    @classmethod
    def last_days(cls, days: int, now: Optional[datetime] = None) -> "DateRange":
        """Whole local days: from ``days`` days ago up to and including today."""
        now = now or datetime.now(timezone.utc)
        today = now.astimezone(_local_tz()).date()
        return cls.from_values(today - timedelta(days=days), today + timedelta(days=1))

    @property
    def utc_since(self) -> datetime:
        return to_utc(self.since)

    @property
    def utc_until(self) -> datetime:
        return to_utc(self.until)

    def contains(self, value: datetime) -> bool:
        """Whether a UTC tz-naive datetime lies in the range."""
        return self.utc_since <= value < self.utc_until

    def report_dates(self) -> tuple[date, date]:
        """Inclusive (since, until) dates for report APIs that take whole days."""
        last = self.until - timedelta(microseconds=1)
        return self.since.date(), last.date()

    def __str__(self):
        return f"[{self.since.isoformat()}, {self.until.isoformat()})"
