"""Clock abstraction for local calendar dates."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of the current instant in the user's timezone."""

    @property
    def tz(self) -> tzinfo:
        """Return the user's local timezone."""

    def now(self) -> datetime:
        """Return the current timezone-aware local instant."""


@dataclass
class SystemClock(Clock):
    """Wall-clock time in a configured IANA timezone."""

    timezone_name: str = "UTC"
    _tz: ZoneInfo = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._tz = ZoneInfo(self.timezone_name)

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(tz=self._tz)


def localize(moment: datetime, tz: tzinfo) -> datetime:
    """Return an aware instant; naive datetimes are taken as local time."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment


def date_key(moment: datetime, tz: tzinfo) -> str:
    """Return the local `YYYY-MM-DD` key for an instant."""
    return localize(moment, tz).astimezone(tz).date().isoformat()


def today_key(clock: Clock) -> str:
    """Return the key of the clock's current local date."""
    return date_key(clock.now(), clock.tz)


def parse_date_key(value: str) -> date:
    """Parse a `YYYY-MM-DD` key, raising ValueError when malformed."""
    if len(value) != len("YYYY-MM-DD"):
        raise ValueError(f"Invalid date key: {value!r}")
    return date.fromisoformat(value)


def seconds_until_next_midnight(clock: Clock) -> float:
    """Return the real seconds remaining until the next local midnight."""
    now = clock.now()
    tomorrow = now.astimezone(clock.tz).date() + timedelta(days=1)
    midnight = datetime.combine(tomorrow, time.min, tzinfo=clock.tz)
    remaining = midnight.astimezone(UTC) - now.astimezone(UTC)
    return max(remaining.total_seconds(), 0.0)
