"""
Clock — the single source of "now" and of day/week boundaries.

All boundaries use the local calendar of one IANA zone; weeks run
Monday through Sunday. Injected everywhere so tests can roll days over.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo


class Clock:
    """Wall clock in a fixed zone."""

    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(tz=self.tz)

    def today(self) -> date:
        return self.now().date()

    # --- boundaries -------------------------------------------------------

    def start_of_day(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)

    def next_midnight(self, day: date | None = None) -> datetime:
        return self.start_of_day((day or self.today()) + timedelta(days=1))

    def week_bounds(self, day: date | None = None) -> tuple[date, date]:
        """(monday, sunday) of the week containing `day`."""
        d = day or self.today()
        monday = d - timedelta(days=d.weekday())
        return monday, monday + timedelta(days=6)

    def local_date(self, moment: datetime | None) -> date | None:
        """Calendar day of a stored timestamp. Naive values are already local."""
        if moment is None:
            return None
        if moment.tzinfo is None:
            return moment.date()
        return moment.astimezone(self.tz).date()

    def localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.tz)
        return moment.astimezone(self.tz)


class FixedClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, moment: datetime, tz_name: str = "UTC"):
        super().__init__(tz_name)
        self._now = self.localize(moment)

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = self.localize(moment)

    def advance(self, **delta) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now

    def next_day(self, hour: int = 9) -> datetime:
        """Jump to `hour`:00 on the following calendar day."""
        tomorrow = self.today() + timedelta(days=1)
        self._now = datetime.combine(tomorrow, time(hour=hour), tzinfo=self.tz)
        return self._now
