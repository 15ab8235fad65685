"""ISO-8601 week arithmetic (Monday start, Thursday-anchored week 1)."""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

_WEEK_ID = re.compile(r"^(\d{4})-W(\d{2})$")


@dataclass(frozen=True)
class IsoWeek:
    year: int
    week: int

    @classmethod
    def of(cls, day: date) -> "IsoWeek":
        iso = day.isocalendar()
        return cls(year=iso[0], week=iso[1])

    @classmethod
    def parse(cls, week_id: str) -> "IsoWeek":
        """Parse "YYYY-Www". Raises ValueError on a malformed or impossible week."""
        match = _WEEK_ID.match(week_id or "")
        if not match:
            raise ValueError(f"Invalid week id '{week_id}', expected YYYY-Www")
        year, week = int(match.group(1)), int(match.group(2))
        date.fromisocalendar(year, week, 1)
        return cls(year=year, week=week)

    @property
    def week_id(self) -> str:
        return f"{self.year}-W{self.week:02d}"

    @property
    def start(self) -> date:
        return date.fromisocalendar(self.year, self.week, 1)

    @property
    def end(self) -> date:
        return self.start + timedelta(days=6)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def weeks_since(self, day: date) -> int:
        """Whole weeks from the ISO week containing `day` to this one."""
        return (self.start - IsoWeek.of(day).start).days // 7


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def completion_rate(completed: int, total: int) -> int:
    """Percentage of goals completed, 0 for an empty week."""
    if total <= 0:
        return 0
    return round_half_up(completed / total * 100)


def today_in(timezone_name: str) -> date:
    return datetime.now(ZoneInfo(timezone_name)).date()
