"""
Domain models for weekly goals.

Templates live on the user's dreams document and describe what to do every
week (or once). Each week a CurrentWeek is instantiated from them; when the
week ends it is summarized into PastWeeks, newest first.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from ..teams.models import utcnow
from .isoweek import completion_rate


class Recurrence(Enum):
    WEEKLY = "weekly"
    ONCE = "once"


class DurationType(Enum):
    UNLIMITED = "unlimited"
    WEEKS = "weeks"


class WeekState(Enum):
    """Where a user's current-week document stands relative to today."""
    MISSING = "missing"
    CURRENT = "current"
    STALE = "stale"
    ARCHIVING = "archiving"


@dataclass
class WeeklyGoalTemplate:
    id: str
    title: str
    dream_id: Optional[str] = None
    goal_id: Optional[str] = None
    recurrence: Recurrence = Recurrence.WEEKLY
    active: bool = True
    duration_type: DurationType = DurationType.UNLIMITED
    duration_weeks: Optional[int] = None
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    category: str = ""
    description: str = ""


@dataclass
class WeekGoal:
    """A template instantiated into a specific week."""
    id: str
    title: str
    week_id: str
    template_id: Optional[str] = None
    goal_id: Optional[str] = None
    dream_id: Optional[str] = None
    recurrence: Recurrence = Recurrence.WEEKLY
    active: bool = True
    completed: bool = False
    completed_at: Optional[datetime] = None

    def instance_of(self, template: WeeklyGoalTemplate) -> bool:
        if self.template_id and self.template_id == template.id:
            return True
        return bool(template.goal_id) and self.goal_id == template.goal_id


@dataclass
class CurrentWeek:
    user_id: str
    week_id: str
    week_start_date: date
    week_end_date: date
    week_number: int
    year: int
    goals: list[WeekGoal] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    last_modified: datetime = field(default_factory=utcnow)

    @property
    def stats(self) -> dict:
        completed = sum(1 for g in self.goals if g.completed)
        return {
            "total_goals": len(self.goals),
            "completed_goals": completed,
            "completion_rate": completion_rate(completed, len(self.goals)),
        }


@dataclass
class PastWeekSummary:
    """An archived week. Never modified once written."""
    week_id: str
    week_start_date: date
    week_end_date: date
    week_number: int
    year: int
    goals_completed: int
    goals_total: int
    completion_rate: int
    goals: list[WeekGoal] = field(default_factory=list)
    archived_at: datetime = field(default_factory=utcnow)


@dataclass
class PastWeeks:
    user_id: str
    weeks: list[PastWeekSummary] = field(default_factory=list)
    last_modified: datetime = field(default_factory=utcnow)

    @property
    def latest(self) -> Optional[PastWeekSummary]:
        return self.weeks[0] if self.weeks else None
