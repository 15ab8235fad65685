"""
Immutable records for single-document entities.

These are shared by the HTTP API (request/response bodies), the
repositories (what gets stored) and the client stores (what the UI holds
in optimistic state). They are frozen, and collections are tuples, so a
client can keep the last confirmed value around and know nothing will
mutate it in place.
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Dreams
# ---------------------------------------------------------------------------

class DreamNote(Record):
    id: str
    text: str
    created_at: Optional[datetime] = None


class DreamRecord(Record):
    id: str
    title: str = Field(..., min_length=1, max_length=200)
    category: str = ""
    description: str = ""
    progress: int = Field(default=0, ge=0, le=100)
    image: Optional[str] = None
    notes: tuple[DreamNote, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WeeklyGoalTemplateRecord(Record):
    id: str
    title: str = Field(..., min_length=1)
    dream_id: Optional[str] = None
    goal_id: Optional[str] = None
    recurrence: Literal["weekly", "once"] = "weekly"
    active: bool = True
    duration_type: Literal["unlimited", "weeks"] = "unlimited"
    duration_weeks: Optional[int] = Field(default=None, ge=1)
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    category: str = ""
    description: str = ""


class DreamsDocumentRecord(Record):
    dreams: tuple[DreamRecord, ...] = ()
    weekly_goal_templates: tuple[WeeklyGoalTemplateRecord, ...] = ()
    year_vision: str = ""


# ---------------------------------------------------------------------------
# Weeks
# ---------------------------------------------------------------------------

class WeekGoalRecord(Record):
    id: str
    title: str
    week_id: str
    template_id: Optional[str] = None
    goal_id: Optional[str] = None
    dream_id: Optional[str] = None
    recurrence: Literal["weekly", "once"] = "weekly"
    active: bool = True
    completed: bool = False
    completed_at: Optional[datetime] = None


class CurrentWeekRecord(Record):
    week_id: str
    goals: tuple[WeekGoalRecord, ...] = ()
    week_start_date: Optional[date] = None
    week_end_date: Optional[date] = None
    week_number: Optional[int] = None
    year: Optional[int] = None


# ---------------------------------------------------------------------------
# Connects
# ---------------------------------------------------------------------------

class ConnectRecord(Record):
    id: str
    with_whom: str = Field(..., min_length=1)
    with_whom_id: str
    dream_id: Optional[str] = None
    when: Optional[date] = None
    notes: str = ""
    status: Literal["pending", "completed"] = "pending"
    agenda: str = ""
    proposed_weeks: tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class ScoringEntryRecord(Record):
    id: str
    entry_date: date
    activity: str
    points: int
    category: Optional[str] = None
    source: Optional[str] = None
    dream_id: Optional[str] = None
    week_id: Optional[str] = None
    connect_id: Optional[str] = None


class ScoringRecord(Record):
    year: int = Field(..., ge=2000, le=2100)
    entries: tuple[ScoringEntryRecord, ...] = ()

    @property
    def total_score(self) -> int:
        return sum(e.points for e in self.entries)


# ---------------------------------------------------------------------------
# Team info
# ---------------------------------------------------------------------------

class TeamInfoRecord(Record):
    manager_id: str
    team_id: str
    team_name: str
    mission: str = ""
    next_meeting: Optional[str] = None
    team_members: tuple[str, ...] = ()
