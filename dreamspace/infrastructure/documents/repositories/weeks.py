"""
Repository for current-week and past-weeks documents.

Both containers hold one document per user, keyed by user id.
"""

from typing import Optional

from dreamspace.core.teams.models import utcnow
from dreamspace.core.weeks.models import (
    CurrentWeek,
    PastWeekSummary,
    PastWeeks,
    Recurrence,
    WeekGoal,
)

from ..client import DocumentStore
from ..serialization import parse_date, parse_datetime, to_document

CURRENT_WEEKS = "current_weeks"
PAST_WEEKS = "past_weeks"


class WeekRepository:
    """Implements the WeekStore protocol the rollover engine depends on."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_current_week(self, user_id: str) -> Optional[CurrentWeek]:
        doc = await self._store.get(CURRENT_WEEKS, user_id, user_id)
        return self._build_current_week(doc) if doc else None

    async def upsert_current_week(self, week: CurrentWeek) -> CurrentWeek:
        doc = {"id": week.user_id, **to_document(week), "stats": week.stats}
        saved = await self._store.upsert(CURRENT_WEEKS, doc)
        return self._build_current_week(saved)

    async def get_past_weeks(self, user_id: str) -> Optional[PastWeeks]:
        doc = await self._store.get(PAST_WEEKS, user_id, user_id)
        return self._build_past_weeks(doc) if doc else None

    async def upsert_past_weeks(self, past: PastWeeks) -> PastWeeks:
        doc = {"id": past.user_id, **to_document(past)}
        saved = await self._store.upsert(PAST_WEEKS, doc)
        return self._build_past_weeks(saved)

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _build_goal(self, doc: dict) -> WeekGoal:
        return WeekGoal(
            id=doc["id"],
            title=doc.get("title", ""),
            week_id=doc.get("week_id", ""),
            template_id=doc.get("template_id"),
            goal_id=doc.get("goal_id"),
            dream_id=doc.get("dream_id"),
            recurrence=Recurrence(doc.get("recurrence") or Recurrence.WEEKLY.value),
            active=doc.get("active", True),
            completed=bool(doc.get("completed", False)),
            completed_at=parse_datetime(doc.get("completed_at")),
        )

    def _build_current_week(self, doc: dict) -> CurrentWeek:
        return CurrentWeek(
            user_id=doc.get("user_id") or doc["id"],
            week_id=doc["week_id"],
            week_start_date=parse_date(doc["week_start_date"]),
            week_end_date=parse_date(doc["week_end_date"]),
            week_number=int(doc["week_number"]),
            year=int(doc["year"]),
            goals=[self._build_goal(g) for g in doc.get("goals") or []],
            created_at=parse_datetime(doc.get("created_at")) or utcnow(),
            last_modified=parse_datetime(doc.get("last_modified")) or utcnow(),
        )

    def _build_summary(self, doc: dict) -> PastWeekSummary:
        return PastWeekSummary(
            week_id=doc["week_id"],
            week_start_date=parse_date(doc["week_start_date"]),
            week_end_date=parse_date(doc["week_end_date"]),
            week_number=int(doc["week_number"]),
            year=int(doc["year"]),
            goals_completed=int(doc.get("goals_completed") or 0),
            goals_total=int(doc.get("goals_total") or 0),
            completion_rate=int(doc.get("completion_rate") or 0),
            goals=[self._build_goal(g) for g in doc.get("goals") or []],
            archived_at=parse_datetime(doc.get("archived_at")) or utcnow(),
        )

    def _build_past_weeks(self, doc: dict) -> PastWeeks:
        return PastWeeks(
            user_id=doc.get("user_id") or doc["id"],
            weeks=[self._build_summary(w) for w in doc.get("weeks") or []],
            last_modified=parse_datetime(doc.get("last_modified")) or utcnow(),
        )
