"""
Weekly rollover.

Per user, the stored CurrentWeek is in one of these states:

    MISSING  -> CURRENT             (first week, nothing to archive)
    STALE    -> ARCHIVING -> CURRENT

A week is STALE once today falls after its end date. Rolling over archives
a summary of the stale week at the head of PastWeeks and writes a fresh
CurrentWeek for today's ISO week, instantiated from the user's templates.
A document several weeks old is archived once and replaced by today's
week; the gap is not back-filled.

Archive is written before the new week. If the second write fails, the
next sync finds the same stale week and re-archives it, which is a no-op
because that week is already at the head of the archive.
"""

import logging
from dataclasses import asdict
from datetime import date
from typing import Callable, Iterable, Optional, Protocol

from ..errors import ConflictError, ValidationError
from ..results import action_boundary
from ..teams.models import utcnow
from .isoweek import IsoWeek, completion_rate
from .models import (
    CurrentWeek,
    DurationType,
    PastWeekSummary,
    PastWeeks,
    Recurrence,
    WeekGoal,
    WeeklyGoalTemplate,
    WeekState,
)

logger = logging.getLogger(__name__)


class WeekStore(Protocol):
    """Persistence for current and past week documents."""

    async def get_current_week(self, user_id: str) -> Optional[CurrentWeek]: ...

    async def upsert_current_week(self, week: CurrentWeek) -> CurrentWeek: ...

    async def get_past_weeks(self, user_id: str) -> Optional[PastWeeks]: ...

    async def upsert_past_weeks(self, past: PastWeeks) -> PastWeeks: ...


class TemplateSource(Protocol):
    """Where a user's weekly goal templates come from."""

    async def get_templates(self, user_id: str) -> list[WeeklyGoalTemplate]: ...


def week_state(week: Optional[CurrentWeek], today: date) -> WeekState:
    if week is None:
        return WeekState.MISSING
    if week.week_end_date < today:
        return WeekState.STALE
    return WeekState.CURRENT


def summarize_week(week: CurrentWeek) -> PastWeekSummary:
    completed = sum(1 for g in week.goals if g.completed)
    total = len(week.goals)
    return PastWeekSummary(
        week_id=week.week_id,
        week_start_date=week.week_start_date,
        week_end_date=week.week_end_date,
        week_number=week.week_number,
        year=week.year,
        goals_completed=completed,
        goals_total=total,
        completion_rate=completion_rate(completed, total),
        goals=list(week.goals),
    )


def _in_window(template: WeeklyGoalTemplate, week: IsoWeek, today: date) -> bool:
    if template.target_date and template.target_date < today:
        return False
    if template.start_date is None:
        return True
    if template.start_date > week.end:
        return False
    if template.duration_type == DurationType.WEEKS and template.duration_weeks:
        return week.weeks_since(template.start_date) < template.duration_weeks
    return True


def instantiate_goals(
    templates: Iterable[WeeklyGoalTemplate],
    week: IsoWeek,
    history: Iterable[WeekGoal],
    today: date,
) -> list[WeekGoal]:
    """
    Build a week's goal list from templates.

    Inactive templates are skipped. Weekly templates produce a goal every
    week inside their window. A once template produces a goal only if no
    instance of it appears anywhere in `history`, so a once goal shows up
    in exactly one week whether or not it was completed.
    """
    history = list(history)
    goals = []
    for template in templates:
        if not template.active or not _in_window(template, week, today):
            continue
        if template.recurrence == Recurrence.ONCE and any(
            g.instance_of(template) for g in history
        ):
            continue
        goals.append(
            WeekGoal(
                id=f"{template.id}_{week.week_id}",
                title=template.title,
                week_id=week.week_id,
                template_id=template.id,
                goal_id=template.goal_id or template.id,
                dream_id=template.dream_id,
                recurrence=template.recurrence,
            )
        )
    return goals


class WeeklyRolloverEngine:
    """
    Keeps each user's CurrentWeek pointed at the ISO week containing today.

    `today` is injectable so the sweep and tests can pin the clock.
    """

    def __init__(
        self,
        weeks: WeekStore,
        templates: TemplateSource,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._weeks = weeks
        self._templates = templates
        self._today = today

    async def archive_week(self, user_id: str, summary: PastWeekSummary) -> PastWeeks:
        """Prepend a summary to the user's archive; a repeat of the head is ignored."""
        past = await self._weeks.get_past_weeks(user_id) or PastWeeks(user_id=user_id)
        if past.latest and past.latest.week_id == summary.week_id:
            logger.info(
                "Week already archived",
                extra={"user_id": user_id, "week_id": summary.week_id},
            )
            return past

        past.weeks = [summary, *past.weeks]
        past.last_modified = utcnow()
        return await self._weeks.upsert_past_weeks(past)

    async def roll_over(self, user_id: str, today: Optional[date] = None) -> tuple[CurrentWeek, bool]:
        """Bring one user's week up to date. Returns the week and whether it changed."""
        today = today or self._today()
        current = await self._weeks.get_current_week(user_id)
        state = week_state(current, today)
        if state == WeekState.CURRENT:
            return current, False

        past = await self._weeks.get_past_weeks(user_id)
        history = [g for summary in (past.weeks if past else []) for g in summary.goals]

        if state == WeekState.STALE:
            logger.info(
                "Archiving stale week",
                extra={"user_id": user_id, "week_id": current.week_id, "state": WeekState.ARCHIVING.value},
            )
            await self.archive_week(user_id, summarize_week(current))
            history = [*current.goals, *history]

        target = IsoWeek.of(today)
        templates = await self._templates.get_templates(user_id)
        week = CurrentWeek(
            user_id=user_id,
            week_id=target.week_id,
            week_start_date=target.start,
            week_end_date=target.end,
            week_number=target.week,
            year=target.year,
            goals=instantiate_goals(templates, target, history, today),
        )
        week = await self._weeks.upsert_current_week(week)

        logger.info(
            "Current week created",
            extra={
                "user_id": user_id,
                "week_id": week.week_id,
                "from_state": state.value,
                "goals": len(week.goals),
            },
        )
        return week, True

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    @action_boundary("Failed to sync current week")
    async def sync_current_week(self, user_id: str, today: Optional[date] = None) -> dict:
        if not user_id:
            raise ValidationError("userId is required")
        week, rolled = await self.roll_over(user_id, today)
        return {"current_week": {**asdict(week), "stats": week.stats}, "rolled": rolled}

    @action_boundary("Failed to perform weekly rollover")
    async def roll_over_all(self, user_ids: Iterable[str], today: Optional[date] = None) -> dict:
        today = today or self._today()
        report = {"total": 0, "rolled": 0, "skipped": 0, "failed": 0, "details": []}

        for user_id in user_ids:
            report["total"] += 1
            try:
                week, rolled = await self.roll_over(user_id, today)
            except Exception as e:
                logger.error(
                    "Weekly rollover failed for user",
                    extra={"user_id": user_id, "error": str(e)},
                    exc_info=e,
                )
                report["failed"] += 1
                report["details"].append({"user_id": user_id, "success": False, "error": str(e)})
                continue

            report["rolled" if rolled else "skipped"] += 1
            report["details"].append(
                {"user_id": user_id, "success": True, "rolled": rolled, "week_id": week.week_id}
            )

        report["message"] = (
            f"Weekly rollover completed: {report['rolled']} rolled, "
            f"{report['skipped']} skipped, {report['failed']} failed"
        )
        logger.info(
            "Weekly rollover completed",
            extra={k: report[k] for k in ("total", "rolled", "skipped", "failed")},
        )
        return report

    @action_boundary("Failed to save current week")
    async def save_current_week(self, user_id: str, week_id: str, goals: list[WeekGoal]) -> dict:
        if not user_id:
            raise ValidationError("userId is required")
        try:
            target = IsoWeek.parse(week_id)
        except ValueError as e:
            raise ValidationError(str(e))

        current = await self._weeks.get_current_week(user_id)
        if current is not None and current.week_id != week_id:
            raise ConflictError(
                f"Week {week_id} is not the current week ({current.week_id}); sync first"
            )

        stray = [g.id for g in goals if g.week_id != week_id]
        if stray:
            raise ValidationError(f"Goals belong to a different week: {', '.join(stray)}")

        if current is None:
            current = CurrentWeek(
                user_id=user_id,
                week_id=target.week_id,
                week_start_date=target.start,
                week_end_date=target.end,
                week_number=target.week,
                year=target.year,
            )
        current.goals = list(goals)
        current.last_modified = utcnow()
        week = await self._weeks.upsert_current_week(current)
        return {**asdict(week), "stats": week.stats}

    @action_boundary("Failed to get current week")
    async def get_current_week(self, user_id: str) -> Optional[dict]:
        week = await self._weeks.get_current_week(user_id)
        if week is None:
            return None
        return {**asdict(week), "stats": week.stats}

    @action_boundary("Failed to get past weeks")
    async def get_past_weeks(self, user_id: str) -> dict:
        past = await self._weeks.get_past_weeks(user_id) or PastWeeks(user_id=user_id)
        return asdict(past)
