"""
Weekly goal endpoints.

Clients call `sync` when a user signs in; it rolls a stale week over and
returns the current one. The admin `rollover` endpoint runs the same
transition for every user (normally triggered by a scheduler).
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...core.records import CurrentWeekRecord, WeekGoalRecord
from ...core.weeks.models import Recurrence, WeekGoal
from ..dependencies import (
    AdminUser,
    OwnerUser,
    RolloverEngineDep,
    UserRepositoryDep,
)
from ..envelope import envelope_response

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_week_goal(record: WeekGoalRecord) -> WeekGoal:
    return WeekGoal(
        id=record.id,
        title=record.title,
        week_id=record.week_id,
        template_id=record.template_id,
        goal_id=record.goal_id,
        dream_id=record.dream_id,
        recurrence=Recurrence(record.recurrence),
        active=record.active,
        completed=record.completed,
        completed_at=record.completed_at,
    )


@router.post("/rollover", summary="Roll every user's week over")
async def roll_over_all(
    admin: AdminUser,
    engine: RolloverEngineDep,
    users: UserRepositoryDep,
) -> JSONResponse:
    user_ids = await users.list_ids()
    logger.info(
        "Weekly rollover triggered",
        extra={"admin_id": admin.id, "users": len(user_ids)},
    )
    return envelope_response(await engine.roll_over_all(user_ids))


@router.get("/{user_id}/current", summary="Get the current week")
async def get_current_week(
    user_id: str,
    owner: OwnerUser,
    engine: RolloverEngineDep,
) -> JSONResponse:
    return envelope_response(await engine.get_current_week(user_id))


@router.put("/{user_id}/current", summary="Save the current week's goals")
async def save_current_week(
    user_id: str,
    week: CurrentWeekRecord,
    owner: OwnerUser,
    engine: RolloverEngineDep,
) -> JSONResponse:
    goals = [_to_week_goal(g) for g in week.goals]
    return envelope_response(await engine.save_current_week(user_id, week.week_id, goals))


@router.post("/{user_id}/sync", summary="Roll the week over if it is stale")
async def sync_current_week(
    user_id: str,
    owner: OwnerUser,
    engine: RolloverEngineDep,
) -> JSONResponse:
    return envelope_response(await engine.sync_current_week(user_id))


@router.get("/{user_id}/past", summary="Archived weeks, most recent first")
async def get_past_weeks(
    user_id: str,
    owner: OwnerUser,
    engine: RolloverEngineDep,
) -> JSONResponse:
    return envelope_response(await engine.get_past_weeks(user_id))
