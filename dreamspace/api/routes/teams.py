"""
Team endpoints.

Admins list, replace and repair teams. Coaches edit their own team's
details, read its metrics and record meeting attendance.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...core.teams.models import DemoteOption
from ..dependencies import (
    AdminUser,
    CoachUser,
    ManagedTeam,
    TeamCoordinatorDep,
)
from ..envelope import envelope_response

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------

class ReplaceCoachRequest(BaseModel):
    """
    How to retire a coach.

    `unassigned` and `assign-to-team` hand the team to `new_coach_id`.
    `disband-team` releases every member; `merge-team` moves them into
    the team named by `assign_to_team_id`.
    """
    demote_option: DemoteOption = Field(DemoteOption.UNASSIGNED)
    new_coach_id: Optional[str] = Field(None, description="Required unless disbanding or merging")
    assign_to_team_id: Optional[str] = Field(
        None,
        description="Team (team id or manager id) that receives the old coach or the merged members",
    )
    team_name: Optional[str] = Field(None, max_length=100)


class TeamInfoUpdate(BaseModel):
    """Editable team fields. Omitted fields are left unchanged."""
    team_name: Optional[str] = Field(None, max_length=100)
    mission: Optional[str] = Field(None, max_length=2000)
    next_meeting: Optional[str] = None


class AttendanceRequest(BaseModel):
    meeting_date: str = Field(
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Meeting day, YYYY-MM-DD",
    )
    attendees: list[str] = Field(default_factory=list)
    notes: str = Field("", max_length=2000)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", summary="List teams")
async def list_teams(admin: AdminUser, coordinator: TeamCoordinatorDep) -> JSONResponse:
    return envelope_response(await coordinator.list_teams())


@router.post(
    "/{coach_id}/replace-coach",
    summary="Replace, disband, or merge a coach's team",
)
async def replace_coach(
    coach_id: str,
    request: ReplaceCoachRequest,
    admin: AdminUser,
    coordinator: TeamCoordinatorDep,
) -> JSONResponse:
    logger.info(
        "Coach replacement requested",
        extra={
            "admin_id": admin.id,
            "old_coach_id": coach_id,
            "new_coach_id": request.new_coach_id,
            "demote_option": request.demote_option.value,
        },
    )
    result = await coordinator.replace_team_coach(
        coach_id,
        new_coach_id=request.new_coach_id,
        demote_option=request.demote_option,
        assign_to_team_id=request.assign_to_team_id,
        team_name=request.team_name,
    )
    return envelope_response(result)


@router.post(
    "/{manager_id}/reconcile",
    summary="Repair user/team membership for one team",
)
async def reconcile_team(
    manager_id: str,
    admin: AdminUser,
    coordinator: TeamCoordinatorDep,
    dry_run: bool = Query(False, description="Report problems without fixing them"),
) -> JSONResponse:
    result = await coordinator.reconcile_team(manager_id, dry_run=dry_run)
    return envelope_response(result)


@router.patch(
    "/{team_ref}",
    summary="Update team name, mission, or next meeting",
)
async def update_team(
    request: TeamInfoUpdate,
    team: ManagedTeam,
    coordinator: TeamCoordinatorDep,
) -> JSONResponse:
    result = await coordinator.update_team_info(
        team.manager_id,
        team_name=request.team_name,
        mission=request.mission,
        next_meeting=request.next_meeting,
    )
    return envelope_response(result)


@router.get(
    "/{team_ref}/metrics",
    summary="Roster and engagement metrics for a team",
)
async def get_metrics(team: ManagedTeam, coordinator: TeamCoordinatorDep) -> JSONResponse:
    return envelope_response(await coordinator.get_team_metrics(team.manager_id))


@router.post(
    "/{team_ref}/attendance",
    summary="Record who attended a team meeting",
)
async def save_attendance(
    request: AttendanceRequest,
    team: ManagedTeam,
    coach: CoachUser,
    coordinator: TeamCoordinatorDep,
) -> JSONResponse:
    result = await coordinator.save_meeting_attendance(
        team.team_id,
        request.meeting_date,
        request.attendees,
        notes=request.notes,
        recorded_by=coach.id,
    )
    return envelope_response(result, success_status=status.HTTP_201_CREATED)


@router.get(
    "/{team_ref}/attendance",
    summary="Meeting attendance history for a team",
)
async def get_attendance(team: ManagedTeam, coordinator: TeamCoordinatorDep) -> JSONResponse:
    return envelope_response(await coordinator.get_meeting_attendance(team.team_id))
