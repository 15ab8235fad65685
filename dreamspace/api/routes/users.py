"""
User endpoints.

`/me` returns the acting user. Everything else is admin-only. The
assign, unassign and promote endpoints change coaching relationships, so
they go through the TeamCoordinator to keep user and team documents in
agreement.
"""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...core.results import ActionResult
from ..dependencies import AdminUser, CurrentUser, TeamCoordinatorDep, UserRepositoryDep
from ..envelope import envelope_response

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------

class CoachAssignmentRequest(BaseModel):
    """Which coach a user is being assigned to or removed from."""
    coach_id: str = Field(min_length=1, description="User id of the coach (team manager)")


class PromoteRequest(BaseModel):
    """Options for promoting a user to coach."""
    team_name: Optional[str] = Field(
        None,
        max_length=100,
        description="Name for the new team. A random name is generated if omitted.",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/me",
    status_code=status.HTTP_200_OK,
    summary="Get the signed-in user",
)
async def get_me(user: CurrentUser) -> JSONResponse:
    data = {**asdict(user), "is_admin": user.is_admin, "can_coach": user.can_coach}
    return envelope_response(ActionResult.success(data))


@router.get("", summary="List all users")
async def list_users(admin: AdminUser, users: UserRepositoryDep) -> JSONResponse:
    everyone = await users.list_all()
    data = {"users": [asdict(u) for u in everyone], "count": len(everyone)}
    return envelope_response(ActionResult.success(data))


@router.post(
    "/{user_id}/assign",
    summary="Assign a user to a coach's team",
)
async def assign_user(
    user_id: str,
    request: CoachAssignmentRequest,
    admin: AdminUser,
    coordinator: TeamCoordinatorDep,
) -> JSONResponse:
    logger.info(
        "Assign requested",
        extra={"admin_id": admin.id, "user_id": user_id, "coach_id": request.coach_id},
    )
    result = await coordinator.assign_user_to_coach(user_id, request.coach_id)
    return envelope_response(result)


@router.post(
    "/{user_id}/unassign",
    summary="Remove a user from a coach's team",
)
async def unassign_user(
    user_id: str,
    request: CoachAssignmentRequest,
    admin: AdminUser,
    coordinator: TeamCoordinatorDep,
) -> JSONResponse:
    logger.info(
        "Unassign requested",
        extra={"admin_id": admin.id, "user_id": user_id, "coach_id": request.coach_id},
    )
    result = await coordinator.unassign_user_from_team(user_id, request.coach_id)
    return envelope_response(result)


@router.post(
    "/{user_id}/promote",
    summary="Promote a user to coach",
    description="Creates an empty team managed by the user.",
)
async def promote_user(
    user_id: str,
    admin: AdminUser,
    coordinator: TeamCoordinatorDep,
    request: Optional[PromoteRequest] = None,
) -> JSONResponse:
    team_name = request.team_name if request else None
    logger.info(
        "Promotion requested",
        extra={"admin_id": admin.id, "user_id": user_id},
    )
    result = await coordinator.promote_user_to_coach(user_id, team_name)
    return envelope_response(result, success_status=status.HTTP_201_CREATED)
