"""
FastAPI dependency injection.

Dependencies provide instances of repositories, coordinators, and
configuration to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Configuration is centralized
- The document store client lives for the whole process and is closed
  by the application lifespan

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.teams.coordinator import TeamCoordinator
from ..core.teams.models import Team, User
from ..core.weeks.isoweek import today_in
from ..core.weeks.rollover import WeeklyRolloverEngine
from ..infrastructure.documents.client import (
    DocumentStore,
    MongoConfig,
    create_document_store,
)
from ..infrastructure.documents.repositories import (
    ConnectsRepository,
    DreamsRepository,
    ScoringRepository,
    TeamRepository,
    UserRepository,
    WeekRepository,
)

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# One store per process; in mock mode this is what keeps data between requests.
_document_store: Optional[DocumentStore] = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8] if api_key else ""}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


# ---------------------------------------------------------------------------
# Document store and repositories
# ---------------------------------------------------------------------------

def get_document_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> DocumentStore:
    """
    Provide the process-wide document store.

    Created on first use. In mock mode the in-memory store is shared
    across requests so that data persists during a local session.
    """
    global _document_store

    if _document_store is None:
        config = None
        if not settings.document_store_mock_mode:
            config = MongoConfig(
                uri=settings.mongodb_uri,
                database=settings.mongodb_database,
            )
        _document_store = create_document_store(
            config=config,
            mock_mode=settings.document_store_mock_mode,
        )
        logger.info(
            "Created document store",
            extra={"mock_mode": settings.document_store_mock_mode},
        )

    return _document_store


async def close_document_store() -> None:
    """Close the shared store (called from the application lifespan)."""
    global _document_store

    if _document_store is not None:
        await _document_store.close()
        _document_store = None


DocumentStoreDep = Annotated[DocumentStore, Depends(get_document_store)]


def get_user_repository(store: DocumentStoreDep) -> UserRepository:
    return UserRepository(store)


def get_team_repository(store: DocumentStoreDep) -> TeamRepository:
    return TeamRepository(store)


def get_week_repository(store: DocumentStoreDep) -> WeekRepository:
    return WeekRepository(store)


def get_dreams_repository(store: DocumentStoreDep) -> DreamsRepository:
    return DreamsRepository(store)


def get_connects_repository(store: DocumentStoreDep) -> ConnectsRepository:
    return ConnectsRepository(store)


def get_scoring_repository(store: DocumentStoreDep) -> ScoringRepository:
    return ScoringRepository(store)


UserRepositoryDep = Annotated[UserRepository, Depends(get_user_repository)]
TeamRepositoryDep = Annotated[TeamRepository, Depends(get_team_repository)]
WeekRepositoryDep = Annotated[WeekRepository, Depends(get_week_repository)]
DreamsRepositoryDep = Annotated[DreamsRepository, Depends(get_dreams_repository)]
ConnectsRepositoryDep = Annotated[ConnectsRepository, Depends(get_connects_repository)]
ScoringRepositoryDep = Annotated[ScoringRepository, Depends(get_scoring_repository)]


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_team_coordinator(
    users: UserRepositoryDep,
    teams: TeamRepositoryDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> TeamCoordinator:
    """The coordinator is stateless, so a new one per request is fine."""
    return TeamCoordinator(users, teams, manager_role=settings.default_manager_role)


def get_rollover_engine(
    weeks: WeekRepositoryDep,
    dreams: DreamsRepositoryDep,
    settings: Annotated[Settings, Depends(get_settings)],
) -> WeeklyRolloverEngine:
    return WeeklyRolloverEngine(
        weeks,
        dreams,
        today=lambda: today_in(settings.week_timezone),
    )


# ---------------------------------------------------------------------------
# Acting user and authorization
# ---------------------------------------------------------------------------

async def get_current_user(
    api_key: Annotated[str, Depends(verify_api_key)],
    users: UserRepositoryDep,
    x_user_id: Annotated[Optional[str], Header()] = None,
    x_user_email: Annotated[Optional[str], Header()] = None,
    x_user_name: Annotated[Optional[str], Header()] = None,
) -> User:
    """
    Resolve the acting user from the X-User-Id header.

    The session layer in front of this API has already authenticated the
    user; we only need their id. The user document is created on first
    sight.
    """
    if not x_user_id:
        logger.warning("Request missing X-User-Id")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in. Provide X-User-Id header.",
        )

    return await users.get_or_create(
        x_user_id,
        email=x_user_email or "",
        name=x_user_name or "",
    )


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_admin(user: CurrentUser) -> User:
    if not user.is_admin:
        logger.warning("Admin access denied", extra={"user_id": user.id})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def require_coach(user: CurrentUser) -> User:
    if not user.can_coach:
        logger.warning("Coach access denied", extra={"user_id": user.id})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Coach access required",
        )
    return user


def require_owner(user_id: str, user: CurrentUser) -> User:
    """The `user_id` path parameter must be the caller (admins may act for anyone)."""
    if user.id != user_id and not user.is_admin:
        logger.warning(
            "Cross-user access denied",
            extra={"user_id": user.id, "target_user_id": user_id},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own data",
        )
    return user


async def require_team_manager(
    team_ref: str,
    user: Annotated[User, Depends(require_coach)],
    teams: TeamRepositoryDep,
) -> Team:
    """
    Load the team named by a manager id or team id and check the caller manages it.

    Admins may manage any team.
    """
    team = await teams.get(team_ref) or await teams.find_by_team_id(team_ref)
    if team is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Team not found: {team_ref}",
        )
    if team.manager_id != user.id and not user.is_admin:
        logger.warning(
            "Team access denied",
            extra={"user_id": user.id, "team_id": team.team_id},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own team",
        )
    return team


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedKey = Annotated[str, Depends(verify_api_key)]
AdminUser = Annotated[User, Depends(require_admin)]
CoachUser = Annotated[User, Depends(require_coach)]
OwnerUser = Annotated[User, Depends(require_owner)]
ManagedTeam = Annotated[Team, Depends(require_team_manager)]
TeamCoordinatorDep = Annotated[TeamCoordinator, Depends(get_team_coordinator)]
RolloverEngineDep = Annotated[WeeklyRolloverEngine, Depends(get_rollover_engine)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
