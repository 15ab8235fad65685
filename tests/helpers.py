"""Seeding and assertion helpers that work directly on the in-memory store."""

from typing import Optional

from dreamspace.core.teams.models import Team, User, UserRole
from dreamspace.infrastructure.documents.client import InMemoryDocumentStore
from dreamspace.infrastructure.documents.serialization import to_document

API_KEY = "test-key"


def headers(user_id: str) -> dict[str, str]:
    return {"X-API-Key": API_KEY, "X-User-Id": user_id}


def seed_user(store: InMemoryDocumentStore, user_id: str, **fields) -> User:
    user = User(id=user_id, email=f"{user_id}@example.com", name=user_id.upper(), **fields)
    store._seed("users", to_document(user))
    return user


def seed_admin(store: InMemoryDocumentStore, user_id: str = "admin") -> User:
    return seed_user(store, user_id, role=UserRole.ADMIN, roles={"admin": True})


def seed_coach(
    store: InMemoryDocumentStore,
    coach_id: str,
    members: tuple[str, ...] = (),
    team_name: str = "Nova Voyagers",
    team_id: Optional[str] = None,
) -> Team:
    """A coach, their team, and members that point back at them."""
    seed_user(store, coach_id, role=UserRole.COACH, is_coach=True, roles={"coach": True})
    team = Team(
        manager_id=coach_id,
        team_id=team_id or f"team_{coach_id}",
        team_name=team_name,
        team_members=list(members),
    )
    store._seed("teams", {"id": coach_id, **to_document(team)})
    for member_id in members:
        seed_user(store, member_id, assigned_coach_id=coach_id, assigned_team_name=team_name)
    return team


def user_doc(store: InMemoryDocumentStore, user_id: str) -> dict:
    return next(u for u in store._dump("users") if u["id"] == user_id)


def team_doc(store: InMemoryDocumentStore, manager_id: str) -> Optional[dict]:
    return next((t for t in store._dump("teams") if t["manager_id"] == manager_id), None)


def assert_membership_consistent(store: InMemoryDocumentStore) -> None:
    """user in team.team_members  <=>  user.assigned_coach_id == team.manager_id"""
    users = {u["id"]: u for u in store._dump("users")}
    teams = {t["manager_id"]: t for t in store._dump("teams")}

    for manager_id, team in teams.items():
        assert len(team["team_members"]) == len(set(team["team_members"]))
        for member_id in team["team_members"]:
            assert users[member_id]["assigned_coach_id"] == manager_id, (member_id, manager_id)

    for user in users.values():
        coach_id = user.get("assigned_coach_id")
        if coach_id:
            assert coach_id in teams, (user["id"], coach_id)
            assert user["id"] in teams[coach_id]["team_members"], (user["id"], coach_id)
