"""
Repository for user documents.

Translates between the `users` container and the User domain model.
"""

import logging
from typing import Optional

from dreamspace.core.teams.models import User, UserRole, utcnow

from ..client import DocumentStore
from ..serialization import parse_datetime, to_document

logger = logging.getLogger(__name__)

CONTAINER = "users"


class UserRepository:
    """
    Users are partitioned by their own id.

    Implements the UserStore protocol the team coordinator depends on.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, user_id: str) -> Optional[User]:
        doc = await self._store.get(CONTAINER, user_id, user_id)
        return self._build_user(doc) if doc else None

    async def upsert(self, user: User) -> User:
        doc = await self._store.upsert(CONTAINER, to_document(user))
        return self._build_user(doc)

    async def list_by_coach(self, coach_id: str) -> list[User]:
        docs = await self._store.query(CONTAINER, {"assigned_coach_id": coach_id})
        return [self._build_user(doc) for doc in docs]

    async def list_all(self) -> list[User]:
        docs = await self._store.query(CONTAINER)
        users = [self._build_user(doc) for doc in docs]
        return sorted(users, key=lambda u: ((u.name or u.email).lower(), u.id))

    async def list_ids(self) -> list[str]:
        docs = await self._store.query(CONTAINER)
        return sorted(doc["id"] for doc in docs)

    async def get_or_create(self, user_id: str, email: str = "", name: str = "") -> User:
        """Load a user, creating the document on first sign-in."""
        user = await self.get(user_id)
        if user is not None:
            return user

        user = User(id=user_id, email=email, name=name or email)
        await self.upsert(user)
        logger.info("Created user on first sign-in", extra={"user_id": user_id})
        return user

    def _build_user(self, doc: dict) -> User:
        try:
            role = UserRole(doc.get("role") or UserRole.USER.value)
        except ValueError:
            role = UserRole.USER

        return User(
            id=doc["id"],
            email=doc.get("email", ""),
            name=doc.get("name", ""),
            role=role,
            is_coach=bool(doc.get("is_coach", False)),
            roles=dict(doc.get("roles") or {}),
            assigned_coach_id=doc.get("assigned_coach_id"),
            assigned_team_name=doc.get("assigned_team_name"),
            assigned_at=parse_datetime(doc.get("assigned_at")),
            unassigned_at=parse_datetime(doc.get("unassigned_at")),
            promoted_at=parse_datetime(doc.get("promoted_at")),
            score=int(doc.get("score") or 0),
            dreams_count=int(doc.get("dreams_count") or 0),
            connects_count=int(doc.get("connects_count") or 0),
            created_at=parse_datetime(doc.get("created_at")) or utcnow(),
            last_modified=parse_datetime(doc.get("last_modified")) or utcnow(),
        )
