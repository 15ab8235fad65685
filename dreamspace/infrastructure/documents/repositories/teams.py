"""
Repository for team documents and meeting attendance.

A team document's id is its manager's user id; `team_id` is a separate,
stable identifier that follows the team when its coach is replaced.
"""

import logging
from typing import Optional

from dreamspace.core.teams.models import MeetingAttendance, Team, utcnow

from ..client import DocumentStore
from ..serialization import parse_datetime, to_document

logger = logging.getLogger(__name__)

TEAMS = "teams"
ATTENDANCE = "meeting_attendance"


class TeamRepository:
    """Implements the TeamStore protocol the team coordinator depends on."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, manager_id: str) -> Optional[Team]:
        doc = await self._store.get(TEAMS, manager_id, manager_id)
        return self._build_team(doc) if doc else None

    async def find_by_team_id(self, team_id: str) -> Optional[Team]:
        docs = await self._store.query(TEAMS, {"team_id": team_id})
        if len(docs) > 1:
            # Only possible mid-replace, before the outgoing coach's document is deleted.
            logger.warning(
                "Multiple team documents share a team id",
                extra={"team_id": team_id, "managers": [d["manager_id"] for d in docs]},
            )
            docs.sort(key=lambda d: d.get("last_modified") or "", reverse=True)
        return self._build_team(docs[0]) if docs else None

    async def upsert(self, team: Team) -> Team:
        doc = {"id": team.manager_id, **to_document(team)}
        saved = await self._store.upsert(TEAMS, doc)
        return self._build_team(saved)

    async def delete(self, manager_id: str) -> None:
        await self._store.delete(TEAMS, manager_id, manager_id)

    async def list_all(self) -> list[Team]:
        docs = await self._store.query(TEAMS)
        teams = [self._build_team(doc) for doc in docs]
        return sorted(teams, key=lambda t: t.team_name.lower())

    async def get_attendance(self, team_id: str) -> list[MeetingAttendance]:
        """Attendance records for a team, most recent meeting first."""
        docs = await self._store.query(ATTENDANCE, {"team_id": team_id})
        records = [self._build_attendance(doc) for doc in docs]
        return sorted(records, key=lambda r: r.meeting_date, reverse=True)

    async def upsert_attendance(self, attendance: MeetingAttendance) -> MeetingAttendance:
        doc = {"id": attendance.id, **to_document(attendance)}
        saved = await self._store.upsert(ATTENDANCE, doc)
        return self._build_attendance(saved)

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _build_team(self, doc: dict) -> Team:
        members = list(dict.fromkeys(doc.get("team_members") or []))
        return Team(
            manager_id=doc.get("manager_id") or doc["id"],
            team_id=doc.get("team_id", ""),
            team_name=doc.get("team_name", ""),
            team_members=members,
            mission=doc.get("mission") or "",
            next_meeting=doc.get("next_meeting"),
            manager_role=doc.get("manager_role") or "Dream Coach",
            is_active=doc.get("is_active", True),
            created_at=parse_datetime(doc.get("created_at")) or utcnow(),
            last_modified=parse_datetime(doc.get("last_modified")) or utcnow(),
        )

    def _build_attendance(self, doc: dict) -> MeetingAttendance:
        return MeetingAttendance(
            team_id=doc["team_id"],
            meeting_date=doc["meeting_date"],
            attendees=list(doc.get("attendees") or []),
            notes=doc.get("notes") or "",
            recorded_by=doc.get("recorded_by"),
            created_at=parse_datetime(doc.get("created_at")) or utcnow(),
        )
