"""
Team and coaching-relationship lifecycle.

The document store has no multi-document transactions, yet a User and a
Team must agree on membership (see models.py). Every operation here is
therefore an ordered sequence of single-document writes:

1. Read current state and validate preconditions.
2. Write the team side.
3. Write the user side.

If step 3 fails after step 2 succeeded, the operation reports a
PartialConsistencyError and leaves the documents disagreeing. Nothing is
rolled back. Instead every step is a no-op when it has already been
applied, so re-issuing the same operation finishes the job.
`reconcile_team` repairs a team from whatever state it is in.

The coordinator is framework-agnostic: it receives its stores at
construction and never touches FastAPI or the database client.
"""

import logging
from dataclasses import asdict
from typing import Iterable, Optional, Protocol

from ..errors import (
    ConflictError,
    NotFoundError,
    PartialConsistencyError,
    ValidationError,
)
from ..results import action_boundary
from ..weeks.isoweek import round_half_up
from .models import (
    ConsistencyReport,
    DemoteOption,
    MeetingAttendance,
    Team,
    User,
    utcnow,
)
from .names import generate_team_id, generate_team_name

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class UserStore(Protocol):
    """The slice of the user repository the coordinator needs."""

    async def get(self, user_id: str) -> Optional[User]: ...

    async def upsert(self, user: User) -> User: ...

    async def list_by_coach(self, coach_id: str) -> list[User]:
        """Users whose assigned_coach_id equals coach_id."""
        ...


class TeamStore(Protocol):
    """The slice of the team repository the coordinator needs."""

    async def get(self, manager_id: str) -> Optional[Team]: ...

    async def find_by_team_id(self, team_id: str) -> Optional[Team]: ...

    async def upsert(self, team: Team) -> Team: ...

    async def delete(self, manager_id: str) -> None: ...

    async def list_all(self) -> list[Team]: ...

    async def get_attendance(self, team_id: str) -> list[MeetingAttendance]: ...

    async def upsert_attendance(self, attendance: MeetingAttendance) -> MeetingAttendance: ...


def _require(**values: Optional[str]) -> None:
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def _union(*groups: Iterable[str]) -> list[str]:
    """Order-preserving union of id lists."""
    seen: dict[str, None] = {}
    for group in groups:
        for item in group:
            seen.setdefault(item, None)
    return list(seen)


class TeamCoordinator:
    """
    Orchestrates operations that touch both User and Team documents.

    Public methods return ActionResult and never raise.
    """

    def __init__(
        self,
        users: UserStore,
        teams: TeamStore,
        manager_role: str = "Dream Coach",
    ) -> None:
        self._users = users
        self._teams = teams
        self._manager_role = manager_role

    # -----------------------------------------------------------------------
    # Assignment
    # -----------------------------------------------------------------------

    @action_boundary("Failed to assign user to coach")
    async def assign_user_to_coach(self, user_id: str, coach_id: str) -> dict:
        _require(user_id=user_id, coach_id=coach_id)
        if user_id == coach_id:
            raise ValidationError("A coach cannot be assigned to their own team")

        user = await self._get_user(user_id)
        team = await self._get_team(coach_id, "Coach team not found")

        in_team = team.has_member(user_id)
        points_here = user.assigned_coach_id == coach_id

        if in_team and points_here:
            raise ConflictError(
                f"User is already assigned to this coach. userId: {user_id}, "
                f"coachId: {coach_id}, teamName: {team.team_name}"
            )
        if user.assigned_coach_id and not points_here:
            raise ConflictError(
                f"User {user_id} is already assigned to coach "
                f"{user.assigned_coach_id}. Unassign them first."
            )

        if not in_team:
            team.add_member(user_id)
            await self._teams.upsert(team)

        user.assign_to(coach_id, team.team_name)
        await self._write_users([user], operation="assign", team=team)

        logger.info(
            "User assigned to coach",
            extra={
                "user_id": user_id,
                "coach_id": coach_id,
                "team_id": team.team_id,
                "healed": in_team,
            },
        )

        return {
            "user_id": user_id,
            "coach_id": coach_id,
            "team_name": team.team_name,
            "assigned_at": user.assigned_at,
            "team_size": len(team.team_members),
        }

    @action_boundary("Failed to unassign user from team")
    async def unassign_user_from_team(self, user_id: str, coach_id: str) -> dict:
        _require(user_id=user_id, coach_id=coach_id)

        team = await self._get_team(coach_id, "Coach team not found")
        user = await self._users.get(user_id)

        in_team = team.has_member(user_id)
        points_here = user is not None and user.assigned_coach_id == coach_id

        if not in_team and not points_here:
            raise ConflictError(
                f"User is not assigned to this coach. userId: {user_id}, "
                f"coachId: {coach_id}, teamName: {team.team_name}"
            )

        if in_team:
            team.remove_member(user_id)
            await self._teams.upsert(team)

        if points_here:
            user.clear_assignment()
            await self._write_users([user], operation="unassign", team=team)

        logger.info(
            "User unassigned from coach",
            extra={"user_id": user_id, "coach_id": coach_id, "team_id": team.team_id},
        )

        return {
            "user_id": user_id,
            "coach_id": coach_id,
            "team_name": team.team_name,
            "unassigned_at": utcnow(),
            "team_size": len(team.team_members),
        }

    # -----------------------------------------------------------------------
    # Promotion
    # -----------------------------------------------------------------------

    @action_boundary("Failed to promote user to coach")
    async def promote_user_to_coach(
        self,
        user_id: str,
        team_name: Optional[str] = None,
    ) -> dict:
        _require(user_id=user_id)

        user = await self._get_user(user_id)
        team = await self._teams.get(user_id)

        if team is not None and user.is_coach:
            raise ConflictError(
                f"User {user_id} already coaches team '{team.team_name}'"
            )

        if team is None:
            team = Team(
                manager_id=user_id,
                team_id=generate_team_id(),
                team_name=(team_name or "").strip() or generate_team_name(),
                manager_role=self._manager_role,
            )
            await self._teams.upsert(team)

        user.promote()
        await self._write_users([user], operation="promote", team=team)

        logger.info(
            "User promoted to coach",
            extra={"user_id": user_id, "team_id": team.team_id, "team_name": team.team_name},
        )

        return {
            "user_id": user_id,
            "team_id": team.team_id,
            "team_name": team.team_name,
            "promoted_at": user.promoted_at,
        }

    # -----------------------------------------------------------------------
    # Replace / disband / merge
    # -----------------------------------------------------------------------

    @action_boundary("Failed to replace team coach")
    async def replace_team_coach(
        self,
        old_coach_id: str,
        new_coach_id: Optional[str] = None,
        demote_option: DemoteOption | str = DemoteOption.UNASSIGNED,
        assign_to_team_id: Optional[str] = None,
        team_name: Optional[str] = None,
    ) -> dict:
        _require(old_coach_id=old_coach_id)
        option = self._parse_demote_option(demote_option)

        if option.needs_new_coach and not new_coach_id:
            raise ValidationError("New coach ID is required unless disbanding or merging the team")
        if not option.needs_new_coach and new_coach_id:
            raise ValidationError(
                f"new_coach_id cannot be combined with '{option.value}'"
            )
        if new_coach_id and new_coach_id == old_coach_id:
            raise ValidationError("Old coach and new coach cannot be the same")
        if option in (DemoteOption.ASSIGN_TO_TEAM, DemoteOption.MERGE_TEAM) and not assign_to_team_id:
            raise ValidationError(f"assign_to_team_id is required for '{option.value}'")

        old_team = await self._get_team(old_coach_id, "Old coach team not found")
        old_coach = await self._users.get(old_coach_id)

        if option == DemoteOption.DISBAND_TEAM:
            return await self._disband(old_team, old_coach)
        if option == DemoteOption.MERGE_TEAM:
            return await self._merge(old_team, old_coach, assign_to_team_id)
        return await self._transfer(
            old_team, old_coach, new_coach_id, option, assign_to_team_id, team_name
        )

    async def _disband(self, team: Team, old_coach: Optional[User]) -> dict:
        former = _union(
            team.team_members,
            [u.id for u in await self._users.list_by_coach(team.manager_id)],
        )

        if team.team_members or team.is_active:
            team.team_members = []
            team.is_active = False
            team.last_modified = utcnow()
            await self._teams.upsert(team)

        to_write: list[User] = []
        for member in await self._load_users(former):
            if member.assigned_coach_id == team.manager_id:
                member.clear_assignment()
                to_write.append(member)

        if old_coach is not None:
            old_coach.demote()
            to_write.append(old_coach)

        await self._write_users(to_write, operation="disband", team=team)
        await self._teams.delete(team.manager_id)

        logger.info(
            "Team disbanded",
            extra={"team_id": team.team_id, "coach_id": team.manager_id, "released": len(former)},
        )

        return {
            "outcome": "disbanded",
            "team_id": team.team_id,
            "team_name": team.team_name,
            "old_coach_id": team.manager_id,
            "released_members": former,
        }

    async def _transfer(
        self,
        old_team: Team,
        old_coach: Optional[User],
        new_coach_id: str,
        option: DemoteOption,
        assign_to_team_id: Optional[str],
        team_name: Optional[str],
    ) -> dict:
        new_coach = await self._get_user(new_coach_id, "New coach not found")

        existing = await self._teams.get(new_coach_id)
        if existing is not None and existing.team_id != old_team.team_id:
            raise ConflictError(
                f"New coach {new_coach_id} already manages team '{existing.team_name}'. "
                "Use merge-team with assign_to_team_id to combine teams."
            )

        target: Optional[Team] = None
        if option == DemoteOption.ASSIGN_TO_TEAM:
            target = await self._resolve_team(assign_to_team_id)
            if target.team_id == old_team.team_id:
                raise ValidationError("The outgoing coach cannot join the team they are leaving")

        # Team side: the same team (same team_id) under its new manager.
        stragglers = [u.id for u in await self._users.list_by_coach(old_team.manager_id)]
        members = [
            m for m in _union(
                existing.team_members if existing else [],
                old_team.team_members,
                stragglers,
            )
            if m != new_coach_id
        ]
        new_team = Team(
            manager_id=new_coach_id,
            team_id=old_team.team_id,
            team_name=(team_name or "").strip()
            or (existing.team_name if existing else old_team.team_name),
            team_members=members,
            mission=old_team.mission,
            next_meeting=old_team.next_meeting,
            manager_role=old_team.manager_role,
            is_active=True,
            created_at=old_team.created_at,
        )
        await self._teams.upsert(new_team)

        if target is not None and old_coach is not None:
            await self._detach_from_other_team(old_coach, keep=target.manager_id)
            if not target.has_member(old_coach.id):
                target.add_member(old_coach.id)
                await self._teams.upsert(target)
        elif option == DemoteOption.UNASSIGNED and old_coach is not None:
            await self._detach_from_other_team(old_coach)

        # User side.
        to_write: list[User] = []
        for member in await self._load_users(members):
            if (
                member.assigned_coach_id != new_coach_id
                or member.assigned_team_name != new_team.team_name
            ):
                member.assign_to(new_coach_id, new_team.team_name)
                to_write.append(member)

        if new_coach.assigned_coach_id == old_team.manager_id:
            new_coach.clear_assignment()
        new_coach.promote()
        to_write.append(new_coach)

        if old_coach is not None:
            old_coach.demote()
            if target is not None:
                old_coach.assign_to(target.manager_id, target.team_name)
            elif old_coach.assigned_coach_id:
                old_coach.clear_assignment()
            to_write.append(old_coach)

        await self._write_users(to_write, operation="replace", team=new_team)
        await self._teams.delete(old_team.manager_id)

        logger.info(
            "Team coach replaced",
            extra={
                "team_id": new_team.team_id,
                "old_coach_id": old_team.manager_id,
                "new_coach_id": new_coach_id,
                "demote_option": option.value,
            },
        )

        return {
            "outcome": "replaced",
            "team_id": new_team.team_id,
            "team_name": new_team.team_name,
            "old_coach_id": old_team.manager_id,
            "new_coach_id": new_coach_id,
            "demote_option": option.value,
            "old_coach_team_id": target.team_id if target else None,
            "team_size": len(new_team.team_members),
        }

    async def _merge(
        self,
        old_team: Team,
        old_coach: Optional[User],
        assign_to_team_id: str,
    ) -> dict:
        target = await self._resolve_team(assign_to_team_id)
        if target.team_id == old_team.team_id or target.manager_id == old_team.manager_id:
            raise ValidationError("Cannot merge a team into itself")

        stragglers = [u.id for u in await self._users.list_by_coach(old_team.manager_id)]
        moving = [
            m for m in _union(old_team.team_members, stragglers)
            if m != target.manager_id
        ]

        for member_id in moving:
            target.add_member(member_id)
        await self._teams.upsert(target)

        to_write: list[User] = []
        for member in await self._load_users(moving):
            if (
                member.assigned_coach_id != target.manager_id
                or member.assigned_team_name != target.team_name
            ):
                member.assign_to(target.manager_id, target.team_name)
                to_write.append(member)

        target_coach = await self._users.get(target.manager_id)
        if target_coach is not None and target_coach.assigned_coach_id == old_team.manager_id:
            target_coach.clear_assignment()
            to_write.append(target_coach)

        if old_coach is not None:
            old_coach.demote()
            to_write.append(old_coach)

        await self._write_users(to_write, operation="merge", team=target)
        await self._teams.delete(old_team.manager_id)

        logger.info(
            "Teams merged",
            extra={
                "from_team_id": old_team.team_id,
                "into_team_id": target.team_id,
                "moved": len(moving),
            },
        )

        return {
            "outcome": "merged",
            "team_id": target.team_id,
            "team_name": target.team_name,
            "old_coach_id": old_team.manager_id,
            "merged_team_id": old_team.team_id,
            "moved_members": moving,
            "team_size": len(target.team_members),
        }

    # -----------------------------------------------------------------------
    # Team info
    # -----------------------------------------------------------------------

    @action_boundary("Failed to update team info")
    async def update_team_info(
        self,
        manager_id: str,
        team_name: Optional[str] = None,
        mission: Optional[str] = None,
        next_meeting: Optional[str] = None,
    ) -> dict:
        _require(manager_id=manager_id)
        if team_name is None and mission is None and next_meeting is None:
            raise ValidationError("Nothing to update")
        if team_name is not None and not team_name.strip():
            raise ValidationError("Team name cannot be empty")

        team = await self._get_team(manager_id, f"No team found for manager: {manager_id}")

        renamed = team_name is not None and team_name.strip() != team.team_name
        if team_name is not None:
            team.team_name = team_name.strip()
        if mission is not None:
            team.mission = mission
        if next_meeting is not None:
            team.next_meeting = next_meeting or None
        team.last_modified = utcnow()
        await self._teams.upsert(team)

        if renamed:
            to_write = []
            for member in await self._load_users(team.team_members):
                if member.assigned_coach_id == manager_id:
                    member.assigned_team_name = team.team_name
                    member.last_modified = team.last_modified
                    to_write.append(member)
            await self._write_users(to_write, operation="rename", team=team)

        return {
            "manager_id": manager_id,
            "team_id": team.team_id,
            "team_name": team.team_name,
            "mission": team.mission,
            "next_meeting": team.next_meeting,
            "last_modified": team.last_modified,
        }

    @action_boundary("Failed to get team relationships")
    async def list_teams(self) -> dict:
        teams = await self._teams.list_all()
        return {"teams": [asdict(t) for t in teams], "count": len(teams)}

    @action_boundary("Failed to get team metrics")
    async def get_team_metrics(self, manager_id: str) -> dict:
        """
        Roster and engagement figures for a coach's team.

        The coach counts as a member. A member is active once they have
        any score at all.
        """
        _require(manager_id=manager_id)
        team = await self._get_team(manager_id, "No team found for manager")

        roster = await self._load_users(_union([manager_id], team.team_members))
        members = [
            {
                "id": u.id,
                "name": u.name or "Unknown User",
                "email": u.email,
                "score": u.score,
                "dreams_count": u.dreams_count,
                "connects_count": u.connects_count,
                "is_coach": u.id == manager_id,
            }
            for u in roster
        ]

        size = len(members)
        total_score = sum(m["score"] for m in members)
        active = sum(1 for m in members if m["score"] > 0)

        return {
            "team_id": team.team_id,
            "team_name": team.team_name,
            "manager_id": team.manager_id,
            "mission": team.mission,
            "next_meeting": team.next_meeting,
            "team_size": size,
            "total_dreams": sum(m["dreams_count"] for m in members),
            "total_connects": sum(m["connects_count"] for m in members),
            "average_score": round_half_up(total_score / size) if size else 0,
            "active_members_count": active,
            "engagement_rate": round_half_up(active / size * 100) if size else 0,
            "team_members": members,
        }

    # -----------------------------------------------------------------------
    # Meeting attendance
    # -----------------------------------------------------------------------

    @action_boundary("Failed to save meeting attendance")
    async def save_meeting_attendance(
        self,
        team_id: str,
        meeting_date: str,
        attendees: list[str],
        notes: str = "",
        recorded_by: Optional[str] = None,
    ) -> dict:
        _require(team_id=team_id, meeting_date=meeting_date)

        team = await self._resolve_team(team_id)
        allowed = set(team.team_members) | {team.manager_id}
        strangers = sorted(set(attendees) - allowed)
        if strangers:
            raise ValidationError(
                f"Attendees are not on team {team.team_id}: {', '.join(strangers)}"
            )

        attendance = MeetingAttendance(
            team_id=team.team_id,
            meeting_date=meeting_date,
            attendees=_union(attendees),
            notes=notes,
            recorded_by=recorded_by,
        )
        await self._teams.upsert_attendance(attendance)

        return {
            "id": attendance.id,
            "team_id": attendance.team_id,
            "meeting_date": meeting_date,
            "attendees_count": len(attendance.attendees),
        }

    @action_boundary("Failed to get meeting attendance")
    async def get_meeting_attendance(self, team_id: str) -> dict:
        team = await self._resolve_team(team_id)
        records = await self._teams.get_attendance(team.team_id)
        return {"team_id": team.team_id, "meetings": [asdict(r) for r in records]}

    # -----------------------------------------------------------------------
    # Repair
    # -----------------------------------------------------------------------

    @action_boundary("Failed to reconcile team")
    async def reconcile_team(self, manager_id: str, dry_run: bool = False) -> dict:
        """
        Bring User documents back in line with a team's member list.

        The team's member list is authoritative, with two exceptions:
        ids with no User document are dropped from the list, and a member
        who already belongs to another team that lists them is dropped
        from this one. Users pointing at this manager without being
        listed get their assignment cleared.
        """
        _require(manager_id=manager_id)

        team = await self._teams.get(manager_id)
        report = ConsistencyReport(
            manager_id=manager_id,
            team_exists=team is not None,
            dry_run=dry_run,
        )
        to_write: list[User] = []
        dropped: list[str] = []

        listed = list(team.team_members) if team else []
        for member_id in listed:
            member = await self._users.get(member_id)
            if member is None:
                report.missing_users.append(member_id)
                dropped.append(member_id)
                continue

            if member.assigned_coach_id == manager_id:
                if member.assigned_team_name != team.team_name:
                    member.assigned_team_name = team.team_name
                    report.repointed.append(member_id)
                    to_write.append(member)
                continue

            if member.assigned_coach_id:
                other = await self._teams.get(member.assigned_coach_id)
                if other is not None and other.has_member(member_id):
                    dropped.append(member_id)
                    report.cleared.append(member_id)
                    continue

            member.assign_to(manager_id, team.team_name)
            report.repointed.append(member_id)
            to_write.append(member)

        for user in await self._users.list_by_coach(manager_id):
            if user.id not in listed:
                user.clear_assignment()
                report.cleared.append(user.id)
                to_write.append(user)

        if not dry_run:
            if team is not None and dropped:
                for member_id in dropped:
                    team.remove_member(member_id)
                await self._teams.upsert(team)
            await self._write_users(to_write, operation="reconcile", team=team)

        logger.info(
            "Team reconciled",
            extra={
                "manager_id": manager_id,
                "dry_run": dry_run,
                "repointed": len(report.repointed),
                "cleared": len(report.cleared),
                "missing_users": len(report.missing_users),
            },
        )

        return {**asdict(report), "is_consistent": report.is_consistent}

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    async def _get_user(self, user_id: str, message: Optional[str] = None) -> User:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError(message or f"User not found: {user_id}")
        return user

    async def _get_team(self, manager_id: str, message: str) -> Team:
        team = await self._teams.get(manager_id)
        if team is None:
            raise NotFoundError(f"{message}: {manager_id}")
        return team

    async def _resolve_team(self, team_ref: Optional[str]) -> Team:
        """Look a team up by manager id first, then by team id."""
        if not team_ref:
            raise ValidationError("Team reference is required")
        team = await self._teams.get(team_ref)
        if team is None:
            team = await self._teams.find_by_team_id(team_ref)
        if team is None:
            raise NotFoundError(f"Team not found: {team_ref}")
        return team

    async def _load_users(self, user_ids: Iterable[str]) -> list[User]:
        users = []
        for user_id in user_ids:
            user = await self._users.get(user_id)
            if user is None:
                logger.warning("Team member has no user document", extra={"user_id": user_id})
                continue
            users.append(user)
        return users

    async def _detach_from_other_team(self, user: User, keep: Optional[str] = None) -> None:
        """Remove a user from the team they currently belong to, unless it is `keep`."""
        if not user.assigned_coach_id or user.assigned_coach_id == keep:
            return
        current = await self._teams.get(user.assigned_coach_id)
        if current is not None and current.has_member(user.id):
            current.remove_member(user.id)
            await self._teams.upsert(current)

    async def _write_users(
        self,
        users: list[User],
        operation: str,
        team: Optional[Team],
    ) -> None:
        """
        Write the user side of an operation.

        Every user is attempted even if an earlier one fails, so a retry
        has as little left to do as possible.
        """
        failed: dict[str, str] = {}
        for user in users:
            try:
                await self._users.upsert(user)
            except Exception as e:
                failed[user.id] = str(e)

        if failed:
            logger.error(
                "Partial consistency failure: team written, user writes failed",
                extra={
                    "operation": operation,
                    "team_id": team.team_id if team else None,
                    "failed_user_ids": sorted(failed),
                },
            )
            raise PartialConsistencyError(
                f"Team was updated but {len(failed)} user record(s) were not: "
                f"{', '.join(sorted(failed))}. Retry the operation to finish it.",
                details={"failed_user_ids": sorted(failed)},
            )

    @staticmethod
    def _parse_demote_option(value: DemoteOption | str) -> DemoteOption:
        if isinstance(value, DemoteOption):
            return value
        try:
            return DemoteOption(value)
        except ValueError:
            valid = ", ".join(o.value for o in DemoteOption)
            raise ValidationError(f"Unknown demote option '{value}'. Expected one of: {valid}")
