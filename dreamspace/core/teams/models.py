"""
Domain models for users and coaching teams.

A Team is keyed by its manager (one team per coach). Team membership is
denormalized onto the User as `assigned_coach_id`/`assigned_team_name`,
so the two documents must agree:

    user.id in team.team_members  <=>  user.assigned_coach_id == team.manager_id

Only the TeamCoordinator writes the assignment fields.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(Enum):
    USER = "user"
    COACH = "coach"
    ADMIN = "admin"


class DemoteOption(Enum):
    """
    What happens to the outgoing coach (and their team) in replace_team_coach.

    UNASSIGNED and ASSIGN_TO_TEAM hand the team to a new coach.
    DISBAND_TEAM and MERGE_TEAM end the team.
    """
    UNASSIGNED = "unassigned"
    ASSIGN_TO_TEAM = "assign-to-team"
    DISBAND_TEAM = "disband-team"
    MERGE_TEAM = "merge-team"

    @property
    def needs_new_coach(self) -> bool:
        return self in (DemoteOption.UNASSIGNED, DemoteOption.ASSIGN_TO_TEAM)


@dataclass
class User:
    """A DreamSpace account."""
    id: str
    email: str = ""
    name: str = ""
    role: UserRole = UserRole.USER
    is_coach: bool = False
    roles: dict[str, bool] = field(default_factory=dict)
    assigned_coach_id: Optional[str] = None
    assigned_team_name: Optional[str] = None
    assigned_at: Optional[datetime] = None
    unassigned_at: Optional[datetime] = None
    promoted_at: Optional[datetime] = None
    score: int = 0
    dreams_count: int = 0
    connects_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    last_modified: datetime = field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN or bool(self.roles.get("admin"))

    @property
    def can_coach(self) -> bool:
        return self.is_coach or bool(self.roles.get("coach")) or self.is_admin

    def assign_to(self, coach_id: str, team_name: Optional[str]) -> None:
        self.assigned_coach_id = coach_id
        self.assigned_team_name = team_name
        self.assigned_at = utcnow()
        self.last_modified = self.assigned_at

    def clear_assignment(self) -> None:
        self.assigned_coach_id = None
        self.assigned_team_name = None
        self.unassigned_at = utcnow()
        self.last_modified = self.unassigned_at

    def promote(self) -> None:
        self.role = UserRole.COACH
        self.is_coach = True
        self.roles = {**self.roles, "coach": True}
        self.promoted_at = utcnow()
        self.last_modified = self.promoted_at

    def demote(self) -> None:
        if self.role == UserRole.COACH:
            self.role = UserRole.USER
        self.is_coach = False
        self.roles = {**self.roles, "coach": False}
        self.last_modified = utcnow()


@dataclass
class Team:
    """
    A coach's team. Document id is the manager id.

    `team_id` is a stable identifier that survives a change of coach,
    which is how a resumed replace operation recognizes its own work.
    """
    manager_id: str
    team_id: str
    team_name: str
    team_members: list[str] = field(default_factory=list)
    mission: str = ""
    next_meeting: Optional[str] = None
    manager_role: str = "Dream Coach"
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    last_modified: datetime = field(default_factory=utcnow)

    def has_member(self, user_id: str) -> bool:
        return user_id in self.team_members

    def add_member(self, user_id: str) -> None:
        if user_id not in self.team_members:
            self.team_members = [*self.team_members, user_id]
        self.last_modified = utcnow()

    def remove_member(self, user_id: str) -> None:
        self.team_members = [m for m in self.team_members if m != user_id]
        self.last_modified = utcnow()


@dataclass
class MeetingAttendance:
    """Who showed up to a team meeting."""
    team_id: str
    meeting_date: str
    attendees: list[str] = field(default_factory=list)
    notes: str = ""
    recorded_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def id(self) -> str:
        return f"attendance_{self.team_id}_{self.meeting_date}"


@dataclass
class ConsistencyReport:
    """What reconcile_team found and (unless dry run) fixed."""
    manager_id: str
    team_exists: bool
    repointed: list[str] = field(default_factory=list)
    cleared: list[str] = field(default_factory=list)
    missing_users: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def is_consistent(self) -> bool:
        return not (self.repointed or self.cleared or self.missing_users)
