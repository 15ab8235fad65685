"""
Users, coaching teams, and the coordinator that keeps them consistent.
"""

from .models import (
    ConsistencyReport,
    DemoteOption,
    MeetingAttendance,
    Team,
    User,
    UserRole,
)
from .coordinator import TeamCoordinator, TeamStore, UserStore

__all__ = [
    "ConsistencyReport",
    "DemoteOption",
    "MeetingAttendance",
    "Team",
    "User",
    "UserRole",
    "TeamCoordinator",
    "TeamStore",
    "UserStore",
]
