"""
Client side: the API client and the optimistic stores the UI binds to.
"""

from .api import DreamSpaceClient
from .optimistic import ErrorChannel, Mutation, OptimisticController
from .stores import ConnectStore, DreamStore, GoalStore, ScoringStore, TeamInfoStore

__all__ = [
    "DreamSpaceClient",
    "ErrorChannel",
    "Mutation",
    "OptimisticController",
    "ConnectStore",
    "DreamStore",
    "GoalStore",
    "ScoringStore",
    "TeamInfoStore",
]
