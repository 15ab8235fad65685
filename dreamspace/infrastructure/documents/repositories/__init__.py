"""
Repository implementations over the document store.

Repositories translate between domain models and stored documents. Each
one is composed over an injected DocumentStore handle.
"""

from .connects import ConnectsRepository
from .dreams import DreamsRepository
from .scoring import ScoringRepository
from .teams import TeamRepository
from .users import UserRepository
from .weeks import WeekRepository

__all__ = [
    "ConnectsRepository",
    "DreamsRepository",
    "ScoringRepository",
    "TeamRepository",
    "UserRepository",
    "WeekRepository",
]
