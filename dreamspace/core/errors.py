"""
Error taxonomy for core operations.

Every failure a core operation can report maps to one ErrorKind. The
kinds are stable strings because they travel inside the failure envelope
and the HTTP layer maps them to status codes.
"""

from enum import Enum


class ErrorKind(Enum):
    """Categories of failure surfaced through the result envelope."""
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    PARTIAL_CONSISTENCY = "partial_consistency"
    UNKNOWN = "unknown"


class DreamSpaceError(Exception):
    """Base class for reported (non-crashing) failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UnauthorizedError(DreamSpaceError):
    """No authenticated session."""
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(DreamSpaceError):
    """Authenticated, but not allowed to touch this resource."""
    kind = ErrorKind.FORBIDDEN


class NotFoundError(DreamSpaceError):
    """A referenced user, team or document does not exist."""
    kind = ErrorKind.NOT_FOUND


class ValidationError(DreamSpaceError):
    """Malformed or incomplete input."""
    kind = ErrorKind.VALIDATION


class ConflictError(DreamSpaceError):
    """A precondition on current state was violated (e.g. already assigned)."""
    kind = ErrorKind.CONFLICT


class PartialConsistencyError(DreamSpaceError):
    """
    The team-side write landed but a user-side write failed.

    The two documents disagree until the same operation is re-issued.
    Every coordinator step is a no-op when already applied, so a retry
    completes the remaining writes.
    """
    kind = ErrorKind.PARTIAL_CONSISTENCY


class UnknownError(DreamSpaceError):
    """Anything we did not anticipate."""
    kind = ErrorKind.UNKNOWN
