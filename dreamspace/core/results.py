"""
Uniform result envelope for core operations.

Every operation exposed to the action boundary returns an ActionResult:

    success: {"failed": False, "data": ...}
    failure: {"failed": True, "errors": {"message": [...], "code": "..."}}

Nothing raises across this boundary. `action_boundary` wraps an async
operation so that any exception becomes a failure envelope, and
`handle_action_error` does the conversion for callers that manage their
own try/except.
"""

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import pydantic

from .errors import DreamSpaceError, ErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a core operation."""
    failed: bool
    data: Any = None
    messages: tuple[str, ...] = field(default_factory=tuple)
    kind: Optional[ErrorKind] = None

    @classmethod
    def success(cls, data: Any = None) -> "ActionResult":
        return cls(failed=False, data=data)

    @classmethod
    def failure(
        cls,
        message: str | list[str] | tuple[str, ...],
        kind: ErrorKind = ErrorKind.UNKNOWN,
    ) -> "ActionResult":
        if isinstance(message, str):
            messages = (message,)
        else:
            messages = tuple(message)
        return cls(failed=True, messages=messages, kind=kind)

    @property
    def error_message(self) -> str:
        """The user-visible message: every error joined into one line."""
        return ", ".join(self.messages)

    def to_dict(self) -> dict[str, Any]:
        if not self.failed:
            return {"failed": False, "data": self.data}
        return {
            "failed": True,
            "errors": {
                "message": list(self.messages),
                "code": (self.kind or ErrorKind.UNKNOWN).value,
            },
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ActionResult":
        """Parse an envelope received over the wire."""
        if not payload.get("failed"):
            return cls.success(payload.get("data"))

        errors = payload.get("errors") or {}
        messages = errors.get("message") or errors.get("_errors") or []
        if isinstance(messages, str):
            messages = [messages]
        try:
            kind = ErrorKind(errors.get("code", ErrorKind.UNKNOWN.value))
        except ValueError:
            kind = ErrorKind.UNKNOWN
        return cls.failure(messages or ["An unexpected error occurred"], kind)


def handle_action_error(
    error: BaseException,
    default_message: str = "An unexpected error occurred",
) -> ActionResult:
    """
    Convert an exception into a failure envelope.

    Known domain errors keep their message and kind. Pydantic validation
    errors are flattened into one message per field. Anything else is
    reported with its message under the UNKNOWN kind.
    """
    if isinstance(error, DreamSpaceError):
        return ActionResult.failure(error.message, error.kind)

    if isinstance(error, pydantic.ValidationError):
        messages = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in error.errors()
        ]
        return ActionResult.failure(messages or [default_message], ErrorKind.VALIDATION)

    message = str(error) or default_message
    return ActionResult.failure(message, ErrorKind.UNKNOWN)


def action_boundary(default_message: str):
    """
    Decorate an async operation so it always returns an ActionResult.

    The wrapped coroutine returns its payload; the decorator wraps it in
    a success envelope, or catches and converts whatever it raised.
    """

    def decorator(func: Callable[..., Awaitable[Any]]):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> ActionResult:
            try:
                data = await func(*args, **kwargs)
            except DreamSpaceError as e:
                log = logger.error if e.kind in (
                    ErrorKind.PARTIAL_CONSISTENCY, ErrorKind.UNKNOWN
                ) else logger.warning
                log(
                    default_message,
                    extra={
                        "operation": func.__name__,
                        "kind": e.kind.value,
                        "error": e.message,
                        **e.details,
                    },
                )
                return handle_action_error(e, default_message)
            except Exception as e:
                logger.error(
                    default_message,
                    extra={"operation": func.__name__, "error": str(e)},
                    exc_info=e,
                )
                return handle_action_error(e, default_message)
            return ActionResult.success(data)

        return wrapper

    return decorator
