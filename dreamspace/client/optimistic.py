"""
Optimistic mutations.

The UI applies an edit immediately and persists it in the background. The
controller keeps two things:

- `confirmed`: the last state the server accepted.
- a queue of pending mutations, each with the state it produces. Every
  mutation is applied to the state left by the one before it, never to
  the stale confirmed state.

Server calls run one at a time, in the order the edits were made. When a
call succeeds its state becomes `confirmed`. When one fails, it and
everything queued behind it are dropped and the visible state goes back
to exactly the `confirmed` object. The error text goes to the
ErrorChannel, never into the listeners.

`apply_optimistic` must be called from a running event loop.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from ..core.results import ActionResult, handle_action_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class ErrorChannel:
    """Where failed mutations report their messages (e.g. a toast area)."""

    def __init__(self) -> None:
        self._handlers: list[Callable[[str], None]] = []
        self.history: list[str] = []

    def subscribe(self, handler: Callable[[str], None]) -> Callable[[], None]:
        self._handlers.append(handler)
        return lambda: self._handlers.remove(handler)

    def dispatch(self, message: str) -> None:
        self.history.append(message)
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception:
                logger.exception("Error channel handler failed")


@dataclass(frozen=True)
class Mutation(Generic[T]):
    """
    One user edit.

    `apply` must be pure: it returns a new state and leaves its argument
    alone. `commit` receives the state `apply` produced and persists it.
    """
    apply: Callable[[T], T]
    commit: Callable[[T], Awaitable[ActionResult]]
    label: str = "save changes"


class OptimisticController(Generic[T]):

    def __init__(self, initial: T, errors: ErrorChannel, name: str = "") -> None:
        self._confirmed = initial
        self._queue: deque[tuple[Mutation[T], T]] = deque()
        self._listeners: list[Listener] = []
        self._errors = errors
        self._name = name
        self._worker: Optional[asyncio.Task] = None

    @property
    def confirmed(self) -> T:
        return self._confirmed

    @property
    def pending(self) -> Optional[T]:
        """The optimistic overlay, or None when nothing is in flight."""
        return self._queue[-1][1] if self._queue else None

    @property
    def state(self) -> T:
        """What the UI should render."""
        return self._queue[-1][1] if self._queue else self._confirmed

    @property
    def is_busy(self) -> bool:
        return bool(self._queue)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def load(self, state: T) -> None:
        """Replace the confirmed state with freshly fetched server state."""
        if self._queue:
            raise RuntimeError(f"Cannot reload {self._name or 'state'} while edits are pending")
        self._confirmed = state
        self._notify()

    def apply_optimistic(self, mutation: Mutation[T]) -> None:
        """
        Show the edit now and persist it in the background.

        If `apply` itself raises, nothing changes and the exception
        propagates to the caller.
        """
        next_state = mutation.apply(self.state)
        self._queue.append((mutation, next_state))
        self._notify()

        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def settle(self) -> None:
        """Wait until every queued mutation has been committed or rolled back."""
        while self._worker is not None and not self._worker.done():
            await self._worker

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    async def _drain(self) -> None:
        while self._queue:
            mutation, next_state = self._queue[0]
            try:
                result = await mutation.commit(next_state)
            except Exception as e:
                result = handle_action_error(e, f"Failed to {mutation.label}")

            if result.failed:
                # Edits issued by error handlers during rollback are still queued.
                self._rollback(mutation, result)
                continue

            self._queue.popleft()
            self._confirmed = next_state
            self._notify()

    def _rollback(self, mutation: Mutation[T], result: ActionResult) -> None:
        discarded = len(self._queue)
        self._queue.clear()

        logger.warning(
            "Optimistic update rolled back",
            extra={
                "store": self._name,
                "mutation": mutation.label,
                "discarded": discarded,
                "error": result.error_message,
            },
        )

        self._notify()
        self._errors.dispatch(result.error_message)

    def _notify(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed", extra={"store": self._name})
