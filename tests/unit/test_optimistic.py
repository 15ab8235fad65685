"""
Unit tests for optimistic mutations.

Commits are AsyncMocks (or small coroutines gated on an Event) so the
tests control exactly when the "server" answers.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from dreamspace.client.optimistic import ErrorChannel, Mutation, OptimisticController
from dreamspace.core.errors import ErrorKind
from dreamspace.core.results import ActionResult


def append(item):
    return lambda items: (*items, item)


@pytest.fixture
def errors() -> ErrorChannel:
    return ErrorChannel()


class TestOptimisticController:
    """Tests for apply, commit and rollback."""

    @pytest.mark.asyncio
    async def test_edit_shows_immediately_and_is_confirmed_on_success(self, errors):
        controller = OptimisticController((), errors)
        commit = AsyncMock(return_value=ActionResult.success())

        controller.apply_optimistic(Mutation(apply=append("a"), commit=commit))

        assert controller.state == ("a",)
        assert controller.confirmed == ()
        assert controller.is_busy

        await controller.settle()

        assert controller.confirmed == ("a",)
        assert controller.pending is None
        assert not controller.is_busy
        commit.assert_awaited_once_with(("a",))
        assert errors.history == []

    @pytest.mark.asyncio
    async def test_second_edit_builds_on_the_first(self, errors):
        """Queued edits apply to the optimistic state, not the stale confirmed one."""
        controller = OptimisticController((), errors)
        gate = asyncio.Event()

        async def slow_commit(state):
            await gate.wait()
            return ActionResult.success()

        second = AsyncMock(return_value=ActionResult.success())
        controller.apply_optimistic(Mutation(apply=append(1), commit=slow_commit))
        controller.apply_optimistic(Mutation(apply=append(2), commit=second))

        assert controller.state == (1, 2)
        assert controller.confirmed == ()

        gate.set()
        await controller.settle()

        assert controller.confirmed == (1, 2)
        second.assert_awaited_once_with((1, 2))

    @pytest.mark.asyncio
    async def test_failure_restores_the_exact_confirmed_object(self, errors):
        initial = ("kept",)
        controller = OptimisticController(initial, errors)
        commit = AsyncMock(return_value=ActionResult.failure("Dream title is required", ErrorKind.VALIDATION))

        controller.apply_optimistic(Mutation(apply=append("x"), commit=commit))
        await controller.settle()

        assert controller.state is initial
        assert controller.confirmed is initial
        assert errors.history == ["Dream title is required"]

    @pytest.mark.asyncio
    async def test_failure_discards_everything_queued_behind_it(self, errors):
        controller = OptimisticController((), errors)
        first = AsyncMock(return_value=ActionResult.failure("Network error"))
        second = AsyncMock(return_value=ActionResult.success())

        controller.apply_optimistic(Mutation(apply=append(1), commit=first))
        controller.apply_optimistic(Mutation(apply=append(2), commit=second))
        await controller.settle()

        assert controller.state == ()
        second.assert_not_awaited()
        assert errors.history == ["Network error"]

    @pytest.mark.asyncio
    async def test_edit_issued_from_error_handler_is_committed(self, errors):
        controller = OptimisticController(0, errors)
        failing = AsyncMock(return_value=ActionResult.failure("boom"))
        retry = AsyncMock(return_value=ActionResult.success())

        def on_error(message):
            controller.apply_optimistic(Mutation(apply=lambda n: n + 10, commit=retry))

        errors.subscribe(on_error)
        controller.apply_optimistic(Mutation(apply=lambda n: n + 1, commit=failing))
        await controller.settle()

        retry.assert_awaited_once_with(10)
        assert controller.confirmed == 10
        assert controller.pending is None
        assert not controller.is_busy

    @pytest.mark.asyncio
    async def test_error_messages_are_joined(self, errors):
        controller = OptimisticController((), errors)
        commit = AsyncMock(return_value=ActionResult.failure(["title: required", "progress: too big"]))

        controller.apply_optimistic(Mutation(apply=append(1), commit=commit))
        await controller.settle()

        assert errors.history == ["title: required, progress: too big"]

    @pytest.mark.asyncio
    async def test_commit_exception_rolls_back(self, errors):
        controller = OptimisticController((), errors)
        commit = AsyncMock(side_effect=ConnectionError("connection reset"))

        controller.apply_optimistic(Mutation(apply=append(1), commit=commit, label="add goal"))
        await controller.settle()

        assert controller.state == ()
        assert errors.history == ["connection reset"]

    @pytest.mark.asyncio
    async def test_listeners_see_optimistic_then_rolled_back_state(self, errors):
        controller = OptimisticController((), errors)
        seen = []
        controller.subscribe(seen.append)
        commit = AsyncMock(return_value=ActionResult.failure("nope"))

        controller.apply_optimistic(Mutation(apply=append(1), commit=commit))
        await controller.settle()

        assert seen == [(1,), ()]

    @pytest.mark.asyncio
    async def test_apply_error_propagates_and_queues_nothing(self, errors):
        controller = OptimisticController((), errors)

        def broken(items):
            raise KeyError("missing")

        with pytest.raises(KeyError):
            controller.apply_optimistic(Mutation(apply=broken, commit=AsyncMock()))

        assert not controller.is_busy

    @pytest.mark.asyncio
    async def test_load_is_refused_while_edits_are_pending(self, errors):
        controller = OptimisticController((), errors, name="goals")
        gate = asyncio.Event()

        async def slow_commit(state):
            await gate.wait()
            return ActionResult.success()

        controller.apply_optimistic(Mutation(apply=append(1), commit=slow_commit))

        with pytest.raises(RuntimeError, match="goals"):
            controller.load(("fresh",))

        gate.set()
        await controller.settle()
        controller.load(("fresh",))
        assert controller.state == ("fresh",)


class TestErrorChannel:
    """Tests for the error channel."""

    def test_dispatch_reaches_subscribers(self):
        channel = ErrorChannel()
        received = []
        unsubscribe = channel.subscribe(received.append)

        channel.dispatch("first")
        unsubscribe()
        channel.dispatch("second")

        assert received == ["first"]
        assert channel.history == ["first", "second"]

    def test_failing_handler_does_not_stop_others(self):
        channel = ErrorChannel()
        received = []

        def broken(message):
            raise ValueError("toast area gone")

        channel.subscribe(broken)
        channel.subscribe(received.append)
        channel.dispatch("hello")

        assert received == ["hello"]
