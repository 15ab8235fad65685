"""
Unit tests for the client-side entity stores.

The API client is an AsyncMock, so these tests only check what each
store shows, what it sends, and how it reacts to a failed save.
"""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from dreamspace.client.api import DreamSpaceClient
from dreamspace.client.optimistic import ErrorChannel
from dreamspace.client.stores import (
    ConnectStore,
    DreamStore,
    GoalStore,
    ScoringStore,
    TeamInfoStore,
)
from dreamspace.core.errors import ErrorKind
from dreamspace.core.records import (
    ConnectRecord,
    DreamRecord,
    ScoringEntryRecord,
    WeekGoalRecord,
    WeeklyGoalTemplateRecord,
)
from dreamspace.core.results import ActionResult

OK = ActionResult.success()


@pytest.fixture
def api() -> AsyncMock:
    return AsyncMock(spec=DreamSpaceClient)


@pytest.fixture
def errors() -> ErrorChannel:
    return ErrorChannel()


def week_payload():
    return {
        "current_week": {
            "user_id": "u1",
            "week_id": "2025-W03",
            "week_start_date": "2025-01-13",
            "week_end_date": "2025-01-19",
            "week_number": 3,
            "year": 2025,
            "goals": [
                {"id": "A_2025-W03", "title": "Run 5k", "week_id": "2025-W03", "template_id": "A"},
            ],
            "stats": {"total_goals": 1, "completed_goals": 0, "completion_rate": 0},
        },
        "rolled": False,
    }


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

class TestGoalStore:
    """Tests for GoalStore."""

    @pytest.mark.asyncio
    async def test_load_syncs_the_week(self, api, errors):
        api.sync_current_week.return_value = ActionResult.success(week_payload())
        store = GoalStore(api, errors, "u1")

        assert await store.load()

        assert store.state.week_id == "2025-W03"
        assert [g.id for g in store.state.goals] == ["A_2025-W03"]
        api.sync_current_week.assert_awaited_once_with("u1")

    @pytest.mark.asyncio
    async def test_toggle_shows_completion_then_saves(self, api, errors):
        api.sync_current_week.return_value = ActionResult.success(week_payload())
        api.save_current_week.return_value = OK
        store = GoalStore(api, errors, "u1")
        await store.load()

        store.toggle_goal("A_2025-W03")

        goal = store.state.goals[0]
        assert goal.completed
        assert goal.completed_at is not None
        await store.settle()
        user_id, sent = api.save_current_week.await_args.args
        assert user_id == "u1"
        assert sent.goals[0].completed

    @pytest.mark.asyncio
    async def test_failed_save_rolls_back_and_reports(self, api, errors):
        api.sync_current_week.return_value = ActionResult.success(week_payload())
        api.save_current_week.return_value = ActionResult.failure(
            "Week 2025-W03 is not the current week", ErrorKind.CONFLICT
        )
        store = GoalStore(api, errors, "u1")
        await store.load()
        loaded = store.state

        store.add_goal(WeekGoalRecord(id="extra", title="Stretch", week_id="2025-W03"))
        assert len(store.state.goals) == 2
        await store.settle()

        assert store.state is loaded
        assert errors.history == ["Week 2025-W03 is not the current week"]

    @pytest.mark.asyncio
    async def test_failed_load_reports_error(self, api, errors):
        api.sync_current_week.return_value = ActionResult.failure("Network error: boom")
        store = GoalStore(api, errors, "u1")

        assert not await store.load()

        assert store.state is None
        assert errors.history == ["Network error: boom"]

    @pytest.mark.asyncio
    async def test_edit_before_load_is_rejected(self, api, errors):
        store = GoalStore(api, errors, "u1")

        with pytest.raises(RuntimeError, match="not loaded"):
            store.remove_goal("A_2025-W03")


# ---------------------------------------------------------------------------
# Dreams, connects, team info, scoring
# ---------------------------------------------------------------------------

class TestDreamStore:
    """Tests for DreamStore."""

    @pytest.mark.asyncio
    async def test_removing_a_dream_removes_its_templates(self, api, errors):
        api.get_dreams.return_value = ActionResult.success({
            "dreams": [{"id": "d1", "title": "Marathon"}, {"id": "d2", "title": "Learn piano"}],
            "weekly_goal_templates": [
                {"id": "t1", "title": "Run", "dream_id": "d1"},
                {"id": "t2", "title": "Scales", "dream_id": "d2"},
            ],
        })
        api.save_dreams.return_value = OK
        store = DreamStore(api, errors, "u1")
        await store.load()

        store.remove_dream("d1")
        await store.settle()

        assert [d.id for d in store.state.dreams] == ["d2"]
        assert [t.id for t in store.state.weekly_goal_templates] == ["t2"]
        api.save_dreams.assert_awaited_once_with("u1", store.state)

    @pytest.mark.asyncio
    async def test_add_and_update(self, api, errors):
        api.save_dreams.return_value = OK
        store = DreamStore(api, errors, "u1")

        store.add_dream(DreamRecord(id="d1", title="Marathon"))
        store.update_dream("d1", progress=40)
        store.add_template(WeeklyGoalTemplateRecord(id="t1", title="Run", dream_id="d1"))
        await store.settle()

        assert store.state.dreams[0].progress == 40
        assert store.state.weekly_goal_templates[0].id == "t1"
        assert api.save_dreams.await_count == 3


class TestConnectStore:
    """Tests for ConnectStore."""

    @pytest.mark.asyncio
    async def test_save_then_delete(self, api, errors):
        api.get_connects.return_value = ActionResult.success([])
        api.save_connect.return_value = OK
        api.delete_connect.return_value = OK
        store = ConnectStore(api, errors, "u1")
        await store.load()
        connect = ConnectRecord(id="k1", with_whom="Sam", with_whom_id="u2", when=date(2025, 1, 16))

        store.save_connect(connect)
        store.save_connect(connect.model_copy(update={"status": "completed"}))
        store.delete_connect("k1")
        await store.settle()

        assert store.state == ()
        assert api.save_connect.await_count == 2
        api.delete_connect.assert_awaited_once_with("u1", "k1")


class TestTeamInfoStore:
    """Tests for TeamInfoStore."""

    @pytest.mark.asyncio
    async def test_load_picks_own_team(self, api, errors):
        api.list_teams.return_value = ActionResult.success({
            "teams": [
                {"manager_id": "c2", "team_id": "team_b", "team_name": "Star Gazers"},
                {"manager_id": "c1", "team_id": "team_a", "team_name": "Nova Voyagers"},
            ],
            "count": 2,
        })
        store = TeamInfoStore(api, errors, "c1")

        await store.load()

        assert store.state.team_id == "team_a"

    @pytest.mark.asyncio
    async def test_clearing_next_meeting_sends_empty_string(self, api, errors):
        api.list_teams.return_value = ActionResult.success({
            "teams": [{"manager_id": "c1", "team_id": "team_a", "team_name": "Nova", "next_meeting": "Mon"}],
        })
        api.update_team_info.return_value = OK
        store = TeamInfoStore(api, errors, "c1")
        await store.load()

        store.set_next_meeting(None)
        store.rename("Nova Voyagers")
        await store.settle()

        assert store.state.next_meeting is None
        assert store.state.team_name == "Nova Voyagers"
        api.update_team_info.assert_any_await("c1", next_meeting="")
        api.update_team_info.assert_any_await("c1", team_name="Nova Voyagers")


class TestScoringStore:
    """Tests for ScoringStore."""

    @pytest.mark.asyncio
    async def test_entries_change_total(self, api, errors):
        api.save_scoring.return_value = OK
        store = ScoringStore(api, errors, "u1", 2025)
        entry = ScoringEntryRecord(id="s1", entry_date=date(2025, 1, 16), activity="Connect", points=5)

        store.add_entry(entry)
        store.add_entry(entry.model_copy(update={"id": "s2", "points": 3}))
        store.remove_entry("s1")
        await store.settle()

        assert store.state.total_score == 3
        assert store.state.year == 2025
