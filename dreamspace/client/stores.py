"""
Client-side entity stores.

Each store wraps one OptimisticController around one kind of state and
exposes the edits the UI makes. An edit is a Mutation: a pure update of
the state plus the API call that persists the result.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Optional, TypeVar

from ..core.records import (
    ConnectRecord,
    CurrentWeekRecord,
    DreamRecord,
    DreamsDocumentRecord,
    ScoringEntryRecord,
    ScoringRecord,
    TeamInfoRecord,
    WeekGoalRecord,
    WeeklyGoalTemplateRecord,
)
from ..core.results import ActionResult
from . import sequences
from .api import DreamSpaceClient
from .optimistic import ErrorChannel, Mutation, OptimisticController

logger = logging.getLogger(__name__)

S = TypeVar("S")


class _Store(Generic[S]):
    """Shared plumbing: the controller, listeners, and initial loads."""

    name = "store"

    def __init__(self, client: DreamSpaceClient, errors: ErrorChannel, initial: S) -> None:
        self._client = client
        self._errors = errors
        self.controller: OptimisticController[S] = OptimisticController(initial, errors, name=self.name)

    @property
    def state(self) -> S:
        return self.controller.state

    def subscribe(self, listener: Callable[[S], None]) -> Callable[[], None]:
        return self.controller.subscribe(listener)

    async def settle(self) -> None:
        await self.controller.settle()

    def _loaded(self, result: ActionResult, parse: Callable[[Any], S]) -> bool:
        if result.failed:
            self._errors.dispatch(result.error_message)
            return False
        self.controller.load(parse(result.data))
        return True

    def _apply(
        self,
        label: str,
        apply: Callable[[S], S],
        commit: Callable[[S], Any],
    ) -> None:
        self.controller.apply_optimistic(Mutation(apply=apply, commit=commit, label=label))


# ---------------------------------------------------------------------------
# Weekly goals
# ---------------------------------------------------------------------------

class GoalStore(_Store[Optional[CurrentWeekRecord]]):
    name = "goals"

    def __init__(self, client: DreamSpaceClient, errors: ErrorChannel, user_id: str) -> None:
        super().__init__(client, errors, None)
        self._user_id = user_id

    async def load(self) -> bool:
        """Sync (rolling the week over if needed) and adopt the result."""
        result = await self._client.sync_current_week(self._user_id)
        return self._loaded(
            result, lambda data: CurrentWeekRecord.model_validate(data["current_week"])
        )

    def toggle_goal(self, goal_id: str) -> None:
        def apply(week: Optional[CurrentWeekRecord]) -> CurrentWeekRecord:
            week = self._require_week(week)
            goal = week.goals[sequences.index_of(week.goals, goal_id)]
            completed = not goal.completed
            goals = sequences.update_by_id(
                week.goals,
                goal_id,
                completed=completed,
                completed_at=datetime.now(timezone.utc) if completed else None,
            )
            return week.model_copy(update={"goals": goals})

        self._apply("update goal", apply, self._save)

    def add_goal(self, goal: WeekGoalRecord) -> None:
        def apply(week: Optional[CurrentWeekRecord]) -> CurrentWeekRecord:
            week = self._require_week(week)
            return week.model_copy(update={"goals": sequences.append(week.goals, goal)})

        self._apply("add goal", apply, self._save)

    def remove_goal(self, goal_id: str) -> None:
        def apply(week: Optional[CurrentWeekRecord]) -> CurrentWeekRecord:
            week = self._require_week(week)
            return week.model_copy(update={"goals": sequences.remove_by_id(week.goals, goal_id)})

        self._apply("remove goal", apply, self._save)

    async def _save(self, week: CurrentWeekRecord) -> ActionResult:
        return await self._client.save_current_week(self._user_id, week)

    @staticmethod
    def _require_week(week: Optional[CurrentWeekRecord]) -> CurrentWeekRecord:
        if week is None:
            raise RuntimeError("Current week is not loaded")
        return week


# ---------------------------------------------------------------------------
# Connects
# ---------------------------------------------------------------------------

class ConnectStore(_Store[tuple[ConnectRecord, ...]]):
    """Connects are separate documents, so each edit persists just one."""

    name = "connects"

    def __init__(self, client: DreamSpaceClient, errors: ErrorChannel, user_id: str) -> None:
        super().__init__(client, errors, ())
        self._user_id = user_id

    async def load(self) -> bool:
        result = await self._client.get_connects(self._user_id)
        return self._loaded(
            result, lambda data: tuple(ConnectRecord.model_validate(c) for c in data or [])
        )

    def save_connect(self, connect: ConnectRecord) -> None:
        self._apply(
            "save connect",
            lambda items: sequences.upsert_by_id(items, connect),
            lambda _: self._client.save_connect(self._user_id, connect),
        )

    def delete_connect(self, connect_id: str) -> None:
        self._apply(
            "delete connect",
            lambda items: sequences.remove_by_id(items, connect_id),
            lambda _: self._client.delete_connect(self._user_id, connect_id),
        )


# ---------------------------------------------------------------------------
# Dreams
# ---------------------------------------------------------------------------

class DreamStore(_Store[DreamsDocumentRecord]):
    """The whole dreams document is written on every edit."""

    name = "dreams"

    def __init__(self, client: DreamSpaceClient, errors: ErrorChannel, user_id: str) -> None:
        super().__init__(client, errors, DreamsDocumentRecord())
        self._user_id = user_id

    async def load(self) -> bool:
        result = await self._client.get_dreams(self._user_id)
        return self._loaded(result, DreamsDocumentRecord.model_validate)

    def add_dream(self, dream: DreamRecord) -> None:
        self._apply(
            "add dream",
            lambda doc: doc.model_copy(update={"dreams": sequences.append(doc.dreams, dream)}),
            self._save,
        )

    def update_dream(self, dream_id: str, **changes: Any) -> None:
        self._apply(
            "update dream",
            lambda doc: doc.model_copy(
                update={"dreams": sequences.update_by_id(doc.dreams, dream_id, **changes)}
            ),
            self._save,
        )

    def remove_dream(self, dream_id: str) -> None:
        """Remove a dream and the weekly goal templates attached to it."""

        def apply(doc: DreamsDocumentRecord) -> DreamsDocumentRecord:
            templates = tuple(t for t in doc.weekly_goal_templates if t.dream_id != dream_id)
            return doc.model_copy(
                update={
                    "dreams": sequences.remove_by_id(doc.dreams, dream_id),
                    "weekly_goal_templates": templates,
                }
            )

        self._apply("remove dream", apply, self._save)

    def add_template(self, template: WeeklyGoalTemplateRecord) -> None:
        self._apply(
            "add weekly goal",
            lambda doc: doc.model_copy(
                update={
                    "weekly_goal_templates": sequences.append(doc.weekly_goal_templates, template)
                }
            ),
            self._save,
        )

    def remove_template(self, template_id: str) -> None:
        self._apply(
            "remove weekly goal",
            lambda doc: doc.model_copy(
                update={
                    "weekly_goal_templates": sequences.remove_by_id(
                        doc.weekly_goal_templates, template_id
                    )
                }
            ),
            self._save,
        )

    async def _save(self, doc: DreamsDocumentRecord) -> ActionResult:
        return await self._client.save_dreams(self._user_id, doc)


# ---------------------------------------------------------------------------
# Team info
# ---------------------------------------------------------------------------

class TeamInfoStore(_Store[Optional[TeamInfoRecord]]):
    name = "team_info"

    def __init__(self, client: DreamSpaceClient, errors: ErrorChannel, manager_id: str) -> None:
        super().__init__(client, errors, None)
        self._manager_id = manager_id

    async def load(self) -> bool:
        result = await self._client.list_teams()

        def parse(data: dict) -> Optional[TeamInfoRecord]:
            for team in data.get("teams", []):
                if team.get("manager_id") == self._manager_id:
                    return TeamInfoRecord.model_validate(team)
            return None

        return self._loaded(result, parse)

    def rename(self, team_name: str) -> None:
        self._edit("rename team", {"team_name": team_name})

    def update_mission(self, mission: str) -> None:
        self._edit("update mission", {"mission": mission})

    def set_next_meeting(self, next_meeting: Optional[str]) -> None:
        # The API clears the meeting on an empty string.
        self._edit(
            "schedule meeting",
            {"next_meeting": next_meeting or None},
            {"next_meeting": next_meeting or ""},
        )

    def _edit(self, label: str, changes: dict, payload: Optional[dict] = None) -> None:
        def apply(team: Optional[TeamInfoRecord]) -> TeamInfoRecord:
            if team is None:
                raise RuntimeError("Team is not loaded")
            return team.model_copy(update=changes)

        self._apply(
            label,
            apply,
            lambda _: self._client.update_team_info(self._manager_id, **(payload or changes)),
        )


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

class ScoringStore(_Store[ScoringRecord]):
    name = "scoring"

    def __init__(
        self,
        client: DreamSpaceClient,
        errors: ErrorChannel,
        user_id: str,
        year: int,
    ) -> None:
        super().__init__(client, errors, ScoringRecord(year=year))
        self._user_id = user_id
        self._year = year

    async def load(self) -> bool:
        result = await self._client.get_scoring(self._user_id, self._year)
        return self._loaded(result, ScoringRecord.model_validate)

    def add_entry(self, entry: ScoringEntryRecord) -> None:
        self._apply(
            "add score",
            lambda rec: rec.model_copy(update={"entries": sequences.append(rec.entries, entry)}),
            self._save,
        )

    def remove_entry(self, entry_id: str) -> None:
        self._apply(
            "remove score",
            lambda rec: rec.model_copy(
                update={"entries": sequences.remove_by_id(rec.entries, entry_id)}
            ),
            self._save,
        )

    async def _save(self, record: ScoringRecord) -> ActionResult:
        return await self._client.save_scoring(self._user_id, record)
