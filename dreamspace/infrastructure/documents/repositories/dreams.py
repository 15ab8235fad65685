"""
Repository for the per-user dreams document.

One document per user holds the dream book and the weekly goal templates
the rollover engine instantiates from.
"""

from typing import Optional

from dreamspace.core.records import DreamsDocumentRecord, WeeklyGoalTemplateRecord
from dreamspace.core.teams.models import utcnow
from dreamspace.core.weeks.models import DurationType, Recurrence, WeeklyGoalTemplate

from ..client import DocumentStore

CONTAINER = "dreams"


class DreamsRepository:
    """Also serves as the rollover engine's TemplateSource."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, user_id: str) -> Optional[DreamsDocumentRecord]:
        doc = await self._store.get(CONTAINER, user_id, user_id)
        return DreamsDocumentRecord.model_validate(doc) if doc else None

    async def save(self, user_id: str, record: DreamsDocumentRecord) -> DreamsDocumentRecord:
        doc = {
            "id": user_id,
            "user_id": user_id,
            **record.model_dump(mode="json"),
            "last_modified": utcnow().isoformat(),
        }
        saved = await self._store.upsert(CONTAINER, doc)
        return DreamsDocumentRecord.model_validate(saved)

    async def get_templates(self, user_id: str) -> list[WeeklyGoalTemplate]:
        record = await self.get(user_id)
        if record is None:
            return []
        return [self._build_template(t) for t in record.weekly_goal_templates]

    @staticmethod
    def _build_template(record: WeeklyGoalTemplateRecord) -> WeeklyGoalTemplate:
        return WeeklyGoalTemplate(
            id=record.id,
            title=record.title,
            dream_id=record.dream_id,
            goal_id=record.goal_id,
            recurrence=Recurrence(record.recurrence),
            active=record.active,
            duration_type=DurationType(record.duration_type),
            duration_weeks=record.duration_weeks,
            start_date=record.start_date,
            target_date=record.target_date,
            category=record.category,
            description=record.description,
        )
