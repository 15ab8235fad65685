"""Repository for yearly scoring rollups (document id `{user_id}_{year}`)."""

from typing import Optional

from dreamspace.core.records import ScoringRecord
from dreamspace.core.teams.models import utcnow

from ..client import DocumentStore

CONTAINER = "scoring"


def scoring_id(user_id: str, year: int) -> str:
    return f"{user_id}_{year}"


class ScoringRepository:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, user_id: str, year: int) -> Optional[ScoringRecord]:
        doc = await self._store.get(CONTAINER, scoring_id(user_id, year), user_id)
        return ScoringRecord.model_validate(doc) if doc else None

    async def list_years(self, user_id: str) -> list[ScoringRecord]:
        docs = await self._store.query(CONTAINER, {"user_id": user_id})
        records = [ScoringRecord.model_validate(doc) for doc in docs]
        return sorted(records, key=lambda r: r.year, reverse=True)

    async def save(self, user_id: str, record: ScoringRecord) -> ScoringRecord:
        doc = {
            "id": scoring_id(user_id, record.year),
            "user_id": user_id,
            **record.model_dump(mode="json"),
            "total_score": record.total_score,
            "last_modified": utcnow().isoformat(),
        }
        saved = await self._store.upsert(CONTAINER, doc)
        return ScoringRecord.model_validate(saved)
