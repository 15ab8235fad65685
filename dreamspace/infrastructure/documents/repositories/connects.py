"""Repository for connects (one document per connect, partitioned by owner)."""

from dreamspace.core.records import ConnectRecord
from dreamspace.core.teams.models import utcnow

from ..client import DocumentStore

CONTAINER = "connects"


class ConnectsRepository:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def list(self, user_id: str) -> list[ConnectRecord]:
        docs = await self._store.query(CONTAINER, {"user_id": user_id})
        records = [ConnectRecord.model_validate(doc) for doc in docs]
        return sorted(records, key=lambda c: (c.when is None, c.when, c.id))

    async def upsert(self, user_id: str, connect: ConnectRecord) -> ConnectRecord:
        now = utcnow()
        connect = connect.model_copy(
            update={"created_at": connect.created_at or now, "updated_at": now}
        )
        doc = {**connect.model_dump(mode="json"), "user_id": user_id}
        saved = await self._store.upsert(CONTAINER, doc)
        return ConnectRecord.model_validate(saved)

    async def delete(self, user_id: str, connect_id: str) -> None:
        await self._store.delete(CONTAINER, connect_id, user_id)
