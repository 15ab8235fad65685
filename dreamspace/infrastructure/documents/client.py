"""
Document store access.

DreamSpace keeps each entity in its own container (a MongoDB collection),
partitioned by an owner key. The store offers point reads and writes by
(id, partition key) and equality queries; there are no cross-container
transactions, which is why the team coordinator is written as a saga.

Two implementations share the DocumentStore protocol:

- MongoDocumentStore: motor (async MongoDB driver). The partition key is
  stored as an ordinary field and included in every point filter.
- InMemoryDocumentStore: dictionaries, for local development and tests.

Most code never touches this module directly - it goes through a
repository, which translates between documents and domain models.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

Document = dict[str, Any]


class DocumentStoreError(Exception):
    """Raised when the document store cannot complete an operation."""
    pass


class DocumentNotFoundError(DocumentStoreError):
    """Raised by replace() when the target document does not exist."""
    pass


@dataclass(frozen=True)
class ContainerConfig:
    """A container and the document field it is partitioned by."""
    name: str
    partition_key: str


CONTAINERS: dict[str, ContainerConfig] = {
    "users": ContainerConfig("users", "id"),
    "teams": ContainerConfig("teams", "manager_id"),
    "dreams": ContainerConfig("dreams", "user_id"),
    "connects": ContainerConfig("connects", "user_id"),
    "scoring": ContainerConfig("scoring", "user_id"),
    "current_weeks": ContainerConfig("current_weeks", "user_id"),
    "past_weeks": ContainerConfig("past_weeks", "user_id"),
    "meeting_attendance": ContainerConfig("meeting_attendance", "team_id"),
}


def _container(name: str) -> ContainerConfig:
    try:
        return CONTAINERS[name]
    except KeyError:
        raise DocumentStoreError(f"Unknown container: {name}")


class DocumentStore(Protocol):
    """
    Protocol for document stores.

    Documents are plain dicts with an "id" field and the container's
    partition-key field.
    """

    async def get(self, container: str, doc_id: str, partition_key: str) -> Optional[Document]: ...

    async def upsert(self, container: str, document: Document) -> Document: ...

    async def replace(
        self,
        container: str,
        doc_id: str,
        partition_key: str,
        document: Document,
    ) -> Document: ...

    async def delete(self, container: str, doc_id: str, partition_key: str) -> None: ...

    async def query(self, container: str, filters: Optional[Document] = None) -> list[Document]: ...

    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# MongoDB
# ---------------------------------------------------------------------------

@dataclass
class MongoConfig:
    """Configuration for the MongoDB connection."""
    uri: str
    database: str = "dreamspace"


class MongoDocumentStore:
    """
    DocumentStore backed by MongoDB through motor.

    `_id` is "<partition key>:<id>" so ids only need to be unique within a
    partition, as in the in-memory store. It is stripped again on the way
    out so callers only ever see "id".
    """

    def __init__(self, config: MongoConfig) -> None:
        self._client = AsyncIOMotorClient(config.uri)
        self._db = self._client[config.database]

        logger.info(
            "Initialized MongoDB document store",
            extra={"database": config.database},
        )

    async def get(self, container: str, doc_id: str, partition_key: str) -> Optional[Document]:
        config = _container(container)
        try:
            raw = await self._db[config.name].find_one(
                {"_id": self._mongo_id(doc_id, partition_key), config.partition_key: partition_key}
            )
        except PyMongoError as e:
            raise self._wrap("get", container, e)
        return self._from_mongo(raw) if raw else None

    async def upsert(self, container: str, document: Document) -> Document:
        config = _container(container)
        body = self._to_mongo(document, config)
        try:
            await self._db[config.name].replace_one(
                {"_id": body["_id"], config.partition_key: body[config.partition_key]},
                body,
                upsert=True,
            )
        except PyMongoError as e:
            raise self._wrap("upsert", container, e)
        return self._from_mongo(body)

    async def replace(
        self,
        container: str,
        doc_id: str,
        partition_key: str,
        document: Document,
    ) -> Document:
        config = _container(container)
        body = self._to_mongo({**document, "id": doc_id}, config)
        try:
            result = await self._db[config.name].replace_one(
                {"_id": self._mongo_id(doc_id, partition_key), config.partition_key: partition_key},
                body,
            )
        except PyMongoError as e:
            raise self._wrap("replace", container, e)
        if result.matched_count == 0:
            raise DocumentNotFoundError(f"{container}/{doc_id} not found")
        return self._from_mongo(body)

    async def delete(self, container: str, doc_id: str, partition_key: str) -> None:
        config = _container(container)
        try:
            await self._db[config.name].delete_one(
                {"_id": self._mongo_id(doc_id, partition_key), config.partition_key: partition_key}
            )
        except PyMongoError as e:
            raise self._wrap("delete", container, e)

    async def query(self, container: str, filters: Optional[Document] = None) -> list[Document]:
        config = _container(container)
        try:
            cursor = self._db[config.name].find(dict(filters or {}))
            rows = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise self._wrap("query", container, e)
        return [self._from_mongo(row) for row in rows]

    async def close(self) -> None:
        self._client.close()
        logger.debug("Closed MongoDB client")

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    @staticmethod
    def _mongo_id(doc_id: str, partition_key: str) -> str:
        return f"{partition_key}:{doc_id}"

    @staticmethod
    def _to_mongo(document: Document, config: ContainerConfig) -> Document:
        if not document.get("id"):
            raise DocumentStoreError(f"Document for {config.name} has no id")
        if config.partition_key not in document:
            raise DocumentStoreError(
                f"Document for {config.name} is missing partition key '{config.partition_key}'"
            )
        return {
            **document,
            "_id": MongoDocumentStore._mongo_id(document["id"], document[config.partition_key]),
        }

    @staticmethod
    def _from_mongo(raw: Document) -> Document:
        doc = dict(raw)
        doc.pop("_id", None)
        return doc

    @staticmethod
    def _wrap(operation: str, container: str, error: Exception) -> DocumentStoreError:
        logger.error(
            "MongoDB operation failed",
            extra={"operation": operation, "container": container, "error": str(error)},
        )
        return DocumentStoreError(f"{operation} on {container} failed: {error}")


# ---------------------------------------------------------------------------
# In-memory store for local development
# ---------------------------------------------------------------------------

class InMemoryDocumentStore:
    """
    In-memory DocumentStore.

    Stores deep copies, so mutating a returned document never changes
    what is stored - the same isolation a real database gives.

    Not suitable for production, but perfect for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    def __init__(self) -> None:
        # {container: {(partition_key, id): document}}
        self._storage: dict[str, dict[tuple[str, str], Document]] = {
            name: {} for name in CONTAINERS
        }

        logger.info("Initialized in-memory document store")

    async def get(self, container: str, doc_id: str, partition_key: str) -> Optional[Document]:
        _container(container)
        doc = self._storage[container].get((partition_key, doc_id))
        return copy.deepcopy(doc) if doc is not None else None

    async def upsert(self, container: str, document: Document) -> Document:
        config = _container(container)
        key = self._key(document, config)
        self._storage[container][key] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def replace(
        self,
        container: str,
        doc_id: str,
        partition_key: str,
        document: Document,
    ) -> Document:
        _container(container)
        if (partition_key, doc_id) not in self._storage[container]:
            raise DocumentNotFoundError(f"{container}/{doc_id} not found")
        stored = {**copy.deepcopy(document), "id": doc_id}
        self._storage[container][(partition_key, doc_id)] = stored
        return copy.deepcopy(stored)

    async def delete(self, container: str, doc_id: str, partition_key: str) -> None:
        _container(container)
        self._storage[container].pop((partition_key, doc_id), None)

    async def query(self, container: str, filters: Optional[Document] = None) -> list[Document]:
        _container(container)
        filters = filters or {}
        return [
            copy.deepcopy(doc)
            for doc in self._storage[container].values()
            if all(doc.get(field) == value for field, value in filters.items())
        ]

    async def close(self) -> None:
        logger.debug("In-memory document store close")

    # Helper methods for testing
    def _seed(self, container: str, document: Document) -> None:
        """Add a document directly (for test setup)."""
        config = _container(container)
        self._storage[container][self._key(document, config)] = copy.deepcopy(document)

    def _dump(self, container: str) -> list[Document]:
        """All documents in a container (for test assertions)."""
        return [copy.deepcopy(doc) for doc in self._storage[container].values()]

    def _clear(self) -> None:
        """Clear all storage (for test cleanup)."""
        for table in self._storage.values():
            table.clear()

    @staticmethod
    def _key(document: Document, config: ContainerConfig) -> tuple[str, str]:
        if not document.get("id"):
            raise DocumentStoreError(f"Document for {config.name} has no id")
        if config.partition_key not in document:
            raise DocumentStoreError(
                f"Document for {config.name} is missing partition key '{config.partition_key}'"
            )
        return document[config.partition_key], document["id"]


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_document_store(
    config: Optional[MongoConfig] = None,
    mock_mode: bool = False,
) -> DocumentStore:
    """
    Create a document store based on configuration.

    Args:
        config: MongoDB configuration (required if not mock_mode)
        mock_mode: If True, return an in-memory store
    """
    if mock_mode:
        return InMemoryDocumentStore()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return MongoDocumentStore(config)
