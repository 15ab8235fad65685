"""
Document store integration (MongoDB via motor, or in-memory).
"""

from .client import (
    CONTAINERS,
    ContainerConfig,
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    InMemoryDocumentStore,
    MongoConfig,
    MongoDocumentStore,
    create_document_store,
)

__all__ = [
    "CONTAINERS",
    "ContainerConfig",
    "DocumentNotFoundError",
    "DocumentStore",
    "DocumentStoreError",
    "InMemoryDocumentStore",
    "MongoConfig",
    "MongoDocumentStore",
    "create_document_store",
]
