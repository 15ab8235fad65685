"""
Shared fixtures.

Everything runs against the in-memory document store, so tests exercise
the real repositories and coordinator without a database.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from dreamspace.api.dependencies import get_document_store
from dreamspace.config.settings import Settings, get_settings
from dreamspace.core.teams.coordinator import TeamCoordinator
from dreamspace.core.weeks.rollover import WeeklyRolloverEngine
from dreamspace.infrastructure.documents.client import InMemoryDocumentStore
from dreamspace.infrastructure.documents.repositories import (
    DreamsRepository,
    TeamRepository,
    UserRepository,
    WeekRepository,
)
from dreamspace.main import create_app
from tests.helpers import API_KEY


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def users(store) -> UserRepository:
    return UserRepository(store)


@pytest.fixture
def teams(store) -> TeamRepository:
    return TeamRepository(store)


@pytest.fixture
def coordinator(users, teams) -> TeamCoordinator:
    return TeamCoordinator(users, teams)


@pytest.fixture
def today() -> date:
    # A Wednesday in ISO week 2025-W03 (Mon 13 Jan - Sun 19 Jan).
    return date(2025, 1, 15)


@pytest.fixture
def engine(store, today) -> WeeklyRolloverEngine:
    return WeeklyRolloverEngine(WeekRepository(store), DreamsRepository(store), today=lambda: today)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_keys=API_KEY,
        document_store_mock_mode=True,
        mongodb_uri="",
        _env_file=None,
    )


@pytest.fixture
def client(store, settings):
    """TestClient wired to the in-memory store and test settings."""
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_document_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
