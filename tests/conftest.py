"""
Pytest configuration and fixtures for grade engine tests.
"""

# pylint: disable=redefined-outer-name  # standard pytest fixture pattern

from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from climb_grades.app import create_app
from climb_grades.config import get_settings_override
from climb_grades.conversion import GradeConverter
from climb_grades.custom_systems import CustomGradeSystemManager
from climb_grades.database.local_store import CustomGradeSystemStore, InMemoryKeyValueStore
from climb_grades.engine import GradeEngine, create_grade_engine
from climb_grades.exceptions import RemoteStoreError
from climb_grades.registry import GradeSystemRegistry
from climb_grades.snapshot import GradeSnapshotBuilder


class FakeGradeSystemFeed:
    """In-memory stand-in for the remote grade system feed.

    Records every write, can be switched into a failing mode, and lets
    tests push snapshots or errors to active subscribers.
    """

    def __init__(self) -> None:
        self.upserts: list[tuple[str, dict[str, Any]]] = []
        self.deletes: list[tuple[str, str]] = []
        self.fail_writes = False
        self._subscribers: dict[int, tuple[str, Callable[..., None], Callable[..., None]]] = {}
        self._next = 0

    def upsert(self, user_id: str, document: dict[str, Any]) -> None:
        if self.fail_writes:
            raise RemoteStoreError("remote store offline")
        self.upserts.append((user_id, document))

    def delete(self, user_id: str, system_id: str) -> None:
        if self.fail_writes:
            raise RemoteStoreError("remote store offline")
        self.deletes.append((user_id, system_id))

    def subscribe(
        self,
        user_id: str,
        on_next: Callable[[list[dict[str, Any]]], None],
        on_error: Callable[[Exception], None],
    ) -> Callable[[], None]:
        token = self._next
        self._next += 1
        self._subscribers[token] = (user_id, on_next, on_error)

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def push(self, user_id: str, documents: list[dict[str, Any]]) -> None:
        for subscriber, on_next, _ in list(self._subscribers.values()):
            if subscriber == user_id:
                on_next(documents)

    def fail(self, user_id: str, error: Exception) -> None:
        for subscriber, _, on_error in list(self._subscribers.values()):
            if subscriber == user_id:
                on_error(error)


@pytest.fixture
def registry() -> GradeSystemRegistry:
    """Fresh registry seeded with the builtin systems."""
    return GradeSystemRegistry()


@pytest.fixture
def converter(registry: GradeSystemRegistry) -> GradeConverter:
    """Conversion engine bound to the test registry."""
    return GradeConverter(registry)


@pytest.fixture
def snapshot_builder(converter: GradeConverter) -> GradeSnapshotBuilder:
    """Snapshot builder bound to the test registry."""
    return GradeSnapshotBuilder(converter)


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    """Empty in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def custom_store(kv_store: InMemoryKeyValueStore) -> CustomGradeSystemStore:
    """Custom system store over the in-memory key-value store."""
    return CustomGradeSystemStore(kv_store)


@pytest.fixture
def fake_feed() -> FakeGradeSystemFeed:
    """Remote feed double."""
    return FakeGradeSystemFeed()


@pytest.fixture
def manager(
    registry: GradeSystemRegistry,
    custom_store: CustomGradeSystemStore,
    fake_feed: FakeGradeSystemFeed,
) -> CustomGradeSystemManager:
    """Custom system manager signed in as ``climber-1``."""
    return CustomGradeSystemManager(registry, custom_store, feed=fake_feed, user_id="climber-1")


@pytest.fixture
def gym_colors() -> dict[str, Any]:
    """Raw input for a three-grade gym colour system."""
    return {
        "name": "Gym Colors",
        "grades": [
            {"name": "Pink", "color": "#ff69b4"},
            {"name": "Blue", "color": "#0000ff"},
            {"name": "Black", "color": "#000000"},
        ],
    }


@pytest.fixture
def engine(kv_store: InMemoryKeyValueStore) -> GradeEngine:
    """Fully wired engine with remote sync disabled."""
    settings = get_settings_override(
        {"local_store_path": "", "testing": True, "supabase_url": "", "supabase_key": ""}
    )
    return create_grade_engine(settings, store=kv_store)


@pytest.fixture
def client(engine: GradeEngine) -> Iterator[TestClient]:
    """Test client for an application serving ``engine``."""
    app = create_app(engine=engine)
    with TestClient(app) as test_client:
        yield test_client
