"""Composition root for the grade engine.

:func:`create_grade_engine` builds one registry and hands it to every
component that needs it: converter, snapshot builder, custom system
manager and preferences.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from climb_grades.config import Settings, get_settings, resolve_path
from climb_grades.conversion import GradeConverter
from climb_grades.custom_systems import CustomGradeSystemManager
from climb_grades.database.local_store import (
    CustomGradeSystemStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from climb_grades.database.remote_feed import GradeSystemFeed, SupabaseGradeSystemFeed
from climb_grades.preferences import GradePreferences
from climb_grades.registry import GradeSystemRegistry
from climb_grades.snapshot import GradeSnapshotBuilder


@dataclass
class GradeEngine:
    """Every grade component, sharing one registry."""

    settings: Settings
    registry: GradeSystemRegistry
    converter: GradeConverter
    snapshots: GradeSnapshotBuilder
    custom_systems: CustomGradeSystemManager
    preferences: GradePreferences
    store: KeyValueStore


def _build_store(settings: Settings) -> KeyValueStore:
    if not settings.local_store_path:
        return InMemoryKeyValueStore()
    return JsonFileKeyValueStore(resolve_path(settings.local_store_path))


def create_grade_engine(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    feed: Optional[GradeSystemFeed] = None,
    user_id: Optional[str] = None,
) -> GradeEngine:
    """Build a fully wired engine and register persisted custom systems.

    Args:
        settings: Settings to use. Defaults to :func:`get_settings`.
        store: Local key-value store. Defaults to one built from settings.
        feed: Remote feed. Defaults to Supabase when credentials are set,
            otherwise remote sync is disabled.
        user_id: Authenticated identity, if any.

    Returns:
        The wired GradeEngine.

    Example:
        >>> engine = create_grade_engine(get_settings_override({"local_store_path": ""}))
        >>> engine.converter.convert_label("V5", "V", "Font")
        '6C–6C+'
    """
    settings = settings or get_settings()
    store = store if store is not None else _build_store(settings)
    if feed is None and settings.remote_sync_enabled:
        feed = SupabaseGradeSystemFeed()

    registry = GradeSystemRegistry()
    converter = GradeConverter(registry)
    custom_systems = CustomGradeSystemManager(
        registry, CustomGradeSystemStore(store), feed=feed, user_id=user_id
    )
    engine = GradeEngine(
        settings=settings,
        registry=registry,
        converter=converter,
        snapshots=GradeSnapshotBuilder(converter),
        custom_systems=custom_systems,
        preferences=GradePreferences(
            store, registry, default_logging_system=settings.default_logging_system
        ),
        store=store,
    )
    custom_systems.load_and_register_all_custom_systems()
    return engine
