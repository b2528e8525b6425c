"""Persistence layer: local key-value store and Supabase remote feed."""

from climb_grades.database.local_store import (
    CustomGradeSystemStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from climb_grades.database.remote_feed import GradeSystemFeed, SupabaseGradeSystemFeed

__all__ = [
    "CustomGradeSystemStore",
    "GradeSystemFeed",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "SupabaseGradeSystemFeed",
]
