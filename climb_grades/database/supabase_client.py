"""Supabase access for per-user custom grade systems.

This module provides a cached Supabase client and the three table
operations the grade engine needs: select a user's systems, upsert one
system document and delete one. Rows have the columns
``user_id``, ``id``, ``name``, ``version`` (int) and ``grades`` (jsonb
list of ``{name, color}``).
"""

import re
from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache
from typing import Any

from supabase import Client, create_client
from supabase.lib.client_options import SyncClientOptions

from climb_grades.config import get_settings
from climb_grades.exceptions import RemoteStoreError


@contextmanager
def _supabase_op(context: str) -> Generator[None, None, None]:
    """Wrap Supabase operations with consistent error handling.

    Args:
        context: Description of the operation for error messages.

    Raises:
        RemoteStoreError: If any non-RemoteStoreError exception is raised.
    """
    try:
        yield
    except RemoteStoreError:
        raise
    except Exception as e:
        raise RemoteStoreError(f"{context}: {e!s}") from e


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Get cached Supabase client instance.

    Returns:
        Configured Supabase client.

    Raises:
        RemoteStoreError: If CG_SUPABASE_URL or CG_SUPABASE_KEY are not set,
            or the client cannot be created.
    """
    settings = get_settings()

    if not settings.supabase_url:
        raise RemoteStoreError(
            "SUPABASE_URL is required but not set. "
            "Set CG_SUPABASE_URL in your environment or .env file."
        )

    if not settings.supabase_key:
        raise RemoteStoreError(
            "SUPABASE_KEY is required but not set. "
            "Set CG_SUPABASE_KEY in your environment or .env file."
        )

    try:
        options = SyncClientOptions(
            postgrest_client_timeout=settings.supabase_timeout_seconds
        )
        return create_client(settings.supabase_url, settings.supabase_key, options=options)
    except Exception as e:
        raise RemoteStoreError(f"Failed to create Supabase client: {e!s}") from e


def reset_supabase_client_cache() -> None:
    """Clear cached Supabase client (for testing)."""
    get_supabase_client.cache_clear()


def _grade_systems_table() -> str:
    table = get_settings().grade_systems_table
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", table):
        raise RemoteStoreError(
            f"Invalid table name '{table}': must start with letter/underscore "
            "and contain only alphanumeric characters and underscores"
        )
    return table


def _require(value: str, what: str) -> None:
    if not value:
        raise RemoteStoreError(f"{what} cannot be empty")


def select_grade_system_documents(user_id: str) -> list[dict[str, Any]]:
    """Return every grade system document stored for ``user_id``.

    Raises:
        RemoteStoreError: If the user id is empty or the query fails.

    Example:
        >>> docs = select_grade_system_documents("user-uid-123")
        >>> [d["name"] for d in docs]
        ['Gym Colors']
    """
    _require(user_id, "User ID")
    table = _grade_systems_table()
    client = get_supabase_client()

    with _supabase_op(f"Failed to select grade systems from '{table}'"):
        result = (
            client.table(table)
            .select("id,name,version,grades")
            .eq("user_id", user_id)
            .execute()
        )
        rows: list[dict[str, Any]] = list(result.data or [])  # type: ignore[arg-type]
        return rows


def upsert_grade_system_document(user_id: str, document: dict[str, Any]) -> None:
    """Insert or update one grade system document for ``user_id``.

    Args:
        user_id: Owner of the document.
        document: ``{"id", "name", "grades"}`` mapping.

    Raises:
        RemoteStoreError: If inputs are empty or the upsert fails.
    """
    _require(user_id, "User ID")
    _require(str(document.get("id") or ""), "Grade system ID")
    table = _grade_systems_table()
    client = get_supabase_client()

    with _supabase_op(f"Failed to upsert grade system into '{table}'"):
        client.table(table).upsert(
            {**document, "user_id": user_id}, on_conflict="user_id,id"
        ).execute()


def delete_grade_system_document(user_id: str, system_id: str) -> None:
    """Delete one grade system document for ``user_id``.

    Raises:
        RemoteStoreError: If inputs are empty or the delete fails.
    """
    _require(user_id, "User ID")
    _require(system_id, "Grade system ID")
    table = _grade_systems_table()
    client = get_supabase_client()

    with _supabase_op(f"Failed to delete grade system from '{table}'"):
        client.table(table).delete().eq("user_id", user_id).eq("id", system_id).execute()
