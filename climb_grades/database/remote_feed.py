"""Remote grade system feed.

The custom system manager talks to the remote store through the
:class:`GradeSystemFeed` protocol: write one document, delete one document,
and subscribe to the full current set of a user's documents.

Design notes:
    The synchronous Supabase client has no realtime channel, so
    :class:`SupabaseGradeSystemFeed` delivers the current set once on
    subscribe and again on every :meth:`SupabaseGradeSystemFeed.refresh`
    (for example when the app regains focus). Each delivery is a full
    snapshot, never a diff.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol

from climb_grades.database.supabase_client import (
    delete_grade_system_document,
    select_grade_system_documents,
    upsert_grade_system_document,
)
from climb_grades.exceptions import RemoteStoreError
from climb_grades.logging_config import get_logger

logger = get_logger(__name__)

Documents = list[dict[str, Any]]
OnNext = Callable[[Documents], None]
OnError = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class GradeSystemFeed(Protocol):
    """Remote per-user collection of grade system documents."""

    def upsert(self, user_id: str, document: dict[str, Any]) -> None: ...

    def delete(self, user_id: str, system_id: str) -> None: ...

    def subscribe(self, user_id: str, on_next: OnNext, on_error: OnError) -> Unsubscribe: ...


class SupabaseGradeSystemFeed:
    """Pull-driven feed over the Supabase grade systems table."""

    def __init__(self) -> None:
        self._subscriptions: dict[int, tuple[str, OnNext, OnError]] = {}
        self._next_token = 0

    def upsert(self, user_id: str, document: dict[str, Any]) -> None:
        upsert_grade_system_document(user_id, document)

    def delete(self, user_id: str, system_id: str) -> None:
        delete_grade_system_document(user_id, system_id)

    def _deliver(self, user_id: str, on_next: OnNext, on_error: OnError) -> None:
        try:
            documents = select_grade_system_documents(user_id)
        except RemoteStoreError as exc:
            on_error(exc)
            return
        on_next(documents)

    def subscribe(self, user_id: str, on_next: OnNext, on_error: OnError) -> Unsubscribe:
        """Deliver the current documents now and on every refresh.

        Returns:
            Callable that stops further deliveries. Safe to call twice.
        """
        token = self._next_token
        self._next_token += 1
        self._subscriptions[token] = (user_id, on_next, on_error)
        logger.debug("Grade system feed subscribed", extra={"user_id": user_id})
        self._deliver(user_id, on_next, on_error)

        def unsubscribe() -> None:
            self._subscriptions.pop(token, None)

        return unsubscribe

    def refresh(self) -> None:
        """Re-read the remote table for every active subscription."""
        for user_id, on_next, on_error in list(self._subscriptions.values()):
            self._deliver(user_id, on_next, on_error)

    @property
    def active_subscriptions(self) -> int:
        """Number of subscriptions that have not been cancelled."""
        return len(self._subscriptions)
