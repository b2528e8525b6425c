"""User-defined grade systems.

Custom systems are entered as a name plus an ordered list of grade names
and colours. They are persisted locally first, registered for immediate
use, and mirrored to the remote store on a best-effort basis: a remote
failure is logged and never fails the local operation.

Canonical values of custom grades are their position in the list (0, 1,
2, ...). They are not calibrated against the builtin ladder, so every
custom entry is flagged ``approximate``.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from climb_grades.database.local_store import CustomGradeSystemStore
from climb_grades.database.remote_feed import GradeSystemFeed, Unsubscribe
from climb_grades.exceptions import GradeSystemValidationError, RemoteStoreError
from climb_grades.logging_config import get_logger
from climb_grades.models import CustomGradeSystem, GradeEntry, GradeSystemDefinition
from climb_grades.registry import GradeSystemRegistry
from climb_grades.scales import LEGACY_SYSTEM_IDS

logger = get_logger(__name__)

USER_SYSTEM_PREFIX = "user-"

CustomInput = Union[CustomGradeSystem, Mapping[str, Any]]


def slugify(value: str) -> str:
    """Lowercase ``value`` and collapse every non-alphanumeric run to ``-``.

    Examples:
        >>> slugify("  Gym Colors! ")
        'gym-colors'
    """
    return re.sub(r"[^a-z0-9]+", "-", value.lower().strip()).strip("-")


def system_id_for(custom: CustomGradeSystem) -> str:
    """Return the explicit id, or ``user-<slug of name>``."""
    return custom.id or f"{USER_SYSTEM_PREFIX}{slugify(custom.name)}"


def validate_custom_system(data: CustomInput) -> CustomGradeSystem:
    """Check raw custom system input before it is stored or registered.

    Args:
        data: A CustomGradeSystem or a mapping in the document shape.

    Returns:
        The validated CustomGradeSystem.

    Raises:
        GradeSystemValidationError: Listing every problem found: missing
            fields, an empty or unsluggable name, an id that names a builtin
            system, no grades, blank or duplicate grade names.
    """
    if isinstance(data, CustomGradeSystem):
        custom = data
    else:
        try:
            custom = CustomGradeSystem.model_validate(data)
        except ValidationError as exc:
            raise GradeSystemValidationError(
                [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
            ) from exc

    errors: list[str] = []
    if not custom.name.strip():
        errors.append("System name cannot be empty")
    elif not custom.id and not slugify(custom.name):
        errors.append("System name must contain at least one letter or digit")
    if custom.id is not None and custom.id.strip().lower() in LEGACY_SYSTEM_IDS:
        errors.append(f"System id '{custom.id}' is reserved for a builtin system")
    elif custom.id and not custom.id.strip():
        errors.append("System id cannot be blank")
    if not custom.grades:
        errors.append("System must define at least one grade")

    seen: set[str] = set()
    for index, grade in enumerate(custom.grades, start=1):
        name = grade.name.strip()
        if not name:
            errors.append(f"Grade {index} has an empty name")
            continue
        key = name.lower()
        if key in seen:
            errors.append(f"Grade {index} duplicates the name '{name}'")
        seen.add(key)

    if errors:
        raise GradeSystemValidationError(errors)
    return custom


def to_definition(custom: CustomGradeSystem) -> GradeSystemDefinition:
    """Derive a registry definition from a custom system.

    Example:
        >>> definition = to_definition(
        ...     CustomGradeSystem(name="Gym Colors", grades=[{"name": "Pink", "color": "#f0c"}])
        ... )
        >>> definition.id, definition.grades[0].id, definition.grades[0].canonical_value
        ('user-gym-colors', 'user-gym-colors-pink', 0)
    """
    system_id = system_id_for(custom)
    grades = tuple(
        GradeEntry(
            id=f"{system_id}-{slugify(grade.name) or index}",
            label=grade.name,
            display_order=index,
            canonical_value=index,
            color=grade.color or None,
            approximate=True,
        )
        for index, grade in enumerate(custom.grades)
    )
    return GradeSystemDefinition(
        id=system_id,
        name=custom.name,
        discipline="boulder",
        version=custom.version,
        scope="user",
        grades=grades,
        active=True,
    )


def _to_document(custom: CustomGradeSystem) -> dict[str, Any]:
    return custom.model_dump(by_alias=True, exclude_none=True)


def _grade_names(custom: CustomGradeSystem) -> list[str]:
    return [grade.name.strip() for grade in custom.grades]


class CustomGradeSystemManager:
    """Coordinates custom systems between the registry and both stores.

    Args:
        registry: Registry to register derived definitions into.
        store: Local persistence of the custom system list.
        feed: Remote store; None disables remote sync.
        user_id: Authenticated identity; None means signed out.
    """

    def __init__(
        self,
        registry: GradeSystemRegistry,
        store: CustomGradeSystemStore,
        feed: Optional[GradeSystemFeed] = None,
        user_id: Optional[str] = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.feed = feed
        self.user_id = user_id

    def _register_all(self, systems: Iterable[CustomGradeSystem]) -> list[CustomGradeSystem]:
        registered: list[CustomGradeSystem] = []
        for raw in systems:
            try:
                custom = validate_custom_system(raw)
            except GradeSystemValidationError as exc:
                logger.warning(
                    "Skipping invalid custom grade system",
                    extra={"system_id": raw.id, "errors": exc.errors},
                )
                continue
            self.registry.register_system(to_definition(custom))
            registered.append(custom)
        return registered

    def _best_effort_remote(
        self, operation: str, action: Callable[[GradeSystemFeed, str], None]
    ) -> None:
        if self.feed is None or not self.user_id:
            return
        try:
            action(self.feed, self.user_id)
        except RemoteStoreError as exc:
            logger.warning(
                "Remote grade system sync failed, keeping local state",
                extra={"operation": operation, "user_id": self.user_id, "error": exc.message},
            )

    def list_custom_systems(self) -> list[CustomGradeSystem]:
        """Return the locally persisted custom systems."""
        return self.store.get_custom_grade_systems()

    def is_user_system(self, system_id: str) -> bool:
        """Return True if ``system_id`` is a registered custom system."""
        return self.registry.is_user_system(system_id)

    def load_and_register_all_custom_systems(self) -> int:
        """Register every locally persisted custom system.

        Returns:
            Number of systems registered.
        """
        registered = self._register_all(self.store.get_custom_grade_systems())
        logger.info(
            "Custom grade systems loaded", extra={"count": len(registered)}
        )
        return len(registered)

    def set_identity(self, user_id: Optional[str]) -> None:
        """Switch the authenticated identity and reload custom systems."""
        if user_id == self.user_id:
            return
        self.user_id = user_id
        self.registry.clear_user_systems()
        self.load_and_register_all_custom_systems()

    def prepare_custom_system(self, custom: CustomInput) -> CustomGradeSystem:
        """Validate input and assign its id and version.

        A new system starts at version 1. Replacing a stored system keeps its
        version unless the grade names or their order changed, in which case
        the version is bumped so that snapshots taken before and after the
        edit stay distinguishable.

        Raises:
            GradeSystemValidationError: If the input is malformed.
        """
        validated = validate_custom_system(custom)
        system_id = system_id_for(validated)
        version = 1
        for existing in self.store.get_custom_grade_systems():
            if system_id_for(existing) == system_id:
                version = existing.version
                if _grade_names(existing) != _grade_names(validated):
                    version += 1
                break
        return validated.model_copy(update={"id": system_id, "version": version})

    def persist_custom_system(self, payload: CustomGradeSystem) -> None:
        """Replace or append a prepared system in the local store."""
        system_id = system_id_for(payload)
        systems = self.store.get_custom_grade_systems()
        for index, existing in enumerate(systems):
            if system_id_for(existing) == system_id:
                systems[index] = payload
                break
        else:
            systems.append(payload)
        self.store.save_custom_grade_systems(systems)

    def register_custom_system(self, payload: CustomGradeSystem) -> None:
        """Register the definition derived from a prepared system."""
        self.registry.register_system(to_definition(payload))
        logger.info(
            "Custom grade system saved",
            extra={
                "system_id": payload.id,
                "system_version": payload.version,
                "grades": len(payload.grades),
            },
        )

    def mirror_custom_system(self, payload: CustomGradeSystem) -> None:
        """Upload a prepared system to the remote store, if possible."""
        document = _to_document(payload)
        self._best_effort_remote("upsert", lambda feed, uid: feed.upsert(uid, document))

    def upsert_custom_system(self, custom: CustomInput) -> str:
        """Create or replace a custom system.

        Persists the full list locally, registers the derived definition and
        mirrors the document to the remote store if possible.

        Returns:
            The system id.

        Raises:
            GradeSystemValidationError: If the input is malformed.
        """
        payload = self.prepare_custom_system(custom)
        self.persist_custom_system(payload)
        self.register_custom_system(payload)
        self.mirror_custom_system(payload)
        return system_id_for(payload)

    def forget_custom_system(self, system_id: str) -> None:
        """Delete a custom system from the local store."""
        self.store.delete_custom_grade_system(system_id)

    def unregister_custom_system(self, system_id: str) -> None:
        """Unregister a custom system. Builtin systems are left in place."""
        if not self.registry.is_user_system(system_id):
            return
        self.registry.unregister_system(system_id)
        logger.info("Custom grade system removed", extra={"system_id": system_id})

    def mirror_removal(self, system_id: str) -> None:
        """Delete a custom system from the remote store, if possible."""
        self._best_effort_remote("delete", lambda feed, uid: feed.delete(uid, system_id))

    def remove_custom_system(self, system_id: str) -> None:
        """Delete a custom system locally, from the registry and remotely.

        Attempts logged against the system keep their snapshots.
        """
        self.forget_custom_system(system_id)
        self.unregister_custom_system(system_id)
        self.mirror_removal(system_id)

    def push_local_custom_systems_to_cloud(self) -> int:
        """Upload every locally stored system, skipping failures.

        Returns:
            Number of systems uploaded.
        """
        if self.feed is None or not self.user_id:
            return 0
        pushed = 0
        for custom in self.store.get_custom_grade_systems():
            document = _to_document(custom.model_copy(update={"id": system_id_for(custom)}))
            try:
                self.feed.upsert(self.user_id, document)
                pushed += 1
            except RemoteStoreError as exc:
                logger.warning(
                    "Skipping custom grade system upload",
                    extra={"system_id": document["id"], "error": exc.message},
                )
        return pushed

    def _apply_remote_documents(
        self,
        documents: list[dict[str, Any]],
        on_change: Optional[Callable[[list[CustomGradeSystem]], None]],
    ) -> None:
        systems: list[CustomGradeSystem] = []
        for document in documents:
            try:
                systems.append(validate_custom_system(document))
            except GradeSystemValidationError as exc:
                logger.warning(
                    "Ignoring malformed remote grade system",
                    extra={"system_id": document.get("id"), "errors": exc.errors},
                )

        try:
            self.store.save_custom_grade_systems(systems)
        except OSError as exc:
            logger.warning(
                "Could not persist remote grade systems locally",
                extra={"count": len(systems), "error": str(exc)},
            )
        self.registry.clear_user_systems()
        self._register_all(systems)
        logger.info("Custom grade systems refreshed from remote", extra={"count": len(systems)})
        if on_change is not None:
            on_change(systems)

    def subscribe_custom_grade_systems(
        self, on_change: Optional[Callable[[list[CustomGradeSystem]], None]] = None
    ) -> Unsubscribe:
        """Follow the remote set of custom systems.

        Each delivery replaces all registered user systems with the remote
        set and persists it locally. Feed errors are logged and leave the
        registry untouched.

        Returns:
            Unsubscribe callable; a no-op when signed out or without a feed.
        """
        if self.feed is None or not self.user_id:
            return lambda: None

        user_id = self.user_id

        def on_error(exc: Exception) -> None:
            logger.warning(
                "Custom grade systems subscription error",
                extra={"user_id": user_id, "error": str(exc)},
            )

        return self.feed.subscribe(
            user_id,
            lambda documents: self._apply_remote_documents(documents, on_change),
            on_error,
        )
