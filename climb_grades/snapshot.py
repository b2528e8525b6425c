"""Grade snapshots for logged attempts.

A snapshot fixes which system, version and label produced a canonical value
at the moment a climb was logged, so later edits to (or deletion of) a
custom system never reinterpret historical grades.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional, TypeVar, Union

from climb_grades.conversion import GradeConverter
from climb_grades.logging_config import get_logger
from climb_grades.models import Attempt, BoulderGradeSnapshot
from climb_grades.scales import LEGACY_SYSTEM_IDS

logger = get_logger(__name__)

Enrichable = TypeVar("Enrichable", bound=Union[Attempt, MutableMapping[str, Any]])


def _stored_canonical(snapshot: Any) -> Optional[int]:
    """Return the canonical value of a stored snapshot, if it has a valid one."""
    if isinstance(snapshot, BoulderGradeSnapshot):
        return snapshot.canonical_value
    if not isinstance(snapshot, Mapping):
        return None
    value = snapshot.get("canonicalValue", snapshot.get("canonical_value"))
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


class GradeSnapshotBuilder:
    """Builds and backfills :class:`BoulderGradeSnapshot` records."""

    def __init__(self, converter: GradeConverter) -> None:
        self.converter = converter
        self.registry = converter.registry

    def normalize_system_id(self, legacy_id: Optional[str] = None) -> str:
        """Resolve a loose system identifier to a registered system id.

        Legacy codes map to builtin ids, registered ids pass through and
        anything else falls back to the default system.

        Examples:
            >>> builder.normalize_system_id("Fontainebleau")
            'font'
            >>> builder.normalize_system_id("no-such-system")
            'vscale'
        """
        if not legacy_id:
            return self.registry.get_default_system().id
        builtin_id = LEGACY_SYSTEM_IDS.get(legacy_id.lower())
        if builtin_id is not None:
            return builtin_id
        known = self.registry.get_system(legacy_id)
        if known is not None:
            return known.id
        return self.registry.get_default_system().id

    def build_grade_snapshot(
        self, label: str, legacy_system_id: Optional[str] = None
    ) -> Optional[BoulderGradeSnapshot]:
        """Build a snapshot for ``label``, or None if the label is unknown.

        Args:
            label: Grade label as logged (e.g. ``'V5'``, ``'6A+'``, ``'Blue'``).
            legacy_system_id: System the label belongs to; may be a legacy
                short code. Defaults to the default system.

        Returns:
            The snapshot, or None when the label does not resolve in the
            resolved system.

        Example:
            >>> builder.build_grade_snapshot("V5", "V").canonical_value
            6
        """
        system_id = self.normalize_system_id(legacy_system_id)
        system = self.registry.get_system(system_id)
        if system is None:
            return None
        entry = system.find_entry(label)
        if entry is None:
            return None
        return BoulderGradeSnapshot(
            original_system_id=system.id,
            original_system_version=system.version,
            original_label=label,
            canonical_value=entry.canonical_value,
            canonical_low=entry.canonical_low,
            canonical_high=entry.canonical_high,
        )

    def enrich_boulder(
        self, entity: Enrichable, legacy_system_id: Optional[str] = None
    ) -> Enrichable:
        """Attach a snapshot and denormalised canonical value when missing.

        Mutates and returns ``entity``. An existing snapshot is never
        rewritten; only a missing ``canonical_value`` is backfilled from it.
        Calling this twice makes no further change.

        Args:
            entity: An :class:`Attempt` or a stored record dict (camelCase
                keys as persisted, or snake_case).
            legacy_system_id: System the entity's grade was logged in.

        Returns:
            The same entity.
        """
        if isinstance(entity, Attempt):
            if entity.grade_snapshot is None:
                snapshot = self.build_grade_snapshot(entity.grade, legacy_system_id)
                if snapshot is not None:
                    entity.grade_snapshot = snapshot
                    entity.canonical_value = snapshot.canonical_value
            elif entity.canonical_value is None:
                entity.canonical_value = entity.grade_snapshot.canonical_value
            return entity

        snapshot_key = "grade_snapshot" if "grade_snapshot" in entity else "gradeSnapshot"
        canonical_key = (
            "canonical_value" if snapshot_key == "grade_snapshot" else "canonicalValue"
        )
        existing = entity.get(snapshot_key)
        if existing is None:
            snapshot = self.build_grade_snapshot(
                str(entity.get("grade", "")), legacy_system_id
            )
            if snapshot is not None:
                entity[snapshot_key] = snapshot.model_dump(
                    by_alias=snapshot_key == "gradeSnapshot", exclude_none=True
                )
                entity[canonical_key] = snapshot.canonical_value
        elif entity.get(canonical_key) is None:
            canonical = _stored_canonical(existing)
            if canonical is not None:
                entity[canonical_key] = canonical
            else:
                logger.warning(
                    "Stored grade snapshot has no usable canonical value",
                    extra={"grade": entity.get("grade")},
                )
        return entity

    def reenrich_after_edit(
        self,
        attempt: Attempt,
        new_grade: str,
        legacy_system_id: Optional[str] = None,
    ) -> Attempt:
        """Apply an explicit user edit of the grade and re-derive provenance.

        This is the only path that replaces an existing snapshot.
        """
        attempt.grade = new_grade
        attempt.grade_snapshot = None
        attempt.canonical_value = None
        self.enrich_boulder(attempt, legacy_system_id)
        if attempt.grade_snapshot is None:
            logger.info(
                "Edited grade has no canonical mapping",
                extra={"grade": new_grade, "system_id": legacy_system_id},
            )
        return attempt
