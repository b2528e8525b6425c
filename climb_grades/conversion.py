"""Cross-system grade conversion.

Grades are bridged between systems through their canonical value:
label -> canonical integer -> label in the target system. Every function
here degrades to ``None`` (or to the unconverted label) instead of raising,
because grade labels are user-entered free text.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from climb_grades.logging_config import get_logger
from climb_grades.models import Attempt, BoulderGradeSnapshot, FormattedGrade
from climb_grades.registry import GradeSystemRegistry, canonical_system_id
from climb_grades.scales import FONT_TO_V, V_TO_FONT

logger = get_logger(__name__)

GradeLike = Union[Attempt, Mapping[str, Any]]


def convert_grade(grade: str, to_system: str) -> str:
    """Convert a grade between V-scale and Font using the direct tables.

    Used for legacy records that only know the ``'V'``/``'Font'`` codes.
    Unlike :meth:`GradeConverter.convert_label` this accepts single Font
    grades such as ``"6A"`` that are not ladder labels.

    Args:
        grade: The grade label to convert.
        to_system: ``'Font'`` to convert from V-scale, anything else to
            convert from Font to V-scale.

    Returns:
        The converted label, or ``grade`` unchanged if there is no mapping.

    Examples:
        >>> convert_grade("V5", "Font")
        '6C–6C+'
        >>> convert_grade("6A", "V")
        'V2'
        >>> convert_grade("UNKNOWN", "V")
        'UNKNOWN'
    """
    if canonical_system_id(to_system) == "font":
        return V_TO_FONT.get(grade, grade)
    return FONT_TO_V.get(grade, grade)


def _read_grade_fields(
    entity: GradeLike,
) -> tuple[str, Optional[BoulderGradeSnapshot], Optional[int]]:
    """Extract grade, snapshot and canonical value from a model or a dict.

    Stored records may be partial or corrupted: a snapshot that does not
    validate is treated as absent and a non-integer canonical value is
    ignored.
    """
    if isinstance(entity, Attempt):
        return entity.grade, entity.grade_snapshot, entity.canonical_value

    raw_snapshot = entity.get("gradeSnapshot", entity.get("grade_snapshot"))
    snapshot: Optional[BoulderGradeSnapshot] = None
    if isinstance(raw_snapshot, BoulderGradeSnapshot):
        snapshot = raw_snapshot
    elif raw_snapshot is not None:
        try:
            snapshot = BoulderGradeSnapshot.model_validate(raw_snapshot)
        except ValidationError as exc:
            logger.warning(
                "Ignoring malformed grade snapshot",
                extra={"grade": entity.get("grade"), "error": str(exc)},
            )
    canonical = entity.get("canonicalValue", entity.get("canonical_value"))
    if not isinstance(canonical, int) or isinstance(canonical, bool):
        canonical = None
    return str(entity.get("grade", "")), snapshot, canonical


class GradeConverter:
    """Conversion engine bound to a registry.

    Example:
        >>> converter = GradeConverter(GradeSystemRegistry())
        >>> converter.to_canonical_value("V", "V5")
        6
        >>> converter.convert_label("V5", "vscale", "font")
        '6C–6C+'
    """

    def __init__(self, registry: GradeSystemRegistry) -> None:
        self.registry = registry

    def to_canonical_value(self, system_id: str, label: str) -> Optional[int]:
        """Return the canonical value of ``label`` in ``system_id``.

        Resolution order is exact label, then entry id, then aliases. An
        unknown system or label yields ``None``.
        """
        system = self.registry.get_system(canonical_system_id(system_id))
        if system is None:
            return None
        entry = system.find_entry(label)
        return entry.canonical_value if entry is not None else None

    def from_canonical_value(self, system_id: str, canonical: int) -> Optional[str]:
        """Return the label whose canonical value is exactly ``canonical``."""
        system = self.registry.get_system(canonical_system_id(system_id))
        if system is None:
            return None
        entry = system.entry_for_canonical(canonical)
        return entry.label if entry is not None else None

    def convert_label(self, label: str, from_system_id: str, to_system_id: str) -> str:
        """Convert ``label`` between systems, falling back to ``label`` itself."""
        source = canonical_system_id(from_system_id)
        target = canonical_system_id(to_system_id)
        if source == target:
            return label
        canonical = self.to_canonical_value(source, label)
        if canonical is None:
            return label
        return self.from_canonical_value(target, canonical) or label

    def _canonical_is_exact(
        self, snapshot: Optional[BoulderGradeSnapshot], target_id: str
    ) -> bool:
        # A canonical value from a recalibrated, removed or user-defined
        # system is an ordinal placeholder, not a cross-system equivalent.
        if snapshot is None or snapshot.original_system_id == target_id:
            return True
        origin = self.registry.get_system(snapshot.original_system_id)
        if origin is None:
            return False
        entry = origin.find_entry(snapshot.original_label)
        return entry is not None and not entry.approximate

    def format_grade(self, entity: GradeLike, target_system_id: str) -> FormattedGrade:
        """Return a displayable label for ``entity`` in the target system.

        Tries, in order:

        1. The stored canonical value, looked up exactly in the target
           (``approximate=False``) when that value is a calibrated one.
        2. The canonical value re-derived from the snapshot's original system
           and label (``approximate=True``).
        3. The raw stored grade (``approximate=True``).

        Args:
            entity: An :class:`Attempt` or a stored record mapping.
            target_system_id: System to display the grade in.

        Returns:
            FormattedGrade with the label and its approximate flag.
        """
        target = canonical_system_id(target_system_id)
        grade, snapshot, canonical = _read_grade_fields(entity)

        if canonical is None and snapshot is not None:
            canonical = snapshot.canonical_value
        if canonical is not None and self._canonical_is_exact(snapshot, target):
            label = self.from_canonical_value(target, canonical)
            if label:
                return FormattedGrade(label=label, approximate=False, system_id=target)

        if snapshot is not None:
            rederived = self.to_canonical_value(
                snapshot.original_system_id, snapshot.original_label
            )
            if rederived is not None:
                label = self.from_canonical_value(target, rederived)
                if label:
                    return FormattedGrade(label=label, approximate=True, system_id=target)

        return FormattedGrade(label=grade, approximate=True)

    def format_attempt(self, attempt: GradeLike, target_system_id: str) -> FormattedGrade:
        """Format an attempt record. See :meth:`format_grade`."""
        return self.format_grade(attempt, target_system_id)

    def format_boulder(self, boulder: GradeLike, target_system_id: str) -> FormattedGrade:
        """Format a boulder record. See :meth:`format_grade`."""
        return self.format_grade(boulder, target_system_id)
