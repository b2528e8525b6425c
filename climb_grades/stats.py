"""Session statistics over logged attempts.

Everything in this module is a pure function of its inputs. Grades are
ranked through the session system's ``display_order``; builtin systems also
rank each other's labels through the canonical ladder, so a V-scale session
that contains a stray ``"7A"`` still orders correctly.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from climb_grades.conversion import GradeConverter
from climb_grades.logging_config import get_logger
from climb_grades.models import Attempt, GradeBucket, GradeSystemDefinition, SessionStats
from climb_grades.registry import GradeSystemRegistry, canonical_system_id

logger = get_logger(__name__)

AttemptLike = Union[Attempt, Mapping[str, Any]]


def _coerce_attempts(attempts: Iterable[AttemptLike]) -> list[Attempt]:
    coerced: list[Attempt] = []
    for index, raw in enumerate(attempts):
        if isinstance(raw, Attempt):
            coerced.append(raw)
            continue
        try:
            coerced.append(Attempt.model_validate(raw))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed attempt record",
                extra={"index": index, "error": str(exc)},
            )
    return coerced


class _GradeRanker:
    """Ranks grade labels within one system, if that system is registered."""

    def __init__(self, system_id: str, registry: GradeSystemRegistry) -> None:
        self.converter = GradeConverter(registry)
        self.system: Optional[GradeSystemDefinition] = registry.get_system(
            canonical_system_id(system_id)
        )
        self._other_builtins = [
            s
            for s in registry.get_all_systems()
            if s.scope == "builtin" and self.system is not None and s.id != self.system.id
        ]

    def rank(self, grade: str, canonical: Optional[int] = None) -> Optional[int]:
        system = self.system
        if system is None:
            return None
        entry = system.find_entry(grade)
        if entry is not None:
            return entry.display_order
        if system.scope != "builtin":
            return None
        if canonical is None:
            for other in self._other_builtins:
                canonical = self.converter.to_canonical_value(other.id, grade)
                if canonical is not None:
                    break
        if canonical is None:
            return None
        entry = system.entry_for_canonical(canonical)
        return entry.display_order if entry is not None else None

    def is_harder(self, candidate: Attempt, current: Attempt) -> bool:
        """Return True if ``candidate`` outranks ``current``."""
        if self.system is None:
            return candidate.grade > current.grade
        candidate_rank = self.rank(candidate.grade, candidate.canonical_value)
        current_rank = self.rank(current.grade, current.canonical_value)
        if candidate_rank is not None and current_rank is not None:
            return candidate_rank > current_rank
        if candidate_rank is None and current_rank is None:
            return candidate.grade > current.grade
        return current_rank is None


def build_session_stats(
    attempts: Sequence[AttemptLike],
    grade_system_id: str,
    registry: Optional[GradeSystemRegistry] = None,
) -> SessionStats:
    """Compute volume, flashes and the hardest grade of a session.

    Args:
        attempts: Logged attempts (models or stored record dicts).
        grade_system_id: System the session was logged in; legacy ``'V'`` and
            ``'Font'`` codes are accepted.
        registry: Registry to rank grades with. Defaults to a builtin-only
            registry.

    Returns:
        SessionStats. An attempt counts as a flash when it is flagged
        ``flashed`` or took a single attempt. Empty input yields zeroes.

    Example:
        >>> stats = build_session_stats(
        ...     [{"grade": "V4", "attempts": 3}, {"grade": "V3", "attempts": 1}], "V"
        ... )
        >>> (stats.volume, stats.flashes, stats.max_grade)
        (4, 1, 'V4')
    """
    if not isinstance(attempts, (list, tuple)) or not attempts:
        return SessionStats()

    records = _coerce_attempts(attempts)
    if not records:
        return SessionStats()

    ranker = _GradeRanker(grade_system_id, registry or GradeSystemRegistry())
    volume = 0
    flashes = 0
    hardest: Optional[Attempt] = None
    for record in records:
        count = record.attempts if record.attempts is not None else 1
        volume += count
        if record.flashed or count == 1:
            flashes += 1
        if hardest is None or ranker.is_harder(record, hardest):
            hardest = record

    problems = len(records)
    return SessionStats(
        volume=volume,
        problems=problems,
        flashes=flashes,
        flash_rate=flashes / problems if problems else 0.0,
        max_grade=hardest.grade if hardest is not None else None,
    )


def aggregate_by_grade(attempts: Sequence[AttemptLike]) -> dict[str, GradeBucket]:
    """Tally problems and explicit flashes per grade label, in first-seen order."""
    buckets: dict[str, GradeBucket] = {}
    for record in _coerce_attempts(attempts):
        bucket = buckets.setdefault(record.grade, GradeBucket(grade=record.grade))
        bucket.total += 1
        if record.flashed:
            bucket.flashed += 1
    return buckets


def sort_grades(
    grades: Sequence[str],
    grade_system_id: str,
    registry: Optional[GradeSystemRegistry] = None,
) -> list[str]:
    """Return ``grades`` sorted easiest first.

    Grades the system cannot rank keep their relative order at the end.
    """
    ranker = _GradeRanker(grade_system_id, registry or GradeSystemRegistry())
    keyed = []
    for index, grade in enumerate(grades):
        rank = ranker.rank(grade)
        keyed.append(((0, rank, index) if rank is not None else (1, 0, index), grade))
    return [grade for _, grade in sorted(keyed, key=lambda item: item[0])]


def grade_distribution(
    attempts: Sequence[AttemptLike],
    grade_system_id: str,
    registry: Optional[GradeSystemRegistry] = None,
) -> list[GradeBucket]:
    """Return per-grade buckets ordered by difficulty."""
    buckets = aggregate_by_grade(attempts)
    ordered = sort_grades(list(buckets), grade_system_id, registry)
    return [buckets[grade] for grade in ordered]
