"""Data model for grade systems, snapshots and logged attempts.

All models serialise with camelCase aliases, which is the JSON shape the
local and remote stores hold, and accept snake_case field names on input.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Discipline = Literal["boulder", "route"]
Scope = Literal["builtin", "user"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GradeEntry(_CamelModel):
    """One rung of a grade scale.

    Attributes:
        id: Stable identifier within a system version.
        label: Display text.
        display_order: Rank within the owning system (unique, ascending with
            difficulty).
        canonical_value: Position on the shared cross-system ladder.
        canonical_low: Lower bound for range grades.
        canonical_high: Upper bound for range grades.
        aliases: Alternate input labels that resolve to this entry.
        color: Optional colour for gym colour systems.
        approximate: True when the entry was derived rather than calibrated.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    display_order: int
    canonical_value: int
    canonical_low: Optional[int] = None
    canonical_high: Optional[int] = None
    aliases: tuple[str, ...] = ()
    color: Optional[str] = None
    approximate: bool = False

    def matches(self, label: str) -> bool:
        """Return True if ``label`` is this entry's label, id or an alias."""
        return self.label == label or self.id == label or label in self.aliases


class GradeSystemDefinition(_CamelModel):
    """A named, versioned grade scale."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    discipline: Discipline = "boulder"
    version: int = Field(default=1, ge=1)
    scope: Scope
    grades: tuple[GradeEntry, ...]
    is_default: Optional[bool] = None
    active: bool = True

    def find_entry(self, label: str) -> Optional[GradeEntry]:
        """Resolve a label to an entry: exact label, then id, then alias."""
        for entry in self.grades:
            if entry.label == label:
                return entry
        for entry in self.grades:
            if entry.id == label:
                return entry
        for entry in self.grades:
            if label in entry.aliases:
                return entry
        return None

    def entry_for_canonical(self, canonical: int) -> Optional[GradeEntry]:
        """Return the first entry whose canonical value equals ``canonical``."""
        for entry in self.grades:
            if entry.canonical_value == canonical:
                return entry
        return None


class BoulderGradeSnapshot(_CamelModel):
    """Provenance of a logged grade, fixed at the moment of logging."""

    model_config = ConfigDict(frozen=True)

    original_system_id: str
    original_system_version: int
    original_label: str
    canonical_value: int
    canonical_low: Optional[int] = None
    canonical_high: Optional[int] = None


class Attempt(_CamelModel):
    """A single logged climb (also used for boulder records).

    ``grade`` is always kept as the raw label for backward compatibility.
    Unknown fields from stored records are preserved.
    """

    model_config = ConfigDict(extra="allow")

    grade: str
    grade_snapshot: Optional[BoulderGradeSnapshot] = None
    canonical_value: Optional[int] = None
    flashed: bool = False
    attempts: Optional[int] = Field(default=None, ge=1)


class CustomGrade(_CamelModel):
    """One user-entered grade: a name and a colour."""

    name: str
    color: str = ""


class CustomGradeSystem(_CamelModel):
    """Raw user input for a custom system, also the remote document shape.

    ``version`` is assigned on save and bumped whenever the grade names or
    their order change.
    """

    id: Optional[str] = None
    name: str
    version: int = Field(default=1, ge=1)
    grades: list[CustomGrade] = Field(default_factory=list)


class SessionStats(_CamelModel):
    """Derived summary of a session's attempts."""

    volume: int = 0
    problems: int = 0
    flashes: int = 0
    flash_rate: float = 0.0
    max_grade: Optional[str] = None


class FormattedGrade(_CamelModel):
    """A label ready for display and whether it is an exact equivalent."""

    label: str
    approximate: bool
    system_id: Optional[str] = None


class GradeBucket(_CamelModel):
    """Per-grade tally of logged problems."""

    grade: str
    total: int = 0
    flashed: int = 0
