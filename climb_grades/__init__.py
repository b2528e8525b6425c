"""Grade canonicalization and cross-system conversion for bouldering logs."""

from climb_grades.conversion import GradeConverter, convert_grade
from climb_grades.custom_systems import CustomGradeSystemManager, slugify, to_definition
from climb_grades.engine import GradeEngine, create_grade_engine
from climb_grades.exceptions import (
    GradeEngineError,
    GradeSystemValidationError,
    RegistryEmptyError,
    RemoteStoreError,
)
from climb_grades.models import (
    Attempt,
    BoulderGradeSnapshot,
    CustomGradeSystem,
    FormattedGrade,
    GradeEntry,
    GradeSystemDefinition,
    SessionStats,
)
from climb_grades.registry import GradeSystemRegistry
from climb_grades.snapshot import GradeSnapshotBuilder
from climb_grades.stats import build_session_stats

__all__ = [
    "Attempt",
    "BoulderGradeSnapshot",
    "CustomGradeSystem",
    "CustomGradeSystemManager",
    "FormattedGrade",
    "GradeConverter",
    "GradeEngine",
    "GradeEngineError",
    "GradeEntry",
    "GradeSnapshotBuilder",
    "GradeSystemDefinition",
    "GradeSystemRegistry",
    "GradeSystemValidationError",
    "RegistryEmptyError",
    "RemoteStoreError",
    "SessionStats",
    "build_session_stats",
    "convert_grade",
    "create_grade_engine",
    "slugify",
    "to_definition",
]
