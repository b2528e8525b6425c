"""Grade conversion, snapshot and session statistics endpoints.

None of these endpoints fail on unknown grades: conversions fall back to
the input label and snapshots come back as ``null``.
"""

from typing import Annotated, Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from climb_grades.models import (
    Attempt,
    BoulderGradeSnapshot,
    FormattedGrade,
    GradeBucket,
    SessionStats,
)
from climb_grades.routes.shared import EngineDep
from climb_grades.stats import build_session_stats, grade_distribution

router = APIRouter(prefix="/api/v1", tags=["grades"])

GRADE_LABEL_MAX_LENGTH = 64
MAX_ATTEMPTS_PER_REQUEST = 1000

GradeLabel = Annotated[str, Field(max_length=GRADE_LABEL_MAX_LENGTH, examples=["V5"])]
SystemRef = Annotated[str, Field(min_length=1, max_length=128, examples=["V", "font"])]


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConvertRequest(_Request):
    """Request body for label conversion."""

    label: GradeLabel
    from_system: SystemRef
    to_system: SystemRef


class ConvertResponse(_Request):
    """Converted label and whether a mapping was found."""

    label: str
    converted: bool


class FormatRequest(_Request):
    """Request body for formatting a stored attempt."""

    attempt: Attempt
    target_system: SystemRef


class SnapshotRequest(_Request):
    """Request body for building a grade snapshot."""

    label: GradeLabel
    system_id: Optional[SystemRef] = None


class SnapshotResponse(_Request):
    """Snapshot for the label, or null if the label is unknown."""

    snapshot: Optional[BoulderGradeSnapshot] = None


class AttemptsRequest(_Request):
    """A session's attempts and the system they were logged in."""

    attempts: list[Attempt] = Field(max_length=MAX_ATTEMPTS_PER_REQUEST)
    grade_system: SystemRef


class SessionStatsResponse(_Request):
    """Session stats plus the per-grade distribution."""

    stats: SessionStats
    distribution: list[GradeBucket]


@router.post("/grades/convert", response_model=ConvertResponse)
async def convert_grade_label(body: ConvertRequest, engine: EngineDep) -> ConvertResponse:
    """Convert a label between two systems through the canonical ladder."""
    converter = engine.converter
    label = converter.convert_label(body.label, body.from_system, body.to_system)
    canonical = converter.to_canonical_value(body.from_system, body.label)
    converted = (
        canonical is not None
        and converter.from_canonical_value(body.to_system, canonical) is not None
    )
    return ConvertResponse(label=label, converted=converted)


@router.post("/grades/format", response_model=FormattedGrade)
async def format_attempt_grade(body: FormatRequest, engine: EngineDep) -> FormattedGrade:
    """Format a stored attempt's grade for display in another system."""
    return engine.converter.format_attempt(body.attempt, body.target_system)


@router.post("/grades/snapshot", response_model=SnapshotResponse)
async def build_snapshot(body: SnapshotRequest, engine: EngineDep) -> SnapshotResponse:
    """Build the provenance snapshot a new attempt would be stored with."""
    return SnapshotResponse(
        snapshot=engine.snapshots.build_grade_snapshot(body.label, body.system_id)
    )


@router.post("/attempts/enrich", response_model=list[Attempt])
async def enrich_attempts(body: AttemptsRequest, engine: EngineDep) -> list[Attempt]:
    """Attach snapshots to attempts that lack them. Existing ones are kept."""
    return [
        engine.snapshots.enrich_boulder(attempt, body.grade_system)
        for attempt in body.attempts
    ]


@router.post("/sessions/stats", response_model=SessionStatsResponse)
async def session_stats(body: AttemptsRequest, engine: EngineDep) -> SessionStatsResponse:
    """Compute stats for one session's attempts."""
    return SessionStatsResponse(
        stats=build_session_stats(body.attempts, body.grade_system, engine.registry),
        distribution=grade_distribution(body.attempts, body.grade_system, engine.registry),
    )
