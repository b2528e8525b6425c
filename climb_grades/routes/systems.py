"""Grade system registry and custom system endpoints.

Handlers are ``async def``. Store reads, store writes and remote calls run
in a worker thread; registry mutation stays on the event loop thread.
"""

import asyncio
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, status
from pydantic import BaseModel

from climb_grades.custom_systems import system_id_for
from climb_grades.exceptions import GradeSystemValidationError
from climb_grades.logging_config import get_logger
from climb_grades.models import CustomGradeSystem, GradeSystemDefinition
from climb_grades.registry import canonical_system_id
from climb_grades.routes.shared import EngineDep, ErrorResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["grade-systems"])

SystemId = Annotated[
    str,
    Path(
        min_length=1,
        max_length=128,
        description="Grade system id or legacy short code",
        examples=["vscale", "V", "user-gym-colors"],
    ),
]


class CustomSystemSaved(BaseModel):
    """Response for a saved custom system."""

    id: str


@router.get("/grade-systems", response_model=list[GradeSystemDefinition])
async def list_grade_systems(engine: EngineDep) -> list[GradeSystemDefinition]:
    """List builtin and custom grade systems."""
    return engine.registry.get_all_systems()


@router.get(
    "/grade-systems/{system_id}",
    response_model=GradeSystemDefinition,
    responses={404: {"model": ErrorResponse, "description": "Unknown grade system"}},
)
async def get_grade_system(
    system_id: SystemId, engine: EngineDep
) -> GradeSystemDefinition:
    """Return one grade system; legacy ``V``/``Font`` codes are accepted."""
    system = engine.registry.get_system(canonical_system_id(system_id))
    if system is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Grade system not found",
        )
    return system


@router.get("/custom-grade-systems", response_model=list[CustomGradeSystem])
async def list_custom_grade_systems(engine: EngineDep) -> list[CustomGradeSystem]:
    """List the locally persisted custom systems."""
    return await asyncio.to_thread(engine.custom_systems.list_custom_systems)


@router.put(
    "/custom-grade-systems",
    response_model=CustomSystemSaved,
    responses={422: {"model": ErrorResponse, "description": "Invalid custom system"}},
)
async def save_custom_grade_system(
    custom: CustomGradeSystem, engine: EngineDep
) -> CustomSystemSaved:
    """Create or replace a custom grade system."""
    manager = engine.custom_systems
    try:
        # Validation reads the store to assign a version
        payload = await asyncio.to_thread(manager.prepare_custom_system, custom)
    except GradeSystemValidationError as exc:
        logger.info("Rejected custom grade system", extra={"errors": exc.errors})
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors,
        ) from exc
    await asyncio.to_thread(manager.persist_custom_system, payload)
    manager.register_custom_system(payload)
    await asyncio.to_thread(manager.mirror_custom_system, payload)
    return CustomSystemSaved(id=system_id_for(payload))


@router.delete(
    "/custom-grade-systems/{system_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={400: {"model": ErrorResponse, "description": "Builtin system"}},
)
async def delete_custom_grade_system(system_id: SystemId, engine: EngineDep) -> None:
    """Delete a custom grade system. Builtin systems cannot be deleted."""
    system = engine.registry.get_system(canonical_system_id(system_id))
    if system is not None and system.scope == "builtin":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Builtin grade systems cannot be deleted",
        )
    manager = engine.custom_systems
    await asyncio.to_thread(manager.forget_custom_system, system_id)
    manager.unregister_custom_system(system_id)
    await asyncio.to_thread(manager.mirror_removal, system_id)
