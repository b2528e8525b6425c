"""Health check endpoint.

Provides health status information for load balancers and monitoring.
"""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from climb_grades.routes.shared import EngineDep

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Current health status of the application.
        version: Application version string.
        timestamp: Time of the health check (UTC).
        grade_systems: Number of grade systems currently registered.
        remote_sync: Whether a remote store is configured.
    """

    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    timestamp: datetime
    grade_systems: int
    remote_sync: bool

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "version": "0.1.0",
                "timestamp": "2026-01-14T12:00:00Z",
                "grade_systems": 3,
                "remote_sync": False,
            }
        }
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Returns the current health status of the application.",
)
async def health_check(engine: EngineDep) -> HealthResponse:
    """Report status, version and registry size.

    The application is ``degraded`` if the registry has no systems, which
    can only happen if the builtin seed was replaced with an empty one.
    """
    count = len(engine.registry)
    return HealthResponse(
        status="healthy" if count else "degraded",
        version=engine.settings.app_version,
        timestamp=datetime.now(timezone.utc),
        grade_systems=count,
        remote_sync=engine.custom_systems.feed is not None,
    )
