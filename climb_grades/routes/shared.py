"""Shared models and dependencies used across route modules."""

from typing import Annotated

from fastapi import Depends, Request
from pydantic import BaseModel

from climb_grades.engine import GradeEngine


class ErrorResponse(BaseModel):
    """Standard error response model for all API endpoints.

    Attributes:
        detail: Human-readable error message, or one message per problem.
        error_code: Optional machine-readable error code.
    """

    detail: str | list[str]
    error_code: str | None = None


def get_engine(request: Request) -> GradeEngine:
    """Return the grade engine stored on the application."""
    engine: GradeEngine = request.app.state.engine
    return engine


EngineDep = Annotated[GradeEngine, Depends(get_engine)]
