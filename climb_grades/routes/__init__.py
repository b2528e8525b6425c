"""API routes package.

This package contains the FastAPI route modules organized by domain.
"""

from climb_grades.routes.grades import router as grades_router
from climb_grades.routes.health import router as health_router
from climb_grades.routes.systems import router as systems_router

__all__ = ["grades_router", "health_router", "systems_router"]
