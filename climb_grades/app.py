"""FastAPI application factory.

:func:`create_app` serves one :class:`~climb_grades.engine.GradeEngine`:
the registry, conversion, snapshots, custom systems and session stats.
Every response carries an ``X-Request-ID`` header.

Usage: ``uvicorn climb_grades.app:create_app --factory --reload``
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, Response

from climb_grades.config import get_settings, get_settings_override
from climb_grades.engine import GradeEngine, create_grade_engine
from climb_grades.logging_config import configure_logging, get_logger
from climb_grades.routes import grades_router, health_router, systems_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Report which grade systems are being served, then wait for shutdown."""
    engine: GradeEngine = app.state.engine
    logger.info(
        "Grade service starting",
        extra={
            "app_version": engine.settings.app_version,
            "grade_systems": len(engine.registry),
            "custom_systems": len(engine.registry.user_systems()),
            "remote_sync": engine.custom_systems.feed is not None,
        },
    )
    yield
    logger.info("Grade service stopped")


def create_app(
    config_override: dict[str, Any] | None = None,
    engine: GradeEngine | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config_override: Optional settings overrides, used mainly in tests.
        engine: Pre-built engine; one is created from settings if omitted.

    Returns:
        Configured FastAPI application.

    Example:
        >>> test_app = create_app({"testing": True, "local_store_path": ""})
    """
    if engine is not None:
        settings = engine.settings
    elif config_override:
        settings = get_settings_override(config_override)
    else:
        settings = get_settings()

    configure_logging(
        settings.log_level, json_output=not settings.debug, service=settings.app_name
    )

    if engine is None:
        engine = create_grade_engine(settings)

    show_docs = settings.debug or settings.testing
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Bouldering grade conversion and session statistics API",
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_url="/openapi.json" if show_docs else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine

    @app.middleware("http")
    async def add_request_id(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Propagate or generate an X-Request-ID header."""
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.debug(
            "Request handled",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
            },
        )
        return response

    app.include_router(health_router, tags=["health"])
    app.include_router(health_router, prefix="/api/v1", tags=["health-v1"])
    app.include_router(systems_router)
    app.include_router(grades_router)

    return app
