"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskguard.api.middleware import LoggingMiddleware, RequestContextMiddleware
from taskguard.api.routes import router as api_router
from taskguard.core.config import settings
from taskguard.core.exceptions import TaskGuardError
from taskguard.core.logging import configure_logging
from taskguard.models.database import close_db, get_session_factory, init_db
from taskguard.utils.health import HealthStatus, system_health

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    configure_logging(settings)
    if settings.database.create_tables:
        await init_db()
    logger.info(
        "Application started",
        authorization_enabled=settings.auth.enabled,
        provider=settings.auth.authorization_provider,
        default_task_permission=settings.auth.default_task_permission,
    )

    yield

    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware (order matters - last added is outermost)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)

    # Routes
    app.include_router(api_router, prefix="/api")

    # Exception handlers
    @app.exception_handler(TaskGuardError)
    async def taskguard_exception_handler(request: Request, exc: TaskGuardError):
        """Translate domain errors into JSON responses."""
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.exception("Unhandled error", path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": str(exc) if settings.debug else "An error occurred",
            },
        )

    # Health checks
    @app.get("/health")
    async def health_check():
        """Quick health check endpoint (for load balancers)."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
        }

    @app.get("/health/detailed")
    async def health_check_detailed():
        """Health check with database and authorization store status."""
        async with get_session_factory()() as session:
            health = await system_health(session, settings.app_version, settings.environment)
        status_code = 200 if health.status == HealthStatus.HEALTHY else 503
        return JSONResponse(content=health.to_dict(), status_code=status_code)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "taskguard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        workers=settings.workers,
    )
