"""
MindshiftR FastAPI Application Entry Point

Main application initialization with:
- Lifespan management (startup/shutdown)
- CORS configuration
- Error handling middleware and exception mapping
- Router registration
- Prometheus metrics endpoint

This is the production entry point for the triage core.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mindshift import __version__
from mindshift.api.middleware.error_handler import (
    ErrorHandlerMiddleware,
    register_exception_handlers,
)
from mindshift.api.v1.router import api_router
from mindshift.config import Settings, get_settings
from mindshift.config.logging_config import configure_logging, get_logger
from mindshift.infrastructure.archive.archive_sink import DatabaseArchiveSink
from mindshift.infrastructure.database.connection import DatabaseManager
from mindshift.infrastructure.metrics.prometheus_metrics import (
    metrics_router,
    update_system_info,
)
from mindshift.infrastructure.monitoring.sentry_integration import init_sentry
from mindshift.services.orchestration.factory import build_triage_service
from mindshift.services.orchestration.maintenance import MaintenanceLoop
from mindshift.services.orchestration.triage_service import TriageService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Builds the triage service (unless one was injected), starts the
    maintenance sweep and tears everything down on shutdown.
    """
    settings: Settings = app.state.settings
    db: Optional[DatabaseManager] = None

    logger.info(
        "Starting MindshiftR triage core",
        env=settings.env,
        version=__version__,
        archive_backend=settings.archive_backend,
    )

    try:
        if app.state.triage is None:
            archive = None
            if settings.archive_backend == "database":
                db = DatabaseManager(settings.database)
                await db.initialize()
                archive = DatabaseArchiveSink(db)
                logger.info("Archive database initialized")
            app.state.triage = build_triage_service(settings, archive=archive)
        app.state.database = db

        maintenance = MaintenanceLoop(
            app.state.triage,
            settings.escalation.sweep_interval_seconds,
        )
        await maintenance.start()
        app.state.maintenance = maintenance

        yield

    finally:
        logger.info("Shutting down MindshiftR triage core")

        maintenance = getattr(app.state, "maintenance", None)
        if maintenance is not None:
            await maintenance.stop()

        if app.state.triage is not None:
            await app.state.triage.shutdown()

        if db is not None:
            await db.close()

        logger.info("MindshiftR shutdown complete")


def create_application(
    settings: Optional[Settings] = None,
    service: Optional[TriageService] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings to use instead of the cached environment settings
        service: Pre-built triage service (tests inject one)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings)
    update_system_info(settings.env, __version__)
    init_sentry(
        dsn=settings.sentry.dsn.get_secret_value(),
        environment=settings.env,
        release=f"mindshift-triage@{__version__}",
        sample_rate=settings.sentry.sample_rate,
        traces_sample_rate=settings.sentry.traces_sample_rate,
    )

    app = FastAPI(
        title="MindshiftR Triage API",
        description="Conversational triage core - classification, crisis escalation and human handoff",
        version=__version__,
        docs_url="/docs" if not settings.is_production() else None,
        redoc_url="/redoc" if not settings.is_production() else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.triage = service
    app.state.database = None

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add error handling middleware
    app.add_middleware(ErrorHandlerMiddleware)
    register_exception_handlers(app)

    # Register API routers
    app.include_router(
        api_router,
        prefix=f"/api/{settings.api_version}",
    )
    app.include_router(metrics_router)

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        """Root endpoint - basic info."""
        return {
            "name": "MindshiftR Triage API",
            "version": __version__,
            "status": "operational",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mindshift.main:create_application",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=get_settings().env == "development",
        log_level=get_settings().log_level.lower(),
    )
