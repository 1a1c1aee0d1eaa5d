"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import create_tables, get_engine
from app.core.exceptions import register_exception_handlers
from app.core.health import router as health_router
from app.core.logging import configure_logging, get_logger
from app.core.middleware import GlobalExceptionMiddleware, RequestIdMiddleware
from app.features.cleanup.routes import router as cleanup_router
from app.features.cleanup.scheduler import CleanupScheduler
from app.features.error_records.routes import router as error_records_router
from app.features.upload.routes import router as upload_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown.

    Args:
        application: FastAPI application instance; the cleanup scheduler is stored on
            its state for the readiness check.

    Yields:
        None after startup, cleans up on shutdown.
    """
    settings = get_settings()

    # Startup
    configure_logging()
    logger.info(
        "app.startup_started",
        app_name=settings.app_name,
        app_env=settings.app_env,
        debug=settings.debug,
    )

    await create_tables(get_engine())

    scheduler: CleanupScheduler | None = None
    if settings.cleanup_enabled and not settings.is_testing:
        scheduler = CleanupScheduler(settings)
        scheduler.start()
    else:
        logger.info("cleanup.scheduler_disabled", app_env=settings.app_env)
    application.state.cleanup_scheduler = scheduler

    yield

    # Shutdown
    if scheduler is not None:
        await scheduler.stop()
    await get_engine().dispose()
    logger.info("app.shutdown_completed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Workbook ingestion service for customers, products and sales",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware (order matters - last added = outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GlobalExceptionMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # Exception handlers
    register_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(upload_router)
    app.include_router(error_records_router)
    app.include_router(cleanup_router)

    return app


app = create_app()
