"""Liveness and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

SchedulerState = Literal["running", "stopped", "disabled"]


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: Literal["ok", "unhealthy"]
    database: Literal["connected", "disconnected"] | None = None
    cleanup_scheduler: SchedulerState | None = None


def scheduler_state(request: Request) -> SchedulerState:
    """State of the background cleanup scheduler attached at startup."""
    scheduler = getattr(request.app.state, "cleanup_scheduler", None)
    if scheduler is None:
        return "disabled"
    return "running" if scheduler.running else "stopped"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check; does not touch the store."""
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """Readiness check: store connectivity plus cleanup scheduler state.

    A stopped scheduler does not make the service unready; uploads keep
    working without it.
    """
    cleanup_scheduler = scheduler_state(request)
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(
            "health.database_disconnected",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return HealthResponse(
            status="unhealthy", database="disconnected", cleanup_scheduler=cleanup_scheduler
        )
    return HealthResponse(status="ok", database="connected", cleanup_scheduler=cleanup_scheduler)
