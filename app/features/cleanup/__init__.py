"""Cleanup feature: periodic and on-demand purge of aged error records."""

from app.features.cleanup.routes import router
from app.features.cleanup.scheduler import CleanupScheduler
from app.features.cleanup.schemas import CleanupResponse
from app.features.cleanup.service import CleanupResult, CleanupService, run_cleanup

__all__ = [
    "CleanupResponse",
    "CleanupResult",
    "CleanupScheduler",
    "CleanupService",
    "router",
    "run_cleanup",
]
