"""Retention purge for the error log."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.core.logging import get_logger
from app.features.error_records.models import ErrorRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class CleanupResult:
    """Outcome of one purge."""

    deleted_error_records: int
    cutoff: datetime
    completed_at: datetime


class CleanupService:
    """Deletes error records older than the configured retention period.

    Customers, Products and Sales are never touched.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def cutoff(self, now: datetime | None = None) -> datetime:
        """Oldest logged_at that survives a purge run at ``now``."""
        now = now or datetime.now(UTC)
        return now - timedelta(days=self.settings.cleanup_retention_days)

    async def purge(self, db: AsyncSession) -> CleanupResult:
        """Delete aged error records and commit.

        Args:
            db: Async database session.

        Returns:
            CleanupResult with the number of deleted records.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the delete fails; the session
                is rolled back first.
        """
        cutoff = self.cutoff()
        logger.info("cleanup.purge_started", cutoff=cutoff.isoformat())

        try:
            result = await db.execute(delete(ErrorRecord).where(ErrorRecord.logged_at < cutoff))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        deleted = result.rowcount or 0
        completed_at = datetime.now(UTC)
        logger.info(
            "cleanup.purge_completed",
            deleted_error_records=deleted,
            cutoff=cutoff.isoformat(),
        )
        return CleanupResult(deleted_error_records=deleted, cutoff=cutoff, completed_at=completed_at)


async def run_cleanup(
    session_maker: async_sessionmaker[AsyncSession],
    settings: Settings | None = None,
) -> CleanupResult:
    """Run one purge in its own session.

    Args:
        session_maker: Factory for the scoped session.
        settings: Application settings.

    Returns:
        CleanupResult of the purge.
    """
    async with session_maker() as session:
        return await CleanupService(settings).purge(session)
