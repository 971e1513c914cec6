"""
SQL audit sink for access decisions.

Each entry is written in its own short transaction so a deny is recorded even
when the request that triggered it is rolled back.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ifarm.domain.entities.audit_log import AuditLogEntry
from ifarm.infrastructure.persistence.repositories.audit_log_repo import \
    AuditLogRepository
from ifarm.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class SqlAlchemyAuditLogWriter:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(self, entry: AuditLogEntry) -> None:
        """Append one entry; storage failures are logged, never raised"""
        try:
            async with self._session_factory() as session:
                await AuditLogRepository(session).append(entry)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to persist audit entry {entry.action} for user {entry.user_id}: {e}",
                exc_info=True,
            )
