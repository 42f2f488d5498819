"""
Adapter: Audit log repository.

Implements AuditLogRepository port on the append-only audit_logs table.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from algoedge.domain.mt5.entities import AuditEntry
from algoedge.domain.mt5.ports import AuditLogRepository
from algoedge.infrastructure.mt5.models import AuditLogModel

logger = logging.getLogger(__name__)


class AuditLogRepositoryAdapter(AuditLogRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, entry: AuditEntry) -> None:
        """Append an entry, rolling the session back if the insert fails."""
        self._session.add(
            AuditLogModel(
                user_id=entry.user_id,
                action=entry.action.value,
                details=entry.details,
                ip_address=entry.ip_address,
            )
        )
        try:
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            raise
        logger.debug("Audit %s recorded for user=%s", entry.action.value, entry.user_id)
