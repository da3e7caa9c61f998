"""
Operation Log Service

Append-only audit trail of critical operations. Writing the trail is
best-effort: failures are logged and swallowed.
"""
import logging
from typing import Optional

from sqlalchemy import select

from internhub.database import AsyncSessionLocal
from internhub.models.notification import OperationLog
from internhub.services.events import AuditEntry

logger = logging.getLogger(__name__)


class OperationLogService:
    """Persist audit entries for lifecycle operations"""

    async def log_operation(self, entry: AuditEntry) -> Optional[OperationLog]:
        """
        Append one audit entry.

        Args:
            entry: Who did what, plus optional network details

        Returns:
            The stored OperationLog, or None if the write failed
        """
        meta = entry.meta
        try:
            async with AsyncSessionLocal() as session:
                log = OperationLog(
                    user_id=entry.user_id,
                    operation_type=entry.operation_type,
                    operation_desc=entry.description,
                    ip_address=meta.ip_address if meta else None,
                    user_agent=meta.user_agent[:500] if meta and meta.user_agent else None,
                )
                session.add(log)
                await session.commit()
                await session.refresh(log)
                return log
        except Exception as e:
            logger.error(f"Failed to create operation log ({entry.operation_type}): {e}")
            return None

    async def list_operations(self, user_id: Optional[int] = None, limit: int = 100):
        """Most recent audit entries, optionally for a single user."""
        async with AsyncSessionLocal() as session:
            query = select(OperationLog).order_by(OperationLog.created_at.desc(), OperationLog.id.desc())
            if user_id is not None:
                query = query.where(OperationLog.user_id == user_id)
            result = await session.execute(query.limit(limit))
            return list(result.scalars().all())


# Global instance
_operation_log_service: Optional[OperationLogService] = None


def get_operation_log_service() -> OperationLogService:
    """Get or create global OperationLogService instance."""
    global _operation_log_service
    if _operation_log_service is None:
        _operation_log_service = OperationLogService()
    return _operation_log_service
