"""
Notification Service

Notification sink for lifecycle events plus the per-user inbox:
listing, unread counts, mark-as-read and deletion.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, delete, func

from internhub.database import transaction, AsyncSessionLocal
from internhub.errors import NotFoundError, ForbiddenError
from internhub.models.notification import Notification
from internhub.services.events import NotificationMessage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


class NotificationService:
    """Create and manage in-app notifications"""

    async def create(self, user_id: int, title: str, content: str, type: Optional[str] = None) -> Notification:
        """Create a single notification."""
        created = await self.create_bulk([NotificationMessage(user_id, title, content, type)])
        return created[0]

    async def create_bulk(self, messages: List[NotificationMessage]) -> List[Notification]:
        """
        Create notifications for many users in one transaction.

        Args:
            messages: One entry per recipient

        Returns:
            The created Notification rows
        """
        if not messages:
            return []

        now = datetime.utcnow()
        records = [
            Notification(
                user_id=message.user_id,
                title=message.title,
                content=message.content,
                type=message.type,
                is_read=False,
                created_at=now,
            )
            for message in messages
        ]

        async with transaction() as session:
            session.add_all(records)

        logger.info(f"Created {len(records)} notifications")
        return records

    async def list_notifications(
        self,
        user_id: int,
        is_read: Optional[bool] = None,
        type: Optional[str] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """
        Newest-first notifications for a user.

        Returns:
            Dict with notifications, pagination {total, limit, offset} and unread_count
        """
        conditions = [Notification.user_id == user_id]
        if is_read is not None:
            conditions.append(Notification.is_read == is_read)
        if type:
            conditions.append(Notification.type == type)

        async with AsyncSessionLocal() as session:
            result = await session.execute(
                select(Notification)
                .where(*conditions)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .limit(limit)
                .offset(offset)
            )
            notifications = list(result.scalars().all())

            total = await session.scalar(select(func.count()).select_from(Notification).where(*conditions))
            unread = await self._count_unread(session, user_id)

        return {
            "notifications": notifications,
            "pagination": {"total": total or 0, "limit": limit, "offset": offset},
            "unread_count": unread,
        }

    async def unread_count(self, user_id: int) -> int:
        async with AsyncSessionLocal() as session:
            return await self._count_unread(session, user_id)

    async def _count_unread(self, session, user_id: int) -> int:
        count = await session.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return count or 0

    async def _get_owned(self, session, notification_id: int, user_id: int) -> Notification:
        notification = await session.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        if notification.user_id != user_id:
            raise ForbiddenError("You do not have permission to access this notification")
        return notification

    async def mark_as_read(self, notification_id: int, user_id: int) -> Notification:
        """Mark one of the user's notifications as read."""
        async with transaction() as session:
            notification = await self._get_owned(session, notification_id, user_id)
            if not notification.is_read:
                notification.is_read = True
        return notification

    async def mark_all_as_read(self, user_id: int) -> int:
        """Mark every unread notification of the user as read; returns how many changed."""
        async with transaction() as session:
            result = await session.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True)
            )
        return result.rowcount or 0

    async def delete_notification(self, notification_id: int, user_id: int) -> None:
        async with transaction() as session:
            await self._get_owned(session, notification_id, user_id)
            await session.execute(delete(Notification).where(Notification.id == notification_id))


# Global instance
_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    """Get or create global NotificationService instance."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
