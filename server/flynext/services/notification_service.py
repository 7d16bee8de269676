"""Notification service for in-app user messages."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import AuthorizationError, NotFoundError
from ..models.notification import Notification, NotificationType
from ..models.user import User

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for notification-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def add(self, user_id: UUID, message: str, notification_type: NotificationType) -> Notification:
        """
        Stage a notification in the current transaction.

        The caller commits; this lets booking and cancellation write their
        notifications atomically with the state change.
        """
        notification = Notification(user_id=user_id, message=message, type=notification_type)
        self.db.add(notification)
        return notification

    async def list_for_user(self, user: User, unread_only: bool = False) -> list[Notification]:
        """List a user's notifications, newest first."""
        stmt = select(Notification).where(Notification.user_id == user.id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc())

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def set_read(self, notification_id: UUID, user: User, is_read: bool) -> Notification:
        """
        Mark one of the user's notifications as read or unread.

        Raises:
            NotFoundError: If the notification does not exist
            AuthorizationError: If it belongs to another user
        """
        notification = await self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("notification", str(notification_id))

        if notification.user_id != user.id:
            logger.warning(
                "Attempt to update another user's notification",
                extra={"notification_id": str(notification_id), "user_id": str(user.id)}
            )
            raise AuthorizationError(detail="Notification belongs to another user")

        notification.is_read = is_read
        await self.db.commit()
        await self.db.refresh(notification)
        return notification
