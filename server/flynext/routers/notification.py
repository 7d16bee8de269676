"""Notification router."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import CurrentUser
from ..models.user import User
from ..schemas.notification import Notification, UpdateNotificationRequest
from ..services.notification_service import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

DB_DEPENDENCY = Depends(get_db)


def _convert_notification_to_schema(notification_model) -> Notification:
    return Notification(
        id=str(notification_model.id),
        message=notification_model.message,
        type=notification_model.type,
        is_read=notification_model.is_read,
        created_at=notification_model.created_at
    )


@router.get("", response_model=list[Notification])
async def list_notifications(
    unread_only: bool = Query(False),
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    notifications = await NotificationService(db).list_for_user(user, unread_only=unread_only)
    return JSONResponse(
        status_code=200,
        content=[_convert_notification_to_schema(n).model_dump(mode="json") for n in notifications]
    )


@router.put("/{notification_id}", response_model=Notification)
async def update_notification(
    notification_id: UUID,
    request: UpdateNotificationRequest,
    user: User = CurrentUser,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Mark one of the caller's notifications as read or unread."""
    notification = await NotificationService(db).set_read(notification_id, user, request.is_read)
    return JSONResponse(
        status_code=200,
        content=_convert_notification_to_schema(notification).model_dump(mode="json")
    )
