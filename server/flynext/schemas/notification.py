"""Notification schemas."""

from datetime import datetime

from pydantic import BaseModel

from ..models.notification import NotificationType


class Notification(BaseModel):
    id: str
    message: str
    type: NotificationType
    is_read: bool
    created_at: datetime


class UpdateNotificationRequest(BaseModel):
    is_read: bool
