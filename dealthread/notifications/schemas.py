"""Pydantic schemas for notifications.

Response models for notification operations.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from dealthread.notifications.models import Notification, NotificationType


class NotificationResponse(BaseModel):
    """Single notification response."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Notification ID")
    type: NotificationType = Field(description="Notification type")
    message: str = Field(description="Notification message/preview")
    activity_id: int | None = Field(None, description="Deal the activity happened on")
    is_read: bool = Field(description="Whether notification was read")
    created_at: datetime | None = Field(None, description="When notification was created")

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            type=notification.type,
            message=notification.message,
            activity_id=notification.activity_id,
            is_read=notification.is_read,
            created_at=notification.timestamp,
        )


class NotificationListResponse(BaseModel):
    """Notification list response."""

    items: list[NotificationResponse] = Field(description="List of notifications")
    total: int = Field(description="Number of notifications returned")
    unread_count: int = Field(description="Unread notification count")


class UnreadCountResponse(BaseModel):
    """Unread count response."""

    count: int = Field(description="Number of unread notifications")


class MarkReadResponse(BaseModel):
    """Mark as read response."""

    marked_count: int = Field(description="Number of notifications marked as read")
    unread_count: int = Field(description="Remaining unread count")
