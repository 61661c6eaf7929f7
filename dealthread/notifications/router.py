"""Notification API routes.

Endpoints for:
- GET /v1/notifications - List user notifications
- GET /v1/notifications/unread-count - Get unread count
- POST /v1/notifications/{notification_id}/read - Mark one as read
- POST /v1/notifications/read-all - Mark all as read
- DELETE /v1/notifications/{notification_id} - Delete one
"""

from fastapi import APIRouter, Query

from dealthread.auth import CurrentUserId
from dealthread.comments.dependencies import handle_comment_error
from dealthread.comments.exceptions import CommentError
from dealthread.comments.schemas import MessageResponse
from dealthread.notifications.dependencies import NotificationServiceDep
from dealthread.notifications.schemas import (
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from dealthread.store import StoreError


router = APIRouter(
    prefix="/v1/notifications",
    tags=["notifications"],
)


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List user notifications",
)
async def list_notifications(
    user_id: CurrentUserId,
    service: NotificationServiceDep,
    limit: int = Query(default=50, ge=1, le=100, description="Max items"),
    unread_only: bool = Query(default=False, description="Only show unread"),
) -> NotificationListResponse:
    """List notifications for the current user, newest first."""
    try:
        notifications = await service.list_for_user(
            user_id, unread_only=unread_only, limit=limit
        )
        unread_count = await service.unread_count(user_id)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e

    return NotificationListResponse(
        items=[NotificationResponse.from_notification(n) for n in notifications],
        total=len(notifications),
        unread_count=unread_count,
    )


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Get unread notification count",
)
async def get_unread_count(
    user_id: CurrentUserId,
    service: NotificationServiceDep,
) -> UnreadCountResponse:
    try:
        count = await service.unread_count(user_id)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return UnreadCountResponse(count=count)


@router.post(
    "/read-all",
    response_model=MarkReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    user_id: CurrentUserId,
    service: NotificationServiceDep,
) -> MarkReadResponse:
    try:
        marked_count = await service.mark_all_as_read(user_id)
        unread_count = await service.unread_count(user_id)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e

    return MarkReadResponse(marked_count=marked_count, unread_count=unread_count)


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification as read",
)
async def mark_read(
    notification_id: int,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
) -> NotificationResponse:
    try:
        notification = await service.mark_as_read(notification_id, user_id)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return NotificationResponse.from_notification(notification)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: int,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
) -> MessageResponse:
    try:
        await service.delete(notification_id, user_id)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return MessageResponse(message="Notification deleted")
