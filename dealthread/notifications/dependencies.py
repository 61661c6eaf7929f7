"""Dependencies for notification routes."""

from typing import Annotated

from fastapi import Depends, Request

from dealthread.comments.dependencies import service_from_state
from dealthread.notifications.service import NotificationService


def get_optional_notification_service(request: Request) -> NotificationService | None:
    """None when notifications are disabled; comment routes then skip them."""
    return getattr(request.app.state, "notification_service", None)


def get_notification_service(request: Request) -> NotificationService:
    return service_from_state(request, "notification_service")


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
OptionalNotificationServiceDep = Annotated[
    NotificationService | None, Depends(get_optional_notification_service)
]
