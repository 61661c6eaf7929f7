"""Notifications for @mentions and replies.

Note: Router is not exported here to avoid circular imports.
Import directly from dealthread.notifications.router when needed.
"""

from .models import Notification, NotificationType
from .service import NotificationNotFoundError, NotificationService


__all__ = [
    "Notification",
    "NotificationNotFoundError",
    "NotificationService",
    "NotificationType",
]
