"""Notification entities.

Record-store table `notification_c`:
- Name, message_c, timestamp_c, is_read_c, notification_type_c,
  user_id_c (recipient), activity_id_c (deal the activity happened on)

Notification types:
- MENTION: User was mentioned with @username in a comment or reply
- REPLY: Someone replied to the user's comment
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from dealthread.comments.models import lookup_id, parse_timestamp


# ==============================================================================
# Constants
# ==============================================================================

NOTIFICATION_PREVIEW_MAX_LENGTH = 200

NOTIFICATION_FIELDS = [
    "Id",
    "Name",
    "message_c",
    "timestamp_c",
    "is_read_c",
    "notification_type_c",
    "user_id_c",
    "activity_id_c",
]


class NotificationType(str, Enum):
    """Types of notifications."""

    MENTION = "mention"
    REPLY = "reply"


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification addressed to one user."""

    user_id: int
    type: NotificationType
    message: str
    timestamp: datetime
    is_read: bool = False
    activity_id: int | None = None
    id: int | None = None
    name: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Notification":
        """Create Notification from a store row."""
        return cls(
            id=lookup_id(record.get("Id")),
            name=record.get("Name"),
            user_id=lookup_id(record.get("user_id_c")),
            type=NotificationType(record.get("notification_type_c")),
            message=record.get("message_c") or "",
            timestamp=parse_timestamp(record.get("timestamp_c")),
            is_read=bool(record.get("is_read_c")),
            activity_id=lookup_id(record.get("activity_id_c")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "Name": self.name or f"Notification {int(self.timestamp.timestamp() * 1000)}",
            "message_c": self.message,
            "timestamp_c": self.timestamp.isoformat(),
            "is_read_c": self.is_read,
            "notification_type_c": self.type.value,
            "user_id_c": self.user_id,
            "activity_id_c": self.activity_id,
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def _preview(text: str) -> str:
    if len(text) > NOTIFICATION_PREVIEW_MAX_LENGTH:
        return text[:NOTIFICATION_PREVIEW_MAX_LENGTH]
    return text


def create_notification(
    user_id: int,
    notification_type: NotificationType,
    message: str,
    activity_id: int | None = None,
) -> Notification:
    """Create a new unread notification stamped now."""
    return Notification(
        user_id=user_id,
        type=notification_type,
        message=_preview(message),
        timestamp=datetime.now(UTC),
        activity_id=activity_id,
    )


def create_mention_notification(
    mentioned_user_id: int,
    actor_name: str,
    activity_id: int | None,
    preview: str = "",
) -> Notification:
    """Create a notification for an @mention."""
    message = f"{actor_name} mentioned you"
    if preview:
        message = f"{message}: {preview}"
    return create_notification(
        user_id=mentioned_user_id,
        notification_type=NotificationType.MENTION,
        message=message,
        activity_id=activity_id,
    )


def create_reply_notification(
    comment_author_id: int,
    replier_name: str,
    activity_id: int | None,
    preview: str = "",
) -> Notification:
    """Create a notification for a reply to a comment."""
    message = f"{replier_name} replied to your comment"
    if preview:
        message = f"{message}: {preview}"
    return create_notification(
        user_id=comment_author_id,
        notification_type=NotificationType.REPLY,
        message=message,
        activity_id=activity_id,
    )
