"""Notification service layer.

Business logic for:
- Creating notifications for mentions and replies
- Listing a user's notifications
- Marking notifications as read
- Unread counts
"""

import structlog

from dealthread.comments.exceptions import CommentError
from dealthread.comments.mentions import MentionResolver, ResolvedMention, extract_mentions
from dealthread.comments.repository import TableRepository
from dealthread.config.settings import Settings, get_settings
from dealthread.store import FetchQuery, OrderBy, RecordStore, SortDirection, equal_to

from .models import (
    NOTIFICATION_FIELDS,
    Notification,
    create_mention_notification,
    create_reply_notification,
)


logger = structlog.get_logger(__name__)


NOTIFICATION_LIST_LIMIT = 50
UNREAD_SCAN_LIMIT = 1000


class NotificationNotFoundError(CommentError):
    """Notification missing or addressed to another user."""

    def __init__(self, message: str = "Notification not found"):
        super().__init__(message, "notification_not_found")


class NotificationRepository(TableRepository):
    entity = "notification"

    async def list_for_user(
        self,
        user_id: int,
        unread_only: bool = False,
        limit: int = NOTIFICATION_LIST_LIMIT,
    ) -> list[Notification]:
        where = [equal_to("user_id_c", int(user_id))]
        if unread_only:
            where.append(equal_to("is_read_c", False))
        rows = await self._fetch(
            FetchQuery(
                fields=NOTIFICATION_FIELDS,
                where=where,
                order_by=[OrderBy(field="timestamp_c", direction=SortDirection.DESC)],
                limit=limit,
            )
        )
        return [Notification.from_record(row) for row in rows]

    async def get(self, notification_id: int) -> Notification | None:
        row = await self.store.get_by_id(
            self.table, int(notification_id), NOTIFICATION_FIELDS
        )
        return Notification.from_record(row) if row else None

    async def create(self, notification: Notification) -> Notification:
        return Notification.from_record(await self._create_one(notification.to_record()))

    async def mark_one_read(self, notification_id: int) -> None:
        await self._update_one({"Id": int(notification_id), "is_read_c": True})

    async def mark_read(self, notification_ids: list[int]) -> int:
        return await self._update_many(
            [{"Id": int(i), "is_read_c": True} for i in notification_ids]
        )

    async def delete(self, notification_id: int) -> None:
        await self._delete_all([int(notification_id)])


class NotificationService:
    """Service for notification management."""

    def __init__(self, store: RecordStore, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.repo = NotificationRepository(store, settings.notification_table)

    # ==========================================================================
    # Notification Creation
    # ==========================================================================

    async def create_notification(self, notification: Notification) -> Notification:
        created = await self.repo.create(notification)
        logger.info(
            "notification_created",
            notification_id=created.id,
            user_id=created.user_id,
            notification_type=created.type.value,
        )
        return created

    async def notify_mentions(
        self,
        mentions: list[ResolvedMention],
        actor_id: int,
        actor_name: str,
        activity_id: int | None,
        preview: str = "",
    ) -> list[Notification]:
        """One notification per distinct mentioned user, never the actor."""
        recipients = dict.fromkeys(
            m.user_id for m in mentions if m.user_id != actor_id
        )
        notifications = []
        for user_id in recipients:
            notification = create_mention_notification(
                mentioned_user_id=user_id,
                actor_name=actor_name,
                activity_id=activity_id,
                preview=preview,
            )
            notifications.append(await self.create_notification(notification))
        return notifications

    async def process_mentions(
        self,
        text: str,
        actor_id: int,
        actor_name: str,
        activity_id: int | None,
        resolver: MentionResolver,
    ) -> list[Notification]:
        """Parse @mentions from text and notify the users they resolve to."""
        usernames = extract_mentions(text)
        if not usernames:
            return []
        resolved = await resolver.resolve(usernames, actor_id)
        return await self.notify_mentions(
            resolved, actor_id, actor_name, activity_id, preview=text
        )

    async def notify_reply(
        self,
        comment_author_id: int,
        actor_id: int,
        actor_name: str,
        activity_id: int | None,
        preview: str = "",
    ) -> Notification | None:
        """Create notification for reply to comment.

        Returns None if the replier is the comment author.
        """
        if comment_author_id == actor_id:
            return None

        notification = create_reply_notification(
            comment_author_id=comment_author_id,
            replier_name=actor_name,
            activity_id=activity_id,
            preview=preview,
        )
        return await self.create_notification(notification)

    # ==========================================================================
    # Notification Reading
    # ==========================================================================

    async def list_for_user(
        self,
        user_id: int,
        unread_only: bool = False,
        limit: int = NOTIFICATION_LIST_LIMIT,
    ) -> list[Notification]:
        """Newest first."""
        return await self.repo.list_for_user(user_id, unread_only=unread_only, limit=limit)

    async def unread_count(self, user_id: int) -> int:
        unread = await self.repo.list_for_user(
            user_id, unread_only=True, limit=UNREAD_SCAN_LIMIT
        )
        return len(unread)

    async def get(self, notification_id: int, user_id: int | None = None) -> Notification:
        notification = await self.repo.get(notification_id)
        if notification is None or (user_id is not None and notification.user_id != user_id):
            raise NotificationNotFoundError
        return notification

    # ==========================================================================
    # Mark as Read / Delete
    # ==========================================================================

    async def mark_as_read(
        self,
        notification_id: int,
        user_id: int | None = None,
    ) -> Notification:
        notification = await self.get(notification_id, user_id)
        if not notification.is_read:
            await self.repo.mark_one_read(notification_id)
            notification.is_read = True
        return notification

    async def mark_all_as_read(self, user_id: int) -> int:
        """Mark every unread notification of the user as read.

        Returns count of notifications marked as read.
        """
        unread = await self.repo.list_for_user(
            user_id, unread_only=True, limit=UNREAD_SCAN_LIMIT
        )
        marked = await self.repo.mark_read([n.id for n in unread])
        logger.info("notifications_marked_read", user_id=user_id, count=marked)
        return marked

    async def delete(self, notification_id: int, user_id: int | None = None) -> None:
        await self.get(notification_id, user_id)
        await self.repo.delete(notification_id)
        logger.info("notification_deleted", notification_id=notification_id)
