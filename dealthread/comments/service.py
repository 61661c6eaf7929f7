"""Comment aggregate service.

Business logic for:
- Thread loading (comments with their replies)
- Comment and reply CRUD
- Mention creation and replacement on edit
- Cascade deletes (comment -> replies -> mentions)

The service is stateless: every call reads from and writes to the record
store and returns a fresh snapshot. The store has no transactions, so
multi-table changes run as ordered steps, children before parents, and stop
at the first failed step.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from dealthread.config.settings import Settings, get_settings
from dealthread.store import RecordStore, StoreError

from .exceptions import (
    CommentError,
    CommentNotFoundError,
    InvalidInputError,
    OrphanRiskError,
    PermissionDeniedError,
    UnauthenticatedError,
)
from .mentions import MentionResolver, extract_mentions
from .models import Comment, Mention, Reply, ThreadSnapshot
from .repository import CommentRepository, MentionRepository, ReplyRepository


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one cascade step."""

    step: str
    ok: bool
    affected: int = 0
    error: Exception | None = None


Step = tuple[str, Callable[[], Awaitable[int]]]


def require_author(author_id: int | None) -> int:
    if not author_id:
        raise UnauthenticatedError
    return author_id


def require_text(text: str | None) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise InvalidInputError("Text cannot be empty")
    return cleaned


class CommentService:
    """Orchestrates comments, replies and mentions as one unit."""

    def __init__(
        self,
        store: RecordStore,
        settings: Settings | None = None,
        resolver: MentionResolver | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.store = store
        self.comments = CommentRepository(store, settings.comment_table)
        self.replies = ReplyRepository(store, settings.reply_table)
        self.mentions = MentionRepository(store, settings.mention_table)
        self.resolver = resolver or MentionResolver(
            fallback_to_actor=settings.mention_fallback_to_actor
        )

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def load_thread(self, deal_id: int) -> ThreadSnapshot:
        """Load a deal's comments (newest first) and their replies (oldest first).

        Reply lists are fetched concurrently. A failing reply fetch leaves that
        comment with an empty list; the rest of the thread still loads.
        """
        comments = await self.comments.list_by_deal(deal_id)
        if not comments:
            return ThreadSnapshot(deal_id=deal_id)

        reply_lists = await asyncio.gather(
            *(self._replies_or_empty(comment.id) for comment in comments)
        )
        return ThreadSnapshot(
            deal_id=deal_id,
            comments=comments,
            replies_by_comment_id={
                comment.id: replies
                for comment, replies in zip(comments, reply_lists, strict=True)
            },
        )

    async def _replies_or_empty(self, comment_id: int) -> list[Reply]:
        try:
            return await self.replies.list_by_comment(comment_id)
        except (StoreError, ValueError) as e:
            logger.error(
                "reply_fetch_failed",
                comment_id=comment_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    async def list_replies(self, comment_id: int) -> list[Reply]:
        """Replies of one comment, oldest first."""
        return await self.replies.list_by_comment(comment_id)

    async def get_comment(self, comment_id: int) -> Comment:
        comment = await self.comments.get(comment_id)
        if comment is None:
            raise CommentNotFoundError
        return comment

    async def get_reply(self, reply_id: int, comment_id: int | None = None) -> Reply:
        reply = await self.replies.get(reply_id)
        if reply is None or (comment_id is not None and reply.comment_id != comment_id):
            raise CommentNotFoundError("Reply not found")
        return reply

    # ==========================================================================
    # Comment CRUD
    # ==========================================================================

    async def create_comment(
        self,
        deal_id: int,
        author_id: int | None,
        text: str | None,
        author_name: str | None = None,
    ) -> ThreadSnapshot:
        """Create a comment, link its mentions and return the reloaded thread."""
        author_id = require_author(author_id)
        text = require_text(text)

        comment = await self.comments.create(
            Comment(
                deal_id=deal_id,
                user_id=author_id,
                text=text,
                name=f"Comment by {author_name}" if author_name else None,
            )
        )
        mentions = await self._create_mentions(text, author_id, comment_id=comment.id)
        logger.info(
            "comment_created",
            comment_id=comment.id,
            deal_id=deal_id,
            mention_count=len(mentions),
        )
        return await self.load_thread(deal_id)

    async def update_comment(
        self,
        comment_id: int,
        new_text: str | None,
        actor_id: int | None = None,
    ) -> ThreadSnapshot:
        """Persist new text, then replace the comment's mentions."""
        text = require_text(new_text)
        comment = await self.get_comment(comment_id)
        self._check_author(comment.user_id, actor_id, "edit")

        await self.comments.update_text(comment_id, text)
        await self._replace_mentions(
            text, actor_id or comment.user_id, comment_id=comment_id
        )
        logger.info("comment_updated", comment_id=comment_id, deal_id=comment.deal_id)
        return await self.load_thread(comment.deal_id)

    async def delete_comment(
        self,
        comment_id: int,
        actor_id: int | None = None,
    ) -> ThreadSnapshot:
        """Delete a comment with its replies and every mention under it.

        Order: the comment's mentions, then each reply's mentions followed by
        the reply, then the comment. A failed step aborts before the comment
        row is touched.
        """
        comment = await self.get_comment(comment_id)
        self._check_author(comment.user_id, actor_id, "delete")
        replies = await self.replies.list_by_comment(comment_id)

        steps: list[Step] = [
            ("comment_mentions", lambda: self.mentions.delete_by_comment(comment_id)),
        ]
        for reply in replies:
            steps.extend(self._reply_steps(reply.id))

        results = await self._run_cascade(steps)
        await self.comments.delete(comment_id)

        logger.info(
            "comment_deleted",
            comment_id=comment_id,
            deal_id=comment.deal_id,
            reply_count=len(replies),
            mention_count=sum(
                r.affected for r in results if r.step.endswith("mentions")
            ),
        )
        return await self.load_thread(comment.deal_id)

    # ==========================================================================
    # Reply CRUD
    # ==========================================================================

    async def create_reply(
        self,
        comment_id: int,
        author_id: int | None,
        text: str | None,
        author_name: str | None = None,
    ) -> list[Reply]:
        """Create a reply and return only that comment's reloaded replies."""
        author_id = require_author(author_id)
        text = require_text(text)
        await self.get_comment(comment_id)

        reply = await self.replies.create(
            Reply(
                comment_id=comment_id,
                user_id=author_id,
                text=text,
                name=f"Reply by {author_name}" if author_name else None,
            )
        )
        mentions = await self._create_mentions(text, author_id, reply_id=reply.id)
        logger.info(
            "reply_created",
            reply_id=reply.id,
            comment_id=comment_id,
            mention_count=len(mentions),
        )
        return await self.list_replies(comment_id)

    async def update_reply(
        self,
        reply_id: int,
        comment_id: int,
        new_text: str | None,
        actor_id: int | None = None,
    ) -> list[Reply]:
        text = require_text(new_text)
        reply = await self.get_reply(reply_id, comment_id)
        self._check_author(reply.user_id, actor_id, "edit")

        await self.replies.update_text(reply_id, text)
        await self._replace_mentions(text, actor_id or reply.user_id, reply_id=reply_id)
        logger.info("reply_updated", reply_id=reply_id, comment_id=comment_id)
        return await self.list_replies(comment_id)

    async def delete_reply(
        self,
        reply_id: int,
        comment_id: int,
        actor_id: int | None = None,
    ) -> list[Reply]:
        """Delete a reply's mentions, then the reply."""
        reply = await self.get_reply(reply_id, comment_id)
        self._check_author(reply.user_id, actor_id, "delete")

        await self._run_cascade(self._reply_steps(reply_id))
        logger.info("reply_deleted", reply_id=reply_id, comment_id=comment_id)
        return await self.list_replies(comment_id)

    # ==========================================================================
    # Mentions
    # ==========================================================================

    async def _create_mentions(
        self,
        text: str,
        actor_id: int,
        comment_id: int | None = None,
        reply_id: int | None = None,
    ) -> list[Mention]:
        usernames = extract_mentions(text)
        if not usernames:
            return []
        resolved = await self.resolver.resolve(usernames, actor_id)
        if not resolved:
            return []
        return await self.mentions.create_bulk(
            [
                Mention(
                    user_id=item.user_id,
                    username=item.username,
                    comment_id=comment_id,
                    reply_id=reply_id,
                )
                for item in resolved
            ]
        )

    async def _replace_mentions(
        self,
        text: str,
        actor_id: int,
        comment_id: int | None = None,
        reply_id: int | None = None,
    ) -> list[Mention]:
        """Delete every existing mention of the owner, then create the new set.

        Deletion must complete before creation starts. If creation then
        fails, the owner is left with no mentions and the error surfaces.
        """
        if comment_id is not None:
            removed = await self.mentions.delete_by_comment(comment_id)
        else:
            removed = await self.mentions.delete_by_reply(reply_id)

        try:
            created = await self._create_mentions(
                text, actor_id, comment_id=comment_id, reply_id=reply_id
            )
        except (CommentError, StoreError) as e:
            logger.error(
                "mentions_lost_after_replace",
                comment_id=comment_id,
                reply_id=reply_id,
                removed=removed,
                error=str(e),
            )
            raise

        logger.debug(
            "mentions_replaced",
            comment_id=comment_id,
            reply_id=reply_id,
            removed=removed,
            created=len(created),
        )
        return created

    # ==========================================================================
    # Cascades
    # ==========================================================================

    def _reply_steps(self, reply_id: int) -> list[Step]:
        async def delete_reply() -> int:
            await self.replies.delete(reply_id)
            return 1

        return [
            (f"reply:{reply_id}:mentions", lambda: self.mentions.delete_by_reply(reply_id)),
            (f"reply:{reply_id}", delete_reply),
        ]

    async def _run_step(self, name: str, action: Callable[[], Awaitable[int]]) -> StepResult:
        try:
            affected = await action()
        # ValueError: a child row the store returned could not be parsed
        except (CommentError, StoreError, ValueError) as e:
            logger.error(
                "cascade_step_failed",
                step=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return StepResult(step=name, ok=False, error=e)
        return StepResult(step=name, ok=True, affected=affected)

    async def _run_cascade(self, steps: list[Step]) -> list[StepResult]:
        """Run steps in order; raise OrphanRiskError at the first failure."""
        results: list[StepResult] = []
        for name, action in steps:
            result = await self._run_step(name, action)
            if not result.ok:
                raise OrphanRiskError(
                    f"Delete aborted at step '{name}'; nothing after it was removed",
                    failed_step=name,
                    completed_steps=[r.step for r in results],
                ) from result.error
            results.append(result)
        return results

    # ==========================================================================
    # Permissions
    # ==========================================================================

    @staticmethod
    def _check_author(author_id: int, actor_id: int | None, action: str) -> None:
        if actor_id is not None and actor_id != author_id:
            raise PermissionDeniedError(f"You can only {action} your own comments.")
