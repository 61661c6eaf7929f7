"""Comment system API endpoints.

Provides routes for:
- Deal threads (list and create comments)
- Comment edit and cascade delete
- Replies management
- Reactions (like, dislike)
- Notifications for @mentions and replies
"""

import structlog
from fastapi import APIRouter, status

from dealthread.auth import CurrentUserId, OptionalUserId
from dealthread.core.context import set_deal_id
from dealthread.notifications.dependencies import OptionalNotificationServiceDep
from dealthread.store import StoreError

from .dependencies import CommentServiceDep, ReactionServiceDep, handle_comment_error
from .exceptions import CommentError
from .schemas import (
    CreateCommentRequest,
    CreateReplyRequest,
    ReactionRequest,
    ReactionSummaryResponse,
    ReplyListResponse,
    ThreadResponse,
    UpdateCommentRequest,
)


logger = structlog.get_logger(__name__)


deals_router = APIRouter(prefix="/v1/deals", tags=["comments"])
router = APIRouter(prefix="/v1/comments", tags=["comments"])


def _display_name(author_name: str | None, user_id: int) -> str:
    return author_name or f"User {user_id}"


# ==============================================================================
# Deal threads
# ==============================================================================


@deals_router.get(
    "/{deal_id}/comments",
    response_model=ThreadResponse,
    summary="Load deal thread",
)
async def get_thread(
    deal_id: int,
    comment_service: CommentServiceDep,
    _user_id: OptionalUserId,
) -> ThreadResponse:
    """Get all comments of a deal, newest first, each with its replies."""
    set_deal_id(deal_id)
    try:
        snapshot = await comment_service.load_thread(deal_id)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return ThreadResponse.from_snapshot(snapshot)


@deals_router.post(
    "/{deal_id}/comments",
    response_model=ThreadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create comment",
)
async def create_comment(
    deal_id: int,
    data: CreateCommentRequest,
    comment_service: CommentServiceDep,
    notification_service: OptionalNotificationServiceDep,
    user_id: CurrentUserId,
) -> ThreadResponse:
    """Create a comment on a deal and return the reloaded thread.

    @mentions are linked to the comment; mentioned users are notified.
    """
    set_deal_id(deal_id)
    try:
        snapshot = await comment_service.create_comment(
            deal_id=deal_id,
            author_id=user_id,
            text=data.text,
            author_name=data.author_name,
        )
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e

    # Don't fail comment creation on notification errors
    if notification_service:
        try:
            await notification_service.process_mentions(
                text=data.text,
                actor_id=user_id,
                actor_name=_display_name(data.author_name, user_id),
                activity_id=deal_id,
                resolver=comment_service.resolver,
            )
        except Exception as notif_error:
            logger.warning(
                "notification_processing_failed",
                error=str(notif_error),
                deal_id=deal_id,
            )

    return ThreadResponse.from_snapshot(snapshot)


# ==============================================================================
# Comments
# ==============================================================================


@router.patch(
    "/{comment_id}",
    response_model=ThreadResponse,
    summary="Update comment",
)
async def update_comment(
    comment_id: int,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    user_id: CurrentUserId,
) -> ThreadResponse:
    """Edit a comment's text. Its mentions are replaced by the new text's."""
    try:
        snapshot = await comment_service.update_comment(
            comment_id=comment_id,
            new_text=data.text,
            actor_id=user_id,
        )
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return ThreadResponse.from_snapshot(snapshot)


@router.delete(
    "/{comment_id}",
    response_model=ThreadResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: int,
    comment_service: CommentServiceDep,
    user_id: CurrentUserId,
) -> ThreadResponse:
    """Delete a comment together with its replies and all their mentions.

    If any child delete fails the comment is kept and 409 is returned.
    """
    try:
        snapshot = await comment_service.delete_comment(comment_id, actor_id=user_id)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return ThreadResponse.from_snapshot(snapshot)


# ==============================================================================
# Replies
# ==============================================================================


@router.get(
    "/{comment_id}/replies",
    response_model=ReplyListResponse,
    summary="Get comment replies",
)
async def list_replies(
    comment_id: int,
    comment_service: CommentServiceDep,
    _user_id: OptionalUserId,
) -> ReplyListResponse:
    try:
        replies = await comment_service.list_replies(comment_id)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return ReplyListResponse.from_replies(comment_id, replies)


@router.post(
    "/{comment_id}/replies",
    response_model=ReplyListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to comment",
)
async def create_reply(
    comment_id: int,
    data: CreateReplyRequest,
    comment_service: CommentServiceDep,
    notification_service: OptionalNotificationServiceDep,
    user_id: CurrentUserId,
) -> ReplyListResponse:
    """Reply to a comment and return the comment's reloaded replies.

    Notifies the comment author and any @mentioned users.
    """
    try:
        replies = await comment_service.create_reply(
            comment_id=comment_id,
            author_id=user_id,
            text=data.text,
            author_name=data.author_name,
        )
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e

    if notification_service:
        try:
            actor_name = _display_name(data.author_name, user_id)
            parent = await comment_service.get_comment(comment_id)
            await notification_service.notify_reply(
                comment_author_id=parent.user_id,
                actor_id=user_id,
                actor_name=actor_name,
                activity_id=parent.deal_id,
                preview=data.text,
            )
            await notification_service.process_mentions(
                text=data.text,
                actor_id=user_id,
                actor_name=actor_name,
                activity_id=parent.deal_id,
                resolver=comment_service.resolver,
            )
        except Exception as notif_error:
            logger.warning(
                "notification_processing_failed",
                error=str(notif_error),
                comment_id=comment_id,
            )

    return ReplyListResponse.from_replies(comment_id, replies)


@router.patch(
    "/{comment_id}/replies/{reply_id}",
    response_model=ReplyListResponse,
    summary="Update reply",
)
async def update_reply(
    comment_id: int,
    reply_id: int,
    data: UpdateCommentRequest,
    comment_service: CommentServiceDep,
    user_id: CurrentUserId,
) -> ReplyListResponse:
    try:
        replies = await comment_service.update_reply(
            reply_id=reply_id,
            comment_id=comment_id,
            new_text=data.text,
            actor_id=user_id,
        )
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return ReplyListResponse.from_replies(comment_id, replies)


@router.delete(
    "/{comment_id}/replies/{reply_id}",
    response_model=ReplyListResponse,
    summary="Delete reply",
)
async def delete_reply(
    comment_id: int,
    reply_id: int,
    comment_service: CommentServiceDep,
    user_id: CurrentUserId,
) -> ReplyListResponse:
    try:
        replies = await comment_service.delete_reply(
            reply_id=reply_id,
            comment_id=comment_id,
            actor_id=user_id,
        )
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return ReplyListResponse.from_replies(comment_id, replies)


# ==============================================================================
# Reactions
# ==============================================================================


@router.get(
    "/{comment_id}/reactions",
    response_model=ReactionSummaryResponse,
    summary="Get reaction counts",
)
async def get_reactions(
    comment_id: int,
    reaction_service: ReactionServiceDep,
    user_id: OptionalUserId,
) -> ReactionSummaryResponse:
    try:
        summary = await reaction_service.get_summary(comment_id, user_id)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return ReactionSummaryResponse.from_summary(summary)


@router.post(
    "/{comment_id}/reactions",
    response_model=ReactionSummaryResponse,
    summary="Toggle reaction",
)
async def react(
    comment_id: int,
    data: ReactionRequest,
    reaction_service: ReactionServiceDep,
    user_id: CurrentUserId,
) -> ReactionSummaryResponse:
    """Toggle a reaction.

    Same type again removes it, the other type switches it.
    """
    try:
        summary = await reaction_service.react(comment_id, user_id, data.reaction_type)
    except (CommentError, StoreError) as e:
        raise handle_comment_error(e) from e
    return ReactionSummaryResponse.from_summary(summary)
