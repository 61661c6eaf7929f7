"""Pydantic schemas for the deal comment API.

Request/Response models for:
- Comment and reply CRUD
- Reaction toggling
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Comment, ReactionSummary, ReactionType, Reply, ThreadSnapshot


MAX_TEXT_LENGTH = 10000


# ==============================================================================
# Request Schemas
# ==============================================================================


class TextRequest(BaseModel):
    """Base for requests carrying comment or reply text.

    Blank text passes schema validation and is rejected by the service with
    an `invalid_input` error, so the API answers 400 rather than 422.
    """

    text: str = Field(..., max_length=MAX_TEXT_LENGTH)
    author_name: str | None = Field(None, max_length=200)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class CreateCommentRequest(TextRequest):
    """Request to create a comment on a deal."""


class UpdateCommentRequest(TextRequest):
    """Request to edit a comment or a reply."""


class CreateReplyRequest(TextRequest):
    """Request to reply to a comment."""


class ReactionRequest(BaseModel):
    """Request to toggle a reaction on a comment."""

    reaction_type: ReactionType


# ==============================================================================
# Response Schemas
# ==============================================================================


class ReplyResponse(BaseModel):
    """Response for a single reply."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    comment_id: int
    user_id: int
    text: str
    name: str | None = None
    is_edited: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_reply(cls, reply: Reply) -> "ReplyResponse":
        return cls(
            id=reply.id,
            comment_id=reply.comment_id,
            user_id=reply.user_id,
            text=reply.text,
            name=reply.name,
            is_edited=reply.audit.is_edited,
            created_at=reply.audit.created_on,
            updated_at=reply.audit.modified_on,
        )


class CommentResponse(BaseModel):
    """Response for a single comment with its replies."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_id: int
    user_id: int
    text: str
    name: str | None = None
    is_edited: bool = False
    reply_count: int = 0
    replies: list[ReplyResponse] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_comment(
        cls,
        comment: Comment,
        replies: list[Reply] | None = None,
    ) -> "CommentResponse":
        """Create response from a Comment entity and its replies."""
        replies = replies or []
        return cls(
            id=comment.id,
            deal_id=comment.deal_id,
            user_id=comment.user_id,
            text=comment.text,
            name=comment.name,
            is_edited=comment.audit.is_edited,
            reply_count=len(replies),
            replies=[ReplyResponse.from_reply(r) for r in replies],
            created_at=comment.audit.created_on,
            updated_at=comment.audit.modified_on,
        )


class ThreadResponse(BaseModel):
    """All comments of a deal, newest first, each with replies oldest first."""

    deal_id: int
    items: list[CommentResponse]
    total: int

    @classmethod
    def from_snapshot(cls, snapshot: ThreadSnapshot) -> "ThreadResponse":
        return cls(
            deal_id=snapshot.deal_id,
            items=[
                CommentResponse.from_comment(c, snapshot.replies_for(c.id))
                for c in snapshot.comments
            ],
            total=snapshot.total_count,
        )


class ReplyListResponse(BaseModel):
    """Replies of one comment, oldest first."""

    comment_id: int
    items: list[ReplyResponse]
    total: int

    @classmethod
    def from_replies(cls, comment_id: int, replies: list[Reply]) -> "ReplyListResponse":
        return cls(
            comment_id=comment_id,
            items=[ReplyResponse.from_reply(r) for r in replies],
            total=len(replies),
        )


class ReactionSummaryResponse(BaseModel):
    """Like/Dislike counts and the caller's own reaction."""

    comment_id: int
    likes: int = 0
    dislikes: int = 0
    total: int = 0
    user_reaction: ReactionType | None = None

    @classmethod
    def from_summary(cls, summary: ReactionSummary) -> "ReactionSummaryResponse":
        return cls(
            comment_id=summary.comment_id,
            likes=summary.likes,
            dislikes=summary.dislikes,
            total=summary.likes + summary.dislikes,
            user_reaction=summary.user_reaction,
        )


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
    success: bool = True
