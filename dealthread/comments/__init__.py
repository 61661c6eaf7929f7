"""Deal comment system.

Provides the comment aggregate for a deal with:
- Comments and replies (author-owned)
- @mentions linked to a comment or a reply
- Like/Dislike reactions
- Ordered cascade deletes

Note: Router is not exported here to avoid circular imports.
Import directly from dealthread.comments.router when needed.
"""

from .exceptions import (
    CommentError,
    CommentNotFoundError,
    InvalidInputError,
    OrphanRiskError,
    PartialWriteFailureError,
    PermissionDeniedError,
    UnauthenticatedError,
)
from .models import (
    Comment,
    Mention,
    Reaction,
    ReactionSummary,
    ReactionType,
    Reply,
    ThreadSnapshot,
)
from .reactions import ReactionService
from .service import CommentService, StepResult


__all__ = [
    "Comment",
    "CommentError",
    "CommentNotFoundError",
    "CommentService",
    "InvalidInputError",
    "Mention",
    "OrphanRiskError",
    "PartialWriteFailureError",
    "PermissionDeniedError",
    "Reaction",
    "ReactionService",
    "ReactionSummary",
    "ReactionType",
    "Reply",
    "StepResult",
    "ThreadSnapshot",
    "UnauthenticatedError",
]
