"""Entities of the deal comment aggregate.

Record-store tables (vendor field names):
- comment_c: Name, deal_id_c, user_id_c, comment_text_c
- reply_c: Name, comment_id_c, user_id_c, reply_text_c
- user_mention_c: Name, user_id_c, comment_id_c, reply_id_c
- reaction_c: Name_c, comment_id_c, user_id_c, reaction_type_c

Every row also carries the store-assigned Id and audit fields
(CreatedOn, CreatedBy, ModifiedOn, ModifiedBy).

Ownership: a Comment owns its Replies and its Mentions; a Reply owns its
Mentions. Reactions belong to a (comment, user) pair but are stored as
independent rows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ReactionType(str, Enum):
    """Available reaction types for comments."""

    LIKE = "Like"
    DISLIKE = "Dislike"


# ==============================================================================
# Field projections
# ==============================================================================

AUDIT_COLUMNS = ["CreatedOn", "CreatedBy", "ModifiedOn", "ModifiedBy"]

COMMENT_FIELDS = ["Id", "Name", "deal_id_c", "user_id_c", "comment_text_c", *AUDIT_COLUMNS]
REPLY_FIELDS = ["Id", "Name", "comment_id_c", "user_id_c", "reply_text_c", *AUDIT_COLUMNS]
MENTION_FIELDS = ["Id", "Name", "comment_id_c", "reply_id_c", "user_id_c", "CreatedOn", "CreatedBy"]
REACTION_FIELDS = [
    "Id",
    "Name",
    "Name_c",
    "comment_id_c",
    "user_id_c",
    "reaction_type_c",
    *AUDIT_COLUMNS,
]

MENTION_NAME_PREFIX = "Mention "


# ==============================================================================
# Row helpers
# ==============================================================================


def lookup_id(value: Any) -> int | None:
    """Read a lookup field that may come back as an int or an {Id, Name} object."""
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        value = value.get("Id")
        if value is None:
            return None
    return int(value)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 audit timestamp."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class Audit:
    """Store-assigned audit fields."""

    created_on: datetime | None = None
    created_by: int | None = None
    modified_on: datetime | None = None
    modified_by: int | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Audit":
        return cls(
            created_on=parse_timestamp(record.get("CreatedOn")),
            created_by=lookup_id(record.get("CreatedBy")),
            modified_on=parse_timestamp(record.get("ModifiedOn")),
            modified_by=lookup_id(record.get("ModifiedBy")),
        )

    @property
    def is_edited(self) -> bool:
        return bool(
            self.created_on and self.modified_on and self.modified_on > self.created_on
        )


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Top-level comment on a deal."""

    deal_id: int
    user_id: int
    text: str
    id: int | None = None
    name: str | None = None
    audit: Audit = field(default_factory=Audit)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Comment":
        return cls(
            id=lookup_id(record.get("Id")),
            name=record.get("Name"),
            deal_id=lookup_id(record.get("deal_id_c")),
            user_id=lookup_id(record.get("user_id_c")),
            text=record.get("comment_text_c") or "",
            audit=Audit.from_record(record),
        )

    def to_record(self) -> dict[str, Any]:
        """Updateable fields only."""
        return {
            "Name": self.name or f"Comment by user {self.user_id}",
            "deal_id_c": self.deal_id,
            "user_id_c": self.user_id,
            "comment_text_c": self.text,
        }


@dataclass
class Reply:
    """Reply attached to a comment."""

    comment_id: int
    user_id: int
    text: str
    id: int | None = None
    name: str | None = None
    audit: Audit = field(default_factory=Audit)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Reply":
        return cls(
            id=lookup_id(record.get("Id")),
            name=record.get("Name"),
            comment_id=lookup_id(record.get("comment_id_c")),
            user_id=lookup_id(record.get("user_id_c")),
            text=record.get("reply_text_c") or "",
            audit=Audit.from_record(record),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "Name": self.name or f"Reply by user {self.user_id}",
            "comment_id_c": self.comment_id,
            "user_id_c": self.user_id,
            "reply_text_c": self.text,
        }


@dataclass
class Mention:
    """A user referenced by @username in a comment or a reply.

    Exactly one of `comment_id` / `reply_id` is set.
    """

    user_id: int
    username: str
    comment_id: int | None = None
    reply_id: int | None = None
    id: int | None = None
    audit: Audit = field(default_factory=Audit)

    def __post_init__(self) -> None:
        if (self.comment_id is None) == (self.reply_id is None):
            msg = "A mention must reference exactly one of comment_id or reply_id"
            raise ValueError(msg)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Mention":
        name = record.get("Name") or ""
        return cls(
            id=lookup_id(record.get("Id")),
            user_id=lookup_id(record.get("user_id_c")),
            username=name.removeprefix(MENTION_NAME_PREFIX),
            comment_id=lookup_id(record.get("comment_id_c")),
            reply_id=lookup_id(record.get("reply_id_c")),
            audit=Audit.from_record(record),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "Name": f"{MENTION_NAME_PREFIX}{self.username}",
            "user_id_c": self.user_id,
            "comment_id_c": self.comment_id,
            "reply_id_c": self.reply_id,
        }


@dataclass
class Reaction:
    """A user's Like or Dislike on a comment."""

    comment_id: int
    user_id: int
    type: ReactionType
    id: int | None = None
    audit: Audit = field(default_factory=Audit)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Reaction":
        return cls(
            id=lookup_id(record.get("Id")),
            comment_id=lookup_id(record.get("comment_id_c")),
            user_id=lookup_id(record.get("user_id_c")),
            type=ReactionType(record.get("reaction_type_c")),
            audit=Audit.from_record(record),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "Name_c": f"{self.type.value} reaction",
            "comment_id_c": self.comment_id,
            "user_id_c": self.user_id,
            "reaction_type_c": self.type.value,
        }


# ==============================================================================
# Snapshots returned to callers
# ==============================================================================


@dataclass
class ThreadSnapshot:
    """Comments of one deal (newest first) with their replies (oldest first)."""

    deal_id: int
    comments: list[Comment] = field(default_factory=list)
    replies_by_comment_id: dict[int, list[Reply]] = field(default_factory=dict)

    @property
    def total_count(self) -> int:
        """Comments plus replies, as shown in the thread header."""
        return len(self.comments) + sum(
            len(replies) for replies in self.replies_by_comment_id.values()
        )

    def replies_for(self, comment_id: int) -> list[Reply]:
        return self.replies_by_comment_id.get(comment_id, [])


@dataclass
class ReactionSummary:
    """Like/Dislike counts for a comment and the viewer's own reaction."""

    comment_id: int
    likes: int = 0
    dislikes: int = 0
    user_reaction: ReactionType | None = None
    reactions: list[Reaction] = field(default_factory=list)

    @classmethod
    def from_reactions(
        cls,
        comment_id: int,
        reactions: list[Reaction],
        user_id: int | None = None,
    ) -> "ReactionSummary":
        user_reaction = None
        if user_id is not None:
            user_reaction = next(
                (r.type for r in reactions if r.user_id == user_id), None
            )
        return cls(
            comment_id=comment_id,
            likes=sum(1 for r in reactions if r.type is ReactionType.LIKE),
            dislikes=sum(1 for r in reactions if r.type is ReactionType.DISLIKE),
            user_reaction=user_reaction,
            reactions=reactions,
        )
