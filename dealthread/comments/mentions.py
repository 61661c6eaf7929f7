"""@mention extraction and username resolution.

Extraction is pure: `@` followed by one or more ASCII word characters, first
occurrence order, duplicates dropped. Resolution turns usernames into user
IDs through a `UserDirectory` when one is configured. Without a directory the
resolver can fall back to the acting user's own ID, which keeps mention rows
writable but attributes them to the wrong person; see DESIGN.md.
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from dealthread.store import FetchQuery, equal_to

from .models import lookup_id


if TYPE_CHECKING:
    from dealthread.store import RecordStore


logger = structlog.get_logger(__name__)


MENTION_PATTERN = re.compile(r"@(\w+)", re.ASCII)


def extract_mentions(text: str | None) -> list[str]:
    """Extract @mentioned usernames from text.

    Returns usernames (without the @ prefix) in order of first occurrence,
    each at most once. Empty or mention-free text gives an empty list.
    """
    if not text:
        return []
    return list(dict.fromkeys(MENTION_PATTERN.findall(text)))


class UserDirectory(Protocol):
    """Username lookup collaborator."""

    async def find_user_id(self, username: str) -> int | None:
        ...


class StoreUserDirectory:
    """Looks usernames up in a record-store table."""

    def __init__(self, store: "RecordStore", table: str, username_field: str) -> None:
        self.store = store
        self.table = table
        self.username_field = username_field

    async def find_user_id(self, username: str) -> int | None:
        rows = await self.store.fetch(
            self.table,
            FetchQuery(
                fields=["Id", self.username_field],
                where=[equal_to(self.username_field, username)],
                limit=1,
            ),
        )
        return lookup_id(rows[0].get("Id")) if rows else None


@dataclass(frozen=True)
class ResolvedMention:
    username: str
    user_id: int


class MentionResolver:
    """Maps extracted usernames to user IDs."""

    def __init__(
        self,
        directory: UserDirectory | None = None,
        fallback_to_actor: bool = True,
    ) -> None:
        self.directory = directory
        self.fallback_to_actor = fallback_to_actor

    async def resolve(
        self,
        usernames: list[str],
        actor_id: int,
    ) -> list[ResolvedMention]:
        """Resolve usernames in order; unknown ones are dropped and logged."""
        resolved: list[ResolvedMention] = []
        for username in usernames:
            user_id = await self._lookup(username)
            if user_id is None and self.fallback_to_actor and self.directory is None:
                logger.warning(
                    "mention_resolved_to_actor",
                    username=username,
                    actor_id=actor_id,
                )
                user_id = actor_id
            if user_id is None:
                logger.info("mention_unresolved", username=username)
                continue
            resolved.append(ResolvedMention(username=username, user_id=user_id))
        return resolved

    async def _lookup(self, username: str) -> int | None:
        if self.directory is None:
            return None
        return await self.directory.find_user_id(username)


def resolver_from_settings(settings: Any, store: "RecordStore") -> MentionResolver:
    """Build the resolver the settings ask for."""
    directory = None
    if settings.user_directory_table:
        directory = StoreUserDirectory(
            store,
            table=settings.user_directory_table,
            username_field=settings.user_directory_username_field,
        )
    return MentionResolver(
        directory=directory,
        fallback_to_actor=settings.mention_fallback_to_actor,
    )
