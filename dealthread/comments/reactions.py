"""Like/Dislike toggle on comments.

A user holds at most one reaction per comment. Reacting with the same type
removes it, a different type switches it, and no reaction creates one. The
lookup and the write are separate store calls, so two concurrent toggles by
the same user can leave duplicate rows; the next toggle cleans them up.
"""

import structlog

from dealthread.config.settings import Settings, get_settings
from dealthread.store import RecordStore

from .exceptions import InvalidInputError
from .models import Reaction, ReactionSummary, ReactionType
from .repository import ReactionRepository
from .service import require_author


logger = structlog.get_logger(__name__)


class ReactionService:
    """Reaction toggling and per-comment reaction counts."""

    def __init__(self, store: RecordStore, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.reactions = ReactionRepository(store, settings.reaction_table)

    async def get_summary(
        self,
        comment_id: int,
        user_id: int | None = None,
    ) -> ReactionSummary:
        """Counts by type plus the viewer's own reaction, if any."""
        reactions = await self.reactions.list_by_comment(comment_id)
        return ReactionSummary.from_reactions(comment_id, reactions, user_id)

    async def react(
        self,
        comment_id: int,
        user_id: int | None,
        reaction_type: ReactionType | str,
    ) -> ReactionSummary:
        """Toggle a reaction and return the recounted summary."""
        user_id = require_author(user_id)
        try:
            reaction_type = ReactionType(reaction_type)
        except ValueError as e:
            raise InvalidInputError(f"Unknown reaction type: {reaction_type}") from e

        existing = await self.reactions.list_for_user(comment_id, user_id)
        current = await self._collapse_duplicates(comment_id, user_id, existing)

        if current is None:
            await self.reactions.create(
                Reaction(comment_id=comment_id, user_id=user_id, type=reaction_type)
            )
            action = "added"
        elif current.type is reaction_type:
            await self.reactions.delete(current.id)
            action = "removed"
        else:
            await self.reactions.update_type(current.id, reaction_type)
            action = "changed"

        logger.info(
            "reaction_toggled",
            comment_id=comment_id,
            user_id=user_id,
            reaction_type=reaction_type.value,
            action=action,
        )
        return await self.get_summary(comment_id, user_id)

    async def _collapse_duplicates(
        self,
        comment_id: int,
        user_id: int,
        existing: list[Reaction],
    ) -> Reaction | None:
        """Keep the oldest reaction of the pair and delete the rest."""
        if not existing:
            return None
        kept, extras = existing[0], existing[1:]
        if extras:
            logger.warning(
                "duplicate_reactions_found",
                comment_id=comment_id,
                user_id=user_id,
                count=len(existing),
            )
            await self.reactions.delete_many([r.id for r in extras])
        return kept
