"""Tests for the comment aggregate service.

Covers:
- Thread loading (ordering, empty deals, soft reply-fetch failures)
- Create/update/delete of comments and replies
- Mention linking and replace-on-edit
- Cascade delete ordering and abort on the first failed step
"""

from unittest.mock import AsyncMock

import pytest

from dealthread.comments.exceptions import (
    CommentNotFoundError,
    InvalidInputError,
    OrphanRiskError,
    PartialWriteFailureError,
    PermissionDeniedError,
    UnauthenticatedError,
)
from dealthread.comments.mentions import MentionResolver, ResolvedMention
from dealthread.comments.service import CommentService
from dealthread.store import StoreUnavailableError


DEAL_ID = 100
AUTHOR_ID = 7
OTHER_USER_ID = 8


def mention_names(store, **owner) -> list[str]:
    """Usernames of the mention rows owned by a comment or a reply."""
    field, owner_id = next(iter(owner.items()))
    return sorted(
        row["Name"].removeprefix("Mention ")
        for row in store.rows("user_mention_c")
        if row.get(f"{field}_c") == owner_id
    )


class TestLoadThread:
    """Tests for load_thread."""

    @pytest.mark.asyncio
    async def test_empty_deal_returns_empty_snapshot(self, comment_service: CommentService):
        snapshot = await comment_service.load_thread(DEAL_ID)

        assert snapshot.comments == []
        assert snapshot.replies_by_comment_id == {}

    @pytest.mark.asyncio
    async def test_comments_newest_first_replies_oldest_first(
        self, comment_service: CommentService
    ):
        # Arrange
        await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "first")
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "second")
        newest = snapshot.comments[0]
        await comment_service.create_reply(newest.id, OTHER_USER_ID, "reply one")
        await comment_service.create_reply(newest.id, AUTHOR_ID, "reply two")
        await comment_service.create_comment(DEAL_ID + 1, AUTHOR_ID, "other deal")

        # Act
        snapshot = await comment_service.load_thread(DEAL_ID)

        # Assert
        assert [c.text for c in snapshot.comments] == ["second", "first"]
        assert [r.text for r in snapshot.replies_for(newest.id)] == [
            "reply one",
            "reply two",
        ]
        assert snapshot.replies_for(snapshot.comments[1].id) == []
        assert snapshot.total_count == 4

    @pytest.mark.asyncio
    async def test_reply_fetch_failure_only_empties_that_comment(
        self, comment_service: CommentService, store
    ):
        # Arrange - two comments with one reply each
        await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "healthy")
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "broken")
        broken_id = snapshot.comments[0].id
        healthy_id = snapshot.comments[1].id
        await comment_service.create_reply(healthy_id, AUTHOR_ID, "still here")
        await comment_service.create_reply(broken_id, AUTHOR_ID, "unreachable")

        store.fail(
            "fetch",
            "reply_c",
            when=lambda query: query.where[0].values == [broken_id],
        )

        # Act
        snapshot = await comment_service.load_thread(DEAL_ID)

        # Assert
        assert len(snapshot.comments) == 2
        assert snapshot.replies_for(broken_id) == []
        assert [r.text for r in snapshot.replies_for(healthy_id)] == ["still here"]

    @pytest.mark.asyncio
    async def test_comment_fetch_failure_is_surfaced(
        self, comment_service: CommentService, store
    ):
        store.fail("fetch", "comment_c")

        with pytest.raises(StoreUnavailableError):
            await comment_service.load_thread(DEAL_ID)


class TestCreateComment:
    """Tests for create_comment."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("author_id", [None, 0])
    async def test_missing_author_is_rejected_before_store(
        self, comment_service: CommentService, store, author_id
    ):
        with pytest.raises(UnauthenticatedError):
            await comment_service.create_comment(DEAL_ID, author_id, "hello")

        assert store.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    async def test_blank_text_is_rejected_before_store(
        self, comment_service: CommentService, store, text
    ):
        with pytest.raises(InvalidInputError) as exc_info:
            await comment_service.create_comment(DEAL_ID, AUTHOR_ID, text)

        assert exc_info.value.code == "invalid_input"
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_creates_comment_and_links_mentions(
        self, comment_service: CommentService, store
    ):
        snapshot = await comment_service.create_comment(
            DEAL_ID, AUTHOR_ID, "  hi @bob and @alice, @bob!  ", author_name="Ana"
        )

        comment = snapshot.comments[0]
        assert comment.text == "hi @bob and @alice, @bob!"
        assert comment.name == "Comment by Ana"
        assert comment.user_id == AUTHOR_ID
        assert mention_names(store, comment_id=comment.id) == ["alice", "bob"]
        # Without a user directory mentions resolve to the acting user
        assert {row["user_id_c"] for row in store.rows("user_mention_c")} == {AUTHOR_ID}

    @pytest.mark.asyncio
    async def test_text_without_mentions_writes_no_mention_rows(
        self, comment_service: CommentService, store
    ):
        await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "plain text")

        assert ("create", "user_mention_c") not in store.calls

    @pytest.mark.asyncio
    async def test_uses_resolver_for_mentions(self, store, settings):
        resolver = MentionResolver()
        resolver.resolve = AsyncMock(return_value=[ResolvedMention("bob", 42)])
        service = CommentService(store, settings=settings, resolver=resolver)

        await service.create_comment(DEAL_ID, AUTHOR_ID, "hey @bob")

        resolver.resolve.assert_awaited_once_with(["bob"], AUTHOR_ID)
        assert store.rows("user_mention_c")[0]["user_id_c"] == 42

    @pytest.mark.asyncio
    async def test_rejected_comment_row_is_fatal(
        self, comment_service: CommentService, store
    ):
        store.fail("create", "comment_c", mode="rows")

        with pytest.raises(PartialWriteFailureError):
            await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "hello @bob")

        assert ("create", "user_mention_c") not in store.calls

    @pytest.mark.asyncio
    async def test_store_outage_is_not_retried(self, comment_service: CommentService, store):
        store.fail("create", "comment_c")

        with pytest.raises(StoreUnavailableError):
            await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "hello")

        assert store.calls.count(("create", "comment_c")) == 1

    @pytest.mark.asyncio
    async def test_all_mention_rows_rejected_surfaces_failure(
        self, comment_service: CommentService, store
    ):
        store.fail("create", "user_mention_c", mode="rows")

        with pytest.raises(PartialWriteFailureError):
            await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "hello @bob")


class TestReplies:
    """Tests for reply create/update/delete."""

    @pytest.mark.asyncio
    async def test_create_reply_returns_only_that_comments_replies(
        self, comment_service: CommentService, store
    ):
        # Arrange
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "parent")
        await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "sibling")
        parent_id = next(c.id for c in snapshot.comments if c.text == "parent")
        store.calls.clear()

        # Act
        replies = await comment_service.create_reply(parent_id, OTHER_USER_ID, "ack @ana")

        # Assert
        assert [r.text for r in replies] == ["ack @ana"]
        assert mention_names(store, reply_id=replies[0].id) == ["ana"]
        # No full-thread reload
        assert ("fetch", "comment_c") not in store.calls

    @pytest.mark.asyncio
    async def test_create_reply_on_missing_comment(self, comment_service: CommentService):
        with pytest.raises(CommentNotFoundError):
            await comment_service.create_reply(999, AUTHOR_ID, "hello")

    @pytest.mark.asyncio
    async def test_update_reply_replaces_mentions(
        self, comment_service: CommentService, store
    ):
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "parent")
        comment_id = snapshot.comments[0].id
        replies = await comment_service.create_reply(comment_id, AUTHOR_ID, "@a @b")
        reply_id = replies[0].id

        replies = await comment_service.update_reply(
            reply_id, comment_id, "@b @c", actor_id=AUTHOR_ID
        )

        assert replies[0].text == "@b @c"
        assert mention_names(store, reply_id=reply_id) == ["b", "c"]

    @pytest.mark.asyncio
    async def test_update_reply_under_wrong_comment(self, comment_service: CommentService):
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "parent")
        comment_id = snapshot.comments[0].id
        replies = await comment_service.create_reply(comment_id, AUTHOR_ID, "hello")

        with pytest.raises(CommentNotFoundError):
            await comment_service.update_reply(replies[0].id, comment_id + 1, "edit")

    @pytest.mark.asyncio
    async def test_delete_reply_removes_mentions_then_reply(
        self, comment_service: CommentService, store
    ):
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "parent")
        comment_id = snapshot.comments[0].id
        replies = await comment_service.create_reply(comment_id, AUTHOR_ID, "@x hi")
        await comment_service.create_reply(comment_id, AUTHOR_ID, "keep me")
        store.calls.clear()

        replies = await comment_service.delete_reply(replies[0].id, comment_id)

        assert [r.text for r in replies] == ["keep me"]
        assert store.rows("user_mention_c") == []
        deletes = [call for call in store.calls if call[0] == "delete"]
        assert deletes == [("delete", "user_mention_c"), ("delete", "reply_c")]

    @pytest.mark.asyncio
    async def test_delete_reply_keeps_reply_when_mentions_fail(
        self, comment_service: CommentService, store
    ):
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "parent")
        comment_id = snapshot.comments[0].id
        replies = await comment_service.create_reply(comment_id, AUTHOR_ID, "@x hi")
        store.fail("delete", "user_mention_c", mode="rows")

        with pytest.raises(OrphanRiskError) as exc_info:
            await comment_service.delete_reply(replies[0].id, comment_id)

        assert exc_info.value.failed_step == f"reply:{replies[0].id}:mentions"
        assert len(store.rows("reply_c")) == 1


class TestUpdateComment:
    """Tests for update_comment."""

    @pytest.mark.asyncio
    async def test_mention_replace_leaves_exactly_new_set(
        self, comment_service: CommentService, store
    ):
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "@a and @b")
        comment_id = snapshot.comments[0].id

        snapshot = await comment_service.update_comment(
            comment_id, "@b and @c", actor_id=AUTHOR_ID
        )

        assert snapshot.comments[0].text == "@b and @c"
        assert mention_names(store, comment_id=comment_id) == ["b", "c"]

    @pytest.mark.asyncio
    async def test_deletion_completes_before_creation(
        self, comment_service: CommentService, store
    ):
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "@a")
        comment_id = snapshot.comments[0].id
        store.calls.clear()

        await comment_service.update_comment(comment_id, "@b")

        mention_writes = [
            op for op, table in store.calls if table == "user_mention_c" and op != "fetch"
        ]
        assert mention_writes == ["delete", "create"]

    @pytest.mark.asyncio
    async def test_failed_creation_after_deletion_leaves_no_mentions(
        self, comment_service: CommentService, store
    ):
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "@a")
        comment_id = snapshot.comments[0].id
        store.fail("create", "user_mention_c")

        with pytest.raises(StoreUnavailableError):
            await comment_service.update_comment(comment_id, "@b")

        assert mention_names(store, comment_id=comment_id) == []
        assert store.rows("comment_c")[0]["comment_text_c"] == "@b"

    @pytest.mark.asyncio
    async def test_failed_deletion_skips_creation(self, comment_service: CommentService, store):
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "@a")
        comment_id = snapshot.comments[0].id
        store.fail("delete", "user_mention_c", mode="call")

        with pytest.raises(PartialWriteFailureError):
            await comment_service.update_comment(comment_id, "@b")

        assert mention_names(store, comment_id=comment_id) == ["a"]

    @pytest.mark.asyncio
    async def test_only_author_may_edit(self, comment_service: CommentService):
        snapshot = await comment_service.create_comment(DEAL_ID, AUTHOR_ID, "mine")

        with pytest.raises(PermissionDeniedError):
            await comment_service.update_comment(
                snapshot.comments[0].id, "hijack", actor_id=OTHER_USER_ID
            )

    @pytest.mark.asyncio
    async def test_missing_comment(self, comment_service: CommentService):
        with pytest.raises(CommentNotFoundError):
            await comment_service.update_comment(404, "text")

    @pytest.mark.asyncio
    async def test_blank_text_rejected_before_store(
        self, comment_service: CommentService, store
    ):
        with pytest.raises(InvalidInputError):
            await comment_service.update_comment(1, "  ")

        assert store.calls == []


class TestDeleteComment:
    """Tests for the cascade delete."""

    async def _seed(self, service: CommentService) -> int:
        """Comment with 2 mentions and 2 replies carrying 3 mentions."""
        snapshot = await service.create_comment(DEAL_ID, AUTHOR_ID, "@a @b")
        comment_id = snapshot.comments[0].id
        await service.create_reply(comment_id, AUTHOR_ID, "@c")
        await service.create_reply(comment_id, OTHER_USER_ID, "@d @e")
        return comment_id

    @pytest.mark.asyncio
    async def test_removes_comment_replies_and_all_mentions(
        self, comment_service: CommentService, store
    ):
        # Arrange
        comment_id = await self._seed(comment_service)
        await comment_service.create_comment(DEAL_ID, OTHER_USER_ID, "survivor @z")
        assert len(store.rows("user_mention_c")) == 6

        # Act
        snapshot = await comment_service.delete_comment(comment_id, actor_id=AUTHOR_ID)

        # Assert
        assert [c.text for c in snapshot.comments] == ["survivor @z"]
        assert store.rows("reply_c") == []
        assert mention_names(store, comment_id=comment_id) == []
        assert len(store.rows("user_mention_c")) == 1

        reloaded = await comment_service.load_thread(DEAL_ID)
        assert comment_id not in [c.id for c in reloaded.comments]
        assert comment_id not in reloaded.replies_by_comment_id

    @pytest.mark.asyncio
    async def test_children_are_deleted_before_parent(
        self, comment_service: CommentService, store
    ):
        comment_id = await self._seed(comment_service)
        store.calls.clear()

        await comment_service.delete_comment(comment_id)

        deletes = [table for op, table in store.calls if op == "delete"]
        assert deletes == [
            "user_mention_c",  # comment mentions
            "user_mention_c",  # first reply mentions
            "reply_c",
            "user_mention_c",  # second reply mentions
            "reply_c",
            "comment_c",
        ]

    @pytest.mark.asyncio
    async def test_reply_delete_failure_aborts_before_parent(
        self, comment_service: CommentService, store
    ):
        # Arrange
        comment_id = await self._seed(comment_service)
        store.fail("delete", "reply_c", mode="rows")

        # Act
        with pytest.raises(OrphanRiskError) as exc_info:
            await comment_service.delete_comment(comment_id)

        # Assert - comment mentions and the first reply's mentions are gone,
        # nothing after the failed step was touched
        error = exc_info.value
        assert error.code == "orphan_risk"
        assert error.failed_step.startswith("reply:")
        assert error.completed_steps[0] == "comment_mentions"
        assert len(store.rows("comment_c")) == 1
        assert len(store.rows("reply_c")) == 2
        assert ("delete", "comment_c") not in store.calls

    @pytest.mark.asyncio
    async def test_mention_delete_outage_aborts_cascade(
        self, comment_service: CommentService, store
    ):
        comment_id = await self._seed(comment_service)
        store.fail("delete", "user_mention_c")

        with pytest.raises(OrphanRiskError) as exc_info:
            await comment_service.delete_comment(comment_id)

        assert exc_info.value.failed_step == "comment_mentions"
        assert exc_info.value.completed_steps == []
        assert isinstance(exc_info.value.__cause__, StoreUnavailableError)
        assert store.rows("reply_c") != []

    @pytest.mark.asyncio
    async def test_malformed_mention_row_aborts_cascade(
        self, comment_service: CommentService, store
    ):
        # Arrange - a mention row pointing at both a comment and a reply
        comment_id = await self._seed(comment_service)
        await store.create(
            "user_mention_c",
            [{"Name": "Mention x", "user_id_c": 1, "comment_id_c": comment_id, "reply_id_c": 1}],
        )

        # Act
        with pytest.raises(OrphanRiskError) as exc_info:
            await comment_service.delete_comment(comment_id)

        # Assert
        assert exc_info.value.failed_step == "comment_mentions"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert len(store.rows("comment_c")) == 1
        assert len(store.rows("reply_c")) == 2

    @pytest.mark.asyncio
    async def test_only_author_may_delete(self, comment_service: CommentService, store):
        comment_id = await self._seed(comment_service)

        with pytest.raises(PermissionDeniedError):
            await comment_service.delete_comment(comment_id, actor_id=OTHER_USER_ID)

        assert len(store.rows("comment_c")) == 1

    @pytest.mark.asyncio
    async def test_missing_comment(self, comment_service: CommentService):
        with pytest.raises(CommentNotFoundError):
            await comment_service.delete_comment(12345)
