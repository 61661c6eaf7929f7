"""Per-table CRUD wrappers over the record store.

Each repository translates one table's intents into store calls and applies
the write-result rules:
- single-row writes count only if the row itself is committed;
- bulk creates and updates succeed if at least one row is committed;
- bulk deletes (used by cascades) require every row to be committed.
Rows that fail are logged with their field errors. Transport failures
propagate unchanged as StoreUnavailableError.
"""

from typing import Any

import structlog

from dealthread.store import (
    FetchQuery,
    OrderBy,
    RecordStore,
    SortDirection,
    WriteResponse,
    equal_to,
)

from .exceptions import PartialWriteFailureError
from .models import (
    COMMENT_FIELDS,
    MENTION_FIELDS,
    REACTION_FIELDS,
    REPLY_FIELDS,
    Comment,
    Mention,
    Reaction,
    ReactionType,
    Reply,
)


logger = structlog.get_logger(__name__)


CREATED_ASC = OrderBy(field="CreatedOn", direction=SortDirection.ASC)
CREATED_DESC = OrderBy(field="CreatedOn", direction=SortDirection.DESC)


class TableRepository:
    """Shared write-result handling for one table."""

    entity = "record"

    def __init__(self, store: RecordStore, table: str) -> None:
        self.store = store
        self.table = table

    def _log_failed_rows(self, operation: str, response: WriteResponse) -> None:
        failed = response.failed()
        if not failed:
            return
        logger.error(
            "store_rows_failed",
            table=self.table,
            operation=operation,
            failed_count=len(failed),
            call_success=response.success,
            call_message=response.message,
        )
        for row in failed:
            for error in row.errors:
                logger.error(
                    "store_field_error",
                    table=self.table,
                    field=error.field_label,
                    message=error.message,
                )
            if row.message:
                logger.error("store_row_error", table=self.table, message=row.message)

    def _failure(self, operation: str, response: WriteResponse) -> PartialWriteFailureError:
        return PartialWriteFailureError(
            f"Failed to {operation} {self.entity}",
            table=self.table,
            failed_rows=[row.model_dump() for row in response.failed()],
        )

    async def _create_one(self, record: dict[str, Any]) -> dict[str, Any]:
        response = await self.store.create(self.table, [record])
        self._log_failed_rows("create", response)
        committed = response.committed()
        if not committed or committed[0].data is None:
            raise self._failure("create", response)
        return committed[0].data

    async def _create_many(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if not records:
            return []
        response = await self.store.create(self.table, records)
        self._log_failed_rows("create", response)
        committed = [row.data for row in response.committed() if row.data is not None]
        if not committed:
            raise self._failure("create", response)
        return committed

    async def _update_one(self, record: dict[str, Any]) -> dict[str, Any]:
        response = await self.store.update(self.table, [record])
        self._log_failed_rows("update", response)
        committed = response.committed()
        if not committed:
            raise self._failure("update", response)
        return committed[0].data or {}

    async def _update_many(self, records: list[dict[str, Any]]) -> int:
        """Bulk update; returns how many rows were committed.

        Rows that fail are logged; a batch with no committed row raises.
        """
        if not records:
            return 0
        response = await self.store.update(self.table, records)
        self._log_failed_rows("update", response)
        committed = len(response.committed())
        if not committed:
            raise self._failure("update", response)
        return committed

    async def _delete_all(self, ids: list[int]) -> int:
        if not ids:
            return 0
        response = await self.store.delete(self.table, ids)
        self._log_failed_rows("delete", response)
        committed = response.committed()
        if len(committed) < len(ids):
            raise PartialWriteFailureError(
                f"Deleted {len(committed)} of {len(ids)} {self.entity} rows",
                table=self.table,
                failed_rows=[row.model_dump() for row in response.failed()],
            )
        return len(committed)

    async def _fetch(self, query: FetchQuery) -> list[dict[str, Any]]:
        return await self.store.fetch(self.table, query)


class CommentRepository(TableRepository):
    entity = "comment"

    async def list_by_deal(self, deal_id: int) -> list[Comment]:
        rows = await self._fetch(
            FetchQuery(
                fields=COMMENT_FIELDS,
                where=[equal_to("deal_id_c", int(deal_id))],
                order_by=[CREATED_DESC],
            )
        )
        return [Comment.from_record(row) for row in rows]

    async def get(self, comment_id: int) -> Comment | None:
        row = await self.store.get_by_id(self.table, int(comment_id), COMMENT_FIELDS)
        return Comment.from_record(row) if row else None

    async def create(self, comment: Comment) -> Comment:
        return Comment.from_record(await self._create_one(comment.to_record()))

    async def update_text(self, comment_id: int, text: str) -> None:
        await self._update_one({"Id": int(comment_id), "comment_text_c": text})

    async def delete(self, comment_id: int) -> None:
        await self._delete_all([int(comment_id)])


class ReplyRepository(TableRepository):
    entity = "reply"

    async def list_by_comment(self, comment_id: int) -> list[Reply]:
        rows = await self._fetch(
            FetchQuery(
                fields=REPLY_FIELDS,
                where=[equal_to("comment_id_c", int(comment_id))],
                order_by=[CREATED_ASC],
            )
        )
        return [Reply.from_record(row) for row in rows]

    async def get(self, reply_id: int) -> Reply | None:
        row = await self.store.get_by_id(self.table, int(reply_id), REPLY_FIELDS)
        return Reply.from_record(row) if row else None

    async def create(self, reply: Reply) -> Reply:
        return Reply.from_record(await self._create_one(reply.to_record()))

    async def update_text(self, reply_id: int, text: str) -> None:
        await self._update_one({"Id": int(reply_id), "reply_text_c": text})

    async def delete(self, reply_id: int) -> None:
        await self._delete_all([int(reply_id)])


class MentionRepository(TableRepository):
    entity = "mention"

    async def _list(self, field: str, owner_id: int) -> list[Mention]:
        rows = await self._fetch(
            FetchQuery(
                fields=MENTION_FIELDS,
                where=[equal_to(field, int(owner_id))],
                order_by=[CREATED_DESC],
            )
        )
        return [Mention.from_record(row) for row in rows]

    async def list_by_comment(self, comment_id: int) -> list[Mention]:
        return await self._list("comment_id_c", comment_id)

    async def list_by_reply(self, reply_id: int) -> list[Mention]:
        return await self._list("reply_id_c", reply_id)

    async def create_bulk(self, mentions: list[Mention]) -> list[Mention]:
        rows = await self._create_many([mention.to_record() for mention in mentions])
        return [Mention.from_record(row) for row in rows]

    async def delete_by_comment(self, comment_id: int) -> int:
        mentions = await self.list_by_comment(comment_id)
        return await self._delete_all([m.id for m in mentions if m.id is not None])

    async def delete_by_reply(self, reply_id: int) -> int:
        mentions = await self.list_by_reply(reply_id)
        return await self._delete_all([m.id for m in mentions if m.id is not None])


class ReactionRepository(TableRepository):
    entity = "reaction"

    def _parse(self, rows: list[dict[str, Any]]) -> list[Reaction]:
        """Rows with a missing or unknown reaction type are left out of counts."""
        reactions = []
        for row in rows:
            try:
                reactions.append(Reaction.from_record(row))
            except ValueError as e:
                logger.warning(
                    "reaction_row_skipped",
                    table=self.table,
                    record_id=row.get("Id"),
                    reaction_type=row.get("reaction_type_c"),
                    error=str(e),
                )
        return reactions

    async def list_by_comment(self, comment_id: int) -> list[Reaction]:
        rows = await self._fetch(
            FetchQuery(
                fields=REACTION_FIELDS,
                where=[equal_to("comment_id_c", int(comment_id))],
                order_by=[CREATED_DESC],
            )
        )
        return self._parse(rows)

    async def list_for_user(self, comment_id: int, user_id: int) -> list[Reaction]:
        """Reactions by one user on one comment, oldest first."""
        rows = await self._fetch(
            FetchQuery(
                fields=REACTION_FIELDS,
                where=[
                    equal_to("comment_id_c", int(comment_id)),
                    equal_to("user_id_c", int(user_id)),
                ],
                order_by=[CREATED_ASC],
            )
        )
        return self._parse(rows)

    async def create(self, reaction: Reaction) -> Reaction:
        return Reaction.from_record(await self._create_one(reaction.to_record()))

    async def update_type(self, reaction_id: int, reaction_type: ReactionType) -> None:
        await self._update_one(
            {
                "Id": int(reaction_id),
                "Name_c": f"{reaction_type.value} reaction",
                "reaction_type_c": reaction_type.value,
            }
        )

    async def delete(self, reaction_id: int) -> None:
        await self._delete_all([int(reaction_id)])

    async def delete_many(self, reaction_ids: list[int]) -> int:
        return await self._delete_all([int(i) for i in reaction_ids])
