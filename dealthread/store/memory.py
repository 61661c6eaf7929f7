"""In-process record store.

Implements the full store contract over plain dictionaries: per-table
auto-increment ids, audit fields, projections, filters and ordering. Used for
local development (no hosted project configured) and in tests.
"""

import copy
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any

import structlog

from .schemas import FetchQuery, Operator, RowResult, SortDirection, WhereClause, WriteResponse


logger = structlog.get_logger(__name__)


def _scalar(value: Any) -> Any:
    """Lookup fields may be stored as {Id, Name}; compare on the Id."""
    if isinstance(value, dict) and "Id" in value:
        return value["Id"]
    return value


def _matches(row: dict[str, Any], clause: WhereClause) -> bool:
    value = _scalar(row.get(clause.field))
    values = [_scalar(v) for v in clause.values]

    if clause.operator is Operator.EQUAL_TO:
        return value in values
    if clause.operator is Operator.NOT_EQUAL_TO:
        return value not in values
    if clause.operator is Operator.CONTAINS:
        return isinstance(value, str) and any(str(v) in value for v in values)
    if value is None or not values:
        return False
    if clause.operator is Operator.GREATER_THAN:
        return value > values[0]
    if clause.operator is Operator.LESS_THAN:
        return value < values[0]
    return False


class InMemoryRecordStore:
    """Dictionary-backed record store."""

    def __init__(self, actor_id: int | None = None) -> None:
        self.actor_id = actor_id
        self._tables: dict[str, dict[int, dict[str, Any]]] = defaultdict(dict)
        self._next_id: dict[str, int] = defaultdict(lambda: 1)

    def rows(self, table: str) -> list[dict[str, Any]]:
        """Snapshot of every row in `table`, in id order."""
        return [copy.deepcopy(row) for _, row in sorted(self._tables[table].items())]

    @staticmethod
    def _now() -> str:
        return datetime.now(UTC).isoformat(timespec="microseconds")

    @staticmethod
    def _project(row: dict[str, Any], fields: list[str] | None) -> dict[str, Any]:
        if not fields:
            return copy.deepcopy(row)
        projected = {name: copy.deepcopy(row.get(name)) for name in fields}
        projected["Id"] = row["Id"]
        return projected

    async def fetch(self, table: str, query: FetchQuery) -> list[dict[str, Any]]:
        rows = [
            row
            for row in self._tables[table].values()
            if all(_matches(row, clause) for clause in query.where)
        ]

        # Id breaks ties in the direction of the primary sort key
        primary_desc = bool(query.order_by) and (
            query.order_by[0].direction is SortDirection.DESC
        )
        rows.sort(key=lambda r: r["Id"], reverse=primary_desc)
        for order in reversed(query.order_by):
            rows.sort(
                key=lambda r, f=order.field: (
                    _scalar(r.get(f)) is not None,
                    _scalar(r.get(f)),
                ),
                reverse=order.direction is SortDirection.DESC,
            )

        if query.limit is not None:
            rows = rows[: query.limit]
        return [self._project(row, query.fields) for row in rows]

    async def get_by_id(
        self,
        table: str,
        record_id: int,
        fields: list[str] | None = None,
    ) -> dict[str, Any] | None:
        row = self._tables[table].get(int(record_id))
        return self._project(row, fields) if row is not None else None

    async def create(self, table: str, records: list[dict[str, Any]]) -> WriteResponse:
        results = []
        for record in records:
            record_id = self._next_id[table]
            self._next_id[table] += 1
            now = self._now()
            row = {
                **copy.deepcopy(record),
                "Id": record_id,
                "CreatedOn": now,
                "CreatedBy": self.actor_id,
                "ModifiedOn": now,
                "ModifiedBy": self.actor_id,
            }
            self._tables[table][record_id] = row
            results.append(RowResult(success=True, data=copy.deepcopy(row)))

        logger.debug("memory_store_created", table=table, count=len(results))
        return WriteResponse(success=True, results=results)

    async def update(self, table: str, records: list[dict[str, Any]]) -> WriteResponse:
        results = []
        for record in records:
            record_id = record.get("Id")
            row = self._tables[table].get(int(record_id)) if record_id is not None else None
            if row is None:
                results.append(
                    RowResult(success=False, message=f"Record {record_id} not found")
                )
                continue
            row.update({k: copy.deepcopy(v) for k, v in record.items() if k != "Id"})
            row["ModifiedOn"] = self._now()
            row["ModifiedBy"] = self.actor_id
            results.append(RowResult(success=True, data=copy.deepcopy(row)))

        return WriteResponse(success=True, results=results)

    async def delete(self, table: str, ids: list[int]) -> WriteResponse:
        results = []
        for record_id in ids:
            row = self._tables[table].pop(int(record_id), None)
            if row is None:
                results.append(
                    RowResult(success=False, message=f"Record {record_id} not found")
                )
            else:
                results.append(RowResult(success=True, data={"Id": row["Id"]}))

        return WriteResponse(success=True, results=results)

    async def close(self) -> None:
        return None
