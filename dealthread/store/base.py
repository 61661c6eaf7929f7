"""Record store contract.

The store is an opaque table backend indexed by an auto-increment integer
`Id`. Every table exposes the same five calls; rows come back as plain
dictionaries keyed by vendor field names.
"""

from typing import Any, Protocol

from .schemas import FetchQuery, WriteResponse


AUDIT_FIELDS = ("CreatedOn", "CreatedBy", "ModifiedOn", "ModifiedBy")


class RecordStore(Protocol):
    """Async CRUD contract shared by every table."""

    async def fetch(self, table: str, query: FetchQuery) -> list[dict[str, Any]]:
        """Return rows matching `query`, projected and ordered."""
        ...

    async def get_by_id(
        self,
        table: str,
        record_id: int,
        fields: list[str] | None = None,
    ) -> dict[str, Any] | None:
        """Return a single row, or None when it does not exist."""
        ...

    async def create(self, table: str, records: list[dict[str, Any]]) -> WriteResponse:
        ...

    async def update(self, table: str, records: list[dict[str, Any]]) -> WriteResponse:
        """Update rows; each record must carry its `Id`."""
        ...

    async def delete(self, table: str, ids: list[int]) -> WriteResponse:
        ...

    async def close(self) -> None:
        ...
