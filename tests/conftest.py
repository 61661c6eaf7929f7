"""Shared fixtures for the test suite."""

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from dealthread.comments.reactions import ReactionService
from dealthread.comments.service import CommentService
from dealthread.config.settings import Settings
from dealthread.notifications.service import NotificationService
from dealthread.store import (
    FetchQuery,
    FieldError,
    InMemoryRecordStore,
    RowResult,
    StoreUnavailableError,
    WriteResponse,
)


class FlakyStore(InMemoryRecordStore):
    """In-memory store that fails chosen (operation, table) pairs on demand.

    Modes:
    - "raise": the call itself fails with StoreUnavailableError
    - "rows": the call succeeds but every row is rejected
    - "call": the call reports success=False
    """

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], str] = {}
        self.fail_when: dict[tuple[str, str], Any] = {}

    def fail(self, operation: str, table: str, mode: str = "raise", when: Any = None) -> None:
        self.failures[(operation, table)] = mode
        if when is not None:
            self.fail_when[(operation, table)] = when

    def heal(self) -> None:
        self.failures.clear()
        self.fail_when.clear()

    def _failure(self, operation: str, table: str, count: int, arg: Any) -> WriteResponse | None:
        self.calls.append((operation, table))
        mode = self.failures.get((operation, table))
        if mode is None:
            return None
        when = self.fail_when.get((operation, table))
        if when is not None and not when(arg):
            return None
        if mode == "raise":
            msg = f"{operation} on {table} failed"
            raise StoreUnavailableError(msg, table=table)
        if mode == "call":
            return WriteResponse(success=False, message="call rejected", results=[])
        return WriteResponse(
            success=True,
            results=[
                RowResult(
                    success=False,
                    message="row rejected",
                    errors=[FieldError(field_label="Name", message="invalid")],
                )
                for _ in range(count)
            ],
        )

    async def fetch(self, table: str, query: FetchQuery) -> list[dict[str, Any]]:
        self._failure("fetch", table, 0, query)
        return await super().fetch(table, query)

    async def create(self, table: str, records: list[dict[str, Any]]) -> WriteResponse:
        return self._failure("create", table, len(records), records) or await super().create(
            table, records
        )

    async def update(self, table: str, records: list[dict[str, Any]]) -> WriteResponse:
        return self._failure("update", table, len(records), records) or await super().update(
            table, records
        )

    async def delete(self, table: str, ids: list[int]) -> WriteResponse:
        return self._failure("delete", table, len(ids), ids) or await super().delete(
            table, ids
        )


@pytest.fixture
def settings() -> Settings:
    """Test settings with default table names and no user directory."""
    return Settings(
        environment="testing",
        user_directory_table=None,
        mention_fallback_to_actor=True,
        notifications_enabled=True,
    )


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def comment_service(store: FlakyStore, settings: Settings) -> CommentService:
    return CommentService(store, settings=settings)


@pytest.fixture
def reaction_service(store: FlakyStore, settings: Settings) -> ReactionService:
    return ReactionService(store, settings=settings)


@pytest.fixture
def notification_service(store: FlakyStore, settings: Settings) -> NotificationService:
    return NotificationService(store, settings=settings)


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client running the app lifespan over an in-memory store."""
    from dealthread.main import app

    with TestClient(app) as test_client:
        yield test_client
