"""Tests for the HTTP record store client (wire format and error mapping)."""

import json

import httpx
import pytest

from dealthread.config.settings import Settings
from dealthread.store import (
    FetchQuery,
    HttpRecordStore,
    OrderBy,
    SortDirection,
    StoreUnavailableError,
    equal_to,
)


def make_store(handler) -> tuple[HttpRecordStore, list[httpx.Request]]:
    """Store over a MockTransport; returns the captured requests too."""
    seen: list[httpx.Request] = []

    def capture(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    store = HttpRecordStore(
        base_url="https://records.example.test/api/",
        project_id="proj-1",
        public_key="pk-1",
        transport=httpx.MockTransport(capture),
    )
    return store, seen


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_sends_vendor_query_shape(self) -> None:
        store, seen = make_store(
            lambda _: httpx.Response(200, json={"success": True, "data": [{"Id": 1}]})
        )

        rows = await store.fetch(
            "comment_c",
            FetchQuery(
                fields=["Id", "comment_text_c"],
                where=[equal_to("deal_id_c", 9)],
                order_by=[OrderBy(field="CreatedOn", direction=SortDirection.DESC)],
            ),
        )

        assert rows == [{"Id": 1}]
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/tables/comment_c/records/query"
        assert request.headers["X-Project-Id"] == "proj-1"
        assert request.headers["X-Public-Key"] == "pk-1"
        assert json.loads(request.content) == {
            "fields": [{"field": {"Name": "Id"}}, {"field": {"Name": "comment_text_c"}}],
            "where": [{"FieldName": "deal_id_c", "Operator": "EqualTo", "Values": [9]}],
            "orderBy": [{"fieldName": "CreatedOn", "sorttype": "DESC"}],
        }
        await store.close()

    @pytest.mark.asyncio
    async def test_rejected_fetch_raises(self) -> None:
        store, _ = make_store(
            lambda _: httpx.Response(200, json={"success": False, "message": "bad field"})
        )

        with pytest.raises(StoreUnavailableError, match="bad field"):
            await store.fetch("comment_c", FetchQuery())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 401, 403, 404, 429, 500, 503])
    async def test_transport_level_rejections(self, status_code: int) -> None:
        store, _ = make_store(lambda _: httpx.Response(status_code, text="nope"))

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.fetch("comment_c", FetchQuery())

        assert exc_info.value.status_code == status_code
        assert exc_info.value.code == "store_unavailable"

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        store, _ = make_store(boom)

        with pytest.raises(StoreUnavailableError):
            await store.fetch("comment_c", FetchQuery())

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        store, _ = make_store(slow)

        with pytest.raises(StoreUnavailableError, match="timeout"):
            await store.fetch("comment_c", FetchQuery())


class TestGetById:
    @pytest.mark.asyncio
    async def test_returns_row(self) -> None:
        store, seen = make_store(
            lambda _: httpx.Response(200, json={"success": True, "data": {"Id": 4}})
        )

        row = await store.get_by_id("reply_c", 4, ["Id", "reply_text_c"])

        assert row == {"Id": 4}
        assert seen[0].url.path == "/api/tables/reply_c/records/4"
        assert seen[0].url.params["fields"] == "Id,reply_text_c"

    @pytest.mark.asyncio
    async def test_missing_row_is_none(self) -> None:
        store, _ = make_store(lambda _: httpx.Response(404))

        assert await store.get_by_id("reply_c", 4) is None


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_parses_row_results(self) -> None:
        body = {
            "success": True,
            "results": [
                {"success": True, "data": {"Id": 1}},
                {
                    "success": False,
                    "errors": [{"fieldLabel": "Name", "message": "required"}],
                    "message": "row failed",
                },
            ],
        }
        store, seen = make_store(lambda _: httpx.Response(200, json=body))

        response = await store.create("user_mention_c", [{"Name": "a"}, {}])

        assert json.loads(seen[0].content) == {"records": [{"Name": "a"}, {}]}
        assert len(response.committed()) == 1
        failed = response.failed()[0]
        assert failed.errors[0].field_label == "Name"
        assert failed.message == "row failed"

    @pytest.mark.asyncio
    async def test_outer_failure_commits_nothing(self) -> None:
        body = {"success": False, "message": "quota", "results": [{"success": True}]}
        store, _ = make_store(lambda _: httpx.Response(200, json=body))

        response = await store.update("comment_c", [{"Id": 1, "comment_text_c": "x"}])

        assert response.committed() == []
        assert response.all_committed is False

    @pytest.mark.asyncio
    async def test_delete_sends_record_ids(self) -> None:
        store, seen = make_store(
            lambda _: httpx.Response(200, json={"success": True, "results": []})
        )

        await store.delete("reaction_c", [3, 4])

        assert seen[0].method == "DELETE"
        assert json.loads(seen[0].content) == {"RecordIds": [3, 4]}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 404, 409, 429])
    async def test_client_error_with_json_body(self, status_code: int) -> None:
        store, _ = make_store(
            lambda _: httpx.Response(status_code, json={"message": "rate limited"})
        )

        with pytest.raises(StoreUnavailableError) as exc_info:
            await store.delete("comment_c", [1])

        assert exc_info.value.status_code == status_code

    @pytest.mark.asyncio
    async def test_write_body_without_success_flag(self) -> None:
        store, _ = make_store(lambda _: httpx.Response(200, json={"message": "odd"}))

        with pytest.raises(StoreUnavailableError, match="write result"):
            await store.update("comment_c", [{"Id": 1}])

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        store, _ = make_store(lambda _: httpx.Response(200, text="<html>"))

        with pytest.raises(StoreUnavailableError):
            await store.create("comment_c", [{}])


class TestFromSettings:
    def test_requires_configuration(self) -> None:
        with pytest.raises(StoreUnavailableError):
            HttpRecordStore.from_settings(Settings(store_base_url=None, store_project_id=None))

    def test_builds_client(self) -> None:
        settings = Settings(store_base_url="https://records.example.test", store_project_id="p")

        assert isinstance(HttpRecordStore.from_settings(settings), HttpRecordStore)
