"""HTTP client for the hosted record store.

Talks to the vendor's REST table API with httpx. Request bodies use the
vendor wire shape (`fields`/`where`/`orderBy`, `records`, `RecordIds`) so the
rest of the application only deals with `FetchQuery` and `WriteResponse`.
"""

from typing import TYPE_CHECKING, Any

import httpx
import structlog
from pydantic import ValidationError

from .exceptions import StoreUnavailableError
from .schemas import FetchQuery, WriteResponse


if TYPE_CHECKING:
    from dealthread.config.settings import Settings


logger = structlog.get_logger(__name__)


class HttpRecordStore:
    """Record store backed by the vendor REST API."""

    PROJECT_HEADER = "X-Project-Id"
    PUBLIC_KEY_HEADER = "X-Public-Key"

    def __init__(
        self,
        base_url: str,
        project_id: str,
        public_key: str | None = None,
        timeout: float = 10.0,
        max_connections: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/json",
            self.PROJECT_HEADER: project_id,
        }
        if public_key:
            headers[self.PUBLIC_KEY_HEADER] = public_key

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            limits=httpx.Limits(max_connections=max_connections),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "HttpRecordStore":
        if not settings.store_configured:
            msg = "Record store is not configured (store_base_url, store_project_id)"
            raise StoreUnavailableError(msg)
        return cls(
            base_url=settings.store_base_url or "",
            project_id=settings.store_project_id or "",
            public_key=settings.store_public_key,
            timeout=settings.store_timeout,
            max_connections=settings.store_max_connections,
        )

    async def _request(
        self,
        method: str,
        table: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> httpx.Response:
        url = f"/tables/{table}/records{path}"
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.TimeoutException as e:
            logger.error("store_request_timeout", table=table, method=method, error=str(e))
            raise StoreUnavailableError(f"Record store timeout on {table}", table=table) from e
        except httpx.RequestError as e:
            logger.error("store_request_error", table=table, method=method, error=str(e))
            raise StoreUnavailableError(
                f"Record store request error on {table}: {e}", table=table
            ) from e

        logger.debug(
            "store_request",
            table=table,
            method=method,
            path=url,
            status_code=response.status_code,
        )

        if allow_not_found and response.status_code == httpx.codes.NOT_FOUND:
            return response
        if not response.is_success:
            logger.error(
                "store_request_rejected",
                table=table,
                method=method,
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise StoreUnavailableError(
                f"Record store rejected {method} on {table}: {response.status_code}",
                table=table,
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _body(response: httpx.Response, table: str) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise StoreUnavailableError(
                f"Record store returned a non-JSON body for {table}",
                table=table,
                status_code=response.status_code,
            ) from e
        if not isinstance(body, dict):
            raise StoreUnavailableError(
                f"Unexpected record store payload for {table}", table=table
            )
        return body

    async def fetch(self, table: str, query: FetchQuery) -> list[dict[str, Any]]:
        response = await self._request("POST", table, "/query", json=query.to_wire())
        body = self._body(response, table)
        if not body.get("success"):
            logger.error("store_fetch_failed", table=table, message=body.get("message"))
            raise StoreUnavailableError(
                body.get("message") or f"Fetch on {table} was rejected",
                table=table,
                status_code=response.status_code,
            )
        return list(body.get("data") or [])

    async def get_by_id(
        self,
        table: str,
        record_id: int,
        fields: list[str] | None = None,
    ) -> dict[str, Any] | None:
        params = {"fields": ",".join(fields)} if fields else None
        response = await self._request(
            "GET", table, f"/{int(record_id)}", params=params, allow_not_found=True
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        body = self._body(response, table)
        if not body.get("success"):
            logger.warning(
                "store_record_not_found",
                table=table,
                record_id=record_id,
                message=body.get("message"),
            )
            return None
        return body.get("data")

    async def _write(
        self,
        method: str,
        table: str,
        payload: dict[str, Any],
    ) -> WriteResponse:
        response = await self._request(method, table, "", json=payload)
        try:
            result = WriteResponse.model_validate(self._body(response, table))
        except ValidationError as e:
            raise StoreUnavailableError(
                f"Unexpected record store write result for {table}",
                table=table,
                status_code=response.status_code,
            ) from e
        if not result.success:
            logger.error(
                "store_write_rejected",
                table=table,
                method=method,
                message=result.message,
            )
        return result

    async def create(self, table: str, records: list[dict[str, Any]]) -> WriteResponse:
        return await self._write("POST", table, {"records": records})

    async def update(self, table: str, records: list[dict[str, Any]]) -> WriteResponse:
        return await self._write("PUT", table, {"records": records})

    async def delete(self, table: str, ids: list[int]) -> WriteResponse:
        return await self._write("DELETE", table, {"RecordIds": [int(i) for i in ids]})

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("store_client_closed")
