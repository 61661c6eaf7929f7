"""Request middleware for context management and logging.

Every request is bound to a request id, the acting user named by the
`X-User-Id` header and, for thread routes, the deal in the path. All log lines
emitted while the request runs carry those values.
"""

import re
import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from dealthread.core.context import clear_context, set_deal_id, set_request_id, set_user_id


logger = structlog.get_logger(__name__)


DEAL_PATH_PATTERN = re.compile(r"^/v1/deals/(\d+)(?:/|$)")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request scope into the logging context.

    The actor bound here is only what the header claims; routes that need an
    authenticated user still go through `dealthread.auth`.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    USER_ID_HEADER = "X-User-Id"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or ["/health"])

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request_id = self._bind_scope(request)
        should_log = self.log_requests and not request.url.path.startswith(
            self.exclude_paths
        )

        if should_log:
            logger.info("request_started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(started),
            )
            raise
        else:
            if should_log:
                self._log_completed(request, response, started)
            response.headers[self.REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()

    def _bind_scope(self, request: Request) -> str:
        """Set request id, claimed actor and deal scope; return the request id."""
        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        request.state.request_id = request_id

        claimed_user = (request.headers.get(self.USER_ID_HEADER) or "").strip()
        if claimed_user.isdigit():
            set_user_id(claimed_user)

        match = DEAL_PATH_PATTERN.match(request.url.path)
        if match:
            set_deal_id(match.group(1))
        return request_id

    @staticmethod
    def _log_completed(request: Request, response: Response, started: float) -> None:
        # 4xx is the caller's problem, 5xx is ours
        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
        )


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def set_user_context(user_id: int | str | None) -> None:
    """Replace the claimed actor with the verified one."""
    set_user_id(user_id)


__all__ = [
    "RequestContextMiddleware",
    "set_user_context",
]
