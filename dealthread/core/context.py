"""Request context management using contextvars.

Each request gets a unique ID plus the acting user and, when the request is
scoped to one, the deal whose thread is being read or changed. Log events pick
these values up without threading them through every call.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
deal_id_var: ContextVar[str | None] = ContextVar("deal_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def set_user_id(user_id: str | int | None) -> None:
    """Set the acting user ID for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_deal_id() -> str | None:
    """Get the deal the current request is scoped to."""
    return deal_id_var.get()


def set_deal_id(deal_id: str | int | None) -> None:
    """Set the deal the current request is scoped to."""
    deal_id_var.set(str(deal_id) if deal_id is not None else None)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    deal_id = get_deal_id()
    if deal_id:
        context["deal_id"] = deal_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request to prevent context leakage between
    requests.
    """
    request_id_var.set("")
    user_id_var.set(None)
    deal_id_var.set(None)


class RequestContext:
    """Context manager for request scope outside of HTTP handling.

    Usage:
        with RequestContext(user_id=7, deal_id=42):
            log.info("rebuilding_thread")  # includes request_id, user_id, deal_id
    """

    def __init__(
        self,
        request_id: str | None = None,
        user_id: str | int | None = None,
        deal_id: str | int | None = None,
    ) -> None:
        self.request_id = request_id
        self.user_id = user_id
        self.deal_id = deal_id
        self._tokens: list[tuple[ContextVar[Any], Any]] = []

    def __enter__(self) -> "RequestContext":
        """Enter context and set variables."""
        self._tokens.append(
            (request_id_var, request_id_var.set(self.request_id or generate_request_id()))
        )
        if self.user_id is not None:
            self._tokens.append((user_id_var, user_id_var.set(str(self.user_id))))
        if self.deal_id is not None:
            self._tokens.append((deal_id_var, deal_id_var.set(str(self.deal_id))))
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
