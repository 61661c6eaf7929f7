"""Acting-user identification."""

from .dependencies import (
    USER_ID_HEADER,
    CurrentUserId,
    OptionalUserId,
    get_current_user_id,
    get_current_user_id_optional,
)


__all__ = [
    "USER_ID_HEADER",
    "CurrentUserId",
    "OptionalUserId",
    "get_current_user_id",
    "get_current_user_id_optional",
]
