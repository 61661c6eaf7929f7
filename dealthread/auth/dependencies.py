"""FastAPI dependencies for the acting user.

Authentication is handled upstream by the CRM host; it forwards the signed-in
user's record ID in the `X-User-Id` header. These dependencies read it and
put it in the logging context.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from dealthread.core.middleware import set_user_context


USER_ID_HEADER = "X-User-Id"


def get_user_id_from_header(request: Request) -> int | None:
    """Extract the acting user ID from the request headers.

    Returns:
        User ID or None if the header is missing or not a positive integer
    """
    raw = request.headers.get(USER_ID_HEADER, "").strip()
    if not raw.isdigit() or int(raw) <= 0:
        return None
    return int(raw)


async def get_current_user_id(
    user_id: Annotated[int | None, Depends(get_user_id_from_header)],
) -> int:
    """Get the acting user ID.

    Raises:
        HTTPException(401): If the header is missing or malformed
    """
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must be logged in",
        )
    set_user_context(user_id)
    return user_id


async def get_current_user_id_optional(
    user_id: Annotated[int | None, Depends(get_user_id_from_header)],
) -> int | None:
    """Get the acting user ID if present, None otherwise."""
    if user_id is not None:
        set_user_context(user_id)
    return user_id


CurrentUserId = Annotated[int, Depends(get_current_user_id)]
OptionalUserId = Annotated[int | None, Depends(get_current_user_id_optional)]
