"""FastAPI dependencies for the comment system.

Services live on `app.state`, wired by the application lifespan. A missing
service means the app is still starting (or was built without one) and
answers 503.
"""

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status

from dealthread.store import StoreError

from .exceptions import CommentError
from .reactions import ReactionService
from .service import CommentService


ERROR_STATUS = {
    "invalid_input": status.HTTP_400_BAD_REQUEST,
    "unauthenticated": status.HTTP_401_UNAUTHORIZED,
    "permission_denied": status.HTTP_403_FORBIDDEN,
    "comment_not_found": status.HTTP_404_NOT_FOUND,
    "notification_not_found": status.HTTP_404_NOT_FOUND,
    "orphan_risk": status.HTTP_409_CONFLICT,
    "partial_write_failure": status.HTTP_502_BAD_GATEWAY,
    "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def service_from_state(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        label = name.replace("_", " ").capitalize()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not available",
        )
    return service


async def get_comment_service(request: Request) -> CommentService:
    return service_from_state(request, "comment_service")


async def get_reaction_service(request: Request) -> ReactionService:
    return service_from_state(request, "reaction_service")


CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
ReactionServiceDep = Annotated[ReactionService, Depends(get_reaction_service)]


def handle_comment_error(error: CommentError | StoreError) -> HTTPException:
    """Map an error's machine code to an HTTPException; unknown codes are 500."""
    return HTTPException(
        status_code=ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
