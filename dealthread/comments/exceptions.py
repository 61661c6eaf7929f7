"""Error taxonomy of the comment aggregate.

Every error carries a human message and a machine `code`; the HTTP layer maps
codes to status codes. Store transport failures keep their own type
(`dealthread.store.StoreUnavailableError`) and are not wrapped.
"""

from typing import Any


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidInputError(CommentError):
    """Rejected before any store call (blank text, missing identity)."""

    def __init__(self, message: str = "Invalid input", code: str = "invalid_input"):
        super().__init__(message, code)


class UnauthenticatedError(InvalidInputError):
    """No acting user identity was supplied."""

    def __init__(self, message: str = "You must be logged in"):
        super().__init__(message, "unauthenticated")


class CommentNotFoundError(CommentError):
    """Comment or reply not found."""

    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class PermissionDeniedError(CommentError):
    """Only the author may edit or delete their comment or reply."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, "permission_denied")


class PartialWriteFailureError(CommentError):
    """The store call succeeded but the rows this operation needed were not written."""

    def __init__(
        self,
        message: str,
        table: str | None = None,
        failed_rows: list[dict[str, Any]] | None = None,
    ):
        self.table = table
        self.failed_rows = failed_rows or []
        super().__init__(message, "partial_write_failure")


class OrphanRiskError(CommentError):
    """A cascade step failed; later steps (and the parent delete) were not run."""

    def __init__(
        self,
        message: str,
        failed_step: str,
        completed_steps: list[str] | None = None,
    ):
        self.failed_step = failed_step
        self.completed_steps = completed_steps or []
        super().__init__(message, "orphan_risk")
