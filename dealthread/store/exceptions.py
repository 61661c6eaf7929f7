"""Record store errors."""


class StoreError(Exception):
    """Base record store error."""

    def __init__(self, message: str, code: str = "store_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class StoreUnavailableError(StoreError):
    """The store call itself failed (transport, auth, or a rejected read).

    Never retried automatically; surfaced to the caller as a failed operation.
    """

    def __init__(
        self,
        message: str = "Record store unavailable",
        table: str | None = None,
        status_code: int | None = None,
    ):
        self.table = table
        self.status_code = status_code
        super().__init__(message, "store_unavailable")
