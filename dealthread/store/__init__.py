"""Record store access.

The external backend-as-a-service is consumed through one contract
(`RecordStore`) with two implementations: the hosted REST API and an
in-process store for development and tests.
"""

from .base import AUDIT_FIELDS, RecordStore
from .exceptions import StoreError, StoreUnavailableError
from .http import HttpRecordStore
from .memory import InMemoryRecordStore
from .schemas import (
    FetchQuery,
    FieldError,
    Operator,
    OrderBy,
    RowResult,
    SortDirection,
    WhereClause,
    WriteResponse,
    equal_to,
)


__all__ = [
    "AUDIT_FIELDS",
    "FetchQuery",
    "FieldError",
    "HttpRecordStore",
    "InMemoryRecordStore",
    "Operator",
    "OrderBy",
    "RecordStore",
    "RowResult",
    "SortDirection",
    "StoreError",
    "StoreUnavailableError",
    "WhereClause",
    "WriteResponse",
    "equal_to",
]
