"""Query and write-result models for the record store contract.

The models mirror the vendor wire format: field projections, where clauses
with an operator and a list of values, sort orders, and per-row write results
that carry their own success flag next to the call-level one.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Operator(str, Enum):
    """Where-clause operators understood by the store."""

    EQUAL_TO = "EqualTo"
    NOT_EQUAL_TO = "NotEqualTo"
    CONTAINS = "Contains"
    GREATER_THAN = "GreaterThan"
    LESS_THAN = "LessThan"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class WhereClause(BaseModel):
    """Filter on one field; matches when the field equals any of `values`."""

    field: str
    operator: Operator = Operator.EQUAL_TO
    values: list[Any]

    def to_wire(self) -> dict[str, Any]:
        return {
            "FieldName": self.field,
            "Operator": self.operator.value,
            "Values": self.values,
        }


class OrderBy(BaseModel):
    field: str
    direction: SortDirection = SortDirection.ASC

    def to_wire(self) -> dict[str, Any]:
        return {"fieldName": self.field, "sorttype": self.direction.value}


class FetchQuery(BaseModel):
    """Projection, filters and ordering for a fetch call."""

    fields: list[str] = Field(default_factory=list)
    where: list[WhereClause] = Field(default_factory=list)
    order_by: list[OrderBy] = Field(default_factory=list)
    limit: int | None = None

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "fields": [{"field": {"Name": name}} for name in self.fields],
        }
        if self.where:
            payload["where"] = [clause.to_wire() for clause in self.where]
        if self.order_by:
            payload["orderBy"] = [order.to_wire() for order in self.order_by]
        if self.limit is not None:
            payload["pagingInfo"] = {"limit": self.limit, "offset": 0}
        return payload


def equal_to(field: str, value: Any) -> WhereClause:
    """Shorthand for the common single-value equality filter."""
    return WhereClause(field=field, operator=Operator.EQUAL_TO, values=[value])


class FieldError(BaseModel):
    """Validation error reported by the store for one field of one row."""

    model_config = ConfigDict(populate_by_name=True)

    field_label: str | None = Field(default=None, alias="fieldLabel")
    message: str | None = None


class RowResult(BaseModel):
    """Outcome of a write for a single row."""

    success: bool
    data: dict[str, Any] | None = None
    errors: list[FieldError] = Field(default_factory=list)
    message: str | None = None


class WriteResponse(BaseModel):
    """Outcome of a bulk write.

    The call-level `success` and each row's `success` are independent
    signals: a row is committed only when both are true.
    """

    success: bool
    message: str | None = None
    results: list[RowResult] = Field(default_factory=list)

    def committed(self) -> list[RowResult]:
        """Rows that were actually written."""
        if not self.success:
            return []
        return [row for row in self.results if row.success]

    def failed(self) -> list[RowResult]:
        """Rows that were not written, including all rows of a failed call."""
        if not self.success:
            return list(self.results)
        return [row for row in self.results if not row.success]

    @property
    def all_committed(self) -> bool:
        return self.success and all(row.success for row in self.results)
