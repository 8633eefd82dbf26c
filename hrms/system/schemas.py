"""System / database introspection schemas."""


from typing import Any, Optional

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=10_000)
    max_rows: Optional[int] = Field(None, ge=1)


class QueryValidation(BaseModel):
    is_valid: bool
    reason: Optional[str] = None
    statement_type: Optional[str] = None


class QueryResult(BaseModel):
    columns: list[str]
    rows: list[dict[str, Any]]
    row_count: int
    truncated: bool
    execution_ms: float


class ColumnInfo(BaseModel):
    name: str
    type: str
    nullable: bool
    default: Optional[str] = None
    primary_key: bool = False


class TableDetail(BaseModel):
    name: str
    row_count: int
    columns: list[ColumnInfo]
    indexes: list[dict[str, Any]] = []
    foreign_keys: list[dict[str, Any]] = []
