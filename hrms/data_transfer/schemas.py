"""Import / export request and response schemas."""


import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from hrms.common.constants import ImportMode, TransferFormat


# ── Export ──────────────────────────────────────────────────────────

class ExportRequest(BaseModel):
    table_name: str = Field(..., min_length=1, max_length=100)
    format: TransferFormat = TransferFormat.csv
    columns: Optional[list[str]] = None
    # Equality filters keyed by column name
    filters: Optional[dict[str, Any]] = None
    include_inactive: bool = False


class ExportJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    table_name: str
    format: str
    file_name: str
    row_count: int
    file_size: int
    status: str
    error_message: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime


# ── Import ──────────────────────────────────────────────────────────

class ImportOptions(BaseModel):
    table_name: str = Field(..., min_length=1, max_length=100)
    format: TransferFormat = TransferFormat.json
    mode: ImportMode = ImportMode.insert
    validate_only: bool = False


class ImportRowsRequest(ImportOptions):
    """JSON body alternative to a multipart upload."""

    rows: list[dict[str, Any]] = Field(..., min_length=1)


class RowError(BaseModel):
    # 1-based position in the uploaded data
    row: int
    column: Optional[str] = None
    message: str


class ImportValidationResult(BaseModel):
    table_name: str
    total_rows: int
    valid_rows: int
    invalid_rows: int
    errors: list[RowError] = []


class ImportJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    table_name: str
    format: str
    mode: str
    file_name: Optional[str] = None
    total_rows: int
    imported_rows: int
    failed_rows: int
    status: str
    created_by: Optional[uuid.UUID] = None
    created_at: datetime


class ImportPreview(BaseModel):
    table_name: str
    total_rows: int
    source_columns: list[str]
    # source column → table column (None when it matches nothing)
    column_mapping: dict[str, Optional[str]]
    rows: list[dict[str, Any]]
