"""CSV / JSON encoding and decoding plus per-column value coercion."""

from __future__ import annotations

import csv
import io
import json
import re
import uuid
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Sequence

import sqlalchemy as sa

from hrms.common.constants import TransferFormat
from hrms.common.exceptions import BadRequestException

_TRUE = {"true", "1", "yes", "y", "t"}
_FALSE = {"false", "0", "no", "n", "f"}

FORMAT_SPECS: dict[TransferFormat, dict[str, Any]] = {
    TransferFormat.csv: {
        "extension": ".csv",
        "media_type": "text/csv",
        "description": "UTF-8 comma-separated values; the first row holds column names.",
        "empty_value": "An empty cell is read as null.",
    },
    TransferFormat.json: {
        "extension": ".json",
        "media_type": "application/json",
        "description": 'An array of objects, or an object with a "rows" array.',
        "empty_value": "null or an empty string is read as null.",
    },
}


class CoercionError(ValueError):
    pass


# ── Decoding ────────────────────────────────────────────────────────

def detect_format(file_name: Optional[str], declared: Optional[str]) -> TransferFormat:
    if declared:
        try:
            return TransferFormat(declared.lower())
        except ValueError:
            raise BadRequestException(f"Unsupported format '{declared}'. Use csv or json.")
    if file_name and file_name.lower().endswith(".csv"):
        return TransferFormat.csv
    return TransferFormat.json


def decode_rows(content: bytes, fmt: TransferFormat) -> list[dict[str, Any]]:
    """Parse uploaded bytes into a list of row dicts."""
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise BadRequestException("File must be UTF-8 encoded.")

    if fmt is TransferFormat.csv:
        reader = csv.DictReader(io.StringIO(text))
        if not reader.fieldnames:
            raise BadRequestException("CSV file has no header row.")
        return [
            {key.strip(): value for key, value in row.items() if key is not None}
            for row in reader
        ]

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BadRequestException(f"Invalid JSON: {exc.msg} (line {exc.lineno}).")
    if isinstance(payload, dict) and isinstance(payload.get("rows"), list):
        payload = payload["rows"]
    if not isinstance(payload, list) or not all(isinstance(r, dict) for r in payload):
        raise BadRequestException("JSON must be an array of objects.")
    return payload


# ── Encoding ────────────────────────────────────────────────────────

def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    return value


def encode_rows(
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    fmt: TransferFormat,
) -> bytes:
    records = [{col: _plain(value) for col, value in zip(columns, row)} for row in rows]
    if fmt is TransferFormat.csv:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=list(columns))
        writer.writeheader()
        writer.writerows(records)
        return buffer.getvalue().encode("utf-8")
    return json.dumps(records, ensure_ascii=False, indent=2).encode("utf-8")


# ── Column matching ─────────────────────────────────────────────────

_CAMEL = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalise_name(name: str) -> str:
    """``"CompanyId"`` / ``"company id"`` / ``"Company-ID"`` → ``"company_id"``."""
    snake = _CAMEL.sub("_", name.strip())
    return re.sub(r"[\s\-]+", "_", snake).lower()


def map_columns(source: Iterable[str], table_columns: Iterable[str]) -> dict[str, Optional[str]]:
    known = set(table_columns)
    mapping: dict[str, Optional[str]] = {}
    for name in source:
        candidate = normalise_name(name)
        mapping[name] = candidate if candidate in known else None
    return mapping


# ── Value coercion ──────────────────────────────────────────────────

def coerce(column: sa.Column, raw: Any) -> Any:
    """Convert *raw* into the Python value *column* stores; raise ``CoercionError``."""
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return None

    col_type = column.type
    text = raw.strip() if isinstance(raw, str) else raw

    try:
        if isinstance(col_type, sa.Boolean):
            if isinstance(text, bool):
                return text
            lowered = str(text).lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise CoercionError(f"'{raw}' is not a boolean")
        if isinstance(col_type, sa.Integer):
            if isinstance(text, bool):
                raise CoercionError(f"'{raw}' is not an integer")
            if isinstance(text, float) and not text.is_integer():
                raise CoercionError(f"'{raw}' is not an integer")
            return int(text)
        if isinstance(col_type, sa.Numeric) and not isinstance(col_type, sa.Float):
            return Decimal(str(text))
        if isinstance(col_type, sa.Float):
            return float(text)
        if isinstance(col_type, sa.DateTime):
            return text if isinstance(text, datetime) else datetime.fromisoformat(str(text))
        if isinstance(col_type, sa.Date):
            return text if isinstance(text, date) else date.fromisoformat(str(text)[:10])
        if isinstance(col_type, sa.Time):
            return text if isinstance(text, time) else time.fromisoformat(str(text))
        if isinstance(col_type, sa.Uuid):
            return text if isinstance(text, uuid.UUID) else uuid.UUID(str(text))
        if isinstance(col_type, sa.JSON):
            return json.loads(text) if isinstance(text, str) else text
        if isinstance(col_type, sa.String):
            value = str(text)
            if col_type.length is not None and len(value) > col_type.length:
                raise CoercionError(f"longer than {col_type.length} characters")
            return value
    except (ValueError, TypeError, InvalidOperation) as exc:
        if isinstance(exc, CoercionError):
            raise
        raise CoercionError(f"'{raw}' is not a valid {col_type.__class__.__name__.lower()}")
    return text


def is_required(column: sa.Column) -> bool:
    """Non-nullable, no default of any kind and not an auto-generated key."""
    if column.nullable or column.default is not None or column.server_default is not None:
        return False
    if column.primary_key and isinstance(column.type, sa.Integer):
        return False
    return True
