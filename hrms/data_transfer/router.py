"""Import / export router.

Routes:
    POST   /import-export/export                 — Export a table to CSV / JSON
    GET    /import-export/export/history         — Past exports
    GET    /import-export/export/{id}/download   — Download an export file
    DELETE /import-export/export/{id}            — Delete an export and its file
    POST   /import-export/import                 — Import rows (multipart file or JSON)
    POST   /import-export/validate               — Validate rows without writing
    POST   /import-export/preview                — First rows plus column mapping
    GET    /import-export/import/history         — Past imports
    GET    /import-export/import/{id}/errors     — Per-row errors of an import
    GET    /import-export/formats                — Supported formats

Export: Admin, IT, HR Manager. Import: Admin, IT.
"""

import json
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import CompanyScope, get_company_scope, get_current_user, require_role
from hrms.auth.models import User
from hrms.common.constants import EXPORT_ROLES, IMPORT_ROLES, ImportMode
from hrms.common.exceptions import BadRequestException, ValidationException
from hrms.data_transfer import codecs
from hrms.data_transfer.schemas import (
    ExportJobResponse,
    ExportRequest,
    ImportJobResponse,
    ImportOptions,
    ImportRowsRequest,
)
from hrms.data_transfer.service import EXPORTABLE_TABLES, ExportService, ImportService
from hrms.database import get_db

router = APIRouter(prefix="", tags=["import-export"])

_export_dep = require_role(*EXPORT_ROLES)
_import_dep = require_role(*IMPORT_ROLES)


def _validation_errors(exc: ValidationError) -> ValidationException:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        name = ".".join(str(p) for p in err.get("loc", ())) or "body"
        errors.setdefault(name, []).append(err.get("msg", "Invalid value"))
    return ValidationException(errors)


async def _read_payload(request: Request) -> tuple[ImportOptions, list[dict[str, Any]], Optional[str]]:
    """Accept either a multipart upload (``file`` + form fields) or a JSON body."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if upload is None or isinstance(upload, str):
            raise BadRequestException("Multipart import requires a 'file' field.")
        file_name = upload.filename
        fmt = codecs.detect_format(file_name, form.get("format"))
        try:
            options = ImportOptions(
                table_name=form.get("table_name") or "",
                format=fmt,
                mode=form.get("mode") or "insert",
                validate_only=str(form.get("validate_only", "false")).lower() in ("true", "1", "yes"),
            )
        except ValidationError as exc:
            raise _validation_errors(exc)
        rows = codecs.decode_rows(await upload.read(), fmt)
        return options, rows, file_name

    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise BadRequestException("Request body must be JSON or multipart/form-data.")
    try:
        payload = ImportRowsRequest.model_validate(body)
    except ValidationError as exc:
        raise _validation_errors(exc)
    options = ImportOptions(**payload.model_dump(exclude={"rows"}))
    return options, payload.rows, None


def _export_out(job) -> dict:
    return ExportJobResponse.model_validate(job).model_dump(mode="json")


def _import_out(job) -> dict:
    return ImportJobResponse.model_validate(job).model_dump(mode="json")


# ═════════════════════════════════════════════════════════════════════
# EXPORT
# ═════════════════════════════════════════════════════════════════════

@router.post("/export", status_code=201)
async def export_table(
    body: ExportRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_export_dep),
    scope: CompanyScope = Depends(get_company_scope),
):
    job = await ExportService.export_table(db, body, scope, actor_id=current_user.id)
    return {"data": _export_out(job), "message": f"Exported {job.row_count} row(s)."}


@router.get("/export/history")
async def export_history(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_export_dep),
    scope: CompanyScope = Depends(get_company_scope),
    table_name: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
):
    jobs = await ExportService.history(db, scope, table_name=table_name, limit=limit)
    return {"data": [_export_out(j) for j in jobs], "message": f"Found {len(jobs)} export(s)."}


@router.get("/export/{job_id}/download")
async def download_export(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_export_dep),
    scope: CompanyScope = Depends(get_company_scope),
):
    job = await ExportService.get_job(db, job_id, scope)
    path = ExportService.file_path(job)
    media_type = codecs.FORMAT_SPECS[codecs.detect_format(job.file_name, job.format)]["media_type"]
    return FileResponse(path, media_type=media_type, filename=job.file_name)


@router.delete("/export/{job_id}")
async def delete_export(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_export_dep),
    scope: CompanyScope = Depends(get_company_scope),
):
    await ExportService.delete_job(db, job_id, scope, actor_id=current_user.id)
    return {"data": None, "message": "Export deleted successfully."}


# ═════════════════════════════════════════════════════════════════════
# IMPORT
# ═════════════════════════════════════════════════════════════════════

@router.post("/import")
async def import_rows(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(_import_dep),
    scope: CompanyScope = Depends(get_company_scope),
):
    options, rows, file_name = await _read_payload(request)
    if options.validate_only:
        result = ImportService.validate(options, rows)
        return {"data": result.model_dump(), "message": "Validation completed; nothing was written."}

    job = await ImportService.import_rows(
        db, options, rows, scope, file_name=file_name, actor_id=current_user.id,
    )
    return {
        "data": {**_import_out(job), "errors": job.errors or []},
        "message": f"Imported {job.imported_rows} of {job.total_rows} row(s).",
    }


@router.post("/validate")
async def validate_import(
    request: Request,
    _user: User = Depends(_import_dep),
):
    options, rows, _file_name = await _read_payload(request)
    result = ImportService.validate(options, rows)
    return {"data": result.model_dump(), "message": "Validation completed."}


@router.post("/preview")
async def preview_import(
    request: Request,
    _user: User = Depends(_import_dep),
):
    options, rows, _file_name = await _read_payload(request)
    preview = ImportService.preview(options.table_name, rows)
    return {"data": preview.model_dump(mode="json"), "message": "Preview generated."}


@router.get("/import/history")
async def import_history(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_import_dep),
    scope: CompanyScope = Depends(get_company_scope),
    table_name: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
):
    jobs = await ImportService.history(db, scope, table_name=table_name, limit=limit)
    return {"data": [_import_out(j) for j in jobs], "message": f"Found {len(jobs)} import(s)."}


@router.get("/import/{job_id}/errors")
async def import_errors(
    job_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_import_dep),
    scope: CompanyScope = Depends(get_company_scope),
):
    job = await ImportService.get_job(db, job_id, scope)
    errors = job.errors or []
    return {"data": errors, "message": f"Import has {len(errors)} error(s)."}


# ── Formats ─────────────────────────────────────────────────────────

@router.get("/formats")
async def supported_formats(_user: User = Depends(get_current_user)):
    return {
        "data": {
            "formats": {fmt.value: spec for fmt, spec in codecs.FORMAT_SPECS.items()},
            "tables": sorted(EXPORTABLE_TABLES),
            "import_modes": [m.value for m in ImportMode],
        },
        "message": "Supported formats retrieved.",
    }
