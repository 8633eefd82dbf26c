"""Import / export service — whitelisted table export to CSV / JSON files,
row-validated imports with a savepoint per row, and job history.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.addresses.models import BangladeshAddress
from hrms.auth.dependencies import CompanyScope
from hrms.common.audit import create_audit_entry
from hrms.common.constants import ImportMode, JobStatus
from hrms.common.exceptions import BadRequestException, ForbiddenException, NotFoundException
from hrms.companies.models import Company
from hrms.config import settings
from hrms.data_transfer import codecs
from hrms.data_transfer.models import ExportJob, ImportJob
from hrms.data_transfer.schemas import (
    ExportRequest,
    ImportOptions,
    ImportPreview,
    ImportValidationResult,
    RowError,
)
from hrms.employees.models import Employee
from hrms.organization.models import Degree, Department, Designation, Line, Section
from hrms.permissions.models import Permission
from hrms.roster.models import RosterSchedule
from hrms.shifts.models import Shift

logger = logging.getLogger(__name__)

EXPORTABLE_TABLES: dict[str, Any] = {
    "companies": Company,
    "departments": Department,
    "sections": Section,
    "designations": Designation,
    "degrees": Degree,
    "lines": Line,
    "shifts": Shift,
    "employees": Employee,
    "roster_schedules": RosterSchedule,
    "bangladesh_addresses": BangladeshAddress,
    "permissions": Permission,
}

# Reference tables not owned by any company
_GLOBAL_TABLES = {"bangladesh_addresses", "permissions"}

PREVIEW_ROWS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_table(table_name: str) -> Any:
    model = EXPORTABLE_TABLES.get(table_name.strip().lower())
    if model is None:
        raise BadRequestException(
            f"Table '{table_name}' cannot be imported or exported.",
            errors={"table_name": [f"Allowed: {', '.join(sorted(EXPORTABLE_TABLES))}"]},
        )
    return model


def _export_dir() -> Path:
    path = Path(settings.EXPORT_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


# ── Company scope per table ─────────────────────────────────────────

def _scope_condition(model: Any, scope: CompanyScope):
    """WHERE clause limiting *model* rows to the caller's companies (None = unrestricted)."""
    if scope.is_admin or model.__tablename__ in _GLOBAL_TABLES:
        return None
    ids = scope.company_ids
    if model is Company:
        return Company.id.in_(ids)
    if "company_id" in model.__table__.c:
        return model.__table__.c.company_id.in_(ids)
    department_ids = select(Department.id).where(Department.company_id.in_(ids))
    if model is Section:
        return Section.department_id.in_(department_ids)
    if model is Designation:
        return Designation.section_id.in_(
            select(Section.id).where(Section.department_id.in_(department_ids))
        )
    return sa.false()


async def _row_company_id(db: AsyncSession, model: Any, row: dict[str, Any]) -> Optional[int]:
    if "company_id" in row:
        return row["company_id"]
    if model is Section and row.get("department_id") is not None:
        department = await db.get(Department, row["department_id"])
        return department.company_id if department else None
    if model is Designation and row.get("section_id") is not None:
        section = await db.get(Section, row["section_id"])
        if section is None:
            return None
        department = await db.get(Department, section.department_id)
        return department.company_id if department else None
    return None


# ═════════════════════════════════════════════════════════════════════
# Export
# ═════════════════════════════════════════════════════════════════════


class ExportService:

    @staticmethod
    async def export_table(
        db: AsyncSession,
        data: ExportRequest,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ExportJob:
        model = resolve_table(data.table_name)
        table = model.__table__

        columns = data.columns or [c.name for c in table.columns]
        unknown = [c for c in columns if c not in table.c]
        if unknown:
            raise BadRequestException(f"Unknown column(s) for {table.name}: {', '.join(unknown)}")

        query = select(*(table.c[c] for c in columns)).select_from(table)
        condition = _scope_condition(model, scope)
        if condition is not None:
            query = query.where(condition)
        for name, value in (data.filters or {}).items():
            if name not in table.c:
                raise BadRequestException(f"Cannot filter on unknown column '{name}'.")
            try:
                query = query.where(table.c[name] == codecs.coerce(table.c[name], value))
            except codecs.CoercionError as exc:
                raise BadRequestException(f"Invalid value for filter '{name}': {exc}") from exc
        if "is_active" in table.c and not scope.show_inactive(data.include_inactive):
            query = query.where(table.c.is_active.is_(True))
        pk = list(table.primary_key.columns)
        rows = (await db.execute(query.order_by(*pk))).all()

        stamp = _utcnow().strftime("%Y%m%d_%H%M%S")
        file_name = f"{table.name}_{stamp}_{uuid.uuid4().hex[:8]}.{data.format.value}"
        content = codecs.encode_rows(columns, rows, data.format)
        target = _export_dir() / file_name
        target.write_bytes(content)

        job = ExportJob(
            table_name=table.name,
            format=data.format.value,
            file_name=file_name,
            row_count=len(rows),
            file_size=len(content),
            status=JobStatus.completed.value,
            created_by=actor_id,
        )
        db.add(job)
        await db.flush()
        await create_audit_entry(
            db,
            action="export",
            entity_type="export_job",
            entity_id=job.id,
            actor_id=actor_id,
            new_values={"table_name": table.name, "format": data.format, "row_count": len(rows)},
        )
        logger.info("Exported %d row(s) from %s to %s", len(rows), table.name, file_name)
        return job

    @staticmethod
    async def get_job(db: AsyncSession, job_id: uuid.UUID, scope: CompanyScope) -> ExportJob:
        job = await db.get(ExportJob, job_id)
        if job is None:
            raise NotFoundException("ExportJob", job_id)
        if not scope.is_admin and job.created_by != scope.user.id:
            raise ForbiddenException(detail="This export belongs to another user.")
        return job

    @staticmethod
    def file_path(job: ExportJob) -> Path:
        path = Path(settings.EXPORT_DIR) / job.file_name
        if not path.is_file():
            raise NotFoundException("Export file", job.file_name)
        return path

    @staticmethod
    async def history(
        db: AsyncSession,
        scope: CompanyScope,
        *,
        table_name: Optional[str] = None,
        limit: int = 50,
    ) -> Sequence[ExportJob]:
        query = select(ExportJob)
        if not scope.is_admin:
            query = query.where(ExportJob.created_by == scope.user.id)
        if table_name:
            query = query.where(ExportJob.table_name == table_name)
        result = await db.execute(query.order_by(ExportJob.created_at.desc()).limit(limit))
        return result.scalars().all()

    @staticmethod
    async def delete_job(
        db: AsyncSession,
        job_id: uuid.UUID,
        scope: CompanyScope,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        job = await ExportService.get_job(db, job_id, scope)
        path = Path(settings.EXPORT_DIR) / job.file_name
        path.unlink(missing_ok=True)
        await db.delete(job)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="export_job",
            entity_id=job_id,
            actor_id=actor_id,
            old_values={"file_name": job.file_name},
        )


# ═════════════════════════════════════════════════════════════════════
# Import
# ═════════════════════════════════════════════════════════════════════


class ImportService:

    @staticmethod
    def _check_size(rows: list[dict[str, Any]]) -> None:
        if not rows:
            raise BadRequestException("No rows to import.")
        if len(rows) > settings.MAX_IMPORT_ROWS:
            raise BadRequestException(
                f"Import is limited to {settings.MAX_IMPORT_ROWS} rows; got {len(rows)}."
            )

    @staticmethod
    def validate_rows(
        model: Any,
        rows: list[dict[str, Any]],
        mode: ImportMode,
    ) -> tuple[list[tuple[int, dict[str, Any]]], list[RowError]]:
        """Rename, coerce and check every row. Returns ``(valid, errors)``;
        valid entries are ``(row_number, values)``."""
        table = model.__table__
        names = [c.name for c in table.columns]
        pk_names = {c.name for c in table.primary_key.columns}
        valid: list[tuple[int, dict[str, Any]]] = []
        errors: list[RowError] = []

        for number, raw in enumerate(rows, start=1):
            mapping = codecs.map_columns(raw.keys(), names)
            row_errors: list[RowError] = []
            values: dict[str, Any] = {}

            for source, target in mapping.items():
                if target is None:
                    row_errors.append(RowError(row=number, column=source, message="Unknown column"))
                    continue
                try:
                    values[target] = codecs.coerce(table.c[target], raw[source])
                except codecs.CoercionError as exc:
                    row_errors.append(RowError(row=number, column=source, message=str(exc)))

            updating = mode is ImportMode.upsert and pk_names <= {
                k for k, v in values.items() if v is not None
            }
            if not updating:
                for column in table.columns:
                    if codecs.is_required(column) and values.get(column.name) is None:
                        row_errors.append(
                            RowError(row=number, column=column.name, message="Required value missing")
                        )

            if row_errors:
                errors.extend(row_errors)
                continue
            # A blank key lets the database assign one
            for name in pk_names:
                if values.get(name) is None:
                    values.pop(name, None)
            valid.append((number, values))

        return valid, errors

    @staticmethod
    def validate(
        options: ImportOptions,
        rows: list[dict[str, Any]],
    ) -> ImportValidationResult:
        model = resolve_table(options.table_name)
        ImportService._check_size(rows)
        valid, errors = ImportService.validate_rows(model, rows, options.mode)
        return ImportValidationResult(
            table_name=model.__tablename__,
            total_rows=len(rows),
            valid_rows=len(valid),
            invalid_rows=len(rows) - len(valid),
            errors=errors,
        )

    @staticmethod
    def preview(table_name: str, rows: list[dict[str, Any]]) -> ImportPreview:
        model = resolve_table(table_name)
        source_columns = list(dict.fromkeys(k for row in rows for k in row.keys()))
        return ImportPreview(
            table_name=model.__tablename__,
            total_rows=len(rows),
            source_columns=source_columns,
            column_mapping=codecs.map_columns(source_columns, [c.name for c in model.__table__.columns]),
            rows=rows[:PREVIEW_ROWS],
        )

    @staticmethod
    async def _find_existing(
        db: AsyncSession,
        model: Any,
        values: dict[str, Any],
        mode: ImportMode,
    ) -> Optional[Any]:
        """The row an upsert would overwrite, looked up by primary key."""
        if mode is not ImportMode.upsert:
            return None
        pk_names = [c.name for c in model.__table__.primary_key.columns]
        if not all(values.get(k) is not None for k in pk_names):
            return None
        key = values[pk_names[0]] if len(pk_names) == 1 else tuple(values[k] for k in pk_names)
        return await db.get(model, key)

    @staticmethod
    async def _in_scope(
        db: AsyncSession,
        model: Any,
        values: dict[str, Any],
        existing: Optional[Any],
        scope: CompanyScope,
    ) -> bool:
        # Both the stored row and the company it is moved to must be accessible
        targets: list[Optional[int]] = []
        if existing is not None:
            stored = {c.name: getattr(existing, c.name) for c in model.__table__.columns}
            targets.append(await _row_company_id(db, model, stored))
        incoming = await _row_company_id(db, model, values)
        if incoming is not None or existing is None:
            targets.append(incoming)
        return all(scope.can_access(company_id) for company_id in targets)

    @staticmethod
    async def _write_row(
        db: AsyncSession,
        model: Any,
        values: dict[str, Any],
        existing: Optional[Any],
    ) -> None:
        if existing is not None:
            for field, value in values.items():
                setattr(existing, field, value)
        else:
            db.add(model(**values))
        await db.flush()

    @staticmethod
    async def import_rows(
        db: AsyncSession,
        options: ImportOptions,
        rows: list[dict[str, Any]],
        scope: CompanyScope,
        *,
        file_name: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ImportJob:
        model = resolve_table(options.table_name)
        ImportService._check_size(rows)
        if model is Company and not scope.is_admin:
            raise ForbiddenException(detail="Only administrators may import companies.")

        job = ImportJob(
            table_name=model.__tablename__,
            format=options.format.value,
            mode=options.mode.value,
            file_name=file_name,
            total_rows=len(rows),
            status=JobStatus.processing.value,
            created_by=actor_id,
        )
        db.add(job)
        await db.flush()

        valid, errors = ImportService.validate_rows(model, rows, options.mode)
        imported = 0
        for number, values in valid:
            existing = await ImportService._find_existing(db, model, values, options.mode)
            if model.__tablename__ not in _GLOBAL_TABLES and not scope.is_admin:
                if not await ImportService._in_scope(db, model, values, existing, scope):
                    errors.append(RowError(row=number, message="No access to the row's company"))
                    continue
            try:
                async with db.begin_nested():
                    await ImportService._write_row(db, model, values, existing)
            except SQLAlchemyError as exc:
                reason = str(getattr(exc, "orig", None) or exc).splitlines()[0]
                errors.append(RowError(row=number, message=f"Database error: {reason}"))
                logger.debug("Import row %d into %s failed: %s", number, model.__tablename__, reason)
                continue
            imported += 1

        failed_rows = len({e.row for e in errors})
        job.imported_rows = imported
        job.failed_rows = failed_rows
        job.errors = [e.model_dump() for e in sorted(errors, key=lambda e: e.row)]
        if imported == 0:
            job.status = JobStatus.failed.value
        elif failed_rows:
            job.status = JobStatus.completed_with_errors.value
        else:
            job.status = JobStatus.completed.value
        await db.flush()

        await create_audit_entry(
            db,
            action="import",
            entity_type="import_job",
            entity_id=job.id,
            actor_id=actor_id,
            new_values={
                "table_name": job.table_name,
                "mode": job.mode,
                "imported": imported,
                "failed": failed_rows,
            },
        )
        logger.info(
            "Imported %d/%d row(s) into %s (%s)",
            imported, len(rows), job.table_name, job.status,
        )
        return job

    @staticmethod
    async def get_job(db: AsyncSession, job_id: uuid.UUID, scope: CompanyScope) -> ImportJob:
        job = await db.get(ImportJob, job_id)
        if job is None:
            raise NotFoundException("ImportJob", job_id)
        if not scope.is_admin and job.created_by != scope.user.id:
            raise ForbiddenException(detail="This import belongs to another user.")
        return job

    @staticmethod
    async def history(
        db: AsyncSession,
        scope: CompanyScope,
        *,
        table_name: Optional[str] = None,
        limit: int = 50,
    ) -> Sequence[ImportJob]:
        query = select(ImportJob)
        if not scope.is_admin:
            query = query.where(ImportJob.created_by == scope.user.id)
        if table_name:
            query = query.where(ImportJob.table_name == table_name)
        result = await db.execute(query.order_by(ImportJob.created_at.desc()).limit(limit))
        return result.scalars().all()
