"""System management — runtime info, database introspection, health and
a read-only query console."""

from __future__ import annotations

import logging
import platform
import re
import socket
import sys
import time
from datetime import datetime, timezone
from typing import Any, Optional

import sqlalchemy as sa
from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.addresses.models import BangladeshAddress
from hrms.auth.models import User
from hrms.common.exceptions import BadRequestException, NotFoundException
from hrms.companies.models import Company
from hrms.config import settings
from hrms.database import engine
from hrms.employees.models import Employee
from hrms.organization.models import Degree, Department, Designation, Line, Section
from hrms.permissions.models import Permission
from hrms.roster.models import RosterSchedule
from hrms.shifts.models import Shift
from hrms.system.schemas import ColumnInfo, QueryResult, QueryValidation, TableDetail

logger = logging.getLogger(__name__)

STARTED_AT = datetime.now(timezone.utc)
_STARTED_MONOTONIC = time.monotonic()

HEALTHY = "Healthy"
UNHEALTHY = "Unhealthy"

DOMAIN_MODELS = (
    Company,
    Department,
    Section,
    Designation,
    Degree,
    Line,
    Shift,
    Employee,
    RosterSchedule,
    BangladeshAddress,
    Permission,
    User,
)

_FORBIDDEN_KEYWORDS = re.compile(
    r"\b(insert|update|delete|merge|upsert|drop|alter|create|truncate|rename|grant|revoke|"
    r"replace|attach|detach|pragma|vacuum|reindex|copy|call|exec|execute|do|lock|into|"
    r"set|reset|begin|commit|rollback|savepoint|release)\b",
    re.IGNORECASE,
)
_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")
_COMMENT = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)


def uptime_seconds() -> float:
    return round(time.monotonic() - _STARTED_MONOTONIC, 1)


def environment_flags() -> dict[str, Any]:
    name = settings.ENVIRONMENT.lower()
    return {
        "environment": settings.ENVIRONMENT,
        "is_development": name == "development",
        "is_testing": name in ("test", "testing"),
        "is_staging": name == "staging",
        "is_production": name == "production",
        "debug": name != "production",
    }


# ── Query validation ────────────────────────────────────────────────

def validate_query(sql: str) -> QueryValidation:
    """Accept exactly one ``SELECT`` / ``WITH`` statement with no write keywords."""
    stripped = _COMMENT.sub(" ", sql).strip().rstrip(";").strip()
    if not stripped:
        return QueryValidation(is_valid=False, reason="Query is empty.")

    bare = _STRING_LITERAL.sub("''", stripped)
    if ";" in bare:
        return QueryValidation(is_valid=False, reason="Only a single statement is allowed.")

    first = bare.split(None, 1)[0].lower()
    if first not in ("select", "with"):
        return QueryValidation(
            is_valid=False,
            reason="Only SELECT or WITH queries are allowed.",
            statement_type=first.upper(),
        )

    forbidden = _FORBIDDEN_KEYWORDS.search(bare)
    if forbidden:
        return QueryValidation(
            is_valid=False,
            reason=f"Keyword '{forbidden.group(1).upper()}' is not allowed in read-only queries.",
            statement_type=first.upper(),
        )
    return QueryValidation(is_valid=True, statement_type=first.upper())


# ═════════════════════════════════════════════════════════════════════
# SystemService
# ═════════════════════════════════════════════════════════════════════


class SystemService:

    @staticmethod
    def info() -> dict[str, Any]:
        return {
            "application": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "python_version": sys.version.split()[0],
            "platform": platform.platform(),
            "hostname": socket.gethostname(),
            "started_at": STARTED_AT.isoformat(),
            "uptime_seconds": uptime_seconds(),
            "server_time": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def version() -> dict[str, Any]:
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "api_version": "v1",
            "python_version": sys.version.split()[0],
            "environment": settings.ENVIRONMENT,
        }

    @staticmethod
    def configuration() -> dict[str, Any]:
        """Settings safe to show to operators; secrets are never included."""
        return {
            "app_name": settings.APP_NAME,
            "app_version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "log_level": settings.LOG_LEVEL,
            "log_format": settings.LOG_FORMAT,
            "database_url": engine.url.render_as_string(hide_password=True),
            "database_pool_size": settings.DATABASE_POOL_SIZE,
            "database_max_overflow": settings.DATABASE_MAX_OVERFLOW,
            "jwt_algorithm": settings.JWT_ALGORITHM,
            "access_token_expire_minutes": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            "refresh_token_expire_days": settings.REFRESH_TOKEN_EXPIRE_DAYS,
            "cors_origins": settings.cors_origins_list,
            "rate_limit_default": settings.RATE_LIMIT_DEFAULT,
            "export_dir": settings.EXPORT_DIR,
            "max_import_rows": settings.MAX_IMPORT_ROWS,
            "max_query_rows": settings.MAX_QUERY_ROWS,
        }

    # ── Database ────────────────────────────────────────────────────

    @staticmethod
    async def _table_names(db: AsyncSession) -> list[str]:
        conn = await db.connection()
        return await conn.run_sync(lambda sync_conn: sorted(sa.inspect(sync_conn).get_table_names()))

    @staticmethod
    async def _count(db: AsyncSession, table_name: str) -> int:
        result = await db.execute(select(func.count()).select_from(sa.table(table_name)))
        return result.scalar_one()

    @staticmethod
    async def database_info(db: AsyncSession) -> dict[str, Any]:
        conn = await db.connection()
        dialect = conn.dialect
        version = dialect.server_version_info
        tables = await SystemService._table_names(db)
        return {
            "dialect": dialect.name,
            "driver": dialect.driver,
            "server_version": ".".join(str(p) for p in version) if version else None,
            "database": engine.url.database,
            "table_count": len(tables),
        }

    @staticmethod
    async def health(db: AsyncSession) -> dict[str, Any]:
        started = time.perf_counter()
        try:
            await db.execute(sa.text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Database health check failed: %s", exc)
            return {
                "status": UNHEALTHY,
                "database": UNHEALTHY,
                "error": str(exc).splitlines()[0],
                "checked_at": datetime.now(timezone.utc).isoformat(),
            }
        latency = (time.perf_counter() - started) * 1000
        return {
            "status": HEALTHY,
            "database": HEALTHY,
            "latency_ms": round(latency, 2),
            "checked_at": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    async def status(db: AsyncSession) -> dict[str, Any]:
        db_health = await SystemService.health(db)
        return {
            "status": db_health["status"],
            "application": {
                "status": HEALTHY,
                "version": settings.APP_VERSION,
                "uptime_seconds": uptime_seconds(),
            },
            "database": db_health,
        }

    @staticmethod
    async def statistics(db: AsyncSession) -> dict[str, Any]:
        counts = {}
        for model in DOMAIN_MODELS:
            counts[model.__tablename__] = (
                await db.execute(select(func.count()).select_from(model))
            ).scalar_one()
        active_users = (
            await db.execute(select(func.count(User.id)).where(User.is_active.is_(True)))
        ).scalar_one()
        active_employees = (
            await db.execute(select(func.count(Employee.id)).where(Employee.is_active.is_(True)))
        ).scalar_one()
        return {
            "table_counts": counts,
            "active_users": active_users,
            "active_employees": active_employees,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    async def tables(db: AsyncSession) -> list[dict[str, Any]]:
        return [
            {"name": name, "row_count": await SystemService._count(db, name)}
            for name in await SystemService._table_names(db)
        ]

    @staticmethod
    async def table_exists(db: AsyncSession, table_name: str) -> bool:
        return table_name in await SystemService._table_names(db)

    @staticmethod
    async def table_detail(db: AsyncSession, table_name: str) -> TableDetail:
        if not await SystemService.table_exists(db, table_name):
            raise NotFoundException("Table", table_name)

        def _describe(sync_conn) -> dict[str, Any]:
            inspector = sa.inspect(sync_conn)
            pk = set(inspector.get_pk_constraint(table_name).get("constrained_columns") or [])
            return {
                "columns": [
                    ColumnInfo(
                        name=col["name"],
                        type=str(col["type"]),
                        nullable=bool(col.get("nullable", True)),
                        default=str(col["default"]) if col.get("default") is not None else None,
                        primary_key=col["name"] in pk,
                    )
                    for col in inspector.get_columns(table_name)
                ],
                "indexes": [
                    {
                        "name": idx.get("name"),
                        "columns": idx.get("column_names"),
                        "unique": bool(idx.get("unique")),
                    }
                    for idx in inspector.get_indexes(table_name)
                ],
                "foreign_keys": [
                    {
                        "name": fk.get("name"),
                        "columns": fk.get("constrained_columns"),
                        "referred_table": fk.get("referred_table"),
                        "referred_columns": fk.get("referred_columns"),
                    }
                    for fk in inspector.get_foreign_keys(table_name)
                ],
            }

        conn = await db.connection()
        described = await conn.run_sync(_describe)
        return TableDetail(
            name=table_name,
            row_count=await SystemService._count(db, table_name),
            **described,
        )

    # ── Query console ───────────────────────────────────────────────

    @staticmethod
    async def run_query(db: AsyncSession, sql: str, max_rows: Optional[int] = None) -> QueryResult:
        check = validate_query(sql)
        if not check.is_valid:
            raise BadRequestException(check.reason or "Query is not allowed.")

        limit = min(max_rows or settings.MAX_QUERY_ROWS, settings.MAX_QUERY_ROWS)
        statement = _COMMENT.sub(" ", sql).strip().rstrip(";")
        started = time.perf_counter()
        # Runs inside a savepoint that is always rolled back
        savepoint = await db.begin_nested()
        try:
            # Driver SQL: a ":name" inside a literal is not a bind parameter
            conn = await db.connection()
            result = await conn.exec_driver_sql(statement)
            columns = list(result.keys())
            fetched = result.fetchmany(limit + 1)
        except SQLAlchemyError as exc:
            await savepoint.rollback()
            reason = str(getattr(exc, "orig", None) or exc).splitlines()[0]
            raise BadRequestException(f"Query failed: {reason}")
        await savepoint.rollback()
        elapsed = (time.perf_counter() - started) * 1000

        truncated = len(fetched) > limit
        rows = [dict(zip(columns, row)) for row in fetched[:limit]]
        logger.info("Read-only query returned %d row(s) in %.1f ms", len(rows), elapsed)
        return QueryResult(
            columns=columns,
            rows=jsonable_encoder(rows),
            row_count=len(rows),
            truncated=truncated,
            execution_ms=round(elapsed, 2),
        )
