"""System router.

Routes:
    GET  /system/info                          — Runtime information
    GET  /system/version                       — Application version (public)
    GET  /system/environment                   — Environment flags
    GET  /system/configuration                 — Non-secret settings
    GET  /system/health                        — Database connectivity check
    GET  /system/status                        — Application + database status
    GET  /system/statistics                    — Row counts of the domain tables
    GET  /system/database/info                 — Dialect, driver, server version
    GET  /system/database/tables               — Tables with row counts
    GET  /system/database/tables/{name}        — Columns, indexes, foreign keys
    GET  /system/database/tables/{name}/exists — Whether a table exists
    POST /system/database/query                — Run a read-only query
    POST /system/database/query/validate       — Validate a query without running it

Admin and IT for everything touching the database directly; HR Manager may
also read health, status and statistics.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import User
from hrms.auth.dependencies import require_role
from hrms.common.constants import SYSTEM_READ_ROLES, SYSTEM_ROLES
from hrms.database import get_db
from hrms.system.schemas import QueryRequest
from hrms.system.service import SystemService, environment_flags, validate_query

router = APIRouter(prefix="", tags=["system"])

_system_dep = require_role(*SYSTEM_ROLES)
_read_dep = require_role(*SYSTEM_READ_ROLES)


@router.get("/info")
async def system_info(_user: User = Depends(_system_dep)):
    return {"data": SystemService.info(), "message": "System information retrieved."}


@router.get("/version")
async def system_version():
    return {"data": SystemService.version(), "message": "Version retrieved."}


@router.get("/environment")
async def system_environment(_user: User = Depends(_system_dep)):
    return {"data": environment_flags(), "message": "Environment retrieved."}


@router.get("/configuration")
async def system_configuration(_user: User = Depends(_system_dep)):
    return {"data": SystemService.configuration(), "message": "Configuration retrieved."}


@router.get("/health")
async def system_health(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    health = await SystemService.health(db)
    return {"data": health, "message": f"System is {health['status'].lower()}."}


@router.get("/status")
async def system_status(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    return {"data": await SystemService.status(db), "message": "System status retrieved."}


@router.get("/statistics")
async def system_statistics(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_read_dep),
):
    return {"data": await SystemService.statistics(db), "message": "Statistics retrieved."}


# ═════════════════════════════════════════════════════════════════════
# DATABASE
# ═════════════════════════════════════════════════════════════════════

@router.get("/database/info")
async def database_info(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_system_dep),
):
    return {"data": await SystemService.database_info(db), "message": "Database information retrieved."}


@router.get("/database/tables")
async def list_tables(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_system_dep),
):
    tables = await SystemService.tables(db)
    return {"data": tables, "message": f"Found {len(tables)} table(s)."}


@router.get("/database/tables/{table_name}")
async def table_detail(
    table_name: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_system_dep),
):
    detail = await SystemService.table_detail(db, table_name)
    return {"data": detail.model_dump(), "message": "Table details retrieved."}


@router.get("/database/tables/{table_name}/exists")
async def table_exists(
    table_name: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_system_dep),
):
    exists = await SystemService.table_exists(db, table_name)
    return {
        "data": {"table_name": table_name, "exists": exists},
        "message": f"Table '{table_name}' {'exists' if exists else 'does not exist'}.",
    }


@router.post("/database/query")
async def run_query(
    body: QueryRequest,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(_system_dep),
):
    result = await SystemService.run_query(db, body.query, body.max_rows)
    return {"data": result.model_dump(), "message": f"Query returned {result.row_count} row(s)."}


@router.post("/database/query/validate")
async def validate(
    body: QueryRequest,
    _user: User = Depends(_system_dep),
):
    check = validate_query(body.query)
    message = "Query is valid." if check.is_valid else check.reason
    return {"data": check.model_dump(), "message": message}
