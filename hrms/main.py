"""HR Hub — FastAPI Application Factory."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from hrms.addresses.router import router as addresses_router
from hrms.auth.router import router as auth_router
from hrms.auth.router import users_router
from hrms.auth.service import ensure_roles_seeded
from hrms.common.exceptions import register_exception_handlers
from hrms.common.rate_limit import limiter
from hrms.companies.router import router as companies_router
from hrms.config import settings
from hrms.data_transfer.router import router as import_export_router
from hrms.database import async_session_factory, engine
from hrms.employees.router import router as employees_router
from hrms.logging_config import configure_logging
from hrms.organization.router import (
    degrees_router,
    departments_router,
    designations_router,
    lines_router,
    sections_router,
)
from hrms.permissions.router import (
    role_permissions_router,
    router as permissions_router,
    user_permissions_router,
)
from hrms.roster.router import router as roster_router
from hrms.shifts.router import router as shifts_router
from hrms.system.router import router as system_router

logger = logging.getLogger("hrms.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    # Startup
    configure_logging()
    if settings.SEED_ROLES_ON_STARTUP:
        async with async_session_factory() as session:
            await ensure_roles_seeded(session)
            await session.commit()
    logger.info("%s %s started (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
    yield
    # Shutdown
    await engine.dispose()
    logger.info("%s stopped", settings.APP_NAME)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-company HR platform — organisation, employees, shifts and rosters",
        version=settings.APP_VERSION,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method, request.url.path, response.status_code, elapsed,
        )
        return response

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
    app.include_router(companies_router, prefix="/api/v1/companies", tags=["companies"])
    app.include_router(departments_router, prefix="/api/v1/departments", tags=["departments"])
    app.include_router(sections_router, prefix="/api/v1/sections", tags=["sections"])
    app.include_router(designations_router, prefix="/api/v1/designations", tags=["designations"])
    app.include_router(degrees_router, prefix="/api/v1/degrees", tags=["degrees"])
    app.include_router(lines_router, prefix="/api/v1/lines", tags=["lines"])
    app.include_router(shifts_router, prefix="/api/v1/shifts", tags=["shifts"])
    app.include_router(employees_router, prefix="/api/v1/employees", tags=["employees"])
    app.include_router(roster_router, prefix="/api/v1/roster-schedules", tags=["roster"])
    app.include_router(addresses_router, prefix="/api/v1/bangladesh-addresses", tags=["addresses"])
    app.include_router(permissions_router, prefix="/api/v1/permissions", tags=["permissions"])
    app.include_router(role_permissions_router, prefix="/api/v1/role-permissions", tags=["role-permissions"])
    app.include_router(user_permissions_router, prefix="/api/v1/user-permissions", tags=["user-permissions"])
    app.include_router(import_export_router, prefix="/api/v1/import-export", tags=["import-export"])
    app.include_router(system_router, prefix="/api/v1/system", tags=["system"])

    return app


app = create_app()
