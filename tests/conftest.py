"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, companies, organisation, roster, etc.).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os
import tempfile

# Test settings must be in place before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SEED_ROLES_ON_STARTUP", "false")
os.environ.setdefault("EXPORT_DIR", tempfile.mkdtemp(prefix="hrms-exports-"))

import uuid
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrms.common.constants import UserRole
from hrms.database import Base, get_db
from hrms.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import hrms.addresses.models  # noqa: F401
import hrms.auth.models  # noqa: F401
import hrms.common.audit  # noqa: F401
import hrms.companies.models  # noqa: F401
import hrms.data_transfer.models  # noqa: F401
import hrms.employees.models  # noqa: F401
import hrms.organization.models  # noqa: F401
import hrms.permissions.models  # noqa: F401
import hrms.roster.models  # noqa: F401
import hrms.shifts.models  # noqa: F401

from hrms.auth.models import User, UserCompany, UserRoleAssignment, UserSession
from hrms.auth.security import create_access_token, hash_password, hash_token
from hrms.auth.service import get_role_by_name, get_user_role_names
from hrms.companies.models import Company
from hrms.employees.models import Employee
from hrms.organization.models import Department, Designation, Section
from hrms.shifts.models import Shift

DEFAULT_PASSWORD = "Passw0rd!"
# bcrypt is slow; hash once per run
DEFAULT_PASSWORD_HASH = hash_password(DEFAULT_PASSWORD)


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from hrms.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────
# Factories commit so that rows survive a rollback of a failing request
# (the in-memory database is a single shared connection).

async def make_company(db: AsyncSession, *, name: str = "Dhaka Garments Ltd", **kwargs) -> Company:
    company = Company(name=name, **kwargs)
    db.add(company)
    await db.commit()
    return company


async def make_org(db: AsyncSession, company: Company, *, suffix: str = "") -> dict:
    """Department → section → designation chain inside *company*."""
    department = Department(name=f"Production{suffix}", company_id=company.id)
    db.add(department)
    await db.flush()
    section = Section(name=f"Sewing{suffix}", department_id=department.id)
    db.add(section)
    await db.flush()
    designation = Designation(
        name=f"Operator{suffix}", section_id=section.id, grade="G-5",
        attendance_bonus=Decimal("500"),
    )
    db.add(designation)
    await db.commit()
    return {"department": department, "section": section, "designation": designation}


async def make_shift(
    db: AsyncSession,
    company: Company,
    *,
    name: str = "Day",
    start: time = time(8, 0),
    end: time = time(17, 0),
) -> Shift:
    shift = Shift(
        name=name, start_time=start, end_time=end,
        break_start_time=time(13, 0), break_end_time=time(14, 0),
        company_id=company.id,
    )
    db.add(shift)
    await db.commit()
    return shift


async def make_employee(
    db: AsyncSession,
    company: Company,
    org: dict,
    *,
    emp_id: Optional[str] = None,
    name: str = "Rahim Uddin",
    shift: Optional[Shift] = None,
    **kwargs,
) -> Employee:
    employee = Employee(
        emp_id=emp_id or f"E-{uuid.uuid4().hex[:6].upper()}",
        name=name,
        company_id=company.id,
        department_id=org["department"].id,
        section_id=org["section"].id,
        designation_id=org["designation"].id,
        shift_id=shift.id if shift else None,
        gross_salary=Decimal("15000"),
        basic_salary=Decimal("9000"),
        bank_account_no="0011223344",
        **kwargs,
    )
    db.add(employee)
    await db.commit()
    return employee


async def make_user(
    db: AsyncSession,
    *,
    email: Optional[str] = None,
    roles: tuple[UserRole, ...] = (UserRole.employee,),
    company: Optional[Company] = None,
    extra_companies: tuple[Company, ...] = (),
    is_active: bool = True,
) -> User:
    user = User(
        email=email or f"user.{uuid.uuid4().hex[:8]}@hrhub.test",
        password_hash=DEFAULT_PASSWORD_HASH,
        first_name="Test",
        last_name="User",
        company_id=company.id if company else None,
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    for role in roles:
        role_row = await get_role_by_name(db, role.value)
        db.add(UserRoleAssignment(user_id=user.id, role_id=role_row.id))
    for extra in extra_companies:
        db.add(UserCompany(user_id=user.id, company_id=extra.id))
    await db.commit()
    return user


# ── Auth helpers ────────────────────────────────────────────────────

async def auth_headers_for(db: AsyncSession, user: User) -> dict[str, str]:
    """Issue an access token for *user* and persist its session."""
    roles = await get_user_role_names(db, user.id)
    token, expires_at = create_access_token(user.id, user.email, roles)
    db.add(UserSession(
        user_id=user.id,
        token_hash=hash_token(token),
        expires_at=expires_at,
        created_at=datetime.now(timezone.utc),
    ))
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


# ── Common fixtures ─────────────────────────────────────────────────

@pytest.fixture
async def company(db) -> Company:
    return await make_company(db, company_code="DGL", city="Dhaka", country="Bangladesh")


@pytest.fixture
async def other_company(db) -> Company:
    return await make_company(db, name="Chittagong Knit Ltd", company_code="CKL", country="Bangladesh")


@pytest.fixture
async def org(db, company) -> dict:
    return await make_org(db, company)


@pytest.fixture
async def shift(db, company) -> Shift:
    return await make_shift(db, company)


@pytest.fixture
async def employee(db, company, org, shift) -> Employee:
    return await make_employee(db, company, org, emp_id="E-0001", shift=shift)


@pytest.fixture
async def admin_user(db) -> User:
    return await make_user(db, email="admin@hrhub.test", roles=(UserRole.admin,))


@pytest.fixture
async def admin_headers(db, admin_user) -> dict[str, str]:
    return await auth_headers_for(db, admin_user)


@pytest.fixture
async def hr_user(db, company) -> User:
    """HR Manager scoped to ``company`` only."""
    return await make_user(
        db, email="hr.manager@hrhub.test", roles=(UserRole.hr_manager,), company=company,
    )


@pytest.fixture
async def hr_headers(db, hr_user) -> dict[str, str]:
    return await auth_headers_for(db, hr_user)


@pytest.fixture
async def staff_user(db, company) -> User:
    """Plain employee login scoped to ``company``."""
    return await make_user(db, email="staff@hrhub.test", company=company)


@pytest.fixture
async def staff_headers(db, staff_user) -> dict[str, str]:
    return await auth_headers_for(db, staff_user)


@pytest.fixture
async def it_user(db) -> User:
    return await make_user(db, email="it@hrhub.test", roles=(UserRole.it,))


@pytest.fixture
async def it_headers(db, it_user) -> dict[str, str]:
    return await auth_headers_for(db, it_user)


def expired_headers(user: User) -> dict[str, str]:
    """Bearer header carrying an already-expired access token."""
    from jose import jwt

    from hrms.config import settings

    payload = {
        "sub": str(user.id),
        "email": user.email,
        "roles": [],
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": datetime.now(timezone.utc) - timedelta(minutes=5),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}
