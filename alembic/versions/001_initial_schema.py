"""001 – Initial schema: all tables, indexes and the built-in roles.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+06:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


BUILT_IN_ROLES: list[tuple[str, str]] = [
    ("Admin", "Full access to every company and module"),
    ("Manager", "Line manager"),
    ("Employee", "Regular employee"),
    ("IT", "System and database administration"),
    ("HR", "Human resources staff"),
    ("HR Manager", "Human resources manager"),
]

# Columns shared by every auditable organisation table
AUDIT_COLUMNS = """
            is_active   BOOLEAN NOT NULL DEFAULT TRUE,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ,
            created_by  UUID,
            updated_by  UUID
"""


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── 1. companies ──────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE companies (
            id                   SERIAL PRIMARY KEY,
            company_code         VARCHAR(50) UNIQUE,
            name                 VARCHAR(200) NOT NULL,
            name_bangla          VARCHAR(200),
            description          VARCHAR(500),
            phone                VARCHAR(20),
            email                VARCHAR(100),
            address              VARCHAR(500),
            address_bangla       VARCHAR(500),
            city                 VARCHAR(100),
            state                VARCHAR(100),
            postal_code          VARCHAR(20),
            country              VARCHAR(100),
            logo_url             VARCHAR(500),
            authorized_signature VARCHAR(500),
            {AUDIT_COLUMNS}
        )
    """)

    # ── 2. users / roles ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id            UUID PRIMARY KEY,
            email         VARCHAR(256) NOT NULL UNIQUE,
            password_hash VARCHAR(255) NOT NULL,
            first_name    VARCHAR(100) NOT NULL,
            last_name     VARCHAR(100) NOT NULL,
            department    VARCHAR(100),
            position      VARCHAR(100),
            company_id    INTEGER REFERENCES companies(id) ON DELETE SET NULL,
            is_active     BOOLEAN NOT NULL DEFAULT TRUE,
            last_login_at TIMESTAMPTZ,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at    TIMESTAMPTZ
        )
    """)

    op.execute("""
        CREATE TABLE roles (
            id          SERIAL PRIMARY KEY,
            name        VARCHAR(50) NOT NULL UNIQUE,
            description VARCHAR(255),
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE user_roles (
            id          SERIAL PRIMARY KEY,
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            role_id     INTEGER NOT NULL REFERENCES roles(id) ON DELETE CASCADE,
            assigned_by UUID,
            assigned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at  TIMESTAMPTZ,
            is_active   BOOLEAN NOT NULL DEFAULT TRUE,
            CONSTRAINT uq_user_roles_user_role UNIQUE (user_id, role_id)
        )
    """)

    op.execute("""
        CREATE TABLE user_companies (
            id          SERIAL PRIMARY KEY,
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            company_id  INTEGER NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            assigned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            assigned_by UUID,
            is_active   BOOLEAN NOT NULL DEFAULT TRUE,
            CONSTRAINT uq_user_companies_user_company UNIQUE (user_id, company_id)
        )
    """)

    op.execute("""
        CREATE TABLE user_sessions (
            id                 UUID PRIMARY KEY,
            user_id            UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash         VARCHAR(128) NOT NULL,
            refresh_token_hash VARCHAR(128),
            ip_address         VARCHAR(64),
            user_agent         TEXT,
            expires_at         TIMESTAMPTZ NOT NULL,
            refresh_expires_at TIMESTAMPTZ,
            is_revoked         BOOLEAN NOT NULL DEFAULT FALSE,
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_user_sessions_token_hash         ON user_sessions(token_hash)")
    op.execute("CREATE INDEX ix_user_sessions_refresh_token_hash ON user_sessions(refresh_token_hash)")

    # ── 3. organisation ───────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE departments (
            id          SERIAL PRIMARY KEY,
            name        VARCHAR(200) NOT NULL,
            name_bangla VARCHAR(200),
            company_id  INTEGER NOT NULL REFERENCES companies(id) ON DELETE RESTRICT,
            {AUDIT_COLUMNS}
        )
    """)
    op.execute("CREATE INDEX ix_departments_company_id ON departments(company_id)")

    op.execute(f"""
        CREATE TABLE sections (
            id            SERIAL PRIMARY KEY,
            department_id INTEGER NOT NULL REFERENCES departments(id) ON DELETE RESTRICT,
            name          VARCHAR(200) NOT NULL,
            name_bangla   VARCHAR(200),
            {AUDIT_COLUMNS}
        )
    """)
    op.execute("CREATE INDEX ix_sections_department_id ON sections(department_id)")

    op.execute(f"""
        CREATE TABLE designations (
            id               SERIAL PRIMARY KEY,
            section_id       INTEGER NOT NULL REFERENCES sections(id) ON DELETE RESTRICT,
            name             VARCHAR(200) NOT NULL,
            name_bangla      VARCHAR(200),
            grade            VARCHAR(50) NOT NULL,
            attendance_bonus NUMERIC(18, 2) NOT NULL DEFAULT 0,
            {AUDIT_COLUMNS}
        )
    """)
    op.execute("CREATE INDEX ix_designations_section_id ON designations(section_id)")

    op.execute(f"""
        CREATE TABLE degrees (
            id                      SERIAL PRIMARY KEY,
            name                    VARCHAR(200) NOT NULL,
            name_bangla             VARCHAR(200),
            level                   VARCHAR(100) NOT NULL,
            level_bangla            VARCHAR(100),
            institution_type        VARCHAR(100),
            institution_type_bangla VARCHAR(100),
            company_id              INTEGER NOT NULL REFERENCES companies(id) ON DELETE RESTRICT,
            {AUDIT_COLUMNS}
        )
    """)

    op.execute(f"""
        CREATE TABLE lines (
            id          SERIAL PRIMARY KEY,
            name        VARCHAR(200) NOT NULL,
            name_bangla VARCHAR(200),
            company_id  INTEGER NOT NULL REFERENCES companies(id) ON DELETE RESTRICT,
            {AUDIT_COLUMNS}
        )
    """)

    # ── 4. shifts ─────────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE shifts (
            id               SERIAL PRIMARY KEY,
            name             VARCHAR(200) NOT NULL,
            name_bangla      VARCHAR(200),
            start_time       TIME NOT NULL,
            end_time         TIME NOT NULL,
            break_start_time TIME,
            break_end_time   TIME,
            company_id       INTEGER NOT NULL REFERENCES companies(id) ON DELETE RESTRICT,
            {AUDIT_COLUMNS}
        )
    """)

    # ── 5. employees ──────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE employees (
            id                    SERIAL PRIMARY KEY,
            emp_id                VARCHAR(50) NOT NULL,
            name                  VARCHAR(200) NOT NULL,
            name_bangla           VARCHAR(200),
            nid_no                VARCHAR(50),
            father_name           VARCHAR(200),
            father_name_bangla    VARCHAR(200),
            mother_name           VARCHAR(200),
            mother_name_bangla    VARCHAR(200),
            date_of_birth         DATE,
            joining_date          DATE,
            permanent_address     VARCHAR(500),
            permanent_division    VARCHAR(100),
            permanent_district    VARCHAR(100),
            permanent_upazila     VARCHAR(100),
            permanent_postal_code VARCHAR(10),
            present_address       VARCHAR(500),
            present_division      VARCHAR(100),
            present_district      VARCHAR(100),
            present_upazila       VARCHAR(100),
            present_postal_code   VARCHAR(10),
            blood_group           VARCHAR(10),
            gender                VARCHAR(20),
            religion              VARCHAR(50),
            marital_status        VARCHAR(20),
            education             VARCHAR(200),
            company_id            INTEGER NOT NULL REFERENCES companies(id) ON DELETE RESTRICT,
            department_id         INTEGER NOT NULL REFERENCES departments(id) ON DELETE RESTRICT,
            section_id            INTEGER NOT NULL REFERENCES sections(id) ON DELETE RESTRICT,
            designation_id        INTEGER NOT NULL REFERENCES designations(id) ON DELETE RESTRICT,
            line_id               INTEGER REFERENCES lines(id) ON DELETE SET NULL,
            shift_id              INTEGER REFERENCES shifts(id) ON DELETE SET NULL,
            degree_id             INTEGER REFERENCES degrees(id) ON DELETE SET NULL,
            floor                 VARCHAR(50),
            emp_type              VARCHAR(50),
            "group"               VARCHAR(50),
            house                 NUMERIC(18, 2),
            rent_medical          NUMERIC(18, 2),
            food                  NUMERIC(18, 2),
            conveyance            NUMERIC(18, 2),
            transport             NUMERIC(18, 2),
            night_bill            NUMERIC(18, 2),
            mobile_bill           NUMERIC(18, 2),
            other_allowance       NUMERIC(18, 2),
            gross_salary          NUMERIC(18, 2) NOT NULL DEFAULT 0,
            basic_salary          NUMERIC(18, 2) NOT NULL DEFAULT 0,
            salary_type           VARCHAR(50),
            bank_account_no       VARCHAR(50) NOT NULL,
            bank                  VARCHAR(100),
            {AUDIT_COLUMNS},
            CONSTRAINT uq_employees_company_emp_id UNIQUE (company_id, emp_id)
        )
    """)
    op.execute("CREATE INDEX ix_employees_department_id ON employees(department_id)")
    op.execute("CREATE INDEX ix_employees_shift_id      ON employees(shift_id)")

    # ── 6. roster_schedules ───────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE roster_schedules (
            id             SERIAL PRIMARY KEY,
            employee_id    INTEGER NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            shift_id       INTEGER NOT NULL REFERENCES shifts(id) ON DELETE RESTRICT,
            company_id     INTEGER NOT NULL REFERENCES companies(id) ON DELETE RESTRICT,
            schedule_date  DATE NOT NULL,
            status         VARCHAR(50) NOT NULL DEFAULT 'Scheduled',
            status_bangla  VARCHAR(50),
            notes          VARCHAR(500),
            notes_bangla   VARCHAR(500),
            check_in_time  TIMESTAMP,
            check_out_time TIMESTAMP,
            overtime_hours NUMERIC(6, 2),
            {AUDIT_COLUMNS}
        )
    """)
    op.execute(
        "CREATE INDEX ix_roster_schedules_employee_date ON roster_schedules(employee_id, schedule_date)"
    )
    op.execute(
        "CREATE INDEX ix_roster_schedules_company_date  ON roster_schedules(company_id, schedule_date)"
    )
    # One active schedule per employee and day
    op.execute("""
        CREATE UNIQUE INDEX uq_roster_active_employee_date
            ON roster_schedules(employee_id, schedule_date)
            WHERE is_active = TRUE
    """)

    # ── 7. bangladesh_addresses ───────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE bangladesh_addresses (
            id              SERIAL PRIMARY KEY,
            division        VARCHAR(100) NOT NULL,
            division_bangla VARCHAR(100),
            district        VARCHAR(100) NOT NULL,
            district_bangla VARCHAR(100),
            upazila         VARCHAR(100),
            upazila_bangla  VARCHAR(100),
            "union"         VARCHAR(100),
            union_bangla    VARCHAR(100),
            area            VARCHAR(200),
            area_bangla     VARCHAR(200),
            postal_code     VARCHAR(10) NOT NULL,
            latitude        NUMERIC(10, 7),
            longitude       NUMERIC(10, 7),
            {AUDIT_COLUMNS}
        )
    """)
    op.execute(
        "CREATE INDEX ix_bd_addresses_division_district ON bangladesh_addresses(division, district)"
    )
    op.execute("CREATE INDEX ix_bd_addresses_postal_code ON bangladesh_addresses(postal_code)")

    # ── 8. permissions ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE permissions (
            id          UUID PRIMARY KEY,
            name        VARCHAR(100) NOT NULL,
            code        VARCHAR(100) NOT NULL UNIQUE,
            description VARCHAR(500),
            module      VARCHAR(50) NOT NULL,
            action      VARCHAR(50) NOT NULL,
            resource    VARCHAR(100),
            is_active   BOOLEAN NOT NULL DEFAULT TRUE,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX ix_permissions_module ON permissions(module)")

    op.execute("""
        CREATE TABLE role_permissions (
            id            SERIAL PRIMARY KEY,
            role_id       INTEGER NOT NULL REFERENCES roles(id) ON DELETE CASCADE,
            permission_id UUID NOT NULL REFERENCES permissions(id) ON DELETE CASCADE,
            is_granted    BOOLEAN NOT NULL DEFAULT TRUE,
            assigned_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            assigned_by   UUID,
            expires_at    TIMESTAMPTZ,
            CONSTRAINT uq_role_permissions_role_perm UNIQUE (role_id, permission_id)
        )
    """)

    op.execute("""
        CREATE TABLE user_permissions (
            id            SERIAL PRIMARY KEY,
            user_id       UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            permission_id UUID NOT NULL REFERENCES permissions(id) ON DELETE CASCADE,
            is_granted    BOOLEAN NOT NULL DEFAULT TRUE,
            reason        VARCHAR(500),
            assigned_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            assigned_by   UUID,
            expires_at    TIMESTAMPTZ,
            CONSTRAINT uq_user_permissions_user_perm UNIQUE (user_id, permission_id)
        )
    """)

    # ── 9. import / export jobs ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE export_jobs (
            id            UUID PRIMARY KEY,
            table_name    VARCHAR(100) NOT NULL,
            format        VARCHAR(10) NOT NULL,
            file_name     VARCHAR(255) NOT NULL,
            row_count     INTEGER NOT NULL DEFAULT 0,
            file_size     INTEGER NOT NULL DEFAULT 0,
            status        VARCHAR(30) NOT NULL,
            error_message TEXT,
            created_by    UUID,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE import_jobs (
            id            UUID PRIMARY KEY,
            table_name    VARCHAR(100) NOT NULL,
            format        VARCHAR(10) NOT NULL,
            mode          VARCHAR(10) NOT NULL,
            file_name     VARCHAR(255),
            total_rows    INTEGER NOT NULL DEFAULT 0,
            imported_rows INTEGER NOT NULL DEFAULT 0,
            failed_rows   INTEGER NOT NULL DEFAULT 0,
            errors        JSONB,
            status        VARCHAR(30) NOT NULL,
            created_by    UUID,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 10. audit_trail ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY,
            actor_id    UUID,
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   VARCHAR(64) NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            ip_address  VARCHAR(64),
            user_agent  TEXT,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id   ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity     ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")
    op.execute("CREATE INDEX ix_audit_trail_action     ON audit_trail(action)")

    # ── Seed: built-in roles ──────────────────────────────────────────────
    for name, description in BUILT_IN_ROLES:
        op.execute(
            f"INSERT INTO roles (name, description) VALUES ('{name}', '{description}') "
            "ON CONFLICT (name) DO NOTHING"
        )


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "import_jobs",
        "export_jobs",
        "user_permissions",
        "role_permissions",
        "permissions",
        "bangladesh_addresses",
        "roster_schedules",
        "employees",
        "shifts",
        "lines",
        "degrees",
        "designations",
        "sections",
        "departments",
        "user_sessions",
        "user_companies",
        "user_roles",
        "roles",
        "users",
        "companies",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")
