"""Enums and constants for HR Hub."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "Admin"
    manager = "Manager"
    employee = "Employee"
    it = "IT"
    hr = "HR"
    hr_manager = "HR Manager"


ROLE_DESCRIPTIONS: dict[UserRole, str] = {
    UserRole.admin: "Full access to every company and setting",
    UserRole.manager: "Reads organisation data for assigned companies",
    UserRole.employee: "Default role for registered users",
    UserRole.it: "Manages system, permissions and data transfer",
    UserRole.hr: "Maintains employees, degrees and rosters",
    UserRole.hr_manager: "HR plus organisation structure management",
}

DEFAULT_ROLE = UserRole.employee

# Role sets reused by routers
ORG_READ_ROLES = (
    UserRole.admin, UserRole.manager, UserRole.hr, UserRole.hr_manager, UserRole.it,
)
ORG_WRITE_ROLES = (UserRole.admin, UserRole.hr_manager, UserRole.it)
ORG_DELETE_ROLES = (UserRole.admin, UserRole.it)
HR_WRITE_ROLES = (UserRole.admin, UserRole.hr, UserRole.hr_manager)
PERMISSION_READ_ROLES = (UserRole.admin, UserRole.it, UserRole.hr_manager)
PERMISSION_WRITE_ROLES = (UserRole.admin, UserRole.it)
SYSTEM_ROLES = (UserRole.admin, UserRole.it)
SYSTEM_READ_ROLES = (UserRole.admin, UserRole.it, UserRole.hr_manager)
EXPORT_ROLES = (UserRole.admin, UserRole.it, UserRole.hr_manager)
IMPORT_ROLES = (UserRole.admin, UserRole.it)


# ── Roster ──────────────────────────────────────────────────────────

class RosterStatus(str, enum.Enum):
    scheduled = "Scheduled"
    confirmed = "Confirmed"
    completed = "Completed"
    cancelled = "Cancelled"
    absent = "Absent"


ROSTER_STATUS_BANGLA: dict[RosterStatus, str] = {
    RosterStatus.scheduled: "নির্ধারিত",
    RosterStatus.confirmed: "নিশ্চিত",
    RosterStatus.completed: "সম্পন্ন",
    RosterStatus.cancelled: "বাতিল",
    RosterStatus.absent: "অনুপস্থিত",
}

# Sunday=0 … Saturday=6; default working week is Monday to Friday
DEFAULT_WORK_DAYS = (1, 2, 3, 4, 5)


# ── Permissions ─────────────────────────────────────────────────────

class PermissionAction(str, enum.Enum):
    read = "read"
    create = "create"
    update = "update"
    delete = "delete"


PERMISSION_MODULES: tuple[str, ...] = (
    "company",
    "department",
    "section",
    "designation",
    "degree",
    "line",
    "shift",
    "employee",
    "roster",
    "address",
    "user",
    "permission",
    "import_export",
    "system",
)


# ── Data transfer ───────────────────────────────────────────────────

class TransferFormat(str, enum.Enum):
    csv = "csv"
    json = "json"


class ImportMode(str, enum.Enum):
    insert = "insert"
    upsert = "upsert"


class JobStatus(str, enum.Enum):
    processing = "Processing"
    completed = "Completed"
    completed_with_errors = "CompletedWithErrors"
    failed = "Failed"


# ── Pagination ──────────────────────────────────────────────────────

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
DATE_FORMAT = "%Y-%m-%d"
TIMEZONE = "Asia/Dhaka"
