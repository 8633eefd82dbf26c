"""Common module — shared utilities for HR Hub."""

from hrms.common.audit import AuditMixin, AuditTrail, create_audit_entry
from hrms.common.constants import (
    DATE_FORMAT,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PERMISSION_MODULES,
    TIMEZONE,
    ImportMode,
    JobStatus,
    PermissionAction,
    RosterStatus,
    TransferFormat,
    UserRole,
)
from hrms.common.exceptions import (
    AppException,
    BadRequestException,
    ConflictError,
    ForbiddenException,
    InUseException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)
from hrms.common.filters import apply_filters, apply_search, apply_sorting, name_equals
from hrms.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)
from hrms.common.schemas import PartialUpdate

__all__ = [
    # Audit
    "AuditMixin",
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "ImportMode",
    "JobStatus",
    "PermissionAction",
    "RosterStatus",
    "TransferFormat",
    "UserRole",
    "PERMISSION_MODULES",
    "DATE_FORMAT",
    "TIMEZONE",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "BadRequestException",
    "ConflictError",
    "ForbiddenException",
    "InUseException",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    "apply_sorting",
    "name_equals",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
    # Schemas
    "PartialUpdate",
]
