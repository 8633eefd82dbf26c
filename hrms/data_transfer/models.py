"""Import / export job history."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from hrms.common.audit import JSONType, utcnow
from hrms.database import Base


class ExportJob(Base):
    __tablename__ = "export_jobs"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    table_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    format: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    file_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    row_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    file_size: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, server_default=sa.func.now(),
    )


class ImportJob(Base):
    __tablename__ = "import_jobs"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    table_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    format: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    mode: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    file_name: Mapped[Optional[str]] = mapped_column(sa.String(255))
    total_rows: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    imported_rows: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    failed_rows: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    errors: Mapped[Optional[list]] = mapped_column(JSONType)
    status: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow, server_default=sa.func.now(),
    )
