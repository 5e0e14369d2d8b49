"""Employee models."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Index, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from phone_registry.db.base import Base
from phone_registry.db.enums import DEFAULT_EMPLOYMENT_STATUS
from phone_registry.utils.dates import utc_now


class Employee(Base):
    """
    Company employee.

    `employee_id` is the business identifier (EMP0000001) allocated before
    insert by employee_service.allocate_employee_id. Rows are soft deleted
    via `deleted_at` and never physically removed.
    """

    __tablename__ = "employees"
    __table_args__ = (
        Index("idx_employees_department_status", "department", "employment_status"),
        Index(
            "uq_employees_email_active",
            "email",
            unique=True,
            postgresql_where=text("email IS NOT NULL AND deleted_at IS NULL"),
            sqlite_where=text("email IS NOT NULL AND deleted_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    employment_status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_EMPLOYMENT_STATUS.value,
        server_default=text(f"'{DEFAULT_EMPLOYMENT_STATUS.value}'"),
        nullable=False,
    )
    hire_date: Mapped[date | None] = mapped_column(nullable=True)
    termination_date: Mapped[date | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, server_default=func.now(), nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)


class EmployeeIdSequence(Base):
    """
    Counter backing business employee ID allocation.

    One row per prefix; allocation increments `next_value` under a row lock.
    """

    __tablename__ = "employee_id_sequences"

    prefix: Mapped[str] = mapped_column(String(10), primary_key=True)
    next_value: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
