"""Mobile number models and their append-only history trails."""

from __future__ import annotations

from typing import TYPE_CHECKING

from datetime import date, datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from phone_registry.db.base import Base
from phone_registry.db.enums import DEFAULT_NUMBER_STATUS
from phone_registry.utils.dates import utc_now

if TYPE_CHECKING:
    from phone_registry.db.models import Employee


class MobileNumber(Base):
    """
    Company-issued mobile number.

    status = in_use implies current_employee_id is set, and a set
    current_employee_id has exactly one open NumberUsageHistory row.
    """

    __tablename__ = "mobile_numbers"
    __table_args__ = (
        Index("idx_mobile_numbers_status", "status"),
        Index("idx_mobile_numbers_applicant", "applicant_employee_id"),
        Index("idx_mobile_numbers_current", "current_employee_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Unique across soft-deleted rows too
    phone_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    applicant_employee_id: Mapped[str] = mapped_column(
        String(10), ForeignKey("employees.employee_id"), nullable=False
    )
    application_date: Mapped[date] = mapped_column(nullable=False)
    current_employee_id: Mapped[str | None] = mapped_column(
        String(10), ForeignKey("employees.employee_id"), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(30),
        default=DEFAULT_NUMBER_STATUS.value,
        server_default=text(f"'{DEFAULT_NUMBER_STATUS.value}'"),
        nullable=False,
    )
    purpose: Mapped[str | None] = mapped_column(String(255), nullable=True)
    vendor: Mapped[str | None] = mapped_column(String(100), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_date: Mapped[date | None] = mapped_column(nullable=True)
    last_confirmation_date: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, server_default=func.now(), nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    applicant: Mapped["Employee"] = relationship(foreign_keys=[applicant_employee_id])
    current_holder: Mapped["Employee | None"] = relationship(
        foreign_keys=[current_employee_id]
    )
    usage_history: Mapped[list["NumberUsageHistory"]] = relationship(
        back_populates="mobile_number",
        order_by="NumberUsageHistory.start_date.desc()",
    )


class NumberUsageHistory(Base):
    """
    One possession interval of a number. Append-only; the only mutation
    ever applied is closing the open interval (setting end_date).
    """

    __tablename__ = "number_usage_history"
    __table_args__ = (
        Index("idx_usage_history_number", "mobile_number_id", "start_date"),
        Index(
            "uq_usage_history_open_interval",
            "mobile_number_id",
            unique=True,
            postgresql_where=text("end_date IS NULL"),
            sqlite_where=text("end_date IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mobile_number_id: Mapped[int] = mapped_column(
        ForeignKey("mobile_numbers.id"), nullable=False
    )
    employee_id: Mapped[str] = mapped_column(
        String(10), ForeignKey("employees.employee_id"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(nullable=False)
    end_date: Mapped[date | None] = mapped_column(nullable=True)
    purpose: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utc_now, server_default=func.now(), nullable=False
    )

    mobile_number: Mapped["MobileNumber"] = relationship(back_populates="usage_history")


class NumberApplicantHistory(Base):
    """Append-only log of applicant (procurer) changes."""

    __tablename__ = "number_applicant_history"
    __table_args__ = (Index("idx_applicant_history_number", "mobile_number_id", "change_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mobile_number_id: Mapped[int] = mapped_column(
        ForeignKey("mobile_numbers.id"), nullable=False
    )
    previous_applicant_employee_id: Mapped[str] = mapped_column(String(10), nullable=False)
    new_applicant_employee_id: Mapped[str] = mapped_column(String(10), nullable=False)
    change_date: Mapped[datetime] = mapped_column(nullable=False)
    operator_employee_id: Mapped[str] = mapped_column(String(10), nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
