"""Employee service - the minimal employee collaborator used by the number lifecycle and campaigns."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from phone_registry.core.exceptions import (
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from phone_registry.db.enums import EmploymentStatus, NumberStatus, VerificationScope
from phone_registry.db.models import Employee, EmployeeIdSequence, MobileNumber
from phone_registry.utils.dates import utc_today
from phone_registry.utils.normalization import (
    is_valid_email,
    normalize_email,
    normalize_name,
)

logger = logging.getLogger(__name__)

EMPLOYEE_ID_PREFIX = "EMP"
EMPLOYEE_ID_DIGITS = 7


# =============================================================================
# Business ID allocation
# =============================================================================


def format_employee_id(value: int) -> str:
    return f"{EMPLOYEE_ID_PREFIX}{value:0{EMPLOYEE_ID_DIGITS}d}"


def allocate_employee_id(db: Session) -> str:
    """
    Reserve the next business employee ID (EMP0000001, EMP0000002, ...).

    Increments the counter row under a row lock so concurrent allocations
    never hand out the same value. The caller inserts the employee with the
    returned ID in the same transaction.
    """
    sequence = db.execute(
        select(EmployeeIdSequence)
        .where(EmployeeIdSequence.prefix == EMPLOYEE_ID_PREFIX)
        .with_for_update()
    ).scalar_one_or_none()

    if sequence is None:
        try:
            with db.begin_nested():
                sequence = EmployeeIdSequence(prefix=EMPLOYEE_ID_PREFIX, next_value=1)
                db.add(sequence)
        except IntegrityError:
            # Another allocator created the counter first
            sequence = db.execute(
                select(EmployeeIdSequence)
                .where(EmployeeIdSequence.prefix == EMPLOYEE_ID_PREFIX)
                .with_for_update()
            ).scalar_one()

    value = sequence.next_value
    sequence.next_value = value + 1
    db.flush()
    return format_employee_id(value)


# =============================================================================
# CRUD (minimal)
# =============================================================================


def create_employee(
    db: Session,
    *,
    full_name: str,
    email: str | None = None,
    department: str | None = None,
    hire_date: date | None = None,
) -> Employee:
    """Create an active employee with a freshly allocated business ID."""
    name = normalize_name(full_name)
    if not name:
        raise ValidationError("full_name is required")

    email_norm = normalize_email(email)
    if email_norm and not is_valid_email(email_norm):
        raise ValidationError(f"Invalid email address '{email}'")

    if email_norm:
        existing = (
            db.query(Employee)
            .filter(Employee.email == email_norm, Employee.deleted_at.is_(None))
            .first()
        )
        if existing:
            raise ConflictError(f"Email {email_norm} is already used by {existing.employee_id}")

    employee = Employee(
        employee_id=allocate_employee_id(db),
        full_name=name,
        email=email_norm,
        department=normalize_name(department),
        hire_date=hire_date,
        employment_status=EmploymentStatus.ACTIVE.value,
    )
    db.add(employee)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Employee conflicts with an existing record") from exc
    db.refresh(employee)
    logger.info("Created employee %s", employee.employee_id)
    return employee


def get_employee(db: Session, employee_id: str) -> Employee | None:
    """Get a non-deleted employee by business ID."""
    return (
        db.query(Employee)
        .filter(Employee.employee_id == employee_id, Employee.deleted_at.is_(None))
        .first()
    )


def get_by_id(db: Session, employee_id: str) -> Employee:
    """Get a non-deleted employee by business ID or raise NotFoundError."""
    employee = get_employee(db, employee_id)
    if not employee:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


def get_employees_by_full_name(db: Session, full_name: str) -> list[Employee]:
    name = normalize_name(full_name)
    if not name:
        return []
    return (
        db.query(Employee)
        .filter(Employee.full_name == name, Employee.deleted_at.is_(None))
        .order_by(Employee.id)
        .all()
    )


def require_active(db: Session, employee_id: str, role: str = "Employee") -> Employee:
    """Load an employee and check it is Active (PreconditionFailedError otherwise)."""
    employee = get_by_id(db, employee_id)
    if employee.employment_status != EmploymentStatus.ACTIVE.value:
        raise PreconditionFailedError(
            f"{role} {employee_id} is not active (status: {employee.employment_status})"
        )
    return employee


# =============================================================================
# Scope resolution
# =============================================================================


def find_active_by_scope(
    db: Session,
    scope: VerificationScope,
    values: list[str] | None = None,
) -> list[Employee]:
    """
    Resolve a campaign scope to active, non-deleted employees.

    - ALL_USERS: every active employee
    - DEPARTMENT: active employees whose department is in `values`
    - EMPLOYEE_IDS: active employees whose business ID is in `values`

    Ordered by business ID so batch runs are deterministic.
    """
    cleaned = [v.strip() for v in (values or []) if v and v.strip()]

    query = db.query(Employee).filter(
        Employee.employment_status == EmploymentStatus.ACTIVE.value,
        Employee.deleted_at.is_(None),
    )
    if scope == VerificationScope.ALL_USERS:
        pass
    elif scope == VerificationScope.DEPARTMENT:
        if not cleaned:
            raise ValidationError("At least one department name is required")
        query = query.filter(Employee.department.in_(cleaned))
    elif scope == VerificationScope.EMPLOYEE_IDS:
        if not cleaned:
            raise ValidationError("At least one employee ID is required")
        query = query.filter(Employee.employee_id.in_(cleaned))
    else:
        raise ValidationError(f"Unknown scope: {scope}")

    return query.order_by(Employee.employee_id).all()


# =============================================================================
# Employment status
# =============================================================================


def change_employment_status(
    db: Session,
    employee_id: str,
    status: EmploymentStatus,
    termination_date: date | None = None,
) -> Employee:
    """
    Change an employee's employment status.

    Departure is refused while the employee still holds in_use numbers
    (they must be reclaimed first). On departure every number the employee
    procured is flagged risk_pending in the same transaction.
    """
    # Imported here to avoid a circular import with number_service
    from phone_registry.services import number_service

    employee = db.execute(
        select(Employee)
        .where(Employee.employee_id == employee_id, Employee.deleted_at.is_(None))
        .with_for_update()
    ).scalar_one_or_none()
    if not employee:
        raise NotFoundError(f"Employee {employee_id} not found")

    previous = employee.employment_status
    if status == EmploymentStatus.DEPARTED:
        held = (
            db.query(MobileNumber.phone_number)
            .filter(
                MobileNumber.current_employee_id == employee_id,
                MobileNumber.status == NumberStatus.IN_USE.value,
                MobileNumber.deleted_at.is_(None),
            )
            .all()
        )
        if held:
            phones = ", ".join(row.phone_number for row in held)
            raise PreconditionFailedError(
                f"Employee {employee_id} still holds numbers in use ({phones}); reclaim them first"
            )
        employee.employment_status = EmploymentStatus.DEPARTED.value
        employee.termination_date = termination_date or employee.termination_date or utc_today()
        flagged = 0
        if previous != EmploymentStatus.DEPARTED.value:
            flagged = number_service.flag_numbers_for_departed_applicant(db, employee_id)
        logger.info(
            "Employee %s departed; %s procured numbers flagged risk_pending",
            employee_id,
            flagged,
        )
    else:
        employee.employment_status = EmploymentStatus.ACTIVE.value
        employee.termination_date = None

    db.commit()
    db.refresh(employee)
    return employee
