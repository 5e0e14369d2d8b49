"""Number lifecycle service - possession state machine and history trails for mobile numbers."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, aliased

from phone_registry.core.exceptions import (
    ConflictError,
    DataInconsistencyError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from phone_registry.db.enums import (
    PATCHABLE_NUMBER_STATUSES,
    NumberStatus,
    RiskAction,
)
from phone_registry.db.models import (
    Employee,
    MobileNumber,
    NumberApplicantHistory,
    NumberUsageHistory,
)
from phone_registry.services import employee_service
from phone_registry.utils.dates import utc_now, utc_today
from phone_registry.utils.normalization import normalize_phone
from phone_registry.utils.pagination import (
    PaginationParams,
    normalize_sort_order,
    paginate_query,
)

logger = logging.getLogger(__name__)

# Statuses from which a number with a holder can be reclaimed
RECLAIMABLE_STATUSES = {
    NumberStatus.IN_USE.value,
    NumberStatus.USER_REPORTED.value,
    NumberStatus.RISK_PENDING.value,
}

PATCH_FIELDS = ("status", "purpose", "vendor", "remarks")


def _phone_or_validation_error(phone: str) -> str:
    try:
        return normalize_phone(phone)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


# =============================================================================
# Lookups
# =============================================================================


def get_number(db: Session, phone_number: str) -> MobileNumber | None:
    """Get a non-deleted number by phone string."""
    return (
        db.query(MobileNumber)
        .filter(
            MobileNumber.phone_number == phone_number,
            MobileNumber.deleted_at.is_(None),
        )
        .first()
    )


def _lock_number(db: Session, phone_number: str) -> MobileNumber:
    """Load a number with a write lock held until commit/rollback."""
    number = db.execute(
        select(MobileNumber)
        .where(
            MobileNumber.phone_number == phone_number,
            MobileNumber.deleted_at.is_(None),
        )
        .with_for_update()
    ).scalar_one_or_none()
    if not number:
        raise NotFoundError(f"Mobile number {phone_number} not found")
    return number


def _open_usage_row(db: Session, number: MobileNumber) -> NumberUsageHistory:
    """The single open possession interval for the number's current holder."""
    rows = (
        db.query(NumberUsageHistory)
        .filter(
            NumberUsageHistory.mobile_number_id == number.id,
            NumberUsageHistory.employee_id == number.current_employee_id,
            NumberUsageHistory.end_date.is_(None),
        )
        .all()
    )
    if len(rows) != 1:
        logger.error(
            "Number %s held by %s has %s open usage intervals",
            number.phone_number,
            number.current_employee_id,
            len(rows),
        )
        raise DataInconsistencyError(
            f"Expected one open usage record for {number.phone_number} "
            f"held by {number.current_employee_id}, found {len(rows)}"
        )
    return rows[0]


def _close_possession(db: Session, number: MobileNumber, end_date: date) -> None:
    """Close the open interval and clear the holder."""
    open_row = _open_usage_row(db, number)
    if end_date < open_row.start_date:
        raise ValidationError(
            f"Reclaim date {end_date} is before the assignment date {open_row.start_date}"
        )
    open_row.end_date = end_date
    number.current_employee_id = None


def resolve_applicant_name(db: Session, full_name: str) -> str:
    """
    Resolve an applicant's full name to a business employee ID.

    Raises:
        NotFoundError: No employee with that name
        ConflictError: Several employees share the name
    """
    matches = employee_service.get_employees_by_full_name(db, full_name)
    if not matches:
        raise NotFoundError(f"No employee named '{full_name}'")
    if len(matches) > 1:
        ids = ", ".join(e.employee_id for e in matches)
        raise ConflictError(f"Name '{full_name}' is ambiguous ({ids}); use an employee ID")
    return matches[0].employee_id


# =============================================================================
# Create / update
# =============================================================================


def create_number(
    db: Session,
    *,
    phone_number: str,
    application_date: date,
    applicant_employee_id: str | None = None,
    applicant_name: str | None = None,
    purpose: str | None = None,
    vendor: str | None = None,
    remarks: str | None = None,
) -> MobileNumber:
    """
    Register a number in stock (status idle).

    The phone string must be unique across all rows, soft-deleted included.
    """
    phone = _phone_or_validation_error(phone_number)

    if not applicant_employee_id:
        if not applicant_name:
            raise ValidationError("applicant_employee_id or applicant_name is required")
        applicant_employee_id = resolve_applicant_name(db, applicant_name)
    employee_service.get_by_id(db, applicant_employee_id)

    existing = db.query(MobileNumber.id).filter(MobileNumber.phone_number == phone).first()
    if existing:
        raise ConflictError(f"Mobile number {phone} already exists")

    number = MobileNumber(
        phone_number=phone,
        applicant_employee_id=applicant_employee_id,
        application_date=application_date,
        status=NumberStatus.IDLE.value,
        purpose=purpose,
        vendor=vendor,
        remarks=remarks,
    )
    db.add(number)
    db.commit()
    db.refresh(number)
    logger.info("Created mobile number id=%s", number.id)
    return number


def update_number(db: Session, phone_number: str, patch: dict[str, Any]) -> MobileNumber:
    """
    Patch status/purpose/vendor/remarks.

    Possession changes are not allowed here: in_use is only reachable via
    assign_number, a held number must be unassigned first, and risk_pending
    numbers are resolved through handle_risk.
    """
    changes = {k: v for k, v in patch.items() if k in PATCH_FIELDS and v is not None}
    if not changes:
        raise ValidationError("No update fields provided")

    number = _lock_number(db, phone_number)
    if number.status == NumberStatus.RISK_PENDING.value:
        raise InvalidStateError(
            f"Number {phone_number} is risk_pending; resolve it with handle-risk"
        )

    new_status = changes.pop("status", None)
    if new_status is not None:
        new_status = NumberStatus(new_status)
        if new_status == NumberStatus.IN_USE:
            raise InvalidStateError("Use assign to put a number in use")
        if new_status not in PATCHABLE_NUMBER_STATUSES:
            raise InvalidStateError(f"Status {new_status.value} cannot be set directly")
        if new_status.value != number.status:
            if number.current_employee_id is not None:
                raise InvalidStateError(
                    f"Number {phone_number} is held by {number.current_employee_id}; unassign it first"
                )
            if new_status == NumberStatus.DEACTIVATED:
                number.cancellation_date = utc_today()
            elif number.status == NumberStatus.DEACTIVATED.value:
                number.cancellation_date = None
            number.status = new_status.value

    for field, value in changes.items():
        setattr(number, field, value)

    db.commit()
    db.refresh(number)
    return number


# =============================================================================
# Possession transitions
# =============================================================================


def assign_number(
    db: Session,
    phone_number: str,
    employee_id: str,
    assignment_date: date,
    purpose: str | None = None,
) -> MobileNumber:
    """
    Assign an idle number to an active employee and open a usage interval.

    Raises:
        NotFoundError: Number or employee missing
        InvalidStateError: Number is not idle
        PreconditionFailedError: Employee is not Active
    """
    number = _lock_number(db, phone_number)
    employee = employee_service.require_active(db, employee_id)

    if number.status != NumberStatus.IDLE.value:
        raise InvalidStateError(
            f"Number {phone_number} is {number.status}; only idle numbers can be assigned"
        )

    number.current_employee_id = employee.employee_id
    number.status = NumberStatus.IN_USE.value
    if purpose:
        number.purpose = purpose
    db.add(
        NumberUsageHistory(
            mobile_number_id=number.id,
            employee_id=employee.employee_id,
            start_date=assignment_date,
            purpose=purpose or number.purpose,
        )
    )
    db.commit()
    db.refresh(number)
    logger.info("Assigned number id=%s to %s", number.id, employee.employee_id)
    return number


def unassign_number(db: Session, phone_number: str, reclaim_date: date) -> MobileNumber:
    """
    Reclaim a held number back to idle, closing its open usage interval.

    Raises:
        InvalidStateError: Number has no holder to reclaim from
        DataInconsistencyError: Holder set but no open interval exists
    """
    number = _lock_number(db, phone_number)
    if number.status not in RECLAIMABLE_STATUSES or number.current_employee_id is None:
        raise InvalidStateError(
            f"Number {phone_number} is {number.status} with no current holder; nothing to reclaim"
        )

    previous_holder = number.current_employee_id
    _close_possession(db, number, reclaim_date)
    number.status = NumberStatus.IDLE.value
    db.commit()
    db.refresh(number)
    logger.info("Reclaimed number id=%s from %s", number.id, previous_holder)
    return number


def handle_risk(
    db: Session,
    phone_number: str,
    action: RiskAction,
    operator_employee_id: str,
    new_applicant_employee_id: str | None = None,
    remarks: str | None = None,
) -> MobileNumber:
    """
    Resolve a risk_pending number.

    - change_applicant: hand procurement to another active employee
    - reclaim: close any open interval and return to idle
    - deactivate: close any open interval and cancel the number
    """
    employee_service.require_active(db, operator_employee_id, role="Operator")
    number = _lock_number(db, phone_number)
    if number.status != NumberStatus.RISK_PENDING.value:
        raise InvalidStateError(
            f"Number {phone_number} is {number.status}; only risk_pending numbers can be handled"
        )

    today = utc_today()
    if action == RiskAction.CHANGE_APPLICANT:
        if not new_applicant_employee_id:
            raise ValidationError("new_applicant_id is required for change_applicant")
        if new_applicant_employee_id == number.applicant_employee_id:
            raise ValidationError("New applicant is the same as the current applicant")
        employee_service.require_active(db, new_applicant_employee_id, role="New applicant")
        db.add(
            NumberApplicantHistory(
                mobile_number_id=number.id,
                previous_applicant_employee_id=number.applicant_employee_id,
                new_applicant_employee_id=new_applicant_employee_id,
                change_date=utc_now(),
                operator_employee_id=operator_employee_id,
                remarks=remarks,
            )
        )
        number.applicant_employee_id = new_applicant_employee_id
        number.status = (
            NumberStatus.IN_USE.value
            if number.current_employee_id is not None
            else NumberStatus.IDLE.value
        )
    elif action == RiskAction.RECLAIM:
        if number.current_employee_id is not None:
            _close_possession(db, number, today)
        number.status = NumberStatus.IDLE.value
    elif action == RiskAction.DEACTIVATE:
        if number.current_employee_id is not None:
            _close_possession(db, number, today)
        number.status = NumberStatus.DEACTIVATED.value
        number.cancellation_date = today
    else:
        raise ValidationError(f"Unknown risk action: {action}")

    if remarks:
        number.remarks = remarks

    db.commit()
    db.refresh(number)
    logger.info(
        "Risk handled for number id=%s action=%s operator=%s",
        number.id,
        action.value,
        operator_employee_id,
    )
    return number


def flag_numbers_for_departed_applicant(db: Session, employee_id: str) -> int:
    """
    Move every non-deactivated number procured by `employee_id` to risk_pending.

    Runs inside the caller's transaction (no commit). Returns the count.
    """
    numbers = (
        db.execute(
            select(MobileNumber)
            .where(
                MobileNumber.applicant_employee_id == employee_id,
                MobileNumber.deleted_at.is_(None),
                MobileNumber.status.notin_(
                    [NumberStatus.DEACTIVATED.value, NumberStatus.RISK_PENDING.value]
                ),
            )
            .with_for_update()
        )
        .scalars()
        .all()
    )
    for number in numbers:
        number.status = NumberStatus.RISK_PENDING.value
    db.flush()
    return len(numbers)


# =============================================================================
# Listing and detail
# =============================================================================

Applicant = aliased(Employee, name="applicant")
Holder = aliased(Employee, name="holder")

SORT_COLUMNS = {
    "id": MobileNumber.id,
    "phoneNumber": MobileNumber.phone_number,
    "applicationDate": MobileNumber.application_date,
    "status": MobileNumber.status,
    "vendor": MobileNumber.vendor,
    "createdAt": MobileNumber.created_at,
    "applicantName": Applicant.full_name,
    "currentUserName": Holder.full_name,
    "applicantStatus": Applicant.employment_status,
}
DEFAULT_SORT = "createdAt"


def _number_list_query(db: Session, search: str | None, applicant_status: str | None):
    query = (
        db.query(
            MobileNumber,
            Applicant.full_name.label("applicant_name"),
            Applicant.employment_status.label("applicant_status"),
            Applicant.termination_date.label("applicant_termination_date"),
            Holder.full_name.label("current_user_name"),
        )
        .outerjoin(Applicant, Applicant.employee_id == MobileNumber.applicant_employee_id)
        .outerjoin(Holder, Holder.employee_id == MobileNumber.current_employee_id)
        .filter(MobileNumber.deleted_at.is_(None))
    )
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                MobileNumber.phone_number.like(term),
                Applicant.full_name.like(term),
                Holder.full_name.like(term),
            )
        )
    if applicant_status:
        query = query.filter(Applicant.employment_status == applicant_status)
    return query


def _apply_sort(query, sort_by: str | None, sort_order: str | None):
    if not sort_by:
        return query.order_by(MobileNumber.created_at.desc(), MobileNumber.id.desc())
    column = SORT_COLUMNS.get(sort_by, SORT_COLUMNS[DEFAULT_SORT])
    if normalize_sort_order(sort_order) == "desc":
        return query.order_by(column.desc(), MobileNumber.id.desc())
    return query.order_by(column.asc(), MobileNumber.id.asc())


def _list_row(row) -> dict[str, Any]:
    number: MobileNumber = row[0]
    return {
        "id": number.id,
        "phone_number": number.phone_number,
        "applicant_employee_id": number.applicant_employee_id,
        "applicant_name": row.applicant_name,
        "applicant_status": row.applicant_status,
        "applicant_termination_date": row.applicant_termination_date,
        "application_date": number.application_date,
        "current_employee_id": number.current_employee_id,
        "current_user_name": row.current_user_name,
        "status": number.status,
        "purpose": number.purpose,
        "vendor": number.vendor,
        "remarks": number.remarks,
        "cancellation_date": number.cancellation_date,
        "last_confirmation_date": number.last_confirmation_date,
        "created_at": number.created_at,
        "updated_at": number.updated_at,
    }


def list_numbers(
    db: Session,
    pagination: PaginationParams,
    sort_by: str | None = None,
    sort_order: str | None = None,
    search: str | None = None,
    status: NumberStatus | None = None,
    applicant_status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    """
    Paged number list with applicant and holder names.

    risk_pending numbers are listed separately (list_risk_pending_numbers).
    Unknown sort keys fall back to createdAt.
    """
    query = _number_list_query(db, search, applicant_status).filter(
        MobileNumber.status != NumberStatus.RISK_PENDING.value
    )
    if status:
        query = query.filter(MobileNumber.status == status.value)
    query = _apply_sort(query, sort_by, sort_order)
    rows, total = paginate_query(query, pagination)
    return [_list_row(row) for row in rows], total


def list_risk_pending_numbers(
    db: Session,
    pagination: PaginationParams,
    sort_by: str | None = None,
    sort_order: str | None = None,
    search: str | None = None,
    applicant_status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    """Paged list of numbers awaiting risk resolution."""
    query = _number_list_query(db, search, applicant_status).filter(
        MobileNumber.status == NumberStatus.RISK_PENDING.value
    )
    query = _apply_sort(query, sort_by, sort_order)
    rows, total = paginate_query(query, pagination)
    return [_list_row(row) for row in rows], total


def get_number_detail(db: Session, phone_number: str) -> dict[str, Any]:
    """Number with applicant/holder names and usage history (newest first)."""
    row = (
        _number_list_query(db, None, None)
        .filter(MobileNumber.phone_number == phone_number)
        .first()
    )
    if not row:
        raise NotFoundError(f"Mobile number {phone_number} not found")
    detail = _list_row(row)
    history = (
        db.query(NumberUsageHistory)
        .filter(NumberUsageHistory.mobile_number_id == detail["id"])
        .order_by(NumberUsageHistory.start_date.desc(), NumberUsageHistory.id.desc())
        .all()
    )
    detail["usage_history"] = history
    return detail
