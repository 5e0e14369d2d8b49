"""Mobile number lifecycle API endpoints."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from phone_registry.core.deps import OperatorSession, get_current_operator, get_db
from phone_registry.db.enums import NumberStatus
from phone_registry.schemas.mobile_number import (
    AssignRequest,
    HandleRiskRequest,
    MobileNumberCreate,
    MobileNumberDetail,
    MobileNumberListResponse,
    MobileNumberRead,
    MobileNumberUpdate,
    UnassignRequest,
)
from phone_registry.services import number_service
from phone_registry.utils.dates import utc_today
from phone_registry.utils.pagination import PaginatedResponse, PaginationParams, get_pagination

router = APIRouter(dependencies=[Depends(get_current_operator)])


@router.post("", response_model=MobileNumberRead, status_code=status.HTTP_201_CREATED)
def create_number(data: MobileNumberCreate, db: Session = Depends(get_db)):
    """Register a number in stock (idle)."""
    return number_service.create_number(
        db,
        phone_number=data.phone_number,
        application_date=data.application_date,
        applicant_employee_id=data.applicant_employee_id,
        applicant_name=data.applicant_name,
        purpose=data.purpose,
        vendor=data.vendor,
        remarks=data.remarks,
    )


@router.get("", response_model=MobileNumberListResponse)
def list_numbers(
    pagination: PaginationParams = Depends(get_pagination),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    search: str | None = None,
    number_status: NumberStatus | None = Query(None, alias="status"),
    applicant_status: str | None = Query(None, alias="applicantStatus"),
    db: Session = Depends(get_db),
):
    """Paged list of numbers (risk_pending numbers are listed separately)."""
    items, total = number_service.list_numbers(
        db,
        pagination,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        status=number_status,
        applicant_status=applicant_status,
    )
    return PaginatedResponse.create(items, total, pagination)


@router.get("/risk-pending", response_model=MobileNumberListResponse)
def list_risk_pending_numbers(
    pagination: PaginationParams = Depends(get_pagination),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    search: str | None = None,
    applicant_status: str | None = Query(None, alias="applicantStatus"),
    db: Session = Depends(get_db),
):
    items, total = number_service.list_risk_pending_numbers(
        db,
        pagination,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        applicant_status=applicant_status,
    )
    return PaginatedResponse.create(items, total, pagination)


@router.get("/{phone_number}", response_model=MobileNumberDetail)
def get_number(phone_number: str, db: Session = Depends(get_db)):
    return number_service.get_number_detail(db, phone_number)


@router.put("/{phone_number}", response_model=MobileNumberRead)
def update_number(phone_number: str, data: MobileNumberUpdate, db: Session = Depends(get_db)):
    """Patch status/purpose/vendor/remarks."""
    return number_service.update_number(db, phone_number, data.model_dump(exclude_unset=True))


@router.post("/{phone_number}/assign", response_model=MobileNumberRead)
def assign_number(phone_number: str, data: AssignRequest, db: Session = Depends(get_db)):
    return number_service.assign_number(
        db,
        phone_number,
        data.employee_id,
        data.assignment_date or utc_today(),
        purpose=data.purpose,
    )


@router.post("/{phone_number}/unassign", response_model=MobileNumberRead)
def unassign_number(
    phone_number: str,
    data: UnassignRequest | None = None,
    db: Session = Depends(get_db),
):
    reclaim_date = data.reclaim_date if data and data.reclaim_date else utc_today()
    return number_service.unassign_number(db, phone_number, reclaim_date)


@router.post("/{phone_number}/handle-risk", response_model=MobileNumberRead)
def handle_risk(
    phone_number: str,
    data: HandleRiskRequest,
    db: Session = Depends(get_db),
    operator: OperatorSession = Depends(get_current_operator),
):
    """Resolve a risk_pending number. The operator is the token subject."""
    return number_service.handle_risk(
        db,
        phone_number,
        data.action,
        operator_employee_id=operator.employee_id,
        new_applicant_employee_id=data.new_applicant_employee_id,
        remarks=data.remarks,
    )
