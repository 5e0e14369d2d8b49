"""Employee endpoints (minimal collaborator surface)."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from phone_registry.core.deps import get_current_operator, get_db
from phone_registry.schemas.employee import EmployeeCreate, EmployeeRead, EmployeeStatusUpdate
from phone_registry.services import employee_service

router = APIRouter(dependencies=[Depends(get_current_operator)])


@router.post("", response_model=EmployeeRead, status_code=status.HTTP_201_CREATED)
def create_employee(data: EmployeeCreate, db: Session = Depends(get_db)):
    return employee_service.create_employee(
        db,
        full_name=data.full_name,
        email=data.email,
        department=data.department,
        hire_date=data.hire_date,
    )


@router.get("/{employee_id}", response_model=EmployeeRead)
def get_employee(employee_id: str, db: Session = Depends(get_db)):
    return employee_service.get_by_id(db, employee_id)


@router.patch("/{employee_id}/status", response_model=EmployeeRead)
def change_status(employee_id: str, data: EmployeeStatusUpdate, db: Session = Depends(get_db)):
    """
    Change employment status.

    Departing flags every number the employee procured as risk_pending.
    """
    return employee_service.change_employment_status(
        db, employee_id, data.status, termination_date=data.termination_date
    )
