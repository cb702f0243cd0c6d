"""
Employee endpoints: creation, status, manager hierarchy
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from leave_mgmt.core.deps import get_db, get_current_user
from leave_mgmt.core.errors import unwrap
from leave_mgmt.models.user import User
from leave_mgmt.schemas.employee import (
    EmployeeCreate,
    EmployeeOut,
    EmployeeListResponse,
    ManagerUpdate,
    StatusUpdate,
)
from leave_mgmt.services import employee_service
from leave_mgmt.workflow import permissions
from leave_mgmt.workflow.permissions import Operation

router = APIRouter()


@router.post("", response_model=EmployeeOut, status_code=201)
async def create_employee_endpoint(
    employee_data: EmployeeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create an employee and optionally its login account (HR/Admin)"""
    return unwrap(employee_service.create_employee(db, current_user, employee_data))


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get an employee. Employees may read themselves; HR/Admin may read anyone."""
    if employee_id != current_user.employee_id and not permissions.is_permitted(
        current_user.role, Operation.MANAGE_EMPLOYEES
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own employee record"
        )
    employee = employee_service.get_employee(db, employee_id)
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Employee {employee_id} not found"
        )
    return employee


@router.put("/{employee_id}/manager", response_model=EmployeeOut)
async def set_manager_endpoint(
    employee_id: int,
    body: ManagerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Set or clear an employee's manager; circular reporting lines are rejected"""
    return unwrap(employee_service.set_manager(db, current_user, employee_id, body.manager_id))


@router.put("/{employee_id}/status", response_model=EmployeeOut)
async def set_status_endpoint(
    employee_id: int,
    body: StatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Activate or retire an employee"""
    return unwrap(employee_service.set_status(db, current_user, employee_id, body.status))


@router.get("/{employee_id}/reports", response_model=EmployeeListResponse)
async def direct_reports_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Active direct reports of a manager"""
    reports = unwrap(employee_service.list_direct_reports(db, current_user, employee_id))
    return EmployeeListResponse(items=reports, total=len(reports))
