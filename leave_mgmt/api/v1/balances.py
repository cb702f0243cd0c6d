"""
Leave balance endpoints
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from leave_mgmt.core.deps import get_db, get_current_user
from leave_mgmt.core.errors import unwrap
from leave_mgmt.models.user import User
from leave_mgmt.schemas.leave import (
    BalanceOut,
    BalanceListResponse,
    BalanceAllocateRequest,
    CarryForwardRequest,
)
from leave_mgmt.services import leave_balance_service
from leave_mgmt.workflow import permissions
from leave_mgmt.workflow.permissions import Operation

router = APIRouter()


@router.get("", response_model=BalanceListResponse)
async def list_balances_endpoint(
    employee_id: Optional[int] = Query(None, description="Employee (defaults to the caller)"),
    year: Optional[int] = Query(None, description="Calendar year (defaults to the current year)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Balances of an employee for a year"""
    target_id = employee_id if employee_id is not None else current_user.employee_id
    if target_id != current_user.employee_id and not permissions.is_permitted(
        current_user.role, Operation.MANAGE_BALANCES
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own balances"
        )
    year = year or date.today().year
    items = leave_balance_service.list_balances(db, target_id, year)
    return BalanceListResponse(employee_id=target_id, year=year, items=items)


@router.post("/allocate", response_model=BalanceOut)
async def allocate_endpoint(
    body: BalanceAllocateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Set an employee's entitlement for a leave type and year (HR/Admin)"""
    return unwrap(leave_balance_service.allocate(
        db, current_user, body.employee_id, body.leave_type, body.year, body.total_days
    ))


@router.post("/carry-forward", response_model=BalanceOut)
async def carry_forward_endpoint(
    body: CarryForwardRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Close a year: carry unused days into next year per policy (HR/Admin)"""
    return unwrap(leave_balance_service.carry_forward(
        db, current_user, body.employee_id, body.leave_type, body.from_year
    ))
