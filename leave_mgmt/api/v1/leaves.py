"""
Leave request endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leave_mgmt.core.deps import get_db, get_current_user
from leave_mgmt.core.errors import unwrap
from leave_mgmt.models.user import User
from leave_mgmt.schemas.leave import (
    LeaveSubmitRequest,
    DecisionRequest,
    LeaveOut,
    LeaveListResponse,
)
from leave_mgmt.services import leave_service
from leave_mgmt.workflow.types import LeaveStatus, LeaveType

router = APIRouter()


@router.post("", response_model=LeaveOut, status_code=201)
async def submit_leave_endpoint(
    leave_data: LeaveSubmitRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Submit a leave request

    Validates against the leave type policy and balance, then creates the
    approval chain. HR/Admin may file on behalf of another employee.
    """
    return unwrap(leave_service.submit_leave(
        db,
        current_user,
        employee_id=leave_data.employee_id,
        leave_type=leave_data.leave_type,
        from_date=leave_data.from_date,
        to_date=leave_data.to_date,
        reason=leave_data.reason,
    ))


@router.get("", response_model=LeaveListResponse)
async def list_leaves_endpoint(
    employee_id: Optional[int] = Query(None, description="Filter by employee"),
    status: Optional[LeaveStatus] = Query(None, description="Filter by status"),
    leave_type: Optional[LeaveType] = Query(None, description="Filter by leave type"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List leave requests visible to the caller"""
    items, total = unwrap(leave_service.list_leaves(
        db,
        current_user,
        employee_id=employee_id,
        status=status,
        leave_type=leave_type,
        skip=skip,
        limit=limit,
    ))
    return LeaveListResponse(items=items, total=total)


@router.get("/pending", response_model=List[LeaveOut])
async def pending_leaves_endpoint(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Requests waiting on a step the caller can decide"""
    return leave_service.list_pending_for_actor(db, current_user)


@router.get("/{request_id}", response_model=LeaveOut)
async def get_leave_endpoint(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a leave request with its approval steps"""
    return unwrap(leave_service.get_leave(db, current_user, request_id))


@router.post("/{request_id}/steps/{step_order}/decision", response_model=LeaveOut)
async def decide_step_endpoint(
    request_id: int,
    step_order: int,
    body: DecisionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Approve or reject the current approval step

    409 when the step is not current or was already decided.
    """
    return unwrap(leave_service.decide_leave(
        db,
        current_user,
        request_id=request_id,
        step_order=step_order,
        decision=body.decision,
        comment=body.comment,
    ))
