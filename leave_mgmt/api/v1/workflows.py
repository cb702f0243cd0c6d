"""
Approval workflow configuration endpoints
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leave_mgmt.core.deps import get_db, get_current_user
from leave_mgmt.core.errors import unwrap
from leave_mgmt.models.user import User
from leave_mgmt.schemas.workflow import WorkflowConfigSet, WorkflowConfigOut, RoleSequenceOut
from leave_mgmt.services import workflow_config_service
from leave_mgmt.workflow.types import LeaveType

router = APIRouter()


@router.get("", response_model=List[WorkflowConfigOut])
async def list_workflows_endpoint(
    active_only: bool = Query(True, description="Return only active configurations"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List approval workflow configurations"""
    return workflow_config_service.list_configs(db, active_only=active_only)


@router.get("/resolve", response_model=RoleSequenceOut)
async def resolve_workflow_endpoint(
    leave_type: LeaveType = Query(..., description="Leave type"),
    department_id: Optional[int] = Query(None, description="Department of the requester"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Approver roles a new request of this type/department would get"""
    roles, source = workflow_config_service.resolve_role_sequence(db, leave_type, department_id)
    return RoleSequenceOut(leave_type=leave_type, department_id=department_id, roles=roles, source=source)


@router.put("", response_model=WorkflowConfigOut)
async def set_workflow_endpoint(
    body: WorkflowConfigSet,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Replace the approver role sequence for a scope (HR/Admin)"""
    return unwrap(workflow_config_service.set_workflow_config(
        db,
        current_user,
        name=body.name,
        roles=body.roles,
        leave_type=body.leave_type,
        department_id=body.department_id,
    ))
