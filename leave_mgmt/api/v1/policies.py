"""
Leave policy endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leave_mgmt.core.deps import get_db, get_current_user
from leave_mgmt.core.errors import unwrap
from leave_mgmt.models.user import User
from leave_mgmt.schemas.policy import PolicyCreate, PolicyUpdate, PolicyOut, PolicyListResponse
from leave_mgmt.services import policy_service

router = APIRouter()


@router.get("", response_model=PolicyListResponse)
async def list_policies_endpoint(
    active_only: bool = Query(False, description="Return only active policies"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List leave policies"""
    policies = policy_service.list_policies(db, active_only=active_only)
    return PolicyListResponse(items=policies, total=len(policies))


@router.post("", response_model=PolicyOut, status_code=201)
async def create_policy_endpoint(
    policy_data: PolicyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a leave policy (HR/Admin). Only one active policy per leave type."""
    return unwrap(policy_service.create_policy(db, current_user, policy_data))


@router.patch("/{policy_id}", response_model=PolicyOut)
async def update_policy_endpoint(
    policy_id: int,
    policy_data: PolicyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a leave policy (HR/Admin)"""
    return unwrap(policy_service.update_policy(db, current_user, policy_id, policy_data))
