"""
Leave policy service - business logic for leave policy management
"""
import logging
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from leave_mgmt.models.leave import LeavePolicy
from leave_mgmt.models.user import User
from leave_mgmt.schemas.policy import PolicyCreate, PolicyUpdate
from leave_mgmt.services.audit_service import log_audit
from leave_mgmt.services.persistence import persistence_failure
from leave_mgmt.utils.datetime_utils import now_utc
from leave_mgmt.workflow import permissions
from leave_mgmt.workflow.permissions import Operation
from leave_mgmt.workflow.results import ViolationKind, WorkflowResult
from leave_mgmt.workflow.types import LeaveType, PolicyRules

logger = logging.getLogger(__name__)


def _type_value(leave_type) -> str:
    return leave_type.value if isinstance(leave_type, LeaveType) else str(leave_type)


def to_rules(policy: LeavePolicy) -> PolicyRules:
    """Convert a policy row into the rule set the validator works on"""
    return PolicyRules(
        leave_type=LeaveType(policy.leave_type),
        annual_limit=policy.annual_limit,
        min_days_notice=policy.min_days_notice,
        max_consecutive_days=policy.max_consecutive_days,
        carry_forward_allowed=bool(policy.carry_forward_allowed),
        carry_forward_limit=policy.carry_forward_limit,
        requires_medical_certificate=bool(policy.requires_medical_certificate),
        is_active=bool(policy.is_active),
    )


def get_active_policy(db: Session, leave_type) -> Optional[LeavePolicy]:
    return db.query(LeavePolicy).filter(
        LeavePolicy.leave_type == _type_value(leave_type),
        LeavePolicy.is_active == True  # noqa: E712
    ).first()


def get_policy(db: Session, policy_id: int) -> Optional[LeavePolicy]:
    return db.query(LeavePolicy).filter(LeavePolicy.id == policy_id).first()


def list_policies(db: Session, active_only: bool = False) -> List[LeavePolicy]:
    query = db.query(LeavePolicy)
    if active_only:
        query = query.filter(LeavePolicy.is_active == True)  # noqa: E712
    return query.order_by(LeavePolicy.leave_type, LeavePolicy.id).all()


def _other_active_exists(db: Session, leave_type: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(LeavePolicy.id).filter(
        LeavePolicy.leave_type == leave_type,
        LeavePolicy.is_active == True  # noqa: E712
    )
    if exclude_id is not None:
        query = query.filter(LeavePolicy.id != exclude_id)
    return query.first() is not None


def _duplicate(leave_type: str) -> WorkflowResult:
    return WorkflowResult.failure(
        ViolationKind.DUPLICATE_ACTIVE_POLICY,
        f"An active {leave_type} policy already exists; deactivate it first",
    )


def create_policy(db: Session, actor: User, data: PolicyCreate) -> WorkflowResult:
    """
    Create a leave policy

    Args:
        db: Database session
        actor: Calling user (hr or admin)
        data: Policy fields

    Returns:
        WorkflowResult holding the created LeavePolicy, or NOT_PERMITTED /
        DUPLICATE_ACTIVE_POLICY / PERSISTENCE_FAILURE
    """
    denied = permissions.check(actor.role, Operation.MANAGE_POLICIES)
    if denied:
        return denied

    leave_type = data.leave_type.value
    if data.is_active and _other_active_exists(db, leave_type):
        return _duplicate(leave_type)

    now = now_utc()
    policy = LeavePolicy(
        leave_type=leave_type,
        annual_limit=data.annual_limit,
        min_days_notice=data.min_days_notice,
        max_consecutive_days=data.max_consecutive_days,
        carry_forward_allowed=data.carry_forward_allowed,
        carry_forward_limit=data.carry_forward_limit,
        requires_medical_certificate=data.requires_medical_certificate,
        is_active=data.is_active,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(policy)
        db.flush()
        log_audit(
            db=db,
            actor_id=actor.id,
            action="POLICY_CREATE",
            entity_type="leave_policy",
            entity_id=policy.id,
            meta=data.model_dump(),
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "create_policy")

    db.refresh(policy)
    logger.info("leave policy created: id=%s type=%s active=%s", policy.id, leave_type, policy.is_active)
    return WorkflowResult.success(policy)


def update_policy(db: Session, actor: User, policy_id: int, data: PolicyUpdate) -> WorkflowResult:
    """
    Update provided fields of a policy. Re-activating a policy while another
    policy of the same type is active is rejected.
    """
    denied = permissions.check(actor.role, Operation.MANAGE_POLICIES)
    if denied:
        return denied

    policy = get_policy(db, policy_id)
    if policy is None:
        return WorkflowResult.failure(
            ViolationKind.POLICY_NOT_FOUND,
            f"Leave policy {policy_id} not found",
        )

    changes = data.model_dump(exclude_unset=True)
    will_be_active = changes.get("is_active", policy.is_active)
    if will_be_active and _other_active_exists(db, policy.leave_type, exclude_id=policy.id):
        return _duplicate(policy.leave_type)

    allowed = changes.get("carry_forward_allowed", policy.carry_forward_allowed)
    limit = changes.get("carry_forward_limit", policy.carry_forward_limit)
    if limit is not None and not allowed:
        changes["carry_forward_limit"] = None

    old_values = {field: getattr(policy, field) for field in changes}
    for field, value in changes.items():
        setattr(policy, field, value)
    policy.updated_at = now_utc()

    try:
        log_audit(
            db=db,
            actor_id=actor.id,
            action="POLICY_UPDATE",
            entity_type="leave_policy",
            entity_id=policy.id,
            meta={"old": old_values, "new": changes},
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "update_policy")

    db.refresh(policy)
    logger.info("leave policy updated: id=%s fields=%s", policy.id, sorted(changes))
    return WorkflowResult.success(policy)
