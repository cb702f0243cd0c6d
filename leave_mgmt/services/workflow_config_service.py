"""
Approval workflow configuration service
"""
import logging
from typing import List, Optional, Sequence, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from leave_mgmt.core.config import settings
from leave_mgmt.models.department import Department
from leave_mgmt.models.user import User
from leave_mgmt.models.workflow_config import WorkflowConfig, WorkflowConfigStep
from leave_mgmt.services.audit_service import log_audit
from leave_mgmt.services.persistence import persistence_failure
from leave_mgmt.utils.datetime_utils import now_utc
from leave_mgmt.workflow import permissions
from leave_mgmt.workflow.permissions import Operation
from leave_mgmt.workflow.results import ViolationKind, WorkflowResult
from leave_mgmt.workflow.types import LeaveType, UserRole

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "default"


def _value(v) -> Optional[str]:
    if v is None:
        return None
    return v.value if hasattr(v, "value") else str(v)


def _find_active(db: Session, leave_type: Optional[str], department_id: Optional[int]) -> Optional[WorkflowConfig]:
    query = db.query(WorkflowConfig).filter(WorkflowConfig.is_active == True)  # noqa: E712
    if leave_type is None:
        query = query.filter(WorkflowConfig.leave_type.is_(None))
    else:
        query = query.filter(WorkflowConfig.leave_type == leave_type)
    if department_id is None:
        query = query.filter(WorkflowConfig.department_id.is_(None))
    else:
        query = query.filter(WorkflowConfig.department_id == department_id)
    return query.order_by(WorkflowConfig.id.desc()).first()


def resolve_config(db: Session, leave_type, department_id: Optional[int]) -> Optional[WorkflowConfig]:
    """
    Most specific active config for a request:
    (type, department) > (type, any) > (any, department) > (any, any)
    """
    type_value = _value(leave_type)
    candidates: List[Tuple[Optional[str], Optional[int]]] = [
        (type_value, department_id),
        (type_value, None),
        (None, department_id),
        (None, None),
    ]
    seen = set()
    for scope in candidates:
        if scope in seen:
            continue
        seen.add(scope)
        config = _find_active(db, *scope)
        if config is not None and config.steps:
            return config
    return None


def resolve_role_sequence(db: Session, leave_type, department_id: Optional[int]) -> Tuple[List[str], str]:
    """
    Approver roles for a new request.

    Returns:
        (roles, source) where source is the config name or "default" when
        settings.DEFAULT_APPROVAL_ROLES was used
    """
    config = resolve_config(db, leave_type, department_id)
    if config is None:
        return settings.get_default_approval_roles(), DEFAULT_SOURCE
    return config.role_sequence, config.name


def list_configs(db: Session, active_only: bool = True) -> List[WorkflowConfig]:
    query = db.query(WorkflowConfig)
    if active_only:
        query = query.filter(WorkflowConfig.is_active == True)  # noqa: E712
    return query.order_by(WorkflowConfig.id).all()


def set_workflow_config(
    db: Session,
    actor: User,
    name: str,
    roles: Sequence,
    leave_type=None,
    department_id: Optional[int] = None,
) -> WorkflowResult:
    """
    Replace the ordered approver roles for a (leave_type, department) scope.

    Any active config for exactly that scope is deactivated; existing
    requests keep the steps they were built with.
    """
    denied = permissions.check(actor.role, Operation.MANAGE_WORKFLOWS)
    if denied:
        return denied

    role_values = [_value(r) for r in roles]
    if not role_values:
        return WorkflowResult.failure(
            ViolationKind.EMPTY_ROLE_SEQUENCE,
            "A workflow needs at least one approver role",
        )
    approver_roles = {role.value for role in UserRole} - {UserRole.EMPLOYEE.value}
    unknown = [r for r in role_values if r not in approver_roles]
    if unknown:
        return WorkflowResult.failure(
            ViolationKind.INVALID_ROLE,
            f"Roles cannot approve leave: {', '.join(unknown)}",
        )

    if department_id is not None:
        department = db.query(Department).filter(Department.id == department_id).first()
        if department is None:
            return WorkflowResult.failure(
                ViolationKind.DEPARTMENT_NOT_FOUND,
                f"Department {department_id} not found",
            )

    type_value = _value(leave_type)
    if type_value is not None and type_value not in {t.value for t in LeaveType}:
        return WorkflowResult.failure(
            ViolationKind.INVALID_LEAVE_TYPE,
            f"Unknown leave type '{type_value}'",
        )

    now = now_utc()
    try:
        previous = db.query(WorkflowConfig).filter(
            WorkflowConfig.is_active == True,  # noqa: E712
            WorkflowConfig.leave_type.is_(None) if type_value is None else WorkflowConfig.leave_type == type_value,
            WorkflowConfig.department_id.is_(None) if department_id is None else WorkflowConfig.department_id == department_id,
        ).all()
        for old in previous:
            old.is_active = False
            old.updated_at = now

        config = WorkflowConfig(
            name=name,
            leave_type=type_value,
            department_id=department_id,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        config.steps = [
            WorkflowConfigStep(step_order=index, role=role)
            for index, role in enumerate(role_values, start=1)
        ]
        db.add(config)
        db.flush()
        log_audit(
            db=db,
            actor_id=actor.id,
            action="WORKFLOW_SET",
            entity_type="workflow_config",
            entity_id=config.id,
            meta={
                "leave_type": type_value,
                "department_id": department_id,
                "roles": role_values,
                "replaced": [old.id for old in previous],
            },
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "set_workflow_config")

    db.refresh(config)
    logger.info(
        "workflow config set: id=%s type=%s department=%s roles=%s",
        config.id, type_value, department_id, role_values,
    )
    return WorkflowResult.success(config)
