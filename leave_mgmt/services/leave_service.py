"""
Leave service - submission and multi-step approval of leave requests.

This is where the pure workflow core (policy rules, ledger, approval chain)
meets the database. Each public operation is one transaction: it either
commits everything it changed or returns a failure with nothing applied.
"""
import logging
from datetime import date, datetime
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from leave_mgmt.core.config import settings
from leave_mgmt.models.employee import Employee
from leave_mgmt.models.leave import ApprovalStep, LeavePolicy, LeaveRequest
from leave_mgmt.models.user import User
from leave_mgmt.services import leave_balance_service, policy_service, workflow_config_service
from leave_mgmt.services.audit_service import log_audit
from leave_mgmt.services.holiday_service import get_holiday_dates_in_range
from leave_mgmt.services.persistence import persistence_failure
from leave_mgmt.utils.datetime_utils import now_utc
from leave_mgmt.workflow import approval_chain, permissions, policy_rules
from leave_mgmt.workflow.approval_chain import ApprovalChain, ChainStep, LedgerEffect
from leave_mgmt.workflow.calendar import count_business_days
from leave_mgmt.workflow.ledger import BalanceSnapshot
from leave_mgmt.workflow.locks import LockTimeout, request_locks
from leave_mgmt.workflow.permissions import Operation
from leave_mgmt.workflow.results import ViolationKind, WorkflowResult
from leave_mgmt.workflow.types import Decision, LeaveStatus, LeaveType, RequestDraft, StepStatus, UserRole

logger = logging.getLogger(__name__)

# Requests that still claim their dates
BLOCKING_STATUSES = (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value)


def compute_days_count(db: Session, from_date: date, to_date: date) -> int:
    """Business days in [from_date, to_date]: weekly-off days and holidays excluded"""
    holidays = get_holiday_dates_in_range(db, from_date, to_date)
    return count_business_days(
        from_date,
        to_date,
        holidays=holidays,
        weekly_off_days=settings.get_weekly_off_days(),
    )


def _find_overlap(db: Session, employee_id: int, from_date: date, to_date: date) -> Optional[LeaveRequest]:
    return db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status.in_(BLOCKING_STATUSES),
        LeaveRequest.from_date <= to_date,
        LeaveRequest.to_date >= from_date,
    ).first()


def _coerce(enum_cls, value, kind: ViolationKind, label: str):
    """(member, None) for a valid value, (None, failure) otherwise"""
    try:
        return enum_cls(value), None
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        return None, WorkflowResult.failure(kind, f"Unknown {label} '{value}'; expected one of: {allowed}")


def _policy_for_type(db: Session, leave_type: str) -> Optional[LeavePolicy]:
    """The active policy, or the latest inactive one so validation can report it as inactive"""
    policy = policy_service.get_active_policy(db, leave_type)
    if policy is not None:
        return policy
    return (
        db.query(LeavePolicy)
        .filter(LeavePolicy.leave_type == leave_type)
        .order_by(LeavePolicy.id.desc())
        .first()
    )


def submit_leave(
    db: Session,
    actor: User,
    employee_id: Optional[int],
    leave_type,
    from_date: date,
    to_date: date,
    reason: str,
    today: Optional[date] = None,
) -> WorkflowResult:
    """
    Submit a leave request and create its approval chain.

    The request is validated against the leave type's policy and the
    employee's balance, then persisted PENDING with one approval step per
    configured approver role. The ledger is not touched until the request
    is fully approved.

    Args:
        db: Database session
        actor: Calling user
        employee_id: Employee the leave is for (None means the caller)
        leave_type: LeaveType or its value
        from_date: First day (inclusive)
        to_date: Last day (inclusive)
        reason: Reason for leave
        today: Reference date for the notice rule (defaults to date.today())

    Returns:
        WorkflowResult holding the created LeaveRequest, or the first violation
    """
    target_id = employee_id if employee_id is not None else actor.employee_id
    operation = Operation.SUBMIT_LEAVE if target_id == actor.employee_id else Operation.SUBMIT_LEAVE_FOR_OTHERS
    denied = permissions.check(actor.role, operation)
    if denied:
        return denied

    employee = db.query(Employee).filter(Employee.id == target_id).first()
    if employee is None:
        return WorkflowResult.failure(ViolationKind.EMPLOYEE_NOT_FOUND, f"Employee {target_id} not found")
    if not employee.is_active:
        return WorkflowResult.failure(ViolationKind.NOT_PERMITTED, f"Employee {target_id} is inactive")

    leave_type, invalid = _coerce(LeaveType, leave_type, ViolationKind.INVALID_LEAVE_TYPE, "leave type")
    if invalid:
        return invalid
    type_value = leave_type.value

    if from_date > to_date:
        return WorkflowResult.failure(
            ViolationKind.INVALID_DATE_RANGE,
            f"from_date {from_date} is after to_date {to_date}",
        )
    if from_date.year != to_date.year:
        return WorkflowResult.failure(
            ViolationKind.INVALID_DATE_RANGE,
            "A leave request cannot span two calendar years; submit one request per year",
        )

    days_count = compute_days_count(db, from_date, to_date)
    if days_count == 0:
        return WorkflowResult.failure(
            ViolationKind.NO_WORKING_DAYS,
            f"No working days between {from_date} and {to_date}",
        )

    overlap = _find_overlap(db, employee.id, from_date, to_date)
    if overlap is not None:
        return WorkflowResult.failure(
            ViolationKind.OVERLAPPING_REQUEST,
            f"Overlaps leave request {overlap.id} ({overlap.from_date} to {overlap.to_date}, {overlap.status})",
        )

    policy = _policy_for_type(db, type_value)
    if policy is None:
        return WorkflowResult.failure(
            ViolationKind.POLICY_NOT_FOUND,
            f"No leave policy configured for {type_value}",
        )

    year = from_date.year
    balance_row = leave_balance_service.get_balance(db, employee.id, type_value, year)
    if balance_row is not None:
        snapshot = leave_balance_service.to_snapshot(balance_row)
    else:
        snapshot = BalanceSnapshot.opening(employee.id, type_value, year, policy.annual_limit)

    draft = RequestDraft(
        employee_id=employee.id,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
        days_count=days_count,
        reason=reason,
    )
    validation = policy_rules.validate(draft, policy_service.to_rules(policy), snapshot, today=today)
    if not validation.ok:
        logger.info(
            "leave submission rejected: employee=%s type=%s kind=%s",
            employee.id, type_value, validation.violation.kind.value,
        )
        return validation

    roles, source = workflow_config_service.resolve_role_sequence(db, type_value, employee.department_id)
    built = approval_chain.build(roles)
    if not built.ok:
        return built
    chain: ApprovalChain = built.value

    now = now_utc()
    try:
        if balance_row is None:
            leave_balance_service.ensure_balance(
                db, employee.id, type_value, year, policy.annual_limit, actor_user_id=actor.id
            )
        leave_request = LeaveRequest(
            employee_id=employee.id,
            leave_type=type_value,
            from_date=from_date,
            to_date=to_date,
            reason=reason,
            days_count=days_count,
            status=LeaveStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        leave_request.steps = [
            ApprovalStep(
                step_order=step.step_order,
                approver_role=step.approver_role,
                status=step.status.value,
                is_current=step.is_current,
            )
            for step in chain.steps
        ]
        db.add(leave_request)
        db.flush()
        log_audit(
            db=db,
            actor_id=actor.id,
            action="LEAVE_SUBMIT",
            entity_type="leave_request",
            entity_id=leave_request.id,
            meta={
                "employee_id": employee.id,
                "leave_type": type_value,
                "from_date": from_date,
                "to_date": to_date,
                "days_count": days_count,
                "roles": [s.approver_role for s in chain.steps],
                "workflow": source,
            },
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "submit_leave")

    db.refresh(leave_request)
    logger.info(
        "leave submitted: request=%s employee=%s type=%s days=%s steps=%s",
        leave_request.id, employee.id, type_value, days_count, len(chain.steps),
    )
    return WorkflowResult.success(leave_request)


def _to_chain(steps: List[ApprovalStep]) -> ApprovalChain:
    return ApprovalChain(steps=tuple(
        ChainStep(
            step_order=s.step_order,
            approver_role=s.approver_role,
            status=StepStatus(s.status),
            is_current=bool(s.is_current),
            approver_id=s.approver_id,
            comments=s.comments,
            approved_at=s.approved_at,
        )
        for s in sorted(steps, key=lambda s: s.step_order)
    ))


def _apply_chain(steps: List[ApprovalStep], chain: ApprovalChain) -> None:
    by_order = {s.step_order: s for s in steps}
    for decided in chain.steps:
        row = by_order[decided.step_order]
        row.status = decided.status.value
        row.is_current = decided.is_current
        row.approver_id = decided.approver_id
        row.comments = decided.comments
        row.approved_at = decided.approved_at


def _check_step_authority(
    actor: User,
    leave_request: LeaveRequest,
    requester: Employee,
    step: ChainStep,
) -> Optional[WorkflowResult]:
    """NOT_PERMITTED unless the actor may decide this step of this request"""
    if actor.employee_id == leave_request.employee_id:
        return WorkflowResult.failure(
            ViolationKind.NOT_PERMITTED,
            "You cannot decide your own leave request",
        )
    if not permissions.can_act_on_step(actor.role, step.approver_role):
        return WorkflowResult.failure(
            ViolationKind.NOT_PERMITTED,
            f"Step {step.step_order} must be decided by role '{step.approver_role}'",
        )
    if (
        step.approver_role == UserRole.LINE_MANAGER.value
        and actor.role != UserRole.ADMIN.value
        and requester.manager_id != actor.employee_id
    ):
        return WorkflowResult.failure(
            ViolationKind.NOT_PERMITTED,
            "Only the requester's manager can decide the line manager step",
        )
    return None


def decide_leave(
    db: Session,
    actor: User,
    request_id: int,
    step_order: int,
    decision: Decision,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> WorkflowResult:
    """
    Approve or reject one step of a leave request.

    Decisions on the same request are serialized; the loser of a race sees
    NOT_CURRENT_STEP or ALREADY_DECIDED. Step changes, the request status
    and the ledger commit on final approval are written in one transaction.

    Returns:
        WorkflowResult holding the updated LeaveRequest
    """
    denied = permissions.check(actor.role, Operation.DECIDE_LEAVE)
    if denied:
        return denied

    decision, invalid = _coerce(Decision, decision, ViolationKind.INVALID_DECISION, "decision")
    if invalid:
        return invalid
    try:
        with request_locks.hold(request_id, timeout=settings.REQUEST_LOCK_TIMEOUT_SECONDS):
            return _decide_locked(db, actor, request_id, step_order, decision, comment, now)
    except LockTimeout:
        logger.warning("lock timeout deciding request=%s step=%s", request_id, step_order)
        return WorkflowResult.failure(
            ViolationKind.LOCK_TIMEOUT,
            f"Leave request {request_id} is being updated by another approver; try again",
        )


def _decide_locked(
    db: Session,
    actor: User,
    request_id: int,
    step_order: int,
    decision: Decision,
    comment: Optional[str],
    now: Optional[datetime],
) -> WorkflowResult:
    try:
        leave_request = (
            db.query(LeaveRequest)
            .populate_existing()
            .with_for_update()
            .filter(LeaveRequest.id == request_id)
            .first()
        )
        if leave_request is None:
            return WorkflowResult.failure(
                ViolationKind.REQUEST_NOT_FOUND,
                f"Leave request {request_id} not found",
            )
        steps = (
            db.query(ApprovalStep)
            .populate_existing()
            .filter(ApprovalStep.leave_request_id == request_id)
            .order_by(ApprovalStep.step_order)
            .all()
        )
        requester = db.query(Employee).filter(Employee.id == leave_request.employee_id).first()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "decide_leave")

    chain = _to_chain(steps)
    target = chain.step(step_order)
    if target is not None:
        denied = _check_step_authority(actor, leave_request, requester, target)
        if denied:
            db.rollback()
            return denied

    result = approval_chain.decide(
        chain, step_order, decision, approver_id=actor.employee_id, comment=comment, now=now
    )
    if not result.ok:
        # Release the row lock
        db.rollback()
        return result
    outcome = result.value

    try:
        _apply_chain(steps, outcome.chain)
        leave_request.status = outcome.request_status.value
        leave_request.updated_at = now_utc()

        if outcome.ledger_effect == LedgerEffect.COMMIT:
            committed = leave_balance_service.commit_for_request(db, leave_request, actor_user_id=actor.id)
            if not committed.ok:
                db.rollback()
                logger.warning(
                    "final approval blocked: request=%s kind=%s",
                    request_id, committed.violation.kind.value,
                )
                return committed

        log_audit(
            db=db,
            actor_id=actor.id,
            action=f"LEAVE_STEP_{decision.value.upper()}",
            entity_type="leave_request",
            entity_id=leave_request.id,
            meta={
                "step_order": step_order,
                "comment": comment,
                "request_status": outcome.request_status,
                "ledger_effect": outcome.ledger_effect,
            },
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "decide_leave")

    db.refresh(leave_request)
    logger.info(
        "leave step decided: request=%s step=%s decision=%s status=%s",
        request_id, step_order, decision.value, leave_request.status,
    )
    return WorkflowResult.success(leave_request)


def _can_view(db: Session, actor: User, leave_request: LeaveRequest) -> bool:
    if actor.employee_id == leave_request.employee_id:
        return True
    if permissions.is_permitted(actor.role, Operation.VIEW_ALL_LEAVES):
        return True
    requester = db.query(Employee).filter(Employee.id == leave_request.employee_id).first()
    if requester is not None and requester.manager_id == actor.employee_id:
        return True
    return False


def get_leave(db: Session, actor: User, request_id: int) -> WorkflowResult:
    leave_request = (
        db.query(LeaveRequest)
        .options(selectinload(LeaveRequest.steps))
        .filter(LeaveRequest.id == request_id)
        .first()
    )
    if leave_request is None:
        return WorkflowResult.failure(ViolationKind.REQUEST_NOT_FOUND, f"Leave request {request_id} not found")
    if not _can_view(db, actor, leave_request):
        return WorkflowResult.failure(ViolationKind.NOT_PERMITTED, "You cannot view this leave request")
    return WorkflowResult.success(leave_request)


def list_leaves(
    db: Session,
    actor: User,
    employee_id: Optional[int] = None,
    status: Optional[LeaveStatus] = None,
    leave_type: Optional[LeaveType] = None,
    skip: int = 0,
    limit: int = 50,
) -> WorkflowResult:
    """
    List leave requests visible to the actor.

    Without employee_id, hr/admin see everyone's requests and others see
    their own. Managers may list their direct reports' requests.

    Returns:
        WorkflowResult holding (items, total)
    """
    view_all = permissions.is_permitted(actor.role, Operation.VIEW_ALL_LEAVES)
    query = db.query(LeaveRequest).options(selectinload(LeaveRequest.steps))

    if employee_id is None:
        if not view_all:
            query = query.filter(LeaveRequest.employee_id == actor.employee_id)
    else:
        if employee_id != actor.employee_id and not view_all:
            target = db.query(Employee).filter(Employee.id == employee_id).first()
            if target is None or target.manager_id != actor.employee_id:
                return WorkflowResult.failure(
                    ViolationKind.NOT_PERMITTED,
                    f"You cannot view leave requests of employee {employee_id}",
                )
        query = query.filter(LeaveRequest.employee_id == employee_id)

    if status is not None:
        status, invalid = _coerce(LeaveStatus, status, ViolationKind.INVALID_STATUS, "status")
        if invalid:
            return invalid
        query = query.filter(LeaveRequest.status == status.value)
    if leave_type is not None:
        leave_type, invalid = _coerce(LeaveType, leave_type, ViolationKind.INVALID_LEAVE_TYPE, "leave type")
        if invalid:
            return invalid
        query = query.filter(LeaveRequest.leave_type == leave_type.value)

    total = query.count()
    items = (
        query.order_by(LeaveRequest.from_date.desc(), LeaveRequest.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return WorkflowResult.success((items, total))


def list_pending_for_actor(db: Session, actor: User) -> List[LeaveRequest]:
    """
    Pending requests whose current step the actor can decide right now.

    Own requests are never included; line managers only see requests of
    their direct reports.
    """
    if not permissions.is_permitted(actor.role, Operation.DECIDE_LEAVE):
        return []

    query = (
        db.query(LeaveRequest)
        .join(ApprovalStep, ApprovalStep.leave_request_id == LeaveRequest.id)
        .join(Employee, Employee.id == LeaveRequest.employee_id)
        .options(selectinload(LeaveRequest.steps))
        .filter(
            LeaveRequest.status == LeaveStatus.PENDING.value,
            ApprovalStep.is_current == True,  # noqa: E712
            LeaveRequest.employee_id != actor.employee_id,
        )
    )
    if actor.role != UserRole.ADMIN.value:
        query = query.filter(ApprovalStep.approver_role == actor.role)
        if actor.role == UserRole.LINE_MANAGER.value:
            query = query.filter(Employee.manager_id == actor.employee_id)
    return query.order_by(LeaveRequest.from_date, LeaveRequest.id).all()
