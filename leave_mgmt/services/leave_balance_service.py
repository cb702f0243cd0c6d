"""
Leave balance ledger service.

Rows are keyed by (employee_id, leave_type, year). All arithmetic goes
through workflow.ledger so the used + remaining == total invariant is
checked in one place; this module only loads, stores and records a
LeaveTransaction for every change.

Functions that take part in a larger transaction (ensure_balance,
commit_for_request, release_for_request) only flush. allocate() and
carry_forward() are standalone operations and commit.
"""
import logging
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from leave_mgmt.models.employee import Employee
from leave_mgmt.models.leave import LeaveBalance, LeaveRequest, LeaveTransaction, LeaveTransactionAction
from leave_mgmt.models.user import User
from leave_mgmt.services import policy_service
from leave_mgmt.services.audit_service import log_audit
from leave_mgmt.services.persistence import persistence_failure
from leave_mgmt.utils.datetime_utils import now_utc
from leave_mgmt.workflow import ledger, permissions
from leave_mgmt.workflow.ledger import BalanceSnapshot
from leave_mgmt.workflow.permissions import Operation
from leave_mgmt.workflow.results import ViolationKind, WorkflowResult
from leave_mgmt.workflow.types import LeaveType

logger = logging.getLogger(__name__)


def _type_value(leave_type) -> str:
    return leave_type.value if isinstance(leave_type, LeaveType) else str(leave_type)


def to_snapshot(balance: LeaveBalance) -> BalanceSnapshot:
    return BalanceSnapshot(
        employee_id=balance.employee_id,
        leave_type=balance.leave_type,
        year=balance.year,
        total_days=balance.total_days,
        used_days=balance.used_days,
        remaining_days=balance.remaining_days,
    )


def apply_snapshot(balance: LeaveBalance, snapshot: BalanceSnapshot) -> None:
    balance.total_days = snapshot.total_days
    balance.used_days = snapshot.used_days
    balance.remaining_days = snapshot.remaining_days
    balance.updated_at = now_utc()


def get_balance(
    db: Session,
    employee_id: int,
    leave_type,
    year: int,
    for_update: bool = False,
) -> Optional[LeaveBalance]:
    query = db.query(LeaveBalance).filter(
        LeaveBalance.employee_id == employee_id,
        LeaveBalance.leave_type == _type_value(leave_type),
        LeaveBalance.year == year,
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def list_balances(db: Session, employee_id: int, year: int) -> List[LeaveBalance]:
    return (
        db.query(LeaveBalance)
        .filter(LeaveBalance.employee_id == employee_id, LeaveBalance.year == year)
        .order_by(LeaveBalance.leave_type)
        .all()
    )


def _log_transaction(
    db: Session,
    balance: LeaveBalance,
    delta_days: int,
    action: LeaveTransactionAction,
    leave_request_id: Optional[int] = None,
    remarks: Optional[str] = None,
    actor_user_id: Optional[int] = None,
) -> None:
    db.add(LeaveTransaction(
        employee_id=balance.employee_id,
        leave_type=balance.leave_type,
        year=balance.year,
        delta_days=delta_days,
        action=action.value,
        leave_request_id=leave_request_id,
        remarks=remarks,
        action_by_user_id=actor_user_id,
        created_at=now_utc(),
    ))


def ensure_balance(
    db: Session,
    employee_id: int,
    leave_type,
    year: int,
    annual_limit: int,
    actor_user_id: Optional[int] = None,
) -> LeaveBalance:
    """
    Return the ledger row, creating it with the policy's annual limit on first use.

    Flushes only; the caller owns the transaction.
    """
    balance = get_balance(db, employee_id, leave_type, year)
    if balance is not None:
        return balance

    opening = BalanceSnapshot.opening(employee_id, _type_value(leave_type), year, annual_limit)
    now = now_utc()
    balance = LeaveBalance(
        employee_id=employee_id,
        leave_type=opening.leave_type,
        year=year,
        total_days=opening.total_days,
        used_days=opening.used_days,
        remaining_days=opening.remaining_days,
        carried_forward_days=0,
        created_at=now,
        updated_at=now,
    )
    db.add(balance)
    db.flush()
    _log_transaction(
        db, balance, annual_limit, LeaveTransactionAction.ALLOCATE,
        remarks="opening balance", actor_user_id=actor_user_id,
    )
    logger.info(
        "leave balance opened: employee=%s type=%s year=%s total=%s",
        employee_id, opening.leave_type, year, annual_limit,
    )
    return balance


def commit_for_request(
    db: Session,
    leave_request: LeaveRequest,
    actor_user_id: Optional[int] = None,
) -> WorkflowResult:
    """
    Consume the request's days from its ledger row (request became APPROVED).

    Flushes only. Returns INSUFFICIENT_BALANCE instead of overdrawing, or
    BALANCE_NOT_FOUND when the row is missing.
    """
    year = leave_request.from_date.year
    balance = get_balance(db, leave_request.employee_id, leave_request.leave_type, year, for_update=True)
    if balance is None:
        return WorkflowResult.failure(
            ViolationKind.BALANCE_NOT_FOUND,
            f"No {leave_request.leave_type} balance for employee {leave_request.employee_id} in {year}",
        )

    result = ledger.commit(to_snapshot(balance), leave_request.days_count)
    if not result.ok:
        return result

    apply_snapshot(balance, result.value)
    _log_transaction(
        db, balance, -leave_request.days_count, LeaveTransactionAction.APPROVE_COMMIT,
        leave_request_id=leave_request.id, actor_user_id=actor_user_id,
    )
    db.flush()
    return WorkflowResult.success(balance)


def release_for_request(
    db: Session,
    leave_request: LeaveRequest,
    actor_user_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> WorkflowResult:
    """Give back the days of a previously approved request that is being voided. Flushes only."""
    year = leave_request.from_date.year
    balance = get_balance(db, leave_request.employee_id, leave_request.leave_type, year, for_update=True)
    if balance is None:
        return WorkflowResult.failure(
            ViolationKind.BALANCE_NOT_FOUND,
            f"No {leave_request.leave_type} balance for employee {leave_request.employee_id} in {year}",
        )

    before = balance.used_days
    result = ledger.release(to_snapshot(balance), leave_request.days_count)
    apply_snapshot(balance, result.value)
    returned = before - balance.used_days
    if returned:
        _log_transaction(
            db, balance, returned, LeaveTransactionAction.VOID_RELEASE,
            leave_request_id=leave_request.id, remarks=remarks, actor_user_id=actor_user_id,
        )
    db.flush()
    return WorkflowResult.success(balance)


def allocate(
    db: Session,
    actor: User,
    employee_id: int,
    leave_type,
    year: int,
    total_days: int,
) -> WorkflowResult:
    """
    Set the entitlement of an employee for a leave type and year.

    Used days are kept; the new total may not go below them.
    """
    denied = permissions.check(actor.role, Operation.MANAGE_BALANCES)
    if denied:
        return denied

    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        return WorkflowResult.failure(ViolationKind.EMPLOYEE_NOT_FOUND, f"Employee {employee_id} not found")

    type_value = _type_value(leave_type)
    try:
        balance = get_balance(db, employee_id, type_value, year, for_update=True)
        if balance is None:
            balance = ensure_balance(db, employee_id, type_value, year, total_days, actor_user_id=actor.id)
            delta = 0
        else:
            result = ledger.reallocate(to_snapshot(balance), total_days)
            if not result.ok:
                db.rollback()
                return result
            delta = total_days - balance.total_days
            apply_snapshot(balance, result.value)
            if delta:
                _log_transaction(
                    db, balance, delta, LeaveTransactionAction.ALLOCATE,
                    remarks=f"entitlement set to {total_days}", actor_user_id=actor.id,
                )

        log_audit(
            db=db,
            actor_id=actor.id,
            action="BALANCE_ALLOCATE",
            entity_type="leave_balance",
            entity_id=balance.id,
            meta={"employee_id": employee_id, "leave_type": type_value, "year": year,
                  "total_days": total_days, "delta": delta},
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "allocate_balance")

    db.refresh(balance)
    return WorkflowResult.success(balance)


def carry_forward(
    db: Session,
    actor: User,
    employee_id: int,
    leave_type,
    from_year: int,
) -> WorkflowResult:
    """
    Close from_year for one employee and leave type.

    Next year's total becomes annual_limit plus the carried days
    (min(remaining, carry_forward_limit), or all remaining when the limit is
    null; nothing when the policy does not allow carry forward). Running it
    again only applies the difference, so repeated runs never double-credit.

    Returns:
        WorkflowResult holding next year's LeaveBalance
    """
    denied = permissions.check(actor.role, Operation.MANAGE_BALANCES)
    if denied:
        return denied

    type_value = _type_value(leave_type)
    policy = policy_service.get_active_policy(db, type_value)
    if policy is None:
        return WorkflowResult.failure(
            ViolationKind.POLICY_NOT_FOUND,
            f"No active leave policy for {type_value}",
        )

    source = get_balance(db, employee_id, type_value, from_year)
    if source is None:
        return WorkflowResult.failure(
            ViolationKind.BALANCE_NOT_FOUND,
            f"No {type_value} balance for employee {employee_id} in {from_year}",
        )

    carried = ledger.carry_forward_days(
        source.remaining_days, policy.carry_forward_allowed, policy.carry_forward_limit
    )
    next_year = from_year + 1

    try:
        target = get_balance(db, employee_id, type_value, next_year, for_update=True)
        if target is None:
            target = ensure_balance(
                db, employee_id, type_value, next_year, policy.annual_limit, actor_user_id=actor.id
            )

        delta = carried - (target.carried_forward_days or 0)
        if delta:
            result = ledger.reallocate(to_snapshot(target), target.total_days + delta)
            if not result.ok:
                db.rollback()
                return result
            apply_snapshot(target, result.value)
            target.carried_forward_days = carried
            _log_transaction(
                db, target, delta, LeaveTransactionAction.CARRY_FORWARD,
                remarks=f"carried from {from_year}", actor_user_id=actor.id,
            )

        log_audit(
            db=db,
            actor_id=actor.id,
            action="BALANCE_CARRY_FORWARD",
            entity_type="leave_balance",
            entity_id=target.id,
            meta={"employee_id": employee_id, "leave_type": type_value,
                  "from_year": from_year, "carried": carried, "delta": delta},
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "carry_forward")

    db.refresh(target)
    logger.info(
        "carry forward: employee=%s type=%s %s->%s carried=%s",
        employee_id, type_value, from_year, next_year, carried,
    )
    return WorkflowResult.success(target)
