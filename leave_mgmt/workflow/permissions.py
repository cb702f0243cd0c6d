"""
Role capabilities for workflow operations.

Each operation declares the set of roles allowed to invoke it. The check is
done once, at the service boundary, before any other work.
"""
import enum
from typing import Dict, FrozenSet, Optional

from leave_mgmt.workflow.results import ViolationKind, WorkflowResult
from leave_mgmt.workflow.types import UserRole


class Operation(str, enum.Enum):
    SUBMIT_LEAVE = "SUBMIT_LEAVE"
    SUBMIT_LEAVE_FOR_OTHERS = "SUBMIT_LEAVE_FOR_OTHERS"
    DECIDE_LEAVE = "DECIDE_LEAVE"
    VIEW_ALL_LEAVES = "VIEW_ALL_LEAVES"
    MANAGE_POLICIES = "MANAGE_POLICIES"
    MANAGE_WORKFLOWS = "MANAGE_WORKFLOWS"
    MANAGE_BALANCES = "MANAGE_BALANCES"
    MANAGE_EMPLOYEES = "MANAGE_EMPLOYEES"
    MANAGE_HOLIDAYS = "MANAGE_HOLIDAYS"


_ALL = frozenset(UserRole)

OPERATION_ROLES: Dict[Operation, FrozenSet[UserRole]] = {
    Operation.SUBMIT_LEAVE: _ALL,
    Operation.SUBMIT_LEAVE_FOR_OTHERS: frozenset({UserRole.HR, UserRole.ADMIN}),
    Operation.DECIDE_LEAVE: frozenset({UserRole.LINE_MANAGER, UserRole.HR, UserRole.ADMIN}),
    Operation.VIEW_ALL_LEAVES: frozenset({UserRole.HR, UserRole.ADMIN}),
    Operation.MANAGE_POLICIES: frozenset({UserRole.HR, UserRole.ADMIN}),
    Operation.MANAGE_WORKFLOWS: frozenset({UserRole.HR, UserRole.ADMIN}),
    Operation.MANAGE_BALANCES: frozenset({UserRole.HR, UserRole.ADMIN}),
    Operation.MANAGE_EMPLOYEES: frozenset({UserRole.HR, UserRole.ADMIN}),
    Operation.MANAGE_HOLIDAYS: frozenset({UserRole.HR, UserRole.ADMIN}),
}


def as_role(role) -> Optional[UserRole]:
    """Coerce a stored role string (or enum) into UserRole; None if unknown."""
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(str(role))
    except ValueError:
        return None


def is_permitted(role, operation: Operation) -> bool:
    resolved = as_role(role)
    if resolved is None:
        return False
    if resolved == UserRole.ADMIN:
        return True
    return resolved in OPERATION_ROLES[operation]


def can_act_on_step(role, approver_role: str) -> bool:
    """Whether a caller with `role` may decide a step assigned to `approver_role`."""
    resolved = as_role(role)
    if resolved is None:
        return False
    return resolved == UserRole.ADMIN or resolved.value == approver_role


def check(role, operation: Operation):
    """Return a NOT_PERMITTED WorkflowResult if `role` may not run `operation`, else None."""
    if is_permitted(role, operation):
        return None
    return WorkflowResult.failure(
        ViolationKind.NOT_PERMITTED,
        f"Role '{role.value if hasattr(role, 'value') else role}' is not allowed to perform {operation.value}",
    )
