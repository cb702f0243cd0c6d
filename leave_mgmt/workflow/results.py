"""
Result values returned by the leave workflow core.

Workflow operations never raise for expected outcomes (policy violations,
stale approvals, missing rows). They return a WorkflowResult carrying either
a value or a Violation; the HTTP layer decides how to surface it.
"""
import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCategory(str, enum.Enum):
    VALIDATION = "VALIDATION"
    STATE_CONFLICT = "STATE_CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


class ViolationKind(str, enum.Enum):
    # Policy rules
    POLICY_INACTIVE = "POLICY_INACTIVE"
    EXCEEDS_CONSECUTIVE_LIMIT = "EXCEEDS_CONSECUTIVE_LIMIT"
    INSUFFICIENT_NOTICE = "INSUFFICIENT_NOTICE"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    # Draft / configuration
    POLICY_NOT_FOUND = "POLICY_NOT_FOUND"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    NO_WORKING_DAYS = "NO_WORKING_DAYS"
    OVERLAPPING_REQUEST = "OVERLAPPING_REQUEST"
    EMPTY_ROLE_SEQUENCE = "EMPTY_ROLE_SEQUENCE"
    INVALID_ROLE = "INVALID_ROLE"
    INVALID_LEAVE_TYPE = "INVALID_LEAVE_TYPE"
    INVALID_DECISION = "INVALID_DECISION"
    INVALID_STATUS = "INVALID_STATUS"
    MANAGER_CYCLE = "MANAGER_CYCLE"
    DUPLICATE_ACTIVE_POLICY = "DUPLICATE_ACTIVE_POLICY"
    DUPLICATE_HOLIDAY = "DUPLICATE_HOLIDAY"
    DUPLICATE_EMPLOYEE = "DUPLICATE_EMPLOYEE"
    # Approval chain
    NOT_CURRENT_STEP = "NOT_CURRENT_STEP"
    ALREADY_DECIDED = "ALREADY_DECIDED"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"
    # Lookups
    STEP_NOT_FOUND = "STEP_NOT_FOUND"
    REQUEST_NOT_FOUND = "REQUEST_NOT_FOUND"
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    DEPARTMENT_NOT_FOUND = "DEPARTMENT_NOT_FOUND"
    BALANCE_NOT_FOUND = "BALANCE_NOT_FOUND"
    # Access
    NOT_PERMITTED = "NOT_PERMITTED"
    # Storage
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


VIOLATION_CATEGORIES = {
    ViolationKind.POLICY_INACTIVE: ErrorCategory.VALIDATION,
    ViolationKind.EXCEEDS_CONSECUTIVE_LIMIT: ErrorCategory.VALIDATION,
    ViolationKind.INSUFFICIENT_NOTICE: ErrorCategory.VALIDATION,
    ViolationKind.INSUFFICIENT_BALANCE: ErrorCategory.VALIDATION,
    ViolationKind.POLICY_NOT_FOUND: ErrorCategory.VALIDATION,
    ViolationKind.INVALID_DATE_RANGE: ErrorCategory.VALIDATION,
    ViolationKind.NO_WORKING_DAYS: ErrorCategory.VALIDATION,
    ViolationKind.OVERLAPPING_REQUEST: ErrorCategory.VALIDATION,
    ViolationKind.EMPTY_ROLE_SEQUENCE: ErrorCategory.VALIDATION,
    ViolationKind.INVALID_ROLE: ErrorCategory.VALIDATION,
    ViolationKind.INVALID_LEAVE_TYPE: ErrorCategory.VALIDATION,
    ViolationKind.INVALID_DECISION: ErrorCategory.VALIDATION,
    ViolationKind.INVALID_STATUS: ErrorCategory.VALIDATION,
    ViolationKind.MANAGER_CYCLE: ErrorCategory.VALIDATION,
    ViolationKind.DUPLICATE_ACTIVE_POLICY: ErrorCategory.VALIDATION,
    ViolationKind.DUPLICATE_HOLIDAY: ErrorCategory.VALIDATION,
    ViolationKind.DUPLICATE_EMPLOYEE: ErrorCategory.VALIDATION,
    ViolationKind.NOT_CURRENT_STEP: ErrorCategory.STATE_CONFLICT,
    ViolationKind.ALREADY_DECIDED: ErrorCategory.STATE_CONFLICT,
    ViolationKind.LOCK_TIMEOUT: ErrorCategory.STATE_CONFLICT,
    ViolationKind.STEP_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ViolationKind.REQUEST_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ViolationKind.EMPLOYEE_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ViolationKind.DEPARTMENT_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ViolationKind.BALANCE_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ViolationKind.NOT_PERMITTED: ErrorCategory.PERMISSION_DENIED,
    ViolationKind.PERSISTENCE_FAILURE: ErrorCategory.PERSISTENCE_FAILURE,
}


@dataclass(frozen=True)
class Violation:
    """A user-facing failure: what went wrong and a message to show."""
    kind: ViolationKind
    message: str

    @property
    def category(self) -> ErrorCategory:
        return VIOLATION_CATEGORIES[self.kind]

    @property
    def retryable(self) -> bool:
        return self.category == ErrorCategory.STATE_CONFLICT


@dataclass(frozen=True)
class WorkflowResult(Generic[T]):
    value: Optional[T] = None
    violation: Optional[Violation] = None

    @property
    def ok(self) -> bool:
        return self.violation is None

    @classmethod
    def success(cls, value: Any = None) -> "WorkflowResult":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ViolationKind, message: str) -> "WorkflowResult":
        return cls(violation=Violation(kind=kind, message=message))
