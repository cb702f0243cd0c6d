"""
Plain data types shared by the workflow core.

These mirror the ORM rows closely enough that the service layer can convert
back and forth, but carry no persistence behaviour.
"""
import enum
from dataclasses import dataclass
from datetime import date
from typing import Optional


class LeaveType(str, enum.Enum):
    CASUAL = "casual"
    SICK = "sick"
    PAID = "paid"
    PERSONAL = "personal"
    MATERNITY = "maternity"
    PATERNITY = "paternity"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StepStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class UserRole(str, enum.Enum):
    EMPLOYEE = "employee"
    LINE_MANAGER = "line_manager"
    HR = "hr"
    ADMIN = "admin"


@dataclass(frozen=True)
class PolicyRules:
    leave_type: LeaveType
    annual_limit: int
    min_days_notice: int
    max_consecutive_days: int
    carry_forward_allowed: bool = False
    carry_forward_limit: Optional[int] = None
    requires_medical_certificate: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class RequestDraft:
    employee_id: int
    leave_type: LeaveType
    from_date: date
    to_date: date
    days_count: int
    reason: str = ""

    @property
    def year(self) -> int:
        return self.from_date.year
