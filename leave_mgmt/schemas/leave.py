"""
Leave request, approval step and balance schemas
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_serializer, ConfigDict
from leave_mgmt.utils.datetime_utils import iso_utc
from leave_mgmt.workflow.types import Decision, LeaveStatus, LeaveType, StepStatus


class LeaveSubmitRequest(BaseModel):
    """Schema for submitting a leave request"""
    leave_type: LeaveType = Field(..., description="Type of leave")
    from_date: date = Field(..., description="First day of leave (inclusive)")
    to_date: date = Field(..., description="Last day of leave (inclusive)")
    reason: str = Field(..., min_length=1, description="Reason for leave")
    employee_id: Optional[int] = Field(
        None, description="Employee to file for (HR/admin only); defaults to the caller"
    )


class DecisionRequest(BaseModel):
    """Schema for an approver's decision on the current step"""
    decision: Decision
    comment: Optional[str] = Field(None, description="Approver comment")


class ApprovalStepOut(BaseModel):
    id: int
    step_order: int
    approver_role: str
    approver_id: Optional[int] = None
    status: StepStatus
    comments: Optional[str] = None
    approved_at: Optional[datetime] = None
    is_current: bool

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("approved_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_utc(dt)


class LeaveOut(BaseModel):
    id: int
    employee_id: int
    leave_type: LeaveType
    from_date: date
    to_date: date
    reason: str
    days_count: int
    status: LeaveStatus
    created_at: datetime
    updated_at: datetime
    steps: List[ApprovalStepOut] = []

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: datetime) -> str:
        return iso_utc(dt)


class LeaveListResponse(BaseModel):
    items: List[LeaveOut]
    total: int


class BalanceOut(BaseModel):
    id: int
    employee_id: int
    leave_type: LeaveType
    year: int
    total_days: int
    used_days: int
    remaining_days: int
    carried_forward_days: int

    model_config = ConfigDict(from_attributes=True)


class BalanceListResponse(BaseModel):
    employee_id: int
    year: int
    items: List[BalanceOut]


class BalanceAllocateRequest(BaseModel):
    """Set an employee's entitlement for a leave type and year"""
    employee_id: int
    leave_type: LeaveType
    year: int = Field(..., ge=1900, le=9999)
    total_days: int = Field(..., ge=0)


class CarryForwardRequest(BaseModel):
    employee_id: int
    leave_type: LeaveType
    from_year: int = Field(..., ge=1900, le=9998)
