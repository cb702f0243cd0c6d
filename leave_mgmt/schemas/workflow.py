"""
Approval workflow configuration schemas
"""
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, computed_field, field_validator
from leave_mgmt.workflow.types import LeaveType, UserRole


class WorkflowConfigSet(BaseModel):
    """Replace the approver role sequence for a leave type / department scope"""
    name: str = Field(..., min_length=1, max_length=200)
    leave_type: Optional[LeaveType] = Field(None, description="Null applies to every leave type")
    department_id: Optional[int] = Field(None, description="Null applies to every department")
    roles: List[UserRole] = Field(..., min_length=1, description="Approver roles in order")

    @field_validator("roles")
    @classmethod
    def no_employee_approvers(cls, v: List[UserRole]) -> List[UserRole]:
        if UserRole.EMPLOYEE in v:
            raise ValueError("employee cannot be an approver role")
        return v


class WorkflowConfigStepOut(BaseModel):
    step_order: int
    role: str

    model_config = ConfigDict(from_attributes=True)


class WorkflowConfigOut(BaseModel):
    id: int
    name: str
    leave_type: Optional[LeaveType] = None
    department_id: Optional[int] = None
    is_active: bool
    steps: List[WorkflowConfigStepOut]

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def roles(self) -> List[str]:
        return [s.role for s in self.steps]


class RoleSequenceOut(BaseModel):
    """Role sequence that a new request for this scope would get"""
    leave_type: LeaveType
    department_id: Optional[int] = None
    roles: List[str]
    source: str  # workflow config name, or "default"
