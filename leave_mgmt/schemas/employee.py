"""
Employee schemas
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, field_serializer, ConfigDict
from leave_mgmt.models.employee import EmployeeStatus
from leave_mgmt.utils.datetime_utils import iso_utc
from leave_mgmt.workflow.types import UserRole


class EmployeeCreate(BaseModel):
    """Schema for creating an employee (and optionally its login account)"""
    employee_id: str = Field(..., min_length=1, max_length=50, description="Employee code (unique)")
    name: str = Field(..., min_length=1, max_length=200, description="Employee name")
    email: Optional[str] = Field(None, description="Employee email")
    position: str = Field(..., description="Job title")
    department_id: int = Field(..., description="Department ID")
    manager_id: Optional[int] = Field(None, description="Manager (employees.id)")
    joining_date: date = Field(..., description="Joining date")
    role: UserRole = Field(UserRole.EMPLOYEE, description="Workflow role of the login account")
    username: Optional[str] = Field(None, description="Login username; no account is created when omitted")
    password: Optional[str] = Field(None, description="Login password (6-72 characters)")

    @field_validator("password", mode="before")
    @classmethod
    def validate_password(cls, v):
        """Normalize and validate password"""
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password cannot be longer than 72 bytes when encoded as UTF-8")
        return v


class ManagerUpdate(BaseModel):
    """Set or clear an employee's manager"""
    manager_id: Optional[int] = Field(None, description="New manager (null to clear)")


class StatusUpdate(BaseModel):
    status: EmployeeStatus


class EmployeeOut(BaseModel):
    id: int
    employee_id: str
    name: str
    email: Optional[str] = None
    position: str
    department_id: int
    manager_id: Optional[int] = None
    joining_date: date
    status: EmployeeStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: datetime) -> str:
        return iso_utc(dt)


class EmployeeListResponse(BaseModel):
    items: List[EmployeeOut]
    total: int
