"""
Leave policy schemas
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator, field_serializer, ConfigDict
from leave_mgmt.utils.datetime_utils import iso_utc
from leave_mgmt.workflow.types import LeaveType


class PolicyCreate(BaseModel):
    """Schema for creating a leave policy"""
    leave_type: LeaveType
    annual_limit: int = Field(..., ge=0, description="Days granted per year")
    min_days_notice: int = Field(..., ge=0, description="Days between today and from_date")
    max_consecutive_days: int = Field(..., ge=1, description="Max business days in one request")
    carry_forward_allowed: bool = False
    carry_forward_limit: Optional[int] = Field(None, ge=0, description="Max days carried into next year")
    requires_medical_certificate: bool = False
    is_active: bool = True

    @model_validator(mode="after")
    def check_carry_forward(self) -> "PolicyCreate":
        if self.carry_forward_limit is not None and not self.carry_forward_allowed:
            raise ValueError("carry_forward_limit requires carry_forward_allowed")
        return self


class PolicyUpdate(BaseModel):
    """Partial update; only provided fields change"""
    annual_limit: Optional[int] = Field(None, ge=0)
    min_days_notice: Optional[int] = Field(None, ge=0)
    max_consecutive_days: Optional[int] = Field(None, ge=1)
    carry_forward_allowed: Optional[bool] = None
    carry_forward_limit: Optional[int] = Field(None, ge=0)
    requires_medical_certificate: Optional[bool] = None
    is_active: Optional[bool] = None


class PolicyOut(BaseModel):
    id: int
    leave_type: LeaveType
    annual_limit: int
    min_days_notice: int
    max_consecutive_days: int
    carry_forward_allowed: bool
    carry_forward_limit: Optional[int] = None
    requires_medical_certificate: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: datetime) -> str:
        return iso_utc(dt)


class PolicyListResponse(BaseModel):
    items: List[PolicyOut]
    total: int
