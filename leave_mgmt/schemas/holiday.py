"""
Holiday calendar schemas
"""
from datetime import date as date_type, datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_serializer, ConfigDict
from leave_mgmt.utils.datetime_utils import iso_utc


class HolidayCreate(BaseModel):
    """Schema for creating a holiday"""
    date: date_type = Field(..., description="Holiday date")
    name: str = Field(..., min_length=1, max_length=200, description="Holiday name")
    description: Optional[str] = Field(None, description="Holiday description")


class HolidayOut(BaseModel):
    id: int
    date: date_type
    name: str
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: datetime) -> str:
        return iso_utc(dt)


class HolidayListResponse(BaseModel):
    items: List[HolidayOut]
    total: int
