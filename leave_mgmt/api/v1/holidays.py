"""
Holiday calendar endpoints
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leave_mgmt.core.deps import get_db, get_current_user
from leave_mgmt.core.errors import unwrap
from leave_mgmt.models.user import User
from leave_mgmt.schemas.holiday import HolidayCreate, HolidayOut, HolidayListResponse
from leave_mgmt.services.holiday_service import create_holiday, list_holidays

router = APIRouter()


@router.post("", response_model=HolidayOut, status_code=201)
async def create_holiday_endpoint(
    holiday_data: HolidayCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a new holiday (HR/Admin)"""
    return unwrap(create_holiday(
        db=db,
        actor=current_user,
        holiday_date=holiday_data.date,
        name=holiday_data.name,
        description=holiday_data.description,
    ))


@router.get("", response_model=HolidayListResponse)
async def list_holidays_endpoint(
    year: Optional[int] = Query(None, description="Filter by year"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List holidays"""
    holidays = list_holidays(db, year=year)
    return HolidayListResponse(items=holidays, total=len(holidays))
