"""
Holiday calendar service - holidays are excluded from leave day counts
"""
import logging
from datetime import date
from typing import List, Optional, Set
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from leave_mgmt.models.holiday import Holiday
from leave_mgmt.models.user import User
from leave_mgmt.services.audit_service import log_audit
from leave_mgmt.services.persistence import persistence_failure
from leave_mgmt.utils.datetime_utils import now_utc
from leave_mgmt.workflow import permissions
from leave_mgmt.workflow.permissions import Operation
from leave_mgmt.workflow.results import ViolationKind, WorkflowResult

logger = logging.getLogger(__name__)


def create_holiday(
    db: Session,
    actor: User,
    holiday_date: date,
    name: str,
    description: Optional[str] = None,
) -> WorkflowResult:
    """
    Create a new holiday

    Args:
        db: Database session
        actor: Calling user (hr or admin)
        holiday_date: Holiday date (unique)
        name: Holiday name
        description: Optional description

    Returns:
        WorkflowResult holding the created Holiday
    """
    denied = permissions.check(actor.role, Operation.MANAGE_HOLIDAYS)
    if denied:
        return denied

    existing = db.query(Holiday).filter(Holiday.date == holiday_date).first()
    if existing:
        return WorkflowResult.failure(
            ViolationKind.DUPLICATE_HOLIDAY,
            f"Holiday already exists for date {holiday_date}",
        )

    # Explicit timestamps; SQLite server defaults come back naive
    now = now_utc()
    holiday = Holiday(
        date=holiday_date,
        name=name,
        description=description,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(holiday)
        db.flush()
        log_audit(
            db=db,
            actor_id=actor.id,
            action="HOLIDAY_CREATE",
            entity_type="holiday",
            entity_id=holiday.id,
            meta={"date": holiday_date, "name": name},
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "create_holiday")

    db.refresh(holiday)
    logger.info("holiday created: %s %s", holiday_date, name)
    return WorkflowResult.success(holiday)


def list_holidays(db: Session, year: Optional[int] = None) -> List[Holiday]:
    query = db.query(Holiday)
    if year is not None:
        query = query.filter(Holiday.date >= date(year, 1, 1), Holiday.date <= date(year, 12, 31))
    return query.order_by(Holiday.date).all()


def get_holiday_dates_in_range(db: Session, start_date: date, end_date: date) -> Set[date]:
    """Holiday dates within [start_date, end_date] inclusive"""
    rows = db.query(Holiday.date).filter(
        Holiday.date >= start_date,
        Holiday.date <= end_date
    ).all()
    return {row[0] for row in rows}
