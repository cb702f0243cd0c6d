"""
Department lookups used by the employee and workflow services
"""
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from leave_mgmt.models.department import Department
from leave_mgmt.utils.datetime_utils import now_utc


def get_department(db: Session, department_id: int) -> Optional[Department]:
    return db.query(Department).filter(Department.id == department_id).first()


def get_or_create_department(db: Session, name: str, description: Optional[str] = None) -> Department:
    """
    Return the department with this name (case-insensitive), creating it if needed.

    Flushes only; used by the seed script and test fixtures.
    """
    existing = db.query(Department).filter(
        func.lower(Department.name) == func.lower(name)
    ).first()
    if existing:
        return existing

    now = now_utc()
    department = Department(
        name=name,
        description=description,
        active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(department)
    db.flush()
    return department
