"""
Employee service - employees, their login accounts and the manager hierarchy
"""
import logging
from typing import Dict, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from leave_mgmt.core.config import settings
from leave_mgmt.core.security import hash_password
from leave_mgmt.models.employee import Employee, EmployeeStatus
from leave_mgmt.models.user import User
from leave_mgmt.schemas.employee import EmployeeCreate
from leave_mgmt.services import department_service
from leave_mgmt.services.audit_service import log_audit
from leave_mgmt.services.persistence import persistence_failure
from leave_mgmt.utils.datetime_utils import now_utc
from leave_mgmt.workflow import hierarchy, permissions
from leave_mgmt.workflow.permissions import Operation
from leave_mgmt.workflow.results import ViolationKind, WorkflowResult
from leave_mgmt.workflow.types import UserRole

logger = logging.getLogger(__name__)

ADMIN_EMPLOYEE_CODE = "ADM-001"


def get_employee(db: Session, employee_id: int) -> Optional[Employee]:
    return db.query(Employee).filter(Employee.id == employee_id).first()


def build_manager_index(db: Session) -> Dict[int, Optional[int]]:
    """{employee id: manager id} for every employee, active or not"""
    return {emp_id: mgr_id for emp_id, mgr_id in db.query(Employee.id, Employee.manager_id).all()}


def _not_found(employee_id: int) -> WorkflowResult:
    return WorkflowResult.failure(ViolationKind.EMPLOYEE_NOT_FOUND, f"Employee {employee_id} not found")


def create_employee(db: Session, actor: User, data: EmployeeCreate) -> WorkflowResult:
    """
    Create an employee and, when a username is given, its login account

    Args:
        db: Database session
        actor: Calling user (hr or admin)
        data: Employee creation data

    Returns:
        WorkflowResult holding the created Employee
    """
    denied = permissions.check(actor.role, Operation.MANAGE_EMPLOYEES)
    if denied:
        return denied

    if department_service.get_department(db, data.department_id) is None:
        return WorkflowResult.failure(
            ViolationKind.DEPARTMENT_NOT_FOUND,
            f"Department {data.department_id} not found",
        )
    if data.manager_id is not None and get_employee(db, data.manager_id) is None:
        return _not_found(data.manager_id)

    if db.query(Employee).filter(Employee.employee_id == data.employee_id).first():
        return WorkflowResult.failure(
            ViolationKind.DUPLICATE_EMPLOYEE,
            f"Employee code '{data.employee_id}' already exists",
        )
    if data.username and db.query(User).filter(User.username == data.username).first():
        return WorkflowResult.failure(
            ViolationKind.DUPLICATE_EMPLOYEE,
            f"Username '{data.username}' already exists",
        )

    now = now_utc()
    employee = Employee(
        employee_id=data.employee_id,
        name=data.name,
        email=data.email,
        position=data.position,
        department_id=data.department_id,
        manager_id=data.manager_id,
        joining_date=data.joining_date,
        status=EmployeeStatus.ACTIVE.value,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(employee)
        db.flush()
        if data.username:
            db.add(User(
                username=data.username,
                email=data.email,
                employee_id=employee.id,
                role=data.role.value,
                password_hash=hash_password(data.password) if data.password else None,
                is_active=True,
                created_at=now,
                updated_at=now,
            ))
        log_audit(
            db=db,
            actor_id=actor.id,
            action="EMPLOYEE_CREATE",
            entity_type="employee",
            entity_id=employee.id,
            meta={
                "employee_id": data.employee_id,
                "department_id": data.department_id,
                "manager_id": data.manager_id,
                "role": data.role,
                "username": data.username,
            },
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "create_employee")

    db.refresh(employee)
    logger.info("employee created: id=%s code=%s", employee.id, employee.employee_id)
    return WorkflowResult.success(employee)


def set_manager(db: Session, actor: User, employee_id: int, manager_id: Optional[int]) -> WorkflowResult:
    """
    Set or clear an employee's manager.

    Rejects self-management and any assignment that would make the
    hierarchy cyclic (MANAGER_CYCLE).
    """
    denied = permissions.check(actor.role, Operation.MANAGE_EMPLOYEES)
    if denied:
        return denied

    employee = get_employee(db, employee_id)
    if employee is None:
        return _not_found(employee_id)
    if manager_id is not None and get_employee(db, manager_id) is None:
        return _not_found(manager_id)

    if hierarchy.would_create_cycle(build_manager_index(db), employee_id, manager_id):
        return WorkflowResult.failure(
            ViolationKind.MANAGER_CYCLE,
            f"Employee {manager_id} cannot manage employee {employee_id}: "
            "the reporting line would become circular",
        )

    old_manager_id = employee.manager_id
    employee.manager_id = manager_id
    employee.updated_at = now_utc()
    try:
        log_audit(
            db=db,
            actor_id=actor.id,
            action="EMPLOYEE_SET_MANAGER",
            entity_type="employee",
            entity_id=employee.id,
            meta={"old_manager_id": old_manager_id, "new_manager_id": manager_id},
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "set_manager")

    db.refresh(employee)
    logger.info("manager changed: employee=%s %s -> %s", employee_id, old_manager_id, manager_id)
    return WorkflowResult.success(employee)


def set_status(db: Session, actor: User, employee_id: int, status: EmployeeStatus) -> WorkflowResult:
    """Activate or retire an employee. Employees are never hard-deleted."""
    denied = permissions.check(actor.role, Operation.MANAGE_EMPLOYEES)
    if denied:
        return denied

    employee = get_employee(db, employee_id)
    if employee is None:
        return _not_found(employee_id)

    status_value = status.value if isinstance(status, EmployeeStatus) else str(status)
    old_status = employee.status
    employee.status = status_value
    employee.updated_at = now_utc()
    user = db.query(User).filter(User.employee_id == employee.id).first()
    if user is not None:
        user.is_active = status_value == EmployeeStatus.ACTIVE.value
    try:
        log_audit(
            db=db,
            actor_id=actor.id,
            action="EMPLOYEE_SET_STATUS",
            entity_type="employee",
            entity_id=employee.id,
            meta={"old": old_status, "new": status_value},
        )
        db.commit()
    except SQLAlchemyError as e:
        return persistence_failure(db, e, "set_status")

    db.refresh(employee)
    return WorkflowResult.success(employee)


def list_direct_reports(db: Session, actor: User, manager_id: int) -> WorkflowResult:
    """
    Active direct reports of a manager.

    A manager may list their own reports; hr and admin may list anyone's.
    """
    if actor.employee_id != manager_id:
        denied = permissions.check(actor.role, Operation.MANAGE_EMPLOYEES)
        if denied:
            return denied
    if get_employee(db, manager_id) is None:
        return _not_found(manager_id)

    report_ids = hierarchy.direct_reports(build_manager_index(db), manager_id)
    if not report_ids:
        return WorkflowResult.success([])
    reports = (
        db.query(Employee)
        .filter(Employee.id.in_(report_ids), Employee.status == EmployeeStatus.ACTIVE.value)
        .order_by(Employee.id)
        .all()
    )
    return WorkflowResult.success(reports)


def ensure_initial_admin(db: Session) -> Optional[User]:
    """
    Create the first admin account if no admin user exists.

    Returns:
        The created User, or None when an admin already exists
    """
    if db.query(User).filter(User.role == UserRole.ADMIN.value).first():
        logger.info("Admin user already exists, skipping initial bootstrap")
        return None

    logger.info("No admin user found, creating initial admin setup...")
    department = department_service.get_or_create_department(db, "Administration")
    now = now_utc()
    employee = db.query(Employee).filter(Employee.employee_id == ADMIN_EMPLOYEE_CODE).first()
    if employee is None:
        employee = Employee(
            employee_id=ADMIN_EMPLOYEE_CODE,
            name="Administrator",
            position="Administrator",
            department_id=department.id,
            joining_date=now.date(),
            status=EmployeeStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        db.add(employee)
        db.flush()

    user = User(
        username=settings.INITIAL_ADMIN_USERNAME,
        employee_id=employee.id,
        role=UserRole.ADMIN.value,
        password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Initial admin user created: username=%s", user.username)
    return user
