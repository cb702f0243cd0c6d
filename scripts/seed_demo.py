"""
Seed a demo organisation: departments, employees with logins, holidays,
the casual/sick/paid leave policies, the default approval workflow and
balances for the current year. Safe to re-run; existing rows are skipped.
Run from the repository root with .env loaded.

Usage:
  python scripts/seed_demo.py            # seeds the current year
  python scripts/seed_demo.py 2027       # seeds balances/holidays for 2027
"""
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from leave_mgmt.db.session import SessionLocal
from leave_mgmt.models.employee import Employee
from leave_mgmt.models.user import User
from leave_mgmt.schemas.employee import EmployeeCreate
from leave_mgmt.schemas.policy import PolicyCreate
from leave_mgmt.services import (
    department_service,
    employee_service,
    holiday_service,
    leave_balance_service,
    policy_service,
    workflow_config_service,
)
from leave_mgmt.workflow.types import LeaveType, UserRole

DEMO_PASSWORD = "Password@123"

DEPARTMENTS = [
    ("Engineering", "Software Development"),
    ("Human Resources", "HR Management"),
    ("Marketing", "Marketing and Sales"),
]

# code, name, department, position, role, username
EMPLOYEES = [
    ("EMP002", "Sarah Johnson", "Human Resources", "HR Manager", UserRole.HR, "hr.manager"),
    ("EMP003", "Mike Chen", "Engineering", "Team Lead", UserRole.LINE_MANAGER, "line.manager"),
    ("EMP004", "Emily Davis", "Engineering", "Software Developer", UserRole.EMPLOYEE, "employee"),
]

POLICIES = [
    PolicyCreate(leave_type=LeaveType.CASUAL, annual_limit=12, min_days_notice=2, max_consecutive_days=5,
                 carry_forward_allowed=True, carry_forward_limit=5),
    PolicyCreate(leave_type=LeaveType.SICK, annual_limit=10, min_days_notice=0, max_consecutive_days=10,
                 requires_medical_certificate=True),
    PolicyCreate(leave_type=LeaveType.PAID, annual_limit=20, min_days_notice=7, max_consecutive_days=15,
                 carry_forward_allowed=True, carry_forward_limit=10),
]


def _report(label: str, result) -> None:
    if result.ok:
        print(f"  {label}: ok")
    else:
        print(f"  {label}: skipped ({result.violation.kind.value}: {result.violation.message})")


def main():
    year = int(sys.argv[1]) if len(sys.argv) > 1 else date.today().year

    db = SessionLocal()
    try:
        employee_service.ensure_initial_admin(db)
        admin = db.query(User).filter(User.role == UserRole.ADMIN.value).first()

        print("Departments")
        departments = {}
        for name, description in DEPARTMENTS:
            departments[name] = department_service.get_or_create_department(db, name, description)
        db.commit()

        print("Employees")
        for code, name, dept, position, role, username in EMPLOYEES:
            result = employee_service.create_employee(db, admin, EmployeeCreate(
                employee_id=code,
                name=name,
                email=f"{username}@company.com",
                position=position,
                department_id=departments[dept].id,
                joining_date=date(year, 1, 1),
                role=role,
                username=username,
                password=DEMO_PASSWORD,
            ))
            _report(code, result)

        lead = db.query(Employee).filter(Employee.employee_id == "EMP003").first()
        developer = db.query(Employee).filter(Employee.employee_id == "EMP004").first()
        _report("EMP004 reports to EMP003", employee_service.set_manager(db, admin, developer.id, lead.id))

        print("Holidays")
        for holiday_date, name in [
            (date(year, 1, 1), "New Year's Day"),
            (date(year, 7, 4), "Independence Day"),
            (date(year, 12, 25), "Christmas Day"),
        ]:
            _report(name, holiday_service.create_holiday(db, admin, holiday_date, name))

        print("Policies")
        for policy in POLICIES:
            _report(policy.leave_type.value, policy_service.create_policy(db, admin, policy))

        print("Workflow")
        if workflow_config_service.resolve_config(db, None, None) is None:
            _report("default", workflow_config_service.set_workflow_config(
                db, admin, name="Default approval", roles=[UserRole.LINE_MANAGER, UserRole.HR]
            ))

        print("Balances")
        for policy in POLICIES:
            result = leave_balance_service.allocate(
                db, admin, developer.id, policy.leave_type, year, policy.annual_limit
            )
            _report(f"EMP004 {policy.leave_type.value} {year}", result)
    finally:
        db.close()


if __name__ == "__main__":
    main()
