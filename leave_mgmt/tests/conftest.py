"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-leave-management-tests")
os.environ.setdefault("APP_ENV", "local")

from datetime import date  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from leave_mgmt.main import app  # noqa: E402
from leave_mgmt.db.base import Base  # noqa: E402
from leave_mgmt.core.deps import get_db  # noqa: E402
from leave_mgmt.core.security import create_access_token, hash_password  # noqa: E402
from leave_mgmt.models import (  # noqa: E402
    Department,
    Employee,
    EmployeeStatus,
    User,
    LeavePolicy,
)
from leave_mgmt.utils.datetime_utils import now_utc  # noqa: E402
from leave_mgmt.workflow.types import LeaveType, UserRole  # noqa: E402


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "Password@123"
_password_hash = {}


def _hashed_test_password() -> str:
    # bcrypt is slow; hash once per run
    if "value" not in _password_hash:
        _password_hash["value"] = hash_password(TEST_PASSWORD)
    return _password_hash["value"]


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def department(db):
    """Create the Engineering department"""
    dept = Department(name="Engineering", active=True, created_at=now_utc(), updated_at=now_utc())
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


@pytest.fixture
def make_user(db, department):
    """Factory: employee row plus its login account"""
    def _make(code, role, manager=None, department_id=None, with_password=False, active=True):
        now = now_utc()
        employee = Employee(
            employee_id=code,
            name=f"Employee {code}",
            email=f"{code.lower()}@company.com",
            position=role.value,
            department_id=department_id or department.id,
            manager_id=manager.employee_id if manager is not None else None,
            joining_date=date(2024, 1, 1),
            status=EmployeeStatus.ACTIVE.value if active else EmployeeStatus.INACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        db.add(employee)
        db.flush()
        user = User(
            username=code.lower(),
            email=employee.email,
            employee_id=employee.id,
            role=role.value,
            password_hash=_hashed_test_password() if with_password else None,
            is_active=active,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def org(make_user):
    """
    admin, hr, a line manager with one report, a second line manager
    without reports and an employee outside the team.
    """
    admin = make_user("ADM001", UserRole.ADMIN)
    hr = make_user("HR001", UserRole.HR)
    manager = make_user("MGR001", UserRole.LINE_MANAGER)
    employee = make_user("EMP001", UserRole.EMPLOYEE, manager=manager)
    other_manager = make_user("MGR002", UserRole.LINE_MANAGER)
    outsider = make_user("EMP002", UserRole.EMPLOYEE, manager=other_manager)
    return SimpleNamespace(
        admin=admin,
        hr=hr,
        manager=manager,
        employee=employee,
        other_manager=other_manager,
        outsider=outsider,
    )


@pytest.fixture
def policies(db):
    """casual / sick / paid policies as seeded by the demo script"""
    now = now_utc()
    rows = {
        LeaveType.CASUAL: LeavePolicy(
            leave_type="casual", annual_limit=12, min_days_notice=2, max_consecutive_days=5,
            carry_forward_allowed=True, carry_forward_limit=5, is_active=True,
            created_at=now, updated_at=now,
        ),
        LeaveType.SICK: LeavePolicy(
            leave_type="sick", annual_limit=10, min_days_notice=0, max_consecutive_days=10,
            carry_forward_allowed=False, requires_medical_certificate=True, is_active=True,
            created_at=now, updated_at=now,
        ),
        LeaveType.PAID: LeavePolicy(
            leave_type="paid", annual_limit=20, min_days_notice=7, max_consecutive_days=15,
            carry_forward_allowed=True, carry_forward_limit=10, is_active=True,
            created_at=now, updated_at=now,
        ),
    }
    db.add_all(rows.values())
    db.commit()
    return rows


@pytest.fixture
def auth_headers():
    """Bearer header for a user without going through /auth/login"""
    def _headers(user):
        token = create_access_token({"sub": str(user.id), "role": user.role})
        return {"Authorization": f"Bearer {token}"}
    return _headers
