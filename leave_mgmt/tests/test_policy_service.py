"""
Tests for leave policy management
"""
from leave_mgmt.models import AuditLog
from leave_mgmt.schemas.policy import PolicyCreate, PolicyUpdate
from leave_mgmt.services import policy_service
from leave_mgmt.workflow.results import ViolationKind
from leave_mgmt.workflow.types import LeaveType


def personal_policy(**overrides):
    fields = dict(leave_type=LeaveType.PERSONAL, annual_limit=3, min_days_notice=1, max_consecutive_days=2)
    fields.update(overrides)
    return PolicyCreate(**fields)


def test_create_policy(db, org):
    result = policy_service.create_policy(db, org.hr, personal_policy())

    assert result.ok
    assert result.value.leave_type == "personal"
    assert policy_service.get_active_policy(db, LeaveType.PERSONAL).id == result.value.id
    assert db.query(AuditLog).filter(AuditLog.action == "POLICY_CREATE").count() == 1


def test_employee_cannot_create_policy(db, org):
    result = policy_service.create_policy(db, org.employee, personal_policy())

    assert result.violation.kind == ViolationKind.NOT_PERMITTED


def test_one_active_policy_per_type(db, org, policies):
    duplicate = policy_service.create_policy(
        db, org.hr, personal_policy(leave_type=LeaveType.CASUAL)
    )
    assert duplicate.violation.kind == ViolationKind.DUPLICATE_ACTIVE_POLICY

    inactive = policy_service.create_policy(
        db, org.hr, personal_policy(leave_type=LeaveType.CASUAL, is_active=False)
    )
    assert inactive.ok

    reactivate = policy_service.update_policy(db, org.hr, inactive.value.id, PolicyUpdate(is_active=True))
    assert reactivate.violation.kind == ViolationKind.DUPLICATE_ACTIVE_POLICY


def test_update_only_changes_provided_fields(db, org, policies):
    casual = policies[LeaveType.CASUAL]

    result = policy_service.update_policy(db, org.admin, casual.id, PolicyUpdate(annual_limit=15))

    assert result.ok
    assert result.value.annual_limit == 15
    assert result.value.min_days_notice == 2


def test_disabling_carry_forward_clears_limit(db, org, policies):
    casual = policies[LeaveType.CASUAL]

    result = policy_service.update_policy(db, org.hr, casual.id, PolicyUpdate(carry_forward_allowed=False))

    assert result.value.carry_forward_limit is None


def test_update_unknown_policy(db, org):
    result = policy_service.update_policy(db, org.hr, 404, PolicyUpdate(annual_limit=1))

    assert result.violation.kind == ViolationKind.POLICY_NOT_FOUND


def test_list_policies(db, org, policies):
    policy_service.update_policy(db, org.hr, policies[LeaveType.SICK].id, PolicyUpdate(is_active=False))

    assert len(policy_service.list_policies(db)) == 3
    assert {p.leave_type for p in policy_service.list_policies(db, active_only=True)} == {"casual", "paid"}
