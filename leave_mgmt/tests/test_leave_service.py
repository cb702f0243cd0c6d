"""
Tests for leave submission and the multi-step approval workflow
"""
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from leave_mgmt.core.config import settings
from leave_mgmt.models import AuditLog, Holiday, LeavePolicy
from leave_mgmt.models.leave import ApprovalStep, LeaveBalance, LeaveRequest, LeaveTransaction
from leave_mgmt.services import leave_service
from leave_mgmt.utils.datetime_utils import now_utc
from leave_mgmt.workflow.approval_chain import current_flag_matches
from leave_mgmt.workflow.locks import request_locks
from leave_mgmt.workflow.results import ViolationKind
from leave_mgmt.workflow.types import Decision, LeaveStatus, LeaveType

# Monday 2031-03-03 .. Friday 2031-03-07
MONDAY = date(2031, 3, 3)
FRIDAY = date(2031, 3, 7)
TODAY = date(2031, 2, 1)


def submit(db, actor, leave_type=LeaveType.CASUAL, from_date=MONDAY, to_date=FRIDAY, employee_id=None, today=TODAY):
    return leave_service.submit_leave(
        db, actor, employee_id, leave_type, from_date, to_date, "family event", today=today,
    )


def submitted(db, org, **kwargs):
    result = submit(db, org.employee, **kwargs)
    assert result.ok, result.violation
    return result.value


class TestSubmitLeave:
    def test_creates_pending_request_with_steps(self, db, org, policies):
        result = submit(db, org.employee)

        assert result.ok
        request = result.value
        assert request.status == LeaveStatus.PENDING.value
        assert request.days_count == 5
        assert [(s.step_order, s.approver_role, s.is_current) for s in request.steps] == [
            (1, "line_manager", True),
            (2, "hr", False),
        ]

    def test_opens_balance_without_consuming_it(self, db, org, policies):
        submit(db, org.employee)

        balance = db.query(LeaveBalance).one()
        assert (balance.total_days, balance.used_days, balance.remaining_days) == (12, 0, 12)
        assert balance.year == 2031
        opening = db.query(LeaveTransaction).one()
        assert opening.action == "ALLOCATE"
        assert opening.delta_days == 12

    def test_writes_audit_entry(self, db, org, policies):
        request = submitted(db, org)

        entry = db.query(AuditLog).filter(AuditLog.action == "LEAVE_SUBMIT").one()
        assert entry.entity_id == request.id
        assert entry.actor_id == org.employee.id

    def test_holidays_and_weekend_are_not_counted(self, db, org, policies):
        db.add(Holiday(date=date(2031, 3, 5), name="Founders Day", created_at=now_utc(), updated_at=now_utc()))
        db.commit()

        request = submitted(db, org, to_date=date(2031, 3, 9))

        assert request.days_count == 4

    def test_hr_may_submit_for_another_employee(self, db, org, policies):
        result = submit(db, org.hr, employee_id=org.employee.employee_id)

        assert result.ok
        assert result.value.employee_id == org.employee.employee_id

    def test_employee_may_not_submit_for_another(self, db, org, policies):
        result = submit(db, org.employee, employee_id=org.outsider.employee_id)

        assert result.violation.kind == ViolationKind.NOT_PERMITTED

    def test_reversed_range(self, db, org, policies):
        result = submit(db, org.employee, from_date=FRIDAY, to_date=MONDAY)
        assert result.violation.kind == ViolationKind.INVALID_DATE_RANGE

    def test_range_across_years(self, db, org, policies):
        result = submit(db, org.employee, from_date=date(2031, 12, 31), to_date=date(2032, 1, 2))
        assert result.violation.kind == ViolationKind.INVALID_DATE_RANGE

    def test_weekend_only(self, db, org, policies):
        result = submit(db, org.employee, from_date=date(2031, 3, 8), to_date=date(2031, 3, 9))
        assert result.violation.kind == ViolationKind.NO_WORKING_DAYS

    def test_overlapping_pending_request(self, db, org, policies):
        submitted(db, org)

        result = submit(db, org.employee, leave_type=LeaveType.SICK, from_date=FRIDAY, to_date=FRIDAY)

        assert result.violation.kind == ViolationKind.OVERLAPPING_REQUEST

    def test_no_policy(self, db, org, policies):
        result = submit(db, org.employee, leave_type=LeaveType.MATERNITY)
        assert result.violation.kind == ViolationKind.POLICY_NOT_FOUND

    def test_inactive_policy(self, db, org, policies):
        policies[LeaveType.CASUAL].is_active = False
        db.commit()

        result = submit(db, org.employee)

        assert result.violation.kind == ViolationKind.POLICY_INACTIVE

    def test_exceeds_consecutive_limit(self, db, org, policies):
        result = submit(db, org.employee, to_date=date(2031, 3, 10))
        assert result.violation.kind == ViolationKind.EXCEEDS_CONSECUTIVE_LIMIT

    def test_insufficient_notice(self, db, org, policies):
        result = submit(db, org.employee, today=date(2031, 3, 2))
        assert result.violation.kind == ViolationKind.INSUFFICIENT_NOTICE

    def test_insufficient_balance(self, db, org, policies):
        db.add(LeaveBalance(
            employee_id=org.employee.employee_id, leave_type="casual", year=2031,
            total_days=12, used_days=10, remaining_days=2, carried_forward_days=0,
            created_at=now_utc(), updated_at=now_utc(),
        ))
        db.commit()

        result = submit(db, org.employee)

        assert result.violation.kind == ViolationKind.INSUFFICIENT_BALANCE

    def test_rejection_persists_nothing(self, db, org, policies):
        submit(db, org.employee, today=date(2031, 3, 2))

        assert db.query(LeaveRequest).count() == 0
        assert db.query(LeaveBalance).count() == 0
        assert db.query(AuditLog).count() == 0

    def test_storage_failure_rolls_back(self, db, org, policies, monkeypatch):
        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk full"))

        monkeypatch.setattr(db, "commit", failing_commit)

        result = submit(db, org.employee)

        assert result.violation.kind == ViolationKind.PERSISTENCE_FAILURE
        monkeypatch.undo()
        assert db.query(LeaveRequest).count() == 0
        assert db.query(ApprovalStep).count() == 0
        assert db.query(LeaveBalance).count() == 0


class TestDecideLeave:
    def test_two_step_approval_commits_ledger(self, db, org, policies):
        request = submitted(db, org)

        first = leave_service.decide_leave(db, org.manager, request.id, 1, Decision.APPROVED, "ok")
        assert first.ok
        assert first.value.status == LeaveStatus.PENDING.value
        assert db.query(LeaveBalance).one().used_days == 0

        second = leave_service.decide_leave(db, org.hr, request.id, 2, Decision.APPROVED)
        assert second.ok
        assert second.value.status == LeaveStatus.APPROVED.value

        balance = db.query(LeaveBalance).one()
        assert (balance.used_days, balance.remaining_days) == (5, 7)
        commit_tx = db.query(LeaveTransaction).filter(LeaveTransaction.action == "APPROVE_COMMIT").one()
        assert commit_tx.delta_days == -5
        assert commit_tx.leave_request_id == request.id

    def test_decision_is_recorded_on_step(self, db, org, policies):
        request = submitted(db, org)

        leave_service.decide_leave(db, org.manager, request.id, 1, Decision.APPROVED, "enjoy")

        step = db.query(ApprovalStep).filter(ApprovalStep.step_order == 1).one()
        assert step.status == "approved"
        assert step.approver_id == org.manager.employee_id
        assert step.comments == "enjoy"
        assert step.approved_at is not None
        assert not step.is_current
        assert db.query(ApprovalStep).filter(ApprovalStep.step_order == 2).one().is_current

    def test_rejection_ends_the_chain(self, db, org, policies):
        request = submitted(db, org)

        result = leave_service.decide_leave(db, org.manager, request.id, 1, Decision.REJECTED, "busy week")

        assert result.value.status == LeaveStatus.REJECTED.value
        later = db.query(ApprovalStep).filter(ApprovalStep.step_order == 2).one()
        assert later.status == "pending"
        assert not later.is_current
        assert db.query(LeaveBalance).one().used_days == 0

        frozen = leave_service.decide_leave(db, org.hr, request.id, 2, Decision.APPROVED)
        assert frozen.violation.kind == ViolationKind.NOT_CURRENT_STEP

    def test_rejected_request_frees_its_dates(self, db, org, policies):
        request = submitted(db, org)
        leave_service.decide_leave(db, org.manager, request.id, 1, Decision.REJECTED)

        assert submit(db, org.employee).ok

    def test_second_decision_on_same_step(self, db, org, policies):
        request = submitted(db, org)
        leave_service.decide_leave(db, org.manager, request.id, 1, Decision.APPROVED)

        again = leave_service.decide_leave(db, org.manager, request.id, 1, Decision.REJECTED)

        assert again.violation.kind == ViolationKind.ALREADY_DECIDED
        assert again.violation.retryable

    def test_out_of_order_step(self, db, org, policies):
        request = submitted(db, org)

        result = leave_service.decide_leave(db, org.hr, request.id, 2, Decision.APPROVED)

        assert result.violation.kind == ViolationKind.NOT_CURRENT_STEP

    def test_cannot_decide_own_request(self, db, org, policies):
        own = submit(db, org.manager, from_date=date(2031, 4, 7), to_date=date(2031, 4, 8)).value

        result = leave_service.decide_leave(db, org.manager, own.id, 1, Decision.APPROVED)

        assert result.violation.kind == ViolationKind.NOT_PERMITTED

    def test_wrong_role_for_step(self, db, org, policies):
        request = submitted(db, org)

        result = leave_service.decide_leave(db, org.hr, request.id, 1, Decision.APPROVED)

        assert result.violation.kind == ViolationKind.NOT_PERMITTED

    def test_other_teams_manager(self, db, org, policies):
        request = submitted(db, org)

        result = leave_service.decide_leave(db, org.other_manager, request.id, 1, Decision.APPROVED)

        assert result.violation.kind == ViolationKind.NOT_PERMITTED

    def test_employee_cannot_decide(self, db, org, policies):
        request = submitted(db, org)

        result = leave_service.decide_leave(db, org.outsider, request.id, 1, Decision.APPROVED)

        assert result.violation.kind == ViolationKind.NOT_PERMITTED

    def test_admin_may_decide_any_step(self, db, org, policies):
        request = submitted(db, org)

        assert leave_service.decide_leave(db, org.admin, request.id, 1, Decision.APPROVED).ok
        assert leave_service.decide_leave(db, org.admin, request.id, 2, Decision.APPROVED).value.status == "approved"

    def test_unknown_request_and_step(self, db, org, policies):
        request = submitted(db, org)

        missing = leave_service.decide_leave(db, org.admin, 999, 1, Decision.APPROVED)
        assert missing.violation.kind == ViolationKind.REQUEST_NOT_FOUND

        no_step = leave_service.decide_leave(db, org.admin, request.id, 3, Decision.APPROVED)
        assert no_step.violation.kind == ViolationKind.STEP_NOT_FOUND

    def test_final_approval_blocked_by_balance(self, db, org, policies):
        request = submitted(db, org)
        balance = db.query(LeaveBalance).one()
        balance.used_days, balance.remaining_days = 10, 2
        db.commit()
        leave_service.decide_leave(db, org.manager, request.id, 1, Decision.APPROVED)

        result = leave_service.decide_leave(db, org.hr, request.id, 2, Decision.APPROVED)

        assert result.violation.kind == ViolationKind.INSUFFICIENT_BALANCE
        db.expire_all()
        assert db.query(LeaveRequest).one().status == LeaveStatus.PENDING.value
        assert db.query(ApprovalStep).filter(ApprovalStep.step_order == 2).one().status == "pending"
        assert db.query(LeaveBalance).one().used_days == 10

    def test_lock_timeout(self, db, org, policies, monkeypatch):
        request = submitted(db, org)
        monkeypatch.setattr(settings, "REQUEST_LOCK_TIMEOUT_SECONDS", 0.01)

        with request_locks.hold(request.id):
            result = leave_service.decide_leave(db, org.manager, request.id, 1, Decision.APPROVED)

        assert result.violation.kind == ViolationKind.LOCK_TIMEOUT
        assert result.violation.retryable
        assert leave_service.decide_leave(db, org.manager, request.id, 1, Decision.APPROVED).ok

    def test_storage_failure_keeps_request_pending(self, db, org, policies, monkeypatch):
        request = submitted(db, org)

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("connection lost"))

        monkeypatch.setattr(db, "commit", failing_commit)
        result = leave_service.decide_leave(db, org.manager, request.id, 1, Decision.APPROVED)
        monkeypatch.undo()

        assert result.violation.kind == ViolationKind.PERSISTENCE_FAILURE
        step = db.query(ApprovalStep).filter(ApprovalStep.step_order == 1).one()
        assert step.status == "pending"
        assert step.is_current


class TestQueries:
    def test_visibility(self, db, org, policies):
        request = submitted(db, org)

        assert leave_service.get_leave(db, org.employee, request.id).ok
        assert leave_service.get_leave(db, org.manager, request.id).ok
        assert leave_service.get_leave(db, org.hr, request.id).ok
        hidden = leave_service.get_leave(db, org.outsider, request.id)
        assert hidden.violation.kind == ViolationKind.NOT_PERMITTED

    def test_list_own_and_all(self, db, org, policies):
        submitted(db, org)
        assert submit(db, org.outsider, leave_type=LeaveType.SICK).ok

        own_items, own_total = leave_service.list_leaves(db, org.employee).value
        assert own_total == 1
        assert own_items[0].employee_id == org.employee.employee_id

        _, all_total = leave_service.list_leaves(db, org.hr).value
        assert all_total == 2

        denied = leave_service.list_leaves(db, org.manager, employee_id=org.outsider.employee_id)
        assert denied.violation.kind == ViolationKind.NOT_PERMITTED

    def test_pending_queue_follows_current_step(self, db, org, policies):
        request = submitted(db, org)

        assert [r.id for r in leave_service.list_pending_for_actor(db, org.manager)] == [request.id]
        assert leave_service.list_pending_for_actor(db, org.other_manager) == []
        assert leave_service.list_pending_for_actor(db, org.hr) == []
        assert leave_service.list_pending_for_actor(db, org.employee) == []

        leave_service.decide_leave(db, org.manager, request.id, 1, Decision.APPROVED)

        assert leave_service.list_pending_for_actor(db, org.manager) == []
        assert [r.id for r in leave_service.list_pending_for_actor(db, org.hr)] == [request.id]


@pytest.mark.parametrize("leave_type,days", [(LeaveType.SICK, 1), (LeaveType.PAID, 3)])
def test_other_leave_types(db, org, policies, leave_type, days):
    result = submit(db, org.employee, leave_type=leave_type, to_date=date(2031, 3, 2 + days))

    assert result.ok
    assert result.value.days_count == days
    assert isinstance(policies[leave_type], LeavePolicy)


def test_stored_current_flag_matches_step_statuses(db, org, policies):
    request = submitted(db, org)

    def stored_chain():
        db.expire_all()
        return leave_service._to_chain(db.query(ApprovalStep).all()).steps

    assert current_flag_matches(stored_chain())
    leave_service.decide_leave(db, org.manager, request.id, 1, Decision.APPROVED)
    assert current_flag_matches(stored_chain())
    leave_service.decide_leave(db, org.hr, request.id, 2, Decision.REJECTED)
    assert current_flag_matches(stored_chain())
    assert not any(step.is_current for step in stored_chain())


class TestUnknownValues:
    def test_unknown_leave_type(self, db, org, policies):
        result = submit(db, org.employee, leave_type="vacation")

        assert result.violation.kind == ViolationKind.INVALID_LEAVE_TYPE
        assert "vacation" in result.violation.message
        assert db.query(LeaveRequest).count() == 0

    def test_unknown_decision(self, db, org, policies):
        request = submitted(db, org)

        result = leave_service.decide_leave(db, org.manager, request.id, 1, "maybe")

        assert result.violation.kind == ViolationKind.INVALID_DECISION
        db.expire_all()
        assert db.query(ApprovalStep).filter(ApprovalStep.step_order == 1).one().status == "pending"

    def test_unknown_list_filters(self, db, org, policies):
        bad_status = leave_service.list_leaves(db, org.hr, status="cancelled")
        bad_type = leave_service.list_leaves(db, org.hr, leave_type="vacation")

        assert bad_status.violation.kind == ViolationKind.INVALID_STATUS
        assert bad_type.violation.kind == ViolationKind.INVALID_LEAVE_TYPE

    def test_plain_string_values_are_accepted(self, db, org, policies):
        request = submit(db, org.employee, leave_type="casual").value

        result = leave_service.decide_leave(db, org.manager, request.id, 1, "approved")

        assert result.ok
