"""
Tests for the approval chain state machine
"""
from datetime import datetime, timezone

import pytest

from leave_mgmt.workflow import approval_chain
from leave_mgmt.workflow.approval_chain import (
    LedgerEffect,
    current_flag_matches,
    derive_current_step_order,
    derive_request_status,
)
from leave_mgmt.workflow.results import ErrorCategory, ViolationKind
from leave_mgmt.workflow.types import Decision, LeaveStatus, StepStatus, UserRole

NOW = datetime(2031, 3, 1, 9, 0, tzinfo=timezone.utc)
MANAGER_ID = 3
HR_ID = 2


@pytest.fixture
def chain():
    return approval_chain.build(["line_manager", "hr"]).value


def test_build_creates_one_pending_step_per_role(chain):
    assert [s.step_order for s in chain.steps] == [1, 2]
    assert [s.approver_role for s in chain.steps] == ["line_manager", "hr"]
    assert all(s.status == StepStatus.PENDING for s in chain.steps)
    assert [s.is_current for s in chain.steps] == [True, False]
    assert chain.status == LeaveStatus.PENDING
    assert current_flag_matches(chain.steps)


def test_build_accepts_role_enums():
    built = approval_chain.build([UserRole.HR]).value
    assert built.steps[0].approver_role == "hr"


def test_build_with_empty_sequence_is_a_configuration_error():
    result = approval_chain.build([])
    assert result.violation.kind == ViolationKind.EMPTY_ROLE_SEQUENCE
    assert result.violation.category == ErrorCategory.VALIDATION


def test_approving_first_step_moves_current_to_second(chain):
    outcome = approval_chain.decide(chain, 1, Decision.APPROVED, MANAGER_ID, "ok", now=NOW).value
    step1, step2 = outcome.chain.steps
    assert step1.status == StepStatus.APPROVED
    assert step1.approver_id == MANAGER_ID
    assert step1.comments == "ok"
    assert step1.approved_at == NOW
    assert not step1.is_current
    assert step2.is_current
    assert outcome.request_status == LeaveStatus.PENDING
    assert outcome.ledger_effect == LedgerEffect.NONE
    assert current_flag_matches(outcome.chain.steps)


def test_approving_last_step_approves_request_and_commits_ledger(chain):
    first = approval_chain.decide(chain, 1, Decision.APPROVED, MANAGER_ID, now=NOW).value
    final = approval_chain.decide(first.chain, 2, Decision.APPROVED, HR_ID, now=NOW).value
    assert final.request_status == LeaveStatus.APPROVED
    assert final.ledger_effect == LedgerEffect.COMMIT
    assert final.chain.current_step is None
    assert derive_current_step_order(final.chain.steps) is None
    assert current_flag_matches(final.chain.steps)


def test_rejecting_first_step_freezes_the_rest(chain):
    outcome = approval_chain.decide(chain, 1, Decision.REJECTED, MANAGER_ID, "busy week", now=NOW).value
    step1, step2 = outcome.chain.steps
    assert outcome.request_status == LeaveStatus.REJECTED
    assert outcome.ledger_effect == LedgerEffect.NONE
    assert step1.status == StepStatus.REJECTED
    assert step1.approved_at == NOW
    assert step2.status == StepStatus.PENDING
    assert not step2.is_current
    assert current_flag_matches(outcome.chain.steps)

    # the frozen step can never be acted on
    later = approval_chain.decide(outcome.chain, 2, Decision.APPROVED, HR_ID, now=NOW)
    assert later.violation.kind == ViolationKind.NOT_CURRENT_STEP


def test_deciding_a_step_out_of_order_fails(chain):
    result = approval_chain.decide(chain, 2, Decision.APPROVED, HR_ID, now=NOW)
    assert result.violation.kind == ViolationKind.NOT_CURRENT_STEP
    assert result.violation.category == ErrorCategory.STATE_CONFLICT
    assert result.violation.retryable


def test_deciding_a_step_twice_fails(chain):
    first = approval_chain.decide(chain, 1, Decision.APPROVED, MANAGER_ID, now=NOW).value
    again = approval_chain.decide(first.chain, 1, Decision.REJECTED, MANAGER_ID, now=NOW)
    assert again.violation.kind == ViolationKind.ALREADY_DECIDED
    assert "already approved" in again.violation.message


def test_unknown_step(chain):
    result = approval_chain.decide(chain, 3, Decision.APPROVED, HR_ID, now=NOW)
    assert result.violation.kind == ViolationKind.STEP_NOT_FOUND
    assert result.violation.category == ErrorCategory.NOT_FOUND


def test_decide_does_not_mutate_input(chain):
    approval_chain.decide(chain, 1, Decision.APPROVED, MANAGER_ID, now=NOW)
    assert chain.steps[0].status == StepStatus.PENDING
    assert chain.steps[0].is_current


def test_single_step_chain_approves_immediately():
    chain = approval_chain.build(["hr"]).value
    outcome = approval_chain.decide(chain, 1, Decision.APPROVED, HR_ID, now=NOW).value
    assert outcome.request_status == LeaveStatus.APPROVED
    assert outcome.ledger_effect == LedgerEffect.COMMIT


def test_three_step_chain_walks_in_order():
    chain = approval_chain.build(["line_manager", "hr", "admin"]).value
    for order in (1, 2, 3):
        assert derive_current_step_order(chain.steps) == order
        outcome = approval_chain.decide(chain, order, Decision.APPROVED, order, now=NOW).value
        assert current_flag_matches(outcome.chain.steps)
        chain = outcome.chain
    assert chain.status == LeaveStatus.APPROVED


def test_derive_request_status(chain):
    assert derive_request_status(chain.steps) == LeaveStatus.PENDING
    assert derive_request_status(()) == LeaveStatus.PENDING


def test_current_flag_mismatch_is_detected(chain):
    from dataclasses import replace
    broken = (chain.steps[0], replace(chain.steps[1], is_current=True))
    assert not current_flag_matches(broken)
