"""
Approval chain state machine.

A chain is the ordered list of approval steps bound to one leave request.
Exactly one step is current while the request is pending and none once the
request is terminal. The stored is_current flag is always equal to
"lowest-order step still pending" on a pending chain; see
derive_current_step_order().
"""
import enum
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from leave_mgmt.workflow.results import ViolationKind, WorkflowResult
from leave_mgmt.workflow.types import Decision, LeaveStatus, StepStatus

logger = logging.getLogger(__name__)


class LedgerEffect(str, enum.Enum):
    NONE = "NONE"
    COMMIT = "COMMIT"


@dataclass(frozen=True)
class ChainStep:
    step_order: int
    approver_role: str
    status: StepStatus = StepStatus.PENDING
    is_current: bool = False
    approver_id: Optional[int] = None
    comments: Optional[str] = None
    approved_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != StepStatus.PENDING


@dataclass(frozen=True)
class ApprovalChain:
    steps: Tuple[ChainStep, ...]

    @property
    def status(self) -> LeaveStatus:
        return derive_request_status(self.steps)

    @property
    def current_step(self) -> Optional[ChainStep]:
        for step in self.steps:
            if step.is_current:
                return step
        return None

    def step(self, step_order: int) -> Optional[ChainStep]:
        for step in self.steps:
            if step.step_order == step_order:
                return step
        return None


@dataclass(frozen=True)
class ChainDecision:
    chain: ApprovalChain
    request_status: LeaveStatus
    ledger_effect: LedgerEffect
    decided_step: ChainStep


def derive_request_status(steps: Sequence[ChainStep]) -> LeaveStatus:
    """Request status as a pure function of its step statuses."""
    if any(s.status == StepStatus.REJECTED for s in steps):
        return LeaveStatus.REJECTED
    if steps and all(s.status == StepStatus.APPROVED for s in steps):
        return LeaveStatus.APPROVED
    return LeaveStatus.PENDING


def derive_current_step_order(steps: Sequence[ChainStep]) -> Optional[int]:
    """Order of the step that should be current, or None for a terminal chain."""
    if derive_request_status(steps) != LeaveStatus.PENDING:
        return None
    pending = [s.step_order for s in steps if s.status == StepStatus.PENDING]
    return min(pending) if pending else None


def current_flag_matches(steps: Sequence[ChainStep]) -> bool:
    expected = derive_current_step_order(steps)
    flagged = [s.step_order for s in steps if s.is_current]
    if expected is None:
        return not flagged
    return flagged == [expected]


def build(role_sequence: Sequence[str]) -> WorkflowResult:
    """
    Create a fresh chain with one pending step per role.

    Args:
        role_sequence: Ordered approver roles, e.g. ["line_manager", "hr"]

    Returns:
        WorkflowResult holding the ApprovalChain, or EMPTY_ROLE_SEQUENCE
    """
    roles = [r.value if hasattr(r, "value") else str(r) for r in role_sequence]
    if not roles:
        return WorkflowResult.failure(
            ViolationKind.EMPTY_ROLE_SEQUENCE,
            "Approval workflow has no steps configured",
        )
    steps = tuple(
        ChainStep(step_order=index, approver_role=role, is_current=(index == 1))
        for index, role in enumerate(roles, start=1)
    )
    return WorkflowResult.success(ApprovalChain(steps=steps))


def decide(
    chain: ApprovalChain,
    step_order: int,
    decision: Decision,
    approver_id: int,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> WorkflowResult:
    """
    Apply an approver's decision to one step of the chain.

    Only the current step may be decided. Approving the last step finishes
    the request as APPROVED and asks the caller to commit the ledger.
    Rejecting any step finishes the request as REJECTED; later steps stay
    pending and are never made current.

    Returns:
        WorkflowResult holding a ChainDecision, or one of STEP_NOT_FOUND,
        ALREADY_DECIDED, NOT_CURRENT_STEP
    """
    target = chain.step(step_order)
    if target is None:
        return WorkflowResult.failure(
            ViolationKind.STEP_NOT_FOUND,
            f"Approval step {step_order} does not exist",
        )
    if target.is_terminal:
        return WorkflowResult.failure(
            ViolationKind.ALREADY_DECIDED,
            f"Approval step {step_order} was already {target.status.value}",
        )
    if not target.is_current:
        return WorkflowResult.failure(
            ViolationKind.NOT_CURRENT_STEP,
            f"Approval step {step_order} is not the current step",
        )

    now = now or datetime.now(timezone.utc)
    decided = replace(
        target,
        status=StepStatus(decision.value),
        is_current=False,
        approver_id=approver_id,
        comments=comment,
        approved_at=now,
    )

    steps: List[ChainStep] = []
    for step in chain.steps:
        if step.step_order == step_order:
            steps.append(decided)
        elif (
            decision == Decision.APPROVED
            and step.step_order == step_order + 1
        ):
            steps.append(replace(step, is_current=True))
        else:
            steps.append(step)

    new_chain = ApprovalChain(steps=tuple(steps))
    request_status = new_chain.status
    effect = LedgerEffect.COMMIT if request_status == LeaveStatus.APPROVED else LedgerEffect.NONE
    logger.debug(
        "approval step decided: step=%s decision=%s request_status=%s",
        step_order, decision.value, request_status.value,
    )
    return WorkflowResult.success(
        ChainDecision(
            chain=new_chain,
            request_status=request_status,
            ledger_effect=effect,
            decided_step=decided,
        )
    )
