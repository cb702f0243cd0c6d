"""
Policy validation for leave request drafts
"""
from datetime import date
from typing import Optional

from leave_mgmt.workflow import ledger
from leave_mgmt.workflow.ledger import BalanceSnapshot
from leave_mgmt.workflow.results import ViolationKind, WorkflowResult
from leave_mgmt.workflow.types import PolicyRules, RequestDraft


def validate(
    draft: RequestDraft,
    policy: PolicyRules,
    balance: BalanceSnapshot,
    today: Optional[date] = None,
) -> WorkflowResult:
    """
    Validate a leave request draft against its leave type policy.

    Checks run in a fixed order and stop at the first failure:
    1. policy must be active
    2. days_count must not exceed max_consecutive_days
    3. from_date must be at least min_days_notice days after today
    4. remaining balance must cover days_count

    Args:
        draft: Request being submitted (days_count already computed)
        policy: Active policy for the draft's leave type
        balance: Ledger snapshot for (employee, leave_type, year)
        today: Reference date for the notice check (defaults to date.today())

    Returns:
        WorkflowResult with the draft on success, or the first violation
    """
    today = today or date.today()

    if not policy.is_active:
        return WorkflowResult.failure(
            ViolationKind.POLICY_INACTIVE,
            f"Leave policy for {policy.leave_type.value} is not active",
        )

    if draft.days_count > policy.max_consecutive_days:
        return WorkflowResult.failure(
            ViolationKind.EXCEEDS_CONSECUTIVE_LIMIT,
            f"{policy.leave_type.value} leave allows at most {policy.max_consecutive_days} "
            f"consecutive day(s), requested {draft.days_count}",
        )

    lead_days = (draft.from_date - today).days
    if lead_days < policy.min_days_notice:
        return WorkflowResult.failure(
            ViolationKind.INSUFFICIENT_NOTICE,
            f"{policy.leave_type.value} leave requires {policy.min_days_notice} day(s) notice, "
            f"got {lead_days}",
        )

    reserved = ledger.reserve(balance, draft.days_count)
    if not reserved.ok:
        return reserved

    return WorkflowResult.success(draft)
