"""
Leave balance ledger arithmetic.

One snapshot per (employee, leave_type, year). used_days + remaining_days
always equals total_days and remaining_days never goes below zero.

Days are only committed when a request reaches terminal APPROVED status;
pending and rejected requests never touch the ledger. reserve() is a
feasibility check used at submission time and does not hold days back.
"""
from dataclasses import dataclass, replace

from leave_mgmt.workflow.results import ViolationKind, WorkflowResult


@dataclass(frozen=True)
class BalanceSnapshot:
    employee_id: int
    leave_type: str
    year: int
    total_days: int
    used_days: int = 0
    remaining_days: int = 0

    @classmethod
    def opening(cls, employee_id: int, leave_type: str, year: int, total_days: int) -> "BalanceSnapshot":
        return cls(
            employee_id=employee_id,
            leave_type=leave_type,
            year=year,
            total_days=total_days,
            used_days=0,
            remaining_days=total_days,
        )

    def is_consistent(self) -> bool:
        return (
            self.used_days + self.remaining_days == self.total_days
            and self.remaining_days >= 0
            and self.used_days >= 0
        )


def _insufficient(balance: BalanceSnapshot, days: int) -> WorkflowResult:
    return WorkflowResult.failure(
        ViolationKind.INSUFFICIENT_BALANCE,
        f"Insufficient {balance.leave_type} balance for {balance.year}: "
        f"{balance.remaining_days} day(s) remaining, {days} requested",
    )


def reserve(balance: BalanceSnapshot, days: int) -> WorkflowResult:
    """Check that `days` could be taken from the balance. Never mutates."""
    if days < 0:
        raise ValueError("days must be non-negative")
    if balance.remaining_days < days:
        return _insufficient(balance, days)
    return WorkflowResult.success(balance)


def commit(balance: BalanceSnapshot, days: int) -> WorkflowResult:
    """
    Consume days for an approved request.

    Returns:
        WorkflowResult holding the updated snapshot, or INSUFFICIENT_BALANCE
        when committing would drive remaining_days below zero.
    """
    if days < 0:
        raise ValueError("days must be non-negative")
    if balance.remaining_days < days:
        return _insufficient(balance, days)
    return WorkflowResult.success(
        replace(
            balance,
            used_days=balance.used_days + days,
            remaining_days=balance.remaining_days - days,
        )
    )


def release(balance: BalanceSnapshot, days: int) -> WorkflowResult:
    """Give back days of a previously approved request that was voided."""
    if days < 0:
        raise ValueError("days must be non-negative")
    # Clamp to what was actually used so the invariant holds
    returned = min(days, balance.used_days)
    return WorkflowResult.success(
        replace(
            balance,
            used_days=balance.used_days - returned,
            remaining_days=balance.remaining_days + returned,
        )
    )


def reallocate(balance: BalanceSnapshot, total_days: int) -> WorkflowResult:
    """Change the entitlement while keeping used days. Fails if it would go negative."""
    if total_days < balance.used_days:
        return WorkflowResult.failure(
            ViolationKind.INSUFFICIENT_BALANCE,
            f"Cannot set total to {total_days}: {balance.used_days} day(s) already used",
        )
    return WorkflowResult.success(
        replace(balance, total_days=total_days, remaining_days=total_days - balance.used_days)
    )


def carry_forward_days(remaining_days: int, allowed: bool, limit) -> int:
    """Days that roll into next year's entitlement."""
    if not allowed or remaining_days <= 0:
        return 0
    if limit is None:
        return remaining_days
    return min(remaining_days, limit)
