"""
Leave models: policies, balances, requests, approval steps and ledger transactions
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Boolean,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from leave_mgmt.db.base import Base
from leave_mgmt.workflow.types import LeaveStatus, StepStatus


class LeaveTransactionAction(str, enum.Enum):
    ALLOCATE = "ALLOCATE"
    APPROVE_COMMIT = "APPROVE_COMMIT"
    VOID_RELEASE = "VOID_RELEASE"
    CARRY_FORWARD = "CARRY_FORWARD"


class LeavePolicy(Base):
    """Rule set for one leave type. At most one active row per leave_type."""
    __tablename__ = "leave_policies"

    id = Column(Integer, primary_key=True, index=True)
    leave_type = Column(String(50), nullable=False, index=True)
    annual_limit = Column(Integer, nullable=False)
    min_days_notice = Column(Integer, nullable=False)
    max_consecutive_days = Column(Integer, nullable=False)
    carry_forward_allowed = Column(Boolean, nullable=False, default=False)
    carry_forward_limit = Column(Integer, nullable=True)
    requires_medical_certificate = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


class LeaveBalance(Base):
    """
    Ledger row: one per (employee_id, leave_type, year).
    remaining_days = total_days - used_days, never negative.
    """
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False, index=True)
    total_days = Column(Integer, nullable=False)
    used_days = Column(Integer, nullable=False, default=0)
    remaining_days = Column(Integer, nullable=False)
    carried_forward_days = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    employee = relationship("Employee", back_populates="leave_balances")

    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type", "year", name="uq_leave_balances_employee_type_year"),
        CheckConstraint("remaining_days >= 0", name="check_remaining_days_non_negative"),
        CheckConstraint("used_days + remaining_days = total_days", name="check_balance_sums"),
    )


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String(50), nullable=False)
    from_date = Column(Date, nullable=False)
    to_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=LeaveStatus.PENDING.value)
    days_count = Column(Integer, nullable=False)  # business days, weekly-offs and holidays excluded
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    employee = relationship("Employee", back_populates="leave_requests")
    steps = relationship(
        "ApprovalStep",
        back_populates="leave_request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ApprovalStep.step_order",
    )

    __table_args__ = (
        Index("ix_leave_requests_employee_dates", "employee_id", "from_date", "to_date"),
        CheckConstraint("from_date <= to_date", name="check_from_date_le_to_date"),
    )


class ApprovalStep(Base):
    __tablename__ = "approval_steps"

    id = Column(Integer, primary_key=True, index=True)
    leave_request_id = Column(
        Integer,
        ForeignKey("leave_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_order = Column(Integer, nullable=False)
    approver_role = Column(String(50), nullable=False)
    approver_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    status = Column(String(20), nullable=False, default=StepStatus.PENDING.value)
    comments = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)

    leave_request = relationship("LeaveRequest", back_populates="steps")
    approver = relationship("Employee", foreign_keys=[approver_id])

    __table_args__ = (
        UniqueConstraint("leave_request_id", "step_order", name="uq_approval_steps_request_order"),
        CheckConstraint("step_order >= 1", name="check_step_order_positive"),
    )


class LeaveTransaction(Base):
    """Ledger audit trail: allocations, approval commits, void releases, carry forwards."""
    __tablename__ = "leave_transactions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False, index=True)
    delta_days = Column(Integer, nullable=False)  # + credit to remaining, - debit
    action = Column(String(30), nullable=False)
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True, index=True)
    remarks = Column(Text, nullable=True)
    action_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
