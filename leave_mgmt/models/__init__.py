"""
Database models
"""
from leave_mgmt.models.department import Department
from leave_mgmt.models.employee import Employee, EmployeeStatus
from leave_mgmt.models.user import User
from leave_mgmt.models.holiday import Holiday
from leave_mgmt.models.audit_log import AuditLog
from leave_mgmt.models.leave import (
    LeavePolicy,
    LeaveBalance,
    LeaveRequest,
    ApprovalStep,
    LeaveTransaction,
    LeaveTransactionAction,
)
from leave_mgmt.models.workflow_config import WorkflowConfig, WorkflowConfigStep

__all__ = [
    "Department",
    "Employee",
    "EmployeeStatus",
    "User",
    "Holiday",
    "AuditLog",
    "LeavePolicy",
    "LeaveBalance",
    "LeaveRequest",
    "ApprovalStep",
    "LeaveTransaction",
    "LeaveTransactionAction",
    "WorkflowConfig",
    "WorkflowConfigStep",
]
