"""
Audit logging service
"""
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from leave_mgmt.models.audit_log import AuditLog
from leave_mgmt.utils.datetime_utils import now_utc
from leave_mgmt.utils.json_serializer import to_json_safe


def log_audit(
    db: Session,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit log entry to the current transaction.

    The entry is flushed, not committed: it becomes durable together with
    the change it describes, or not at all.

    Args:
        db: Database session
        actor_id: ID of the user performing the action
        action: Action type (e.g. "LEAVE_SUBMIT", "POLICY_CREATE")
        entity_type: Type of entity (e.g. "leave_request", "leave_policy")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=to_json_safe(meta) if meta is not None else None,
        # Explicit created_at: SQLite server defaults return naive strings
        created_at=now_utc(),
    )
    db.add(audit_log)
    db.flush()
    return audit_log
