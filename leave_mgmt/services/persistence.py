"""
Shared handling of storage failures inside service transactions
"""
import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from leave_mgmt.workflow.results import ViolationKind, WorkflowResult

logger = logging.getLogger(__name__)


def persistence_failure(db: Session, exc: SQLAlchemyError, operation: str) -> WorkflowResult:
    """
    Roll back the session and report a PERSISTENCE_FAILURE.

    Nothing of the failed operation stays applied after the rollback.
    """
    db.rollback()
    logger.error("persistence failure during %s: %s", operation, exc, exc_info=True)
    return WorkflowResult.failure(
        ViolationKind.PERSISTENCE_FAILURE,
        f"Could not save changes ({operation}); nothing was applied",
    )
