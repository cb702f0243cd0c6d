"""
Login service
"""
import logging
from typing import Optional
from sqlalchemy.orm import Session
from leave_mgmt.core.security import verify_password, create_access_token
from leave_mgmt.models.user import User
from leave_mgmt.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Login failed. inactive is True when the credentials were right but the account is disabled."""

    def __init__(self, message: str, inactive: bool = False):
        super().__init__(message)
        self.inactive = inactive


def authenticate(db: Session, username: str, password: str) -> User:
    """
    Check credentials and stamp last_login

    Raises:
        AuthenticationError: unknown user, wrong or missing password, inactive account
    """
    user = db.query(User).filter(User.username == username).first()
    if user is None or user.password_hash is None:
        raise AuthenticationError("Invalid username or password")
    if not verify_password(password, user.password_hash):
        logger.info("failed login for username=%s", username)
        raise AuthenticationError("Invalid username or password")

    employee = user.employee
    if not user.is_active or employee is None or not employee.is_active:
        raise AuthenticationError("Account is inactive", inactive=True)

    user.last_login = now_utc()
    db.commit()
    db.refresh(user)
    return user


def issue_token(user: User, expires_minutes: Optional[int] = None) -> str:
    # JWT sub must be a string
    token_data = {
        "sub": str(user.id),
        "username": user.username,
        "employee_id": user.employee_id,
        "role": user.role,
    }
    return create_access_token(data=token_data, expires_minutes=expires_minutes)
