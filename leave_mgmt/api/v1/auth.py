"""
Authentication endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from leave_mgmt.core.deps import get_db
from leave_mgmt.schemas.auth import LoginRequest, TokenResponse
from leave_mgmt.services.auth_service import AuthenticationError, authenticate, issue_token

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return JWT token

    Rejects unknown users, wrong passwords and inactive accounts.
    """
    try:
        user = authenticate(db, login_data.username, login_data.password)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN if e.inactive else status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

    return TokenResponse(
        access_token=issue_token(user),
        user_id=user.id,
        employee_id=user.employee_id,
        role=user.role,
    )
