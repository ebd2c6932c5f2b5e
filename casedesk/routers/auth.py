from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
import logging

from ..database import get_db
from ..auth import (
    authenticate_user, create_access_token, create_user, get_current_user,
    get_current_admin_user, auth_rate_limiter, get_users, update_user_password,
    set_user_active, verify_password
)
from ..models.schemas import UserCreate, UserLogin, Token, UserResponse, PasswordChange

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Token)
async def login_user(
    user_credentials: UserLogin,
    request: Request,
    db: Session = Depends(get_db)
):
    """Authenticate a staff member and return an access token."""
    client_ip = request.client.host if request.client else "unknown"
    rate_limit_key = f"login_{client_ip}_{user_credentials.username}"

    if not auth_rate_limiter.is_allowed(rate_limit_key):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later."
        )

    user = authenticate_user(
        db=db,
        username=user_credentials.username,
        password=user_credentials.password
    )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    auth_rate_limiter.reset(rate_limit_key)

    logger.info(f"User logged in: {user.username}")
    return {
        "access_token": create_access_token(data={"sub": user.username}),
        "token_type": "bearer"
    }


@router.post("/logout")
async def logout_user(current_user=Depends(get_current_user)):
    """Tokens are stateless; the client discards its token. Logged for the audit trail."""
    logger.info(f"User logged out: {current_user.username}")
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user=Depends(get_current_user)
):
    """Get current user information."""
    return current_user


@router.post("/refresh-token", response_model=Token)
async def refresh_token(
    current_user=Depends(get_current_user)
):
    """Issue a fresh access token."""
    logger.info(f"Token refreshed for user: {current_user.username}")
    return {
        "access_token": create_access_token(data={"sub": current_user.username}),
        "token_type": "bearer"
    }


@router.post("/change-password")
async def change_password(
    payload: PasswordChange,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change the current user's password."""
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    update_user_password(db, current_user.id, payload.new_password)
    logger.info(f"Password changed for user: {current_user.username}")
    return {"message": "Password updated successfully"}


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    skip: int = 0,
    limit: int = 100,
    current_user=Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """List staff accounts (admin only)."""
    return get_users(db, skip=skip, limit=limit)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user_admin(
    user_data: UserCreate,
    is_admin: bool = False,
    current_user=Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """Create a staff account (admin only)."""
    try:
        user = create_user(
            db=db,
            username=user_data.username,
            email=user_data.email,
            password=user_data.password,
            full_name=user_data.full_name,
            is_admin=is_admin
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"User created by admin {current_user.username}: {user.username}")
    return user


@router.post("/users/{user_id}/deactivate")
async def deactivate_user_account(
    user_id: int,
    current_user=Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """Deactivate a staff account (admin only)."""
    if current_user.id == user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate your own account"
        )

    if not set_user_active(db, user_id, False):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info(f"User {user_id} deactivated by admin {current_user.username}")
    return {"message": "User deactivated successfully"}


@router.post("/users/{user_id}/activate")
async def activate_user_account(
    user_id: int,
    current_user=Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """Activate a staff account (admin only)."""
    if not set_user_active(db, user_id, True):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info(f"User {user_id} activated by admin {current_user.username}")
    return {"message": "User activated successfully"}
