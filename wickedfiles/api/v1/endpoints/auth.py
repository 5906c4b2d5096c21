from typing import Optional
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from wickedfiles.core.database import get_db
from wickedfiles.api.deps import bearer_scheme, get_current_user_optional
from wickedfiles.models.user import User as UserModel
from wickedfiles.schemas.auth import (
    Token,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    PasswordResetRequest,
    PasswordResetConfirm,
    GoogleAuthRequest
)
from wickedfiles.schemas.user import UserCreate, User
from wickedfiles.services.auth import AuthService

router = APIRouter()


@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Create an account and send the welcome email"""
    return await AuthService(db).register(user_data)


@router.post("/login", response_model=Token)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    return await AuthService(db).login(login_data.email, login_data.password)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    return await AuthService(db).refresh(refresh_data.refresh_token)


@router.post("/google", response_model=Token)
async def google_login(
    google_data: GoogleAuthRequest,
    db: AsyncSession = Depends(get_db)
):
    """Sign in with a Google ID token; unknown emails get a new account"""
    return await AuthService(db).google_login(google_data.credential)


@router.post("/logout")
async def logout(
    logout_data: Optional[LogoutRequest] = None,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the bearer token, and the refresh token when one is posted"""
    signed_out = await AuthService(db).logout(
        creds.credentials if creds else None,
        logout_data.refresh_token if logout_data else None
    )
    return {"message": "Logged out successfully" if signed_out else "Already logged out"}


@router.get("/me", response_model=Optional[User])
async def current_session(
    current_user: Optional[UserModel] = Depends(get_current_user_optional)
):
    """The signed-in user, or null; never a 401"""
    return current_user


@router.post("/forgot-password")
async def forgot_password(
    reset_data: PasswordResetRequest,
    db: AsyncSession = Depends(get_db)
):
    await AuthService(db).request_password_reset(reset_data.email)
    return {"message": "If the email exists, a reset link has been sent"}


@router.post("/reset-password")
async def reset_password(
    reset_confirm: PasswordResetConfirm,
    db: AsyncSession = Depends(get_db)
):
    await AuthService(db).reset_password(reset_confirm.token, reset_confirm.new_password)
    return {"message": "Password has been reset successfully"}
