from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from wickedfiles.core.database import get_db
from wickedfiles.core.s3 import S3ClientFactory, get_s3_factory
from wickedfiles.api.deps import get_current_active_user
from wickedfiles.schemas.user import User, UserUpdate
from wickedfiles.models.user import User as UserModel
from wickedfiles.services.user import UserService

router = APIRouter()


@router.get("/me", response_model=User)
async def read_profile(
    current_user: UserModel = Depends(get_current_active_user)
):
    return current_user


@router.put("/me", response_model=User)
async def update_profile(
    user_update: UserUpdate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Update name, avatar, email, username or password; 409 when email or username is taken"""
    user_service = UserService(db, s3_factory)
    return await user_service.update_profile(current_user, user_update)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Delete the account along with its S3 accounts, shares and settings"""
    user_service = UserService(db, s3_factory)
    await user_service.delete_account(current_user)
    return None
