from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from wickedfiles.core.database import get_db
from wickedfiles.api.deps import get_current_admin_user
from wickedfiles.models.user import User as UserModel
from wickedfiles.schemas.user import User, UserList
from wickedfiles.repositories.user import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users", response_model=UserList)
async def list_users(
    search: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    admin: UserModel = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """List users, optionally filtered by username or email"""
    user_repo = UserRepository(db)
    users, total = await user_repo.list(search, skip, limit)
    return UserList(users=users, total=total)


@router.patch("/users/{user_id}/toggle-status", response_model=User)
async def toggle_user_status(
    user_id: int,
    admin: UserModel = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """Suspend or reactivate a user"""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change your own status"
        )

    user_repo = UserRepository(db)
    user = await user_repo.get_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    user = await user_repo.update(user, is_active=not user.is_active)
    logger.info(f"Admin {admin.id} set user {user_id} active={user.is_active}")
    return user
