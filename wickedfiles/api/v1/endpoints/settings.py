from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wickedfiles.core.database import get_db
from wickedfiles.api.deps import get_current_active_user
from wickedfiles.models.user import User
from wickedfiles.schemas.settings import UserSettings, UserSettingsUpdate
from wickedfiles.services.settings import SettingsService

router = APIRouter()


@router.get("", response_model=UserSettings)
async def get_settings(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's preferences, creating defaults on first use"""
    settings_service = SettingsService(db)
    return await settings_service.get_or_create(current_user.id)


@router.put("", response_model=UserSettings)
@router.post("", response_model=UserSettings, include_in_schema=False)
async def replace_settings(
    settings_data: UserSettingsUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Replace preferences; omitted fields reset to defaults"""
    settings_service = SettingsService(db)
    return await settings_service.replace(current_user.id, settings_data)


@router.patch("", response_model=UserSettings)
async def update_settings(
    settings_data: UserSettingsUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Change only the supplied preferences"""
    settings_service = SettingsService(db)
    return await settings_service.patch(current_user.id, settings_data)
