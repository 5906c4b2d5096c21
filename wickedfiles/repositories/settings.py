from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from wickedfiles.models.settings import UserSettings


class UserSettingsRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_user(self, user_id: int) -> Optional[UserSettings]:
        query = select(UserSettings).filter(UserSettings.user_id == user_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create_default(self, user_id: int) -> UserSettings:
        """Insert default settings, or return the row a concurrent request inserted first"""
        settings = UserSettings(
            user_id=user_id,
            theme="light",
            accent_color="#8BD3D6",
            view_mode="grid",
            notifications=True,
            last_accessed=[]
        )
        self.db.add(settings)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.get_by_user(user_id)
            if existing is None:
                raise
            return existing
        await self.db.refresh(settings)
        return settings

    async def update(self, settings: UserSettings, **fields) -> UserSettings:
        for field, value in fields.items():
            setattr(settings, field, value)
        await self.db.commit()
        await self.db.refresh(settings)
        return settings
