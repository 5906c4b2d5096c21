from sqlalchemy.ext.asyncio import AsyncSession

from wickedfiles.models.settings import UserSettings
from wickedfiles.repositories.s3_account import S3AccountRepository
from wickedfiles.repositories.settings import UserSettingsRepository
from wickedfiles.schemas.settings import UserSettingsUpdate
from wickedfiles.utils.exceptions import ValidationError

MAX_LAST_ACCESSED = 10

DEFAULTS = {
    "theme": "light",
    "accent_color": "#8BD3D6",
    "view_mode": "grid",
    "default_account_id": None,
    "notifications": True,
}


class SettingsService:
    def __init__(self, db: AsyncSession):
        self.settings_repo = UserSettingsRepository(db)
        self.account_repo = S3AccountRepository(db)

    async def get_or_create(self, user_id: int) -> UserSettings:
        settings = await self.settings_repo.get_by_user(user_id)
        if settings is None:
            settings = await self.settings_repo.create_default(user_id)
        return settings

    async def _check_default_account(self, account_id, user_id: int) -> None:
        if account_id is None:
            return
        account = await self.account_repo.get_by_id(account_id)
        if not account or account.user_id != user_id:
            raise ValidationError("Default account must be one of your S3 accounts")

    async def replace(self, user_id: int, data: UserSettingsUpdate) -> UserSettings:
        """Full update: omitted fields fall back to their defaults"""
        fields = {**DEFAULTS, **data.model_dump(exclude_unset=True)}
        fields = {k: (DEFAULTS[k] if v is None and k != "default_account_id" else v) for k, v in fields.items()}
        await self._check_default_account(fields["default_account_id"], user_id)
        settings = await self.get_or_create(user_id)
        return await self.settings_repo.update(settings, **fields)

    async def patch(self, user_id: int, data: UserSettingsUpdate) -> UserSettings:
        """Partial update; recent paths are never touched here"""
        fields = data.model_dump(exclude_unset=True)
        if "default_account_id" in fields:
            await self._check_default_account(fields["default_account_id"], user_id)
        settings = await self.get_or_create(user_id)
        if not fields:
            return settings
        return await self.settings_repo.update(settings, **fields)

    async def record_last_accessed(self, user_id: int, path: str) -> None:
        settings = await self.get_or_create(user_id)
        recent = [p for p in (settings.last_accessed or []) if p != path]
        # Assign a new list so the JSON column is flagged dirty
        await self.settings_repo.update(settings, last_accessed=[path] + recent[:MAX_LAST_ACCESSED - 1])
