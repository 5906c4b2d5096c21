from typing import List, Literal, Optional

from wickedfiles.schemas.base import CamelModel


class UserSettingsUpdate(CamelModel):
    theme: Optional[str] = None
    accent_color: Optional[str] = None
    view_mode: Optional[Literal["grid", "list"]] = None
    default_account_id: Optional[int] = None
    notifications: Optional[bool] = None


class UserSettings(CamelModel):
    id: int
    user_id: int
    theme: str
    accent_color: str
    view_mode: str
    default_account_id: Optional[int] = None
    notifications: bool
    last_accessed: List[str] = []
