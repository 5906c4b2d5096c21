from typing import Optional
from pydantic import EmailStr, Field
from datetime import datetime

from wickedfiles.schemas.base import CamelModel


class UserBase(CamelModel):
    email: EmailStr
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool = True
    is_verified: bool = False


class UserCreate(CamelModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = None


class UserUpdate(CamelModel):
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8)


class User(UserBase):
    id: int
    role: str = "user"
    oauth_provider: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserList(CamelModel):
    users: list[User]
    total: int
