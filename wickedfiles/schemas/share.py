from typing import List, Optional
from pydantic import EmailStr, Field, model_validator
from datetime import datetime
from enum import Enum

from wickedfiles.schemas.base import CamelModel


class ShareState(str, Enum):
    """Outcome of resolving a share token"""
    NOT_FOUND = "not_found"
    REVOKED = "revoked"
    EXPIRED = "expired"
    PASSWORD_REQUIRED = "password_required"
    LIVE = "live"


class SharedFileCreate(CamelModel):
    account_id: int
    bucket: str = Field(..., min_length=1)
    path: str = ""
    filename: str = Field(..., min_length=1)
    filesize: Optional[int] = Field(None, ge=0)
    content_type: Optional[str] = None
    expires_at: Optional[datetime] = None
    expires_in_days: Optional[int] = Field(None, ge=0)
    password: Optional[str] = None
    allow_download: bool = True
    direct_s3_link: bool = False
    recipients: List[EmailStr] = []

    @model_validator(mode="after")
    def blank_password_is_none(self):
        if self.password is not None and not self.password.strip():
            self.password = None
        elif self.password is not None:
            self.password = self.password.strip()
        return self


class SharedFile(CamelModel):
    id: int
    user_id: int
    account_id: int
    bucket: str
    path: str
    filename: str
    filesize: int
    content_type: Optional[str] = None
    share_token: str
    expires_at: Optional[datetime] = None
    allow_download: bool
    is_expired: bool
    is_public: bool
    password_protected: bool
    access_count: int
    created_at: Optional[datetime] = None
    share_url: Optional[str] = None


class SharedFileCreated(SharedFile):
    app_share_url: str
    direct_s3_url: str


class FileAccessLog(CamelModel):
    id: int
    file_id: int
    accessed_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    is_download: bool


class SharedFileAccess(CamelModel):
    """Public payload for a live share"""
    filename: str
    content_type: Optional[str] = None
    filesize: int
    signed_url: str
    direct_s3_url: Optional[str] = None
    allow_download: bool
    expires_at: Optional[datetime] = None


class PasswordRequired(CamelModel):
    message: str
    password_required: bool = True
