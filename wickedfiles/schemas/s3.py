from typing import Dict, List, Optional
from pydantic import Field, field_validator
from datetime import datetime

from wickedfiles.schemas.base import CamelModel


# S3 accounts

class S3Credentials(CamelModel):
    access_key_id: str = Field(..., min_length=1)
    secret_access_key: str = Field(..., min_length=1)
    region: str = Field(..., min_length=1)


class S3AccountCreate(S3Credentials):
    name: str = Field(..., min_length=1)
    default_bucket: Optional[str] = None
    is_active: bool = True


class S3AccountUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    access_key_id: Optional[str] = Field(None, min_length=1)
    secret_access_key: Optional[str] = Field(None, min_length=1)
    region: Optional[str] = Field(None, min_length=1)
    default_bucket: Optional[str] = None
    is_active: Optional[bool] = None


class S3Account(CamelModel):
    """Account as returned to its owner; the secret never leaves the server"""
    id: int
    user_id: int
    name: str
    access_key_id: str
    region: str
    default_bucket: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class Bucket(CamelModel):
    name: str
    creation_date: Optional[datetime] = None


class CredentialsValidation(CamelModel):
    valid: bool
    buckets: List[Bucket] = []


# Browsing

class S3Object(CamelModel):
    key: str
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None


class S3Folder(CamelModel):
    prefix: str


class ObjectListing(CamelModel):
    objects: List[S3Object]
    folders: List[S3Folder]
    prefix: str = ""
    delimiter: str = "/"


class DownloadUrl(CamelModel):
    signed_url: str
    expires_in: int


class UploadResult(CamelModel):
    message: str = "File uploaded successfully"
    key: str
    bucket: str
    content_type: str
    size: int


class RenameRequest(CamelModel):
    bucket: str
    key: str
    new_key: str = Field(..., min_length=1)


class FolderCreate(CamelModel):
    bucket: str
    prefix: str = ""
    name: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def no_slashes(cls, v: str) -> str:
        v = v.strip().strip("/")
        if not v or "/" in v:
            raise ValueError("Folder name must be a single path segment")
        return v


# Batch operations

class BatchRequest(CamelModel):
    bucket: str
    keys: List[str] = Field(..., min_length=1)


class BatchTransferRequest(BatchRequest):
    destination_bucket: str
    destination_prefix: str = ""


class BatchError(CamelModel):
    key: str
    message: str


class BatchDeleteResult(CamelModel):
    deleted: List[str]
    errors: List[BatchError]


class BatchCopyResult(CamelModel):
    copied: List[str]
    errors: List[BatchError]


class BatchMoveResult(CamelModel):
    moved: List[str]
    errors: List[BatchError]


class BatchDownloadResult(CamelModel):
    urls: Dict[str, str]
    errors: List[BatchError]
