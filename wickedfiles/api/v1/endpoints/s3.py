import io
from typing import List
from fastapi import APIRouter, Depends, Form, Query, UploadFile, File as FastAPIFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from wickedfiles.core.config import settings
from wickedfiles.core.database import get_db
from wickedfiles.core.s3 import S3ClientFactory, get_s3_factory
from wickedfiles.api.deps import get_current_active_user
from wickedfiles.models.user import User
from wickedfiles.schemas.s3 import (
    Bucket,
    ObjectListing,
    DownloadUrl,
    UploadResult,
    RenameRequest,
    FolderCreate,
    BatchRequest,
    BatchTransferRequest,
    BatchDeleteResult,
    BatchCopyResult,
    BatchMoveResult,
    BatchDownloadResult
)
from wickedfiles.services.batch import BatchService
from wickedfiles.services.browser import BrowserService

router = APIRouter()


@router.get("/{account_id}/buckets", response_model=List[Bucket])
async def list_buckets(
    account_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """List buckets visible to an account"""
    browser = BrowserService(db, s3_factory)
    return await browser.list_buckets(account_id, current_user.id)


@router.get("/{account_id}/objects", response_model=ObjectListing)
async def list_objects(
    account_id: int,
    bucket: str = Query(..., min_length=1),
    prefix: str = Query(""),
    delimiter: str = Query("/"),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """List objects and folders under a prefix"""
    browser = BrowserService(db, s3_factory)
    return await browser.list_objects(account_id, current_user.id, bucket, prefix, delimiter)


@router.delete("/{account_id}/objects", status_code=status.HTTP_204_NO_CONTENT)
async def delete_object(
    account_id: int,
    bucket: str = Query(..., min_length=1),
    key: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Delete a single object"""
    browser = BrowserService(db, s3_factory)
    await browser.delete_object(account_id, current_user.id, bucket, key)
    return None


@router.get("/{account_id}/download", response_model=DownloadUrl)
async def get_download_url(
    account_id: int,
    bucket: str = Query(..., min_length=1),
    key: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Get a presigned download URL for one object"""
    browser = BrowserService(db, s3_factory)
    signed_url = await browser.get_download_url(account_id, current_user.id, bucket, key)
    return DownloadUrl(signed_url=signed_url, expires_in=settings.PRESIGNED_URL_EXPIRES_SECONDS)


@router.post("/{account_id}/upload", response_model=UploadResult, status_code=status.HTTP_201_CREATED)
async def upload_file(
    account_id: int,
    file: UploadFile = FastAPIFile(...),
    bucket: str = Form(...),
    prefix: str = Form(""),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Upload a file into a bucket"""
    browser = BrowserService(db, s3_factory)
    content = await file.read()
    content_type = file.content_type or "application/octet-stream"

    key = await browser.upload(
        account_id,
        current_user.id,
        bucket,
        prefix,
        file.filename,
        io.BytesIO(content),
        len(content),
        content_type
    )

    return UploadResult(key=key, bucket=bucket, content_type=content_type, size=len(content))


@router.post("/{account_id}/rename")
async def rename_object(
    account_id: int,
    rename_data: RenameRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Rename an object"""
    browser = BrowserService(db, s3_factory)
    new_key = await browser.rename(
        account_id,
        current_user.id,
        rename_data.bucket,
        rename_data.key,
        rename_data.new_key
    )
    return {"message": "Object renamed successfully", "key": new_key}


@router.post("/{account_id}/folders", status_code=status.HTTP_201_CREATED)
async def create_folder(
    account_id: int,
    folder_data: FolderCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Create an empty folder marker"""
    browser = BrowserService(db, s3_factory)
    key = await browser.create_folder(
        account_id,
        current_user.id,
        folder_data.bucket,
        folder_data.prefix,
        folder_data.name
    )
    return {"message": "Folder created successfully", "key": key}


@router.post("/{account_id}/batch-delete", response_model=BatchDeleteResult)
async def batch_delete(
    account_id: int,
    batch: BatchRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Delete several objects; each key succeeds or fails on its own"""
    batch_service = BatchService(db, s3_factory)
    return await batch_service.delete(account_id, current_user.id, batch.bucket, batch.keys)


@router.post("/{account_id}/batch-copy", response_model=BatchCopyResult)
async def batch_copy(
    account_id: int,
    batch: BatchTransferRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Copy several objects into a destination prefix"""
    batch_service = BatchService(db, s3_factory)
    return await batch_service.copy(
        account_id,
        current_user.id,
        batch.bucket,
        batch.keys,
        batch.destination_bucket,
        batch.destination_prefix
    )


@router.post("/{account_id}/batch-move", response_model=BatchMoveResult)
async def batch_move(
    account_id: int,
    batch: BatchTransferRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Move several objects into a destination prefix"""
    batch_service = BatchService(db, s3_factory)
    return await batch_service.move(
        account_id,
        current_user.id,
        batch.bucket,
        batch.keys,
        batch.destination_bucket,
        batch.destination_prefix
    )


@router.post("/{account_id}/batch-download", response_model=BatchDownloadResult)
async def batch_download(
    account_id: int,
    batch: BatchRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Presign a download URL for each key"""
    batch_service = BatchService(db, s3_factory)
    return await batch_service.download_urls(account_id, current_user.id, batch.bucket, batch.keys)
