from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from wickedfiles.core.database import get_db
from wickedfiles.core.s3 import S3ClientFactory, get_s3_factory
from wickedfiles.api.deps import get_current_active_user
from wickedfiles.models.user import User
from wickedfiles.schemas.share import (
    SharedFile,
    SharedFileCreate,
    SharedFileCreated,
    FileAccessLog
)
from wickedfiles.services.share import ShareService, serialize_share

router = APIRouter()


@router.get("", response_model=List[SharedFile])
async def list_shared_files(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """List the caller's share links, newest first"""
    share_service = ShareService(db, s3_factory)
    return await share_service.list_shares(current_user.id)


@router.post("", response_model=SharedFileCreated, status_code=status.HTTP_201_CREATED)
async def create_shared_file(
    share_data: SharedFileCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Create a share link, or refresh the existing link for the same object"""
    share_service = ShareService(db, s3_factory)
    return await share_service.create_share(current_user, share_data)


@router.delete("/{shared_file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shared_file(
    shared_file_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Delete a share link and its access history"""
    share_service = ShareService(db, s3_factory)
    await share_service.delete(shared_file_id, current_user.id)
    return None


@router.post("/{shared_file_id}/expire", response_model=SharedFile)
async def expire_shared_file(
    shared_file_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Manually expire a share link"""
    share_service = ShareService(db, s3_factory)
    shared_file = await share_service.revoke(shared_file_id, current_user.id)
    return serialize_share(shared_file)


@router.get("/{shared_file_id}/access-logs", response_model=List[FileAccessLog])
async def get_access_logs(
    shared_file_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """List who opened a share link"""
    share_service = ShareService(db, s3_factory)
    return await share_service.access_logs(shared_file_id, current_user.id)
