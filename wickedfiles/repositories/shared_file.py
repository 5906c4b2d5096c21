from typing import Optional, List
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, and_

from wickedfiles.models.shared_file import SharedFile, FileAccessLog


class SharedFileRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: int,
        account_id: int,
        bucket: str,
        path: str,
        filename: str,
        filesize: int,
        content_type: str,
        share_token: str,
        expires_at: Optional[datetime],
        allow_download: bool,
        is_public: bool,
        password_hash: Optional[str]
    ) -> SharedFile:
        """Create a new share record"""
        shared_file = SharedFile(
            user_id=user_id,
            account_id=account_id,
            bucket=bucket,
            path=path,
            filename=filename,
            filesize=filesize,
            content_type=content_type,
            share_token=share_token,
            expires_at=expires_at,
            allow_download=allow_download,
            is_public=is_public,
            is_expired=False,
            password=password_hash,
            access_count=0
        )
        self.db.add(shared_file)
        await self.db.commit()
        await self.db.refresh(shared_file)
        return shared_file

    async def get_by_id(self, shared_file_id: int) -> Optional[SharedFile]:
        query = select(SharedFile).filter(SharedFile.id == shared_file_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_token(self, share_token: str) -> Optional[SharedFile]:
        """Get share by token, whatever its state"""
        query = select(SharedFile).filter(SharedFile.share_token == share_token)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_existing(self, user_id: int, account_id: int, bucket: str, path: str) -> Optional[SharedFile]:
        """Find the caller's existing share of the same object"""
        query = select(SharedFile).filter(
            and_(
                SharedFile.user_id == user_id,
                SharedFile.account_id == account_id,
                SharedFile.bucket == bucket,
                SharedFile.path == path,
            )
        )
        result = await self.db.execute(query)
        return result.scalars().first()

    async def get_user_shares(self, user_id: int) -> List[SharedFile]:
        query = (
            select(SharedFile)
            .filter(SharedFile.user_id == user_id)
            .order_by(SharedFile.created_at.desc(), SharedFile.id.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update(self, shared_file: SharedFile, **fields) -> SharedFile:
        for field, value in fields.items():
            setattr(shared_file, field, value)
        await self.db.commit()
        await self.db.refresh(shared_file)
        return shared_file

    async def record_access(
        self,
        shared_file: SharedFile,
        ip_address: Optional[str],
        user_agent: Optional[str],
        referrer: Optional[str],
        is_download: bool
    ) -> FileAccessLog:
        """Bump the access counter and append one audit row in a single commit"""
        await self.db.execute(
            update(SharedFile)
            .where(SharedFile.id == shared_file.id)
            .values(access_count=SharedFile.access_count + 1)
        )
        log = FileAccessLog(
            file_id=shared_file.id,
            ip_address=ip_address,
            user_agent=user_agent,
            referrer=referrer,
            is_download=is_download
        )
        self.db.add(log)
        await self.db.commit()
        await self.db.refresh(shared_file)
        return log

    async def get_access_logs(self, shared_file_id: int) -> List[FileAccessLog]:
        query = (
            select(FileAccessLog)
            .filter(FileAccessLog.file_id == shared_file_id)
            .order_by(FileAccessLog.accessed_at.desc(), FileAccessLog.id.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def delete(self, shared_file: SharedFile) -> None:
        """Delete a share together with its access logs"""
        await self.db.execute(delete(FileAccessLog).where(FileAccessLog.file_id == shared_file.id))
        await self.db.delete(shared_file)
        await self.db.commit()
