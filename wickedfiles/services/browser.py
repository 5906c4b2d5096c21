from typing import BinaryIO, List
from sqlalchemy.ext.asyncio import AsyncSession
import io
import logging

from wickedfiles.core.config import settings
from wickedfiles.core.redis import RedisClient, redis_client
from wickedfiles.core.s3 import S3ClientFactory
from wickedfiles.services.s3_account import S3AccountService, bucket_cache_key
from wickedfiles.services.settings import SettingsService
from wickedfiles.utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def join_key(prefix: str, name: str) -> str:
    """Join a folder prefix and a name without doubling the slash"""
    if not prefix:
        return name
    return f"{prefix}{'' if prefix.endswith('/') else '/'}{name}"


class BrowserService:
    """Single-object operations against one of the caller's accounts"""

    def __init__(self, db: AsyncSession, s3_factory: S3ClientFactory, cache: RedisClient = redis_client):
        self.accounts = S3AccountService(db, s3_factory, cache)
        self.settings_service = SettingsService(db)
        self.cache = cache

    async def list_buckets(self, account_id: int, user_id: int) -> List[dict]:
        gateway = await self.accounts.gateway_for(account_id, user_id)
        cache_key = bucket_cache_key(account_id)
        cached = await self.cache.get_json(cache_key)
        if cached is not None:
            return cached

        buckets = await gateway.list_buckets()
        await self.cache.set_json(cache_key, buckets, expire=settings.BUCKET_CACHE_SECONDS)
        return buckets

    async def list_objects(self, account_id: int, user_id: int, bucket: str, prefix: str = "", delimiter: str = "/") -> dict:
        if not bucket:
            raise ValidationError("Bucket name is required")
        gateway = await self.accounts.gateway_for(account_id, user_id)
        listing = await gateway.list_objects(bucket, prefix, delimiter)
        await self.settings_service.record_last_accessed(user_id, f"{bucket}/{prefix}")
        return listing

    async def get_download_url(self, account_id: int, user_id: int, bucket: str, key: str) -> str:
        gateway = await self.accounts.gateway_for(account_id, user_id)
        return await gateway.presigned_get_url(bucket, key)

    async def delete_object(self, account_id: int, user_id: int, bucket: str, key: str) -> None:
        gateway = await self.accounts.gateway_for(account_id, user_id)
        await gateway.delete_object(bucket, key)
        logger.info(f"User {user_id} deleted s3://{bucket}/{key}")

    async def upload(
        self,
        account_id: int,
        user_id: int,
        bucket: str,
        prefix: str,
        filename: str,
        data: BinaryIO,
        size: int,
        content_type: str
    ) -> str:
        if size > settings.MAX_FILE_SIZE_BYTES:
            raise ValidationError(f"File exceeds the {settings.MAX_FILE_SIZE_MB} MB upload limit")
        gateway = await self.accounts.gateway_for(account_id, user_id)
        key = join_key(prefix, filename)
        await gateway.put_object(bucket, key, data, size, content_type)
        logger.info(f"User {user_id} uploaded {size} bytes to s3://{bucket}/{key}")
        return key

    async def rename(self, account_id: int, user_id: int, bucket: str, key: str, new_key: str) -> str:
        """S3 has no rename: copy to the new key, then drop the old one"""
        if key == new_key:
            return key
        gateway = await self.accounts.gateway_for(account_id, user_id)
        if not await gateway.object_exists(bucket, key):
            raise NotFoundError(f"Object {key} not found")
        await gateway.copy_object(bucket, key, bucket, new_key)
        await gateway.delete_object(bucket, key)
        return new_key

    async def create_folder(self, account_id: int, user_id: int, bucket: str, prefix: str, name: str) -> str:
        gateway = await self.accounts.gateway_for(account_id, user_id)
        key = join_key(prefix, name) + "/"
        await gateway.put_object(bucket, key, io.BytesIO(b""), 0, "application/x-directory")
        return key
