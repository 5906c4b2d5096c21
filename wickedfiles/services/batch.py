"""
Batch file operations.

Every key is handled independently: one failing key is reported in
``errors`` and never stops the others. Nothing is rolled back.
"""
from typing import Awaitable, Callable, Dict, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
import asyncio
import logging

from wickedfiles.core.s3 import S3ClientFactory, S3Gateway
from wickedfiles.services.browser import join_key
from wickedfiles.services.s3_account import S3AccountService
from wickedfiles.utils.exceptions import NotFoundError, ValidationError, WickedFilesException

logger = logging.getLogger(__name__)


def _error_message(error: Exception) -> str:
    if isinstance(error, WickedFilesException):
        return f"{error.message}: {error.detail}" if error.detail else error.message
    return str(error) or error.__class__.__name__


def _basename(key: str) -> str:
    return key.rstrip("/").rsplit("/", 1)[-1]


class BatchService:
    def __init__(self, db: AsyncSession, s3_factory: S3ClientFactory):
        self.accounts = S3AccountService(db, s3_factory)

    async def _fan_out(
        self,
        operation: str,
        keys: List[str],
        handler: Callable[[str], Awaitable[object]]
    ) -> Tuple[List[str], List[dict], Dict[str, object]]:
        keys = list(dict.fromkeys(keys))
        results = await asyncio.gather(*(handler(key) for key in keys), return_exceptions=True)

        succeeded, errors, values = [], [], {}
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                logger.warning(f"Batch {operation} failed for {key}: {result}")
                errors.append({"key": key, "message": _error_message(result)})
            else:
                succeeded.append(key)
                values[key] = result

        logger.info(f"Batch {operation}: {len(succeeded)} succeeded, {len(errors)} failed")
        return succeeded, errors, values

    async def delete(self, account_id: int, user_id: int, bucket: str, keys: List[str]) -> dict:
        gateway = await self.accounts.gateway_for(account_id, user_id)

        async def delete_one(key: str) -> None:
            # S3 deletes of missing keys succeed silently, so check first
            if not await gateway.object_exists(bucket, key):
                raise NotFoundError("Object not found")
            await gateway.delete_object(bucket, key)

        deleted, errors, _ = await self._fan_out("delete", keys, delete_one)
        return {"deleted": deleted, "errors": errors}

    async def _copy_one(self, gateway: S3Gateway, bucket: str, key: str, dest_bucket: str, dest_prefix: str) -> str:
        dest_key = join_key(dest_prefix, _basename(key))
        if bucket == dest_bucket and key == dest_key:
            raise ValidationError("Source and destination are the same")
        await gateway.copy_object(bucket, key, dest_bucket, dest_key)
        return dest_key

    async def copy(
        self,
        account_id: int,
        user_id: int,
        bucket: str,
        keys: List[str],
        destination_bucket: str,
        destination_prefix: str = ""
    ) -> dict:
        gateway = await self.accounts.gateway_for(account_id, user_id)

        async def copy_one(key: str) -> str:
            return await self._copy_one(gateway, bucket, key, destination_bucket, destination_prefix)

        copied, errors, _ = await self._fan_out("copy", keys, copy_one)
        return {"copied": copied, "errors": errors}

    async def move(
        self,
        account_id: int,
        user_id: int,
        bucket: str,
        keys: List[str],
        destination_bucket: str,
        destination_prefix: str = ""
    ) -> dict:
        gateway = await self.accounts.gateway_for(account_id, user_id)

        async def move_one(key: str) -> str:
            # A failed copy raises before the source is touched
            dest_key = await self._copy_one(gateway, bucket, key, destination_bucket, destination_prefix)
            await gateway.delete_object(bucket, key)
            return dest_key

        moved, errors, _ = await self._fan_out("move", keys, move_one)
        return {"moved": moved, "errors": errors}

    async def download_urls(self, account_id: int, user_id: int, bucket: str, keys: List[str]) -> dict:
        gateway = await self.accounts.gateway_for(account_id, user_id)

        async def sign_one(key: str) -> str:
            return await gateway.presigned_get_url(bucket, key)

        _, errors, urls = await self._fan_out("download", keys, sign_one)
        return {"urls": urls, "errors": errors}
