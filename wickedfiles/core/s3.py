from minio import Minio
from minio.commonconfig import CopySource
from minio.error import MinioException, S3Error
from typing import BinaryIO, Dict, List, Optional, Tuple
from datetime import timedelta
from urllib.parse import quote
import logging

from starlette.concurrency import run_in_threadpool

from wickedfiles.core.config import settings
from wickedfiles.utils.exceptions import FileOperationError

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = ("NoSuchKey", "NotFound")


class S3Gateway:
    """Thin async facade over one account's S3 client.

    The minio SDK is blocking, so every call runs in the threadpool.
    """

    def __init__(self, client: Minio):
        self.client = client

    async def list_buckets(self) -> List[dict]:
        try:
            buckets = await run_in_threadpool(self.client.list_buckets)
        except MinioException as e:
            raise FileOperationError("Error accessing S3 buckets", detail=str(e))
        return [{"name": b.name, "creation_date": b.creation_date} for b in buckets]

    def _collect_objects(self, bucket: str, prefix: str, delimiter: str) -> Tuple[List[dict], List[dict]]:
        objects, folders = [], []
        for obj in self.client.list_objects(
            bucket_name=bucket,
            prefix=prefix or None,
            recursive=not delimiter,
        ):
            if obj.is_dir:
                folders.append({"prefix": obj.object_name})
            else:
                objects.append({
                    "key": obj.object_name,
                    "size": obj.size or 0,
                    "last_modified": obj.last_modified,
                    "etag": obj.etag,
                })
        return objects, folders

    async def list_objects(self, bucket: str, prefix: str = "", delimiter: str = "/") -> dict:
        """List one level under prefix; an empty delimiter lists everything"""
        try:
            objects, folders = await run_in_threadpool(self._collect_objects, bucket, prefix, delimiter)
        except MinioException as e:
            raise FileOperationError("Error accessing S3 objects", detail=str(e))
        return {"objects": objects, "folders": folders, "prefix": prefix, "delimiter": delimiter}

    async def stat_object(self, bucket: str, key: str) -> dict:
        try:
            stat = await run_in_threadpool(self.client.stat_object, bucket_name=bucket, object_name=key)
        except MinioException as e:
            raise FileOperationError(f"Error reading metadata for {key}", detail=str(e))
        return {
            "size": stat.size or 0,
            "content_type": stat.content_type,
            "last_modified": stat.last_modified,
            "etag": stat.etag,
        }

    async def object_exists(self, bucket: str, key: str) -> bool:
        try:
            await run_in_threadpool(self.client.stat_object, bucket_name=bucket, object_name=key)
            return True
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                return False
            raise FileOperationError(f"Error reading metadata for {key}", detail=str(e))
        except MinioException as e:
            raise FileOperationError(f"Error reading metadata for {key}", detail=str(e))

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream"
    ) -> str:
        try:
            await run_in_threadpool(
                self.client.put_object,
                bucket_name=bucket,
                object_name=key,
                data=data,
                length=length,
                content_type=content_type,
            )
        except MinioException as e:
            raise FileOperationError("Error uploading to S3", detail=str(e))
        return key

    async def delete_object(self, bucket: str, key: str) -> None:
        try:
            await run_in_threadpool(self.client.remove_object, bucket_name=bucket, object_name=key)
        except MinioException as e:
            raise FileOperationError(f"Error deleting {key}", detail=str(e))

    async def copy_object(self, source_bucket: str, source_key: str, dest_bucket: str, dest_key: str) -> None:
        try:
            await run_in_threadpool(
                self.client.copy_object,
                bucket_name=dest_bucket,
                object_name=dest_key,
                source=CopySource(source_bucket, source_key),
            )
        except MinioException as e:
            raise FileOperationError(f"Error copying {source_key}", detail=str(e))

    async def presigned_get_url(self, bucket: str, key: str, expires: Optional[int] = None) -> str:
        """Mint a time-limited GET URL"""
        try:
            return await run_in_threadpool(
                self.client.presigned_get_object,
                bucket_name=bucket,
                object_name=key,
                expires=timedelta(seconds=expires or settings.PRESIGNED_URL_EXPIRES_SECONDS),
            )
        except (MinioException, ValueError) as e:
            raise FileOperationError(f"Error generating download URL for {key}", detail=str(e))

    @staticmethod
    def direct_url(bucket: str, key: str) -> str:
        """Unsigned URL, only usable when the object is publicly readable"""
        return f"https://{bucket}.s3.amazonaws.com/{quote(key)}"


class S3ClientFactory:
    """Builds gateways and caches SDK clients per account"""

    def __init__(self):
        self._clients: Dict[Tuple[int, str, str], Minio] = {}

    def _build_client(self, access_key_id: str, secret_access_key: str, region: Optional[str]) -> Minio:
        return Minio(
            settings.S3_ENDPOINT,
            access_key=access_key_id,
            secret_key=secret_access_key,
            region=region or settings.S3_DEFAULT_REGION,
            secure=settings.S3_SECURE,
        )

    def for_account(self, account) -> S3Gateway:
        # Credentials are part of the key so an edited account gets a fresh client
        cache_key = (account.id, account.access_key_id, account.region)
        client = self._clients.get(cache_key)
        if client is None:
            client = self._build_client(account.access_key_id, account.secret_access_key, account.region)
            self._clients[cache_key] = client
        return S3Gateway(client)

    def for_credentials(self, access_key_id: str, secret_access_key: str, region: Optional[str]) -> S3Gateway:
        return S3Gateway(self._build_client(access_key_id, secret_access_key, region))

    def evict(self, account_id: int) -> None:
        for cache_key in [k for k in self._clients if k[0] == account_id]:
            del self._clients[cache_key]


# Global S3 client factory instance
s3_factory = S3ClientFactory()


async def get_s3_factory() -> S3ClientFactory:
    """Dependency to get the S3 client factory"""
    return s3_factory
