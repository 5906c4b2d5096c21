"""
Share links.

A share token resolves to exactly one of the ``ShareState`` outcomes. The
checks run in a fixed order (lookup, manual revoke, expiry, password) and
only a ``LIVE`` outcome touches the access counter or the audit log, so
probing a link with bad tokens or passwords leaves its analytics alone.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import secrets

from wickedfiles.core.config import settings
from wickedfiles.core.email import EmailService, email_service
from wickedfiles.core.redis import RedisClient, redis_client
from wickedfiles.core.s3 import S3ClientFactory, S3Gateway
from wickedfiles.core.security import check_password, hash_password
from wickedfiles.models.shared_file import SharedFile, FileAccessLog, as_utc
from wickedfiles.models.user import User
from wickedfiles.repositories.s3_account import S3AccountRepository
from wickedfiles.repositories.shared_file import SharedFileRepository
from wickedfiles.schemas.share import ShareState, SharedFileCreate, SharedFile as SharedFileSchema
from wickedfiles.services.s3_account import S3AccountService
from wickedfiles.utils.exceptions import (
    AuthorizationError,
    FileOperationError,
    NotFoundError,
    RateLimitError,
    ShareDeliveryError,
)

logger = logging.getLogger(__name__)

MAX_TOKEN_LENGTH = 128
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class AccessRequest:
    """Who is asking for a shared file"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    is_download: bool = False


@dataclass
class ShareResolution:
    state: ShareState
    shared_file: Optional[SharedFile] = None
    signed_url: Optional[str] = None
    direct_s3_url: Optional[str] = None
    password_supplied: bool = False


def generate_share_token() -> str:
    return secrets.token_hex(16)


def app_share_url(share_token: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/shared/{share_token}"


def serialize_share(shared_file: SharedFile, **extra) -> dict:
    data = SharedFileSchema.model_validate(shared_file).model_dump()
    data["share_url"] = app_share_url(shared_file.share_token)
    data.update(extra)
    return data


class ShareService:
    def __init__(
        self,
        db: AsyncSession,
        s3_factory: S3ClientFactory,
        mailer: EmailService = email_service,
        cache: RedisClient = redis_client
    ):
        self.share_repo = SharedFileRepository(db)
        self.account_repo = S3AccountRepository(db)
        self.accounts = S3AccountService(db, s3_factory, cache)
        self.s3_factory = s3_factory
        self.mailer = mailer
        self.cache = cache

    # Owner operations

    async def _object_metadata(self, gateway: S3Gateway, data: SharedFileCreate, key: str) -> tuple:
        filesize, content_type = data.filesize, data.content_type
        if filesize is None or not content_type:
            try:
                metadata = await gateway.stat_object(data.bucket, key)
                if filesize is None:
                    filesize = metadata["size"]
                content_type = content_type or metadata["content_type"]
            except FileOperationError as e:
                logger.warning(f"Could not read metadata for s3://{data.bucket}/{key}, using defaults: {e.detail}")
        return filesize or 0, content_type or DEFAULT_CONTENT_TYPE

    @staticmethod
    def _expiry(data: SharedFileCreate) -> Optional[datetime]:
        if data.expires_at is not None:
            return as_utc(data.expires_at).astimezone(timezone.utc)
        if data.expires_in_days:
            return datetime.now(timezone.utc) + timedelta(days=data.expires_in_days)
        return None

    async def create_share(self, user: User, data: SharedFileCreate) -> dict:
        """Share an object, reusing the caller's existing link for the same object"""
        account = await self.accounts.get_owned_account(data.account_id, user.id)
        gateway = self.s3_factory.for_account(account)
        key = data.path or data.filename
        expires_at = self._expiry(data)

        existing = await self.share_repo.get_existing(user.id, account.id, data.bucket, data.path)
        if existing:
            fields = {"is_expired": False}
            if expires_at is not None:
                fields["expires_at"] = expires_at
            if "allow_download" in data.model_fields_set:
                fields["allow_download"] = data.allow_download
            if "direct_s3_link" in data.model_fields_set:
                fields["is_public"] = data.direct_s3_link
            if data.password:
                fields["password"] = await hash_password(data.password)
            shared_file = await self.share_repo.update(existing, **fields)
            logger.info(f"User {user.id} refreshed share {shared_file.id}")
        else:
            filesize, content_type = await self._object_metadata(gateway, data, key)
            shared_file = await self.share_repo.create(
                user_id=user.id,
                account_id=account.id,
                bucket=data.bucket,
                path=data.path,
                filename=data.filename,
                filesize=filesize,
                content_type=content_type,
                share_token=generate_share_token(),
                expires_at=expires_at,
                allow_download=data.allow_download,
                is_public=data.direct_s3_link,
                password_hash=await hash_password(data.password) if data.password else None,
            )
            logger.info(f"User {user.id} created share {shared_file.id} for s3://{data.bucket}/{key}")

        app_url = app_share_url(shared_file.share_token)
        direct_url = gateway.direct_url(data.bucket, key)

        if data.recipients:
            await self._notify_recipients(user, shared_file, app_url, [str(r) for r in data.recipients])

        return serialize_share(
            shared_file,
            share_url=direct_url if data.direct_s3_link else app_url,
            app_share_url=app_url,
            direct_s3_url=direct_url,
        )

    async def _notify_recipients(self, user: User, shared_file: SharedFile, share_url: str, recipients: List[str]) -> None:
        sender = user.full_name or user.username
        for recipient in recipients:
            sent = await self.mailer.send_share_link_email(
                recipient,
                sender,
                shared_file.filename,
                share_url,
                password_protected=shared_file.password_protected,
            )
            if not sent:
                logger.warning(f"Share {shared_file.id} link could not be emailed to a recipient")

    async def list_shares(self, user_id: int) -> List[dict]:
        return [serialize_share(f) for f in await self.share_repo.get_user_shares(user_id)]

    async def get_owned_share(self, shared_file_id: int, user_id: int) -> SharedFile:
        shared_file = await self.share_repo.get_by_id(shared_file_id)
        if not shared_file:
            raise NotFoundError("Shared file not found")
        if shared_file.user_id != user_id:
            raise AuthorizationError("You don't have permission to manage this shared file")
        return shared_file

    async def revoke(self, shared_file_id: int, user_id: int) -> SharedFile:
        """Manually expire a link; the record and its history stay"""
        shared_file = await self.get_owned_share(shared_file_id, user_id)
        shared_file = await self.share_repo.update(shared_file, is_expired=True)
        logger.info(f"User {user_id} revoked share {shared_file_id}")
        return shared_file

    async def delete(self, shared_file_id: int, user_id: int) -> None:
        shared_file = await self.get_owned_share(shared_file_id, user_id)
        await self.share_repo.delete(shared_file)
        logger.info(f"User {user_id} deleted share {shared_file_id}")

    async def access_logs(self, shared_file_id: int, user_id: int) -> List[FileAccessLog]:
        await self.get_owned_share(shared_file_id, user_id)
        return await self.share_repo.get_access_logs(shared_file_id)

    # Public resolution

    @staticmethod
    def _throttle_key(share_token: str, ip_address: Optional[str]) -> str:
        return f"share:password-attempts:{share_token}:{ip_address or 'unknown'}"

    async def _check_password(self, shared_file: SharedFile, password: Optional[str], request: AccessRequest) -> bool:
        throttle_key = self._throttle_key(shared_file.share_token, request.ip_address)
        attempts = await self.cache.get(throttle_key)
        if attempts and int(attempts) >= settings.SHARE_PASSWORD_MAX_ATTEMPTS:
            raise RateLimitError("Too many incorrect password attempts. Try again later.")

        if password and await check_password(password, shared_file.password):
            return True

        if password:
            await self.cache.incr(throttle_key, settings.SHARE_PASSWORD_WINDOW_SECONDS)
        return False

    async def resolve(self, share_token: str, password: Optional[str], request: AccessRequest) -> ShareResolution:
        if not share_token or len(share_token) > MAX_TOKEN_LENGTH:
            return ShareResolution(ShareState.NOT_FOUND)

        shared_file = await self.share_repo.get_by_token(share_token)
        if not shared_file:
            return ShareResolution(ShareState.NOT_FOUND)

        if shared_file.is_expired:
            return ShareResolution(ShareState.REVOKED, shared_file)

        now = datetime.now(timezone.utc)
        if shared_file.expires_at is not None and as_utc(shared_file.expires_at) <= now:
            return ShareResolution(ShareState.EXPIRED, shared_file)

        if shared_file.password_protected and not await self._check_password(shared_file, password, request):
            return ShareResolution(ShareState.PASSWORD_REQUIRED, shared_file, password_supplied=bool(password))

        if request.is_download and not shared_file.allow_download:
            raise AuthorizationError("Downloads are disabled for this shared file")

        account = await self.account_repo.get_by_id(shared_file.account_id)
        if not account:
            return ShareResolution(ShareState.NOT_FOUND)

        gateway = self.s3_factory.for_account(account)
        try:
            signed_url = await gateway.presigned_get_url(shared_file.bucket, shared_file.object_key)
        except FileOperationError as e:
            logger.error(f"Could not sign share {shared_file.id}: {e.detail}")
            raise ShareDeliveryError("Error generating download URL")

        direct_s3_url = None
        if shared_file.is_public:
            direct_s3_url = gateway.direct_url(shared_file.bucket, shared_file.object_key)

        await self.share_repo.record_access(
            shared_file,
            ip_address=request.ip_address,
            user_agent=request.user_agent,
            referrer=request.referrer,
            is_download=request.is_download,
        )
        logger.debug(f"Share {shared_file.id} accessed (download={request.is_download})")

        return ShareResolution(
            ShareState.LIVE,
            shared_file,
            signed_url=signed_url,
            direct_s3_url=direct_s3_url,
        )
