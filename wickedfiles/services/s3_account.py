from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from wickedfiles.core.redis import RedisClient, redis_client
from wickedfiles.core.s3 import S3ClientFactory, S3Gateway
from wickedfiles.models.s3_account import S3Account
from wickedfiles.repositories.s3_account import S3AccountRepository
from wickedfiles.schemas.s3 import S3AccountCreate, S3AccountUpdate, S3Credentials
from wickedfiles.utils.exceptions import AuthorizationError, FileOperationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def bucket_cache_key(account_id: int) -> str:
    return f"s3:buckets:{account_id}"


class S3AccountService:
    def __init__(self, db: AsyncSession, s3_factory: S3ClientFactory, cache: RedisClient = redis_client):
        self.account_repo = S3AccountRepository(db)
        self.s3_factory = s3_factory
        self.cache = cache

    async def list_accounts(self, user_id: int) -> List[S3Account]:
        return await self.account_repo.get_user_accounts(user_id)

    async def get_owned_account(self, account_id: int, user_id: int) -> S3Account:
        """Load an account and make sure the caller owns it"""
        account = await self.account_repo.get_by_id(account_id)
        if not account:
            raise NotFoundError("S3 account not found")
        if account.user_id != user_id:
            raise AuthorizationError("Not authorized to use this account")
        return account

    async def gateway_for(self, account_id: int, user_id: int) -> S3Gateway:
        account = await self.get_owned_account(account_id, user_id)
        if not account.is_active:
            raise ValidationError("S3 account is disabled")
        return self.s3_factory.for_account(account)

    async def validate_credentials(self, credentials: S3Credentials) -> List[dict]:
        """List buckets with the given keys; raises ValidationError when S3 refuses them"""
        gateway = self.s3_factory.for_credentials(
            credentials.access_key_id,
            credentials.secret_access_key,
            credentials.region,
        )
        try:
            return await gateway.list_buckets()
        except (FileOperationError, ValueError) as e:
            logger.info(f"S3 credential validation failed for key {credentials.access_key_id}: {e}")
            raise ValidationError(
                "Invalid S3 credentials. Please check your access key, secret key, and region."
            )

    async def create_account(self, account_data: S3AccountCreate, user_id: int) -> S3Account:
        account = await self.account_repo.create(account_data, user_id)
        logger.info(f"User {user_id} added S3 account {account.id} ({account.region})")
        return account

    async def update_account(self, account_id: int, user_id: int, account_data: S3AccountUpdate) -> S3Account:
        account = await self.get_owned_account(account_id, user_id)
        self.s3_factory.evict(account.id)
        await self.cache.delete(bucket_cache_key(account.id))
        return await self.account_repo.update(account, account_data)

    async def delete_account(self, account_id: int, user_id: int) -> bool:
        account = await self.get_owned_account(account_id, user_id)
        await self.account_repo.delete(account)
        self.s3_factory.evict(account_id)
        await self.cache.delete(bucket_cache_key(account_id))
        logger.info(f"User {user_id} removed S3 account {account_id}")
        return True
