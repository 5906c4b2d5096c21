from sqlalchemy.ext.asyncio import AsyncSession
import logging

from wickedfiles.core.s3 import S3ClientFactory
from wickedfiles.core.security import hash_password
from wickedfiles.models.user import User
from wickedfiles.repositories.s3_account import S3AccountRepository
from wickedfiles.repositories.user import UserRepository
from wickedfiles.schemas.user import UserUpdate
from wickedfiles.utils.exceptions import ConflictError

logger = logging.getLogger(__name__)


class UserService:
    """The signed-in user's own profile"""

    def __init__(self, db: AsyncSession, s3_factory: S3ClientFactory):
        self.user_repo = UserRepository(db)
        self.account_repo = S3AccountRepository(db)
        self.s3_factory = s3_factory

    async def update_profile(self, user: User, data: UserUpdate) -> User:
        fields = data.model_dump(exclude_unset=True)
        # email and username cannot be cleared
        for name in ("email", "username"):
            if name in fields and fields[name] is None:
                del fields[name]

        email = fields.get("email")
        if email and email != user.email:
            other = await self.user_repo.get_by_email(email)
            if other and other.id != user.id:
                raise ConflictError("Email already in use")

        username = fields.get("username")
        if username and username != user.username:
            other = await self.user_repo.get_by_username(username)
            if other and other.id != user.id:
                raise ConflictError("Username already taken")

        if "password" in fields:
            password = fields.pop("password")
            if password:
                fields["hashed_password"] = await hash_password(password)

        if not fields:
            return user
        return await self.user_repo.update(user, **fields)

    async def delete_account(self, user: User) -> None:
        """Delete the user together with everything they own"""
        user_id = user.id
        accounts = await self.account_repo.get_user_accounts(user_id)
        await self.user_repo.delete(user)
        for account in accounts:
            self.s3_factory.evict(account.id)
        logger.info(f"User {user_id} deleted their account and {len(accounts)} S3 account(s)")
