from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, func
from sqlalchemy.exc import IntegrityError

from wickedfiles.models.user import User
from wickedfiles.utils.exceptions import ConflictError

DUPLICATE_USER_MESSAGE = "A user with this email or username already exists"


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit_user(self, user: User) -> User:
        # email and username carry unique indexes
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(DUPLICATE_USER_MESSAGE)
        await self.db.refresh(user)
        return user

    async def create(self, **fields) -> User:
        """Insert a user; role and flags default to a regular, unverified account"""
        user = User(**{"role": "user", "is_active": True, "is_verified": False, **fields})
        self.db.add(user)
        return await self._commit_user(user)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        query = select(User).filter(User.id == user_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        query = select(User).filter(User.email == email)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[User]:
        query = select(User).filter(User.username == username)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_oauth(self, provider: str, provider_id: str) -> Optional[User]:
        query = select(User).filter(
            User.oauth_provider == provider,
            User.oauth_provider_id == provider_id
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list(self, search: Optional[str] = None, skip: int = 0, limit: int = 50) -> Tuple[List[User], int]:
        """List users for the admin panel, optionally filtered"""
        query = select(User)
        count_query = select(func.count(User.id))
        if search:
            pattern = f"%{search}%"
            condition = or_(User.username.ilike(pattern), User.email.ilike(pattern))
            query = query.filter(condition)
            count_query = count_query.filter(condition)

        query = query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        total = await self.db.scalar(count_query)
        return list(result.scalars().all()), total or 0

    async def update(self, user: User, **fields) -> User:
        for field, value in fields.items():
            setattr(user, field, value)
        return await self._commit_user(user)

    async def delete(self, user: User) -> None:
        """Delete a user; accounts, shares, logs and settings go with it"""
        await self.db.delete(user)
        await self.db.commit()
