from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from wickedfiles.models.s3_account import S3Account
from wickedfiles.schemas.s3 import S3AccountCreate, S3AccountUpdate


class S3AccountRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, account_data: S3AccountCreate, user_id: int) -> S3Account:
        """Create a new S3 account"""
        account = S3Account(user_id=user_id, **account_data.model_dump())
        self.db.add(account)
        await self.db.commit()
        await self.db.refresh(account)
        return account

    async def get_by_id(self, account_id: int) -> Optional[S3Account]:
        query = select(S3Account).filter(S3Account.id == account_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_user_accounts(self, user_id: int) -> List[S3Account]:
        """Get all S3 accounts for a user"""
        query = (
            select(S3Account)
            .filter(S3Account.user_id == user_id)
            .order_by(S3Account.created_at.asc(), S3Account.id.asc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update(self, account: S3Account, account_data: S3AccountUpdate) -> S3Account:
        for field, value in account_data.model_dump(exclude_unset=True).items():
            setattr(account, field, value)
        await self.db.commit()
        await self.db.refresh(account)
        return account

    async def delete(self, account: S3Account) -> None:
        await self.db.delete(account)
        await self.db.commit()
