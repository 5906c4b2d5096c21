from typing import List
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from wickedfiles.core.database import get_db
from wickedfiles.core.s3 import S3ClientFactory, get_s3_factory
from wickedfiles.api.deps import get_current_active_user
from wickedfiles.models.user import User
from wickedfiles.schemas.s3 import (
    S3Account,
    S3AccountCreate,
    S3AccountUpdate,
    S3Credentials,
    CredentialsValidation
)
from wickedfiles.services.s3_account import S3AccountService
from wickedfiles.utils.exceptions import ValidationError

router = APIRouter()


@router.get("/s3-accounts", response_model=List[S3Account])
async def list_accounts(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """List the caller's S3 accounts"""
    account_service = S3AccountService(db, s3_factory)
    return await account_service.list_accounts(current_user.id)


@router.post("/s3-accounts", response_model=S3Account, status_code=status.HTTP_201_CREATED)
async def create_account(
    account_data: S3AccountCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Store a new set of S3 credentials"""
    account_service = S3AccountService(db, s3_factory)
    return await account_service.create_account(account_data, current_user.id)


@router.patch("/s3-accounts/{account_id}", response_model=S3Account)
async def update_account(
    account_id: int,
    account_data: S3AccountUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Update an S3 account"""
    account_service = S3AccountService(db, s3_factory)
    return await account_service.update_account(account_id, current_user.id, account_data)


@router.delete("/s3-accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    account_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Delete an S3 account and every share made through it"""
    account_service = S3AccountService(db, s3_factory)
    await account_service.delete_account(account_id, current_user.id)
    return None


@router.post("/validate-s3-credentials", response_model=CredentialsValidation)
async def validate_credentials(
    credentials: S3Credentials,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Check that a key pair can list buckets before it is saved"""
    account_service = S3AccountService(db, s3_factory)
    try:
        buckets = await account_service.validate_credentials(credentials)
    except ValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"valid": False, "message": e.message}
        )

    return CredentialsValidation(valid=True, buckets=buckets)
