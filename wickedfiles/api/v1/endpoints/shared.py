from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from wickedfiles.core.database import get_db
from wickedfiles.core.s3 import S3ClientFactory, get_s3_factory
from wickedfiles.schemas.share import ShareState, SharedFileAccess, PasswordRequired
from wickedfiles.services.share import AccessRequest, ShareService

router = APIRouter()


@router.get(
    "/{share_token}",
    response_model=SharedFileAccess,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": PasswordRequired}}
)
async def access_shared_file(
    share_token: str,
    request: Request,
    password: Optional[str] = Query(None),
    download: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    s3_factory: S3ClientFactory = Depends(get_s3_factory)
):
    """Open a share link; no authentication required"""
    share_service = ShareService(db, s3_factory)
    access = AccessRequest(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
        is_download=download,
    )

    resolution = await share_service.resolve(share_token, password, access)

    if resolution.state == ShareState.NOT_FOUND:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shared file not found or has expired"
        )

    if resolution.state == ShareState.REVOKED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This shared file has been manually expired by the owner"
        )

    if resolution.state == ShareState.EXPIRED:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="This shared file has expired"
        )

    if resolution.state == ShareState.PASSWORD_REQUIRED:
        body = PasswordRequired(
            message="Incorrect password" if resolution.password_supplied else "Password required"
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=body.model_dump(by_alias=True)
        )

    shared_file = resolution.shared_file
    return SharedFileAccess(
        filename=shared_file.filename,
        content_type=shared_file.content_type,
        filesize=shared_file.filesize,
        signed_url=resolution.signed_url,
        direct_s3_url=resolution.direct_s3_url,
        allow_download=shared_file.allow_download,
        expires_at=shared_file.expires_at,
    )
