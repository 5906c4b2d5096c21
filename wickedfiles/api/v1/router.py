from fastapi import APIRouter

from wickedfiles.api.v1.endpoints import (
    admin,
    auth,
    s3,
    s3_accounts,
    settings,
    shared,
    shared_files,
    users
)

api_router = APIRouter()

# Include routers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(settings.router, prefix="/user-settings", tags=["settings"])
api_router.include_router(s3_accounts.router, tags=["s3-accounts"])
api_router.include_router(s3.router, prefix="/s3", tags=["s3"])
api_router.include_router(shared_files.router, prefix="/shared-files", tags=["shared-files"])
api_router.include_router(shared.router, prefix="/shared", tags=["shared"])
