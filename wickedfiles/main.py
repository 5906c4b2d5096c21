from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from wickedfiles.core.config import settings
from wickedfiles.core.database import get_db, init_models
from wickedfiles.core.redis import redis_client
from wickedfiles.api.v1.router import api_router
from wickedfiles.utils.exceptions import WickedFilesException

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    # Startup
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.info("Starting up...")
    await redis_client.connect()
    await init_models()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await redis_client.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    lifespan=lifespan
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WickedFilesException)
async def wickedfiles_exception_handler(request: Request, exc: WickedFilesException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.detail})")
    content = {"detail": exc.message}
    if exc.detail:
        content["error"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content)


# Include API router
app.include_router(api_router, prefix=settings.API_PREFIX)


# Root endpoint
@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_PREFIX}/docs",
        "health": "/health",
        "api": settings.API_PREFIX
    }


# Health check endpoint
@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    # Check Redis connection; the client reports failures as a falsy result
    redis_status = "healthy" if await redis_client.set("health_check", "ok", expire=10) else "unhealthy"

    # Check database connection
    database_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        database_status = "unhealthy"

    return {
        "status": "healthy" if redis_status == "healthy" and database_status == "healthy" else "degraded",
        "services": {
            "redis": redis_status,
            "database": database_status
        }
    }
