from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
import hashlib
import secrets

from jose import JWTError, jwt
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from wickedfiles.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised hash format
        return False


async def hash_password(password: str) -> str:
    """Threadpool wrapper around get_password_hash"""
    return await run_in_threadpool(get_password_hash, password)


async def check_password(plain_password: str, hashed_password: str) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)


def _create_token(subject: Union[str, Any], token_type: str, expires_delta: timedelta) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    payload = {"sub": str(subject), "type": token_type, "exp": expire, "jti": secrets.token_hex(8)}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(subject: Union[str, Any]) -> str:
    return _create_token(
        subject, "access", timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )


def create_refresh_token(subject: Union[str, Any]) -> str:
    return _create_token(
        subject, "refresh", timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS)
    )


def decode_token(token: str) -> Optional[dict]:
    """Return the token payload, or None when invalid or expired"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def create_password_reset_token(email: str) -> str:
    return _create_token(
        email, "password_reset", timedelta(hours=settings.PASSWORD_RESET_TOKEN_EXPIRE_HOURS)
    )


def verify_password_reset_token(token: str) -> Optional[str]:
    payload = decode_token(token)
    if not payload or payload.get("type") != "password_reset":
        return None
    return payload.get("sub")


def revoked_token_key(token: str) -> str:
    """Redis key marking a signed-out token; the token itself is never stored"""
    return f"auth:revoked:{hashlib.sha256(token.encode()).hexdigest()}"


def seconds_until_expiry(payload: dict) -> int:
    exp = payload.get("exp")
    if exp is None:
        return 0
    return max(0, int(exp - datetime.now(timezone.utc).timestamp()))
