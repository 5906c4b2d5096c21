from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests
from google.oauth2 import id_token
from starlette.concurrency import run_in_threadpool
import logging
import secrets

from wickedfiles.core.security import (
    check_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    create_password_reset_token,
    revoked_token_key,
    seconds_until_expiry,
    verify_password_reset_token
)
from wickedfiles.core.config import settings
from wickedfiles.core.email import EmailService, email_service
from wickedfiles.core.redis import RedisClient, redis_client
from wickedfiles.repositories.user import UserRepository
from wickedfiles.schemas.user import UserCreate
from wickedfiles.schemas.auth import Token
from wickedfiles.models.user import User
from wickedfiles.utils.exceptions import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession, mailer: EmailService = email_service, cache: RedisClient = redis_client):
        self.user_repo = UserRepository(db)
        self.email_service = mailer
        self.cache = cache

    async def register(self, user_data: UserCreate) -> User:
        if await self.user_repo.get_by_email(user_data.email):
            raise ValidationError("Email already in use")
        if await self.user_repo.get_by_username(user_data.username):
            raise ValidationError("Username already taken")

        user = await self.user_repo.create(
            email=user_data.email,
            username=user_data.username,
            full_name=user_data.full_name,
            hashed_password=await hash_password(user_data.password),
        )
        logger.info(f"Registered user {user.id}")
        await self.email_service.send_welcome_email(user.email, user.full_name or user.username)
        return user

    async def login(self, email: str, password: str) -> Token:
        """Exchange email and password for a token pair.

        Unknown email, wrong password, password-less (Google) accounts and
        suspended users all get the same answer.
        """
        user = await self.user_repo.get_by_email(email)
        if not user or not user.hashed_password or not await check_password(password, user.hashed_password):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            logger.info(f"Refused login for suspended user {user.id}")
            raise AuthenticationError("Invalid email or password")
        return self.create_tokens(user)

    def create_tokens(self, user: User) -> Token:
        return Token(
            access_token=create_access_token(user.id),
            refresh_token=create_refresh_token(user.id),
            token_type="bearer"
        )

    async def _is_revoked(self, token: str) -> bool:
        return await self.cache.get(revoked_token_key(token)) is not None

    async def _user_for_token(self, token: str, token_type: str) -> Optional[User]:
        payload = decode_token(token)
        if not payload or payload.get("type") != token_type:
            return None

        user_id = payload.get("sub")
        if not user_id or not str(user_id).isdigit():
            return None

        if await self._is_revoked(token):
            return None

        return await self.user_repo.get_by_id(int(user_id))

    async def user_for_access_token(self, token: str) -> Optional[User]:
        """The user behind a live access token, or None"""
        return await self._user_for_token(token, "access")

    async def refresh(self, refresh_token: str) -> Token:
        user = await self._user_for_token(refresh_token, "refresh")
        if not user or not user.is_active:
            raise AuthenticationError("Invalid refresh token")
        return self.create_tokens(user)

    async def logout(self, access_token: Optional[str], refresh_token: Optional[str] = None) -> bool:
        """Revoke the given tokens until they would have expired anyway.

        Returns False when there was nothing valid to sign out. Revocation
        lives in Redis, so while Redis is down tokens stay valid until expiry.
        """
        revoked = set()
        for token in (access_token, refresh_token):
            payload = decode_token(token) if token else None
            if not payload:
                continue
            ttl = seconds_until_expiry(payload)
            if ttl and await self.cache.set(revoked_token_key(token), "1", expire=ttl):
                revoked.add(payload.get("sub"))
        for user_id in revoked:
            logger.info(f"User {user_id} signed out")
        return bool(revoked)

    async def _verify_google_credential(self, credential: str) -> dict:
        try:
            return await run_in_threadpool(
                id_token.verify_oauth2_token,
                credential,
                requests.Request(),
                settings.GOOGLE_CLIENT_ID
            )
        except (ValueError, GoogleAuthError) as e:
            logger.info(f"Rejected Google credential: {e}")
            raise ValidationError("Invalid Google credentials")

    async def google_login(self, credential: str) -> Token:
        """Sign in with a Google ID token, linking or creating the account"""
        if not settings.GOOGLE_CLIENT_ID:
            raise ValidationError("Invalid Google credentials", detail="Google sign-in is not configured")

        idinfo = await self._verify_google_credential(credential)
        email = idinfo.get("email")
        google_id = idinfo.get("sub")
        if not email or not google_id:
            raise ValidationError("Invalid Google credentials")

        user = await self.user_repo.get_by_oauth("google", google_id)
        if not user:
            user = await self.user_repo.get_by_email(email)
            if user:
                user = await self.user_repo.update(
                    user,
                    oauth_provider="google",
                    oauth_provider_id=google_id,
                    avatar_url=user.avatar_url or idinfo.get("picture"),
                )
                logger.info(f"Linked Google sign-in to user {user.id}")
            else:
                user = await self.user_repo.create(
                    email=email,
                    username=f"{email.split('@')[0]}_{secrets.token_hex(3)}",
                    full_name=idinfo.get("name"),
                    avatar_url=idinfo.get("picture"),
                    oauth_provider="google",
                    oauth_provider_id=google_id,
                    is_verified=True,
                )
                await self.email_service.send_welcome_email(user.email, user.full_name or user.username)

        if not user.is_active:
            raise AuthenticationError("Invalid Google credentials")
        return self.create_tokens(user)

    async def request_password_reset(self, email: str) -> None:
        user = await self.user_repo.get_by_email(email)
        if not user:
            # Don't reveal if user exists
            return
        await self.email_service.send_password_reset_email(email, create_password_reset_token(email))

    async def reset_password(self, token: str, new_password: str) -> None:
        email = verify_password_reset_token(token)
        user = await self.user_repo.get_by_email(email) if email else None
        if not user:
            raise ValidationError("Invalid or expired reset token")
        await self.user_repo.update(user, hashed_password=await hash_password(new_password))
        logger.info(f"User {user.id} reset their password")
