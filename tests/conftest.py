import os

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("DB_USER", "wickedfiles")
os.environ.setdefault("DB_PASSWORD", "wickedfiles")
os.environ.setdefault("DB_NAME", "wickedfiles_test")
os.environ.setdefault("PUBLIC_BASE_URL", "https://files.example.com")

from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wickedfiles.core.database import Base, get_db
from wickedfiles.core.email import email_service
from wickedfiles.core.redis import redis_client
from wickedfiles.core.s3 import get_s3_factory
from wickedfiles.core.security import create_access_token, get_password_hash
from wickedfiles.main import app
from wickedfiles.models import S3Account, User
from wickedfiles.utils.exceptions import FileOperationError


class FakeS3Gateway:
    """In-memory stand-in for S3Gateway, shared by every account"""

    def __init__(self, store: Dict[str, Dict[str, Tuple[bytes, str]]]):
        self.store = store
        self.fail_presign = False
        self.fail_copy_keys = set()
        self.fail_stat = False
        self.denied_keys = set()
        self.presigned = []

    def _bucket(self, bucket: str) -> Dict[str, Tuple[bytes, str]]:
        if bucket not in self.store:
            raise FileOperationError("Error accessing S3 objects", detail=f"NoSuchBucket: {bucket}")
        return self.store[bucket]

    async def list_buckets(self):
        return [{"name": name, "creation_date": datetime(2024, 1, 1, tzinfo=timezone.utc)} for name in self.store]

    async def list_objects(self, bucket: str, prefix: str = "", delimiter: str = "/"):
        objects, folders = [], []
        for key, (data, _) in sorted(self._bucket(bucket).items()):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                folder = prefix + rest.split(delimiter, 1)[0] + delimiter
                if {"prefix": folder} not in folders:
                    folders.append({"prefix": folder})
                continue
            objects.append({"key": key, "size": len(data), "last_modified": None, "etag": None})
        return {"objects": objects, "folders": folders, "prefix": prefix, "delimiter": delimiter}

    async def stat_object(self, bucket: str, key: str):
        if self.fail_stat or key not in self._bucket(bucket):
            raise FileOperationError(f"Error reading metadata for {key}", detail="NoSuchKey")
        data, content_type = self.store[bucket][key]
        return {"size": len(data), "content_type": content_type, "last_modified": None, "etag": None}

    async def object_exists(self, bucket: str, key: str) -> bool:
        if key in self.denied_keys:
            raise FileOperationError(f"Error reading metadata for {key}", detail="AccessDenied")
        return key in self.store.get(bucket, {})

    async def put_object(self, bucket, key, data, length, content_type="application/octet-stream"):
        self._bucket(bucket)[key] = (data.read(length) if length else b"", content_type)

    async def delete_object(self, bucket: str, key: str) -> None:
        self._bucket(bucket).pop(key, None)

    async def copy_object(self, source_bucket, source_key, dest_bucket, dest_key) -> None:
        if source_key in self.fail_copy_keys:
            raise FileOperationError(f"Error copying {source_key}", detail="AccessDenied")
        source = self._bucket(source_bucket)
        if source_key not in source:
            raise FileOperationError(f"Error copying {source_key}", detail="NoSuchKey")
        self._bucket(dest_bucket)[dest_key] = source[source_key]

    async def presigned_get_url(self, bucket: str, key: str, expires: Optional[int] = None) -> str:
        if self.fail_presign:
            raise FileOperationError(f"Error generating download URL for {key}", detail="SignatureDoesNotMatch")
        self.presigned.append((bucket, key))
        return f"https://{bucket}.s3.amazonaws.com/{key}?X-Amz-Signature=test"

    @staticmethod
    def direct_url(bucket: str, key: str) -> str:
        return f"https://{bucket}.s3.amazonaws.com/{key}"


class FakeS3Factory:
    def __init__(self):
        self.store = {"photos": {}, "archive": {}}
        self.gateway = FakeS3Gateway(self.store)
        self.evicted = []

    def for_account(self, account):
        return self.gateway

    def for_credentials(self, access_key_id, secret_access_key, region):
        if access_key_id == "bad-key":
            return _RejectingGateway()
        return self.gateway

    def evict(self, account_id: int) -> None:
        self.evicted.append(account_id)


class _RejectingGateway:
    async def list_buckets(self):
        raise FileOperationError("Error accessing S3 buckets", detail="InvalidAccessKeyId")


class FakeRedisConnection:
    """Covers the subset of redis.asyncio.Redis that RedisClient calls"""

    def __init__(self):
        self.data = {}
        self.expiry = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, *keys):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def incr(self, key):
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    async def expire(self, key, seconds):
        self.expiry[key] = seconds
        return True

    async def close(self):
        pass


class UnreachableRedis:
    """Behaves like redis.asyncio.Redis pointed at a server that is down"""

    async def _refuse(self, *args, **kwargs):
        raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379. Connection refused.")

    get = set = delete = incr = expire = _refuse


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def s3_factory():
    return FakeS3Factory()


@pytest.fixture
def fake_redis():
    connection = FakeRedisConnection()
    redis_client.redis = connection
    yield connection
    redis_client.redis = None


@pytest.fixture
def sent_emails(monkeypatch):
    sent = []

    async def fake_send_email(to_emails, subject, html_content, text_content=None):
        sent.append({"to": to_emails, "subject": subject, "html": html_content, "text": text_content})
        return True

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return sent


@pytest.fixture
async def client(session_factory, s3_factory, fake_redis, sent_emails):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_s3_factory] = lambda: s3_factory

    transport = ASGITransport(app=app, client=("203.0.113.7", 51234))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(db, username: str, role: str = "user", is_active: bool = True) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        full_name=username.title(),
        hashed_password=get_password_hash("password123"),
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_account(db, user: User, name: str = "Main", is_active: bool = True) -> S3Account:
    account = S3Account(
        user_id=user.id,
        name=name,
        access_key_id="AKIATEST",
        secret_access_key="secret",
        region="us-east-1",
        is_active=is_active,
    )
    db.add(account)
    await db.commit()
    await db.refresh(account)
    return account


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def alice(db):
    return await make_user(db, "alice")


@pytest.fixture
async def bob(db):
    return await make_user(db, "bob")


@pytest.fixture
async def alice_account(db, alice):
    return await make_account(db, alice)
