from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from conftest import UnreachableRedis
from wickedfiles.core.redis import redis_client
from wickedfiles.models import FileAccessLog, SharedFile
from wickedfiles.schemas.share import ShareState, SharedFileCreate
from wickedfiles.services.share import AccessRequest, ShareService
from wickedfiles.utils.exceptions import AuthorizationError, RateLimitError, ShareDeliveryError


VISITOR = AccessRequest(ip_address="198.51.100.4", user_agent="pytest", referrer="https://example.org")


@pytest.fixture
def service(db, s3_factory, fake_redis, sent_emails):
    s3_factory.store["photos"]["trip/beach.jpg"] = (b"jpeg-bytes", "image/jpeg")
    return ShareService(db, s3_factory)


async def share(service, user, account, **overrides):
    data = {
        "account_id": account.id,
        "bucket": "photos",
        "path": "trip/beach.jpg",
        "filename": "beach.jpg",
    }
    data.update(overrides)
    created = await service.create_share(user, SharedFileCreate(**data))
    return created["share_token"], created["id"]


async def side_effects(db, shared_file_id):
    shared_file = await db.get(SharedFile, shared_file_id)
    await db.refresh(shared_file)
    logs = await db.scalar(select(func.count(FileAccessLog.id)).where(FileAccessLog.file_id == shared_file_id))
    return shared_file.access_count, logs


async def test_unknown_and_malformed_tokens_are_not_found(service):
    assert (await service.resolve("0" * 32, None, VISITOR)).state == ShareState.NOT_FOUND
    assert (await service.resolve("x" * 500, None, VISITOR)).state == ShareState.NOT_FOUND
    assert (await service.resolve("", None, VISITOR)).state == ShareState.NOT_FOUND


async def test_live_share_signs_url_and_records_one_access(service, db, alice, alice_account):
    token, share_id = await share(service, alice, alice_account)

    resolution = await service.resolve(token, None, VISITOR)

    assert resolution.state == ShareState.LIVE
    assert resolution.signed_url.startswith("https://photos.s3.amazonaws.com/trip/beach.jpg?")
    assert resolution.direct_s3_url is None
    assert await side_effects(db, share_id) == (1, 1)

    log = await db.scalar(select(FileAccessLog).where(FileAccessLog.file_id == share_id))
    assert log.ip_address == "198.51.100.4"
    assert log.user_agent == "pytest"
    assert log.referrer == "https://example.org"
    assert log.is_download is False


async def test_public_share_also_returns_direct_url(service, alice, alice_account):
    token, _ = await share(service, alice, alice_account, direct_s3_link=True)

    resolution = await service.resolve(token, None, VISITOR)

    assert resolution.state == ShareState.LIVE
    assert resolution.direct_s3_url == "https://photos.s3.amazonaws.com/trip/beach.jpg"


async def test_revoked_wins_over_expired(service, db, alice, alice_account):
    token, share_id = await share(
        service, alice, alice_account,
        expires_at=datetime.now(timezone.utc) - timedelta(days=1),
    )
    await service.revoke(share_id, alice.id)

    resolution = await service.resolve(token, None, VISITOR)

    assert resolution.state == ShareState.REVOKED
    assert await side_effects(db, share_id) == (0, 0)


async def test_expired_share_has_no_side_effects(service, db, alice, alice_account):
    token, share_id = await share(
        service, alice, alice_account,
        expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
    )

    resolution = await service.resolve(token, None, VISITOR)

    assert resolution.state == ShareState.EXPIRED
    assert await side_effects(db, share_id) == (0, 0)


async def test_expired_is_reported_before_password(service, alice, alice_account):
    token, _ = await share(
        service, alice, alice_account,
        password="hunter22",
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
    )

    resolution = await service.resolve(token, "hunter22", VISITOR)

    assert resolution.state == ShareState.EXPIRED


async def test_future_expiry_is_live(service, alice, alice_account):
    token, _ = await share(service, alice, alice_account, expires_in_days=7)

    assert (await service.resolve(token, None, VISITOR)).state == ShareState.LIVE


async def test_password_is_hashed_and_required(service, db, alice, alice_account):
    token, share_id = await share(service, alice, alice_account, password="hunter22")

    stored = await db.get(SharedFile, share_id)
    assert stored.password != "hunter22"
    assert stored.password_protected

    missing = await service.resolve(token, None, VISITOR)
    wrong = await service.resolve(token, "nope", VISITOR)

    assert missing.state == ShareState.PASSWORD_REQUIRED
    assert missing.password_supplied is False
    assert wrong.state == ShareState.PASSWORD_REQUIRED
    assert wrong.password_supplied is True
    assert await side_effects(db, share_id) == (0, 0)

    right = await service.resolve(token, "hunter22", VISITOR)
    assert right.state == ShareState.LIVE
    assert await side_effects(db, share_id) == (1, 1)


async def test_wrong_passwords_are_throttled(service, fake_redis, alice, alice_account):
    token, _ = await share(service, alice, alice_account, password="hunter22")

    for _ in range(5):
        assert (await service.resolve(token, "nope", VISITOR)).state == ShareState.PASSWORD_REQUIRED

    with pytest.raises(RateLimitError):
        await service.resolve(token, "hunter22", VISITOR)

    other_visitor = AccessRequest(ip_address="192.0.2.99")
    assert (await service.resolve(token, "hunter22", other_visitor)).state == ShareState.LIVE
    assert 900 in fake_redis.expiry.values()


async def test_download_refused_when_downloads_disabled(service, db, alice, alice_account):
    token, share_id = await share(service, alice, alice_account, allow_download=False)

    with pytest.raises(AuthorizationError):
        await service.resolve(token, None, AccessRequest(ip_address="198.51.100.4", is_download=True))

    assert await side_effects(db, share_id) == (0, 0)
    assert (await service.resolve(token, None, VISITOR)).state == ShareState.LIVE


async def test_signing_failure_leaves_no_trace(service, db, s3_factory, alice, alice_account):
    token, share_id = await share(service, alice, alice_account)
    s3_factory.gateway.fail_presign = True

    with pytest.raises(ShareDeliveryError):
        await service.resolve(token, None, VISITOR)

    assert await side_effects(db, share_id) == (0, 0)


async def test_every_live_access_counts(service, db, alice, alice_account):
    token, share_id = await share(service, alice, alice_account)

    for _ in range(3):
        await service.resolve(token, None, VISITOR)
    await service.resolve(token, None, AccessRequest(is_download=True))

    assert await side_effects(db, share_id) == (4, 4)


async def test_revoked_stays_revoked_with_future_expiry(service, alice, alice_account):
    token, share_id = await share(service, alice, alice_account, expires_in_days=30)
    await service.revoke(share_id, alice.id)

    assert (await service.resolve(token, None, VISITOR)).state == ShareState.REVOKED


async def test_deleting_share_leaves_no_orphaned_logs(service, db, alice, alice_account):
    token, share_id = await share(service, alice, alice_account)
    await service.resolve(token, None, VISITOR)
    await service.resolve(token, None, VISITOR)

    await service.delete(share_id, alice.id)

    remaining = await db.scalar(select(func.count(FileAccessLog.id)).where(FileAccessLog.file_id == share_id))
    assert remaining == 0
    assert (await service.resolve(token, None, VISITOR)).state == ShareState.NOT_FOUND


async def test_password_share_resolves_while_redis_is_down(service, alice, alice_account):
    token, _ = await share(service, alice, alice_account, password="hunter22")
    redis_client.redis = UnreachableRedis()

    wrong = await service.resolve(token, "nope", VISITOR)
    right = await service.resolve(token, "hunter22", VISITOR)

    assert wrong.state == ShareState.PASSWORD_REQUIRED
    assert right.state == ShareState.LIVE
