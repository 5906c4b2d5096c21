import pytest

from conftest import auth_headers


@pytest.fixture(autouse=True)
def objects(s3_factory):
    photos = s3_factory.store["photos"]
    photos["a.txt"] = (b"a", "text/plain")
    photos["docs/b.txt"] = (b"b", "text/plain")
    photos["docs/c.txt"] = (b"c", "text/plain")
    return photos


async def test_batch_delete_reports_missing_keys(client, alice, alice_account, objects):
    response = await client.post(
        f"/api/s3/{alice_account.id}/batch-delete",
        json={"bucket": "photos", "keys": ["a.txt", "missing.txt", "docs/b.txt"]},
        headers=auth_headers(alice),
    )

    assert response.status_code == 200
    body = response.json()
    assert sorted(body["deleted"]) == ["a.txt", "docs/b.txt"]
    assert [e["key"] for e in body["errors"]] == ["missing.txt"]
    assert "a.txt" not in objects
    assert "docs/c.txt" in objects


async def test_batch_delete_reports_permission_errors_as_such(client, alice, alice_account, s3_factory, objects):
    s3_factory.gateway.denied_keys.add("a.txt")

    response = await client.post(
        f"/api/s3/{alice_account.id}/batch-delete",
        json={"bucket": "photos", "keys": ["a.txt", "docs/b.txt"]},
        headers=auth_headers(alice),
    )

    body = response.json()
    assert body["deleted"] == ["docs/b.txt"]
    assert body["errors"] == [{"key": "a.txt", "message": "Error reading metadata for a.txt: AccessDenied"}]
    assert "a.txt" in objects


async def test_batch_copy_targets_prefix_and_basename(client, alice, alice_account, s3_factory, objects):
    response = await client.post(
        f"/api/s3/{alice_account.id}/batch-copy",
        json={
            "bucket": "photos",
            "keys": ["docs/b.txt", "docs/c.txt"],
            "destinationBucket": "archive",
            "destinationPrefix": "2024",
        },
        headers=auth_headers(alice),
    )

    assert response.status_code == 200
    assert sorted(response.json()["copied"]) == ["docs/b.txt", "docs/c.txt"]
    assert sorted(s3_factory.store["archive"]) == ["2024/b.txt", "2024/c.txt"]
    assert "docs/b.txt" in objects


async def test_batch_move_keeps_sources_whose_copy_failed(client, alice, alice_account, s3_factory, objects):
    s3_factory.gateway.fail_copy_keys.add("docs/c.txt")

    response = await client.post(
        f"/api/s3/{alice_account.id}/batch-move",
        json={
            "bucket": "photos",
            "keys": ["docs/b.txt", "docs/c.txt"],
            "destinationBucket": "archive",
            "destinationPrefix": "moved/",
        },
        headers=auth_headers(alice),
    )

    body = response.json()
    assert body["moved"] == ["docs/b.txt"]
    assert body["errors"][0]["key"] == "docs/c.txt"
    assert "AccessDenied" in body["errors"][0]["message"]
    assert "docs/b.txt" not in objects
    assert "docs/c.txt" in objects
    assert list(s3_factory.store["archive"]) == ["moved/b.txt"]


async def test_batch_move_onto_itself_is_an_error(client, alice, alice_account, objects):
    response = await client.post(
        f"/api/s3/{alice_account.id}/batch-move",
        json={"bucket": "photos", "keys": ["docs/b.txt"], "destinationBucket": "photos", "destinationPrefix": "docs"},
        headers=auth_headers(alice),
    )

    body = response.json()
    assert body["moved"] == []
    assert body["errors"][0]["key"] == "docs/b.txt"
    assert "docs/b.txt" in objects


async def test_batch_download_signs_each_key(client, alice, alice_account, s3_factory):
    response = await client.post(
        f"/api/s3/{alice_account.id}/batch-download",
        json={"bucket": "photos", "keys": ["a.txt", "docs/b.txt", "a.txt"]},
        headers=auth_headers(alice),
    )

    body = response.json()
    assert set(body["urls"]) == {"a.txt", "docs/b.txt"}
    assert body["errors"] == []
    assert len(s3_factory.gateway.presigned) == 2


async def test_batch_with_no_keys_is_rejected(client, alice, alice_account):
    response = await client.post(
        f"/api/s3/{alice_account.id}/batch-delete",
        json={"bucket": "photos", "keys": []},
        headers=auth_headers(alice),
    )

    assert response.status_code == 422


async def test_batch_on_someone_elses_account(client, bob, alice_account):
    response = await client.post(
        f"/api/s3/{alice_account.id}/batch-delete",
        json={"bucket": "photos", "keys": ["a.txt"]},
        headers=auth_headers(bob),
    )

    assert response.status_code == 403
