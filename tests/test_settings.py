from conftest import auth_headers, make_account
from wickedfiles.repositories.settings import UserSettingsRepository


async def test_defaults_are_created_on_first_read(client, alice):
    response = await client.get("/api/user-settings", headers=auth_headers(alice))

    assert response.status_code == 200
    body = response.json()
    assert body["theme"] == "light"
    assert body["viewMode"] == "grid"
    assert body["notifications"] is True
    assert body["lastAccessed"] == []
    assert body["defaultAccountId"] is None


async def test_patch_merges_and_keeps_recent_paths(client, alice, alice_account):
    await client.get(
        f"/api/s3/{alice_account.id}/objects",
        params={"bucket": "photos", "prefix": "trip/"},
        headers=auth_headers(alice),
    )

    response = await client.patch(
        "/api/user-settings",
        json={"theme": "dark", "defaultAccountId": alice_account.id},
        headers=auth_headers(alice),
    )

    body = response.json()
    assert body["theme"] == "dark"
    assert body["viewMode"] == "grid"
    assert body["defaultAccountId"] == alice_account.id
    assert body["lastAccessed"] == ["photos/trip/"]


async def test_put_resets_omitted_fields(client, alice):
    await client.patch("/api/user-settings", json={"theme": "dark", "viewMode": "list"}, headers=auth_headers(alice))

    response = await client.put("/api/user-settings", json={"accentColor": "#000000"}, headers=auth_headers(alice))

    body = response.json()
    assert body["accentColor"] == "#000000"
    assert body["theme"] == "light"
    assert body["viewMode"] == "grid"


async def test_post_behaves_like_put(client, alice):
    response = await client.post("/api/user-settings", json={"notifications": False}, headers=auth_headers(alice))

    assert response.status_code == 200
    assert response.json()["notifications"] is False


async def test_default_account_must_be_owned(client, db, alice, bob):
    bobs_account = await make_account(db, bob)

    response = await client.patch(
        "/api/user-settings",
        json={"defaultAccountId": bobs_account.id},
        headers=auth_headers(alice),
    )

    assert response.status_code == 400


async def test_invalid_view_mode(client, alice):
    response = await client.patch("/api/user-settings", json={"viewMode": "tiles"}, headers=auth_headers(alice))

    assert response.status_code == 422


async def test_concurrent_first_access_reuses_existing_row(session_factory, alice):
    user_id = alice.id
    async with session_factory() as first, session_factory() as second:
        winner = await UserSettingsRepository(first).create_default(user_id)
        loser = await UserSettingsRepository(second).create_default(user_id)

    assert loser.id == winner.id
    assert loser.theme == "light"
