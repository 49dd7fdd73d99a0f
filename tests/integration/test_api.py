"""
HTTP tests for the FastAPI surface: auth, error envelope, status codes and
the friend action dispatch.
"""

from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from readshare.core.config import settings
from readshare.core.dependencies import get_uow
from readshare.core.redis_client import get_redis
from readshare.main import app


def _token(user_id) -> str:
    return jwt.encode({"sub": str(user_id), "jti": str(uuid4())}, settings.auth_secret,
                      algorithm=settings.auth_algorithm)


def auth(user_id) -> dict:
    return {"Authorization": f"Bearer {_token(user_id)}"}


@pytest.fixture
async def client(uow):
    async def _uow():
        yield uow

    async def _redis():
        yield None

    app.dependency_overrides[get_uow] = _uow
    app.dependency_overrides[get_redis] = _redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


class TestAuthAndErrors:

    @pytest.mark.integration
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.integration
    async def test_missing_token(self, client):
        response = await client.get("/reading-records")
        assert response.status_code == 401
        assert response.json() == {"error": "Could not validate credentials"}
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.integration
    async def test_revoked_token(self, client, users, monkeypatch):
        class RevokedEverything:
            async def exists(self, key):
                return 1

        async def _redis():
            yield RevokedEverything()

        app.dependency_overrides[get_redis] = _redis
        monkeypatch.setattr(settings, "token_revocation", True)

        response = await client.get("/reading-records", headers=auth(users.alice))

        assert response.status_code == 401
        assert response.json() == {"error": "Token has been revoked"}
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.integration
    async def test_token_signed_with_other_key(self, client, users):
        token = jwt.encode({"sub": str(users.alice)}, "wrong-key", algorithm="HS256")
        response = await client.get(
            "/reading-records", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    @pytest.mark.integration
    async def test_invalid_scope_is_bad_request(self, client, users):
        response = await client.get(
            "/reading-records", params={"scope": "everyone"}, headers=auth(users.alice)
        )
        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.integration
    async def test_malformed_path_id_is_bad_request(self, client, users):
        response = await client.get("/reading-records/not-a-uuid", headers=auth(users.alice))
        assert response.status_code == 400
        assert set(response.json()) == {"error"}


class TestReadingRecords:

    @pytest.mark.integration
    async def test_upsert_create_then_update(self, client, users):
        payload = {
            "book": {"title": "Dune", "author": "Frank Herbert"},
            "reading_log": {"status": "reading", "visibility": "friends"},
        }
        created = await client.put("/reading-records", json=payload, headers=auth(users.alice))
        assert created.status_code == 201
        ids = created.json()["data"]

        updated = await client.put(
            "/reading-records",
            json={"reading_log": {"id": ids["reading_log_id"], "rating": 5}},
            headers=auth(users.alice),
        )
        assert updated.status_code == 200

        record = await client.get(
            f"/reading-records/{ids['reading_log_id']}", headers=auth(users.alice)
        )
        assert record.status_code == 200
        body = record.json()["data"]
        assert body["reading_log"]["rating"] == 5
        assert body["book"]["id"] == ids["book_id"]

    @pytest.mark.integration
    async def test_upsert_rejects_bad_rating(self, client, users):
        response = await client.put(
            "/reading-records",
            json={"book": {"title": "Dune", "author": "FH"}, "reading_log": {"rating": 9}},
            headers=auth(users.alice),
        )
        assert response.status_code == 400
        assert "rating" in response.json()["error"]

    @pytest.mark.integration
    async def test_quick_create_and_list(self, client, users):
        response = await client.post(
            "/reading-records",
            json={"title": "Emma", "author": "Jane Austen"},
            headers=auth(users.alice),
        )
        assert response.status_code == 201
        assert response.json()["data"]["reading_log"]["status"] == "want_to_read"

        listing = await client.get(
            "/reading-records", params={"scope": "me"}, headers=auth(users.alice)
        )
        body = listing.json()
        assert body["meta"]["total"] == 1
        assert body["meta"]["scope"] == "me"
        assert body["data"][0]["book"]["title"] == "Emma"

    @pytest.mark.integration
    async def test_private_record_is_not_found_for_others(self, client, users):
        created = await client.put(
            "/reading-records",
            json={"book": {"title": "Diary", "author": "Me"}, "reading_log": {"visibility": "private"}},
            headers=auth(users.alice),
        )
        log_id = created.json()["data"]["reading_log_id"]

        response = await client.get(f"/reading-records/{log_id}", headers=auth(users.bob))
        assert response.status_code == 404
        assert set(response.json()) == {"error"}

        response = await client.delete(f"/reading-records/{log_id}", headers=auth(users.bob))
        assert response.status_code == 404

        response = await client.delete(f"/reading-records/{log_id}", headers=auth(users.alice))
        assert response.status_code == 200
        assert response.json()["data"]["deleted"] is True


class TestFriendsEndpoint:

    @pytest.mark.integration
    async def test_request_accept_list(self, client, users):
        sent = await client.post(
            "/friends",
            json={"action": "request", "target_user_id": str(users.bob)},
            headers=auth(users.alice),
        )
        assert sent.status_code == 201
        assert sent.json()["data"]["message"] == "Friend request sent"
        friendship_id = sent.json()["data"]["id"]

        received = await client.post(
            "/friends", json={"action": "received"}, headers=auth(users.bob)
        )
        assert [e["friendship_id"] for e in received.json()["data"]] == [friendship_id]

        accepted = await client.post(
            "/friends",
            json={"action": "accept", "friendship_id": friendship_id},
            headers=auth(users.bob),
        )
        assert accepted.status_code == 200
        assert accepted.json()["data"]["status"] == "accepted"

        friends = await client.post("/friends", json={"action": "list"}, headers=auth(users.alice))
        body = friends.json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["user"]["nickname"] == "bob"

    @pytest.mark.integration
    async def test_unknown_action_is_bad_request(self, client, users):
        response = await client.post(
            "/friends", json={"action": "poke", "target_user_id": str(users.bob)},
            headers=auth(users.alice),
        )
        assert response.status_code == 400

    @pytest.mark.integration
    async def test_wrong_side_accept_forbidden(self, client, users):
        sent = await client.post(
            "/friends",
            json={"action": "request", "target_user_id": str(users.bob)},
            headers=auth(users.alice),
        )
        response = await client.post(
            "/friends",
            json={"action": "accept", "friendship_id": sent.json()["data"]["id"]},
            headers=auth(users.alice),
        )
        assert response.status_code == 403


class TestProfiles:

    @pytest.mark.integration
    async def test_me_and_search(self, client, users):
        me = await client.get("/profiles/me", headers=auth(users.alice))
        assert me.json()["data"]["nickname"] == "alice"

        short = await client.get("/profiles", params={"search": "b"}, headers=auth(users.alice))
        assert short.status_code == 400

        found = await client.get("/profiles", params={"search": "CAR"}, headers=auth(users.alice))
        assert [p["nickname"] for p in found.json()["data"]] == ["carol"]

    @pytest.mark.integration
    async def test_update_taken_nickname_conflicts(self, client, users):
        response = await client.put(
            "/profiles/me", json={"nickname": "bob"}, headers=auth(users.alice)
        )
        assert response.status_code == 409
        assert response.json() == {"error": "nickname is already taken"}
