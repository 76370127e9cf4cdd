"""
Sleeping Backend: API Integration Tests
========================================

What:  End-to-end HTTP tests through the FastAPI app (HTTPX AsyncClient).
How:   The `client` fixture points the database and media dependencies at
       per-test fixtures; authentication uses real signed tokens.

What we test:
    ✅ Register → login → authenticated calls
    ✅ Error bodies: {"error": <code>, "message": ...} with the right status
    ✅ Shop purchase over HTTP, including insufficient_balance
    ✅ Follow / block, feed upload and likes, staff-only grants
    ✅ Health check and request ID header
"""

import pytest

from conftest import TEST_PASSWORD, auth_headers, fetch_account


class TestAuthAPI:

    @pytest.mark.asyncio
    async def test_register_and_login(self, client):
        response = await client.post(
            "/auth/register",
            json={"username": "luna", "email": "Luna@Sleeping.test", "password": "night-owl"},
        )
        assert response.status_code == 201
        user = response.json()["user"]
        assert user["email"] == "luna@sleeping.test"
        assert user["balance"] == 1000
        assert "password_hash" not in user

        response = await client.post(
            "/auth/login", json={"email": "luna@sleeping.test", "password": "night-owl"}
        )
        assert response.status_code == 200
        token = response.json()["token"]

        response = await client.post(
            "/users/me/xp", json={"amount": 5}, headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200
        assert response.json()["xp"] == 5

    @pytest.mark.asyncio
    async def test_duplicate_registration_is_409(self, client, make_account):
        await make_account("luna")

        response = await client.post(
            "/auth/register",
            json={"username": "luna", "email": "fresh@sleeping.test", "password": "night-owl"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_credential"

    @pytest.mark.asyncio
    async def test_wrong_password_is_401(self, client, make_account):
        await make_account("luna")

        response = await client.post(
            "/auth/login", json={"email": "luna@sleeping.test", "password": "nope"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_login_with_seeded_password(self, client, make_account):
        await make_account("luna")

        response = await client.post(
            "/auth/login", json={"email": "luna@sleeping.test", "password": TEST_PASSWORD}
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, client):
        response = await client.post("/users/me/xp", json={"amount": 5})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_bad_username_is_422(self, client):
        response = await client.post(
            "/auth/register",
            json={"username": "a b", "email": "x@sleeping.test", "password": "night-owl"},
        )

        assert response.status_code == 422


class TestShopAPI:

    @pytest.mark.asyncio
    async def test_catalog_and_purchase(self, client, session_factory, make_account, make_item):
        account_id = await make_account(balance=1000)
        item_id = await make_item(name="Pillow", price=300)

        catalog = await client.get("/shop")
        assert [i["name"] for i in catalog.json()] == ["Pillow"]

        response = await client.post("/shop/buy", json={"item_id": item_id}, headers=auth_headers(account_id))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["balance"] == 700
        assert (await fetch_account(session_factory, account_id)).balance == 700

        inventory = await client.get(f"/users/{account_id}/inventory")
        assert [i["id"] for i in inventory.json()["items"]] == [item_id]

        history = await client.get("/users/me/transactions", headers=auth_headers(account_id))
        assert history.json()["entries"][0]["delta"] == -300

    @pytest.mark.asyncio
    async def test_insufficient_balance_over_http(self, client, session_factory, make_account, make_item):
        account_id = await make_account(balance=100)
        item_id = await make_item(price=300)

        response = await client.post("/shop/buy", json={"item_id": item_id}, headers=auth_headers(account_id))

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "insufficient_balance"
        assert body["details"] == {"balance": 100, "price": 300}
        assert (await fetch_account(session_factory, account_id)).balance == 100

    @pytest.mark.asyncio
    async def test_missing_item_is_404(self, client, make_account):
        account_id = await make_account()

        response = await client.post("/shop/buy", json={"item_id": 999}, headers=auth_headers(account_id))

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_grant_requires_staff(self, client, make_account):
        user = await make_account("luna")
        staff = await make_account("mod", role="staff")

        denied = await client.post(f"/users/{user}/grant", json={"amount": 50}, headers=auth_headers(user))
        granted = await client.post(f"/users/{user}/grant", json={"amount": 50}, headers=auth_headers(staff))

        assert denied.status_code == 403
        assert granted.status_code == 200
        assert granted.json()["balance"] == 1050


class TestSocialAPI:

    @pytest.mark.asyncio
    async def test_follow_then_block(self, client, make_account):
        luna = await make_account("luna")
        sol = await make_account("sol")

        response = await client.post(f"/users/{sol}/follow", headers=auth_headers(luna))
        assert response.status_code == 200
        assert response.json() == {"success": True}

        profile = await client.get(f"/users/{sol}/profile")
        assert profile.json()["followers"] == 1

        contacts = await client.get(f"/users/{luna}/contacts")
        assert [c["username"] for c in contacts.json()["contacts"]] == ["sol"]

        await client.post(f"/users/{luna}/block", headers=auth_headers(sol))
        profile = await client.get(f"/users/{sol}/profile")
        assert profile.json()["followers"] == 0

        response = await client.post(f"/users/{sol}/follow", headers=auth_headers(luna))
        assert response.status_code == 400
        assert response.json()["error"] == "blocked"

    @pytest.mark.asyncio
    async def test_profile_of_missing_account(self, client):
        response = await client.get("/users/4242/profile")

        assert response.status_code == 404


class TestFeedAPI:

    @pytest.mark.asyncio
    async def test_upload_like_and_comment(self, client, make_account, media_storage):
        author = await make_account("luna")
        fan = await make_account("sol")

        response = await client.post(
            "/posts/upload",
            files={"video": ("clip.mp4", b"\x00\x00video", "video/mp4")},
            data={"title": "sonho", "description": "#AuraGold"},
            headers=auth_headers(author),
        )
        assert response.status_code == 201
        post = response.json()
        assert post["video_url"] == "https://cdn.test/posts/videos/1.mp4"
        assert post["thumbnail_url"] == "https://cdn.test/posts/videos/1.jpg"
        assert len(media_storage.uploads) == 1

        like = await client.post(f"/posts/{post['id']}/like", headers=auth_headers(fan))
        assert like.json() == {"success": True, "liked": True, "likes": 1}

        feed = await client.get("/posts", params={"viewer_id": fan})
        assert feed.json()["posts"][0]["is_liked"] is True

        comment = await client.post(
            f"/posts/{post['id']}/comments", json={"content": "lindo"}, headers=auth_headers(fan)
        )
        assert comment.status_code == 201
        comments = await client.get(f"/posts/{post['id']}/comments")
        assert [c["username"] for c in comments.json()] == ["sol"]

        event = await client.get("/events/AuraGold")
        assert [p["id"] for p in event.json()["posts"]] == [post["id"]]

    @pytest.mark.asyncio
    async def test_upload_without_video_is_400(self, client, make_account, media_storage):
        author = await make_account()

        response = await client.post("/posts/upload", data={"title": "x"}, headers=auth_headers(author))

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert media_storage.uploads == []

    @pytest.mark.asyncio
    async def test_storage_failure_is_502(self, client, make_account, media_storage):
        author = await make_account()
        media_storage.fail = True

        response = await client.post(
            "/posts/upload",
            files={"video": ("clip.mp4", b"video", "video/mp4")},
            headers=auth_headers(author),
        )

        assert response.status_code == 502
        assert response.json()["error"] == "media_upload_failed"


class TestHealthAPI:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["realtime_connections"] == 0

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
