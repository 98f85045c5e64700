"""
Tests for authentication and the user profile

- POST /auth/register, POST /auth/login, GET /auth/me
- POST /auth/forgot-password, POST /auth/reset-password/{token}
- PUT /users/me
- Rate limiter counting in memory
- GET / and /health with the security headers middleware
"""

from datetime import datetime, timedelta

import pytest

from garagehub.models import Shop, User
from garagehub.rate_limiter import check_rate_limit
from garagehub.routes import auth as auth_routes
from garagehub.security_utils import hash_token, verify_jwt_token

from .conftest import TEST_PASSWORD, auth_headers


class TestRegister:
    def test_owner_registration_returns_token(self, client):
        response = client.post(
            "/auth/register",
            json={"name": "Carla", "email": "Carla@Example.com", "password": "brakepads42"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "carla@example.com"
        assert body["user"]["role"] == "OWNER"
        assert body["shop_id"] is None
        payload = verify_jwt_token(body["token"])
        assert payload["sub"] == str(body["user"]["id"])
        assert payload["role"] == "OWNER"

    def test_shop_registration_creates_shop(self, client, db):
        response = client.post(
            "/auth/register",
            json={"name": "Dave", "email": "dave@example.com", "password": "torque2024", "role": "SHOP"},
        )

        assert response.status_code == 201
        shop = db.query(Shop).filter(Shop.id == response.json()["shop_id"]).one()
        assert shop.name == "Dave's Shop"
        assert shop.verified is False

    def test_admin_cannot_self_register(self, client):
        response = client.post(
            "/auth/register",
            json={"name": "Eve", "email": "eve@example.com", "password": "rootpass99", "role": "ADMIN"},
        )
        assert response.status_code == 422

    def test_duplicate_email(self, client, owner):
        response = client.post(
            "/auth/register",
            json={"name": "Alice Again", "email": owner.email, "password": "another123"},
        )
        assert response.status_code == 409

    def test_weak_password(self, client):
        response = client.post(
            "/auth/register", json={"name": "Frank", "email": "frank@example.com", "password": "short"}
        )
        assert response.status_code == 400
        assert "feedback" in response.json()["detail"]


class TestLogin:
    def test_login(self, client, shop):
        response = client.post("/auth/login", json={"email": shop.user.email, "password": TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json()["shop_id"] == shop.id

    def test_wrong_password(self, client, owner):
        response = client.post("/auth/login", json={"email": owner.email, "password": "not-the-password1"})
        assert response.status_code == 401

    def test_unknown_email(self, client):
        response = client.post("/auth/login", json={"email": "ghost@example.com", "password": TEST_PASSWORD})
        assert response.status_code == 401


class TestCurrentUser:
    def test_me(self, client, owner):
        response = client.get("/auth/me", headers=auth_headers(owner))
        assert response.status_code == 200
        assert response.json()["id"] == owner.id

    def test_missing_token(self, client):
        assert client.get("/auth/me").status_code in (401, 403)

    def test_garbage_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_update_profile(self, client, owner):
        response = client.put(
            "/users/me", json={"name": "Alice D.", "phone": "(555) 123-4567"}, headers=auth_headers(owner)
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Alice D."
        assert response.json()["phone"] == "+15551234567"


class TestRateLimiter:
    def test_memory_window_blocks_after_limit(self):
        key = "test:memory-window"
        results = [check_rate_limit(key, limit=2, window_seconds=60, client=None)[0] for _ in range(3)]
        assert results == [True, True, False]


class TestApplication:
    def test_root_carries_security_headers(self, client):
        response = client.get("/")

        assert response.json() == {"message": "GarageHub API is running"}
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Cache-Control"].startswith("no-store")

    def test_health_is_excluded_from_headers(self, client):
        response = client.get("/health")

        assert response.json() == {"status": "healthy"}
        assert "X-Frame-Options" not in response.headers


class TestPasswordReset:
    @pytest.fixture
    def reset_token(self, monkeypatch):
        monkeypatch.setattr(auth_routes, "generate_secure_token", lambda length=32: "known-reset-token")
        return "known-reset-token"

    def test_unknown_email_gets_same_answer(self, client, owner):
        known = client.post("/auth/forgot-password", json={"email": owner.email})
        unknown = client.post("/auth/forgot-password", json={"email": "ghost@example.com"})

        assert known.status_code == 200
        assert known.json() == unknown.json()

    def test_only_digest_is_stored(self, client, db, owner, reset_token):
        client.post("/auth/forgot-password", json={"email": owner.email})

        db.expire_all()
        stored = db.get(User, owner.id)
        assert stored.reset_token_hash == hash_token(reset_token)
        assert stored.reset_token_expires_at > datetime.utcnow()

    def test_reset_changes_password_once(self, client, owner, reset_token):
        client.post("/auth/forgot-password", json={"email": owner.email.upper()})

        response = client.post(f"/auth/reset-password/{reset_token}", json={"password": "newbrakes2025"})
        reused = client.post(f"/auth/reset-password/{reset_token}", json={"password": "otherpass2025"})

        assert response.status_code == 200
        assert reused.status_code == 400
        assert client.post("/auth/login", json={"email": owner.email, "password": "newbrakes2025"}).status_code == 200
        assert client.post("/auth/login", json={"email": owner.email, "password": TEST_PASSWORD}).status_code == 401

    def test_expired_token(self, client, db, owner, reset_token):
        client.post("/auth/forgot-password", json={"email": owner.email})
        stored = db.get(User, owner.id)
        db.refresh(stored)
        stored.reset_token_expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.commit()

        response = client.post(f"/auth/reset-password/{reset_token}", json={"password": "newbrakes2025"})
        assert response.status_code == 400

    def test_weak_new_password_keeps_token(self, client, owner, reset_token):
        client.post("/auth/forgot-password", json={"email": owner.email})

        weak = client.post(f"/auth/reset-password/{reset_token}", json={"password": "short"})
        strong = client.post(f"/auth/reset-password/{reset_token}", json={"password": "newbrakes2025"})

        assert weak.status_code == 400
        assert strong.status_code == 200

    def test_unknown_token(self, client):
        response = client.post("/auth/reset-password/not-a-token", json={"password": "newbrakes2025"})
        assert response.status_code == 400
