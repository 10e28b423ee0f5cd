"""
Pulseo - Authentication API Tests

Register, login, refresh rotation, logout and the current-user endpoint.
"""

from unittest.mock import AsyncMock

import pytest

from pulseo.services.user import UserStore
from tests.conftest import STRONG_PASSWORD, login, post_with_cookies, register


def set_cookie_headers(response, name):
    return [h for h in response.headers.get_list("set-cookie") if h.startswith(f"{name}=")]


class TestRegister:
    """Tests for POST /api/auth/register."""

    def test_register_success(self, client):
        """Successful registration returns the public user and starts a session."""
        response = register(client)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        user = body["data"]["user"]
        assert set(user) == {"id", "username", "email"}
        assert user["username"] == "alice"
        assert user["email"] == "alice@x.com"
        assert response.cookies.get("pulseo_access")
        assert response.cookies.get("pulseo_refresh")

    def test_cookie_attributes(self, client):
        response = register(client)

        [access] = set_cookie_headers(response, "pulseo_access")
        [refresh] = set_cookie_headers(response, "pulseo_refresh")
        assert "HttpOnly" in access and "HttpOnly" in refresh
        assert "samesite=lax" in access.lower() and "samesite=lax" in refresh.lower()
        assert "Path=/;" in access or access.endswith("Path=/")
        assert "Path=/api/auth" in refresh
        assert "Max-Age=3600" in access
        assert "Max-Age=2592000" in refresh
        # Not production, so not Secure
        assert "Secure" not in access

    def test_email_is_stored_lowercase(self, client):
        response = register(client, email="Alice@X.com")
        assert response.json()["data"]["user"]["email"] == "alice@x.com"

    def test_duplicate_username(self, client):
        register(client)
        response = register(client, email="other@x.com")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "USERNAME_TAKEN"

    def test_duplicate_username_ignores_case(self, client):
        register(client)
        response = register(client, username="ALICE", email="other@x.com")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "USERNAME_TAKEN"

    def test_duplicate_email_ignores_case(self, client):
        register(client)
        response = register(client, username="alice2", email="ALICE@X.COM")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "EMAIL_TAKEN"

    def test_constraint_decides_when_pre_check_misses(self, client, monkeypatch):
        """A concurrent registration slipping past the lookups still gets a 409."""
        register(client)
        monkeypatch.setattr(UserStore, "find_by_username", AsyncMock(return_value=None))
        monkeypatch.setattr(UserStore, "find_by_email", AsyncMock(return_value=None))

        response = register(client, email="other@x.com")
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "USERNAME_TAKEN"

        response = register(client, username="alice2")
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "EMAIL_TAKEN"

    @pytest.mark.parametrize(
        "payload,code",
        [
            ({"username": "ab", "email": "a@x.com", "password": STRONG_PASSWORD}, "INVALID_USERNAME"),
            ({"username": "alice", "email": "nope", "password": STRONG_PASSWORD}, "INVALID_EMAIL"),
            ({"username": "alice", "email": "a@x.com", "password": "weak"}, "WEAK_PASSWORD"),
            ({"email": "a@x.com", "password": STRONG_PASSWORD}, "INVALID_USERNAME"),
        ],
    )
    def test_validation_codes(self, client, payload, code):
        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == code
        assert "pulseo_access" not in response.cookies

    def test_missing_body(self, client):
        response = client.post("/api/auth/register")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestLogin:
    """Tests for POST /api/auth/login."""

    def test_login_success(self, client, signed_in):
        client.cookies.clear()
        response = login(client)

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == signed_in["id"]
        assert response.cookies.get("pulseo_access")
        assert response.cookies.get("pulseo_refresh")

    def test_login_email_ignores_case(self, client, signed_in):
        response = login(client, email="ALICE@x.com")
        assert response.status_code == 200

    def test_wrong_password_and_unknown_email_look_the_same(self, client, signed_in):
        wrong_password = login(client, password="Wr0ng!Passw0rd12")
        unknown_email = login(client, email="nobody@x.com")

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["error"] == {
            "code": "INVALID_CREDENTIALS",
            "message": "Invalid email or password",
        }

    @pytest.mark.parametrize("payload", [{}, {"email": "alice@x.com"}, {"email": 1, "password": 2}, [1, 2]])
    def test_malformed_input(self, client, signed_in, payload):
        response = client.post("/api/auth/login", json=payload)
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"

    @pytest.mark.parametrize("content", [b"{not json", b"", b"\xff\xfe"])
    def test_unparseable_body_looks_like_wrong_password(self, client, signed_in, content):
        """A body that is not JSON at all is still just invalid credentials."""
        wrong_password = login(client, password="Wr0ng!Passw0rd12")

        response = client.post(
            "/api/auth/login",
            content=content,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 401
        assert response.json() == wrong_password.json()
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"

    def test_each_login_adds_a_session(self, client, signed_in):
        first = login(client).cookies.get("pulseo_refresh")
        second = login(client).cookies.get("pulseo_refresh")
        assert first != second

        # Both sessions stay usable
        assert post_with_cookies(client, "/api/auth/refresh", pulseo_refresh=first).status_code == 200
        assert post_with_cookies(client, "/api/auth/refresh", pulseo_refresh=second).status_code == 200


class TestRefresh:
    """Tests for POST /api/auth/refresh."""

    def test_rotation(self, client, signed_in):
        old_refresh = client.cookies.get("pulseo_refresh")

        response = client.post("/api/auth/refresh")

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == signed_in["id"]
        new_refresh = response.cookies.get("pulseo_refresh")
        assert new_refresh and new_refresh != old_refresh
        assert response.cookies.get("pulseo_access")

    def test_rotated_token_cannot_be_reused(self, client, signed_in):
        old_refresh = client.cookies.get("pulseo_refresh")
        assert client.post("/api/auth/refresh").status_code == 200

        response = post_with_cookies(client, "/api/auth/refresh", pulseo_refresh=old_refresh)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_REFRESH_TOKEN"

    def test_reuse_with_access_token_revokes_all_sessions(self, client, signed_in):
        old_refresh = client.cookies.get("pulseo_refresh")
        rotated = client.post("/api/auth/refresh")
        new_refresh = rotated.cookies.get("pulseo_refresh")
        access = rotated.cookies.get("pulseo_access")

        response = post_with_cookies(
            client, "/api/auth/refresh", pulseo_refresh=old_refresh, pulseo_access=access
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "TOKEN_REUSE_DETECTED"
        assert set_cookie_headers(response, "pulseo_access")
        assert set_cookie_headers(response, "pulseo_refresh")

        # The legitimate, freshly rotated token was revoked too
        response = post_with_cookies(client, "/api/auth/refresh", pulseo_refresh=new_refresh)
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_REFRESH_TOKEN"

    def test_missing_cookie(self, client):
        response = client.post("/api/auth/refresh")

        assert response.status_code == 401
        assert response.json()["error"] == {
            "code": "INVALID_REFRESH_TOKEN",
            "message": "Refresh token is missing",
        }

    def test_unknown_token(self, client, signed_in):
        response = post_with_cookies(client, "/api/auth/refresh", pulseo_refresh="f" * 96)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_REFRESH_TOKEN"
        assert not set_cookie_headers(response, "pulseo_refresh")


class TestLogout:
    """Tests for POST /api/auth/logout."""

    def test_logout_revokes_refresh_token(self, client, signed_in):
        refresh = client.cookies.get("pulseo_refresh")

        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": None}
        assert set_cookie_headers(response, "pulseo_access")
        assert set_cookie_headers(response, "pulseo_refresh")

        response = post_with_cookies(client, "/api/auth/refresh", pulseo_refresh=refresh)
        assert response.status_code == 401

    def test_logout_without_session(self, client):
        response = client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_logout_with_unknown_token(self, client):
        response = post_with_cookies(client, "/api/auth/logout", pulseo_refresh="nope")
        assert response.status_code == 200


class TestMe:
    """Tests for GET /api/auth/me."""

    def test_me(self, client, signed_in):
        response = client.get("/api/auth/me")

        assert response.status_code == 200
        user = response.json()["data"]["user"]
        assert user["id"] == signed_in["id"]
        assert user["username"] == "alice"
        assert user["created_at"]
        assert "password_hash" not in user

    def test_me_without_cookie(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_me_with_garbage_cookie(self, client):
        client.cookies.clear()
        response = client.get("/api/auth/me", headers={"Cookie": "pulseo_access=garbage"})
        assert response.status_code == 401
