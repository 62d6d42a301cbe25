"""Tests for login, logout and session status."""

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backoffice.auth.cookies import decode_session_token
from backoffice.auth.permissions import Permissions
from backoffice.auth.store import Principal, PrincipalStore
from backoffice.db.models import User

USER_PASSWORD = "alicepassword123"


class TestLogin:
    """Tests for user login."""

    def test_login_success(self, client: TestClient, test_user: Principal, login):
        """Test successful login sets the session cookie."""
        response = login(client, "alice", USER_PASSWORD)

        assert response.status_code == 200
        assert response.json() == {"username": "alice", "permissions": ["ORDER_READ"]}
        token = decode_session_token(response.cookies["auth_info"])
        assert token.username == "alice"
        assert token.permissions == Permissions.ORDER_READ
        assert token.expires_at is None

    def test_login_cookie_flags(self, client: TestClient, test_user: Principal, login):
        """Test the cookie is HTTP-only and SameSite=Lax."""
        header = login(client, "alice", USER_PASSWORD).headers["set-cookie"]

        assert "HttpOnly" in header
        assert "SameSite=lax" in header

    def test_login_with_expiry(self, client: TestClient, test_user: Principal, login):
        """Test expires_in sets an absolute expiry."""
        response = login(client, "alice", USER_PASSWORD, expires_in=3600)

        assert response.status_code == 200
        assert "expires=" in response.headers["set-cookie"]
        assert decode_session_token(response.cookies["auth_info"]).expires_at is not None

    def test_login_records_last_login(
        self, client: TestClient, test_user: Principal, db: Session, login
    ):
        """Test last_login is stamped."""
        login(client, "alice", USER_PASSWORD)

        user = db.query(User).filter(User.username == "alice").one()
        assert user.last_login is not None

    def test_login_wrong_password(self, client: TestClient, test_user: Principal, login):
        """Test login fails with wrong password."""
        response = login(client, "alice", "wrongpassword")

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid username or password"}
        assert "set-cookie" not in response.headers

    def test_unknown_user_indistinguishable_from_wrong_password(
        self, client: TestClient, test_user: Principal, login
    ):
        """Test unknown usernames and wrong passwords get identical responses."""
        wrong_password = login(client, "alice", "wrongpassword")
        unknown_user = login(client, "mallory", "wrongpassword")

        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json() == unknown_user.json()

    def test_login_username_is_exact(self, client: TestClient, test_user: Principal, login):
        """Test the username must match exactly."""
        assert login(client, "ALICE", USER_PASSWORD).status_code == 401

    def test_login_rejects_non_positive_expiry(
        self, client: TestClient, test_user: Principal, login
    ):
        """Test expires_in must be positive."""
        response = login(client, "alice", USER_PASSWORD, expires_in=0)

        assert response.status_code == 422
        assert response.json() == {"error": "Invalid request body"}

    def test_validation_error_does_not_echo_password(self, client: TestClient):
        """Test a bad body never reflects its content."""
        response = client.post(
            "/api/auth/login",
            json={"password": "supersecretvalue", "expires_in": "soon"},
        )

        assert response.status_code == 422
        assert "supersecretvalue" not in response.text

    def test_concurrent_sessions_are_independent(
        self, client: TestClient, store: PrincipalStore, login, cookie_header
    ):
        """Test two logins give distinct sessions and logging one out keeps the other."""
        store.create_principal("carol", "carolpassword123", Permissions.ORDER_READ)

        first = login(client, "carol", "carolpassword123").cookies["auth_info"]
        client.cookies.clear()
        second = login(client, "carol", "carolpassword123").cookies["auth_info"]
        client.cookies.clear()
        assert first != second

        assert client.post("/api/auth/logout", headers=cookie_header(first)).status_code == 200
        client.cookies.clear()

        response = client.get("/api/auth/status", headers=cookie_header(second))
        assert response.status_code == 200
        assert response.json()["username"] == "carol"


class TestLogout:
    """Tests for logout."""

    def test_logout_clears_cookie(self, authenticated_client: TestClient):
        """Test logout removes the cookie."""
        response = authenticated_client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out"}
        assert "Max-Age=0" in response.headers["set-cookie"]
        assert authenticated_client.get("/api/auth/status").status_code == 401

    def test_logout_without_session(self, client: TestClient):
        """Test logout without cookie is unauthorized."""
        response = client.post("/api/auth/logout")

        assert response.status_code == 401
        assert "set-cookie" not in response.headers

    def test_logout_with_corrupt_cookie(self, client: TestClient, cookie_header):
        """Test logout with a broken cookie is unauthorized and clears it."""
        response = client.post("/api/auth/logout", headers=cookie_header("garbage"))

        assert response.status_code == 401
        assert "Max-Age=0" in response.headers["set-cookie"]

    def test_logout_does_not_consult_store(
        self, client: TestClient, test_user: Principal, store: PrincipalStore, login
    ):
        """Test logout succeeds even when the user is already gone."""
        login(client, "alice", USER_PASSWORD)
        store.delete_principal("alice")

        assert client.post("/api/auth/logout").status_code == 200


class TestStatus:
    """Tests for the session status endpoint."""

    def test_status(self, authenticated_client: TestClient):
        """Test status returns the user and permission names."""
        response = authenticated_client.get("/api/auth/status")

        assert response.status_code == 200
        assert response.json() == {"username": "alice", "permissions": ["ORDER_READ"]}

    def test_status_unauthenticated(self, client: TestClient):
        """Test status without session fails."""
        response = client.get("/api/auth/status")

        assert response.status_code == 401


class TestChangePassword:
    """Tests for changing the own password."""

    def test_change_password(self, authenticated_client: TestClient, login):
        """Test the new password works and the old one stops working."""
        response = authenticated_client.post(
            "/api/auth/change_password",
            json={
                "current_password": USER_PASSWORD,
                "new_password": "anotherpassword456",
                "new_password_confirm": "anotherpassword456",
            },
        )

        assert response.status_code == 200
        assert login(authenticated_client, "alice", USER_PASSWORD).status_code == 401
        assert login(authenticated_client, "alice", "anotherpassword456").status_code == 200

    def test_change_password_wrong_current(self, authenticated_client: TestClient):
        """Test the current password is checked."""
        response = authenticated_client.post(
            "/api/auth/change_password",
            json={
                "current_password": "notmypassword",
                "new_password": "anotherpassword456",
                "new_password_confirm": "anotherpassword456",
            },
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Current password is incorrect"}

    def test_change_password_mismatch(self, authenticated_client: TestClient):
        """Test the confirmation must match."""
        response = authenticated_client.post(
            "/api/auth/change_password",
            json={
                "current_password": USER_PASSWORD,
                "new_password": "anotherpassword456",
                "new_password_confirm": "different456",
            },
        )

        assert response.status_code == 422

    def test_change_password_requires_session(self, client: TestClient):
        """Test changing password needs a session."""
        response = client.post(
            "/api/auth/change_password",
            json={
                "current_password": "whatever",
                "new_password": "anotherpassword456",
                "new_password_confirm": "anotherpassword456",
            },
        )

        assert response.status_code == 401


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client: TestClient):
        """Test the health check needs no session."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
