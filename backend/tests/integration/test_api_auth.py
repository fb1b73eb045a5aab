"""HTTP tests for registration, login, sessions and external sign-in."""

from __future__ import annotations

from fastapi.testclient import TestClient

from laundry.identity.fake import FakeIdentityProvider
from tests.api import (
    STAFF_PASSWORD,
    STUDENT_PASSWORD,
    AppFactory,
    csrf,
    login,
    place_order,
    register,
)


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.json()["auth_mode"] == "cookie"
        assert resp.headers["X-Request-ID"]

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        resp = client.get("/api/health", headers={"X-Request-ID": "req-42"})
        assert resp.headers["X-Request-ID"] == "req-42"


class TestRegisterAndLogin:
    def test_register_starts_a_session(self, client: TestClient) -> None:
        body = register(client)
        assert body["user"]["role"] == "student"
        assert "password_hash" not in body["user"]
        assert body["csrf_token"]
        assert "token" not in body
        assert client.cookies.get("laundry.sid")

        me = client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["user"]["email"] == "priya@campus.edu"

    def test_duplicate_email(self, client: TestClient) -> None:
        register(client)
        resp = client.post(
            "/api/auth/register",
            json={"name": "P", "email": "PRIYA@campus.edu", "password": STUDENT_PASSWORD},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "EMAIL_TAKEN"
        assert resp.json()["success"] is False

    def test_invalid_email(self, client: TestClient) -> None:
        resp = client.post(
            "/api/auth/register",
            json={"name": "P", "email": "nope", "password": STUDENT_PASSWORD},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    def test_malformed_body(self, client: TestClient) -> None:
        resp = client.post("/api/auth/register", json={"name": "P"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "REQUEST_INVALID"

    def test_login(self, client: TestClient) -> None:
        body = login(client, "desk@campus.edu", STAFF_PASSWORD)
        assert body["user"]["role"] == "laundry"
        assert client.get("/api/auth/me").json()["user"]["id"] == "staff-1"

    def test_bad_password_does_not_clear_session(self, client: TestClient) -> None:
        resp = client.post(
            "/api/auth/login",
            json={"email": "desk@campus.edu", "password": "wrong password"},
        )
        assert resp.status_code == 401
        assert resp.json() == {
            "success": False,
            "message": "Invalid email or password",
            "code": "INVALID_CREDENTIALS",
            "clear_session": False,
        }

    def test_lockout(self, client: TestClient) -> None:
        for _ in range(5):
            resp = client.post(
                "/api/auth/login",
                json={"email": "desk@campus.edu", "password": "wrong password"},
            )
            assert resp.status_code == 401
        resp = client.post(
            "/api/auth/login",
            json={"email": "desk@campus.edu", "password": STAFF_PASSWORD},
        )
        assert resp.status_code == 423
        assert resp.json()["code"] == "ACCOUNT_LOCKED"


class TestUnauthenticated:
    def test_me_does_not_ask_to_clear_session(self, client: TestClient) -> None:
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["clear_session"] is False

    def test_protected_route_asks_to_clear_session(self, client: TestClient) -> None:
        resp = client.get("/api/orders")
        assert resp.status_code == 401
        assert resp.json()["code"] == "UNAUTHORIZED"
        assert resp.json()["clear_session"] is True


class TestLogout:
    def test_logout_needs_no_csrf_token(self, client: TestClient) -> None:
        register(client)
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert client.get("/api/auth/me").status_code == 401

    def test_logout_revokes_token(self, client: TestClient) -> None:
        body = register(client)
        session_id = client.cookies.get("laundry.sid")
        client.post("/api/auth/logout")

        # Replaying the old cookie and token gets nowhere.
        client.cookies.set("laundry.sid", session_id)
        resp = client.post("/api/orders", json={"items": []}, headers=csrf(body))
        assert resp.status_code == 403
        assert resp.json()["code"] == "CSRF_INVALID"

    def test_logout_when_anonymous(self, client: TestClient) -> None:
        assert client.post("/api/auth/logout").status_code == 200


class TestProfile:
    def test_update_profile(self, client: TestClient) -> None:
        register(client)
        resp = client.put("/api/auth/profile", json={"room": "210"})
        assert resp.status_code == 200
        assert resp.json()["user"]["room"] == "210"
        assert resp.json()["user"]["hostel"] == "H4"

    def test_change_password(self, client: TestClient) -> None:
        register(client)
        resp = client.put(
            "/api/auth/change-password",
            json={"current_password": STUDENT_PASSWORD, "new_password": "new-secret-9"},
        )
        assert resp.status_code == 200
        # The fresh session keeps working.
        assert client.get("/api/auth/me").status_code == 200

        client.post("/api/auth/logout")
        bad = client.post(
            "/api/auth/login",
            json={"email": "priya@campus.edu", "password": STUDENT_PASSWORD},
        )
        assert bad.status_code == 401
        login(client, "priya@campus.edu", "new-secret-9")


class TestGoogleLogin:
    def test_first_login_creates_account(self, client: TestClient) -> None:
        resp = client.post("/api/auth/google", json={"credential": "google-priya"})
        assert resp.status_code == 201
        assert resp.json()["is_new_user"] is True
        assert client.get("/api/auth/me").json()["user"]["email"] == "priya@campus.edu"

    def test_returning_login(self, client: TestClient) -> None:
        client.post("/api/auth/google", json={"credential": "google-priya"})
        resp = client.post("/api/auth/google", json={"credential": "google-priya"})
        assert resp.status_code == 200
        assert resp.json()["is_new_user"] is False

    def test_rejected_credential(self, client: TestClient) -> None:
        resp = client.post("/api/auth/google", json={"credential": "forged"})
        assert resp.status_code == 401
        assert resp.json()["clear_session"] is False

    def test_upstream_down(
        self,
        client: TestClient,
        identity: FakeIdentityProvider,
    ) -> None:
        identity.unavailable = True
        resp = client.post("/api/auth/google", json={"credential": "google-priya"})
        assert resp.status_code == 503
        assert resp.json()["code"] == "UPSTREAM_UNAVAILABLE"


class TestBearerMode:
    def test_token_flow_without_csrf(self, app_factory: AppFactory) -> None:
        with TestClient(app_factory(auth_mode="bearer")) as client:
            body = register(client)
            assert "laundry.sid" not in client.cookies
            headers = {"Authorization": f"Bearer {body['token']}"}

            assert client.get("/api/auth/me", headers=headers).status_code == 200
            order = place_order(client, headers)
            assert order["status"] == "received"

            client.post("/api/auth/logout", headers=headers)
            assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_missing_token(self, app_factory: AppFactory) -> None:
        with TestClient(app_factory(auth_mode="bearer")) as client:
            resp = client.post("/api/orders", json={"items": [{"type": "shirt", "count": 1}]})
            assert resp.status_code == 401
