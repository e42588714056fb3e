"""HTTP tests for the /api/v1/auth endpoints."""

from __future__ import annotations

import pytest
from authcore.services._shared.errors import StoreUnavailableError
from authcore.services._shared.ports import (
    InMemoryEmailVerificationLedger,
    RecordingEmailDispatcher,
)
from tests.helpers.http import API, assert_problem, json_headers

PASSWORD = "correct-horse-battery"


class UnreachableRevocations:
    """Revocation ledger whose store is down."""

    def is_blacklisted(self, jti: str) -> bool:
        raise StoreUnavailableError("is_blacklisted")


@pytest.fixture()
def mailer(auth):
    """Capture verification emails instead of logging them."""
    recording = RecordingEmailDispatcher()
    auth.service.mailer = recording
    return recording


def _register(client, username: str = "alice") -> dict:
    resp = client.post(
        f"{API}/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": PASSWORD},
        headers=json_headers(),
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _login(client, username: str = "alice", password: str = PASSWORD):
    return client.post(
        f"{API}/auth/login",
        json={"username": username, "password": password},
        headers=json_headers(),
    )


class TestRegisterAndLogin:
    def test_register_returns_pair_and_user(self, client, mailer):
        """Registration signs the principal in and mails a verification token."""
        body = _register(client)

        assert body["token_type"] == "Bearer"
        assert body["expires_in"] == 900
        assert body["access_token"] and body["refresh_token"]
        assert body["user"]["username"] == "alice"
        assert body["user"]["role"] == "customer"
        assert body["user"]["is_email_verified"] is False
        assert "password_digest" not in body["user"]
        assert mailer.last_token_for("alice@example.com")

    def test_register_duplicate_conflicts(self, client, mailer):
        _register(client)
        resp = client.post(
            f"{API}/auth/register",
            json={"username": "alice", "email": "new@example.com", "password": PASSWORD},
        )
        assert_problem(resp, 409, "conflict")

    def test_register_validation(self, client):
        resp = client.post(
            f"{API}/auth/register",
            json={"username": "al", "email": "not-an-email", "password": "short"},
        )
        body = assert_problem(resp, 422, "validation_error")
        assert set(body["details"]["errors"]) == {"username", "email", "password"}

    def test_login_success(self, client, mailer):
        registered = _register(client)

        resp = _login(client)

        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == registered["user"]["id"]

    def test_login_wrong_password(self, client, mailer):
        _register(client)
        assert_problem(_login(client, password="wrong-password"), 401, "invalid_credentials")

    def test_login_unknown_user_same_error(self, client):
        body = assert_problem(_login(client, username="ghost"), 401, "invalid_credentials")
        assert "ghost" not in body["detail"]

    def test_lockout_returns_423_with_retry_after(self, client, mailer):
        """After five failures even the right password is refused with Retry-After."""
        _register(client)
        for _ in range(5):
            assert _login(client, password="wrong-password").status_code == 401

        resp = _login(client)

        body = assert_problem(resp, 423, "account_locked")
        remaining = body["details"]["remaining_seconds"]
        assert 0 < remaining <= 900
        assert resp.headers["Retry-After"] == str(remaining)


class TestRefresh:
    def test_rotation_and_reuse(self, client, mailer):
        """A rotated refresh token is single-use; replay kills the new pair too."""
        first = _register(client)

        resp = client.post(
            f"{API}/auth/refresh",
            json={"refresh_token": first["refresh_token"], "access_token": first["access_token"]},
        )
        assert resp.status_code == 200
        second = resp.get_json()
        assert second["refresh_token"] != first["refresh_token"]

        # Old access token was revoked alongside the refresh token
        old = client.get(f"{API}/auth/me", headers=json_headers(first["access_token"]))
        assert_problem(old, 401, "unauthorized")

        replay = client.post(f"{API}/auth/refresh", json={"refresh_token": first["refresh_token"]})
        body = assert_problem(replay, 401, "invalid_token")
        assert body["detail"] == "Invalid or expired token"

        me = client.get(f"{API}/auth/me", headers=json_headers(second["access_token"]))
        assert_problem(me, 401, "unauthorized")

    def test_refresh_rejects_access_token(self, client, mailer):
        first = _register(client)
        resp = client.post(f"{API}/auth/refresh", json={"refresh_token": first["access_token"]})
        assert_problem(resp, 401, "invalid_token")

    def test_refresh_requires_token(self, client):
        assert_problem(client.post(f"{API}/auth/refresh", json={}), 422, "validation_error")


class TestProtectedEndpoints:
    def test_me(self, client, mailer):
        registered = _register(client)

        resp = client.get(f"{API}/auth/me", headers=json_headers(registered["access_token"]))

        assert resp.status_code == 200
        assert resp.get_json()["email"] == "alice@example.com"

    @pytest.mark.parametrize(
        "header", [None, "Basic abc", "Bearer ", "Bearer not-a-jwt"], ids=str
    )
    def test_missing_or_bad_header(self, client, header):
        headers = {"Authorization": header} if header else {}
        assert_problem(client.get(f"{API}/auth/me", headers=headers), 401, "unauthorized")

    def test_refresh_token_is_not_a_bearer(self, client, mailer):
        registered = _register(client)
        resp = client.get(f"{API}/auth/me", headers=json_headers(registered["refresh_token"]))
        assert_problem(resp, 401, "unauthorized")

    def test_logout_revokes_token(self, client, mailer):
        registered = _register(client)
        headers = json_headers(registered["access_token"])

        assert client.post(f"{API}/auth/logout", headers=headers).status_code == 204

        body = assert_problem(client.get(f"{API}/auth/me", headers=headers), 401, "unauthorized")
        assert body["detail"] == "Token has been revoked"

    def test_sessions_and_logout_all(self, client, mailer):
        """Every device is logged out and the live count drops to zero."""
        registered = _register(client)
        second = _login(client).get_json()
        headers = json_headers(second["access_token"])

        sessions = client.get(f"{API}/auth/sessions", headers=headers)
        assert sessions.get_json() == {"active_sessions": 4}

        resp = client.post(f"{API}/auth/logout-all", headers=headers)
        assert resp.get_json() == {"revoked_sessions": 4}

        for token in (registered["access_token"], second["access_token"]):
            me = client.get(f"{API}/auth/me", headers=json_headers(token))
            assert_problem(me, 401, "unauthorized")

    def test_gate_fails_closed_when_store_is_down(self, client, auth, mailer):
        """An unreachable revocation store yields 503, never admission."""
        registered = _register(client)
        auth.revocations = UnreachableRevocations()

        resp = client.get(f"{API}/auth/me", headers=json_headers(registered["access_token"]))

        assert_problem(resp, 503, "service_unavailable")


class TestEmailVerification:
    def test_verify_email(self, client, mailer):
        _register(client)
        token = mailer.last_token_for("alice@example.com")

        resp = client.post(f"{API}/auth/verify-email", json={"token": token})

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["message"] == "Email verified"
        assert body["user"]["is_email_verified"] is True

        again = client.post(f"{API}/auth/verify-email", json={"token": token})
        assert_problem(again, 400, "invalid_verification_token")

    def test_verify_email_unknown_token(self, client):
        resp = client.post(f"{API}/auth/verify-email", json={"token": "deadbeef"})
        assert_problem(resp, 400, "invalid_verification_token")

    def test_resend_within_cooldown(self, client, mailer):
        """Registration already started the cooldown, so an immediate resend is refused."""
        registered = _register(client)

        resp = client.post(
            f"{API}/auth/resend-verification", headers=json_headers(registered["access_token"])
        )

        body = assert_problem(resp, 429, "resend_cooldown")
        assert 0 < body["details"]["remaining_seconds"] <= 60
        assert "Retry-After" in resp.headers

    def test_resend_after_verification(self, client, mailer):
        registered = _register(client)
        client.post(
            f"{API}/auth/verify-email", json={"token": mailer.last_token_for("alice@example.com")}
        )

        resp = client.post(
            f"{API}/auth/resend-verification", headers=json_headers(registered["access_token"])
        )

        assert_problem(resp, 409, "already_verified")

    def test_resend_when_verification_disabled(self, client, auth, mailer):
        """The endpoint must not claim an email went out when none can be sent."""
        registered = _register(client)
        auth.service.verifications = InMemoryEmailVerificationLedger(enabled=False)

        resp = client.post(
            f"{API}/auth/resend-verification", headers=json_headers(registered["access_token"])
        )

        body = assert_problem(resp, 503, "verification_unavailable")
        assert body["detail"] == "Email verification service unavailable"
        assert len(mailer.sent) == 1


def test_unknown_route_is_problem_json(client):
    body = assert_problem(client.get(f"{API}/nope"), 404, "not_found")
    assert body["detail"] == f"Route '{API}/nope' not found"
