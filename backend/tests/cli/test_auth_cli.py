"""Tests for the ``flask auth`` command group."""

from __future__ import annotations

from datetime import timedelta

import pytest
from authcore.core.extensions import db


@pytest.fixture()
def runner(app, auth):
    return app.test_cli_runner()


def test_init_db(runner, monkeypatch):
    created = []
    monkeypatch.setattr(db, "create_all", lambda: created.append(True))

    result = runner.invoke(args=["auth", "init-db"])

    assert result.exit_code == 0
    assert created == [True]
    assert "Database schema ready." in result.output


def test_unlock_clears_lock(runner, auth):
    for _ in range(5):
        auth.attempts.increment_attempts("alice")
    assert auth.attempts.is_locked("alice")

    result = runner.invoke(args=["auth", "unlock", "alice"])

    assert result.exit_code == 0
    assert "alice: unlocked" in result.output
    assert not auth.attempts.is_locked("alice")
    assert auth.attempts.get_attempts("alice") == 0


def test_unlock_when_not_locked(runner):
    result = runner.invoke(args=["auth", "unlock", "bob"])
    assert "not locked" in result.output


def test_sessions_and_revoke_all(runner, auth):
    """Tracked tokens are listed, then revoked in bulk."""
    for jti in ("jti-a", "jti-b"):
        auth.revocations.track_user_token("u-1", jti, timedelta(minutes=15))

    listed = runner.invoke(args=["auth", "sessions", "u-1"])
    assert "2 active token(s) for u-1" in listed.output
    assert "jti-a" in listed.output

    revoked = runner.invoke(args=["auth", "revoke-all", "u-1"])
    assert "Revoked 2 token(s) for u-1." in revoked.output
    assert auth.revocations.is_blacklisted("jti-a")


def test_unrevoke(runner, auth):
    auth.revocations.revoke("jti-x", timedelta(minutes=15))

    result = runner.invoke(args=["auth", "unrevoke", "jti-x"])

    assert result.exit_code == 0
    assert not auth.revocations.is_blacklisted("jti-x")
