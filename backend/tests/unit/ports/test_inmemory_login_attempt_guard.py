"""Unit tests for InMemoryLoginAttemptGuard driven by a fake clock."""

from __future__ import annotations

from datetime import timedelta

import pytest
from authcore.services._shared.ports import InMemoryLoginAttemptGuard, identifier_key


@pytest.fixture()
def guard(clock):
    return InMemoryLoginAttemptGuard(
        max_attempts=5, lockout_duration=timedelta(minutes=15), clock=clock
    )


def test_identifier_key_is_fixed_size_and_trimmed():
    """Keys are SHA-256 hex digests of the trimmed, case-preserved identifier."""
    assert identifier_key(" Alice ") == identifier_key("Alice")
    assert identifier_key("Alice") != identifier_key("alice")
    assert len(identifier_key("x" * 10_000)) == 64


def test_clean_accumulating_locked(guard):
    """Counter climbs to ``max_attempts`` and then the identifier locks."""
    for expected in range(1, 5):
        assert guard.increment_attempts("alice") == expected
        assert not guard.is_locked("alice")

    assert guard.increment_attempts("alice") == 5
    assert guard.is_locked("alice")
    assert guard.get_remaining_lock_time("alice") == 900


def test_lock_expires(guard, clock):
    for _ in range(5):
        guard.increment_attempts("alice")

    clock.advance(600)
    assert guard.get_remaining_lock_time("alice") == 300

    clock.advance(301)
    assert not guard.is_locked("alice")
    assert guard.get_remaining_lock_time("alice") == 0


def test_counter_expires_with_window(clock):
    guard = InMemoryLoginAttemptGuard(
        max_attempts=5,
        lockout_duration=timedelta(minutes=15),
        attempt_window=timedelta(minutes=1),
        clock=clock,
    )
    guard.increment_attempts("alice")
    clock.advance(61)
    assert guard.get_attempts("alice") == 0


def test_reset(guard):
    for _ in range(5):
        guard.increment_attempts("alice")
    guard.reset_attempts("alice")
    assert guard.get_attempts("alice") == 0
    assert not guard.is_locked("alice")


def test_identifiers_are_independent(guard):
    for _ in range(5):
        guard.increment_attempts("alice")
    assert not guard.is_locked("bob")


def test_disabled_guard(clock):
    guard = InMemoryLoginAttemptGuard(max_attempts=1, enabled=False, clock=clock)
    assert guard.increment_attempts("alice") == 0
    assert not guard.is_locked("alice")
    assert guard.get_remaining_lock_time("alice") == 0
