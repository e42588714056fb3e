"""Tests for the role hierarchy."""

import pytest
from authcore.services._shared.policies.roles import DEFAULT_ROLE, Role, has_min_role, role_level


def test_default_role_is_lowest():
    assert DEFAULT_ROLE is Role.CUSTOMER
    assert role_level(DEFAULT_ROLE) == min(role_level(r) for r in Role)


@pytest.mark.parametrize(
    ("role", "required", "expected"),
    [
        ("admin", "customer", True),
        ("manager", "manager", True),
        ("staff", "manager", False),
        ("customer", "staff", False),
        (None, "customer", False),
        ("superuser", "customer", False),
    ],
)
def test_has_min_role(role, required, expected):
    assert has_min_role(role, required) is expected


def test_unknown_required_role_rejected():
    with pytest.raises(ValueError):
        has_min_role("admin", "root")
