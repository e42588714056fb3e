"""Role hierarchy used to gate endpoints by a minimum role."""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Known roles, lowest privilege first."""

    CUSTOMER = "customer"
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"


# Public self-registration always lands here
DEFAULT_ROLE = Role.CUSTOMER

ROLE_LEVELS: dict[str, int] = {
    Role.CUSTOMER: 1,
    Role.STAFF: 2,
    Role.MANAGER: 3,
    Role.ADMIN: 4,
}


def role_level(role: str | None) -> int:
    """Return the numeric level of ``role`` (``0`` for unknown roles)."""
    if role is None:
        return 0
    return ROLE_LEVELS.get(role, 0)


def has_min_role(role: str | None, required: str) -> bool:
    """
    Return ``True`` when ``role`` is at least as privileged as ``required``.

    :param role: Role claimed by the token.
    :type role: str | None
    :param required: Minimum role accepted.
    :type required: str
    :raises ValueError: If ``required`` is not a known role.
    """
    needed = role_level(required)
    if needed == 0:
        raise ValueError(f"Unknown role: {required!r}")
    return role_level(role) >= needed
