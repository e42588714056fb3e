"""Principal value object shared by the service layer and its ports."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(slots=True)
class Principal:
    """
    Authenticated identity as seen by the auth core.

    :param id: Stable identifier (uuid4 string); the ``sub`` of every token.
    :type id: str
    :param username: Login handle, unique.
    :type username: str
    :param email: Contact address, unique, stored lowercased.
    :type email: str
    :param password_digest: Output of the credential store's ``hash``.
    :type password_digest: str
    :param role: Role name (see :mod:`authcore.services._shared.policies.roles`).
    :type role: str
    :param is_active: Inactive principals cannot log in or refresh.
    :type is_active: bool
    :param is_email_verified: Set once by the verify-email flow.
    :type is_email_verified: bool
    :param created_at: Creation instant (UTC).
    :type created_at: datetime | None
    """

    id: str
    username: str
    email: str
    password_digest: str
    role: str
    is_active: bool = True
    is_email_verified: bool = False
    created_at: datetime | None = None

    def mark_email_verified(self) -> Principal:
        """Return a copy flagged as verified."""
        return replace(self, is_email_verified=True)
