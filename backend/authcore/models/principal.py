"""Principal table: the identities the auth core authenticates."""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from authcore.core.extensions import db
from authcore.services._shared.policies.roles import DEFAULT_ROLE

from .base import ReprMixin, TimestampMixin, UUIDPKMixin


class PrincipalRecord(UUIDPKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Persisted authentication identity.

    Fields
    ------
    username : str
        Login handle. Unique, trimmed.
    email : str
        Contact address. Unique, stored normalized (lowercase, trimmed).
    password_digest : str
        Output of the credential store; never the plaintext.
    role : str
        Role name, ``customer`` for self-registered principals.
    is_active : bool
        Inactive principals cannot log in or refresh.
    is_email_verified : bool
        Flipped once by the verify-email flow.
    """

    __tablename__ = "principals"

    # Columns
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_digest: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=DEFAULT_ROLE.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Constraints & indexes
    __table_args__ = (
        UniqueConstraint("username", name="uq_principals_username"),
        UniqueConstraint("email", name="uq_principals_email"),
        Index("ix_principals_email", "email"),
    )

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :param key: Field name (``email``).
        :type key: str
        :param value: Email to normalize.
        :type value: str
        :returns: Normalized email (lowercased/trimmed).
        :rtype: str
        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        """
        Normalize and validate username.

        :raises ValueError: If username is missing or only whitespace.
        """
        if not isinstance(value, str):
            raise ValueError("Username is required.")
        v = value.strip()
        if not v:
            raise ValueError("Username is required.")
        return v
