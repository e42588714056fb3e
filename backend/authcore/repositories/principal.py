"""Principal repository backed by the ``principals`` table."""

from __future__ import annotations

from collections.abc import Callable
from typing import cast

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from authcore.models.principal import PrincipalRecord
from authcore.services._shared.errors import ConflictError, violates
from authcore.services._shared.ports import PrincipalRepository
from authcore.services._shared.principal import Principal


class SQLAlchemyPrincipalRepository(PrincipalRepository):
    """Persistence-only repository mapping :class:`PrincipalRecord` rows to :class:`Principal`.

    It NEVER handles tokens or password hashing, only DB-level principal
    management.

    :param session_provider: Callable returning the session to use. It is
        resolved on every call so the repository can outlive a request
        while still using the request-scoped session.
    :type session_provider: Callable[[], Session]
    """

    def __init__(self, session_provider: Callable[[], Session]) -> None:
        self._session_provider = session_provider

    @property
    def session(self) -> Session:
        return self._session_provider()

    # ---------------------------- Mapping ----------------------------

    @staticmethod
    def _to_domain(row: PrincipalRecord) -> Principal:
        return Principal(
            id=row.id,
            username=row.username,
            email=row.email,
            password_digest=row.password_digest,
            role=row.role,
            is_active=row.is_active,
            is_email_verified=row.is_email_verified,
            created_at=row.created_at,
        )

    def _first(self, stmt) -> Principal | None:
        row = self.session.execute(stmt).scalars().first()
        return self._to_domain(cast(PrincipalRecord, row)) if row is not None else None

    # ---------------------------- Lookup helpers ----------------------------

    def find_by_id(self, principal_id: str) -> Principal | None:
        row = self.session.get(PrincipalRecord, principal_id)
        return self._to_domain(row) if row is not None else None

    def find_by_username(self, username: str) -> Principal | None:
        """Fetch a principal by username (trimmed, case-sensitive).

        :param username: Login handle.
        :type username: str
        :returns: Principal or ``None`` when not found.
        :rtype: Principal | None
        """
        return self._first(select(PrincipalRecord).where(PrincipalRecord.username == username.strip()))

    def find_by_email(self, email: str) -> Principal | None:
        """Fetch a principal by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: Principal or ``None`` when not found.
        :rtype: Principal | None
        """
        return self._first(
            select(PrincipalRecord).where(PrincipalRecord.email == email.lower().strip())
        )

    def exists_by_username(self, username: str) -> bool:
        stmt = select(exists().where(PrincipalRecord.username == username.strip()))
        return bool(self.session.execute(stmt).scalar())

    def exists_by_email(self, email: str) -> bool:
        stmt = select(exists().where(PrincipalRecord.email == email.lower().strip()))
        return bool(self.session.execute(stmt).scalar())

    # ---------------------------- Writes ----------------------------

    def save(self, principal: Principal) -> Principal:
        """Insert or update ``principal`` and commit.

        :param principal: Domain object to persist.
        :type principal: Principal
        :returns: The stored principal as read back from the row.
        :rtype: Principal
        :raises ConflictError: If a unique constraint on username/email fails.
        """
        session = self.session
        row = session.get(PrincipalRecord, principal.id)
        if row is None:
            row = PrincipalRecord(id=principal.id)
            session.add(row)
        row.username = principal.username
        row.email = principal.email
        row.password_digest = principal.password_digest
        row.role = principal.role
        row.is_active = principal.is_active
        row.is_email_verified = principal.is_email_verified
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if violates(exc, "uq_principals_username"):
                raise ConflictError("Principal", "username already exists") from exc
            if violates(exc, "uq_principals_email"):
                raise ConflictError("Principal", "email already exists") from exc
            raise
        session.refresh(row)
        return self._to_domain(row)
