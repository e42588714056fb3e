from __future__ import annotations

import threading
from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol

from authcore.services._shared.errors import ConflictError
from authcore.services._shared.principal import Principal


class PrincipalRepository(Protocol):
    """Persistence port for :class:`Principal` records."""

    def find_by_id(self, principal_id: str) -> Principal | None: ...

    def find_by_username(self, username: str) -> Principal | None: ...

    def find_by_email(self, email: str) -> Principal | None: ...

    def exists_by_username(self, username: str) -> bool: ...

    def exists_by_email(self, email: str) -> bool: ...

    def save(self, principal: Principal) -> Principal:
        """
        Insert or update ``principal`` by id.

        :raises ConflictError: If the username or email is taken by another principal.
        """


class InMemoryPrincipalRepository(PrincipalRepository):
    """Dictionary-backed repository enforcing the same uniqueness rules as the DB."""

    def __init__(self) -> None:
        self._by_id: dict[str, Principal] = {}
        self._lock = threading.Lock()

    def find_by_id(self, principal_id: str) -> Principal | None:
        return self._by_id.get(principal_id)

    def find_by_username(self, username: str) -> Principal | None:
        wanted = username.strip()
        return next((p for p in self._by_id.values() if p.username == wanted), None)

    def find_by_email(self, email: str) -> Principal | None:
        wanted = email.strip().lower()
        return next((p for p in self._by_id.values() if p.email == wanted), None)

    def exists_by_username(self, username: str) -> bool:
        return self.find_by_username(username) is not None

    def exists_by_email(self, email: str) -> bool:
        return self.find_by_email(email) is not None

    def save(self, principal: Principal) -> Principal:
        stored = replace(
            principal,
            username=principal.username.strip(),
            email=principal.email.strip().lower(),
            created_at=principal.created_at or datetime.now(UTC),
        )
        with self._lock:
            for other in self._by_id.values():
                if other.id == stored.id:
                    continue
                if other.username == stored.username:
                    raise ConflictError("Principal", "username already exists")
                if other.email == stored.email:
                    raise ConflictError("Principal", "email already exists")
            self._by_id[stored.id] = stored
        return stored
