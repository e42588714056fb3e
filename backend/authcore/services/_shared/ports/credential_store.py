from __future__ import annotations

from typing import Protocol


class CredentialStore(Protocol):
    """Password hashing primitive consumed by the auth service."""

    def hash(self, plaintext: str) -> str:
        """Return a salted digest of ``plaintext``."""

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return ``True`` when ``plaintext`` matches ``digest``."""
