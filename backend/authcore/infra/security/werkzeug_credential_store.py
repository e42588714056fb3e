# authcore/infra/security/werkzeug_credential_store.py
from __future__ import annotations

from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from authcore.services._shared.ports import CredentialStore


@dataclass(slots=True)
class WerkzeugCredentialStore(CredentialStore):
    """
    Password hashing via :mod:`werkzeug.security`.

    :param method: Hash method passed to ``generate_password_hash``
        (``"scrypt"`` by default; tests use a cheap pbkdf2 round count).
    """

    method: str = "scrypt"

    def hash(self, plaintext: str) -> str:
        if not isinstance(plaintext, str) or not plaintext:
            raise ValueError("Password must be a non-empty string.")
        return generate_password_hash(plaintext, method=self.method)

    def verify(self, plaintext: str, digest: str) -> bool:
        if not digest:
            return False
        # ``check_password_hash`` is untyped; coerce to bool for mypy.
        return bool(check_password_hash(digest, plaintext))
