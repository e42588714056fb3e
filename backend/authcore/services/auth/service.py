# authcore/services/auth/service.py
from __future__ import annotations

import logging
import uuid
from typing import NoReturn

from authcore.services._shared.base import BaseService
from authcore.services._shared.errors import (
    AccountLockedError,
    AlreadyVerifiedError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredVerificationTokenError,
    InvalidTokenError,
    MalformedTokenError,
    NotFoundError,
    ResendCooldownError,
    UserInactiveError,
    VerificationUnavailableError,
)
from authcore.services._shared.policies.roles import DEFAULT_ROLE
from authcore.services._shared.ports import (
    Claims,
    CredentialStore,
    EmailDispatcher,
    EmailVerificationLedger,
    IssuedToken,
    LoginAttemptGuard,
    PrincipalRepository,
    RevocationLedger,
    TokenCodec,
    TokenKind,
)
from authcore.services._shared.principal import Principal
from authcore.services.auth.dto import AuthResultOut, LoginIn, LogoutIn, RefreshIn, RegisterIn

logger = logging.getLogger(__name__)

# Checked when the username is unknown; both branches cost one hash
_DUMMY_PASSWORD = "authcore-dummy-password"


class AuthService(BaseService):
    """
    Authentication and session lifecycle service.

    Composes the token codec, the three TTL ledgers, the credential store and
    the principal repository into the register / login / refresh / logout /
    verify-email workflows.

    Failure policy
    --------------
    - Security-critical reads and rotation housekeeping propagate
      :class:`~authcore.services._shared.errors.StoreUnavailableError`.
    - Tracking writes, cooldown markers and email delivery go through
      :meth:`BaseService.best_effort`: the failure is logged and the primary
      operation still succeeds.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        revocations: RevocationLedger,
        attempts: LoginAttemptGuard,
        verifications: EmailVerificationLedger,
        credentials: CredentialStore,
        principals: PrincipalRepository,
        mailer: EmailDispatcher,
    ) -> None:
        """
        Initialize the service with its collaborators.

        :param codec: Mints and validates access/refresh tokens.
        :param revocations: Blacklist and per-user live JTI sets.
        :param attempts: Failed-login counters and account locks.
        :param verifications: Email verification tokens and resend cooldowns.
        :param credentials: Password hashing.
        :param principals: Principal persistence.
        :param mailer: Outbound verification emails.
        """
        super().__init__(logger=logger)
        self.codec = codec
        self.revocations = revocations
        self.attempts = attempts
        self.verifications = verifications
        self.credentials = credentials
        self.principals = principals
        self.mailer = mailer
        self._dummy_digest: str | None = None

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AuthResultOut:
        """
        Create a principal with the lowest-privilege role and sign it in.

        The verification email is best-effort: a store or SMTP failure is
        logged and registration still returns a token pair.

        :param dto: Registration input.
        :returns: Token pair and the new principal.
        :raises ConflictError: If the username or email is already taken.
        """
        if self.principals.exists_by_username(dto.username):
            raise ConflictError("Principal", "username already exists")
        if self.principals.exists_by_email(dto.email):
            raise ConflictError("Principal", "email already exists")

        principal = Principal(
            id=str(uuid.uuid4()),
            username=dto.username,
            email=dto.email,
            password_digest=self.credentials.hash(dto.password),
            role=DEFAULT_ROLE.value,
            created_at=self.now_utc(),
        )
        principal = self.principals.save(principal)
        self.log.info("auth.register.created", extra={"user_id": principal.id})

        self._send_verification(principal)
        return self._issue_pair(principal)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> AuthResultOut:
        """
        Authenticate credentials and issue a fresh token pair.

        :param dto: Login input.
        :returns: Token pair and the authenticated principal.
        :raises AccountLockedError: While the username is locked, even when
            the password is correct.
        :raises InvalidCredentialsError: Unknown user, wrong password or
            inactive principal; the three cases are indistinguishable.
        """
        if self.attempts.is_locked(dto.username):
            remaining = self.attempts.get_remaining_lock_time(dto.username)
            raise AccountLockedError(max(1, remaining))

        principal = self.principals.find_by_username(dto.username)
        if principal is None:
            self.credentials.verify(dto.password, self._dummy())
            self._record_failure(dto.username)

        password_ok = self.credentials.verify(dto.password, principal.password_digest)
        if not password_ok or not principal.is_active:
            self._record_failure(dto.username, user_id=principal.id)

        self.best_effort(
            "reset_attempts",
            lambda: self.attempts.reset_attempts(dto.username),
            user_id=principal.id,
        )
        self.log.info("auth.login.succeeded", extra={"user_id": principal.id})
        return self._issue_pair(principal)

    def _record_failure(self, username: str, *, user_id: str | None = None) -> NoReturn:
        count = self.attempts.increment_attempts(username)
        self.log.warning("auth.login.failed", extra={"user_id": user_id, "attempts": count})
        raise InvalidCredentialsError()

    def _dummy(self) -> str:
        if self._dummy_digest is None:
            self._dummy_digest = self.credentials.hash(_DUMMY_PASSWORD)
        return self._dummy_digest

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> AuthResultOut:
        """
        Rotate a refresh token and emit a brand-new token pair.

        Security
        --------
        - A refresh token whose JTI is already revoked is a replay: every
          live session of the subject is revoked and the call fails.
        - The old refresh token (and the old access token, when supplied)
          is revoked *before* minting. If that write fails the refresh
          aborts so two valid refresh tokens never coexist.

        :param dto: Refresh input.
        :returns: New token pair.
        :raises InvalidTokenError: Bad, expired, wrong-kind or reused token.
        :raises UserInactiveError: If the principal was deactivated.
        :raises StoreUnavailableError: If the store cannot be reached.
        """
        claims = self.codec.validate(dto.refresh_token, kind=TokenKind.REFRESH)
        user_id = claims.subject

        if self.revocations.is_blacklisted(claims.jti):
            self.log.warning("auth.refresh.reuse", extra={"user_id": user_id, "jti": claims.jti})
            self.best_effort(
                "revoke_all_on_reuse",
                lambda: self.revocations.revoke_all_user_tokens(user_id),
                user_id=user_id,
            )
            raise InvalidTokenError()

        if not self.revocations.revoke(claims.jti, claims.remaining(), user_id=user_id):
            # Lost a race against a concurrent rotation of the same token
            self.log.warning("auth.refresh.reuse", extra={"user_id": user_id, "jti": claims.jti})
            raise InvalidTokenError()

        if dto.access_token:
            self._revoke_previous_access(dto.access_token, user_id)

        principal = self.principals.find_by_id(user_id)
        if principal is None:
            raise InvalidTokenError()
        if not principal.is_active:
            raise UserInactiveError()

        return self._issue_pair(principal)

    def _revoke_previous_access(self, token: str, user_id: str) -> None:
        try:
            old = self.codec.parse_ignoring_expiry(token)
        except MalformedTokenError:
            self.log.info("auth.refresh.access_unparseable", extra={"user_id": user_id})
            return
        if old.kind is not TokenKind.ACCESS or old.subject != user_id:
            return
        self.revocations.revoke(old.jti, old.remaining(), user_id=user_id)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> Claims:
        """
        Revoke the presented access token for the rest of its lifetime.

        :returns: Claims of the revoked token.
        :raises InvalidTokenError: If the token does not validate.
        """
        claims = self.codec.validate(dto.access_token, kind=TokenKind.ACCESS)
        self.revocations.revoke(claims.jti, claims.remaining(), user_id=claims.subject)
        self.log.info("auth.logout", extra={"user_id": claims.subject, "jti": claims.jti})
        return claims

    def logout_all_devices(self, user_id: str) -> int:
        """Revoke every live token of ``user_id``; returns how many."""
        revoked = self.revocations.revoke_all_user_tokens(user_id)
        self.log.info("auth.logout_all", extra={"user_id": user_id, "revoked": revoked})
        return revoked

    def active_session_count(self, user_id: str) -> int:
        return self.revocations.get_active_token_count(user_id)

    def get_principal(self, user_id: str) -> Principal:
        principal = self.principals.find_by_id(user_id)
        if principal is None:
            raise NotFoundError("Principal", user_id)
        return principal

    # ------------------------------------------------------------------ #
    # Email verification
    # ------------------------------------------------------------------ #

    def verify_email(self, token: str) -> Principal:
        """
        Consume a verification token and flag the principal as verified.

        Sibling tokens issued earlier are invalidated afterwards (best-effort).

        :raises InvalidOrExpiredVerificationTokenError: Unknown or expired token,
            or the principal no longer exists.
        :raises AlreadyVerifiedError: If the address was verified already.
        """
        user_id = self.verifications.validate_token(token)
        principal = self.principals.find_by_id(user_id)
        if principal is None:
            raise InvalidOrExpiredVerificationTokenError()
        if principal.is_email_verified:
            raise AlreadyVerifiedError()

        principal = self.principals.save(principal.mark_email_verified())
        self.best_effort(
            "invalidate_verification_tokens",
            lambda: self.verifications.invalidate_all_user_tokens(user_id),
            user_id=user_id,
        )
        self.log.info("auth.verify_email.succeeded", extra={"user_id": user_id})
        return principal

    def resend_verification_email(self, user_id: str) -> None:
        """
        Issue a new verification token and email it.

        :raises NotFoundError: If the principal does not exist.
        :raises AlreadyVerifiedError: If the address was verified already.
        :raises ResendCooldownError: While the resend cooldown is active.
        :raises VerificationUnavailableError: If email verification is disabled.
        """
        principal = self.get_principal(user_id)
        if principal.is_email_verified:
            raise AlreadyVerifiedError()

        allowed, remaining = self.verifications.can_resend(user_id)
        if not allowed:
            raise ResendCooldownError(max(1, remaining))

        self.verifications.invalidate_all_user_tokens(user_id)
        token = self.verifications.generate_token(user_id)
        if not token:
            raise VerificationUnavailableError()
        self._start_cooldown_and_mail(principal, token)

    def _send_verification(self, principal: Principal) -> None:
        token = self.best_effort(
            "generate_verification_token",
            lambda: self.verifications.generate_token(principal.id),
            user_id=principal.id,
        )
        if not token:
            return
        self._start_cooldown_and_mail(principal, token)

    def _start_cooldown_and_mail(self, principal: Principal, token: str) -> None:
        self.best_effort(
            "set_resend_cooldown",
            lambda: self.verifications.set_resend_cooldown(principal.id),
            user_id=principal.id,
        )
        self.best_effort(
            "send_verification_email",
            lambda: self.mailer.send_verification(principal.email, token),
            user_id=principal.id,
        )

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def _issue_pair(self, principal: Principal) -> AuthResultOut:
        access = self.codec.issue_access(
            principal.id, principal.role, extra_claims={"email": principal.email}
        )
        refresh = self.codec.issue_refresh(principal.id)
        for issued in (access, refresh):
            self._track(principal.id, issued)
        return AuthResultOut(
            access_token=access.token,
            refresh_token=refresh.token,
            expires_in=int(access.ttl.total_seconds()),
            principal=principal,
        )

    def _track(self, user_id: str, issued: IssuedToken) -> None:
        self.best_effort(
            "track_user_token",
            lambda: self.revocations.track_user_token(user_id, issued.jti, issued.ttl),
            user_id=user_id,
            jti=issued.jti,
        )
